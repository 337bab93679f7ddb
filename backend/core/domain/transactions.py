"""
core.domain.transactions — Helpers for safe state transitions.

Provides utilities that wrap ``transaction.atomic`` and
``select_for_update`` into reusable patterns so that every app's
service layer follows the same concurrency-safe approach.

Usage::

    from core.domain.transactions import atomic_transition

    shift = atomic_transition(
        instance=shift,
        target_status=ShiftStatus.APPROVED,
        transitions=SHIFT_TRANSITIONS,
    )

    # Serialize writers that touch the same set of rows:
    from core.domain.transactions import lock_rows

    with transaction.atomic():
        officers = lock_rows(Officer, officer_ids)
        ...
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, TypeVar

from django.db import models, transaction

from core.domain.exceptions import InvalidTransition, NotFound

M = TypeVar("M", bound=models.Model)


def atomic_transition(
    *,
    instance: M,
    status_field: str = "status",
    target_status: str,
    transitions: Mapping[str, Iterable[str]],
    save_fields: Iterable[str] | None = None,
    extra_values: Mapping[str, Any] | None = None,
) -> M:
    """
    Atomically transition a model instance from one status to another.

    Steps performed inside ``transaction.atomic()``:
        1. Re-fetch the instance with ``select_for_update()`` to acquire
           a row-level lock.
        2. Read the current value of ``status_field``.
        3. Verify ``target_status`` is listed in ``transitions[current]``;
           raise ``InvalidTransition`` otherwise.
        4. Set ``status_field`` (and any ``extra_values``) and save.

    Args:
        instance:      The model instance to transition.
        status_field:  Name of the status field.  Defaults to ``"status"``.
        target_status: The desired new value.
        transitions:   Mapping of current status → allowed target statuses.
                       Statuses absent from the mapping are terminal.
        save_fields:   Extra fields to include in ``save(update_fields=...)``.
        extra_values:  Field values written together with the status.

    Returns:
        The same instance, refreshed from the database.

    Raises:
        NotFound:          If the instance no longer exists in the DB.
        InvalidTransition: If the transition is not allowed.
    """
    model_class = type(instance)

    with transaction.atomic():
        try:
            locked = (
                model_class.objects
                .select_for_update()
                .get(pk=instance.pk)
            )
        except model_class.DoesNotExist:
            raise NotFound(
                f"{model_class.__name__} with pk={instance.pk} no longer exists."
            )

        current = getattr(locked, status_field)
        allowed = set(transitions.get(current, ()))

        if target_status not in allowed:
            raise InvalidTransition(
                current=str(current),
                target=str(target_status),
                reason=(
                    f"Allowed targets: {', '.join(sorted(str(s) for s in allowed))}."
                    if allowed
                    else f"'{current}' is a terminal status."
                ),
            )

        setattr(locked, status_field, target_status)
        update_fields = {status_field, "updated_at"}
        for field, value in (extra_values or {}).items():
            setattr(locked, field, value)
            update_fields.add(field)
        if save_fields:
            update_fields.update(save_fields)

        locked.save(update_fields=list(update_fields))

    instance.refresh_from_db()
    return instance


def lock_for_update(model_class: type[M], pk: Any) -> M:
    """
    Acquire a row-level lock on the given model instance.

    Must be called inside an ``atomic()`` block.

    Raises:
        NotFound: If no row with that PK exists.
    """
    try:
        return model_class.objects.select_for_update().get(pk=pk)
    except model_class.DoesNotExist:
        raise NotFound(f"{model_class.__name__} with pk={pk} does not exist.")


def lock_rows(model_class: type[M], pks: Iterable[Any]) -> list[M]:
    """
    Lock every existing row whose PK is in ``pks``.

    Rows are locked in primary-key order so two writers locking
    overlapping sets cannot deadlock.  Missing PKs are silently skipped;
    callers that care compare the result against their input.
    Must be called inside an ``atomic()`` block.
    """
    pks = sorted(set(pks))
    if not pks:
        return []
    return list(
        model_class.objects
        .select_for_update()
        .filter(pk__in=pks)
        .order_by("pk")
    )
