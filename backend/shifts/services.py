"""
Shifts Service Layer.

``ShiftStore`` is the read model the validator consults;
``ShiftService`` owns every write to ``Shift`` and is the only caller of
``ShiftValidator`` that persists its outcome.

Writes that change a shift's schedule run inside one transaction that
first locks the affected ``Officer`` rows (in primary-key order), then
validates, then saves.  A second writer touching any of the same
officers blocks on the lock and validates against the committed state.
"""

from __future__ import annotations

import datetime
import logging
from typing import Any, Iterable

from django.db import DatabaseError, transaction
from django.db.models import Prefetch, QuerySet
from django.utils import timezone

from core.domain.access import require_permission
from core.domain.audit import audited
from core.domain.exceptions import Conflict, DomainError, LookupFailure, NotFound
from core.domain.tasks import enqueue_notification
from core.domain.transactions import atomic_transition, lock_for_update, lock_rows
from core.permissions_constants import ShiftsPerms, perm
from officers.models import Officer
from officers.services import OfficerDirectory

from .models import Shift, ShiftStatus
from .validators import (
    ProposedShift,
    ShiftRecord,
    ShiftValidationResult,
    ShiftValidator,
)

logger = logging.getLogger(__name__)


SHIFT_TRANSITIONS: dict[str, set[str]] = {
    ShiftStatus.PENDING: {ShiftStatus.APPROVED, ShiftStatus.REJECTED, ShiftStatus.CANCELLED},
    ShiftStatus.APPROVED: {ShiftStatus.IN_PROGRESS, ShiftStatus.CANCELLED},
    ShiftStatus.IN_PROGRESS: {ShiftStatus.COMPLETED},
}

# Statuses that no longer occupy an officer's time.
INACTIVE_SHIFT_STATUSES = frozenset({ShiftStatus.CANCELLED, ShiftStatus.REJECTED})

EDITABLE_SHIFT_STATUSES = frozenset({ShiftStatus.PENDING, ShiftStatus.APPROVED})

UNDELETABLE_SHIFT_STATUSES = frozenset({ShiftStatus.IN_PROGRESS, ShiftStatus.COMPLETED})

SCHEDULING_FIELDS = frozenset({"start_time", "end_time", "officer_ids"})


class ShiftStore:
    """Read-only access to shifts that still occupy officers' time."""

    def find_shifts_by_any_officer(self, officer_ids: Iterable[int]) -> list[ShiftRecord]:
        ids = set(officer_ids)
        if not ids:
            return []
        try:
            shifts = (
                Shift.objects
                .filter(assigned_officers__pk__in=ids)
                .exclude(status__in=INACTIVE_SHIFT_STATUSES)
                .distinct()
                .prefetch_related(Prefetch("assigned_officers", queryset=Officer.objects.only("pk")))
                .order_by("start_time", "pk")
            )
            return [
                ShiftRecord(
                    id=shift.pk,
                    start_time=shift.start_time,
                    end_time=shift.end_time,
                    officer_ids=shift.officer_ids,
                )
                for shift in shifts
            ]
        except DatabaseError as exc:
            raise LookupFailure("shift store") from exc


def build_validator() -> ShiftValidator:
    return ShiftValidator(OfficerDirectory(), ShiftStore())


def _lock_officers(officer_ids: Iterable[int]) -> list[Officer]:
    try:
        return lock_rows(Officer, officer_ids)
    except DatabaseError as exc:
        raise LookupFailure("officer directory") from exc


def _require_editable(shift: Shift) -> None:
    if shift.status not in EDITABLE_SHIFT_STATUSES:
        raise Conflict(f"Shift in status '{shift.status}' can no longer be edited.")


def _proposal_for_update(
    shift: Shift,
    data: dict[str, Any],
    current_officers: frozenset[int],
) -> ProposedShift:
    """Overlay the submitted schedule fields on the stored shift."""
    officer_ids = (
        frozenset(data["officer_ids"] or ())
        if "officer_ids" in data
        else current_officers
    )
    return ProposedShift(
        id=shift.pk,
        start_time=data.get("start_time", shift.start_time),
        end_time=data.get("end_time", shift.end_time),
        officer_ids=officer_ids,
    )


def _notify_officers(event_type: str, shift: Shift, officer_ids: Iterable[int]) -> None:
    user_ids = list(
        Officer.objects
        .filter(pk__in=set(officer_ids), user__isnull=False, user__is_active=True)
        .values_list("user_id", flat=True)
    )
    enqueue_notification(
        event_type,
        user_ids,
        {
            "title": shift.title,
            "shift_id": shift.pk,
            "status": shift.status,
            "start_time": shift.start_time.isoformat(),
            "end_time": shift.end_time.isoformat(),
        },
        related_object=shift,
    )


class ShiftService:

    # ═══════════════════════════════════════════════════════════════
    #  Queries
    # ═══════════════════════════════════════════════════════════════

    @staticmethod
    def _base_queryset() -> QuerySet[Shift]:
        return (
            Shift.objects
            .select_related("created_by", "reviewed_by")
            .prefetch_related("assigned_officers")
        )

    @staticmethod
    def list_shifts(
        requesting_user: Any,
        *,
        status: str | None = None,
        officer_id: int | None = None,
        start: datetime.datetime | None = None,
        end: datetime.datetime | None = None,
    ) -> QuerySet[Shift]:
        """
        Shifts filtered by status, officer and time window.  ``start`` /
        ``end`` keep shifts that intersect ``[start, end)``.
        """
        require_permission(requesting_user, perm("shifts", ShiftsPerms.VIEW_SHIFT))
        qs = ShiftService._base_queryset()
        if status:
            qs = qs.filter(status=status)
        if officer_id is not None:
            qs = qs.filter(assigned_officers__pk=officer_id)
        if start is not None:
            qs = qs.filter(end_time__gt=start)
        if end is not None:
            qs = qs.filter(start_time__lt=end)
        return qs.distinct()

    @staticmethod
    def list_for_officer(officer_id: int, requesting_user: Any, *, status: str | None = None) -> QuerySet[Shift]:
        if not Officer.objects.filter(pk=officer_id).exists():
            raise NotFound(f"Officer with id {officer_id} not found.")
        return ShiftService.list_shifts(requesting_user, status=status, officer_id=officer_id)

    @staticmethod
    def list_upcoming(
        requesting_user: Any,
        *,
        start: datetime.datetime | None = None,
        end: datetime.datetime | None = None,
    ) -> QuerySet[Shift]:
        """
        Active shifts starting inside ``[start, end]``.  ``start`` defaults
        to now and ``end`` to seven days later.
        """
        start = start or timezone.now()
        end = end or start + datetime.timedelta(days=7)
        if end < start:
            raise DomainError("Window end must not be before its start.")
        require_permission(requesting_user, perm("shifts", ShiftsPerms.VIEW_SHIFT))
        return (
            ShiftService._base_queryset()
            .filter(start_time__gte=start, start_time__lte=end)
            .exclude(status__in=INACTIVE_SHIFT_STATUSES | {ShiftStatus.COMPLETED})
        )

    @staticmethod
    def get_shift(shift_id: Any, requesting_user: Any) -> Shift:
        require_permission(requesting_user, perm("shifts", ShiftsPerms.VIEW_SHIFT))
        try:
            return ShiftService._base_queryset().get(pk=shift_id)
        except (Shift.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Shift with id {shift_id} not found.")

    # ═══════════════════════════════════════════════════════════════
    #  Validation
    # ═══════════════════════════════════════════════════════════════

    @staticmethod
    def validate_proposal(
        data: dict[str, Any],
        requesting_user: Any,
        *,
        validator: ShiftValidator | None = None,
    ) -> ShiftValidationResult:
        """
        Dry run: report what ``create_shift`` (or ``update_shift`` when
        ``data["shift_id"]`` is set) would decide, without writing.

        With a ``shift_id`` the stored shift must exist and still be
        editable, and omitted schedule fields fall back to its stored
        values.

        Raises:
            NotFound: ``shift_id`` names no shift.
            Conflict: the shift can no longer be edited.
        """
        require_permission(requesting_user, perm("shifts", ShiftsPerms.CAN_MANAGE_SHIFTS))
        shift_id = data.get("shift_id")
        if shift_id is None:
            proposal = ProposedShift(
                start_time=data.get("start_time"),
                end_time=data.get("end_time"),
                officer_ids=data.get("officer_ids") or (),
            )
        else:
            try:
                shift = Shift.objects.get(pk=shift_id)
            except Shift.DoesNotExist:
                raise NotFound(f"Shift with id {shift_id} not found.")
            _require_editable(shift)
            current_officers = frozenset(shift.assigned_officers.values_list("pk", flat=True))
            proposal = _proposal_for_update(shift, data, current_officers)
        return (validator or build_validator()).validate(proposal)

    # ═══════════════════════════════════════════════════════════════
    #  Writes
    # ═══════════════════════════════════════════════════════════════

    @staticmethod
    @audited("create", "shift")
    def create_shift(
        validated_data: dict[str, Any],
        requesting_user: Any,
        *,
        validator: ShiftValidator | None = None,
    ) -> Shift:
        """
        Validate and persist a new shift with status ``pending``.

        Raises:
            PermissionDenied: without ``shifts.can_manage_shifts``.
            ShiftRejected:    when a scheduling rule fails.
            LookupFailure:    when the officer or shift lookup fails.
        """
        require_permission(requesting_user, perm("shifts", ShiftsPerms.CAN_MANAGE_SHIFTS))
        data = dict(validated_data)
        officer_ids = frozenset(data.pop("officer_ids", ()) or ())
        validator = validator or build_validator()

        with transaction.atomic():
            _lock_officers(officer_ids)
            validator.validate(
                ProposedShift(
                    start_time=data.get("start_time"),
                    end_time=data.get("end_time"),
                    officer_ids=officer_ids,
                )
            ).raise_if_rejected()

            shift = Shift.objects.create(
                **data,
                status=ShiftStatus.PENDING,
                created_by=requesting_user,
            )
            shift.assigned_officers.set(officer_ids)
            _notify_officers("shift_assigned", shift, officer_ids)

        logger.info(
            "Shift %s created by %s for officers %s",
            shift.pk, requesting_user, sorted(officer_ids),
        )
        return ShiftService._base_queryset().get(pk=shift.pk)

    @staticmethod
    @audited("update", "shift", target_arg="shift")
    def update_shift(
        shift: Shift,
        validated_data: dict[str, Any],
        requesting_user: Any,
        *,
        validator: ShiftValidator | None = None,
    ) -> Shift:
        """
        Merge ``validated_data`` over the stored shift and save.

        The scheduling rules run only when start, end or officers change;
        the shift is excluded from its own conflict set.
        """
        require_permission(requesting_user, perm("shifts", ShiftsPerms.CAN_MANAGE_SHIFTS))
        data = dict(validated_data)
        validator = validator or build_validator()

        with transaction.atomic():
            locked = lock_for_update(Shift, shift.pk)
            _require_editable(locked)

            current_officers = frozenset(
                locked.assigned_officers.values_list("pk", flat=True)
            )
            proposal = _proposal_for_update(locked, data, current_officers)
            new_officers = proposal.officer_ids
            data.pop("officer_ids", None)

            if SCHEDULING_FIELDS.intersection(validated_data):
                _lock_officers(new_officers)
                validator.validate(proposal).raise_if_rejected()

            for field, value in data.items():
                setattr(locked, field, value)
            locked.save()

            if new_officers != current_officers:
                locked.assigned_officers.set(new_officers)
                added = new_officers - current_officers
                if added:
                    _notify_officers("shift_assigned", locked, added)

        logger.info("Shift %s updated by %s", locked.pk, requesting_user)
        return ShiftService._base_queryset().get(pk=locked.pk)

    @staticmethod
    @audited("delete", "shift", target_arg="shift")
    def delete_shift(shift: Shift, requesting_user: Any) -> None:
        require_permission(requesting_user, perm("shifts", ShiftsPerms.CAN_MANAGE_SHIFTS))
        with transaction.atomic():
            locked = lock_for_update(Shift, shift.pk)
            if locked.status in UNDELETABLE_SHIFT_STATUSES:
                raise Conflict(f"Cannot delete a shift in status '{locked.status}'.")
            locked.delete()
        logger.info("Shift %s deleted by %s", shift.pk, requesting_user)

    @staticmethod
    @audited("transition", "shift", target_arg="shift")
    def transition_status(shift: Shift, target_status: str, requesting_user: Any) -> Shift:
        """
        Move a shift along its lifecycle::

            pending → approved | rejected | cancelled
            approved → in_progress | cancelled
            in_progress → completed

        Approving and rejecting need ``shifts.can_approve_shift``; every
        other step needs ``shifts.can_manage_shifts``.
        """
        if target_status in (ShiftStatus.APPROVED, ShiftStatus.REJECTED):
            require_permission(requesting_user, perm("shifts", ShiftsPerms.CAN_APPROVE_SHIFT))
            extra = {"reviewed_by": requesting_user}
        else:
            require_permission(requesting_user, perm("shifts", ShiftsPerms.CAN_MANAGE_SHIFTS))
            extra = None

        with transaction.atomic():
            shift = atomic_transition(
                instance=shift,
                target_status=target_status,
                transitions=SHIFT_TRANSITIONS,
                extra_values=extra,
            )
            _notify_officers(
                "shift_status_changed",
                shift,
                shift.assigned_officers.values_list("pk", flat=True),
            )

        logger.info("Shift %s moved to %s by %s", shift.pk, target_status, requesting_user)
        return ShiftService._base_queryset().get(pk=shift.pk)
