"""
core.domain.audit — Explicit audit trail for service operations.

Wrap a service method with ``audited`` to record who did what::

    class ShiftService:

        @staticmethod
        @audited("create", "shift")
        def create_shift(validated_data, requesting_user):
            ...

After the wrapped call returns, an ``AuditLog`` row is written and the
event is logged.  Calls that raise are not audited.

The actor is taken from the argument named ``actor_arg`` (default
``requesting_user``).  The entity id comes from the return value when it
is a model instance, otherwise from the ``target_arg`` argument, read
*before* the call so deletions still record the id.
"""

from __future__ import annotations

import functools
import inspect
import logging
from typing import Any, Callable, TypeVar

from django.db import models

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _pk_of(value: Any) -> str:
    if isinstance(value, models.Model) and value.pk is not None:
        return str(value.pk)
    return ""


def record_audit(*, actor: Any, action: str, entity: str, entity_id: str = "", description: str = "") -> None:
    """Persist one ``AuditLog`` row and log it."""
    from core.models import AuditLog

    if actor is not None and not getattr(actor, "is_authenticated", False):
        actor = None

    AuditLog.objects.create(
        actor=actor,
        action=action,
        entity=entity,
        entity_id=entity_id,
        description=description,
    )
    logger.info(
        "AUDIT %s %s#%s by %s%s",
        action,
        entity,
        entity_id or "-",
        actor or "anonymous",
        f": {description}" if description else "",
    )


def audited(
    action: str,
    entity: str,
    *,
    actor_arg: str = "requesting_user",
    target_arg: str | None = None,
) -> Callable[[F], F]:
    """Decorator factory recording an ``AuditLog`` entry per successful call."""

    def decorator(fn: F) -> F:
        signature = inspect.signature(fn)

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            bound = signature.bind_partial(*args, **kwargs)
            actor = bound.arguments.get(actor_arg)
            target_id = _pk_of(bound.arguments.get(target_arg)) if target_arg else ""

            result = fn(*args, **kwargs)

            record_audit(
                actor=actor,
                action=action,
                entity=entity,
                entity_id=_pk_of(result) or target_id,
                description=f"{fn.__qualname__}",
            )
            return result

        return wrapper  # type: ignore[return-value]

    return decorator
