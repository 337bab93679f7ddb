"""
core.domain.notifications — Notification rendering and persistence.

Centralises ``Notification`` creation so every delivery path uses one
consistent entry-point.  App services never call this directly: they
enqueue work through ``core.domain.tasks.enqueue_notification`` and the
``NotificationWorker`` calls ``NotificationService.create`` when it
processes the task.

Templates
---------
Each event type maps to a ``(title, message)`` pair of ``str.format``
templates that are interpolated with the task payload.  Placeholders
missing from the payload are left in place rather than raising, so a
producer that forgets a key still yields a readable notification.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from django.contrib.contenttypes.models import ContentType
from django.db import models

if TYPE_CHECKING:
    from accounts.models import User
    from core.models import Notification

logger = logging.getLogger(__name__)

# ── Event-type → human-readable templates ───────────────────────────
_EVENT_TEMPLATES: dict[str, tuple[str, str]] = {
    # event_type: (title_template, message_template)
    "report_created":          ("New Report",                "A new citizen report \"{title}\" ({report_type}) requires review."),
    "report_status_changed":   ("Report Status Updated",     "Your report \"{title}\" is now {status}."),
    "report_converted":        ("Report Converted",          "Your report \"{title}\" has been converted into incident #{incident_id}."),
    "incident_assigned":       ("Incident Assignment",       "You have been assigned to incident #{incident_id}: {title}."),
    "incident_status_changed": ("Incident Status Updated",   "Incident #{incident_id} ({title}) is now {status}."),
    "incident_reported_anonymously": ("Anonymous Tip",       "An anonymous tip was filed as incident #{incident_id}: {title}."),
    "shift_assigned":          ("New Shift Assignment",      "You have been assigned to shift \"{title}\" from {start_time} to {end_time}."),
    "shift_status_changed":    ("Shift Status Updated",      "Shift \"{title}\" is now {status}."),
    "alert_broadcast":         ("[{severity}] {title}",      "{message}"),
}


class _KeepMissing(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def render_event(event_type: str, payload: dict[str, Any] | None = None) -> tuple[str, str]:
    """Return the ``(title, message)`` pair for an event and its payload."""
    title_tpl, message_tpl = _EVENT_TEMPLATES.get(
        event_type,
        (event_type.replace("_", " ").title(), f"Event: {event_type}"),
    )
    context = _KeepMissing(payload or {})
    return title_tpl.format_map(context), message_tpl.format_map(context)


class NotificationService:
    """
    Stateless helper for creating ``Notification`` records.

    All methods are classmethods — no instance state is needed.
    """

    @classmethod
    def create(
        cls,
        *,
        recipients: User | Iterable[User],
        event_type: str,
        payload: dict[str, Any] | None = None,
        related_object: models.Model | None = None,
        content_type: ContentType | None = None,
        object_id: int | None = None,
    ) -> list[Notification]:
        """
        Create one ``Notification`` per recipient.

        Args:
            recipients:     A single ``User`` or iterable of ``User``
                            instances.
            event_type:     Key into ``_EVENT_TEMPLATES``.  If unknown
                            the raw event_type is used as title.
            payload:        Context dict used for template interpolation.
            related_object: Optional model instance linked via
                            ``GenericForeignKey``.
            content_type / object_id:
                            Alternative to ``related_object`` when only the
                            generic reference is known (worker path).

        Returns:
            List of created ``Notification`` instances.
        """
        from core.models import Notification  # lazy import

        if isinstance(recipients, models.Model):
            recipients = [recipients]
        else:
            recipients = list(recipients)

        if not recipients:
            logger.warning(
                "NotificationService.create called with empty recipients "
                "for event_type=%s",
                event_type,
            )
            return []

        title, message = render_event(event_type, payload)

        if related_object is not None:
            content_type = ContentType.objects.get_for_model(related_object)
            object_id = related_object.pk

        notifications = Notification.objects.bulk_create(
            [
                Notification(
                    recipient=recipient,
                    event_type=event_type,
                    title=title[:255],
                    message=message,
                    content_type=content_type,
                    object_id=object_id,
                )
                for recipient in recipients
            ]
        )

        logger.info(
            "Created %d notification(s) [%s]",
            len(notifications),
            event_type,
        )
        return notifications
