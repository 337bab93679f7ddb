"""
Core app services — **Service Layer**.

Contains the cross-app health and metrics aggregation plus the
notification inbox.  Views delegate all business logic to the service
classes defined here, keeping views thin and ensuring testability.

╔══════════════════════════════════════════════════════════════════════╗
║  CROSS-APP IMPORT RULEBOOK                                         ║
║                                                                    ║
║  The core app is the ONLY app allowed to query models from every   ║
║  other app.  To prevent circular imports at module load time:      ║
║                                                                    ║
║  1. NEVER import models from other apps at the **module level**.   ║
║     Resolve them lazily:                                           ║
║       from django.apps import apps                                 ║
║       Report = apps.get_model("reports", "Report")                 ║
║                                                                    ║
║  2. For aggregations prefer ``.values().annotate()`` over          ║
║     Python-side loops.                                             ║
╚══════════════════════════════════════════════════════════════════════╝
"""

from __future__ import annotations

import logging
from typing import Any

from django.apps import apps
from django.conf import settings
from django.db import DatabaseError, connection
from django.db.models import Count, QuerySet
from django.utils import timezone

from core.domain.access import require_permission
from core.domain.exceptions import NotFound
from core.models import Notification, NotificationTask, NotificationTaskStatus
from core.permissions_constants import CorePerms, perm

logger = logging.getLogger(__name__)


def _count_by(queryset: QuerySet, field: str) -> dict[str, int]:
    """Return ``{value: count}`` for ``field`` over ``queryset``."""
    rows = queryset.order_by().values(field).annotate(total=Count("id"))
    return {str(row[field]): row["total"] for row in rows}


# ════════════════════════════════════════════════════════════════════
#  Health
# ════════════════════════════════════════════════════════════════════

class SystemHealthService:
    """
    Liveness / readiness probe used by ``GET /api/core/health/``.

    Checks:
        * ``database`` — a trivial ``SELECT 1`` round-trip.
        * ``notification_queue`` — pending task backlog compared with
          ``NOTIFICATIONS["BACKLOG_WARNING_THRESHOLD"]``.

    The overall status is ``ok`` only when every check passes.
    """

    @staticmethod
    def check() -> dict[str, Any]:
        checks: dict[str, dict[str, Any]] = {}

        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
            checks["database"] = {"status": "ok"}
        except DatabaseError as exc:
            logger.error("Health check: database unreachable: %s", exc, exc_info=True)
            checks["database"] = {"status": "error"}

        if checks["database"]["status"] == "ok":
            threshold = settings.NOTIFICATIONS["BACKLOG_WARNING_THRESHOLD"]
            pending = NotificationTask.objects.filter(
                status=NotificationTaskStatus.PENDING,
            ).count()
            checks["notification_queue"] = {
                "status": "ok" if pending <= threshold else "degraded",
                "pending": pending,
                "threshold": threshold,
            }
        else:
            checks["notification_queue"] = {"status": "unknown"}

        healthy = all(c["status"] == "ok" for c in checks.values())
        if not healthy:
            logger.warning("Health check degraded: %s", checks)

        return {
            "status": "ok" if healthy else "degraded",
            "timestamp": timezone.now(),
            "checks": checks,
        }


# ════════════════════════════════════════════════════════════════════
#  Metrics
# ════════════════════════════════════════════════════════════════════

class SystemMetricsService:
    """
    Aggregated operational counters for ``GET /api/core/metrics/``.

    Every section is a ``{status_value: count}`` mapping computed with a
    single grouped query, except ``alerts.active`` which is a scalar.
    """

    @staticmethod
    def collect(requesting_user: Any) -> dict[str, Any]:
        require_permission(
            requesting_user,
            perm("core", CorePerms.CAN_VIEW_SYSTEM_METRICS),
            message="You do not have permission to view system metrics.",
        )

        Report = apps.get_model("reports", "Report")
        Incident = apps.get_model("incidents", "Incident")
        Shift = apps.get_model("shifts", "Shift")
        Alert = apps.get_model("alerts", "Alert")
        Officer = apps.get_model("officers", "Officer")

        now = timezone.now()
        active_alerts = Alert.objects.active(now=now).count()

        return {
            "generated_at": now,
            "reports": {"by_status": _count_by(Report.objects.all(), "status")},
            "incidents": {
                "by_status": _count_by(Incident.objects.all(), "status"),
                "by_priority": _count_by(Incident.objects.all(), "priority"),
            },
            "shifts": {"by_status": _count_by(Shift.objects.all(), "status")},
            "alerts": {
                "active": active_alerts,
                "by_severity": _count_by(Alert.objects.active(now=now), "severity"),
            },
            "officers": {"by_status": _count_by(Officer.objects.all(), "status")},
            "notification_tasks": {"by_status": _count_by(NotificationTask.objects.all(), "status")},
        }


# ════════════════════════════════════════════════════════════════════
#  Notifications inbox
# ════════════════════════════════════════════════════════════════════

class NotificationInboxService:
    """
    Handles listing and marking notifications as read for a given user.
    """

    def __init__(self, user: Any) -> None:
        self.user = user

    def list_notifications(self, *, unread_only: bool = False) -> QuerySet:
        """Return notifications for ``self.user``, most recent first."""
        qs = (
            Notification.objects
            .filter(recipient=self.user)
            .select_related("content_type")
            .order_by("-created_at", "-id")
        )
        if unread_only:
            qs = qs.filter(is_read=False)
        return qs

    def mark_as_read(self, notification_id: int) -> Notification:
        """Mark a single notification as read (idempotent)."""
        try:
            notification = Notification.objects.get(
                pk=notification_id,
                recipient=self.user,
            )
        except (Notification.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Notification with id {notification_id} not found.")

        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=["is_read", "updated_at"])
        return notification

    def mark_all_as_read(self) -> int:
        """Mark every unread notification of ``self.user`` as read."""
        return (
            Notification.objects
            .filter(recipient=self.user, is_read=False)
            .update(is_read=True, updated_at=timezone.now())
        )
