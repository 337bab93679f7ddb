"""
Alerts Service Layer.

Publishing an alert queues one ``alert_broadcast`` notification task
addressed to every active user; the notification worker fans it out.
"""

from __future__ import annotations

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from core.domain.access import require_permission
from core.domain.audit import audited
from core.domain.exceptions import NotFound
from core.domain.tasks import enqueue_notification
from core.permissions_constants import AlertsPerms, perm

from .models import Alert

logger = logging.getLogger(__name__)

BROADCAST_PERMISSION = perm("alerts", AlertsPerms.CAN_BROADCAST_ALERT)


class AlertService:

    @staticmethod
    def list_active(
        requesting_user: Any,
        *,
        kind: str | None = None,
        severity: str | None = None,
        area: str | None = None,
    ) -> QuerySet[Alert]:
        """
        Alerts currently in force.  An ``area`` filter also keeps
        city-wide alerts (empty area).
        """
        require_permission(requesting_user, perm("alerts", AlertsPerms.VIEW_ALERT))
        qs = Alert.objects.active(now=timezone.now()).select_related("created_by")
        if kind:
            qs = qs.filter(kind=kind)
        if severity:
            qs = qs.filter(severity=severity)
        if area:
            qs = qs.filter(Q(area__iexact=area) | Q(area=""))
        return qs

    @staticmethod
    def list_all(requesting_user: Any, *, include_inactive: bool = True) -> QuerySet[Alert]:
        require_permission(requesting_user, BROADCAST_PERMISSION)
        qs = Alert.objects.select_related("created_by")
        if not include_inactive:
            qs = qs.filter(is_active=True)
        return qs

    @staticmethod
    def get_alert(alert_id: Any, requesting_user: Any) -> Alert:
        """
        Inactive or expired alerts are visible only to broadcasters.
        """
        require_permission(requesting_user, perm("alerts", AlertsPerms.VIEW_ALERT))
        qs = Alert.objects.select_related("created_by")
        if not requesting_user.has_perm(BROADCAST_PERMISSION):
            qs = qs.active()
        try:
            return qs.get(pk=alert_id)
        except (Alert.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Alert with id {alert_id} not found.")

    @staticmethod
    @audited("broadcast", "alert")
    def create_alert(validated_data: dict[str, Any], requesting_user: Any) -> Alert:
        require_permission(requesting_user, BROADCAST_PERMISSION)
        with transaction.atomic():
            alert = Alert.objects.create(created_by=requesting_user, **validated_data)
            recipients = (
                get_user_model().objects
                .filter(is_active=True)
                .values_list("pk", flat=True)
            )
            enqueue_notification(
                "alert_broadcast",
                recipients,
                {
                    "alert_id": alert.pk,
                    "title": alert.title,
                    "message": alert.message,
                    "severity": alert.get_severity_display().upper(),
                    "kind": alert.kind,
                    "area": alert.area,
                },
                related_object=alert,
            )
        logger.info(
            "Alert %s (%s, %s) broadcast by %s",
            alert.pk, alert.kind, alert.severity, requesting_user,
        )
        return alert

    @staticmethod
    @audited("deactivate", "alert")
    def deactivate_alert(alert: Alert, requesting_user: Any) -> Alert:
        require_permission(requesting_user, BROADCAST_PERMISSION)
        if alert.is_active:
            alert.is_active = False
            alert.save(update_fields=["is_active", "updated_at"])
            logger.info("Alert %s withdrawn by %s", alert.pk, requesting_user)
        return alert
