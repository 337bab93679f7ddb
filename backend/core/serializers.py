"""
Core app serializers.

**Response-only** serializers for the endpoints served by the core app.
They work exclusively with plain Python dicts produced by the service
layer (health, metrics) or with ``Notification`` instances.
"""

from __future__ import annotations

from rest_framework import serializers


# ════════════════════════════════════════════════════════════════════
#  Health
# ════════════════════════════════════════════════════════════════════

class HealthCheckSerializer(serializers.Serializer):
    """
    Example::

        {
            "status": "ok",
            "timestamp": "2026-01-01T08:00:00Z",
            "checks": {
                "database": {"status": "ok"},
                "notification_queue": {"status": "ok", "pending": 0, "threshold": 500}
            }
        }
    """

    status = serializers.ChoiceField(choices=["ok", "degraded"])
    timestamp = serializers.DateTimeField()
    checks = serializers.DictField(child=serializers.DictField())


# ════════════════════════════════════════════════════════════════════
#  Metrics
# ════════════════════════════════════════════════════════════════════

class _CountMap(serializers.DictField):
    child = serializers.IntegerField()


class StatusBreakdownSerializer(serializers.Serializer):
    by_status = _CountMap()


class IncidentMetricsSerializer(StatusBreakdownSerializer):
    by_priority = _CountMap()


class AlertMetricsSerializer(serializers.Serializer):
    active = serializers.IntegerField()
    by_severity = _CountMap()


class SystemMetricsSerializer(serializers.Serializer):
    generated_at = serializers.DateTimeField()
    reports = StatusBreakdownSerializer()
    incidents = IncidentMetricsSerializer()
    shifts = StatusBreakdownSerializer()
    alerts = AlertMetricsSerializer()
    officers = StatusBreakdownSerializer()
    notification_tasks = StatusBreakdownSerializer()


# ════════════════════════════════════════════════════════════════════
#  Notifications
# ════════════════════════════════════════════════════════════════════

class NotificationSerializer(serializers.Serializer):
    """
    Read-only serializer for ``Notification`` instances.

    Used by the Notification ViewSet to list and retrieve notifications
    for the authenticated user.
    """

    id = serializers.IntegerField(read_only=True, help_text="Notification PK.")
    event_type = serializers.CharField(
        read_only=True,
        help_text="Machine-readable event key (e.g. 'report_created').",
    )
    title = serializers.CharField(
        read_only=True,
        help_text="Short notification title.",
    )
    message = serializers.CharField(
        read_only=True,
        help_text="Full notification message body.",
    )
    is_read = serializers.BooleanField(
        read_only=True,
        help_text="Whether the recipient has marked this notification as read.",
    )
    created_at = serializers.DateTimeField(
        read_only=True,
        help_text="When the notification was created.",
    )
    content_type = serializers.StringRelatedField(
        read_only=True,
        help_text="Related content type (if any).",
    )
    object_id = serializers.IntegerField(
        read_only=True,
        allow_null=True,
        help_text="PK of the related object (if any).",
    )
