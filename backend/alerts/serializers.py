"""
Alerts app serializers.
"""

from __future__ import annotations

from django.utils import timezone
from rest_framework import serializers

from .models import Alert, AlertKind


class AlertSerializer(serializers.ModelSerializer):

    created_by = serializers.CharField(source="created_by.username", read_only=True, default=None)
    currently_active = serializers.SerializerMethodField()

    class Meta:
        model = Alert
        fields = [
            "id",
            "title",
            "message",
            "kind",
            "severity",
            "disaster_type",
            "area",
            "is_active",
            "expires_at",
            "currently_active",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_currently_active(self, obj: Alert) -> bool:
        return obj.is_currently_active()


class AlertCreateSerializer(serializers.ModelSerializer):

    class Meta:
        model = Alert
        fields = [
            "title",
            "message",
            "kind",
            "severity",
            "disaster_type",
            "area",
            "expires_at",
        ]

    def validate_expires_at(self, value):
        if value is not None and value <= timezone.now():
            raise serializers.ValidationError("Expiry must be in the future.")
        return value

    def validate(self, attrs):
        kind = attrs.get("kind", AlertKind.GENERAL)
        disaster_type = attrs.get("disaster_type", "")
        if kind == AlertKind.DISASTER and not disaster_type:
            raise serializers.ValidationError({"disaster_type": "Required for disaster alerts."})
        if kind == AlertKind.GENERAL and disaster_type:
            raise serializers.ValidationError({"disaster_type": "Only disaster alerts carry a disaster type."})
        return attrs
