"""
Officers app serializers.
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import Officer

User = get_user_model()


class OfficerSerializer(serializers.ModelSerializer):
    """Read representation used by every officer endpoint."""

    username = serializers.CharField(source="user.username", read_only=True, default=None)

    class Meta:
        model = Officer
        fields = [
            "id",
            "name",
            "badge_number",
            "rank",
            "department",
            "district",
            "status",
            "email",
            "contact_number",
            "is_active",
            "user",
            "username",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OfficerWriteSerializer(serializers.ModelSerializer):
    """
    Create / partial-update payload.  ``user`` links an existing login
    account; a user can back at most one officer.
    """

    user = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.all(),
        required=False,
        allow_null=True,
    )

    class Meta:
        model = Officer
        fields = [
            "name",
            "badge_number",
            "rank",
            "department",
            "district",
            "status",
            "email",
            "contact_number",
            "user",
        ]

    def validate_user(self, value):
        if value is None:
            return value
        clash = Officer.objects.filter(user=value)
        if self.instance is not None:
            clash = clash.exclude(pk=self.instance.pk)
        if clash.exists():
            raise serializers.ValidationError("This user is already linked to another officer.")
        return value


class OfficerPerformanceSerializer(serializers.Serializer):
    officer_id = serializers.IntegerField()
    badge_number = serializers.CharField()
    total_incidents = serializers.IntegerField()
    by_status = serializers.DictField(child=serializers.IntegerField())
    by_priority = serializers.DictField(child=serializers.IntegerField())
    resolved_incidents = serializers.IntegerField()
    resolution_rate = serializers.FloatField(help_text="Percentage of assigned incidents resolved or closed.")
    avg_resolution_hours = serializers.FloatField()
