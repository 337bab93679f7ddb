"""
Shifts app serializers.

Write serializers only check field shapes.  Time ordering, duration,
officer existence and conflicts are decided by ``ShiftValidator`` so
that every path reports the same rejection codes.
"""

from __future__ import annotations

from rest_framework import serializers

from .models import Shift, ShiftStatus


class AssignedOfficerSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    name = serializers.CharField(read_only=True)
    badge_number = serializers.CharField(read_only=True)


class ShiftSerializer(serializers.ModelSerializer):

    officer_ids = serializers.SerializerMethodField()
    officers = AssignedOfficerSerializer(source="assigned_officers", many=True, read_only=True)
    created_by = serializers.CharField(source="created_by.username", read_only=True, default=None)
    reviewed_by = serializers.CharField(source="reviewed_by.username", read_only=True, default=None)
    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = Shift
        fields = [
            "id",
            "title",
            "shift_type",
            "description",
            "start_time",
            "end_time",
            "location_address",
            "location_district",
            "latitude",
            "longitude",
            "status",
            "status_display",
            "officer_ids",
            "officers",
            "created_by",
            "reviewed_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_officer_ids(self, obj: Shift) -> list[int]:
        return sorted(obj.officer_ids)


class _ShiftScheduleFields(serializers.Serializer):
    start_time = serializers.DateTimeField(required=False, allow_null=True)
    end_time = serializers.DateTimeField(required=False, allow_null=True)
    officer_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        required=False,
    )

    def validate_officer_ids(self, value: list[int]) -> list[int]:
        return sorted(set(value))


class ShiftCreateSerializer(_ShiftScheduleFields, serializers.ModelSerializer):
    officer_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        min_length=1,
    )

    class Meta:
        model = Shift
        fields = [
            "title",
            "shift_type",
            "description",
            "start_time",
            "end_time",
            "location_address",
            "location_district",
            "latitude",
            "longitude",
            "officer_ids",
        ]


class ShiftUpdateSerializer(_ShiftScheduleFields, serializers.ModelSerializer):
    officer_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        min_length=1,
        required=False,
    )

    class Meta:
        model = Shift
        fields = ShiftCreateSerializer.Meta.fields
        extra_kwargs = {"title": {"required": False}}


class ShiftStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ShiftStatus.choices)


class ShiftValidateRequestSerializer(_ShiftScheduleFields):
    shift_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class ShiftValidationResultSerializer(serializers.Serializer):
    ok = serializers.BooleanField()
    code = serializers.CharField(allow_null=True)
    reason = serializers.CharField(allow_blank=True)
    officer_id = serializers.IntegerField(allow_null=True)
    conflicting_shift_id = serializers.IntegerField(allow_null=True)
