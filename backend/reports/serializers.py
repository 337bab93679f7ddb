"""
Reports app serializers.
"""

from __future__ import annotations

from rest_framework import serializers

from incidents.models import IncidentPriority

from .models import Report, ReportStatus


class ReportSerializer(serializers.ModelSerializer):

    created_by = serializers.CharField(source="created_by.username", read_only=True, default=None)
    reviewed_by = serializers.CharField(source="reviewed_by.username", read_only=True, default=None)
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    incident_id = serializers.SerializerMethodField()

    class Meta:
        model = Report
        fields = [
            "id",
            "title",
            "description",
            "report_type",
            "priority",
            "status",
            "status_display",
            "occurred_at",
            "location_address",
            "location_district",
            "latitude",
            "longitude",
            "witnesses",
            "evidence_notes",
            "resolution_notes",
            "resolved_at",
            "created_by",
            "reviewed_by",
            "incident_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_incident_id(self, obj: Report) -> int | None:
        incident = getattr(obj, "incident", None)
        return incident.pk if incident is not None else None


class ReportWriteSerializer(serializers.ModelSerializer):
    """Create / partial-update payload.  Status is never written here."""

    class Meta:
        model = Report
        fields = [
            "title",
            "description",
            "report_type",
            "priority",
            "occurred_at",
            "location_address",
            "location_district",
            "latitude",
            "longitude",
            "witnesses",
            "evidence_notes",
        ]


class ReportStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ReportStatus.choices)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ConvertToIncidentSerializer(serializers.Serializer):
    priority = serializers.ChoiceField(choices=IncidentPriority.choices, required=False, allow_null=True)
    officer_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        required=False,
        default=list,
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
