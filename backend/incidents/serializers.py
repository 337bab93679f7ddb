"""
Incidents app serializers.
"""

from __future__ import annotations

from rest_framework import serializers

from .models import Incident, IncidentStatus, IncidentUpdate


class IncidentOfficerSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    name = serializers.CharField(read_only=True)
    badge_number = serializers.CharField(read_only=True)
    rank = serializers.CharField(read_only=True)


class IncidentSerializer(serializers.ModelSerializer):

    officers = IncidentOfficerSerializer(source="assigned_officers", many=True, read_only=True)
    reported_by = serializers.CharField(source="reported_by.username", read_only=True, default=None)
    converted_by = serializers.CharField(source="converted_by.username", read_only=True, default=None)
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    priority_display = serializers.CharField(source="get_priority_display", read_only=True)

    class Meta:
        model = Incident
        fields = [
            "id",
            "title",
            "description",
            "incident_type",
            "priority",
            "priority_display",
            "status",
            "status_display",
            "location_address",
            "location_district",
            "latitude",
            "longitude",
            "officers",
            "source_report",
            "reported_by",
            "converted_by",
            "is_anonymous",
            "reporter_contact",
            "witnesses",
            "evidence_notes",
            "conversion_notes",
            "resolved_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class IncidentCreateSerializer(serializers.ModelSerializer):
    officer_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        required=False,
        default=list,
    )

    class Meta:
        model = Incident
        fields = [
            "title",
            "description",
            "incident_type",
            "priority",
            "location_address",
            "location_district",
            "latitude",
            "longitude",
            "officer_ids",
        ]


class IncidentUpdateSerializer(serializers.ModelSerializer):
    """PATCH payload; status and officers have their own endpoints."""

    class Meta:
        model = Incident
        fields = [
            "title",
            "description",
            "incident_type",
            "priority",
            "location_address",
            "location_district",
            "latitude",
            "longitude",
        ]


class IncidentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=IncidentStatus.choices)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class AssignOfficersSerializer(serializers.Serializer):
    officer_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        min_length=1,
    )


class IncidentTimelineSerializer(serializers.ModelSerializer):
    author = serializers.CharField(source="author.username", read_only=True, default=None)

    class Meta:
        model = IncidentUpdate
        fields = ["id", "status", "content", "author", "created_at"]
        read_only_fields = fields


class IncidentNoteSerializer(serializers.Serializer):
    content = serializers.CharField(max_length=5000)


class AnonymousIncidentSerializer(serializers.ModelSerializer):
    """Public tip form; the caller's identity is never recorded."""

    title = serializers.CharField(max_length=100)
    description = serializers.CharField(max_length=2000)

    class Meta:
        model = Incident
        fields = [
            "title",
            "description",
            "incident_type",
            "priority",
            "location_address",
            "location_district",
            "latitude",
            "longitude",
            "reporter_contact",
        ]
        extra_kwargs = {"incident_type": {"required": True}}


class AnonymousIncidentReceiptSerializer(serializers.ModelSerializer):

    class Meta:
        model = Incident
        fields = ["id", "title", "incident_type", "priority", "status", "created_at"]
        read_only_fields = fields


class MonthlyIncidentCountSerializer(serializers.Serializer):
    month = serializers.CharField(help_text="YYYY-MM")
    reported = serializers.IntegerField()
    under_investigation = serializers.IntegerField()
    in_progress = serializers.IntegerField()
    resolved = serializers.IntegerField()
    closed = serializers.IntegerField()
    total = serializers.IntegerField()


class IncidentTypeCountSerializer(serializers.Serializer):
    type = serializers.CharField()
    label = serializers.CharField()
    count = serializers.IntegerField()
