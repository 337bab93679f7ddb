"""
Incidents app models.

``Incident`` is the operational record officers work on.  It is either
opened directly or produced from a citizen ``Report`` by conversion, in
which case the report's witness and evidence notes are copied over.
``IncidentUpdate`` rows form the incident's timeline.  Incidents may also
arrive as anonymous tips from unauthenticated callers.
"""

from django.conf import settings
from django.db import models

from core.models import TimeStampedModel
from core.permissions_constants import IncidentsPerms


class IncidentType(models.TextChoices):
    THEFT = "theft", "Theft"
    ASSAULT = "assault", "Assault"
    VANDALISM = "vandalism", "Vandalism"
    TRAFFIC = "traffic", "Traffic"
    NOISE = "noise", "Noise Complaint"
    SUSPICIOUS_ACTIVITY = "suspicious_activity", "Suspicious Activity"
    FIRE = "fire", "Fire"
    MEDICAL = "medical", "Medical Emergency"
    PUBLIC_DISTURBANCE = "public_disturbance", "Public Disturbance"
    OTHER = "other", "Other"


class IncidentPriority(models.TextChoices):
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"
    CRITICAL = "critical", "Critical"


class IncidentStatus(models.TextChoices):
    REPORTED = "reported", "Reported"
    UNDER_INVESTIGATION = "under_investigation", "Under Investigation"
    IN_PROGRESS = "in_progress", "In Progress"
    RESOLVED = "resolved", "Resolved"
    CLOSED = "closed", "Closed"


class Incident(TimeStampedModel):

    title = models.CharField(max_length=255, verbose_name="Title")
    description = models.TextField(verbose_name="Description")
    incident_type = models.CharField(
        max_length=30,
        choices=IncidentType.choices,
        default=IncidentType.OTHER,
        verbose_name="Incident Type",
    )
    priority = models.CharField(
        max_length=10,
        choices=IncidentPriority.choices,
        default=IncidentPriority.MEDIUM,
        db_index=True,
        verbose_name="Priority",
    )
    status = models.CharField(
        max_length=25,
        choices=IncidentStatus.choices,
        default=IncidentStatus.REPORTED,
        db_index=True,
        verbose_name="Status",
    )

    location_address = models.CharField(max_length=255, blank=True, default="", verbose_name="Address")
    location_district = models.CharField(max_length=100, blank=True, default="", verbose_name="District")
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    assigned_officers = models.ManyToManyField(
        "officers.Officer",
        related_name="incidents",
        blank=True,
        verbose_name="Assigned Officers",
    )
    source_report = models.OneToOneField(
        "reports.Report",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="incident",
        verbose_name="Source Report",
    )
    reported_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reported_incidents",
        verbose_name="Reported By",
    )
    converted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="converted_incidents",
        verbose_name="Converted By",
    )

    # Anonymous tips have no reported_by; the contact is whatever the tipster chose to leave.
    is_anonymous = models.BooleanField(default=False, verbose_name="Anonymous")
    reporter_contact = models.CharField(max_length=255, blank=True, default="", verbose_name="Reporter Contact")

    # Carried over from the source report on conversion.
    witnesses = models.TextField(blank=True, default="")
    evidence_notes = models.TextField(blank=True, default="")
    conversion_notes = models.TextField(blank=True, default="")

    resolved_at = models.DateTimeField(null=True, blank=True, verbose_name="Resolved At")

    class Meta:
        verbose_name = "Incident"
        verbose_name_plural = "Incidents"
        ordering = ["-created_at", "-id"]
        permissions = [
            (IncidentsPerms.CAN_SCOPE_ALL_INCIDENTS, "Can see every incident"),
            (IncidentsPerms.CAN_CHANGE_INCIDENT_STATUS, "Can move an incident through its lifecycle"),
            (IncidentsPerms.CAN_ASSIGN_INCIDENT_OFFICERS, "Can assign officers to an incident"),
            (IncidentsPerms.CAN_VIEW_INCIDENT_ANALYTICS, "Can view incident statistics"),
        ]

    def __str__(self):
        return f"Incident #{self.pk} — {self.title} [{self.get_status_display()}]"


class IncidentUpdate(models.Model):
    """One timeline entry: a status change or a free-text progress note."""

    incident = models.ForeignKey(
        Incident,
        on_delete=models.CASCADE,
        related_name="updates",
    )
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="incident_updates",
    )
    status = models.CharField(
        max_length=25,
        choices=IncidentStatus.choices,
        blank=True,
        default="",
        help_text="Status the incident moved to, empty for plain notes.",
    )
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"Update on incident #{self.incident_id} at {self.created_at:%Y-%m-%d %H:%M}"
