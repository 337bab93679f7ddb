"""
Reports app models.

A ``Report`` is what a citizen files.  Reviewers move it through its
status lifecycle and may convert it into an ``incidents.Incident``; the
link back lives on ``Incident.source_report`` (``report.incident``).
"""

from django.conf import settings
from django.db import models

from core.models import TimeStampedModel
from core.permissions_constants import ReportsPerms


class ReportType(models.TextChoices):
    THEFT = "theft", "Theft"
    ASSAULT = "assault", "Assault"
    VANDALISM = "vandalism", "Vandalism"
    TRAFFIC = "traffic", "Traffic"
    NOISE = "noise", "Noise Complaint"
    SUSPICIOUS_ACTIVITY = "suspicious_activity", "Suspicious Activity"
    FIRE = "fire", "Fire"
    MEDICAL = "medical", "Medical Emergency"
    OTHER = "other", "Other"


class ReportPriority(models.TextChoices):
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"
    CRITICAL = "critical", "Critical"


class ReportStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    IN_REVIEW = "in_review", "In Review"
    IN_PROGRESS = "in_progress", "In Progress"
    RESOLVED = "resolved", "Resolved"
    REJECTED = "rejected", "Rejected"
    CONVERTED = "converted", "Converted to Incident"


class Report(TimeStampedModel):

    title = models.CharField(max_length=255, verbose_name="Title")
    description = models.TextField(verbose_name="Description")
    report_type = models.CharField(
        max_length=30,
        choices=ReportType.choices,
        default=ReportType.OTHER,
        verbose_name="Report Type",
    )
    priority = models.CharField(
        max_length=10,
        choices=ReportPriority.choices,
        default=ReportPriority.MEDIUM,
        verbose_name="Priority",
    )
    status = models.CharField(
        max_length=20,
        choices=ReportStatus.choices,
        default=ReportStatus.PENDING,
        db_index=True,
        verbose_name="Status",
    )

    occurred_at = models.DateTimeField(null=True, blank=True, verbose_name="Occurred At")
    location_address = models.CharField(max_length=255, blank=True, default="", verbose_name="Address")
    location_district = models.CharField(max_length=100, blank=True, default="", verbose_name="District")
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    witnesses = models.TextField(blank=True, default="", verbose_name="Witnesses")
    evidence_notes = models.TextField(blank=True, default="", verbose_name="Evidence Notes")

    resolution_notes = models.TextField(blank=True, default="", verbose_name="Resolution Notes")
    resolved_at = models.DateTimeField(null=True, blank=True, verbose_name="Resolved At")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reports",
        verbose_name="Created By",
    )
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_reports",
        verbose_name="Reviewed By",
    )

    class Meta:
        verbose_name = "Report"
        verbose_name_plural = "Reports"
        ordering = ["-created_at", "-id"]
        permissions = [
            (ReportsPerms.CAN_REVIEW_REPORTS, "Can review citizen reports"),
            (ReportsPerms.CAN_CONVERT_REPORT, "Can convert a report into an incident"),
        ]

    def __str__(self):
        return f"Report #{self.pk} — {self.title} [{self.get_status_display()}]"
