"""
Alerts app models.

Alerts are public broadcasts (general notices or disaster warnings).  An
alert is *active* while ``is_active`` is set and ``expires_at`` is
either empty or still in the future.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from core.models import TimeStampedModel
from core.permissions_constants import AlertsPerms


class AlertKind(models.TextChoices):
    GENERAL = "general", "General"
    DISASTER = "disaster", "Disaster"


class AlertSeverity(models.TextChoices):
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"
    CRITICAL = "critical", "Critical"


class DisasterType(models.TextChoices):
    EARTHQUAKE = "earthquake", "Earthquake"
    FLOOD = "flood", "Flood"
    CYCLONE = "cyclone", "Cyclone"
    FIRE = "fire", "Fire"
    LANDSLIDE = "landslide", "Landslide"
    TSUNAMI = "tsunami", "Tsunami"
    DROUGHT = "drought", "Drought"
    HEAT_WAVE = "heat_wave", "Heat Wave"
    COLD_WAVE = "cold_wave", "Cold Wave"
    OTHER = "other", "Other"


class AlertQuerySet(models.QuerySet):

    def active(self, now=None):
        now = now or timezone.now()
        return self.filter(is_active=True).filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))


class Alert(TimeStampedModel):

    title = models.CharField(max_length=255, verbose_name="Title")
    message = models.TextField(verbose_name="Message")
    kind = models.CharField(
        max_length=10,
        choices=AlertKind.choices,
        default=AlertKind.GENERAL,
        verbose_name="Kind",
    )
    severity = models.CharField(
        max_length=10,
        choices=AlertSeverity.choices,
        default=AlertSeverity.MEDIUM,
        db_index=True,
        verbose_name="Severity",
    )
    disaster_type = models.CharField(
        max_length=20,
        choices=DisasterType.choices,
        blank=True,
        default="",
        verbose_name="Disaster Type",
    )
    area = models.CharField(
        max_length=150,
        blank=True,
        default="",
        help_text="Affected district or region; empty means city-wide.",
    )
    is_active = models.BooleanField(default=True, verbose_name="Active")
    expires_at = models.DateTimeField(null=True, blank=True, verbose_name="Expires At")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="alerts",
        verbose_name="Created By",
    )

    objects = AlertQuerySet.as_manager()

    class Meta:
        verbose_name = "Alert"
        verbose_name_plural = "Alerts"
        ordering = ["-created_at", "-id"]
        permissions = [
            (AlertsPerms.CAN_BROADCAST_ALERT, "Can publish and withdraw public alerts"),
        ]

    def __str__(self):
        return f"[{self.get_severity_display()}] {self.title}"

    def is_currently_active(self, now=None) -> bool:
        now = now or timezone.now()
        return self.is_active and (self.expires_at is None or self.expires_at > now)
