"""
Officers app models.

An ``Officer`` is the operational identity that shifts and incidents are
assigned to.  It optionally links to a login ``User`` so an officer can
see their own schedule.
"""

from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


class OfficerStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    ON_PATROL = "on_patrol", "On Patrol"
    IN_TRAINING = "in_training", "In Training"
    ON_LEAVE = "on_leave", "On Leave"
    SUSPENDED = "suspended", "Suspended"


class Officer(TimeStampedModel):

    name = models.CharField(max_length=150, verbose_name="Full Name")
    badge_number = models.CharField(
        max_length=30,
        unique=True,
        verbose_name="Badge Number",
    )
    rank = models.CharField(max_length=50, blank=True, default="", verbose_name="Rank")
    department = models.CharField(max_length=100, blank=True, default="", verbose_name="Department")
    district = models.CharField(
        max_length=100,
        blank=True,
        default="",
        db_index=True,
        verbose_name="District",
    )
    status = models.CharField(
        max_length=20,
        choices=OfficerStatus.choices,
        default=OfficerStatus.ACTIVE,
        db_index=True,
        verbose_name="Status",
    )
    email = models.EmailField(unique=True, verbose_name="Email Address")
    contact_number = models.CharField(max_length=20, blank=True, default="", verbose_name="Contact Number")
    is_active = models.BooleanField(
        default=True,
        verbose_name="Active",
        help_text="Deactivated officers cannot be scheduled or assigned.",
    )
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="officer_profile",
        verbose_name="User Account",
    )

    class Meta:
        verbose_name = "Officer"
        verbose_name_plural = "Officers"
        ordering = ["name", "id"]

    def __str__(self):
        return f"{self.name} ({self.badge_number})"
