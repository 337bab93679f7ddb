"""
Shifts app models.

A ``Shift`` is a scheduled work window with one or more assigned
officers.  Scheduling constraints (overlap, rest period, daily load) are
not expressed as database constraints; they are enforced by
``shifts.validators.ShiftValidator`` under per-officer row locks taken in
``shifts.services.ShiftService``.
"""

from django.conf import settings
from django.db import models

from core.models import TimeStampedModel
from core.permissions_constants import ShiftsPerms


class ShiftType(models.TextChoices):
    PATROL = "patrol", "Patrol"
    COURT = "court", "Court"
    TRAINING = "training", "Training"
    MEETING = "meeting", "Meeting"
    OTHER = "other", "Other"


class ShiftStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class Shift(TimeStampedModel):

    title = models.CharField(max_length=200, verbose_name="Title")
    shift_type = models.CharField(
        max_length=20,
        choices=ShiftType.choices,
        default=ShiftType.PATROL,
        verbose_name="Shift Type",
    )
    description = models.TextField(blank=True, default="", verbose_name="Description")

    start_time = models.DateTimeField(db_index=True, verbose_name="Start Time")
    end_time = models.DateTimeField(verbose_name="End Time")

    location_address = models.CharField(max_length=255, blank=True, default="", verbose_name="Address")
    location_district = models.CharField(max_length=100, blank=True, default="", verbose_name="District")
    latitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True,
        verbose_name="Latitude",
    )
    longitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True,
        verbose_name="Longitude",
    )

    status = models.CharField(
        max_length=20,
        choices=ShiftStatus.choices,
        default=ShiftStatus.PENDING,
        db_index=True,
        verbose_name="Status",
    )
    assigned_officers = models.ManyToManyField(
        "officers.Officer",
        related_name="shifts",
        blank=True,
        verbose_name="Assigned Officers",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_shifts",
        verbose_name="Created By",
    )
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_shifts",
        verbose_name="Reviewed By",
    )

    class Meta:
        verbose_name = "Shift"
        verbose_name_plural = "Shifts"
        ordering = ["start_time", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(start_time__lt=models.F("end_time")),
                name="shift_start_before_end",
            ),
        ]
        permissions = [
            (ShiftsPerms.CAN_MANAGE_SHIFTS, "Can create, reschedule and cancel shifts"),
            (ShiftsPerms.CAN_APPROVE_SHIFT, "Can approve or reject shifts"),
        ]

    def __str__(self):
        return f"{self.title} [{self.start_time:%Y-%m-%d %H:%M} → {self.end_time:%H:%M}]"

    @property
    def officer_ids(self) -> frozenset[int]:
        """Assigned officer ids (uses the prefetch cache when present)."""
        return frozenset(o.pk for o in self.assigned_officers.all())
