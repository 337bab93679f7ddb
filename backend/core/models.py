"""
Core app models.

Provides abstract base models plus the cross-cutting records shared by
every app: user-facing notifications, the notification work queue, and
the audit trail.
"""

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models

from core.permissions_constants import CorePerms


class TimeStampedModel(models.Model):
    """
    Abstract base model that provides self-updating ``created_at`` and
    ``updated_at`` timestamp fields for every concrete child model.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At",
    )

    class Meta:
        abstract = True


class Notification(TimeStampedModel):
    """
    System notification delivered to a user: a new citizen report awaiting
    review, a shift assignment, an incident status change, a broadcast
    alert, etc.

    Uses a GenericForeignKey so any model instance can be the *source* of a
    notification (e.g. a new Report notifies every reviewer).
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        verbose_name="Recipient",
    )
    event_type = models.CharField(
        max_length=50,
        blank=True,
        default="",
        verbose_name="Event Type",
    )
    title = models.CharField(max_length=255, verbose_name="Title")
    message = models.TextField(verbose_name="Message")
    is_read = models.BooleanField(default=False, verbose_name="Read")

    # Generic relation to the object that triggered the notification
    content_type = models.ForeignKey(
        ContentType,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        verbose_name="Related Content Type",
    )
    object_id = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name="Related Object ID",
    )
    content_object = GenericForeignKey("content_type", "object_id")

    class Meta:
        verbose_name = "Notification"
        verbose_name_plural = "Notifications"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "is_read"]),
        ]

    def __str__(self):
        return f"[{self.recipient}] {self.title}"


class NotificationTaskStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    DONE = "done", "Done"
    FAILED = "failed", "Failed"


class NotificationTask(TimeStampedModel):
    """
    One unit of work on the notification queue.

    Producers (report creation, alert broadcast, incident updates, shift
    assignment) never create ``Notification`` rows directly; they enqueue
    a task through ``core.domain.tasks.enqueue_notification`` and the
    ``NotificationWorker`` fans it out to recipients.
    """

    event_type = models.CharField(max_length=50, verbose_name="Event Type")
    recipient_ids = models.JSONField(
        default=list,
        verbose_name="Recipient IDs",
        help_text="Primary keys of the users to notify.",
    )
    payload = models.JSONField(default=dict, blank=True, verbose_name="Payload")
    related_content_type = models.ForeignKey(
        ContentType,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        verbose_name="Related Content Type",
    )
    related_object_id = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name="Related Object ID",
    )
    status = models.CharField(
        max_length=10,
        choices=NotificationTaskStatus.choices,
        default=NotificationTaskStatus.PENDING,
        db_index=True,
        verbose_name="Status",
    )
    attempts = models.PositiveSmallIntegerField(default=0, verbose_name="Attempts")
    last_error = models.TextField(blank=True, default="", verbose_name="Last Error")
    processed_at = models.DateTimeField(null=True, blank=True, verbose_name="Processed At")

    class Meta:
        verbose_name = "Notification Task"
        verbose_name_plural = "Notification Tasks"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["status", "created_at"]),
        ]

    def __str__(self):
        return f"NotificationTask #{self.pk} [{self.event_type}] {self.status}"


class AuditLog(models.Model):
    """
    Immutable record of a state-changing service call, written by the
    ``core.domain.audit.audited`` decorator.
    """

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_entries",
        verbose_name="Actor",
    )
    action = models.CharField(max_length=50, verbose_name="Action")
    entity = models.CharField(max_length=50, verbose_name="Entity")
    entity_id = models.CharField(max_length=64, blank=True, default="", verbose_name="Entity ID")
    description = models.TextField(blank=True, default="", verbose_name="Description")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Created At")

    class Meta:
        verbose_name = "Audit Log Entry"
        verbose_name_plural = "Audit Log"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["entity", "entity_id"]),
        ]
        permissions = [
            (CorePerms.CAN_VIEW_SYSTEM_METRICS, "Can view system metrics"),
        ]

    def __str__(self):
        return f"{self.action} {self.entity}#{self.entity_id} by {self.actor}"
