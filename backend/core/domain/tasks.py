"""
core.domain.tasks — Notification work queue.

Producers and the consumer are decoupled through the ``NotificationTask``
table:

    ┌──────────────┐  enqueue_notification()  ┌──────────────────┐
    │ App service  │ ───────(on commit)──────▶│ NotificationTask │
    └──────────────┘                          │   (pending)      │
                                              └────────┬─────────┘
                                                       │ run_once()
                                              ┌────────▼─────────┐
                                              │NotificationWorker│──▶ Notification rows
                                              └──────────────────┘

A task is written only after the producer's transaction commits, so a
rolled-back report or alert never notifies anyone.  The worker claims a
batch of pending tasks and processes each one in its own savepoint:
one bad task never blocks the rest of the batch.

Run the consumer with::

    python manage.py run_notification_worker          # poll forever
    python manage.py run_notification_worker --once   # drain one batch
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Iterable

from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.contenttypes.models import ContentType
from django.db import models, transaction
from django.utils import timezone

from core.domain.notifications import NotificationService
from core.models import NotificationTask, NotificationTaskStatus

logger = logging.getLogger(__name__)


def _notification_setting(key: str) -> int:
    return settings.NOTIFICATIONS[key]


def _as_user_id(recipient: Any) -> int:
    if isinstance(recipient, models.Model):
        return recipient.pk
    return int(recipient)


# ═══════════════════════════════════════════════════════════════════
#  Producer
# ═══════════════════════════════════════════════════════════════════


def enqueue_notification(
    event_type: str,
    recipients: Iterable[Any],
    payload: dict[str, Any] | None = None,
    *,
    related_object: models.Model | None = None,
) -> None:
    """
    Schedule a notification for delivery by the worker.

    Args:
        event_type:     Template key (see ``core.domain.notifications``).
        recipients:     ``User`` instances or user primary keys.
        payload:        JSON-serialisable template context.
        related_object: Optional object the notification points at.

    The ``NotificationTask`` row is inserted on transaction commit.
    Empty recipient lists are ignored.
    """
    recipient_ids = sorted({_as_user_id(r) for r in recipients})
    if not recipient_ids:
        logger.debug("No recipients for %s; nothing enqueued.", event_type)
        return

    content_type_id = None
    object_id = None
    if related_object is not None:
        content_type_id = ContentType.objects.get_for_model(related_object).pk
        object_id = related_object.pk

    payload = dict(payload or {})

    def _persist() -> None:
        task = NotificationTask.objects.create(
            event_type=event_type,
            recipient_ids=recipient_ids,
            payload=payload,
            related_content_type_id=content_type_id,
            related_object_id=object_id,
        )
        logger.info(
            "Enqueued notification task #%s [%s] for %d recipient(s)",
            task.pk,
            event_type,
            len(recipient_ids),
        )

    transaction.on_commit(_persist)


# ═══════════════════════════════════════════════════════════════════
#  Consumer
# ═══════════════════════════════════════════════════════════════════


@dataclass
class BatchResult:
    """Outcome counters for one ``run_once`` call."""

    delivered: int = 0
    retried: int = 0
    failed: int = 0

    @property
    def processed(self) -> int:
        return self.delivered + self.retried + self.failed


class NotificationWorker:
    """
    Consumes pending ``NotificationTask`` rows.

    Each task is attempted at most ``max_attempts`` times.  A task that
    raises is left ``pending`` with its error recorded until its last
    attempt fails, then it is marked ``failed``.
    """

    def __init__(
        self,
        *,
        max_attempts: int | None = None,
        batch_size: int | None = None,
        poll_interval: float | None = None,
    ) -> None:
        self.max_attempts = max_attempts or _notification_setting("MAX_ATTEMPTS")
        self.batch_size = batch_size or _notification_setting("BATCH_SIZE")
        self.poll_interval = (
            poll_interval
            if poll_interval is not None
            else _notification_setting("POLL_INTERVAL_SECONDS")
        )

    def run_once(self, batch_size: int | None = None) -> BatchResult:
        """Claim and process up to ``batch_size`` pending tasks."""
        limit = batch_size or self.batch_size
        result = BatchResult()

        with transaction.atomic():
            tasks = list(
                NotificationTask.objects
                .select_for_update(skip_locked=True)
                .filter(status=NotificationTaskStatus.PENDING)
                .order_by("created_at", "id")[:limit]
            )
            for task in tasks:
                outcome = self._process(task)
                setattr(result, outcome, getattr(result, outcome) + 1)

        if result.processed:
            logger.info(
                "Notification batch: %d delivered, %d retried, %d failed",
                result.delivered,
                result.retried,
                result.failed,
            )
        return result

    def run_forever(self, *, max_batches: int | None = None) -> None:
        """
        Poll the queue until interrupted.

        Sleeps ``poll_interval`` seconds whenever a batch comes back empty.
        ``max_batches`` bounds the loop (used by tests and ``--once``).
        """
        logger.info(
            "Notification worker started (batch_size=%d, max_attempts=%d)",
            self.batch_size,
            self.max_attempts,
        )
        batches = 0
        try:
            while max_batches is None or batches < max_batches:
                result = self.run_once()
                batches += 1
                if not result.processed:
                    time.sleep(self.poll_interval)
        except KeyboardInterrupt:
            logger.info("Notification worker interrupted; shutting down.")

    # ── internals ────────────────────────────────────────────────────

    def _process(self, task: NotificationTask) -> str:
        task.attempts += 1
        try:
            with transaction.atomic():
                self._deliver(task)
        except Exception as exc:
            task.last_error = f"{type(exc).__name__}: {exc}"
            if task.attempts >= self.max_attempts:
                task.status = NotificationTaskStatus.FAILED
                task.processed_at = timezone.now()
                outcome = "failed"
                logger.error(
                    "Notification task #%s [%s] failed permanently after %d attempt(s)",
                    task.pk,
                    task.event_type,
                    task.attempts,
                    exc_info=True,
                )
            else:
                outcome = "retried"
                logger.warning(
                    "Notification task #%s [%s] attempt %d/%d failed: %s",
                    task.pk,
                    task.event_type,
                    task.attempts,
                    self.max_attempts,
                    exc,
                )
        else:
            task.status = NotificationTaskStatus.DONE
            task.last_error = ""
            task.processed_at = timezone.now()
            outcome = "delivered"

        task.save(update_fields=["attempts", "status", "last_error", "processed_at", "updated_at"])
        return outcome

    def _deliver(self, task: NotificationTask) -> None:
        User = get_user_model()
        recipients = list(
            User.objects.filter(pk__in=task.recipient_ids, is_active=True).order_by("pk")
        )
        NotificationService.create(
            recipients=recipients,
            event_type=task.event_type,
            payload=task.payload,
            content_type=task.related_content_type,
            object_id=task.related_object_id,
        )
