"""
Management command: run_notification_worker
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Consumes the ``NotificationTask`` queue and turns each task into
per-recipient ``Notification`` rows.

Usage::

    python manage.py run_notification_worker             # poll until Ctrl-C
    python manage.py run_notification_worker --once      # one batch, then exit
    python manage.py run_notification_worker --batch-size 200
"""

from django.core.management.base import BaseCommand

from core.domain.tasks import NotificationWorker


class Command(BaseCommand):
    help = (
        "Process pending notification tasks.  Runs until interrupted "
        "unless --once is given."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--once",
            action="store_true",
            help="Process a single batch and exit.",
        )
        parser.add_argument(
            "--batch-size",
            type=int,
            default=None,
            help="Maximum tasks claimed per batch (default: NOTIFICATIONS['BATCH_SIZE']).",
        )
        parser.add_argument(
            "--poll-interval",
            type=float,
            default=None,
            help="Seconds to sleep when the queue is empty.",
        )

    def handle(self, *args, **options):
        worker = NotificationWorker(
            batch_size=options["batch_size"],
            poll_interval=options["poll_interval"],
        )

        if options["once"]:
            result = worker.run_once()
            self.stdout.write(self.style.SUCCESS(
                f"  ✔  Processed {result.processed} task(s): "
                f"{result.delivered} delivered, {result.retried} retried, "
                f"{result.failed} failed."
            ))
            return

        self.stdout.write(self.style.MIGRATE_HEADING(
            "Notification worker running.  Press Ctrl-C to stop."
        ))
        worker.run_forever()
