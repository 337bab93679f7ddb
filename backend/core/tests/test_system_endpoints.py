"""
Integration tests for the ``/api/core/`` endpoints: health probe,
system metrics and the notification inbox.
"""

from __future__ import annotations

from unittest import mock

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from accounts.models import Role
from alerts.models import Alert
from core.models import Notification, NotificationTask
from reports.models import Report, ReportStatus

User = get_user_model()


class TestHealth(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.url = reverse("core:health")

    def test_healthy(self):
        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["status"], "ok")
        self.assertEqual(resp.data["checks"]["database"]["status"], "ok")
        self.assertEqual(resp.data["checks"]["notification_queue"]["pending"], 0)

    @override_settings(NOTIFICATIONS={
        "MAX_ATTEMPTS": 3, "BATCH_SIZE": 50, "POLL_INTERVAL_SECONDS": 5, "BACKLOG_WARNING_THRESHOLD": 1,
    })
    def test_backlog_degrades(self):
        for _ in range(2):
            NotificationTask.objects.create(event_type="report_created", recipient_ids=[1])
        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(resp.data["checks"]["notification_queue"]["status"], "degraded")

    def test_database_outage_hides_error_detail(self):
        outage = DatabaseError("password authentication failed for user civic")
        with mock.patch("core.services.connection.cursor", side_effect=outage):
            resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(resp.data["checks"]["database"], {"status": "error"})
        self.assertEqual(resp.data["checks"]["notification_queue"]["status"], "unknown")
        self.assertNotIn("password", str(resp.data))


class TestMetrics(TestCase):

    @classmethod
    def setUpTestData(cls):
        role = Role.objects.create(name="System Admin", hierarchy_level=100)
        role.permissions.add(
            Permission.objects.get(content_type__app_label="core", codename="can_view_system_metrics")
        )
        cls.admin = User.objects.create_user(username="metrics_admin", password="x", email="m@civic.test", role=role)
        cls.citizen = User.objects.create_user(username="metrics_cit", password="x", email="c@civic.test")

        Report.objects.create(title="a", description="d", created_by=cls.citizen)
        Report.objects.create(title="b", description="d", created_by=cls.citizen)
        Report.objects.create(title="c", description="d", created_by=cls.citizen, status=ReportStatus.RESOLVED)
        Alert.objects.create(title="Live", message="m", severity="high")
        Alert.objects.create(title="Off", message="m", severity="high", is_active=False)

    def setUp(self):
        self.client = APIClient()

    def test_counts(self):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {AccessToken.for_user(self.admin)}")
        resp = self.client.get(reverse("core:metrics"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["reports"]["by_status"], {"pending": 2, "resolved": 1})
        self.assertEqual(resp.data["alerts"]["active"], 1)
        self.assertEqual(resp.data["alerts"]["by_severity"], {"high": 1})
        self.assertEqual(resp.data["shifts"]["by_status"], {})

    def test_requires_permission(self):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {AccessToken.for_user(self.citizen)}")
        resp = self.client.get(reverse("core:metrics"))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)


class TestNotificationInbox(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username="inbox", password="x", email="inbox@civic.test")
        cls.other = User.objects.create_user(username="other", password="x", email="other@civic.test")
        cls.first = Notification.objects.create(recipient=cls.user, event_type="e", title="First", message="m")
        cls.second = Notification.objects.create(recipient=cls.user, event_type="e", title="Second", message="m")
        cls.foreign = Notification.objects.create(recipient=cls.other, event_type="e", title="Foreign", message="m")

    def setUp(self):
        self.client = APIClient()
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {AccessToken.for_user(self.user)}")

    def test_lists_own_notifications_newest_first(self):
        resp = self.client.get(reverse("core:notification-list"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([n["title"] for n in resp.data], ["Second", "First"])

    def test_mark_one_read(self):
        resp = self.client.post(reverse("core:notification-mark-as-read", args=[self.first.pk]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data["is_read"])

        unread = self.client.get(reverse("core:notification-list"), {"unread": "true"})
        self.assertEqual([n["title"] for n in unread.data], ["Second"])

    def test_cannot_touch_foreign_notification(self):
        resp = self.client.post(reverse("core:notification-mark-as-read", args=[self.foreign.pk]))
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_mark_all_read(self):
        resp = self.client.post(reverse("core:notification-mark-all-as-read"))
        self.assertEqual(resp.data, {"updated": 2})
        self.assertFalse(Notification.objects.filter(recipient=self.user, is_read=False).exists())
        self.assertFalse(Notification.objects.get(pk=self.foreign.pk).is_read)
