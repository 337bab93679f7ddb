"""
Integration tests for shift scheduling through ``/api/shifts/``.

Officer A is booked 09:00–17:00 two days from now; the tests try to
schedule around that shift and check which proposals are accepted.
"""

from __future__ import annotations

import datetime
from unittest import mock

from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from accounts.models import Role
from core.domain.exceptions import LookupFailure
from core.models import AuditLog, NotificationTask
from officers.models import Officer
from shifts import services as shift_services
from shifts.models import Shift, ShiftStatus
from shifts.validators import ShiftValidator

User = get_user_model()


def _make_role(name: str, hierarchy_level: int, perms: list[tuple[str, str]]) -> Role:
    role, _ = Role.objects.get_or_create(
        name=name,
        defaults={"description": f"Test role: {name}", "hierarchy_level": hierarchy_level},
    )
    for app_label, codename in perms:
        role.permissions.add(
            Permission.objects.get(content_type__app_label=app_label, codename=codename)
        )
    return role


class ShiftApiTestBase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.supervisor_role = _make_role("Supervisor", 50, [
            ("shifts", "view_shift"),
            ("shifts", "can_manage_shifts"),
            ("shifts", "can_approve_shift"),
            ("officers", "view_officer"),
        ])
        cls.scheduler_role = _make_role("Scheduler", 30, [
            ("shifts", "view_shift"),
            ("shifts", "can_manage_shifts"),
        ])
        cls.citizen_role = _make_role("Citizen", 0, [("reports", "add_report")])

        cls.supervisor = User.objects.create_user(
            username="shift_supervisor", password="Sup3rvisor!Pass",
            email="supervisor@civic.test", role=cls.supervisor_role,
        )
        cls.scheduler = User.objects.create_user(
            username="shift_scheduler", password="Sch3duler!Pass",
            email="scheduler@civic.test", role=cls.scheduler_role,
        )
        cls.citizen = User.objects.create_user(
            username="shift_citizen", password="C1tizen!Pass",
            email="citizen@civic.test", role=cls.citizen_role,
        )
        cls.officer_user = User.objects.create_user(
            username="officer_a_login", password="0fficerA!Pass",
            email="officer.a.login@civic.test",
        )

        cls.officer_a = Officer.objects.create(
            name="Officer A", badge_number="B-100", email="a@civic.test", user=cls.officer_user,
        )
        cls.officer_b = Officer.objects.create(
            name="Officer B", badge_number="B-200", email="b@civic.test",
        )
        cls.retired = Officer.objects.create(
            name="Officer R", badge_number="B-900", email="r@civic.test", is_active=False,
        )

        cls.day = (timezone.now() + datetime.timedelta(days=2)).replace(
            hour=0, minute=0, second=0, microsecond=0,
        )
        cls.booked = Shift.objects.create(
            title="Morning patrol",
            start_time=cls.at(9),
            end_time=cls.at(17),
            created_by=cls.supervisor,
        )
        cls.booked.assigned_officers.set([cls.officer_a])

    @classmethod
    def at(cls, hour: int, minute: int = 0, days: int = 0) -> datetime.datetime:
        return cls.day + datetime.timedelta(days=days, hours=hour, minutes=minute)

    def setUp(self):
        self.client = APIClient()
        self.list_url = reverse("shift-list")
        self.login_as(self.supervisor)

    def login_as(self, user):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {AccessToken.for_user(user)}")

    def payload(self, start, end, officers, **extra):
        data = {
            "title": "Evening patrol",
            "shift_type": "patrol",
            "start_time": start.isoformat() if start else None,
            "end_time": end.isoformat() if end else None,
            "officer_ids": officers,
        }
        data.update(extra)
        return data

    def create(self, start, end, officers, **extra):
        return self.client.post(self.list_url, self.payload(start, end, officers, **extra), format="json")


class TestShiftCreation(ShiftApiTestBase):

    def test_non_conflicting_shift_is_created_pending(self):
        resp = self.create(self.at(9), self.at(17), [self.officer_b.pk])
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)
        self.assertEqual(resp.data["status"], ShiftStatus.PENDING)
        self.assertEqual(resp.data["officer_ids"], [self.officer_b.pk])
        self.assertEqual(resp.data["created_by"], self.supervisor.username)
        self.assertTrue(
            AuditLog.objects.filter(action="create", entity="shift", entity_id=str(resp.data["id"])).exists()
        )

    def test_overlapping_shift_is_rejected(self):
        resp = self.create(self.at(16), self.at(20), [self.officer_a.pk])
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "overlapping_shift")
        self.assertIn(f"Officer {self.officer_a.pk}", resp.data["detail"])
        self.assertEqual(Shift.objects.count(), 1)

    def test_adjacent_shift_needs_rest(self):
        resp = self.create(self.at(17), self.at(21), [self.officer_a.pk])
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "insufficient_rest")

    def test_adjacent_shift_allowed_when_no_rest_is_required(self):
        with override_settings(SHIFT_POLICY={**settings.SHIFT_POLICY, "MIN_REST_HOURS": 0}):
            resp = self.create(self.at(17), self.at(21), [self.officer_a.pk])
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)

    def test_unknown_and_inactive_officers_are_named(self):
        resp = self.create(self.at(9), self.at(17), [self.officer_b.pk, self.retired.pk, 99999])
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "officers_not_found")
        self.assertIn(str(self.retired.pk), resp.data["detail"])
        self.assertIn("99999", resp.data["detail"])

    def test_missing_end_time_is_rejected(self):
        resp = self.create(self.at(9), None, [self.officer_b.pk])
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "missing_time_bounds")

    def test_past_shift_is_rejected(self):
        start = timezone.now() - datetime.timedelta(hours=2)
        resp = self.create(start, start + datetime.timedelta(hours=4), [self.officer_b.pk])
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "start_in_past")

    def test_overlong_shift_is_rejected(self):
        resp = self.create(self.at(1), self.at(14), [self.officer_b.pk])
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "duration_exceeded")

    def test_empty_officer_list_fails_validation(self):
        resp = self.create(self.at(9), self.at(17), [])
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("officer_ids", resp.data)

    def test_cancelled_shift_frees_the_officer(self):
        Shift.objects.filter(pk=self.booked.pk).update(status=ShiftStatus.CANCELLED)
        resp = self.create(self.at(10), self.at(12), [self.officer_a.pk])
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)

    def test_citizen_cannot_create_shift(self):
        self.login_as(self.citizen)
        resp = self.create(self.at(9), self.at(17), [self.officer_b.pk])
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_requires_authentication(self):
        self.client.credentials()
        resp = self.client.get(self.list_url)
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_assigned_officer_is_notified(self):
        with self.captureOnCommitCallbacks(execute=True):
            resp = self.create(self.at(9), self.at(17), [self.officer_b.pk], title="Night watch")
            resp_a = self.create(self.at(9, days=1), self.at(17, days=1), [self.officer_a.pk])
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)
        self.assertEqual(resp_a.status_code, status.HTTP_201_CREATED, msg=resp_a.data)

        # Officer B has no login account, so only officer A's shift produces a task.
        tasks = NotificationTask.objects.filter(event_type="shift_assigned")
        self.assertEqual(tasks.count(), 1)
        self.assertEqual(tasks.get().recipient_ids, [self.officer_user.pk])

    def test_lookup_failure_returns_503(self):
        with mock.patch(
            "shifts.services.ShiftStore.find_shifts_by_any_officer",
            side_effect=LookupFailure("shift store"),
        ):
            resp = self.create(self.at(10), self.at(12), [self.officer_b.pk])
        self.assertEqual(resp.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertNotIn("code", resp.data)

    def test_directory_database_error_returns_503(self):
        with mock.patch.object(Officer.objects, "filter", side_effect=DatabaseError("down")):
            resp = self.create(self.at(10), self.at(12), [self.officer_b.pk])
        self.assertEqual(resp.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)


class TestShiftUpdateAndDelete(ShiftApiTestBase):

    def detail_url(self, shift):
        return reverse("shift-detail", args=[shift.pk])

    def test_reschedule_excludes_the_shift_itself(self):
        resp = self.client.patch(
            self.detail_url(self.booked),
            {"end_time": self.at(18).isoformat()},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.booked.refresh_from_db()
        self.assertEqual(self.booked.end_time, self.at(18))

    def test_reschedule_into_conflict_is_rejected(self):
        other = Shift.objects.create(title="Late", start_time=self.at(9), end_time=self.at(12))
        other.assigned_officers.set([self.officer_b])
        resp = self.client.patch(
            self.detail_url(other),
            {"officer_ids": [self.officer_a.pk, self.officer_b.pk]},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "overlapping_shift")

    def test_title_only_edit_skips_scheduling_rules(self):
        Shift.objects.filter(pk=self.booked.pk).update(
            start_time=timezone.now() - datetime.timedelta(hours=1),
            end_time=timezone.now() + datetime.timedelta(hours=3),
        )
        resp = self.client.patch(self.detail_url(self.booked), {"title": "Renamed"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.assertEqual(resp.data["title"], "Renamed")

    def test_completed_shift_cannot_be_edited(self):
        Shift.objects.filter(pk=self.booked.pk).update(status=ShiftStatus.COMPLETED)
        resp = self.client.patch(self.detail_url(self.booked), {"title": "x"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    def test_pending_shift_can_be_deleted(self):
        resp = self.client.delete(self.detail_url(self.booked))
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Shift.objects.filter(pk=self.booked.pk).exists())
        self.assertTrue(
            AuditLog.objects.filter(action="delete", entity="shift", entity_id=str(self.booked.pk)).exists()
        )

    def test_in_progress_shift_cannot_be_deleted(self):
        Shift.objects.filter(pk=self.booked.pk).update(status=ShiftStatus.IN_PROGRESS)
        resp = self.client.delete(self.detail_url(self.booked))
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(Shift.objects.filter(pk=self.booked.pk).exists())


class TestShiftLifecycle(ShiftApiTestBase):

    def change_status(self, target):
        return self.client.post(
            reverse("shift-change-status", args=[self.booked.pk]),
            {"status": target},
            format="json",
        )

    def test_full_lifecycle(self):
        for target in (ShiftStatus.APPROVED, ShiftStatus.IN_PROGRESS, ShiftStatus.COMPLETED):
            resp = self.change_status(target)
            self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
            self.assertEqual(resp.data["status"], target)
        self.assertEqual(resp.data["reviewed_by"], self.supervisor.username)

    def test_skipping_a_step_is_a_conflict(self):
        resp = self.change_status(ShiftStatus.COMPLETED)
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertIn("pending", resp.data["detail"])

    def test_terminal_status_cannot_change(self):
        self.assertEqual(self.change_status(ShiftStatus.REJECTED).status_code, status.HTTP_200_OK)
        resp = self.change_status(ShiftStatus.APPROVED)
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    def test_approval_needs_approve_permission(self):
        self.login_as(self.scheduler)
        self.assertEqual(self.change_status(ShiftStatus.APPROVED).status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.change_status(ShiftStatus.CANCELLED).status_code, status.HTTP_200_OK)

    def test_status_change_notifies_linked_officer(self):
        with self.captureOnCommitCallbacks(execute=True):
            self.change_status(ShiftStatus.APPROVED)
        task = NotificationTask.objects.get(event_type="shift_status_changed")
        self.assertEqual(task.recipient_ids, [self.officer_user.pk])


class TestShiftQueries(ShiftApiTestBase):

    def test_validate_reports_rejection_without_saving(self):
        resp = self.client.post(
            reverse("shift-validate"),
            self.payload(self.at(16), self.at(20), [self.officer_a.pk]),
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertFalse(resp.data["ok"])
        self.assertEqual(resp.data["code"], "overlapping_shift")
        self.assertEqual(resp.data["officer_id"], self.officer_a.pk)
        self.assertEqual(resp.data["conflicting_shift_id"], self.booked.pk)
        self.assertEqual(Shift.objects.count(), 1)

    def test_validate_accepts_and_honours_shift_id(self):
        resp = self.client.post(
            reverse("shift-validate"),
            {
                "start_time": self.at(10).isoformat(),
                "end_time": self.at(16).isoformat(),
                "officer_ids": [self.officer_a.pk],
                "shift_id": self.booked.pk,
            },
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data["ok"])
        self.assertIsNone(resp.data["code"])

    def test_list_filters_by_officer(self):
        other = Shift.objects.create(title="B only", start_time=self.at(9), end_time=self.at(12))
        other.assigned_officers.set([self.officer_b])
        resp = self.client.get(self.list_url, {"officer": self.officer_b.pk})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([s["id"] for s in resp.data], [other.pk])

    def test_officer_nested_route(self):
        resp = self.client.get(f"/api/officers/{self.officer_a.pk}/shifts/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([s["id"] for s in resp.data], [self.booked.pk])

    def test_officer_nested_route_unknown_officer(self):
        resp = self.client.get("/api/officers/424242/shifts/")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_upcoming_window(self):
        resp = self.client.get(
            reverse("shift-upcoming"),
            {"start": self.at(0).isoformat(), "end": self.at(12).isoformat()},
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([s["id"] for s in resp.data], [self.booked.pk])

    def test_upcoming_window_must_be_ordered(self):
        resp = self.client.get(
            reverse("shift-upcoming"),
            {"start": self.at(12).isoformat(), "end": self.at(0).isoformat()},
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def validate_for(self, shift, body):
        return self.client.post(
            reverse("shift-validate"), {**body, "shift_id": shift.pk}, format="json",
        )

    def test_validate_fills_omitted_fields_like_patch(self):
        body = {"end_time": self.at(16).isoformat()}

        dry_run = self.validate_for(self.booked, body)
        self.assertEqual(dry_run.status_code, status.HTTP_200_OK)
        self.assertTrue(dry_run.data["ok"], msg=dry_run.data)

        patched = self.client.patch(reverse("shift-detail", args=[self.booked.pk]), body, format="json")
        self.assertEqual(patched.status_code, status.HTTP_200_OK, msg=patched.data)

    def test_validate_rejects_partial_update_like_patch(self):
        other = Shift.objects.create(title="B only", start_time=self.at(9), end_time=self.at(12))
        other.assigned_officers.set([self.officer_b])
        body = {"officer_ids": [self.officer_a.pk, self.officer_b.pk]}

        dry_run = self.validate_for(other, body)
        self.assertFalse(dry_run.data["ok"])
        self.assertEqual(dry_run.data["code"], "overlapping_shift")
        self.assertEqual(dry_run.data["conflicting_shift_id"], self.booked.pk)

        patched = self.client.patch(reverse("shift-detail", args=[other.pk]), body, format="json")
        self.assertEqual(patched.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(patched.data["code"], dry_run.data["code"])

    def test_validate_unknown_shift_id(self):
        resp = self.client.post(
            reverse("shift-validate"),
            self.payload(self.at(10), self.at(12), [self.officer_a.pk], shift_id=999999),
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_validate_completed_shift_is_a_conflict(self):
        Shift.objects.filter(pk=self.booked.pk).update(status=ShiftStatus.COMPLETED)
        resp = self.validate_for(self.booked, {"end_time": self.at(16).isoformat()})
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)


class TestShiftWriteLocking(ShiftApiTestBase):
    """Officer rows are locked before the scheduling rules are evaluated."""

    def record_calls(self):
        calls = []
        real_lock_rows = shift_services.lock_rows
        real_validate = ShiftValidator.validate

        def lock_rows(model, pks):
            calls.append(("lock", model, sorted(pks)))
            return real_lock_rows(model, pks)

        def validate(validator, proposal):
            calls.append(("validate", proposal.id))
            return real_validate(validator, proposal)

        patches = (
            mock.patch("shifts.services.lock_rows", side_effect=lock_rows),
            mock.patch.object(ShiftValidator, "validate", autospec=True, side_effect=validate),
        )
        for patcher in patches:
            patcher.start()
            self.addCleanup(patcher.stop)
        return calls

    def test_create_locks_officers_before_validating(self):
        calls = self.record_calls()
        resp = self.create(
            self.at(9, days=1), self.at(17, days=1), [self.officer_b.pk, self.officer_a.pk],
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)
        self.assertEqual(calls, [
            ("lock", Officer, [self.officer_a.pk, self.officer_b.pk]),
            ("validate", None),
        ])

    def test_update_locks_new_officers_before_validating(self):
        calls = self.record_calls()
        resp = self.client.patch(
            reverse("shift-detail", args=[self.booked.pk]),
            {"officer_ids": [self.officer_a.pk, self.officer_b.pk]},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.assertEqual(calls, [
            ("lock", Officer, [self.officer_a.pk, self.officer_b.pk]),
            ("validate", self.booked.pk),
        ])

    def test_title_only_update_takes_no_officer_locks(self):
        calls = self.record_calls()
        resp = self.client.patch(
            reverse("shift-detail", args=[self.booked.pk]), {"title": "Renamed"}, format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.assertEqual(calls, [])

    def test_lock_failure_returns_503(self):
        with mock.patch("shifts.services.lock_rows", side_effect=DatabaseError("lock wait timeout")):
            resp = self.create(self.at(10, days=1), self.at(12, days=1), [self.officer_b.pk])
        self.assertEqual(resp.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(Shift.objects.count(), 1)
