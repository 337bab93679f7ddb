"""
Tests for the officer directory endpoints under ``/api/officers/``.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework import status

from core.models import AuditLog
from incidents.models import Incident, IncidentStatus
from officers.models import Officer, OfficerStatus
from officers.services import OfficerDirectory

pytestmark = pytest.mark.django_db


@pytest.fixture()
def admin_header(auth_header, make_role):
    role = make_role(
        "Officer Admin",
        "officers.view_officer",
        "officers.add_officer",
        "officers.change_officer",
        hierarchy_level=60,
    )
    return auth_header(username="officer_admin", role=role)


@pytest.fixture()
def viewer_header(auth_header, make_role):
    role = make_role("Officer Viewer", "officers.view_officer")
    return auth_header(username="officer_viewer", role=role)


@pytest.fixture()
def officers(db):
    return [
        Officer.objects.create(name="Ada North", badge_number="N-1", email="ada@civic.test", district="North"),
        Officer.objects.create(name="Ben South", badge_number="S-1", email="ben@civic.test", district="South"),
        Officer.objects.create(
            name="Cy Gone", badge_number="X-1", email="cy@civic.test", is_active=False,
        ),
    ]


def _authed(api_client, header):
    api_client.credentials(HTTP_AUTHORIZATION=header["Authorization"])
    return api_client


class TestOfficerList:

    def test_inactive_officers_hidden_by_default(self, api_client, viewer_header, officers):
        resp = _authed(api_client, viewer_header).get(reverse("officer-list"))
        assert resp.status_code == status.HTTP_200_OK
        assert [o["badge_number"] for o in resp.data] == ["N-1", "S-1"]

    def test_include_inactive(self, api_client, viewer_header, officers):
        resp = _authed(api_client, viewer_header).get(reverse("officer-list"), {"include_inactive": "true"})
        assert len(resp.data) == 3

    def test_filter_by_district_and_search(self, api_client, viewer_header, officers):
        client = _authed(api_client, viewer_header)
        assert [o["name"] for o in client.get(reverse("officer-list"), {"district": "south"}).data] == ["Ben South"]
        assert [o["name"] for o in client.get(reverse("officer-list"), {"search": "n-1"}).data] == ["Ada North"]

    def test_requires_view_permission(self, api_client, auth_header, officers):
        resp = _authed(api_client, auth_header(username="nobody")).get(reverse("officer-list"))
        assert resp.status_code == status.HTTP_403_FORBIDDEN


class TestOfficerWrites:

    def test_create_officer(self, api_client, admin_header):
        resp = _authed(api_client, admin_header).post(
            reverse("officer-list"),
            {"name": "Dee East", "badge_number": "E-7", "email": "dee@civic.test", "district": "East"},
            format="json",
        )
        assert resp.status_code == status.HTTP_201_CREATED, resp.data
        assert resp.data["status"] == OfficerStatus.ACTIVE
        assert resp.data["is_active"] is True
        assert AuditLog.objects.filter(action="create", entity="officer", entity_id=str(resp.data["id"])).exists()

    def test_duplicate_badge_rejected(self, api_client, admin_header, officers):
        resp = _authed(api_client, admin_header).post(
            reverse("officer-list"),
            {"name": "Copy", "badge_number": "N-1", "email": "copy@civic.test"},
            format="json",
        )
        assert resp.status_code == status.HTTP_400_BAD_REQUEST
        assert "badge_number" in resp.data

    def test_viewer_cannot_create(self, api_client, viewer_header):
        resp = _authed(api_client, viewer_header).post(
            reverse("officer-list"),
            {"name": "Nope", "badge_number": "Z-1", "email": "nope@civic.test"},
            format="json",
        )
        assert resp.status_code == status.HTTP_403_FORBIDDEN
        assert not Officer.objects.filter(badge_number="Z-1").exists()

    def test_link_user_only_once(self, api_client, admin_header, officers, create_user):
        account = create_user(username="patrol_login")
        client = _authed(api_client, admin_header)
        first = client.patch(reverse("officer-detail", args=[officers[0].pk]), {"user": account.pk}, format="json")
        assert first.status_code == status.HTTP_200_OK, first.data
        assert first.data["username"] == "patrol_login"

        second = client.patch(reverse("officer-detail", args=[officers[1].pk]), {"user": account.pk}, format="json")
        assert second.status_code == status.HTTP_400_BAD_REQUEST
        assert "user" in second.data

    def test_deactivate_hides_from_directory(self, api_client, admin_header, officers):
        ada = officers[0]
        resp = _authed(api_client, admin_header).post(reverse("officer-deactivate", args=[ada.pk]))
        assert resp.status_code == status.HTTP_200_OK
        assert resp.data["is_active"] is False
        assert OfficerDirectory().find_officers_by_ids([ada.pk]) == []

    def test_retrieve_unknown(self, api_client, viewer_header):
        resp = _authed(api_client, viewer_header).get(reverse("officer-detail", args=[424242]))
        assert resp.status_code == status.HTTP_404_NOT_FOUND


class TestOfficerDirectory:

    def test_returns_only_active_known_officers(self, officers):
        found = OfficerDirectory().find_officers_by_ids([o.pk for o in officers] + [999999])
        assert [o.badge_number for o in found] == ["N-1", "S-1"]

    def test_empty_input_skips_query(self, django_assert_num_queries):
        with django_assert_num_queries(0):
            assert OfficerDirectory().find_officers_by_ids([]) == []


class TestBadgeLookup:

    def test_exact_match(self, api_client, viewer_header, officers):
        resp = _authed(api_client, viewer_header).get(
            reverse("officer-by-badge", kwargs={"badge_number": "S-1"})
        )
        assert resp.status_code == status.HTTP_200_OK
        assert resp.data["name"] == "Ben South"

    def test_inactive_officer_still_found(self, api_client, viewer_header, officers):
        resp = _authed(api_client, viewer_header).get(
            reverse("officer-by-badge", kwargs={"badge_number": "X-1"})
        )
        assert resp.status_code == status.HTTP_200_OK
        assert resp.data["is_active"] is False

    def test_partial_badge_is_not_a_match(self, api_client, viewer_header, officers):
        resp = _authed(api_client, viewer_header).get(
            reverse("officer-by-badge", kwargs={"badge_number": "S"})
        )
        assert resp.status_code == status.HTTP_404_NOT_FOUND

    def test_requires_view_permission(self, api_client, auth_header, officers):
        resp = _authed(api_client, auth_header(username="nobody")).get(
            reverse("officer-by-badge", kwargs={"badge_number": "N-1"})
        )
        assert resp.status_code == status.HTTP_403_FORBIDDEN


@pytest.fixture()
def patrol(create_user):
    user = create_user(username="patrol")
    officer = Officer.objects.create(name="Pat Rol", badge_number="P-9", email="pat@civic.test", user=user)
    return user, officer


def _assigned_incident(officer, *, status, priority="medium", hours_to_resolve=None):
    created = timezone.now() - timedelta(days=2)
    incident = Incident.objects.create(title="t", description="d", status=status, priority=priority)
    incident.assigned_officers.add(officer)
    resolved_at = created + timedelta(hours=hours_to_resolve) if hours_to_resolve is not None else None
    Incident.objects.filter(pk=incident.pk).update(created_at=created, resolved_at=resolved_at)
    return incident


class TestOfficerPerformance:

    def test_own_figures(self, api_client, patrol):
        user, officer = patrol
        _assigned_incident(officer, status=IncidentStatus.RESOLVED, priority="high", hours_to_resolve=3)
        _assigned_incident(officer, status=IncidentStatus.CLOSED, hours_to_resolve=6)
        _assigned_incident(officer, status=IncidentStatus.IN_PROGRESS)
        _assigned_incident(officer, status=IncidentStatus.REPORTED, priority="high")
        Incident.objects.create(title="elsewhere", description="d", status=IncidentStatus.CLOSED)

        api_client.force_authenticate(user)
        resp = api_client.get(reverse("officer-my-performance"))

        assert resp.status_code == status.HTTP_200_OK
        assert resp.data["officer_id"] == officer.pk
        assert resp.data["total_incidents"] == 4
        assert resp.data["resolved_incidents"] == 2
        assert resp.data["resolution_rate"] == 50.0
        assert resp.data["avg_resolution_hours"] == 4.5
        assert resp.data["by_status"]["under_investigation"] == 0
        assert resp.data["by_status"]["in_progress"] == 1
        assert resp.data["by_priority"] == {"low": 0, "medium": 2, "high": 2, "critical": 0}

    def test_no_incidents(self, api_client, patrol):
        user, _ = patrol
        api_client.force_authenticate(user)
        resp = api_client.get(reverse("officer-my-performance"))
        assert resp.data["total_incidents"] == 0
        assert resp.data["resolution_rate"] == 0.0
        assert resp.data["avg_resolution_hours"] == 0.0

    def test_account_without_officer_profile(self, api_client, create_user):
        api_client.force_authenticate(create_user(username="civilian"))
        resp = api_client.get(reverse("officer-my-performance"))
        assert resp.status_code == status.HTTP_404_NOT_FOUND

    def test_other_officer_needs_analytics_permission(self, api_client, viewer_header, officers):
        url = reverse("officer-performance", args=[officers[0].pk])
        resp = _authed(api_client, viewer_header).get(url)
        assert resp.status_code == status.HTTP_403_FORBIDDEN

    def test_supervisor_sees_any_officer(self, api_client, auth_header, make_role, officers):
        role = make_role(
            "Performance Reviewer",
            "officers.view_officer",
            "incidents.can_view_incident_analytics",
            hierarchy_level=50,
        )
        _assigned_incident(officers[1], status=IncidentStatus.RESOLVED, hours_to_resolve=1)

        resp = _authed(api_client, auth_header(username="reviewer", role=role)).get(
            reverse("officer-performance", args=[officers[1].pk])
        )
        assert resp.status_code == status.HTTP_200_OK
        assert resp.data["badge_number"] == "S-1"
        assert resp.data["resolution_rate"] == 100.0
