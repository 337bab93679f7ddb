"""
Smoke tests — verify that Django boots, URL routing resolves, and
the core domain modules behave as the app services expect.

These tests do NOT require real data — they just prove the plumbing
works.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from django.urls import resolve, reverse

from core.domain.access import apply_permission_scope, require_permission
from core.domain.exceptions import (
    Conflict,
    DomainError,
    InvalidTransition,
    LookupFailure,
    NotFound,
    PermissionDenied,
)
from shifts.validators import ShiftRejected


# ════════════════════════════════════════════════════════════════════
#  URL Routing Smoke Tests
# ════════════════════════════════════════════════════════════════════

class TestURLRouting:
    """Ensure all top-level app URL namespaces resolve without 404."""

    EXPECTED_URLS = [
        # (url_name, expected_path)
        ("officer-list",        "/api/officers/"),
        ("officer-my-performance", "/api/officers/me/performance/"),
        ("shift-list",          "/api/shifts/"),
        ("shift-upcoming",      "/api/shifts/upcoming/"),
        ("shift-validate",      "/api/shifts/validate/"),
        ("report-list",         "/api/reports/"),
        ("incident-list",       "/api/incidents/"),
        ("incident-anonymous",  "/api/incidents/anonymous/"),
        ("incident-analytics-monthly", "/api/incidents/analytics/monthly/"),
        ("incident-analytics-categories", "/api/incidents/analytics/categories/"),
        ("alert-list",          "/api/alerts/"),
        ("alert-all-alerts",    "/api/alerts/all/"),
        ("core:health",         "/api/core/health/"),
        ("core:metrics",        "/api/core/metrics/"),
        ("accounts:login",      "/api/accounts/auth/login/"),
    ]

    @pytest.mark.parametrize("url_name,expected_path", EXPECTED_URLS)
    def test_url_reverses(self, url_name: str, expected_path: str):
        assert reverse(url_name) == expected_path

    @pytest.mark.parametrize("url_name,expected_path", EXPECTED_URLS)
    def test_path_resolves_to_view(self, url_name: str, expected_path: str):
        match = resolve(expected_path)
        assert match.func is not None

    def test_upcoming_is_not_captured_as_shift_id(self):
        assert resolve("/api/shifts/upcoming/").url_name == "shift-upcoming"

    def test_anonymous_tip_is_not_captured_as_incident_id(self):
        assert resolve("/api/incidents/anonymous/").url_name == "incident-anonymous"

    def test_badge_lookup_route(self):
        assert reverse("officer-by-badge", kwargs={"badge_number": "PR-1"}) == "/api/officers/badge/PR-1/"

    def test_nested_officer_shifts(self):
        assert reverse("officer-shift-list", kwargs={"officer_pk": 7}) == "/api/officers/7/shifts/"


# ════════════════════════════════════════════════════════════════════
#  Exception Behaviour Tests
# ════════════════════════════════════════════════════════════════════

class TestDomainExceptions:

    def test_hierarchy(self):
        assert issubclass(InvalidTransition, Conflict)
        assert issubclass(Conflict, DomainError)
        assert issubclass(PermissionDenied, DomainError)
        assert issubclass(NotFound, DomainError)
        assert issubclass(ShiftRejected, DomainError)
        assert not issubclass(LookupFailure, DomainError)

    def test_domain_error_code(self):
        err = DomainError("test message", code="something_wrong")
        assert str(err) == "test message"
        assert err.code == "something_wrong"

    def test_invalid_transition_structured(self):
        err = InvalidTransition(current="pending", target="completed", reason="Approve it first.")
        assert "pending" in str(err)
        assert "completed" in str(err)
        assert "Approve it first." in str(err)
        assert err.current == "pending"
        assert err.target == "completed"

    def test_invalid_transition_plain_message(self):
        err = InvalidTransition("Cannot close incident.")
        assert str(err) == "Cannot close incident."

    def test_lookup_failure_names_source(self):
        err = LookupFailure("shift store")
        assert err.source == "shift store"
        assert str(err) == "shift store lookup failed."


# ════════════════════════════════════════════════════════════════════
#  Access Helper Unit Tests
# ════════════════════════════════════════════════════════════════════

def _user_with(*perms: str, superuser: bool = False) -> MagicMock:
    user = MagicMock()
    user.is_superuser = superuser
    user.has_perm.side_effect = lambda p: superuser or p in perms
    return user


class TestAccessHelpers:

    def test_first_matching_rule_wins(self):
        qs = MagicMock()
        rules = [
            ("reports.can_review_reports", lambda q, u: "everything"),
            ("reports.view_report", lambda q, u: "own"),
        ]
        assert apply_permission_scope(qs, _user_with("reports.view_report"), scope_rules=rules) == "own"
        assert apply_permission_scope(
            qs, _user_with("reports.view_report", "reports.can_review_reports"), scope_rules=rules,
        ) == "everything"

    def test_no_matching_rule_yields_empty(self):
        qs = MagicMock()
        apply_permission_scope(qs, _user_with(), scope_rules=[], default="none")
        qs.none.assert_called_once()

    def test_no_matching_rule_default_all(self):
        qs = MagicMock()
        assert apply_permission_scope(qs, _user_with(), scope_rules=[], default="all") is qs

    def test_require_permission_accepts_any_of(self):
        require_permission(_user_with("incidents.change_incident"),
                           "incidents.can_change_incident_status", "incidents.change_incident")

    def test_require_permission_raises(self):
        with pytest.raises(PermissionDenied):
            require_permission(_user_with(), "shifts.can_manage_shifts")

