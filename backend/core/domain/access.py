"""
core.domain.access — Permission-scoped queryset selectors (shared patterns).

This module provides shared utilities that each app's service layer
calls to obtain querysets filtered by the requesting user's permissions.

╔══════════════════════════════════════════════════════════════════╗
║  IMPORTANT — Per-app scoping logic does NOT live here.         ║
║  Each app's ``services.py`` owns its own scope-rules list.     ║
║  This module provides:                                         ║
║    1) ``apply_permission_scope`` — ordered permission dispatch.║
║    2) ``require_permission`` — guard that checks has_perm.     ║
╚══════════════════════════════════════════════════════════════════╝

Usage in an app's service layer::

    from core.domain.access import apply_permission_scope

    REPORT_SCOPE_RULES = [
        ("reports.can_review_reports", lambda qs, u: qs),
        ("reports.view_report",        lambda qs, u: qs.filter(created_by=u)),
    ]

    qs = apply_permission_scope(Report.objects.all(), user, scope_rules=REPORT_SCOPE_RULES)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from django.db.models import QuerySet

if TYPE_CHECKING:
    from accounts.models import User

# Takes (queryset, user) and returns a filtered queryset.
ScopeFilter = Callable[[QuerySet, "User"], QuerySet]

# (permission "app_label.codename", filter_fn)
ScopeRule = tuple[str, ScopeFilter]


def apply_permission_scope(
    queryset: QuerySet,
    user: User,
    *,
    scope_rules: list[ScopeRule],
    default: str = "none",
) -> QuerySet:
    """
    Apply the first matching permission-based scope rule.

    Rules are checked **in order** — first permission match wins, so list
    them from broadest to narrowest.  ``default="none"`` yields an empty
    queryset when nothing matches; ``"all"`` returns it unfiltered.
    """
    for perm, filter_fn in scope_rules:
        if user.has_perm(perm):
            return filter_fn(queryset, user)

    if default == "none":
        return queryset.none()
    return queryset


def require_permission(user: User, *perms: str, message: str = "") -> None:
    """
    Raise ``PermissionDenied`` unless the user holds at least one of
    ``perms`` (full ``app_label.codename`` strings).
    """
    from core.domain.exceptions import PermissionDenied as DomainPermissionDenied

    for perm in perms:
        if user.has_perm(perm):
            return
    raise DomainPermissionDenied(
        message or f"Missing required permission: {', '.join(perms)}."
    )
