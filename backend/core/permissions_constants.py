"""
Permissions Constants — **Single Source of Truth**

Every permission referenced in code (views, services, ``setup_rbac``)
MUST use one of the constants defined here.

Organisation
------------
- **Standard CRUD** permissions follow Django's auto-generated naming:
  ``<action>_<model_lowercase>``. They are listed here for reference so
  that the ``setup_rbac`` command can map them to roles without typos.

- **Custom workflow** permissions are constants that map to codenames
  registered via each model's ``Meta.permissions`` tuple. Adding a new
  custom permission requires:
    1. Add the constant below.
    2. Add the ``(codename, description)`` to the related model's
       ``Meta.permissions``.
    3. Run ``makemigrations`` + ``migrate`` to insert it into Django's
       ``auth_permission`` table.
    4. Add the constant to the appropriate role lists in ``setup_rbac``.

All constants store the **codename only** (no ``app_label.`` prefix).
Use ``perm()`` to build the full ``app_label.codename`` string expected
by ``User.has_perm``.
"""


def perm(app_label: str, codename: str) -> str:
    """Return the ``app_label.codename`` form of a permission."""
    return f"{app_label}.{codename}"


# ════════════════════════════════════════════════════════════════════
#  ACCOUNTS APP
# ════════════════════════════════════════════════════════════════════

class AccountsPerms:
    """Standard CRUD permissions for accounts models."""

    VIEW_ROLE = "view_role"
    ADD_ROLE = "add_role"
    CHANGE_ROLE = "change_role"
    DELETE_ROLE = "delete_role"

    VIEW_USER = "view_user"
    ADD_USER = "add_user"
    CHANGE_USER = "change_user"
    DELETE_USER = "delete_user"

    # ── Custom workflow permissions ─────────────────────────────────
    CAN_MANAGE_USERS = "can_manage_users"
    """Admin-level user management (list users, assign roles)."""


# ════════════════════════════════════════════════════════════════════
#  CORE APP
# ════════════════════════════════════════════════════════════════════

class CorePerms:
    """Permissions for system-wide endpoints."""

    VIEW_NOTIFICATION = "view_notification"
    VIEW_AUDITLOG = "view_auditlog"

    CAN_VIEW_SYSTEM_METRICS = "can_view_system_metrics"
    """Read aggregated system metrics (``GET /api/core/metrics/``)."""


# ════════════════════════════════════════════════════════════════════
#  OFFICERS APP
# ════════════════════════════════════════════════════════════════════

class OfficersPerms:
    VIEW_OFFICER = "view_officer"
    ADD_OFFICER = "add_officer"
    CHANGE_OFFICER = "change_officer"
    DELETE_OFFICER = "delete_officer"


# ════════════════════════════════════════════════════════════════════
#  SHIFTS APP
# ════════════════════════════════════════════════════════════════════

class ShiftsPerms:
    VIEW_SHIFT = "view_shift"
    ADD_SHIFT = "add_shift"
    CHANGE_SHIFT = "change_shift"
    DELETE_SHIFT = "delete_shift"

    CAN_MANAGE_SHIFTS = "can_manage_shifts"
    """Create, reschedule, cancel and delete shifts."""

    CAN_APPROVE_SHIFT = "can_approve_shift"
    """Approve or reject a pending shift."""


# ════════════════════════════════════════════════════════════════════
#  REPORTS APP
# ════════════════════════════════════════════════════════════════════

class ReportsPerms:
    VIEW_REPORT = "view_report"
    ADD_REPORT = "add_report"
    CHANGE_REPORT = "change_report"
    DELETE_REPORT = "delete_report"

    CAN_REVIEW_REPORTS = "can_review_reports"
    """See every citizen report, change its status, receive new-report notifications."""

    CAN_CONVERT_REPORT = "can_convert_report"
    """Convert a citizen report into an incident."""


# ════════════════════════════════════════════════════════════════════
#  INCIDENTS APP
# ════════════════════════════════════════════════════════════════════

class IncidentsPerms:
    VIEW_INCIDENT = "view_incident"
    ADD_INCIDENT = "add_incident"
    CHANGE_INCIDENT = "change_incident"
    DELETE_INCIDENT = "delete_incident"

    CAN_SCOPE_ALL_INCIDENTS = "can_scope_all_incidents"
    """Unrestricted incident visibility."""

    CAN_CHANGE_INCIDENT_STATUS = "can_change_incident_status"
    CAN_ASSIGN_INCIDENT_OFFICERS = "can_assign_incident_officers"
    CAN_VIEW_INCIDENT_ANALYTICS = "can_view_incident_analytics"


# ════════════════════════════════════════════════════════════════════
#  ALERTS APP
# ════════════════════════════════════════════════════════════════════

class AlertsPerms:
    VIEW_ALERT = "view_alert"
    ADD_ALERT = "add_alert"
    CHANGE_ALERT = "change_alert"
    DELETE_ALERT = "delete_alert"

    CAN_BROADCAST_ALERT = "can_broadcast_alert"
    """Publish and deactivate public alerts."""
