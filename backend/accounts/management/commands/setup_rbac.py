"""
Management command: setup_rbac
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Seeds the database with base **Roles** and links each role to its
set of Django permissions.

This command does NOT create Permission objects.  Standard CRUD
permissions are created by ``migrate``; custom workflow permissions come
from each model's ``Meta.permissions``.

The command is **idempotent**: existing roles are updated and their
permission sets replaced to match ``ROLE_PERMISSIONS_MAP``.

Usage::

    python manage.py setup_rbac
"""

from django.contrib.auth.models import Permission
from django.core.management.base import BaseCommand

from accounts.models import Role
from core.permissions_constants import (
    AccountsPerms,
    AlertsPerms,
    CorePerms,
    IncidentsPerms,
    OfficersPerms,
    ReportsPerms,
    ShiftsPerms,
)

# ────────────────────────────────────────────────────────────────────
# Role → Permission mapping
# ────────────────────────────────────────────────────────────────────
# Key:   (role_name, description, hierarchy_level)
# Value: list of ("app_label", codename) pairs

_OFFICER_READ = [
    ("officers", OfficersPerms.VIEW_OFFICER),
    ("shifts", ShiftsPerms.VIEW_SHIFT),
    ("incidents", IncidentsPerms.VIEW_INCIDENT),
    ("alerts", AlertsPerms.VIEW_ALERT),
    ("reports", ReportsPerms.VIEW_REPORT),
    ("reports", ReportsPerms.ADD_REPORT),
]

ROLE_PERMISSIONS_MAP: dict[tuple[str, str, int], list[tuple[str, str]]] = {

    (
        "System Admin",
        "Full system access — manages users, roles, and all data.",
        100,
    ): [
        ("accounts", AccountsPerms.VIEW_ROLE), ("accounts", AccountsPerms.ADD_ROLE),
        ("accounts", AccountsPerms.CHANGE_ROLE), ("accounts", AccountsPerms.DELETE_ROLE),
        ("accounts", AccountsPerms.VIEW_USER), ("accounts", AccountsPerms.ADD_USER),
        ("accounts", AccountsPerms.CHANGE_USER), ("accounts", AccountsPerms.DELETE_USER),
        ("accounts", AccountsPerms.CAN_MANAGE_USERS),
        ("core", CorePerms.VIEW_NOTIFICATION), ("core", CorePerms.VIEW_AUDITLOG),
        ("core", CorePerms.CAN_VIEW_SYSTEM_METRICS),
        ("officers", OfficersPerms.VIEW_OFFICER), ("officers", OfficersPerms.ADD_OFFICER),
        ("officers", OfficersPerms.CHANGE_OFFICER), ("officers", OfficersPerms.DELETE_OFFICER),
        ("shifts", ShiftsPerms.VIEW_SHIFT), ("shifts", ShiftsPerms.ADD_SHIFT),
        ("shifts", ShiftsPerms.CHANGE_SHIFT), ("shifts", ShiftsPerms.DELETE_SHIFT),
        ("shifts", ShiftsPerms.CAN_MANAGE_SHIFTS), ("shifts", ShiftsPerms.CAN_APPROVE_SHIFT),
        ("reports", ReportsPerms.VIEW_REPORT), ("reports", ReportsPerms.ADD_REPORT),
        ("reports", ReportsPerms.CHANGE_REPORT), ("reports", ReportsPerms.DELETE_REPORT),
        ("reports", ReportsPerms.CAN_REVIEW_REPORTS), ("reports", ReportsPerms.CAN_CONVERT_REPORT),
        ("incidents", IncidentsPerms.VIEW_INCIDENT), ("incidents", IncidentsPerms.ADD_INCIDENT),
        ("incidents", IncidentsPerms.CHANGE_INCIDENT), ("incidents", IncidentsPerms.DELETE_INCIDENT),
        ("incidents", IncidentsPerms.CAN_SCOPE_ALL_INCIDENTS),
        ("incidents", IncidentsPerms.CAN_CHANGE_INCIDENT_STATUS),
        ("incidents", IncidentsPerms.CAN_ASSIGN_INCIDENT_OFFICERS),
        ("incidents", IncidentsPerms.CAN_VIEW_INCIDENT_ANALYTICS),
        ("alerts", AlertsPerms.VIEW_ALERT), ("alerts", AlertsPerms.ADD_ALERT),
        ("alerts", AlertsPerms.CHANGE_ALERT), ("alerts", AlertsPerms.DELETE_ALERT),
        ("alerts", AlertsPerms.CAN_BROADCAST_ALERT),
    ],

    (
        "Supervisor",
        "Runs a district: schedules and approves shifts, triages reports, "
        "dispatches incidents and publishes alerts.",
        50,
    ): _OFFICER_READ + [
        ("core", CorePerms.CAN_VIEW_SYSTEM_METRICS),
        ("officers", OfficersPerms.ADD_OFFICER), ("officers", OfficersPerms.CHANGE_OFFICER),
        ("shifts", ShiftsPerms.ADD_SHIFT), ("shifts", ShiftsPerms.CHANGE_SHIFT),
        ("shifts", ShiftsPerms.CAN_MANAGE_SHIFTS), ("shifts", ShiftsPerms.CAN_APPROVE_SHIFT),
        ("reports", ReportsPerms.CAN_REVIEW_REPORTS), ("reports", ReportsPerms.CAN_CONVERT_REPORT),
        ("incidents", IncidentsPerms.ADD_INCIDENT), ("incidents", IncidentsPerms.CHANGE_INCIDENT),
        ("incidents", IncidentsPerms.CAN_SCOPE_ALL_INCIDENTS),
        ("incidents", IncidentsPerms.CAN_CHANGE_INCIDENT_STATUS),
        ("incidents", IncidentsPerms.CAN_ASSIGN_INCIDENT_OFFICERS),
        ("incidents", IncidentsPerms.CAN_VIEW_INCIDENT_ANALYTICS),
        ("alerts", AlertsPerms.ADD_ALERT), ("alerts", AlertsPerms.CAN_BROADCAST_ALERT),
    ],

    (
        "Police Officer",
        "Field officer — sees own shifts and assigned incidents, "
        "posts incident updates.",
        20,
    ): _OFFICER_READ + [
        ("incidents", IncidentsPerms.CAN_CHANGE_INCIDENT_STATUS),
    ],

    (
        "Citizen",
        "Default role for self-registered users — files reports and "
        "receives public alerts.",
        0,
    ): [
        ("reports", ReportsPerms.VIEW_REPORT),
        ("reports", ReportsPerms.ADD_REPORT),
        ("alerts", AlertsPerms.VIEW_ALERT),
    ],
}

class Command(BaseCommand):
    help = (
        "Seeds the base roles (System Admin, Supervisor, Police Officer, "
        "Citizen) and links their permissions.  Idempotent.  Does NOT "
        "create permissions; run `migrate` first."
    )

    def handle(self, *args, **options):
        self.stdout.write(self.style.MIGRATE_HEADING("RBAC setup: seeding roles & permissions"))

        known: dict[tuple[str, str], Permission] = {
            (p.content_type.app_label, p.codename): p
            for p in Permission.objects.select_related("content_type")
        }

        created_count = 0
        missing = 0

        for (role_name, description, hierarchy_level), wanted in ROLE_PERMISSIONS_MAP.items():
            role, created = Role.objects.update_or_create(
                name=role_name,
                defaults={
                    "description": description,
                    "hierarchy_level": hierarchy_level,
                },
            )
            created_count += int(created)

            resolved: list[Permission] = []
            for key in dict.fromkeys(wanted):
                permission = known.get(key)
                if permission is None:
                    missing += 1
                    self.stdout.write(self.style.WARNING(
                        f"  ⚠  Permission '{key[0]}.{key[1]}' not found; "
                        f"skipped for role '{role_name}'."
                    ))
                    continue
                resolved.append(permission)

            role.permissions.set(resolved)

            self.stdout.write(self.style.SUCCESS(
                f"  ✔  {'Created' if created else 'Updated'} role: {role_name:<16s} "
                f"(hierarchy={hierarchy_level}, permissions={len(resolved)})"
            ))

        summary = (
            f"Done: {created_count} created, "
            f"{len(ROLE_PERMISSIONS_MAP) - created_count} updated."
        )
        if missing:
            summary += f"  {missing} permission(s) missing; run migrate first?"
        self.stdout.write(self.style.SUCCESS(summary))
