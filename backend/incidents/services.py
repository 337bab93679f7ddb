"""
Incidents app Service Layer.

Architecture
------------
- ``IncidentQueryService``      — Permission-scoped listing and lookup.
- ``IncidentCreationService``   — Direct creation and creation from a report.
- ``IncidentWorkflowService``   — Status transitions, edits and timeline notes.
- ``IncidentAssignmentService`` — Attach officers to an incident.
- ``IncidentAnalyticsService``  — Monthly and per-type counts, officer performance.

Status lifecycle
----------------
  REPORTED → UNDER_INVESTIGATION → IN_PROGRESS → RESOLVED → CLOSED

Every status change and every progress note writes an
``IncidentUpdate`` row.  Assigned officers (through their linked user
accounts) and the reporting citizen are notified through the
notification work queue.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Q, QuerySet
from django.db.models.functions import TruncMonth
from django.utils import timezone

from core.domain.access import apply_permission_scope, require_permission
from core.domain.audit import audited
from core.domain.exceptions import Conflict, DomainError, NotFound, PermissionDenied
from core.domain.tasks import enqueue_notification
from core.domain.transactions import atomic_transition, lock_for_update
from core.permissions_constants import IncidentsPerms, perm
from officers.models import Officer
from officers.services import OfficerDirectory

from .models import (
    Incident,
    IncidentPriority,
    IncidentStatus,
    IncidentType,
    IncidentUpdate,
)

logger = logging.getLogger(__name__)


INCIDENT_TRANSITIONS: dict[str, set[str]] = {
    IncidentStatus.REPORTED: {IncidentStatus.UNDER_INVESTIGATION},
    IncidentStatus.UNDER_INVESTIGATION: {IncidentStatus.IN_PROGRESS},
    IncidentStatus.IN_PROGRESS: {IncidentStatus.RESOLVED},
    IncidentStatus.RESOLVED: {IncidentStatus.CLOSED},
}

FINAL_INCIDENT_STATUSES = frozenset({IncidentStatus.RESOLVED, IncidentStatus.CLOSED})

DELETABLE_INCIDENT_STATUSES = frozenset({IncidentStatus.REPORTED, IncidentStatus.CLOSED})


def _assigned_to_user(qs: QuerySet, user: Any) -> QuerySet:
    return qs.filter(Q(assigned_officers__user=user) | Q(reported_by=user)).distinct()


INCIDENT_SCOPE_RULES = [
    (perm("incidents", IncidentsPerms.CAN_SCOPE_ALL_INCIDENTS), lambda qs, u: qs),
    (perm("incidents", IncidentsPerms.VIEW_INCIDENT), _assigned_to_user),
]


def _resolve_officers(officer_ids: Iterable[int]) -> list[Officer]:
    requested = set(officer_ids)
    officers = OfficerDirectory().find_officers_by_ids(requested)
    missing = sorted(requested - {o.pk for o in officers})
    if missing:
        raise DomainError(
            f"Officers not found: {', '.join(str(i) for i in missing)}.",
            code="officers_not_found",
        )
    return officers


def _officer_user_ids(officers: Iterable[Officer]) -> list[int]:
    return [o.user_id for o in officers if o.user_id is not None]


def _incident_payload(incident: Incident) -> dict[str, Any]:
    return {
        "incident_id": incident.pk,
        "title": incident.title,
        "status": incident.status,
        "priority": incident.priority,
    }


# ═══════════════════════════════════════════════════════════════════
#  Query Service
# ═══════════════════════════════════════════════════════════════════


class IncidentQueryService:

    @staticmethod
    def scoped_queryset(requesting_user: Any) -> QuerySet[Incident]:
        qs = (
            Incident.objects
            .select_related("reported_by", "converted_by", "source_report")
            .prefetch_related("assigned_officers")
        )
        return apply_permission_scope(qs, requesting_user, scope_rules=INCIDENT_SCOPE_RULES)

    @staticmethod
    def list_incidents(
        requesting_user: Any,
        *,
        status: str | None = None,
        priority: str | None = None,
        incident_type: str | None = None,
        officer_id: int | None = None,
        search: str | None = None,
    ) -> QuerySet[Incident]:
        qs = IncidentQueryService.scoped_queryset(requesting_user)
        if status:
            qs = qs.filter(status=status)
        if priority:
            qs = qs.filter(priority=priority)
        if incident_type:
            qs = qs.filter(incident_type=incident_type)
        if officer_id is not None:
            qs = qs.filter(assigned_officers__pk=officer_id)
        if search:
            qs = qs.filter(Q(title__icontains=search) | Q(description__icontains=search))
        return qs.distinct()

    @staticmethod
    def get_incident(incident_id: Any, requesting_user: Any) -> Incident:
        """Incidents outside the user's scope are reported as missing."""
        try:
            return IncidentQueryService.scoped_queryset(requesting_user).get(pk=incident_id)
        except (Incident.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Incident with id {incident_id} not found.")

    @staticmethod
    def list_updates(incident: Incident) -> QuerySet[IncidentUpdate]:
        return incident.updates.select_related("author")


# ═══════════════════════════════════════════════════════════════════
#  Creation Service
# ═══════════════════════════════════════════════════════════════════


class IncidentCreationService:

    @staticmethod
    @audited("create", "incident")
    def create_incident(validated_data: dict[str, Any], requesting_user: Any) -> Incident:
        require_permission(requesting_user, perm("incidents", IncidentsPerms.ADD_INCIDENT))
        data = dict(validated_data)
        officer_ids = data.pop("officer_ids", None) or []

        with transaction.atomic():
            officers = _resolve_officers(officer_ids)
            incident = Incident.objects.create(reported_by=requesting_user, **data)
            incident.assigned_officers.set(officers)
            IncidentUpdate.objects.create(
                incident=incident,
                author=requesting_user,
                status=incident.status,
                content="Incident opened.",
            )
            enqueue_notification(
                "incident_assigned",
                _officer_user_ids(officers),
                _incident_payload(incident),
                related_object=incident,
            )

        logger.info("Incident %s opened by %s", incident.pk, requesting_user)
        return incident

    @staticmethod
    @audited("report_anonymously", "incident")
    def report_anonymously(validated_data: dict[str, Any]) -> Incident:
        """
        Record an anonymous tip as a ``reported`` incident.

        No user is linked to the incident or to its audit entry, even when
        the caller happens to be logged in.  Users who see every incident
        are notified so the tip gets triaged.

        Raises:
            PermissionDenied: when ``INCIDENTS["ANONYMOUS_REPORTING_ENABLED"]``
                              is off.
        """
        if not settings.INCIDENTS["ANONYMOUS_REPORTING_ENABLED"]:
            raise PermissionDenied("Anonymous reporting is not enabled.")

        with transaction.atomic():
            incident = Incident.objects.create(is_anonymous=True, **validated_data)
            IncidentUpdate.objects.create(
                incident=incident,
                status=incident.status,
                content="Anonymous tip received.",
            )
            triagers = (
                get_user_model().objects
                .with_permission(perm("incidents", IncidentsPerms.CAN_SCOPE_ALL_INCIDENTS))
                .values_list("pk", flat=True)
            )
            enqueue_notification(
                "incident_reported_anonymously",
                triagers,
                _incident_payload(incident),
                related_object=incident,
            )

        logger.info("Anonymous incident %s received", incident.pk)
        return incident

    @staticmethod
    def create_from_report(
        report: Any,
        *,
        priority: str | None,
        officer_ids: Iterable[int],
        notes: str,
        converted_by: Any,
    ) -> Incident:
        """
        Build an incident carrying the report's details.

        Called by ``ReportService.convert_to_incident`` inside its
        transaction; permission checks happen there.
        """
        officers = _resolve_officers(officer_ids)
        incident_type = (
            report.report_type
            if report.report_type in IncidentType.values
            else IncidentType.OTHER
        )
        incident = Incident.objects.create(
            title=report.title,
            description=report.description,
            incident_type=incident_type,
            priority=priority or report.priority or IncidentPriority.MEDIUM,
            location_address=report.location_address,
            location_district=report.location_district,
            latitude=report.latitude,
            longitude=report.longitude,
            source_report=report,
            reported_by=report.created_by,
            converted_by=converted_by,
            witnesses=report.witnesses,
            evidence_notes=report.evidence_notes,
            conversion_notes=notes,
        )
        incident.assigned_officers.set(officers)
        IncidentUpdate.objects.create(
            incident=incident,
            author=converted_by,
            status=incident.status,
            content=f"Created from report #{report.pk}." + (f"\n\n{notes}" if notes else ""),
        )
        enqueue_notification(
            "incident_assigned",
            _officer_user_ids(officers),
            _incident_payload(incident),
            related_object=incident,
        )
        return incident


# ═══════════════════════════════════════════════════════════════════
#  Workflow Service
# ═══════════════════════════════════════════════════════════════════


class IncidentWorkflowService:

    @staticmethod
    @audited("transition", "incident", target_arg="incident")
    def change_status(
        incident: Incident,
        target_status: str,
        requesting_user: Any,
        notes: str = "",
    ) -> Incident:
        """
        Move an incident one step along its lifecycle and record the step
        on the timeline.

        Raises:
            PermissionDenied:  without ``incidents.can_change_incident_status``.
            InvalidTransition: when the step is not allowed from the
                               current status.
        """
        require_permission(
            requesting_user, perm("incidents", IncidentsPerms.CAN_CHANGE_INCIDENT_STATUS),
        )
        extra = {"resolved_at": timezone.now()} if target_status == IncidentStatus.RESOLVED else None

        with transaction.atomic():
            incident = atomic_transition(
                instance=incident,
                target_status=target_status,
                transitions=INCIDENT_TRANSITIONS,
                extra_values=extra,
            )
            IncidentUpdate.objects.create(
                incident=incident,
                author=requesting_user,
                status=target_status,
                content=notes or f"Status changed to {incident.get_status_display()}.",
            )
            recipients = set(_officer_user_ids(incident.assigned_officers.all()))
            if incident.reported_by_id:
                recipients.add(incident.reported_by_id)
            recipients.discard(requesting_user.pk)
            enqueue_notification(
                "incident_status_changed",
                recipients,
                _incident_payload(incident),
                related_object=incident,
            )

        logger.info("Incident %s moved to %s by %s", incident.pk, target_status, requesting_user)
        return incident

    @staticmethod
    @audited("update", "incident", target_arg="incident")
    def update_incident(incident: Incident, validated_data: dict[str, Any], requesting_user: Any) -> Incident:
        require_permission(requesting_user, perm("incidents", IncidentsPerms.CHANGE_INCIDENT))
        with transaction.atomic():
            locked = lock_for_update(Incident, incident.pk)
            if locked.status in FINAL_INCIDENT_STATUSES:
                raise Conflict(f"Cannot edit a {locked.get_status_display().lower()} incident.")
            for field, value in validated_data.items():
                setattr(locked, field, value)
            locked.save()
        return locked

    @staticmethod
    def add_note(incident: Incident, content: str, requesting_user: Any) -> IncidentUpdate:
        require_permission(
            requesting_user,
            perm("incidents", IncidentsPerms.CHANGE_INCIDENT),
            perm("incidents", IncidentsPerms.CAN_CHANGE_INCIDENT_STATUS),
        )
        if incident.status == IncidentStatus.CLOSED:
            raise Conflict("Cannot add notes to a closed incident.")
        return IncidentUpdate.objects.create(
            incident=incident,
            author=requesting_user,
            content=content,
        )

    @staticmethod
    @audited("delete", "incident", target_arg="incident")
    def delete_incident(incident: Incident, requesting_user: Any) -> None:
        require_permission(requesting_user, perm("incidents", IncidentsPerms.DELETE_INCIDENT))
        with transaction.atomic():
            locked = lock_for_update(Incident, incident.pk)
            if locked.status not in DELETABLE_INCIDENT_STATUSES:
                raise Conflict(
                    f"Cannot delete an incident that is {locked.get_status_display().lower()}."
                )
            locked.delete()


# ═══════════════════════════════════════════════════════════════════
#  Assignment Service
# ═══════════════════════════════════════════════════════════════════


class IncidentAssignmentService:

    @staticmethod
    @audited("assign_officers", "incident", target_arg="incident")
    def assign_officers(incident: Incident, officer_ids: Iterable[int], requesting_user: Any) -> Incident:
        """
        Add officers to an incident.  Officers already assigned are left
        alone; only newly added ones are notified.
        """
        require_permission(
            requesting_user, perm("incidents", IncidentsPerms.CAN_ASSIGN_INCIDENT_OFFICERS),
        )
        with transaction.atomic():
            locked = lock_for_update(Incident, incident.pk)
            if locked.status == IncidentStatus.CLOSED:
                raise Conflict("Cannot assign officers to a closed incident.")
            officers = _resolve_officers(officer_ids)
            current = set(locked.assigned_officers.values_list("pk", flat=True))
            added = [o for o in officers if o.pk not in current]
            if added:
                locked.assigned_officers.add(*added)
                IncidentUpdate.objects.create(
                    incident=locked,
                    author=requesting_user,
                    content="Assigned officers: "
                    + ", ".join(f"{o.name} ({o.badge_number})" for o in added),
                )
                enqueue_notification(
                    "incident_assigned",
                    _officer_user_ids(added),
                    _incident_payload(locked),
                    related_object=locked,
                )

        logger.info("Incident %s: %d officer(s) assigned by %s", locked.pk, len(added), requesting_user)
        return locked


# ═══════════════════════════════════════════════════════════════════
#  Analytics Service
# ═══════════════════════════════════════════════════════════════════

ANALYTICS_PERMISSION = perm("incidents", IncidentsPerms.CAN_VIEW_INCIDENT_ANALYTICS)

RESOLVED_INCIDENT_STATUSES = FINAL_INCIDENT_STATUSES


def _grouped_counts(queryset: QuerySet, field: str, keys: Iterable[str]) -> dict[str, int]:
    counts = dict.fromkeys(keys, 0)
    for row in queryset.order_by().values(field).annotate(total=Count("id")):
        counts[row[field]] = row["total"]
    return counts


class IncidentAnalyticsService:
    """
    Read-only incident statistics.

    ``monthly_counts`` and ``type_counts`` cover every incident and need
    ``incidents.can_view_incident_analytics``.  ``officer_performance``
    is open to the officer's own linked account as well.
    """

    @staticmethod
    def monthly_counts(requesting_user: Any) -> list[dict[str, Any]]:
        """
        One row per calendar month (in ``TIME_ZONE``) that has incidents,
        oldest first::

            {"month": "2025-05", "reported": 3, ..., "closed": 1, "total": 9}
        """
        require_permission(
            requesting_user, ANALYTICS_PERMISSION,
            message="You do not have permission to view incident statistics.",
        )
        rows = (
            Incident.objects
            .order_by()
            .annotate(month=TruncMonth("created_at"))
            .values("month", "status")
            .annotate(total=Count("id"))
            .order_by("month", "status")
        )
        months: dict[str, dict[str, Any]] = {}
        for row in rows:
            key = row["month"].strftime("%Y-%m")
            bucket = months.setdefault(
                key, {"month": key, **dict.fromkeys(IncidentStatus.values, 0), "total": 0},
            )
            bucket[row["status"]] += row["total"]
            bucket["total"] += row["total"]
        return list(months.values())

    @staticmethod
    def type_counts(requesting_user: Any) -> list[dict[str, Any]]:
        """Incident counts per type, most frequent first."""
        require_permission(
            requesting_user, ANALYTICS_PERMISSION,
            message="You do not have permission to view incident statistics.",
        )
        labels = dict(IncidentType.choices)
        rows = (
            Incident.objects
            .order_by()
            .values("incident_type")
            .annotate(total=Count("id"))
            .order_by("-total", "incident_type")
        )
        return [
            {
                "type": row["incident_type"],
                "label": labels.get(row["incident_type"], row["incident_type"]),
                "count": row["total"],
            }
            for row in rows
        ]

    @staticmethod
    def officer_performance(officer: Officer, requesting_user: Any) -> dict[str, Any]:
        """
        Workload and resolution figures over the incidents assigned to
        ``officer``.  An incident counts as resolved once it reaches
        ``resolved`` or ``closed``; the average resolution time uses the
        incidents that carry a ``resolved_at`` timestamp.
        """
        if officer.user_id is None or officer.user_id != requesting_user.pk:
            require_permission(
                requesting_user, ANALYTICS_PERMISSION,
                message="You can only view your own performance figures.",
            )

        incidents = Incident.objects.filter(assigned_officers=officer)
        by_status = _grouped_counts(incidents, "status", IncidentStatus.values)
        by_priority = _grouped_counts(incidents, "priority", IncidentPriority.values)
        total = sum(by_status.values())
        resolved = sum(by_status[s] for s in RESOLVED_INCIDENT_STATUSES)

        durations = [
            (resolved_at - created_at).total_seconds() / 3600
            for created_at, resolved_at in incidents.filter(resolved_at__isnull=False)
            .values_list("created_at", "resolved_at")
        ]
        avg_hours = round(sum(durations) / len(durations), 2) if durations else 0.0

        return {
            "officer_id": officer.pk,
            "badge_number": officer.badge_number,
            "total_incidents": total,
            "by_status": by_status,
            "by_priority": by_priority,
            "resolved_incidents": resolved,
            "resolution_rate": round(resolved * 100 / total, 2) if total else 0.0,
            "avg_resolution_hours": avg_hours,
        }
