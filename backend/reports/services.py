"""
Reports app Service Layer.

Citizens file reports; reviewers (``reports.can_review_reports``) see
all of them, move them through their lifecycle and, with
``reports.can_convert_report``, turn them into incidents.

Status lifecycle
----------------
  PENDING → IN_REVIEW | IN_PROGRESS | RESOLVED | REJECTED
  IN_REVIEW → IN_PROGRESS | RESOLVED | REJECTED
  IN_PROGRESS → RESOLVED | REJECTED
  {PENDING, IN_REVIEW, IN_PROGRESS, RESOLVED} → CONVERTED   (conversion only)

REJECTED and CONVERTED are final.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from core.domain.access import apply_permission_scope, require_permission
from core.domain.audit import audited
from core.domain.exceptions import Conflict, DomainError, NotFound, PermissionDenied
from core.domain.tasks import enqueue_notification
from core.domain.transactions import atomic_transition, lock_for_update
from core.permissions_constants import ReportsPerms, perm
from incidents.models import Incident
from incidents.services import IncidentCreationService

from .models import Report, ReportStatus

logger = logging.getLogger(__name__)


REPORT_TRANSITIONS: dict[str, set[str]] = {
    ReportStatus.PENDING: {
        ReportStatus.IN_REVIEW,
        ReportStatus.IN_PROGRESS,
        ReportStatus.RESOLVED,
        ReportStatus.REJECTED,
    },
    ReportStatus.IN_REVIEW: {ReportStatus.IN_PROGRESS, ReportStatus.RESOLVED, ReportStatus.REJECTED},
    ReportStatus.IN_PROGRESS: {ReportStatus.RESOLVED, ReportStatus.REJECTED},
}

NON_CONVERTIBLE_STATUSES = frozenset({ReportStatus.REJECTED, ReportStatus.CONVERTED})

CLOSING_STATUSES = frozenset({ReportStatus.RESOLVED, ReportStatus.REJECTED})

REVIEW_PERMISSION = perm("reports", ReportsPerms.CAN_REVIEW_REPORTS)

REPORT_SCOPE_RULES = [
    (REVIEW_PERMISSION, lambda qs, u: qs),
    (perm("reports", ReportsPerms.VIEW_REPORT), lambda qs, u: qs.filter(created_by=u)),
]


def _is_reviewer(user: Any) -> bool:
    return user.has_perm(REVIEW_PERMISSION)


def _report_payload(report: Report, **extra: Any) -> dict[str, Any]:
    return {
        "report_id": report.pk,
        "title": report.title,
        "report_type": report.get_report_type_display(),
        "status": report.get_status_display(),
        **extra,
    }


class ReportService:

    # ═══════════════════════════════════════════════════════════════
    #  Queries
    # ═══════════════════════════════════════════════════════════════

    @staticmethod
    def list_reports(
        requesting_user: Any,
        *,
        status: str | None = None,
        report_type: str | None = None,
        priority: str | None = None,
        search: str | None = None,
    ) -> QuerySet[Report]:
        """Reviewers see every report; everybody else only their own."""
        qs = apply_permission_scope(
            Report.objects.select_related("created_by", "reviewed_by", "incident"),
            requesting_user,
            scope_rules=REPORT_SCOPE_RULES,
        )
        if status:
            qs = qs.filter(status=status)
        if report_type:
            qs = qs.filter(report_type=report_type)
        if priority:
            qs = qs.filter(priority=priority)
        if search:
            qs = qs.filter(
                Q(title__icontains=search)
                | Q(description__icontains=search)
                | Q(location_address__icontains=search)
            )
        return qs

    @staticmethod
    def get_report(report_id: Any, requesting_user: Any) -> Report:
        try:
            return ReportService.list_reports(requesting_user).get(pk=report_id)
        except (Report.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Report with id {report_id} not found.")

    # ═══════════════════════════════════════════════════════════════
    #  Writes
    # ═══════════════════════════════════════════════════════════════

    @staticmethod
    @audited("create", "report")
    def create_report(validated_data: dict[str, Any], requesting_user: Any) -> Report:
        """
        File a report as ``requesting_user`` and queue a ``report_created``
        notification for every reviewer.
        """
        require_permission(requesting_user, perm("reports", ReportsPerms.ADD_REPORT))
        with transaction.atomic():
            report = Report.objects.create(created_by=requesting_user, **validated_data)
            reviewers = (
                get_user_model().objects
                .with_permission(REVIEW_PERMISSION)
                .exclude(pk=requesting_user.pk)
                .values_list("pk", flat=True)
            )
            enqueue_notification(
                "report_created",
                reviewers,
                _report_payload(report),
                related_object=report,
            )
        logger.info("Report %s filed by %s", report.pk, requesting_user)
        return report

    @staticmethod
    @audited("update", "report", target_arg="report")
    def update_report(report: Report, validated_data: dict[str, Any], requesting_user: Any) -> Report:
        """
        The author may edit a report while it is still pending; reviewers
        may edit any report that is not final.
        """
        with transaction.atomic():
            locked = lock_for_update(Report, report.pk)
            if _is_reviewer(requesting_user):
                if locked.status in NON_CONVERTIBLE_STATUSES:
                    raise Conflict(f"Cannot edit a report that is {locked.get_status_display().lower()}.")
            elif locked.created_by_id != requesting_user.pk:
                raise PermissionDenied("Only the author or a reviewer can edit this report.")
            elif locked.status != ReportStatus.PENDING:
                raise Conflict("Reports can only be edited while pending review.")

            for field, value in validated_data.items():
                setattr(locked, field, value)
            locked.save()
        return locked

    @staticmethod
    @audited("delete", "report", target_arg="report")
    def delete_report(report: Report, requesting_user: Any) -> None:
        is_author = report.created_by_id == requesting_user.pk
        if not is_author:
            require_permission(requesting_user, perm("reports", ReportsPerms.DELETE_REPORT))
        elif report.status != ReportStatus.PENDING:
            raise Conflict("Reports can only be withdrawn while pending review.")
        if report.status == ReportStatus.CONVERTED:
            raise Conflict("A converted report is referenced by its incident and cannot be deleted.")
        report.delete()

    @staticmethod
    @audited("transition", "report", target_arg="report")
    def change_status(
        report: Report,
        target_status: str,
        requesting_user: Any,
        notes: str = "",
    ) -> Report:
        """
        Move a report through its review lifecycle and notify its author.

        ``converted`` is refused here; use ``convert_to_incident``.
        """
        require_permission(requesting_user, REVIEW_PERMISSION)
        if target_status == ReportStatus.CONVERTED:
            raise DomainError("Reports are converted through the convert-to-incident operation.")

        extra: dict[str, Any] = {"reviewed_by": requesting_user}
        if notes:
            extra["resolution_notes"] = notes
        if target_status in CLOSING_STATUSES:
            extra["resolved_at"] = timezone.now()

        with transaction.atomic():
            report = atomic_transition(
                instance=report,
                target_status=target_status,
                transitions=REPORT_TRANSITIONS,
                extra_values=extra,
            )
            if report.created_by_id and report.created_by_id != requesting_user.pk:
                enqueue_notification(
                    "report_status_changed",
                    [report.created_by_id],
                    _report_payload(report),
                    related_object=report,
                )

        logger.info("Report %s moved to %s by %s", report.pk, target_status, requesting_user)
        return report

    @staticmethod
    @audited("create_from_report", "incident")
    def convert_to_incident(
        report: Report,
        requesting_user: Any,
        *,
        priority: str | None = None,
        officer_ids: Iterable[int] = (),
        notes: str = "",
    ) -> Incident:
        """
        Open an incident from ``report`` and mark the report converted.

        Raises:
            PermissionDenied: without ``reports.can_convert_report``.
            Conflict:         the report is rejected or already converted.
            DomainError:      an officer id does not resolve
                              (``code="officers_not_found"``).
        """
        require_permission(requesting_user, perm("reports", ReportsPerms.CAN_CONVERT_REPORT))

        with transaction.atomic():
            locked = lock_for_update(Report, report.pk)
            if locked.status == ReportStatus.CONVERTED:
                raise Conflict(f"Report #{locked.pk} has already been converted to an incident.")
            if locked.status == ReportStatus.REJECTED:
                raise Conflict("Cannot convert a rejected report to an incident.")

            incident = IncidentCreationService.create_from_report(
                locked,
                priority=priority,
                officer_ids=officer_ids,
                notes=notes,
                converted_by=requesting_user,
            )

            locked.status = ReportStatus.CONVERTED
            locked.reviewed_by = requesting_user
            locked.resolved_at = timezone.now()
            locked.resolution_notes = f"Converted to incident #{incident.pk}." + (
                f"\n\n{notes}" if notes else ""
            )
            locked.save(update_fields=["status", "reviewed_by", "resolved_at", "resolution_notes", "updated_at"])

            if locked.created_by_id:
                enqueue_notification(
                    "report_converted",
                    [locked.created_by_id],
                    _report_payload(locked, incident_id=incident.pk),
                    related_object=incident,
                )

        logger.info("Report %s converted to incident %s by %s", locked.pk, incident.pk, requesting_user)
        return incident
