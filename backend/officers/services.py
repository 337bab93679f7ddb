"""
Officers Service Layer.

``OfficerDirectory`` is the read-only lookup the shift validator depends
on; ``OfficerService`` holds the CRUD workflow behind ``/api/officers/``.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from django.db import DatabaseError
from django.db.models import Q, QuerySet

from core.domain.access import require_permission
from core.domain.audit import audited
from core.domain.exceptions import LookupFailure, NotFound
from core.permissions_constants import OfficersPerms, perm

from .models import Officer

logger = logging.getLogger(__name__)


class OfficerDirectory:
    """
    Resolves officer ids to ``Officer`` rows.

    Only active officers are visible: a deactivated officer is reported
    as missing to anything that tries to schedule them.
    """

    def find_officers_by_ids(self, officer_ids: Iterable[int]) -> list[Officer]:
        ids = set(officer_ids)
        if not ids:
            return []
        try:
            return list(Officer.objects.filter(pk__in=ids, is_active=True).order_by("pk"))
        except DatabaseError as exc:
            raise LookupFailure("officer directory") from exc


class OfficerService:

    @staticmethod
    def list_officers(
        requesting_user: Any,
        *,
        status: str | None = None,
        district: str | None = None,
        search: str | None = None,
        include_inactive: bool = False,
    ) -> QuerySet[Officer]:
        require_permission(requesting_user, perm("officers", OfficersPerms.VIEW_OFFICER))

        qs = Officer.objects.select_related("user")
        if not include_inactive:
            qs = qs.filter(is_active=True)
        if status:
            qs = qs.filter(status=status)
        if district:
            qs = qs.filter(district__iexact=district)
        if search:
            qs = qs.filter(
                Q(name__icontains=search)
                | Q(badge_number__icontains=search)
                | Q(email__icontains=search)
            )
        return qs

    @staticmethod
    def get_officer(officer_id: int, requesting_user: Any) -> Officer:
        require_permission(requesting_user, perm("officers", OfficersPerms.VIEW_OFFICER))
        try:
            return Officer.objects.select_related("user").get(pk=officer_id)
        except (Officer.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Officer with id {officer_id} not found.")

    @staticmethod
    def get_by_badge(badge_number: str, requesting_user: Any) -> Officer:
        require_permission(requesting_user, perm("officers", OfficersPerms.VIEW_OFFICER))
        try:
            return Officer.objects.select_related("user").get(badge_number=badge_number.strip())
        except Officer.DoesNotExist:
            raise NotFound(f"Officer with badge number {badge_number} not found.")

    @staticmethod
    def get_linked_officer(user: Any) -> Officer:
        """The officer profile of ``user``'s own account."""
        try:
            return Officer.objects.select_related("user").get(user=user)
        except Officer.DoesNotExist:
            raise NotFound("No officer profile is linked to your account.")

    @staticmethod
    @audited("create", "officer")
    def create_officer(validated_data: dict[str, Any], requesting_user: Any) -> Officer:
        require_permission(requesting_user, perm("officers", OfficersPerms.ADD_OFFICER))
        officer = Officer.objects.create(**validated_data)
        logger.info("Officer %s created by %s", officer.badge_number, requesting_user)
        return officer

    @staticmethod
    @audited("update", "officer")
    def update_officer(officer: Officer, validated_data: dict[str, Any], requesting_user: Any) -> Officer:
        require_permission(requesting_user, perm("officers", OfficersPerms.CHANGE_OFFICER))
        for field, value in validated_data.items():
            setattr(officer, field, value)
        officer.save()
        return officer

    @staticmethod
    @audited("deactivate", "officer")
    def deactivate_officer(officer: Officer, requesting_user: Any) -> Officer:
        """
        Soft-delete: the row is kept so historical shifts and incidents
        still reference it.
        """
        require_permission(requesting_user, perm("officers", OfficersPerms.CHANGE_OFFICER))
        if officer.is_active:
            officer.is_active = False
            officer.save(update_fields=["is_active", "updated_at"])
            logger.info("Officer %s deactivated by %s", officer.badge_number, requesting_user)
        return officer
