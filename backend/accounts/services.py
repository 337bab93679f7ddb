"""
Accounts Service Layer.

This module is the **single source of truth** for all business logic
within the ``accounts`` app.  Views must remain *thin*: they validate
input through serializers, call a service method, and return the result
wrapped in a DRF ``Response``.

Architecture
------------
- ``UserRegistrationService``  — new-user creation with the default role.
- ``UserManagementService``    — listing, role assignment, activation.
- ``CurrentUserService``       — "Me" endpoint helpers.
"""

from __future__ import annotations

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Q, QuerySet

from core.domain.access import require_permission
from core.domain.audit import audited
from core.domain.exceptions import Conflict, DomainError, NotFound, PermissionDenied
from core.permissions_constants import AccountsPerms, perm

from .models import Role

logger = logging.getLogger(__name__)

User = get_user_model()

DEFAULT_ROLE_NAME = "Citizen"
ADMIN_ROLE_NAME = "System Admin"


# ═══════════════════════════════════════════════════════════════════
#  Registration Service
# ═══════════════════════════════════════════════════════════════════


class UserRegistrationService:

    @staticmethod
    def get_default_role() -> Role:
        """Return the "Citizen" role, creating it when RBAC was never seeded."""
        role, created = Role.objects.get_or_create(
            name=DEFAULT_ROLE_NAME,
            defaults={
                "hierarchy_level": 0,
                "description": "Default role for newly registered users.",
            },
        )
        if created:
            logger.warning("Default role %r was missing and has been created.", DEFAULT_ROLE_NAME)
        return role

    @staticmethod
    def register_user(validated_data: dict[str, Any]) -> User:
        """
        Create a new user holding the default "Citizen" role.

        ``validated_data`` comes from ``RegisterRequestSerializer``;
        ``password_confirm`` has already been consumed.

        Raises:
            Conflict: If username, email or phone number is already taken.
        """
        validated_data = dict(validated_data)
        validated_data.pop("password_confirm", None)
        password = validated_data.pop("password")

        conflicts = []
        if User.objects.filter(username=validated_data.get("username")).exists():
            conflicts.append("username")
        if User.objects.filter(email__iexact=validated_data.get("email")).exists():
            conflicts.append("email")
        phone = validated_data.get("phone_number")
        if phone and User.objects.filter(phone_number=phone).exists():
            conflicts.append("phone_number")
        if conflicts:
            raise Conflict(
                f"The following field(s) already exist: {', '.join(conflicts)}."
            )

        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    password=password,
                    role=UserRegistrationService.get_default_role(),
                    **validated_data,
                )
        except IntegrityError:
            raise Conflict(
                "A user with one of the provided unique fields already exists."
            )

        logger.info("Registered user %s (id=%s)", user.username, user.pk)
        return user


# ═══════════════════════════════════════════════════════════════════
#  User Management Service
# ═══════════════════════════════════════════════════════════════════


def _is_admin(user: User) -> bool:
    return user.is_superuser or user.has_role(ADMIN_ROLE_NAME)


class UserManagementService:
    """
    Administrative operations on users.

    Every method requires ``accounts.can_manage_users``.  Non-admin
    managers may only act on users ranked strictly below them.
    """

    @staticmethod
    def _require_manager(requesting_user: User) -> None:
        require_permission(
            requesting_user,
            perm("accounts", AccountsPerms.CAN_MANAGE_USERS),
            message="You do not have permission to manage users.",
        )

    @staticmethod
    def _get(user_id: int) -> User:
        try:
            return User.objects.select_related("role").get(pk=user_id)
        except (User.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"User with id {user_id} not found.")

    @staticmethod
    def list_users(
        requesting_user: User,
        *,
        role_id: int | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> QuerySet[User]:
        UserManagementService._require_manager(requesting_user)

        qs = User.objects.select_related("role").order_by("username")
        if role_id is not None:
            qs = qs.filter(role_id=role_id)
        if is_active is not None:
            qs = qs.filter(is_active=is_active)
        if search:
            qs = qs.filter(
                Q(username__icontains=search)
                | Q(email__icontains=search)
                | Q(phone_number__icontains=search)
                | Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
            )
        return qs

    @staticmethod
    def get_user(requesting_user: User, user_id: int) -> User:
        UserManagementService._require_manager(requesting_user)
        return UserManagementService._get(user_id)

    @staticmethod
    @audited("assign_role", "user")
    def assign_role(*, user_id: int, role_id: int, requesting_user: User) -> User:
        """
        Assign (or change) a user's role.

        A System Admin may assign any role.  Anyone else holding
        ``can_manage_users`` needs a hierarchy level strictly above both
        the target's current role and the new role.
        """
        UserManagementService._require_manager(requesting_user)
        target_user = UserManagementService._get(user_id)

        try:
            new_role = Role.objects.get(pk=role_id)
        except Role.DoesNotExist:
            raise NotFound(f"Role with id {role_id} not found.")

        if not _is_admin(requesting_user):
            level = requesting_user.hierarchy_level
            if level <= target_user.hierarchy_level or level <= new_role.hierarchy_level:
                raise PermissionDenied(
                    "You do not have sufficient authority to assign this role."
                )

        target_user.role = new_role
        target_user.save(update_fields=["role"])
        target_user.clear_permission_cache()

        logger.info(
            "Role of user %s set to %r by %s",
            target_user.username,
            new_role.name,
            requesting_user.username,
        )
        return target_user

    @staticmethod
    def _set_active(user_id: int, requesting_user: User, active: bool) -> User:
        UserManagementService._require_manager(requesting_user)
        target_user = UserManagementService._get(user_id)

        if not active and target_user.pk == requesting_user.pk:
            raise DomainError("You cannot deactivate your own account.")

        if not _is_admin(requesting_user) and requesting_user.hierarchy_level <= target_user.hierarchy_level:
            raise PermissionDenied(
                "You do not have sufficient authority to change this user's status."
            )

        target_user.is_active = active
        target_user.save(update_fields=["is_active"])
        return target_user

    @staticmethod
    @audited("activate", "user")
    def activate_user(user_id: int, requesting_user: User) -> User:
        return UserManagementService._set_active(user_id, requesting_user, True)

    @staticmethod
    @audited("deactivate", "user")
    def deactivate_user(user_id: int, requesting_user: User) -> User:
        return UserManagementService._set_active(user_id, requesting_user, False)

    @staticmethod
    def list_roles() -> QuerySet[Role]:
        return Role.objects.all()


# ═══════════════════════════════════════════════════════════════════
#  Current User (Me) Service
# ═══════════════════════════════════════════════════════════════════


class CurrentUserService:

    @staticmethod
    def get_profile(user: User) -> User:
        """Re-fetch ``user`` with role and permissions prefetched."""
        return (
            User.objects.select_related("role")
            .prefetch_related("role__permissions__content_type")
            .get(pk=user.pk)
        )

    @staticmethod
    def update_profile(user: User, validated_data: dict[str, Any]) -> User:
        """
        Update the caller's own profile fields (email, phone_number,
        first_name, last_name).  Role, username and activation are not
        self-editable.
        """
        if validated_data:
            for field, value in validated_data.items():
                setattr(user, field, value)
            user.save(update_fields=list(validated_data.keys()))
        return CurrentUserService.get_profile(user)
