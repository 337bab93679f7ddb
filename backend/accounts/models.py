"""
Accounts app models.

Defines the dynamic Role system and a custom User model that extends
Django's ``AbstractUser``.  Citizens, officers, supervisors and
administrators all share one ``User`` table; what they may do is decided
by the permissions attached to their single ``Role``.
"""

from django.contrib.auth.models import AbstractUser, Permission, UserManager
from django.db import models
from django.db.models import Q

from core.permissions_constants import AccountsPerms


class Role(models.Model):
    """
    Dynamic, admin-manageable role.

    ``hierarchy_level`` encodes relative authority (System Admin >
    Supervisor > Police Officer > Citizen) and is used when deciding who
    may re-assign whose role.

    Default roles are seeded by ``python manage.py setup_rbac``:
        System Admin, Supervisor, Police Officer, Citizen.

    Custom workflow permissions are declared as constants in
    ``core.permissions_constants`` and registered in each model's
    ``Meta.permissions``.  ``setup_rbac`` only links existing permissions
    to roles; it never creates them.
    """

    name = models.CharField(
        max_length=100,
        unique=True,
        verbose_name="Role Name",
    )
    description = models.TextField(
        blank=True,
        default="",
        verbose_name="Description",
    )
    hierarchy_level = models.PositiveSmallIntegerField(
        default=0,
        verbose_name="Hierarchy Level",
        help_text="Higher value = more authority (e.g. System Admin=100, Citizen=0).",
    )
    permissions = models.ManyToManyField(
        Permission,
        blank=True,
        verbose_name="Permissions",
        help_text="Specific permissions for this role.",
    )

    class Meta:
        verbose_name = "Role"
        verbose_name_plural = "Roles"
        ordering = ["-hierarchy_level"]

    def __str__(self):
        return self.name


class AccountUserManager(UserManager):

    def with_permission(self, permission: str):
        """
        Active users holding ``permission`` (``"app_label.codename"``)
        through their role, plus active superusers.
        """
        app_label, codename = permission.split(".", 1)
        return (
            self.filter(is_active=True)
            .filter(
                Q(is_superuser=True)
                | Q(
                    role__permissions__codename=codename,
                    role__permissions__content_type__app_label=app_label,
                )
            )
            .distinct()
        )


class User(AbstractUser):
    """
    Custom user model.

    Login is supported via *any one* of username / email / phone_number
    together with the password (see ``accounts.backends``).

    Each user holds exactly **one** role at a time (FK to ``Role``).
    New users register as "Citizen"; an administrator then assigns the
    appropriate role.
    """

    phone_number = models.CharField(
        max_length=20,
        unique=True,
        null=True,
        blank=True,
        verbose_name="Phone Number",
        db_index=True,
    )
    email = models.EmailField(
        unique=True,
        verbose_name="Email Address",
    )

    # ── Single-role assignment (dynamic RBAC) ────────────────────────
    role = models.ForeignKey(
        Role,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="users",
        verbose_name="Assigned Role",
    )

    objects = AccountUserManager()

    REQUIRED_FIELDS = ["email"]

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"
        permissions = [
            (AccountsPerms.CAN_MANAGE_USERS, "Admin-level user management"),
        ]

    def __str__(self):
        role_name = self.role.name if self.role else "No Role"
        return f"{self.username} - {role_name}"

    def has_role(self, role_name: str) -> bool:
        return self.role is not None and self.role.name == role_name

    @property
    def hierarchy_level(self) -> int:
        """Return the hierarchy_level of the user's role (0 if none)."""
        return self.role.hierarchy_level if self.role else 0

    # ── RBAC Permission Overrides ────────────────────────────────────

    def get_all_permissions(self, obj=None) -> set:
        """
        Return the set of ``'app_label.codename'`` strings granted to the
        user.  Superusers get every permission; everyone else gets exactly
        what their role carries.  The result is cached on the instance.
        """
        if not self.is_active:
            return set()

        if self.is_superuser:
            if not hasattr(self, "_superuser_perm_cache"):
                perms = Permission.objects.select_related("content_type").all()
                self._superuser_perm_cache = {
                    f"{p.content_type.app_label}.{p.codename}" for p in perms
                }
            return self._superuser_perm_cache

        if not self.role_id:
            return set()

        if not hasattr(self, "_perm_cache"):
            perms = self.role.permissions.select_related("content_type")
            self._perm_cache = {f"{p.content_type.app_label}.{p.codename}" for p in perms}

        return self._perm_cache

    def has_perm(self, perm: str, obj=None) -> bool:
        if self.is_active and self.is_superuser:
            return True
        return perm in self.get_all_permissions(obj)

    def has_perms(self, perm_list, obj=None) -> bool:
        return all(self.has_perm(perm, obj) for perm in perm_list)

    def has_module_perms(self, app_label: str) -> bool:
        if self.is_active and self.is_superuser:
            return True
        return any(perm.startswith(f"{app_label}.") for perm in self.get_all_permissions())

    @property
    def permissions_list(self) -> list[str]:
        """Sorted permission strings, as exposed in JWT claims and ``/me/``."""
        return sorted(self.get_all_permissions())

    def clear_permission_cache(self) -> None:
        for attr in ("_perm_cache", "_superuser_perm_cache"):
            if hasattr(self, attr):
                delattr(self, attr)
