"""
Accounts app models.

Defines the permission-carrying Role and a custom User model that extends
Django's ``AbstractUser``.  The platform knows four roles (Admin,
Volunteer, Submitter, Donor); every capability check elsewhere in the
code goes through ``User.has_perm`` so that roles stay data, not code.
"""

from django.contrib.auth.models import AbstractUser, Permission
from django.db import models

from core.permissions_constants import AccountsPerms


class RoleName:
    """Names of the roles seeded by ``setup_rbac``."""

    ADMIN = "Admin"
    VOLUNTEER = "Volunteer"
    SUBMITTER = "Submitter"
    DONOR = "Donor"


class Role(models.Model):
    """
    Named bundle of Django permissions.

    ``hierarchy_level`` orders roles for display and JWT claims only
    (Admin=100 … Donor=10); it never grants anything by itself.

    Custom workflow permissions are declared in each model's
    ``Meta.permissions`` using the constants in
    ``core.permissions_constants``.  The ``setup_rbac`` management command
    links them to ``Role`` rows; it never creates permissions itself.
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
        help_text="Higher value = more authority (e.g. Admin=100, Donor=10).",
    )
    permissions = models.ManyToManyField(
        Permission,
        blank=True,
        verbose_name="Permissions",
        help_text="Permissions granted to every user holding this role.",
    )

    class Meta:
        verbose_name = "Role"
        verbose_name_plural = "Roles"
        ordering = ["-hierarchy_level"]

    def __str__(self):
        return self.name


class User(AbstractUser):
    """
    Platform identity: admins, volunteers, case submitters and donors.

    Login is supported via *any one* of username / email / CNIC /
    phone_number together with the password (see
    ``accounts.backends.MultiFieldAuthBackend``).

    ``is_active`` doubles as the admin's on/off switch for volunteers and
    donors: a deactivated user authenticates nowhere and holds no
    permissions, so they can neither be assigned nor donate.
    """

    cnic = models.CharField(
        max_length=15,
        unique=True,
        null=True,
        blank=True,
        verbose_name="CNIC",
        help_text="Computerised National Identity Card number (e.g. 42101-1234567-1).",
    )
    phone_number = models.CharField(
        max_length=20,
        unique=True,
        verbose_name="Phone Number",
        db_index=True,
    )
    email = models.EmailField(
        unique=True,
        verbose_name="Email Address",
    )

    # ── Single-role assignment ──────────────────────────────────────
    role = models.ForeignKey(
        Role,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="users",
        verbose_name="Assigned Role",
    )

    REQUIRED_FIELDS = ["email", "phone_number", "first_name", "last_name"]

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"
        permissions = [
            (AccountsPerms.CAN_MANAGE_USERS, "Admin-level user management"),
        ]

    def __str__(self):
        role_name = self.role.name if self.role else "No Role"
        return f"{self.username} ({self.get_full_name()}) - {role_name}"

    def has_role(self, role_name: str) -> bool:
        """Check if the user's current role matches the given name."""
        return self.role is not None and self.role.name == role_name

    @property
    def hierarchy_level(self) -> int:
        return self.role.hierarchy_level if self.role else 0

    # ── Role-backed permission resolution ───────────────────────────

    def get_all_permissions(self, obj=None) -> set:
        """
        Return the ``app_label.codename`` strings granted to this user.

        Inactive users hold nothing.  Superusers hold every permission in
        the database.  Everyone else holds exactly what their role grants;
        per-user and group permissions are not consulted.
        """
        if not self.is_active:
            return set()

        if self.is_superuser:
            if not hasattr(self, "_superuser_perm_cache"):
                perms = Permission.objects.select_related("content_type")
                self._superuser_perm_cache = {
                    f"{p.content_type.app_label}.{p.codename}" for p in perms
                }
            return self._superuser_perm_cache

        return self.get_role_permissions()

    def get_role_permissions(self) -> set:
        """Permissions granted by the role alone, ignoring superuser status."""
        if self.role_id is None:
            return set()

        if not hasattr(self, "_role_perm_cache"):
            perms = self.role.permissions.select_related("content_type")
            self._role_perm_cache = {
                f"{p.content_type.app_label}.{p.codename}" for p in perms
            }
        return self._role_perm_cache

    def role_grants(self, perm: str) -> bool:
        """True when the user is active and their role carries ``perm``."""
        return self.is_active and perm in self.get_role_permissions()

    def has_perm(self, perm: str, obj=None) -> bool:
        if self.is_active and self.is_superuser:
            return True
        return perm in self.get_all_permissions(obj)

    def has_perms(self, perm_list, obj=None) -> bool:
        return all(self.has_perm(perm, obj) for perm in perm_list)

    def has_module_perms(self, app_label: str) -> bool:
        if self.is_active and self.is_superuser:
            return True
        return any(
            perm.startswith(f"{app_label}.") for perm in self.get_all_permissions()
        )

    def clear_permission_cache(self) -> None:
        """Drop cached permissions after a role change on this instance."""
        for attr in ("_superuser_perm_cache", "_role_perm_cache"):
            if hasattr(self, attr):
                delattr(self, attr)

    @property
    def permissions_list(self) -> list[str]:
        """Sorted permission strings, for JWT claims and the /me payload."""
        return sorted(self.get_all_permissions())
