"""
Accounts Service Layer.

This module is the **single source of truth** for all business logic
within the ``accounts`` app.  Views stay *thin*: they validate input
through serializers, call a service method, and wrap the result in a
DRF ``Response``.

Architecture
------------
- ``UserRegistrationService``  — self-service sign-up per account type.
- ``AuthenticationService``    — multi-field login + JWT issuance.
- ``UserManagementService``    — admin listing, activate / deactivate.
- ``CurrentUserService``       — "Me" endpoint helpers.
"""

from __future__ import annotations

import logging
from typing import Any

from django.contrib.auth import authenticate as django_authenticate
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Q, QuerySet
from rest_framework_simplejwt.tokens import RefreshToken

from core.domain.access import require_permission
from core.domain.exceptions import Conflict, DomainError, NotFound
from core.permissions_constants import AccountsPerms

from .models import Role, RoleName

logger = logging.getLogger(__name__)

User = get_user_model()

#: Public sign-up account types → role granted on registration.
#: Admins are never self-registered; they are promoted via ``createsuperuser``
#: or the Django admin.
ACCOUNT_TYPE_ROLES: dict[str, str] = {
    "submitter": RoleName.SUBMITTER,
    "volunteer": RoleName.VOLUNTEER,
    "donor": RoleName.DONOR,
}


# ═══════════════════════════════════════════════════════════════════
#  Registration Service
# ═══════════════════════════════════════════════════════════════════


class UserRegistrationService:
    """Creates platform users and binds them to their role."""

    @staticmethod
    def register_user(validated_data: dict[str, Any]) -> User:
        """
        Create a new user holding the role that matches ``account_type``.

        Parameters
        ----------
        validated_data : dict
            Cleaned data from ``RegisterRequestSerializer``: ``username``,
            ``password``, ``email``, ``phone_number``, ``first_name``,
            ``last_name``, optional ``cnic`` and ``account_type``.

        Returns
        -------
        User
            The newly created user.

        Raises
        ------
        DomainError
            Unknown ``account_type``.
        Conflict
            A unique field (username, email, phone_number, cnic) is
            already taken.
        """
        validated_data.pop("password_confirm", None)
        password = validated_data.pop("password")
        account_type = validated_data.pop("account_type", "submitter")

        role_name = ACCOUNT_TYPE_ROLES.get(account_type)
        if role_name is None:
            raise DomainError(
                f"Unknown account type '{account_type}'. "
                f"Choose one of: {', '.join(ACCOUNT_TYPE_ROLES)}."
            )

        conflicts = []
        if User.objects.filter(username=validated_data.get("username")).exists():
            conflicts.append("username")
        if User.objects.filter(email__iexact=validated_data.get("email")).exists():
            conflicts.append("email")
        if User.objects.filter(phone_number=validated_data.get("phone_number")).exists():
            conflicts.append("phone_number")
        cnic = validated_data.get("cnic")
        if cnic and User.objects.filter(cnic=cnic).exists():
            conflicts.append("cnic")
        if conflicts:
            raise Conflict(
                f"The following field(s) already exist: {', '.join(conflicts)}."
            )

        # Roles are normally seeded by ``setup_rbac``; an unseeded database
        # still yields a user, just without permissions until seeding runs.
        role, created = Role.objects.get_or_create(name=role_name)
        if created:
            logger.warning(
                "Role '%s' did not exist at registration time; run setup_rbac.",
                role_name,
            )

        if not cnic:
            validated_data["cnic"] = None

        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    password=password,
                    role=role,
                    **validated_data,
                )
        except IntegrityError:
            raise Conflict(
                "A user with one of the provided unique fields already exists."
            )

        logger.info("Registered user #%d (%s) as %s", user.pk, user.username, role_name)
        return user


# ═══════════════════════════════════════════════════════════════════
#  Authentication Service
# ═══════════════════════════════════════════════════════════════════


class AuthenticationService:
    """
    Multi-field login and JWT token generation.

    Users identify with any one of username, email, CNIC or phone number.
    """

    @staticmethod
    def resolve_user(identifier: str) -> User | None:
        """Locate a user by any of the four unique identity fields."""
        try:
            return User.objects.select_related("role").get(
                Q(username=identifier)
                | Q(email__iexact=identifier)
                | Q(cnic=identifier)
                | Q(phone_number=identifier)
            )
        except (User.DoesNotExist, User.MultipleObjectsReturned):
            return None

    @staticmethod
    def authenticate(identifier: str, password: str) -> User | None:
        """
        Validate credentials through ``MultiFieldAuthBackend``.

        Returns ``None`` for unknown identifiers, wrong passwords and
        deactivated accounts alike.
        """
        return django_authenticate(identifier=identifier, password=password)

    @staticmethod
    def generate_tokens(user: User) -> dict[str, str]:
        """
        Issue a JWT access/refresh pair for ``user``.

        Returns ``{"access": "<token>", "refresh": "<token>"}``.
        """
        refresh = RefreshToken.for_user(user)
        return {
            "access": str(refresh.access_token),
            "refresh": str(refresh),
        }


# ═══════════════════════════════════════════════════════════════════
#  User Management Service
# ═══════════════════════════════════════════════════════════════════


class UserManagementService:
    """
    Administrative operations on users: listing and toggling the
    ``is_active`` flag of volunteers and donors.

    Every method requires ``accounts.can_manage_users``.
    """

    _MANAGE_PERM = f"accounts.{AccountsPerms.CAN_MANAGE_USERS}"

    @staticmethod
    def list_users(
        requesting_user: User,
        *,
        role_name: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
    ) -> QuerySet[User]:
        """
        Return a filtered queryset of users.

        Parameters
        ----------
        requesting_user : User
            Must hold ``accounts.can_manage_users``.
        role_name : str, optional
            Case-insensitive role name (e.g. ``"volunteer"``).
        is_active : bool, optional
            Filter by activation flag.
        search : str, optional
            Case-insensitive search across username, email, CNIC, phone
            and names.
        """
        require_permission(requesting_user, UserManagementService._MANAGE_PERM)

        qs = User.objects.select_related("role").order_by("username")

        if role_name:
            qs = qs.filter(role__name__iexact=role_name)
        if is_active is not None:
            qs = qs.filter(is_active=is_active)
        if search:
            qs = qs.filter(
                Q(username__icontains=search)
                | Q(email__icontains=search)
                | Q(cnic__icontains=search)
                | Q(phone_number__icontains=search)
                | Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
            )
        return qs

    @staticmethod
    def get_user(user_id: int, requesting_user: User) -> User:
        require_permission(requesting_user, UserManagementService._MANAGE_PERM)
        try:
            return User.objects.select_related("role").get(pk=user_id)
        except User.DoesNotExist:
            raise NotFound(f"User with id {user_id} not found.")

    @staticmethod
    def activate_user(user_id: int, performed_by: User) -> User:
        """Set ``is_active=True`` on the target user."""
        return UserManagementService._set_active(user_id, performed_by, active=True)

    @staticmethod
    def deactivate_user(user_id: int, performed_by: User) -> User:
        """
        Set ``is_active=False`` on the target user.

        A deactivated volunteer stays on any case already assigned to
        them but can no longer log in, record verdicts or receive new
        assignments.  Self-deactivation is refused.
        """
        return UserManagementService._set_active(user_id, performed_by, active=False)

    @staticmethod
    def _set_active(user_id: int, performed_by: User, *, active: bool) -> User:
        require_permission(performed_by, UserManagementService._MANAGE_PERM)

        try:
            target_user = User.objects.select_related("role").get(pk=user_id)
        except User.DoesNotExist:
            raise NotFound(f"User with id {user_id} not found.")

        if not active and target_user.pk == performed_by.pk:
            raise DomainError("You cannot deactivate your own account.")

        if target_user.is_active != active:
            target_user.is_active = active
            target_user.save(update_fields=["is_active"])
            logger.info(
                "User #%d %s by #%d",
                target_user.pk,
                "activated" if active else "deactivated",
                performed_by.pk,
            )
        return target_user


# ═══════════════════════════════════════════════════════════════════
#  Current User (Me) Service
# ═══════════════════════════════════════════════════════════════════


class CurrentUserService:
    """
    Helpers for the "Me" endpoint, which is how a client discovers who
    is logged in, which role they hold and the flat list of permission
    strings used to toggle UI modules.
    """

    @staticmethod
    def get_profile(user: User) -> User:
        """Re-fetch ``user`` with role and permissions preloaded."""
        return (
            User.objects.select_related("role")
            .prefetch_related("role__permissions__content_type")
            .get(pk=user.pk)
        )

    @staticmethod
    def update_profile(user: User, validated_data: dict[str, Any]) -> User:
        """
        Update the authenticated user's own contact fields.

        ``role``, ``is_active`` and ``username`` are not editable here.
        """
        if not validated_data:
            return CurrentUserService.get_profile(user)

        clashes = [
            field
            for field in ("email", "phone_number", "cnic")
            if validated_data.get(field)
            and User.objects.exclude(pk=user.pk).filter(**{field: validated_data[field]}).exists()
        ]
        if clashes:
            raise Conflict(
                f"The following field(s) already exist: {', '.join(clashes)}."
            )

        for field, value in validated_data.items():
            setattr(user, field, value)
        user.save(update_fields=list(validated_data.keys()))
        return CurrentUserService.get_profile(user)
