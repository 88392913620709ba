"""
Accounts app serializers.

Request and response serializers for the accounts API.  Serializers
handle field definitions, formats and cross-field checks.  **No business
logic** lives here; uniqueness and role binding are decided in
``services.py``.
"""

from __future__ import annotations

import re
from typing import Any

from django.contrib.auth import authenticate, get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import Role
from .services import ACCOUNT_TYPE_ROLES

User = get_user_model()

CNIC_PATTERN = re.compile(r"^\d{5}-?\d{7}-?\d$")
PHONE_PATTERN = re.compile(r"^(\+92|0)?3\d{2}-?\d{7}$")


def _validate_phone(value: str) -> str:
    if not PHONE_PATTERN.match(value):
        raise serializers.ValidationError(
            "Phone number must be a valid Pakistani mobile number (e.g. 03001234567)."
        )
    return value


def _validate_cnic(value: str | None) -> str | None:
    if value and not CNIC_PATTERN.match(value):
        raise serializers.ValidationError(
            "CNIC must be 13 digits, optionally dashed as 12345-1234567-1."
        )
    return value


# ═══════════════════════════════════════════════════════════════════
#  Authentication Serializers
# ═══════════════════════════════════════════════════════════════════


class RegisterRequestSerializer(serializers.ModelSerializer):
    """
    Validates new-user registration data.

    Required fields: username, password, password_confirm, email,
    phone_number, first_name, last_name.  ``account_type`` picks the role
    (submitter by default).  Uniqueness is checked by the service so that
    duplicates surface as 409 rather than 400.
    """

    password = serializers.CharField(
        write_only=True,
        min_length=8,
        style={"input_type": "password"},
        help_text="Minimum 8 characters.",
    )
    password_confirm = serializers.CharField(
        write_only=True,
        style={"input_type": "password"},
        help_text="Must match 'password'.",
    )
    account_type = serializers.ChoiceField(
        choices=sorted(ACCOUNT_TYPE_ROLES),
        default="submitter",
        write_only=True,
        help_text="Which kind of account to open: submitter, volunteer or donor.",
    )

    class Meta:
        model = User
        fields = [
            "username",
            "password",
            "password_confirm",
            "email",
            "phone_number",
            "first_name",
            "last_name",
            "cnic",
            "account_type",
        ]
        extra_kwargs = {
            "username": {"validators": []},
            "email": {"required": True, "validators": []},
            "phone_number": {"required": True, "validators": []},
            "cnic": {"required": False, "validators": []},
            "first_name": {"required": True},
            "last_name": {"required": True},
        }

    def validate_phone_number(self, value: str) -> str:
        return _validate_phone(value)

    def validate_cnic(self, value: str | None) -> str | None:
        return _validate_cnic(value)

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if attrs["password"] != attrs["password_confirm"]:
            raise serializers.ValidationError(
                {"password_confirm": "Passwords do not match."}
            )
        attrs.pop("password_confirm")
        return attrs


class LoginRequestSerializer(serializers.Serializer):
    """Schema-only: the multi-field login payload."""

    identifier = serializers.CharField(
        help_text="Username, email, CNIC or phone number.",
    )
    password = serializers.CharField(
        write_only=True,
        style={"input_type": "password"},
    )


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    SimpleJWT serializer that:

    1. Accepts ``identifier`` + ``password`` instead of
       ``username`` + ``password``.
    2. Resolves the user via ``MultiFieldAuthBackend``.
    3. Injects ``role``, ``hierarchy_level`` and ``permissions_list``
       claims into the token payload.
    """

    username_field = "identifier"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields.pop(self.username_field, None)
        self.fields["identifier"] = serializers.CharField(
            help_text="Username, email, CNIC or phone number.",
        )

    @classmethod
    def get_token(cls, user) -> Any:
        token = super().get_token(user)
        token["role"] = user.role.name if user.role else None
        token["hierarchy_level"] = user.hierarchy_level
        token["permissions_list"] = user.permissions_list
        return token

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        user = authenticate(
            request=self.context.get("request"),
            identifier=attrs.get("identifier"),
            password=attrs.get("password"),
        )

        # The backend refuses inactive users, so a disabled account
        # reads as invalid credentials.
        if user is None:
            raise serializers.ValidationError(
                {"detail": "Invalid credentials."},
                code="authentication",
            )

        refresh = self.get_token(user)
        self.user = user
        return {
            "access": str(refresh.access_token),
            "refresh": str(refresh),
        }


class TokenResponseSerializer(serializers.Serializer):
    """Schema-only: the login response body."""

    access = serializers.CharField(read_only=True)
    refresh = serializers.CharField(read_only=True)
    user = serializers.SerializerMethodField()

    def get_user(self, obj: dict) -> dict | None:
        user = obj.get("user")
        return UserDetailSerializer(user).data if user else None


# ═══════════════════════════════════════════════════════════════════
#  User Serializers
# ═══════════════════════════════════════════════════════════════════


class RoleSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Role
        fields = ["id", "name", "description", "hierarchy_level"]
        read_only_fields = fields


class UserListSerializer(serializers.ModelSerializer):
    """Row shape for the admin user list (volunteer/donor management)."""

    role_name = serializers.CharField(
        source="role.name",
        read_only=True,
        default=None,
    )

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "cnic",
            "phone_number",
            "first_name",
            "last_name",
            "is_active",
            "role",
            "role_name",
        ]
        read_only_fields = fields


class UserDetailSerializer(serializers.ModelSerializer):
    """
    Full user representation (used in /me, login and registration
    responses).  ``permissions`` is a flat list such as
    ``['cases.add_case', 'donations.add_donation']``.
    """

    role_detail = RoleSummarySerializer(source="role", read_only=True)
    permissions = serializers.ListField(
        child=serializers.CharField(),
        source="permissions_list",
        read_only=True,
        help_text="Flat list of 'app_label.codename' permission strings.",
    )

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "cnic",
            "phone_number",
            "first_name",
            "last_name",
            "is_active",
            "date_joined",
            "role",
            "role_detail",
            "permissions",
        ]
        read_only_fields = fields


class UserFilterSerializer(serializers.Serializer):
    """Query-parameter validation for ``GET /users/``."""

    role = serializers.CharField(required=False, help_text="Role name, e.g. 'volunteer'.")
    is_active = serializers.BooleanField(required=False, allow_null=True, default=None)
    search = serializers.CharField(required=False, allow_blank=True)


class MeUpdateSerializer(serializers.ModelSerializer):
    """
    Fields a user may change on their own profile.  Role, activation and
    username are not self-editable.
    """

    class Meta:
        model = User
        fields = [
            "email",
            "phone_number",
            "cnic",
            "first_name",
            "last_name",
        ]
        extra_kwargs = {
            "email": {"validators": []},
            "phone_number": {"validators": []},
            "cnic": {"validators": []},
        }

    def validate_phone_number(self, value: str) -> str:
        return _validate_phone(value)

    def validate_cnic(self, value: str | None) -> str | None:
        return _validate_cnic(value) or None
