"""
core.domain.access — Permission-scoped queryset selectors (shared patterns).

Each app's service layer owns its own list of scope rules; this module
only provides the dispatch helpers they share:

1. ``apply_permission_scope`` — ordered permission → filter dispatch.
2. ``require_permission`` — guard that raises the domain 403.
3. ``get_user_role_name`` — informational role-name helper.

Usage in an app's service layer::

    from core.domain.access import apply_permission_scope

    CASE_SCOPE_RULES = [
        ("cases.can_scope_all_cases",      lambda qs, u: qs),
        ("cases.can_scope_assigned_cases", lambda qs, u: qs.filter(volunteer=u)),
        ("cases.can_scope_own_cases",      lambda qs, u: qs.filter(submitted_by=u)),
    ]

    qs = apply_permission_scope(Case.objects.all(), user, scope_rules=CASE_SCOPE_RULES)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from django.db.models import QuerySet

from core.domain.exceptions import PermissionDenied

if TYPE_CHECKING:
    from accounts.models import User

# Takes (queryset, user) and returns a filtered queryset.
ScopeFilter = Callable[[QuerySet, "User"], QuerySet]

# (full permission string incl. app label, filter_fn)
ScopeRule = tuple[str, ScopeFilter]


def get_user_role_name(user: User) -> str | None:
    """
    Return the lowercased role name for a user, or ``None`` if unassigned.

    Used for JWT claims, API payloads and log lines only.  Access control
    goes through ``user.has_perm()``, never through role names.
    """
    if user.is_superuser:
        return "system_admin"
    role = getattr(user, "role", None)
    if role is None:
        return None
    return role.name.lower().replace(" ", "_")


def apply_permission_scope(
    queryset: QuerySet,
    user: User,
    *,
    scope_rules: list[ScopeRule],
    default: str = "none",
) -> QuerySet:
    """
    Apply the first matching permission-based scope rule.

    Rules are checked **in order** and the first permission the user holds
    wins, so order them from broadest to narrowest.

    Args:
        queryset:     Base (unfiltered) queryset.
        user:         The authenticated user.
        scope_rules:  Ordered list of ``(perm, filter_fn)`` tuples.
        default:      ``"none"`` → empty queryset when nothing matches,
                      ``"all"`` → unfiltered queryset.

    Returns:
        The (possibly filtered) queryset.
    """
    for perm, filter_fn in scope_rules:
        if user.has_perm(perm):
            return filter_fn(queryset, user)

    if default == "none":
        return queryset.none()
    return queryset


def require_permission(user: User, *perms: str, message: str = "") -> None:
    """
    Raise ``PermissionDenied`` unless the user holds at least one of
    ``perms`` (full ``app_label.codename`` strings).

    Example::

        require_permission(user, "cases.can_decide_case")
    """
    for perm in perms:
        if user.has_perm(perm):
            return
    raise PermissionDenied(
        message or f"Missing required permission: {', '.join(perms)}."
    )
