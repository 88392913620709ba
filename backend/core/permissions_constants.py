"""
Permissions Constants — **Single Source of Truth**

Every permission referenced in code (services, ``setup_rbac``, tests)
MUST use one of the constants defined here.

Organisation
------------
- **Standard CRUD** permissions follow Django's auto-generated naming:
  ``<action>_<model_lowercase>``. They are listed here so that the
  ``setup_rbac`` command can map them to roles without typos.

- **Custom workflow** permissions are constants that map to codenames
  registered via each model's ``Meta.permissions`` tuple. Adding a new
  custom permission requires:
    1. Add the constant below.
    2. Add the ``(codename, description)`` to the related model's
       ``Meta.permissions``.
    3. Add a migration so the codename lands in ``auth_permission``.
    4. Add the constant to the appropriate role lists in ``setup_rbac``.

All constants store the **codename only** (no ``app_label.`` prefix).
Call sites build the full ``app_label.codename`` string for
``user.has_perm()``.
"""


# ════════════════════════════════════════════════════════════════════
#  ACCOUNTS APP
# ════════════════════════════════════════════════════════════════════

class AccountsPerms:
    """Standard CRUD permissions for accounts models."""

    # Role
    VIEW_ROLE = "view_role"

    # User
    VIEW_USER = "view_user"
    CHANGE_USER = "change_user"

    # ── Custom workflow permissions ─────────────────────────────────
    CAN_MANAGE_USERS = "can_manage_users"
    """Admin-level user management (list, activate, deactivate)."""


# ════════════════════════════════════════════════════════════════════
#  CASES APP — Standard CRUD + Custom Workflow
# ════════════════════════════════════════════════════════════════════

class CasesPerms:
    """Standard + custom permissions for the cases app."""

    # ── Case — standard CRUD ────────────────────────────────────────
    VIEW_CASE = "view_case"
    ADD_CASE = "add_case"
    CHANGE_CASE = "change_case"
    DELETE_CASE = "delete_case"

    # ── Custom workflow permissions ─────────────────────────────────
    CAN_ASSIGN_VOLUNTEER = "can_assign_volunteer"
    """Admin assigns (or reassigns) a volunteer to verify a case."""

    CAN_RECORD_VERDICT = "can_record_verdict"
    """Assigned volunteer approves or rejects a case after verification."""

    CAN_DECIDE_CASE = "can_decide_case"
    """Admin accepts or rejects a case for funding."""

    CAN_OVERRIDE_PRIORITY = "can_override_priority"
    """Admin pins a case priority or triggers a bulk recompute."""

    # ── Assignment capability permissions ───────────────────────────
    CAN_BE_ASSIGNED_VOLUNTEER = "can_be_assigned_volunteer"
    """User can be assigned to a case as its verifying volunteer."""

    # ── Scope permissions (data-visibility tiers) ───────────────────
    CAN_SCOPE_ALL_CASES = "can_scope_all_cases"
    """Unrestricted case visibility (Admin)."""

    CAN_SCOPE_ASSIGNED_CASES = "can_scope_assigned_cases"
    """See only cases assigned to this user as volunteer."""

    CAN_SCOPE_OWN_CASES = "can_scope_own_cases"
    """See only cases this user submitted."""

    CAN_SCOPE_ACCEPTED_CASES = "can_scope_accepted_cases"
    """See only cases accepted for funding (Donor)."""


# ════════════════════════════════════════════════════════════════════
#  DONATIONS APP — Standard CRUD + Custom Workflow
# ════════════════════════════════════════════════════════════════════

class DonationsPerms:
    """Standard + custom permissions for the donations app."""

    # ── Donation — standard CRUD ────────────────────────────────────
    VIEW_DONATION = "view_donation"
    ADD_DONATION = "add_donation"
    CHANGE_DONATION = "change_donation"
    DELETE_DONATION = "delete_donation"

    # ── Custom workflow permissions ─────────────────────────────────
    CAN_VIEW_ALL_DONATIONS = "can_view_all_donations"
    """See every donation on the platform, not only one's own."""

    CAN_RECONCILE_TOTALS = "can_reconcile_totals"
    """Rebuild a case's running total from its completed donations."""
