"""
Management command: setup_rbac
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Seeds the four platform **Roles** (Admin, Volunteer, Submitter, Donor)
and links each role to its set of Django permissions.

This command does NOT create Permission objects.  Standard CRUD
permissions are created by Django after ``migrate``; custom workflow
permissions are declared in each model's ``Meta.permissions`` and are
inserted by ``migrate`` as well.

The command is **idempotent**: existing roles are updated and their
permission sets replaced to match the mapping below.

Usage::

    python manage.py migrate
    python manage.py setup_rbac
"""

from django.contrib.auth.models import Permission
from django.core.management.base import BaseCommand

from accounts.models import Role, RoleName
from core.permissions_constants import AccountsPerms, CasesPerms, DonationsPerms

#: Apps whose permissions this command may hand out.
PROJECT_APPS = ("accounts", "cases", "donations")

# ────────────────────────────────────────────────────────────────────
# Role → Permission mapping
# ────────────────────────────────────────────────────────────────────
# Key:   (role_name, description, hierarchy_level)
# Value: list of codenames from ``core.permissions_constants``

ROLE_PERMISSIONS_MAP: dict[tuple[str, str, int], list[str]] = {

    # ── Admin ───────────────────────────────────────────────────────
    (
        RoleName.ADMIN,
        "Runs the platform: assigns volunteers, decides cases, manages users.",
        100,
    ): [
        AccountsPerms.VIEW_ROLE, AccountsPerms.VIEW_USER,
        AccountsPerms.CHANGE_USER, AccountsPerms.CAN_MANAGE_USERS,
        CasesPerms.VIEW_CASE, CasesPerms.CHANGE_CASE, CasesPerms.DELETE_CASE,
        CasesPerms.CAN_ASSIGN_VOLUNTEER, CasesPerms.CAN_DECIDE_CASE,
        CasesPerms.CAN_OVERRIDE_PRIORITY, CasesPerms.CAN_SCOPE_ALL_CASES,
        DonationsPerms.VIEW_DONATION, DonationsPerms.CAN_VIEW_ALL_DONATIONS,
        DonationsPerms.CAN_RECONCILE_TOTALS,
    ],

    # ── Volunteer ───────────────────────────────────────────────────
    (
        RoleName.VOLUNTEER,
        "Verifies assigned cases in the field and records a verdict.",
        50,
    ): [
        CasesPerms.VIEW_CASE,
        CasesPerms.CAN_BE_ASSIGNED_VOLUNTEER,
        CasesPerms.CAN_RECORD_VERDICT,
        CasesPerms.CAN_SCOPE_ASSIGNED_CASES,
    ],

    # ── Submitter ───────────────────────────────────────────────────
    (
        RoleName.SUBMITTER,
        "Submits medical cases on behalf of patients and tracks them.",
        20,
    ): [
        CasesPerms.VIEW_CASE,
        CasesPerms.ADD_CASE,
        CasesPerms.CAN_SCOPE_OWN_CASES,
    ],

    # ── Donor ───────────────────────────────────────────────────────
    (
        RoleName.DONOR,
        "Browses accepted cases and funds them.",
        10,
    ): [
        CasesPerms.VIEW_CASE,
        CasesPerms.CAN_SCOPE_ACCEPTED_CASES,
        DonationsPerms.VIEW_DONATION,
        DonationsPerms.ADD_DONATION,
    ],
}


class Command(BaseCommand):
    help = "Seed platform roles and link them to their permissions (idempotent)."

    def handle(self, *args, **options):
        self.stdout.write(self.style.MIGRATE_HEADING(
            "\n══════════════════════════════════════════"
            "\n  RBAC Setup — Seeding Roles & Permissions"
            "\n══════════════════════════════════════════\n"
        ))

        all_permissions: dict[str, Permission] = {
            p.codename: p
            for p in Permission.objects.select_related("content_type").filter(
                content_type__app_label__in=PROJECT_APPS
            )
        }

        roles_created = 0
        roles_updated = 0
        warnings = 0

        for (role_name, description, hierarchy_level), codenames in ROLE_PERMISSIONS_MAP.items():
            role, created = Role.objects.update_or_create(
                name=role_name,
                defaults={
                    "description": description,
                    "hierarchy_level": hierarchy_level,
                },
            )

            resolved_permissions: list[Permission] = []
            for codename in codenames:
                perm = all_permissions.get(codename)
                if perm is None:
                    warnings += 1
                    self.stdout.write(self.style.WARNING(
                        f"  ⚠  Permission '{codename}' not found, "
                        f"skipped for role '{role_name}'.  (Run migrate first?)"
                    ))
                    continue
                resolved_permissions.append(perm)

            role.permissions.set(resolved_permissions)

            if created:
                roles_created += 1
            else:
                roles_updated += 1

            self.stdout.write(self.style.SUCCESS(
                f"  ✔  {'Created' if created else 'Updated'} role: {role_name:<12s} "
                f"(hierarchy={hierarchy_level}, "
                f"permissions={len(resolved_permissions)})"
            ))

        summary = (
            f"  Done!  {roles_created} role(s) created, "
            f"{roles_updated} role(s) updated."
        )
        if warnings:
            summary += f"  ({warnings} permission warning(s), see above.)"
        self.stdout.write(self.style.SUCCESS(summary + "\n"))
