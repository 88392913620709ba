"""
Cases app Service Layer.

This module is the **single source of truth** for every business rule in
the ``cases`` app.  Views call into these services and never touch the
ORM directly.

Architecture
------------
- ``CaseQueryService``           — role-scoped listing, dashboards, detail.
- ``CaseSubmissionService``      — intake: validation, numbering, priority.
- ``VolunteerAssignmentService`` — bind / rebind a verifying volunteer.
- ``CaseWorkflowService``        — volunteer verdicts and admin decisions.
- ``CasePriorityService``        — admin override and bulk recompute.

Lifecycle
---------
The workflow state is derived (see ``Case.lifecycle_state``)::

    unassigned ──assign──▶ volunteer_pending ──approve──▶ volunteer_approved
        │                     │  ▲                              │
        │                     │  └──────── reassign ────────────┤
        │                     └──reject──▶ volunteer_rejected ──┘
        │
        └── (any non-terminal) ──admin approve──▶ admin_accepted
                               ──admin reject───▶ admin_rejected

The volunteer verdict is advisory: an admin may decide a case that never
had a volunteer, or accept one the volunteer rejected.  A second admin
decision on an accepted or rejected case returns it unchanged.  Every
transition re-reads the case under ``select_for_update`` inside
``transaction.atomic`` so concurrent admin actions serialise on the row.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from core.constants import (
    CASE_NUMBER_PREFIX,
    CASE_NUMBER_SEQUENCE_WIDTH,
    MONEY_DECIMAL_PLACES,
    MONEY_MAX_DIGITS,
)
from core.domain.access import ScopeRule, apply_permission_scope, require_permission
from core.domain.exceptions import (
    Conflict,
    DomainError,
    InvalidTransition,
    NotFound,
    PermissionDenied,
)
from core.domain.transactions import guarded_increment, lock_for_update
from core.permissions_constants import CasesPerms

from .models import (
    Case,
    CaseNumberSequence,
    CasePriority,
    CaseStatus,
    CaseType,
    LifecycleState,
    VolunteerApprovalStatus,
    VolunteerRejectionReason,
)
from .priority import AreaPriorityClassifier, get_default_classifier

if TYPE_CHECKING:
    from accounts.models import User

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  Query Service
# ═══════════════════════════════════════════════════════════════════


#: Broadest first: the first permission the user holds decides the scope.
CASE_SCOPE_RULES: list[ScopeRule] = [
    (f"cases.{CasesPerms.CAN_SCOPE_ALL_CASES}",
     lambda qs, u: qs),
    (f"cases.{CasesPerms.CAN_SCOPE_ASSIGNED_CASES}",
     lambda qs, u: qs.filter(volunteer=u)),
    (f"cases.{CasesPerms.CAN_SCOPE_OWN_CASES}",
     lambda qs, u: qs.filter(submitted_by=u)),
    (f"cases.{CasesPerms.CAN_SCOPE_ACCEPTED_CASES}",
     lambda qs, u: qs.filter(status=CaseStatus.ACCEPTED)),
]


class CaseQueryService:
    """Read-side operations: scoped lists, dashboards and detail lookups."""

    @staticmethod
    def get_filtered_queryset(
        requesting_user: User,
        filters: dict[str, Any] | None = None,
    ) -> QuerySet[Case]:
        """
        Return the cases visible to ``requesting_user``, narrowed by filters.

        Parameters
        ----------
        requesting_user : User
            Scope follows ``CASE_SCOPE_RULES``: admins see everything,
            volunteers their assigned cases, submitters their own, donors
            accepted cases.  Users with none of those permissions see
            nothing.
        filters : dict, optional
            Validated query parameters: ``status``, ``priority``,
            ``district``, ``zakat_eligible``, ``volunteer_approval_status``,
            ``search`` (case number or patient name).
        """
        filters = filters or {}
        qs = Case.objects.select_related("submitted_by", "volunteer")
        qs = apply_permission_scope(qs, requesting_user, scope_rules=CASE_SCOPE_RULES)

        for field in ("status", "priority", "district", "volunteer_approval_status"):
            value = filters.get(field)
            if value:
                qs = qs.filter(**{field: value})
        if filters.get("zakat_eligible") is not None:
            qs = qs.filter(zakat_eligible=filters["zakat_eligible"])
        search = filters.get("search")
        if search:
            qs = qs.filter(
                Q(case_number__icontains=search) | Q(patient_name__icontains=search)
            )
        return qs.order_by("-created_at")

    @staticmethod
    def get_case_detail(case_id: int, requesting_user: User) -> Case:
        """
        Return one case if it falls inside the caller's scope.

        Out-of-scope cases are reported as missing so their existence
        does not leak.
        """
        qs = CaseQueryService.get_filtered_queryset(requesting_user)
        try:
            return qs.get(pk=case_id)
        except Case.DoesNotExist:
            raise NotFound(f"Case with id {case_id} not found.")

    @staticmethod
    def list_cases_for_volunteer(volunteer: User) -> QuerySet[Case]:
        """
        Every case currently assigned to ``volunteer``, any status,
        newest first.
        """
        return (
            Case.objects.select_related("submitted_by")
            .filter(volunteer=volunteer)
            .order_by("-created_at")
        )

    @staticmethod
    def list_cases_by_status(
        status: str,
        requesting_user: User | None = None,
    ) -> QuerySet[Case]:
        """
        Every case in ``status``, newest first.

        When ``requesting_user`` is given the result is narrowed to that
        user's case scope; management code passes ``None``.

        Raises
        ------
        DomainError
            ``status`` is not one of ``pending``, ``accepted``, ``rejected``.
        """
        if status not in CaseStatus.values:
            raise DomainError(
                f"Unknown case status '{status}'. "
                f"Choose one of: {', '.join(CaseStatus.values)}."
            )
        qs = Case.objects.select_related("submitted_by", "volunteer")
        if requesting_user is not None:
            qs = apply_permission_scope(qs, requesting_user, scope_rules=CASE_SCOPE_RULES)
        return qs.filter(status=status).order_by("-created_at")


# ═══════════════════════════════════════════════════════════════════
#  Submission Service
# ═══════════════════════════════════════════════════════════════════


class CaseSubmissionService:
    """Intake of new cases."""

    @staticmethod
    def next_case_number(year: int | None = None) -> str:
        """
        Draw the next ``CASE-<year>-<NNNNN>`` number.

        The per-year row is incremented with a single ``UPDATE``; the row
        stays locked by the caller's transaction until commit, so no two
        submissions can read the same value.
        """
        year = year or timezone.now().year
        with transaction.atomic():
            sequence, _ = CaseNumberSequence.objects.get_or_create(year=year)
            guarded_increment(
                CaseNumberSequence, pk=sequence.pk, field="last_value", amount=1
            )
            sequence.refresh_from_db(fields=["last_value"])
        return (
            f"{CASE_NUMBER_PREFIX}-{year}-"
            f"{sequence.last_value:0{CASE_NUMBER_SEQUENCE_WIDTH}d}"
        )

    @staticmethod
    def _validate_disease_info(data: dict[str, Any]) -> None:
        """
        Type-specific completeness checks.

        * ``test`` cases need a disease type and at least one selected test.
        * ``medicine`` cases need a description, hospital and doctor.
        """
        missing: list[str] = []
        if data.get("case_type", CaseType.MEDICINE) == CaseType.TEST:
            if not data.get("disease_type"):
                missing.append("disease_type")
            if not data.get("selected_tests"):
                missing.append("selected_tests")
        else:
            for field in ("description", "hospital_name", "doctor_name"):
                if not (data.get(field) or "").strip():
                    missing.append(field)
        if missing:
            raise DomainError(
                f"Missing required disease information: {', '.join(missing)}."
            )

    @staticmethod
    def submit_case(
        validated_data: dict[str, Any],
        requesting_user: User,
        *,
        classifier: AreaPriorityClassifier | None = None,
    ) -> Case:
        """
        Create a case in ``pending`` / ``unassigned`` state.

        Parameters
        ----------
        validated_data : dict
            Patient profile (``patient_name``, ``district``, ``area``,
            ``manual_area``, ``address``, …), disease information,
            ``funding_target``, ``zakat_eligible`` and optional document
            references.
        requesting_user : User
            Must hold ``cases.add_case``.  Recorded as ``submitted_by``.
        classifier : AreaPriorityClassifier, optional
            Defaults to the dataset-backed classifier from settings.

        Returns
        -------
        Case
            The saved case with ``case_number`` and ``priority`` filled in.

        Raises
        ------
        PermissionDenied
            Caller may not submit cases.
        DomainError
            Funding target is not a positive amount in whole cents, or the
            disease information is incomplete.
        """
        require_permission(
            requesting_user,
            f"cases.{CasesPerms.ADD_CASE}",
            message="You do not have permission to submit cases.",
        )

        data = dict(validated_data)
        try:
            funding_target = Decimal(str(data.get("funding_target")))
        except (InvalidOperation, ValueError):
            raise DomainError("Funding target must be a number.")
        if not funding_target.is_finite() or funding_target <= 0:
            raise DomainError("Funding target must be greater than zero.")
        if funding_target.adjusted() >= MONEY_MAX_DIGITS - MONEY_DECIMAL_PLACES:
            raise DomainError("Funding target is too large.")
        cent = Decimal(1).scaleb(-MONEY_DECIMAL_PLACES)
        if funding_target != funding_target.quantize(cent):
            raise DomainError(
                f"Funding target may have at most {MONEY_DECIMAL_PLACES} decimal places."
            )
        data["funding_target"] = funding_target.quantize(cent)

        CaseSubmissionService._validate_disease_info(data)

        classifier = classifier or get_default_classifier()
        data["priority"] = classifier.classify(
            data.get("district"), data.get("area") or data.get("manual_area")
        )

        # Overrides any client-supplied workflow fields.
        data.update(
            status=CaseStatus.PENDING,
            volunteer=None,
            volunteer_approval_status=None,
            volunteer_rejection_reasons=[],
            total_donations=Decimal("0"),
            priority_overridden=False,
        )

        with transaction.atomic():
            case = Case.objects.create(
                case_number=CaseSubmissionService.next_case_number(),
                submitted_by=requesting_user,
                **data,
            )

        logger.info(
            "Case %s submitted by user #%d (priority=%s, target=%s)",
            case.case_number, requesting_user.pk, case.priority, case.funding_target,
        )
        return case


# ═══════════════════════════════════════════════════════════════════
#  Volunteer Assignment Service
# ═══════════════════════════════════════════════════════════════════


class VolunteerAssignmentService:
    """Binding a verifying volunteer to a case."""

    @staticmethod
    @transaction.atomic
    def assign_volunteer(case_id: int, volunteer_id: int, requesting_user: User) -> Case:
        """
        Assign (or reassign) ``volunteer_id`` to the case.

        Re-assignment overwrites the previous volunteer unconditionally and
        resets the verdict to ``pending``; earlier rejection reasons are
        discarded.  The case ``status`` is not touched.

        Raises
        ------
        PermissionDenied
            Caller lacks ``cases.can_assign_volunteer``.
        NotFound
            Case or volunteer does not exist.
        DomainError
            The volunteer is deactivated or is not a volunteer.
        InvalidTransition
            The case already carries an admin decision.
        """
        require_permission(
            requesting_user,
            f"cases.{CasesPerms.CAN_ASSIGN_VOLUNTEER}",
            message="Only an admin can assign volunteers.",
        )

        case = lock_for_update(Case, case_id, label="Case")

        User = get_user_model()
        try:
            volunteer = User.objects.select_related("role").get(pk=volunteer_id)
        except User.DoesNotExist:
            raise NotFound(f"Volunteer with id {volunteer_id} not found.")

        if not volunteer.is_active:
            raise DomainError(
                f"Volunteer '{volunteer.username}' is deactivated and cannot be assigned."
            )
        if not volunteer.role_grants(f"cases.{CasesPerms.CAN_BE_ASSIGNED_VOLUNTEER}"):
            raise DomainError(f"User '{volunteer.username}' is not a volunteer.")

        if case.status != CaseStatus.PENDING:
            raise InvalidTransition(
                current=case.lifecycle_state,
                target=LifecycleState.VOLUNTEER_PENDING,
                reason="The case already has an admin decision.",
            )

        previous_id = case.volunteer_id
        case.volunteer = volunteer
        case.volunteer_approval_status = VolunteerApprovalStatus.PENDING
        case.volunteer_rejection_reasons = []
        case.save(update_fields=[
            "volunteer", "volunteer_approval_status",
            "volunteer_rejection_reasons", "updated_at",
        ])

        if previous_id and previous_id != volunteer.pk:
            logger.info(
                "Case %s reassigned from volunteer #%d to #%d by #%d",
                case.case_number, previous_id, volunteer.pk, requesting_user.pk,
            )
        else:
            logger.info(
                "Case %s assigned to volunteer #%d by #%d",
                case.case_number, volunteer.pk, requesting_user.pk,
            )
        return case


# ═══════════════════════════════════════════════════════════════════
#  Workflow Service
# ═══════════════════════════════════════════════════════════════════


class CaseWorkflowService:
    """
    Volunteer verdicts and admin decisions.

    Guards are evaluated in this order so that each failure maps to one
    well-defined error: permission → input → existence → assignment →
    lifecycle state.
    """

    # ── Volunteer verdicts ──────────────────────────────────────────

    @staticmethod
    def volunteer_approve(case_id: int, requesting_user: User) -> Case:
        """``volunteer_pending → volunteer_approved``; clears any reasons."""
        return CaseWorkflowService._record_verdict(
            case_id, requesting_user, VolunteerApprovalStatus.APPROVED, reasons=[],
        )

    @staticmethod
    def volunteer_reject(case_id: int, requesting_user: User, reasons) -> Case:
        """
        ``volunteer_pending → volunteer_rejected``.

        ``reasons`` must be a non-empty collection drawn from
        ``VolunteerRejectionReason``.  Duplicates are collapsed and the
        stored list follows the canonical reason order.
        """
        reasons = list(reasons or [])
        if not reasons:
            raise DomainError("At least one rejection reason is required.")
        invalid = [r for r in reasons if r not in VolunteerRejectionReason.values]
        if invalid:
            raise DomainError(
                f"Invalid rejection reason(s): {', '.join(map(str, invalid))}. "
                f"Allowed: {', '.join(VolunteerRejectionReason.values)}."
            )
        canonical = [r for r in VolunteerRejectionReason.values if r in set(reasons)]
        return CaseWorkflowService._record_verdict(
            case_id, requesting_user, VolunteerApprovalStatus.REJECTED, reasons=canonical,
        )

    @staticmethod
    @transaction.atomic
    def _record_verdict(
        case_id: int,
        requesting_user: User,
        verdict: str,
        *,
        reasons: list[str],
    ) -> Case:
        if not requesting_user.has_perm(f"cases.{CasesPerms.CAN_RECORD_VERDICT}"):
            raise PermissionDenied("Only volunteers can record a verification verdict.")

        case = lock_for_update(Case, case_id, label="Case")

        if case.volunteer_id is None:
            raise Conflict(f"Case {case.case_number} has no assigned volunteer.")
        if case.volunteer_id != requesting_user.pk:
            raise Conflict(
                f"Case {case.case_number} is assigned to a different volunteer."
            )

        target = (
            LifecycleState.VOLUNTEER_APPROVED
            if verdict == VolunteerApprovalStatus.APPROVED
            else LifecycleState.VOLUNTEER_REJECTED
        )
        if case.lifecycle_state != LifecycleState.VOLUNTEER_PENDING:
            raise InvalidTransition(
                current=case.lifecycle_state,
                target=target,
                reason="A verdict can only be recorded while the review is pending.",
            )

        case.volunteer_approval_status = verdict
        case.volunteer_rejection_reasons = reasons
        case.save(update_fields=[
            "volunteer_approval_status", "volunteer_rejection_reasons", "updated_at",
        ])

        logger.info(
            "Volunteer #%d recorded '%s' on case %s%s",
            requesting_user.pk, verdict, case.case_number,
            f" (reasons: {', '.join(reasons)})" if reasons else "",
        )
        return case

    # ── Admin decisions ─────────────────────────────────────────────

    @staticmethod
    def admin_approve(case_id: int, requesting_user: User) -> Case:
        """
        Accept the case for funding from any non-terminal state.

        Deciding a case that is already accepted or rejected is a no-op.
        """
        return CaseWorkflowService._decide(case_id, requesting_user, CaseStatus.ACCEPTED)

    @staticmethod
    def admin_reject(case_id: int, requesting_user: User) -> Case:
        """
        Reject the case from any non-terminal state.

        Deciding a case that is already accepted or rejected is a no-op.
        """
        return CaseWorkflowService._decide(case_id, requesting_user, CaseStatus.REJECTED)

    @staticmethod
    @transaction.atomic
    def _decide(case_id: int, requesting_user: User, target_status: str) -> Case:
        if not requesting_user.has_perm(f"cases.{CasesPerms.CAN_DECIDE_CASE}"):
            raise PermissionDenied("Only an admin can accept or reject cases.")

        case = lock_for_update(Case, case_id, label="Case")

        if case.status != CaseStatus.PENDING:
            logger.info(
                "Case %s already %s; %s by #%d ignored",
                case.case_number, case.status, target_status, requesting_user.pk,
            )
            return case

        previous = case.status
        case.status = target_status
        case.decided_by = requesting_user
        case.decided_at = timezone.now()
        case.save(update_fields=["status", "decided_by", "decided_at", "updated_at"])

        logger.info(
            "Case %s moved %s → %s by admin #%d",
            case.case_number, previous, target_status, requesting_user.pk,
        )
        return case


# ═══════════════════════════════════════════════════════════════════
#  Priority Service
# ═══════════════════════════════════════════════════════════════════


class CasePriorityService:
    """Administrative control over the derived priority."""

    @staticmethod
    @transaction.atomic
    def override_priority(case_id: int, priority: str, requesting_user: User) -> Case:
        """
        Pin ``priority`` on the case.  Pinned cases are skipped by
        ``recompute_priorities``.
        """
        require_permission(
            requesting_user,
            f"cases.{CasesPerms.CAN_OVERRIDE_PRIORITY}",
            message="Only an admin can override case priority.",
        )
        if priority not in CasePriority.values:
            raise DomainError(
                f"Unknown priority '{priority}'. "
                f"Choose one of: {', '.join(CasePriority.values)}."
            )

        case = lock_for_update(Case, case_id, label="Case")
        previous = case.priority
        case.priority = priority
        case.priority_overridden = True
        case.save(update_fields=["priority", "priority_overridden", "updated_at"])

        logger.info(
            "Case %s priority overridden %s → %s by #%d",
            case.case_number, previous, priority, requesting_user.pk,
        )
        return case

    @staticmethod
    @transaction.atomic
    def recompute_priorities(
        requesting_user: User | None = None,
        *,
        classifier: AreaPriorityClassifier | None = None,
    ) -> dict[str, int]:
        """
        Re-run classification for every case whose priority is not pinned.

        ``requesting_user`` is ``None`` when invoked from the
        ``update_priorities`` management command.

        Returns
        -------
        dict
            ``{"total": <cases examined>, "updated": <cases changed>,
            "skipped": <pinned cases>}``
        """
        if requesting_user is not None:
            require_permission(
                requesting_user,
                f"cases.{CasesPerms.CAN_OVERRIDE_PRIORITY}",
                message="Only an admin can recompute priorities.",
            )

        classifier = classifier or get_default_classifier()
        skipped = Case.objects.filter(priority_overridden=True).count()

        changed: list[Case] = []
        total = 0
        candidates = Case.objects.filter(priority_overridden=False).only(
            "pk", "district", "area", "manual_area", "priority",
        )
        for case in candidates.iterator():
            total += 1
            priority = classifier.classify(case.district, case.effective_area)
            if priority != case.priority:
                case.priority = priority
                changed.append(case)

        if changed:
            Case.objects.bulk_update(changed, ["priority"], batch_size=500)

        logger.info(
            "Priority recompute: %d examined, %d updated, %d pinned",
            total, len(changed), skipped,
        )
        return {"total": total, "updated": len(changed), "skipped": skipped}
