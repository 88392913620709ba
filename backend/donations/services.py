"""
Donations app Service Layer.

Architecture
------------
- ``FundingLedgerService``   — record donations, funding status, repair.
- ``DonationQueryService``   — donor history, donor summary, advisory
  "already contributed" check.

Concurrency
-----------
``record_donation`` never reads-adds-writes the case total.  The donation
row is inserted and the aggregate is moved with a single guarded
``UPDATE … SET total_donations = total_donations + amount WHERE status =
'accepted'`` inside one transaction, so simultaneous donors cannot lose
each other's contribution and a case rejected mid-flight rolls the whole
donation back.

Overfunding is allowed: nothing compares the new total with
``funding_target``.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from django.db import IntegrityError, transaction
from django.db.models import Count, QuerySet, Sum

from cases.models import Case, CaseStatus
from cases.services import CaseQueryService
from core.constants import MONEY_DECIMAL_PLACES, MONEY_MAX_DIGITS
from core.domain.access import ScopeRule, apply_permission_scope, require_permission
from core.domain.exceptions import Conflict, DomainError, NotFound
from core.domain.transactions import guarded_increment, lock_for_update
from core.permissions_constants import DonationsPerms

from .models import Donation, DonationStatus, PaymentMethod

if TYPE_CHECKING:
    from accounts.models import User

logger = logging.getLogger(__name__)


DONATION_SCOPE_RULES: list[ScopeRule] = [
    (f"donations.{DonationsPerms.CAN_VIEW_ALL_DONATIONS}",
     lambda qs, u: qs),
    (f"donations.{DonationsPerms.VIEW_DONATION}",
     lambda qs, u: qs.filter(donor=u)),
]


_CENT = Decimal(1).scaleb(-MONEY_DECIMAL_PLACES)


def _to_amount(value: Any) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise DomainError(f"Invalid donation amount '{value}'.")
    if not amount.is_finite() or amount <= 0:
        raise DomainError("Donation amount must be greater than zero.")
    if amount.adjusted() >= MONEY_MAX_DIGITS - MONEY_DECIMAL_PLACES:
        raise DomainError(f"Donation amount '{value}' is too large.")
    if amount != amount.quantize(_CENT):
        raise DomainError(
            f"Donation amount may have at most {MONEY_DECIMAL_PLACES} decimal places."
        )
    return amount.quantize(_CENT)


# ═══════════════════════════════════════════════════════════════════
#  Funding Ledger
# ═══════════════════════════════════════════════════════════════════


class FundingLedgerService:
    """Writes to the ledger and reads a case's funding position."""

    @staticmethod
    def _replay(payment_reference: str, case_id: int, donor: User) -> Donation | None:
        """
        Return the donation already recorded under ``payment_reference``.

        Raises ``Conflict`` when the reference belongs to another case or
        another donor.
        """
        if not payment_reference:
            return None
        existing = Donation.objects.filter(payment_reference=payment_reference).first()
        if existing is None:
            return None
        if existing.case_id != int(case_id) or existing.donor_id != donor.pk:
            raise Conflict(
                f"Payment reference '{payment_reference}' is already recorded "
                f"against a different donation."
            )
        logger.info(
            "Donation #%d replayed for payment reference %s",
            existing.pk, payment_reference,
        )
        return existing

    @staticmethod
    @transaction.atomic
    def record_donation(
        case_id: int,
        donor: User,
        amount: Any,
        is_zakat: bool = False,
        *,
        payment_method: str = PaymentMethod.CARD,
        payment_reference: str = "",
        transaction_id: str = "",
    ) -> Donation:
        """
        Record a completed donation and add it to the case total.

        The payment is assumed captured already; this call only books it.

        Parameters
        ----------
        case_id : int
            Target case.  Must be ``accepted``.
        donor : User
            Must hold ``donations.add_donation``.
        amount : Decimal-compatible
            Strictly positive, in whole cents.
        is_zakat : bool
            Zakat-restricted money; only allowed on ``zakat_eligible`` cases.
        payment_reference : str, optional
            Processor id.  A repeat of a known reference for the same case
            and donor returns the original donation unchanged.

        Returns
        -------
        Donation

        Raises
        ------
        PermissionDenied
            Caller may not donate.
        DomainError
            Amount not positive or finer than a cent, unknown payment
            method, or zakat on a case that is not zakat-eligible.
        NotFound
            Case does not exist.
        Conflict
            Case is not accepted (or stopped being accepted mid-flight),
            or the payment reference belongs to another donation.
        """
        require_permission(
            donor,
            f"donations.{DonationsPerms.ADD_DONATION}",
            message="Only donors can record donations.",
        )
        amount = _to_amount(amount)
        if payment_method not in PaymentMethod.values:
            raise DomainError(
                f"Unknown payment method '{payment_method}'. "
                f"Choose one of: {', '.join(PaymentMethod.values)}."
            )

        try:
            case = Case.objects.get(pk=case_id)
        except Case.DoesNotExist:
            raise NotFound(f"Case with id {case_id} does not exist.")

        existing = FundingLedgerService._replay(payment_reference, case.pk, donor)
        if existing is not None:
            return existing

        if case.status != CaseStatus.ACCEPTED:
            raise Conflict(
                f"Case {case.case_number} is not accepting donations "
                f"(status '{case.status}')."
            )
        if is_zakat and not case.zakat_eligible:
            raise DomainError(
                f"Case {case.case_number} is not eligible for zakat donations."
            )

        try:
            with transaction.atomic():
                donation = Donation.objects.create(
                    case=case,
                    donor=donor,
                    amount=amount,
                    payment_method=payment_method,
                    payment_reference=payment_reference or "",
                    transaction_id=transaction_id or "",
                    is_zakat_donation=bool(is_zakat),
                    status=DonationStatus.COMPLETED,
                )
        except IntegrityError:
            # A concurrent call booked the same reference first.
            existing = FundingLedgerService._replay(payment_reference, case.pk, donor)
            if existing is None:
                raise
            return existing

        updated = guarded_increment(
            Case,
            pk=case.pk,
            field="total_donations",
            amount=amount,
            filters={"status": CaseStatus.ACCEPTED},
        )
        if not updated:
            raise Conflict(
                f"Case {case.case_number} stopped accepting donations."
            )

        logger.info(
            "Donation #%d: %s PKR to case %s by donor #%d%s",
            donation.pk, amount, case.case_number, donor.pk,
            " (zakat)" if is_zakat else "",
        )
        return donation

    @staticmethod
    def funding_status(case_id: int, requesting_user: User | None = None) -> dict[str, Any]:
        """
        Funding position of a case.

        ``remaining`` never goes below zero, even when the case is
        overfunded.  When ``requesting_user`` is given, cases outside
        their scope read as missing.
        """
        if requesting_user is not None:
            case = CaseQueryService.get_case_detail(case_id, requesting_user)
        else:
            try:
                case = Case.objects.get(pk=case_id)
            except Case.DoesNotExist:
                raise NotFound(f"Case with id {case_id} does not exist.")

        return {
            "case_id": case.pk,
            "case_number": case.case_number,
            "total_donations": case.total_donations,
            "funding_target": case.funding_target,
            "remaining": case.remaining_amount,
            "is_fully_funded": case.is_fully_funded,
        }

    @staticmethod
    @transaction.atomic
    def recalculate_total(case_id: int, requesting_user: User) -> dict[str, Any]:
        """
        Rebuild ``total_donations`` from the completed ledger entries.

        Returns ``{"case_id", "previous_total", "total_donations",
        "corrected"}``.
        """
        require_permission(
            requesting_user,
            f"donations.{DonationsPerms.CAN_RECONCILE_TOTALS}",
            message="Only an admin can reconcile donation totals.",
        )
        case = lock_for_update(Case, case_id, label="Case")
        total = (
            Donation.objects
            .filter(case=case, status=DonationStatus.COMPLETED)
            .aggregate(total=Sum("amount"))["total"]
        ) or Decimal("0")

        previous = case.total_donations
        corrected = previous != total
        if corrected:
            case.total_donations = total
            case.save(update_fields=["total_donations", "updated_at"])
            logger.warning(
                "Case %s total corrected from %s to %s by #%d",
                case.case_number, previous, total, requesting_user.pk,
            )

        return {
            "case_id": case.pk,
            "previous_total": previous,
            "total_donations": total,
            "corrected": corrected,
        }


# ═══════════════════════════════════════════════════════════════════
#  Query Service
# ═══════════════════════════════════════════════════════════════════


class DonationQueryService:

    @staticmethod
    def list_donations(
        requesting_user: User,
        filters: dict[str, Any] | None = None,
    ) -> QuerySet[Donation]:
        """
        Donations visible to the caller: every donation for admins, their
        own for donors, nothing otherwise.  Optional filters: ``case``,
        ``status``, ``is_zakat_donation``.
        """
        filters = filters or {}
        qs = Donation.objects.select_related("case", "donor")
        qs = apply_permission_scope(qs, requesting_user, scope_rules=DONATION_SCOPE_RULES)

        if filters.get("case"):
            qs = qs.filter(case_id=filters["case"])
        if filters.get("status"):
            qs = qs.filter(status=filters["status"])
        if filters.get("is_zakat_donation") is not None:
            qs = qs.filter(is_zakat_donation=filters["is_zakat_donation"])
        return qs.order_by("-created_at")

    @staticmethod
    def list_case_donations(case_id: int, requesting_user: User) -> QuerySet[Donation]:
        """Visible donations to one case; the case itself must be in scope."""
        CaseQueryService.get_case_detail(case_id, requesting_user)
        return DonationQueryService.list_donations(requesting_user, {"case": case_id})

    @staticmethod
    def get_donation(donation_id: int, requesting_user: User) -> Donation:
        qs = DonationQueryService.list_donations(requesting_user)
        try:
            return qs.get(pk=donation_id)
        except Donation.DoesNotExist:
            raise NotFound(f"Donation with id {donation_id} not found.")

    @staticmethod
    def donor_summary(donor: User) -> dict[str, Any]:
        """Completed-donation totals for one donor."""
        stats = Donation.objects.filter(
            donor=donor, status=DonationStatus.COMPLETED,
        ).aggregate(
            donation_count=Count("id"),
            total_donated=Sum("amount"),
            cases_helped=Count("case", distinct=True),
        )
        return {
            "donation_count": stats["donation_count"],
            "total_donated": stats["total_donated"] or Decimal("0"),
            "cases_helped": stats["cases_helped"],
        }

    @staticmethod
    def has_contributed(donor: User, case_id: int) -> bool:
        """
        Whether ``donor`` already holds a completed donation to the case.

        Advisory only; ``record_donation`` does not consult it.
        """
        return Donation.objects.filter(
            donor=donor, case_id=case_id, status=DonationStatus.COMPLETED,
        ).exists()
