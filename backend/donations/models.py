"""
Donations app models.

A ``Donation`` is one ledger entry against an accepted case.  The running
aggregate lives on ``Case.total_donations`` and is only ever moved by
``donations.services.FundingLedgerService``.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q

from core.constants import MONEY_DECIMAL_PLACES, MONEY_MAX_DIGITS
from core.models import TimeStampedModel
from core.permissions_constants import DonationsPerms


class PaymentMethod(models.TextChoices):
    STRIPE = "stripe", "Stripe"
    JAZZCASH = "jazzcash", "JazzCash"
    EASYPAISA = "easypaisa", "Easypaisa"
    CARD = "card", "Card"


class DonationStatus(models.TextChoices):
    """Only ``completed`` donations count toward a case's total."""

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class Donation(TimeStampedModel):
    """
    A donor's contribution to one case.

    Entries are written once, as ``completed``, after the payment
    processor has confirmed the capture.  ``payment_reference`` is the
    processor's id and, when present, is unique so a retried capture
    cannot be counted twice.
    """

    case = models.ForeignKey(
        "cases.Case",
        on_delete=models.PROTECT,
        related_name="donations",
        verbose_name="Case",
    )
    donor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="donations",
        verbose_name="Donor",
    )
    amount = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        verbose_name="Amount (PKR)",
    )
    payment_method = models.CharField(
        max_length=10,
        choices=PaymentMethod.choices,
        default=PaymentMethod.CARD,
        verbose_name="Payment Method",
    )
    payment_reference = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Payment Reference",
        help_text="Processor-issued id of the capture; used as idempotency key.",
    )
    transaction_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Transaction ID",
    )
    is_zakat_donation = models.BooleanField(
        default=False,
        verbose_name="Zakat Donation",
    )
    status = models.CharField(
        max_length=10,
        choices=DonationStatus.choices,
        default=DonationStatus.COMPLETED,
        db_index=True,
        verbose_name="Status",
    )

    class Meta:
        verbose_name = "Donation"
        verbose_name_plural = "Donations"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["case", "status"], name="donations_d_case_id_6e0a7c_idx"),
            models.Index(fields=["donor", "status"], name="donations_d_donor_i_3f5b21_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["payment_reference"],
                condition=~Q(payment_reference=""),
                name="unique_donation_payment_reference",
            ),
        ]
        permissions = [
            (DonationsPerms.CAN_VIEW_ALL_DONATIONS, "Can see every donor's donations"),
            (DonationsPerms.CAN_RECONCILE_TOTALS, "Can recalculate case donation totals"),
        ]

    def __str__(self):
        return f"{self.amount} PKR to {self.case_id} by {self.donor_id} [{self.status}]"
