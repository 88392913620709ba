"""
Donations app serializers.

Field shapes only; the ledger rules (accepted cases, zakat earmarking,
idempotency) are enforced in ``services.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from core.constants import MINIMUM_DONATION, MONEY_DECIMAL_PLACES, MONEY_MAX_DIGITS

from .models import Donation, DonationStatus, PaymentMethod


def _money(**kwargs) -> serializers.DecimalField:
    return serializers.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        **kwargs,
    )


class DonationFilterSerializer(serializers.Serializer):
    """Query parameters for ``GET /api/donations/``."""

    case = serializers.IntegerField(required=False, min_value=1)
    status = serializers.ChoiceField(choices=DonationStatus.choices, required=False)
    is_zakat_donation = serializers.BooleanField(
        required=False,
        allow_null=True,
        default=None,
    )


class DonationSerializer(serializers.ModelSerializer):
    case_number = serializers.CharField(source="case.case_number", read_only=True)
    donor_username = serializers.CharField(source="donor.username", read_only=True)

    class Meta:
        model = Donation
        fields = [
            "id",
            "case",
            "case_number",
            "donor",
            "donor_username",
            "amount",
            "payment_method",
            "payment_reference",
            "transaction_id",
            "is_zakat_donation",
            "status",
            "created_at",
        ]
        read_only_fields = fields


class DonationCreateSerializer(serializers.Serializer):
    """
    Payload for ``POST /api/cases/{case_pk}/donations/``.

    Sent by the payment-capture step once the processor has confirmed the
    payment.
    """

    amount = _money(min_value=MINIMUM_DONATION)
    is_zakat_donation = serializers.BooleanField(default=False)
    payment_method = serializers.ChoiceField(
        choices=PaymentMethod.choices,
        default=PaymentMethod.CARD,
    )
    payment_reference = serializers.CharField(
        max_length=255,
        required=False,
        allow_blank=True,
        default="",
        help_text="Processor id; repeats with the same id are not counted twice.",
    )
    transaction_id = serializers.CharField(
        max_length=255,
        required=False,
        allow_blank=True,
        default="",
    )


class FundingStatusSerializer(serializers.Serializer):
    case_id = serializers.IntegerField()
    case_number = serializers.CharField()
    total_donations = _money()
    funding_target = _money()
    remaining = _money()
    is_fully_funded = serializers.BooleanField()


class DonorSummarySerializer(serializers.Serializer):
    donation_count = serializers.IntegerField()
    total_donated = _money()
    cases_helped = serializers.IntegerField()


class ReconcileResultSerializer(serializers.Serializer):
    case_id = serializers.IntegerField()
    previous_total = _money()
    total_donations = _money()
    corrected = serializers.BooleanField()
