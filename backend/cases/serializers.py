"""
Cases app serializers.

Request and response serializers for the Cases API.  Serializers handle
field definitions, read/write constraints and field-level validation only.
**No workflow rules live here**; those belong in ``services.py``.

Structure
---------
1. Filter / query-param serializers
2. Case read serializers (list, detail)
3. Case write serializer (submission)
4. Workflow action serializers (assignment, verdicts, decisions, priority)
"""

from __future__ import annotations

from rest_framework import serializers

from core.constants import MINIMUM_DONATION, MONEY_DECIMAL_PLACES, MONEY_MAX_DIGITS

from .models import (
    Case,
    CasePriority,
    CaseStatus,
    District,
    LifecycleState,
    VolunteerApprovalStatus,
    VolunteerRejectionReason,
)


# ═══════════════════════════════════════════════════════════════════
#  1. Filter serializers
# ═══════════════════════════════════════════════════════════════════


class CaseFilterSerializer(serializers.Serializer):
    """
    Validates query-parameter filters for ``GET /api/cases/``.

    All fields are optional.  The validated dict goes straight to
    ``CaseQueryService.get_filtered_queryset``.
    """

    status = serializers.ChoiceField(choices=CaseStatus.choices, required=False)
    priority = serializers.ChoiceField(choices=CasePriority.choices, required=False)
    district = serializers.ChoiceField(choices=District.choices, required=False)
    volunteer_approval_status = serializers.ChoiceField(
        choices=VolunteerApprovalStatus.choices,
        required=False,
    )
    zakat_eligible = serializers.BooleanField(
        required=False,
        allow_null=True,
        default=None,
    )
    search = serializers.CharField(
        required=False,
        max_length=255,
        help_text="Matches case number or patient name.",
    )


# ═══════════════════════════════════════════════════════════════════
#  2. Read serializers
# ═══════════════════════════════════════════════════════════════════


class CaseListSerializer(serializers.ModelSerializer):
    """Compact row for case lists and dashboards."""

    lifecycle_state = serializers.ChoiceField(
        choices=LifecycleState.choices,
        read_only=True,
    )
    volunteer_username = serializers.CharField(
        source="volunteer.username",
        read_only=True,
        default=None,
    )
    remaining_amount = serializers.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        read_only=True,
    )

    class Meta:
        model = Case
        fields = [
            "id",
            "case_number",
            "patient_name",
            "district",
            "area",
            "case_type",
            "priority",
            "status",
            "lifecycle_state",
            "volunteer",
            "volunteer_username",
            "volunteer_approval_status",
            "funding_target",
            "total_donations",
            "remaining_amount",
            "zakat_eligible",
            "created_at",
        ]
        read_only_fields = fields


class CaseDetailSerializer(serializers.ModelSerializer):
    """Full case payload, including workflow and document references."""

    lifecycle_state = serializers.ChoiceField(
        choices=LifecycleState.choices,
        read_only=True,
    )
    submitted_by_username = serializers.CharField(
        source="submitted_by.username",
        read_only=True,
    )
    volunteer_username = serializers.CharField(
        source="volunteer.username",
        read_only=True,
        default=None,
    )
    remaining_amount = serializers.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        read_only=True,
    )
    is_fully_funded = serializers.BooleanField(read_only=True)

    class Meta:
        model = Case
        fields = [
            "id",
            "case_number",
            "submitted_by",
            "submitted_by_username",
            "patient_name",
            "patient_cnic",
            "patient_phone",
            "district",
            "area",
            "manual_area",
            "address",
            "case_type",
            "disease_type",
            "disease_name",
            "selected_tests",
            "description",
            "hospital_name",
            "doctor_name",
            "document_reference",
            "utility_bill_reference",
            "priority",
            "priority_overridden",
            "status",
            "lifecycle_state",
            "volunteer",
            "volunteer_username",
            "volunteer_approval_status",
            "volunteer_rejection_reasons",
            "decided_by",
            "decided_at",
            "funding_target",
            "total_donations",
            "remaining_amount",
            "is_fully_funded",
            "zakat_eligible",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


# ═══════════════════════════════════════════════════════════════════
#  3. Write serializers
# ═══════════════════════════════════════════════════════════════════


class CaseSubmitSerializer(serializers.ModelSerializer):
    """
    Payload for ``POST /api/cases/``.

    Priority, case number and every workflow field are computed by
    ``CaseSubmissionService``; they are not accepted from the client.
    Type-specific completeness (tests vs. medicine) is checked in the
    service as well.
    """

    funding_target = serializers.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        min_value=MINIMUM_DONATION,
        help_text="Amount needed in PKR; must be positive.",
    )
    selected_tests = serializers.ListField(
        child=serializers.CharField(max_length=255),
        required=False,
        default=list,
    )

    class Meta:
        model = Case
        fields = [
            "patient_name",
            "patient_cnic",
            "patient_phone",
            "district",
            "area",
            "manual_area",
            "address",
            "case_type",
            "disease_type",
            "disease_name",
            "selected_tests",
            "description",
            "hospital_name",
            "doctor_name",
            "document_reference",
            "utility_bill_reference",
            "funding_target",
            "zakat_eligible",
        ]


# ═══════════════════════════════════════════════════════════════════
#  4. Workflow action serializers
# ═══════════════════════════════════════════════════════════════════


class AssignVolunteerSerializer(serializers.Serializer):
    volunteer_id = serializers.IntegerField(
        min_value=1,
        help_text="PK of an active user holding the Volunteer role.",
    )


class VolunteerReviewSerializer(serializers.Serializer):
    """
    The assigned volunteer's verdict.

    ``reasons`` is required (non-empty) when ``decision`` is ``reject``
    and ignored on ``approve``.
    """

    decision = serializers.ChoiceField(choices=["approve", "reject"])
    reasons = serializers.ListField(
        child=serializers.ChoiceField(choices=VolunteerRejectionReason.choices),
        required=False,
        default=list,
    )

    def validate(self, attrs):
        if attrs["decision"] == "reject" and not attrs.get("reasons"):
            raise serializers.ValidationError(
                {"reasons": "At least one rejection reason is required."}
            )
        return attrs


class AdminDecisionSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=["approve", "reject"])


class PriorityOverrideSerializer(serializers.Serializer):
    priority = serializers.ChoiceField(choices=CasePriority.choices)


class PriorityRecomputeResultSerializer(serializers.Serializer):
    """Schema-only: outcome of a bulk priority recompute."""

    total = serializers.IntegerField()
    updated = serializers.IntegerField()
    skipped = serializers.IntegerField()


class CasesByStatusQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=CaseStatus.choices)


