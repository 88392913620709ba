"""
Core app services — **Service Layer**.

Cross-app aggregation for the public landing page and the frontend's
dropdowns.  Views delegate to the service classes defined here.

Cross-app import rule: models from other apps are resolved lazily
(``apps.get_model`` or an in-function import), never at module level,
so ``core`` can be imported by every other app without cycles.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from django.apps import apps
from django.db.models import Count, Q, Sum


# ═══════════════════════════════════════════════════════════════════
#  Platform Statistics
# ═══════════════════════════════════════════════════════════════════

class PlatformStatsService:
    """
    Public, user-independent figures shown on the landing page: active
    donors, cases per status and the total amount raised.
    """

    @staticmethod
    def get_stats() -> dict[str, Any]:
        from accounts.models import RoleName
        from cases.models import CaseStatus
        from donations.models import DonationStatus

        Case = apps.get_model("cases", "Case")
        Donation = apps.get_model("donations", "Donation")
        User = apps.get_model("accounts", "User")

        case_counts = Case.objects.aggregate(
            total_cases=Count("id"),
            pending_cases=Count("id", filter=Q(status=CaseStatus.PENDING)),
            accepted_cases=Count("id", filter=Q(status=CaseStatus.ACCEPTED)),
            rejected_cases=Count("id", filter=Q(status=CaseStatus.REJECTED)),
        )
        total_raised = (
            Donation.objects
            .filter(status=DonationStatus.COMPLETED)
            .aggregate(total=Sum("amount"))["total"]
        ) or Decimal("0")
        active_donors = User.objects.filter(
            is_active=True, role__name=RoleName.DONOR,
        ).count()

        return {
            **case_counts,
            "active_donors": active_donors,
            "total_raised": total_raised,
        }


# ═══════════════════════════════════════════════════════════════════
#  System Constants
# ═══════════════════════════════════════════════════════════════════

class SystemConstantsService:
    """
    Gathers the choice enumerations the frontend needs to render its
    dropdowns and labels.  Stateless; does not depend on the user.
    """

    @staticmethod
    def get_constants() -> dict[str, Any]:
        """Return all system constants as a dict."""
        from cases.models import (
            CasePriority,
            CaseStatus,
            CaseType,
            DiseaseType,
            District,
            VolunteerRejectionReason,
        )
        from donations.models import PaymentMethod

        to_list = SystemConstantsService._choices_to_list

        return {
            "districts": to_list(District),
            "case_priorities": to_list(CasePriority),
            "case_statuses": to_list(CaseStatus),
            "case_types": to_list(CaseType),
            "disease_types": to_list(DiseaseType),
            "volunteer_rejection_reasons": to_list(VolunteerRejectionReason),
            "payment_methods": to_list(PaymentMethod),
        }

    @staticmethod
    def _choices_to_list(choices_class: type) -> list[dict[str, str]]:
        """
        Convert a Django ``TextChoices`` class to a list of
        ``{"value": ..., "label": ...}`` dicts.
        """
        return [
            {"value": str(value), "label": str(label)}
            for value, label in choices_class.choices
        ]
