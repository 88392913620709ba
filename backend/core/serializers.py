"""
Core app serializers.

**Response-only** serializers for the aggregated endpoints served by the
core app.  They work with plain dicts produced by ``core.services`` and
never import models from other apps.
"""

from __future__ import annotations

from rest_framework import serializers


# ════════════════════════════════════════════════════════════════════
#  Platform Statistics
# ════════════════════════════════════════════════════════════════════

class PlatformStatsSerializer(serializers.Serializer):
    """
    Response serializer for ``GET /api/core/stats/``.

    Example::

        {
            "total_cases": 42,
            "pending_cases": 10,
            "accepted_cases": 28,
            "rejected_cases": 4,
            "active_donors": 17,
            "total_raised": "1250000.00"
        }
    """

    total_cases = serializers.IntegerField()
    pending_cases = serializers.IntegerField()
    accepted_cases = serializers.IntegerField()
    rejected_cases = serializers.IntegerField()
    active_donors = serializers.IntegerField(
        help_text="Active users holding the Donor role.",
    )
    total_raised = serializers.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Sum of all completed donations (PKR).",
    )


# ════════════════════════════════════════════════════════════════════
#  System Constants
# ════════════════════════════════════════════════════════════════════

class ChoiceItemSerializer(serializers.Serializer):
    """A single ``{"value": ..., "label": ...}`` choice item."""

    value = serializers.CharField()
    label = serializers.CharField()


class SystemConstantsSerializer(serializers.Serializer):
    """
    Response serializer for ``GET /api/core/constants/``.

    Every field is a list of choice items, e.g.
    ``"districts": [{"value": "Central", "label": "Central"}, ...]``.
    """

    districts = ChoiceItemSerializer(many=True)
    case_priorities = ChoiceItemSerializer(many=True)
    case_statuses = ChoiceItemSerializer(many=True)
    case_types = ChoiceItemSerializer(many=True)
    disease_types = ChoiceItemSerializer(many=True)
    volunteer_rejection_reasons = ChoiceItemSerializer(many=True)
    payment_methods = ChoiceItemSerializer(many=True)
