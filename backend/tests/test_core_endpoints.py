"""
Integration tests for the public core endpoints.

Scope in this file:
- GET /api/core/stats/       (core:platform-stats)
- GET /api/core/constants/   (core:system-constants)
"""

from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from cases.models import CaseStatus, District
from cases.services import CaseWorkflowService
from cases.tests.helpers import CaseTestDataMixin
from donations.services import FundingLedgerService


class TestPlatformStats(CaseTestDataMixin, TestCase):

    def test_empty_platform(self):
        resp = APIClient().get(reverse("core:platform-stats"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["total_cases"], 0)
        self.assertEqual(resp.data["total_raised"], "0.00")
        self.assertEqual(resp.data["active_donors"], 1)

    def test_counts_cases_and_completed_donations(self):
        accepted = self.submit()
        CaseWorkflowService.admin_approve(accepted.pk, self.admin)
        rejected = self.submit()
        CaseWorkflowService.admin_reject(rejected.pk, self.admin)
        self.submit()
        FundingLedgerService.record_donation(accepted.pk, self.donor, "1250.50")
        FundingLedgerService.record_donation(accepted.pk, self.donor, "749.50")

        resp = self.client.get(reverse("core:platform-stats"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["total_cases"], 3)
        self.assertEqual(resp.data["pending_cases"], 1)
        self.assertEqual(resp.data["accepted_cases"], 1)
        self.assertEqual(resp.data["rejected_cases"], 1)
        self.assertEqual(Decimal(resp.data["total_raised"]), Decimal("2000.00"))

    def test_inactive_donors_are_not_counted(self):
        self.donor.is_active = False
        self.donor.save(update_fields=["is_active"])

        resp = self.client.get(reverse("core:platform-stats"))

        self.assertEqual(resp.data["active_donors"], 0)


class TestSystemConstants(TestCase):

    def test_constants_are_public(self):
        resp = APIClient().get(reverse("core:system-constants"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        for key in (
            "districts",
            "case_priorities",
            "case_statuses",
            "case_types",
            "disease_types",
            "volunteer_rejection_reasons",
            "payment_methods",
        ):
            self.assertIn(key, resp.data)

    def test_choice_items_have_value_and_label(self):
        resp = APIClient().get(reverse("core:system-constants"))

        districts = {item["value"] for item in resp.data["districts"]}
        self.assertEqual(districts, set(District.values))
        statuses = [item["value"] for item in resp.data["case_statuses"]]
        self.assertEqual(statuses, list(CaseStatus.values))
        self.assertEqual(
            {item["value"] for item in resp.data["case_priorities"]},
            {"High", "Medium", "Low"},
        )
