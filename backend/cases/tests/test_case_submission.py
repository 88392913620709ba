"""
Integration tests: case submission, numbering and role-scoped listing.

Endpoints under test:
    POST /api/cases/               (named URL: case-list)
    GET  /api/cases/               (named URL: case-list)
    GET  /api/cases/{id}/          (named URL: case-detail)
    GET  /api/cases/by-status/     (named URL: case-by-status)
"""

from __future__ import annotations

from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status

from cases.models import Case, CaseStatus, LifecycleState
from cases.services import CaseQueryService, CaseSubmissionService
from core.domain.exceptions import DomainError, PermissionDenied

from .helpers import CaseTestDataMixin, medicine_payload


class TestCaseSubmission(CaseTestDataMixin, TestCase):

    def test_submitter_creates_pending_unassigned_case(self):
        self.client.force_authenticate(self.submitter)

        resp = self.client.post(reverse("case-list"), medicine_payload(), format="json")

        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.data)
        self.assertEqual(resp.data["status"], CaseStatus.PENDING)
        self.assertEqual(resp.data["lifecycle_state"], LifecycleState.UNASSIGNED)
        self.assertIsNone(resp.data["volunteer"])
        self.assertIsNone(resp.data["volunteer_approval_status"])
        self.assertEqual(resp.data["total_donations"], "0.00")
        self.assertEqual(resp.data["submitted_by"], self.submitter.pk)

    def test_priority_is_derived_from_location(self):
        self.client.force_authenticate(self.submitter)

        high = self.client.post(reverse("case-list"), medicine_payload(), format="json")
        low = self.client.post(
            reverse("case-list"),
            medicine_payload(district="South", area="Clifton"),
            format="json",
        )
        unknown = self.client.post(
            reverse("case-list"),
            medicine_payload(district="Keamari", area="Manora"),
            format="json",
        )

        self.assertEqual(high.data["priority"], "High")
        self.assertEqual(low.data["priority"], "Low")
        self.assertEqual(unknown.data["priority"], "Medium")

    def test_manual_area_used_when_area_blank(self):
        case = self.submit(area="", manual_area="Baldia Town Sector 4")
        self.assertEqual(case.priority, "High")

    def test_client_cannot_preset_workflow_fields(self):
        self.client.force_authenticate(self.submitter)
        payload = medicine_payload(
            status="accepted",
            priority="Low",
            total_donations="99999.00",
            volunteer=self.volunteer.pk,
        )

        resp = self.client.post(reverse("case-list"), payload, format="json")

        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data["status"], CaseStatus.PENDING)
        self.assertEqual(resp.data["priority"], "High")
        self.assertEqual(resp.data["total_donations"], "0.00")
        self.assertIsNone(resp.data["volunteer"])

    def test_case_numbers_are_sequential_per_year(self):
        first = self.submit()
        second = self.submit()
        year = timezone.now().year

        self.assertEqual(first.case_number, f"CASE-{year}-00001")
        self.assertEqual(second.case_number, f"CASE-{year}-00002")

    def test_non_positive_funding_target_rejected(self):
        self.client.force_authenticate(self.submitter)
        resp = self.client.post(
            reverse("case-list"), medicine_payload(funding_target="0"), format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        with self.assertRaises(DomainError):
            self.submit(funding_target=Decimal("-5"))

    def test_sub_cent_funding_target_rejected(self):
        for target in (Decimal("0.001"), "1500.255"):
            with self.assertRaises(DomainError):
                self.submit(funding_target=target)

        self.assertFalse(Case.objects.exists())

    def test_funding_target_stored_in_whole_cents(self):
        case = self.submit(funding_target="1500.5")

        case.refresh_from_db()
        self.assertEqual(case.funding_target, Decimal("1500.50"))

    def test_medicine_case_requires_hospital_and_doctor(self):
        self.client.force_authenticate(self.submitter)
        resp = self.client.post(
            reverse("case-list"),
            medicine_payload(hospital_name="", doctor_name=""),
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("hospital_name", resp.data["detail"])

    def test_test_case_requires_selected_tests(self):
        payload = medicine_payload(case_type="test", disease_type="chronic")
        with self.assertRaises(DomainError):
            CaseSubmissionService.submit_case(payload, self.submitter)

        payload["selected_tests"] = ["CBC", "HbA1c"]
        case = CaseSubmissionService.submit_case(payload, self.submitter)
        self.assertEqual(case.selected_tests, ["CBC", "HbA1c"])

    def test_donor_cannot_submit(self):
        self.client.force_authenticate(self.donor)
        resp = self.client.post(reverse("case-list"), medicine_payload(), format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        with self.assertRaises(PermissionDenied):
            self.submit(user=self.donor)

    def test_unauthenticated_request_rejected(self):
        resp = self.client.post(reverse("case-list"), medicine_payload(), format="json")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)


class TestCaseListingScope(CaseTestDataMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.own = self.submit()
        self.foreign = self.submit(user=self.other_submitter, district="South", area="DHA")
        self.accepted = self.submit(user=self.other_submitter)
        Case.objects.filter(pk=self.accepted.pk).update(status=CaseStatus.ACCEPTED)
        Case.objects.filter(pk=self.foreign.pk).update(volunteer=self.volunteer)

    def list_ids(self, user, **params) -> set[int]:
        self.client.force_authenticate(user)
        resp = self.client.get(reverse("case-list"), params)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        return {row["id"] for row in resp.data}

    def test_admin_sees_every_case(self):
        self.assertEqual(
            self.list_ids(self.admin),
            {self.own.pk, self.foreign.pk, self.accepted.pk},
        )

    def test_submitter_sees_own_cases(self):
        self.assertEqual(self.list_ids(self.submitter), {self.own.pk})

    def test_volunteer_sees_assigned_cases(self):
        self.assertEqual(self.list_ids(self.volunteer), {self.foreign.pk})

    def test_donor_sees_accepted_cases(self):
        self.assertEqual(self.list_ids(self.donor), {self.accepted.pk})

    def test_filters_narrow_the_list(self):
        self.assertEqual(self.list_ids(self.admin, priority="Low"), {self.foreign.pk})
        self.assertEqual(self.list_ids(self.admin, status="accepted"), {self.accepted.pk})
        self.assertEqual(
            self.list_ids(self.admin, search=self.own.case_number),
            {self.own.pk},
        )

    def test_invalid_filter_value_rejected(self):
        self.client.force_authenticate(self.admin)
        resp = self.client.get(reverse("case-list"), {"priority": "Urgent"})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_out_of_scope_detail_reads_as_missing(self):
        self.client.force_authenticate(self.submitter)
        resp = self.client.get(reverse("case-detail", args=[self.foreign.pk]))
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

        resp = self.client.get(reverse("case-detail", args=[self.own.pk]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["case_number"], self.own.case_number)

    def test_list_by_status(self):
        pending = CaseQueryService.list_cases_by_status(CaseStatus.PENDING)
        self.assertEqual({c.pk for c in pending}, {self.own.pk, self.foreign.pk})

        with self.assertRaises(DomainError):
            CaseQueryService.list_cases_by_status("archived")

        self.client.force_authenticate(self.submitter)
        resp = self.client.get(reverse("case-by-status"), {"status": "pending"})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([row["id"] for row in resp.data], [self.own.pk])
