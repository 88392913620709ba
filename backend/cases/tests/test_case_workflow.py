"""
Integration tests: volunteer assignment, volunteer verdicts and admin
decisions.

Endpoints under test:
    POST /api/cases/{id}/assign-volunteer/   (case-assign-volunteer)
    POST /api/cases/{id}/volunteer-review/   (case-volunteer-review)
    POST /api/cases/{id}/admin-review/       (case-admin-review)
    GET  /api/cases/volunteer-queue/         (case-volunteer-queue)
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status

from accounts.models import Role, RoleName
from cases.models import CaseStatus, LifecycleState, VolunteerRejectionReason
from cases.services import (
    CaseQueryService,
    CaseWorkflowService,
    VolunteerAssignmentService,
)
from core.domain.exceptions import (
    Conflict,
    DomainError,
    InvalidTransition,
    NotFound,
    PermissionDenied,
)

from .helpers import CaseTestDataMixin

User = get_user_model()

PERSONAL = VolunteerRejectionReason.PERSONAL.value
FINANCIAL = VolunteerRejectionReason.FINANCIAL.value
DISEASE = VolunteerRejectionReason.DISEASE.value


class TestVolunteerAssignment(CaseTestDataMixin, TestCase):

    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        cls.second_volunteer = User.objects.create_user(
            username="second_volunteer",
            password="CaseFlow!Pass1",
            email="second_volunteer@example.com",
            phone_number="03000000006",
            role=Role.objects.get(name=RoleName.VOLUNTEER),
        )

    def setUp(self):
        super().setUp()
        self.case = self.submit()

    def assign(self, volunteer_id, user=None):
        self.client.force_authenticate(user or self.admin)
        return self.client.post(
            reverse("case-assign-volunteer", args=[self.case.pk]),
            {"volunteer_id": volunteer_id},
            format="json",
        )

    def test_admin_assigns_volunteer(self):
        resp = self.assign(self.volunteer.pk)

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        self.assertEqual(resp.data["volunteer"], self.volunteer.pk)
        self.assertEqual(resp.data["volunteer_approval_status"], "pending")
        self.assertEqual(resp.data["lifecycle_state"], LifecycleState.VOLUNTEER_PENDING)
        self.assertEqual(resp.data["status"], CaseStatus.PENDING)

    def test_reassignment_replaces_volunteer_and_resets_verdict(self):
        self.assign(self.volunteer.pk)
        CaseWorkflowService.volunteer_reject(self.case.pk, self.volunteer, [DISEASE])

        resp = self.assign(self.second_volunteer.pk)

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["volunteer"], self.second_volunteer.pk)
        self.assertEqual(resp.data["volunteer_approval_status"], "pending")
        self.assertEqual(resp.data["volunteer_rejection_reasons"], [])
        self.assertEqual(
            list(CaseQueryService.list_cases_for_volunteer(self.volunteer)), [],
        )

    def test_only_admin_can_assign(self):
        resp = self.assign(self.volunteer.pk, user=self.submitter)
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_unknown_volunteer_is_not_found(self):
        resp = self.assign(999999)
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_unknown_case_is_not_found(self):
        with self.assertRaises(NotFound):
            VolunteerAssignmentService.assign_volunteer(999999, self.volunteer.pk, self.admin)

    def test_non_volunteer_cannot_be_assigned(self):
        resp = self.assign(self.donor.pk)
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_superuser_admin_cannot_be_assigned(self):
        self.admin.is_superuser = True
        self.admin.save(update_fields=["is_superuser"])

        resp = self.assign(self.admin.pk)

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.case.refresh_from_db()
        self.assertIsNone(self.case.volunteer_id)

    def test_deactivated_volunteer_cannot_be_assigned(self):
        self.second_volunteer.is_active = False
        self.second_volunteer.save(update_fields=["is_active"])

        with self.assertRaises(DomainError):
            VolunteerAssignmentService.assign_volunteer(
                self.case.pk, self.second_volunteer.pk, self.admin,
            )

    def test_decided_case_cannot_be_assigned(self):
        CaseWorkflowService.admin_approve(self.case.pk, self.admin)

        resp = self.assign(self.volunteer.pk)

        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    def test_volunteer_queue_lists_assigned_cases(self):
        other = self.submit()
        self.assign(self.volunteer.pk)

        self.client.force_authenticate(self.volunteer)
        resp = self.client.get(reverse("case-volunteer-queue"))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        ids = [row["id"] for row in resp.data]
        self.assertEqual(ids, [self.case.pk])
        self.assertNotIn(other.pk, ids)


class TestVolunteerVerdict(CaseTestDataMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.case = self.submit()
        VolunteerAssignmentService.assign_volunteer(self.case.pk, self.volunteer.pk, self.admin)

    def review(self, payload, user=None):
        self.client.force_authenticate(user or self.volunteer)
        return self.client.post(
            reverse("case-volunteer-review", args=[self.case.pk]),
            payload,
            format="json",
        )

    def test_assigned_volunteer_approves(self):
        resp = self.review({"decision": "approve"})

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        self.assertEqual(resp.data["volunteer_approval_status"], "approved")
        self.assertEqual(resp.data["lifecycle_state"], LifecycleState.VOLUNTEER_APPROVED)
        # The verdict does not decide the case.
        self.assertEqual(resp.data["status"], CaseStatus.PENDING)

    def test_rejection_stores_reasons_in_canonical_order(self):
        resp = self.review({"decision": "reject", "reasons": [DISEASE, PERSONAL, DISEASE]})

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        self.assertEqual(resp.data["volunteer_approval_status"], "rejected")
        self.assertEqual(resp.data["volunteer_rejection_reasons"], [PERSONAL, DISEASE])

    def test_rejection_without_reasons_is_invalid(self):
        resp = self.review({"decision": "reject", "reasons": []})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        with self.assertRaises(DomainError):
            CaseWorkflowService.volunteer_reject(self.case.pk, self.volunteer, [])

    def test_unknown_reason_is_invalid(self):
        resp = self.review({"decision": "reject", "reasons": ["Looked suspicious"]})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        with self.assertRaises(DomainError):
            CaseWorkflowService.volunteer_reject(
                self.case.pk, self.volunteer, ["Looked suspicious"],
            )

    def test_verdict_from_other_volunteer_conflicts(self):
        other = User.objects.create_user(
            username="other_volunteer",
            password="CaseFlow!Pass1",
            email="other_volunteer@example.com",
            phone_number="03000000007",
            role=Role.objects.get(name=RoleName.VOLUNTEER),
        )
        resp = self.review({"decision": "approve"}, user=other)
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    def test_non_volunteer_cannot_record_verdict(self):
        resp = self.review({"decision": "approve"}, user=self.submitter)
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_second_verdict_is_an_invalid_transition(self):
        CaseWorkflowService.volunteer_approve(self.case.pk, self.volunteer)

        with self.assertRaises(InvalidTransition):
            CaseWorkflowService.volunteer_reject(self.case.pk, self.volunteer, [FINANCIAL])

    def test_verdict_on_unassigned_case_conflicts(self):
        fresh = self.submit()
        with self.assertRaises(Conflict):
            CaseWorkflowService.volunteer_approve(fresh.pk, self.volunteer)

    def test_verdict_after_admin_decision_is_invalid(self):
        CaseWorkflowService.admin_reject(self.case.pk, self.admin)
        resp = self.review({"decision": "approve"})
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    def test_deactivated_volunteer_cannot_record_verdict(self):
        self.volunteer.is_active = False
        self.volunteer.save(update_fields=["is_active"])
        volunteer = User.objects.get(pk=self.volunteer.pk)

        with self.assertRaises(PermissionDenied):
            CaseWorkflowService.volunteer_approve(self.case.pk, volunteer)


class TestAdminDecision(CaseTestDataMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.case = self.submit()

    def decide(self, decision, user=None):
        self.client.force_authenticate(user or self.admin)
        return self.client.post(
            reverse("case-admin-review", args=[self.case.pk]),
            {"decision": decision},
            format="json",
        )

    def test_admin_accepts_unassigned_case(self):
        resp = self.decide("approve")

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        self.assertEqual(resp.data["status"], CaseStatus.ACCEPTED)
        self.assertEqual(resp.data["lifecycle_state"], LifecycleState.ADMIN_ACCEPTED)
        self.assertEqual(resp.data["decided_by"], self.admin.pk)
        self.assertIsNotNone(resp.data["decided_at"])

    def test_admin_may_accept_after_volunteer_rejection(self):
        VolunteerAssignmentService.assign_volunteer(self.case.pk, self.volunteer.pk, self.admin)
        CaseWorkflowService.volunteer_reject(self.case.pk, self.volunteer, [FINANCIAL])

        resp = self.decide("approve")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["status"], CaseStatus.ACCEPTED)
        self.assertEqual(resp.data["volunteer_approval_status"], "rejected")

    def test_admin_rejects_after_volunteer_approval(self):
        VolunteerAssignmentService.assign_volunteer(self.case.pk, self.volunteer.pk, self.admin)
        CaseWorkflowService.volunteer_approve(self.case.pk, self.volunteer)

        resp = self.decide("reject")

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["lifecycle_state"], LifecycleState.ADMIN_REJECTED)

    def test_repeated_decision_is_a_no_op(self):
        first = CaseWorkflowService.admin_approve(self.case.pk, self.admin)
        second = CaseWorkflowService.admin_approve(self.case.pk, self.admin)

        self.assertEqual(second.status, CaseStatus.ACCEPTED)
        self.assertEqual(second.decided_at, first.decided_at)

    def test_rejecting_accepted_case_returns_it_unchanged(self):
        accepted = CaseWorkflowService.admin_approve(self.case.pk, self.admin)

        resp = self.decide("reject")

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        self.assertEqual(resp.data["status"], CaseStatus.ACCEPTED)
        self.assertEqual(resp.data["lifecycle_state"], LifecycleState.ADMIN_ACCEPTED)

        self.case.refresh_from_db()
        self.assertEqual(self.case.status, CaseStatus.ACCEPTED)
        self.assertEqual(self.case.decided_at, accepted.decided_at)

    def test_approving_rejected_case_returns_it_unchanged(self):
        rejected = CaseWorkflowService.admin_reject(self.case.pk, self.admin)

        case = CaseWorkflowService.admin_approve(self.case.pk, self.admin)

        self.assertEqual(case.status, CaseStatus.REJECTED)
        self.assertEqual(case.decided_at, rejected.decided_at)

    def test_later_decision_by_another_admin_is_ignored(self):
        other_admin = User.objects.create_user(
            username="second_admin",
            password="CaseFlow!Pass1",
            email="second_admin@example.com",
            phone_number="03000000009",
            role=Role.objects.get(name=RoleName.ADMIN),
        )
        CaseWorkflowService.admin_reject(self.case.pk, self.admin)

        resp = self.decide("approve", user=other_admin)

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["status"], CaseStatus.REJECTED)
        self.assertEqual(resp.data["decided_by"], self.admin.pk)

    def test_only_admin_can_decide(self):
        for user in (self.volunteer, self.submitter, self.donor):
            resp = self.decide("approve", user=user)
            self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_unknown_decision_rejected(self):
        resp = self.decide("maybe")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_case_is_not_found(self):
        with self.assertRaises(NotFound):
            CaseWorkflowService.admin_reject(999999, self.admin)
