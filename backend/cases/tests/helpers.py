"""
Shared fixtures for case, donation and end-to-end tests.

``CaseTestDataMixin`` seeds the four roles through ``setup_rbac`` and
creates one user per role; ``medicine_payload`` is a complete
submission body for a medicine case in Orangi Town (High priority).
"""

from __future__ import annotations

from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from rest_framework.test import APIClient

from accounts.models import Role, RoleName
from cases.models import Case
from cases.services import CaseSubmissionService

User = get_user_model()


def medicine_payload(**overrides) -> dict:
    payload = {
        "patient_name": "Rashid Ali",
        "patient_phone": "03001112233",
        "district": "West",
        "area": "Orangi Town",
        "address": "Sector 11-1/2, Orangi Town",
        "case_type": "medicine",
        "disease_name": "Type 2 diabetes",
        "description": "Monthly insulin for six months.",
        "hospital_name": "Abbasi Shaheed Hospital",
        "doctor_name": "Dr. Farah Khan",
        "funding_target": "45000.00",
        "zakat_eligible": True,
    }
    payload.update(overrides)
    return payload


class CaseTestDataMixin:
    """Seeds roles and one user per role."""

    @classmethod
    def setUpTestData(cls):
        call_command("setup_rbac", stdout=StringIO())
        roles = {role.name: role for role in Role.objects.all()}

        def make(username, role_name, phone):
            return User.objects.create_user(
                username=username,
                password="CaseFlow!Pass1",
                email=f"{username}@example.com",
                phone_number=phone,
                first_name=username.title(),
                last_name="Tester",
                role=roles[role_name],
            )

        cls.admin = make("admin_user", RoleName.ADMIN, "03000000001")
        cls.volunteer = make("volunteer_user", RoleName.VOLUNTEER, "03000000002")
        cls.submitter = make("submitter_user", RoleName.SUBMITTER, "03000000003")
        cls.other_submitter = make("other_submitter", RoleName.SUBMITTER, "03000000004")
        cls.donor = make("donor_user", RoleName.DONOR, "03000000005")

    def setUp(self):
        self.client = APIClient()

    def submit(self, user=None, **overrides) -> Case:
        return CaseSubmissionService.submit_case(
            medicine_payload(**overrides), user or self.submitter,
        )
