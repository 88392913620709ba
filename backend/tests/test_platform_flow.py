"""
End-to-end flow through the public API, authenticated with real JWTs:

register → submit case → assign volunteer → volunteer verdict →
admin acceptance → donations → funding status.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from django.urls import reverse
from rest_framework import status

pytestmark = pytest.mark.django_db

_PASSWORD = "Flow!Pass2025"


def _register(api_client, username: str, account_type: str, phone: str) -> dict:
    resp = api_client.post(
        reverse("accounts:register"),
        {
            "username": username,
            "password": _PASSWORD,
            "password_confirm": _PASSWORD,
            "email": f"{username}@example.com",
            "phone_number": phone,
            "first_name": username.title(),
            "last_name": "Flow",
            "account_type": account_type,
        },
        format="json",
    )
    assert resp.status_code == status.HTTP_201_CREATED, resp.data
    return resp.data


def _login(api_client, identifier: str, password: str = _PASSWORD) -> None:
    api_client.credentials()
    resp = api_client.post(
        reverse("accounts:login"),
        {"identifier": identifier, "password": password},
        format="json",
    )
    assert resp.status_code == status.HTTP_200_OK, resp.data
    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.data['access']}")


def test_case_from_submission_to_full_funding(api_client, rbac, create_user):
    create_user(username="platform_admin", password=_PASSWORD, role=rbac["Admin"])
    _register(api_client, "sana_submitter", "submitter", "03211234567")
    volunteer = _register(api_client, "imran_volunteer", "volunteer", "03221234567")
    _register(api_client, "hina_donor", "donor", "03231234567")
    _register(api_client, "omar_donor", "donor", "03241234567")

    # ── Submission ───────────────────────────────────────────────────
    _login(api_client, "sana_submitter")
    resp = api_client.post(
        reverse("case-list"),
        {
            "patient_name": "Nadia Parveen",
            "district": "East",
            "area": "Korangi",
            "case_type": "medicine",
            "disease_name": "Hepatitis C",
            "description": "Twelve-week antiviral course.",
            "hospital_name": "Jinnah Postgraduate Medical Centre",
            "doctor_name": "Dr. Asad Mirza",
            "funding_target": "50000.00",
            "zakat_eligible": True,
        },
        format="json",
    )
    assert resp.status_code == status.HTTP_201_CREATED, resp.data
    case_id = resp.data["id"]
    assert resp.data["priority"] == "High"
    assert resp.data["lifecycle_state"] == "unassigned"

    # Donations are refused until the case is accepted.
    _login(api_client, "hina_donor")
    resp = api_client.post(
        reverse("case-donation-list", args=[case_id]), {"amount": "100"}, format="json",
    )
    assert resp.status_code == status.HTTP_409_CONFLICT

    # ── Verification ─────────────────────────────────────────────────
    _login(api_client, "platform_admin")
    resp = api_client.post(
        reverse("case-assign-volunteer", args=[case_id]),
        {"volunteer_id": volunteer["id"]},
        format="json",
    )
    assert resp.status_code == status.HTTP_200_OK, resp.data

    _login(api_client, "03221234567")
    resp = api_client.get(reverse("case-volunteer-queue"))
    assert [row["id"] for row in resp.data] == [case_id]
    resp = api_client.post(
        reverse("case-volunteer-review", args=[case_id]),
        {"decision": "approve"},
        format="json",
    )
    assert resp.status_code == status.HTTP_200_OK
    assert resp.data["lifecycle_state"] == "volunteer_approved"

    # ── Decision ─────────────────────────────────────────────────────
    _login(api_client, "platform_admin@test.local")
    resp = api_client.post(
        reverse("case-admin-review", args=[case_id]),
        {"decision": "approve"},
        format="json",
    )
    assert resp.status_code == status.HTTP_200_OK
    assert resp.data["status"] == "accepted"

    # ── Funding ──────────────────────────────────────────────────────
    _login(api_client, "hina_donor")
    resp = api_client.get(reverse("case-list"))
    assert [row["id"] for row in resp.data] == [case_id]
    resp = api_client.post(
        reverse("case-donation-list", args=[case_id]),
        {"amount": "30000.00", "is_zakat_donation": True, "payment_reference": "pay-001"},
        format="json",
    )
    assert resp.status_code == status.HTTP_201_CREATED, resp.data

    _login(api_client, "omar_donor")
    resp = api_client.post(
        reverse("case-donation-list", args=[case_id]),
        {"amount": "30000.00", "payment_method": "easypaisa", "payment_reference": "pay-002"},
        format="json",
    )
    assert resp.status_code == status.HTTP_201_CREATED, resp.data

    resp = api_client.get(reverse("case-donation-funding-status", args=[case_id]))
    assert resp.status_code == status.HTTP_200_OK
    assert Decimal(resp.data["total_donations"]) == Decimal("60000.00")
    assert Decimal(resp.data["remaining"]) == Decimal("0")
    assert resp.data["is_fully_funded"] is True

    # The submitter sees the funded total on their own case.
    _login(api_client, "sana_submitter")
    resp = api_client.get(reverse("case-detail", args=[case_id]))
    assert resp.data["is_fully_funded"] is True

    resp = api_client.get(reverse("core:platform-stats"))
    assert resp.data["accepted_cases"] == 1
    assert resp.data["active_donors"] == 2
