"""
Donations app URL configuration.

Included from ``backend.urls`` under ``/api/``.

Route Hierarchy
---------------
  ── Donor history ───────────────────────────────────────────────
  GET  /api/donations/                                  → list visible donations
  GET  /api/donations/{id}/                             → retrieve donation
  GET  /api/donations/summary/                          → caller's donor summary

  ── Nested: per-case ledger (under /cases/{case_pk}/) ────────────
  GET  /api/cases/{case_pk}/donations/                  → list case donations
  POST /api/cases/{case_pk}/donations/                  → record donation
  GET  /api/cases/{case_pk}/donations/funding-status/   → total / target / remaining
  GET  /api/cases/{case_pk}/donations/contributed/      → advisory contribution flag
  POST /api/cases/{case_pk}/donations/reconcile/        → rebuild total (admin)
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_nested.routers import NestedDefaultRouter

from cases.urls import router as cases_router

from .views import CaseDonationViewSet, DonationViewSet

# ── Primary Router ──────────────────────────────────────────────────
router = DefaultRouter()
router.register(
    prefix=r"donations",
    viewset=DonationViewSet,
    basename="donation",
)

# ── Nested Router (under /cases/{case_pk}/) ─────────────────────────
case_donations_router = NestedDefaultRouter(
    parent_router=cases_router,
    parent_prefix=r"cases",
    lookup="case",
)
case_donations_router.register(
    prefix=r"donations",
    viewset=CaseDonationViewSet,
    basename="case-donation",
)

urlpatterns = [
    path("", include(router.urls)),
    path("", include(case_donations_router.urls)),
]
