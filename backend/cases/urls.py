"""
Cases app URL configuration.

All routes are registered under the ``/api/`` prefix.

Route Hierarchy
---------------
  /api/cases/                              → list / submit
  /api/cases/{id}/                         → retrieve

  ── Collection @actions ─────────────────────────────────────────
  GET  /api/cases/volunteer-queue/
  GET  /api/cases/by-status/?status=
  POST /api/cases/recompute-priorities/

  ── Workflow @actions ───────────────────────────────────────────
  POST /api/cases/{id}/assign-volunteer/
  POST /api/cases/{id}/volunteer-review/
  POST /api/cases/{id}/admin-review/
  POST /api/cases/{id}/override-priority/
"""

from rest_framework.routers import DefaultRouter

from .views import CaseViewSet

router = DefaultRouter()
router.register(
    prefix=r"cases",
    viewset=CaseViewSet,
    basename="case",
)

urlpatterns = router.urls
