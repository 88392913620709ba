"""
Cases app ViewSets.

Architecture: Views are intentionally thin.
Every view follows the strict three-step pattern:

    1. Parse / validate input via a serializer.
    2. Delegate all business logic to the appropriate service class.
    3. Serialize the result and return a DRF ``Response``.

Service-layer exceptions (``DomainError``, ``PermissionDenied``,
``NotFound``, ``Conflict``) propagate to the global DRF exception handler,
which maps them onto 400 / 403 / 404 / 409.

ViewSets
--------
- ``CaseViewSet`` — submission, listing and detail, plus @action methods
  for volunteer assignment, verdicts, admin decisions and priority
  management.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from .serializers import (
    AdminDecisionSerializer,
    AssignVolunteerSerializer,
    CaseDetailSerializer,
    CaseFilterSerializer,
    CaseListSerializer,
    CasesByStatusQuerySerializer,
    CaseSubmitSerializer,
    PriorityOverrideSerializer,
    PriorityRecomputeResultSerializer,
    VolunteerReviewSerializer,
)
from .services import (
    CasePriorityService,
    CaseQueryService,
    CaseSubmissionService,
    CaseWorkflowService,
    VolunteerAssignmentService,
)

logger = logging.getLogger(__name__)


class CaseViewSet(viewsets.ViewSet):
    """
    Central ViewSet for the cases app.

    Uses ``viewsets.ViewSet`` (not ``ModelViewSet``) so every action is
    explicitly defined.  Cases are never edited or deleted through the
    API; they only move through the workflow actions below.

    Permission Strategy
    -------------------
    The base permission is ``IsAuthenticated``.  Role and ownership checks
    are enforced inside the service layer.
    """

    permission_classes = [IsAuthenticated]

    def _detail(self, request: Request, case, http_status=status.HTTP_200_OK) -> Response:
        serializer = CaseDetailSerializer(case, context={"request": request})
        return Response(serializer.data, status=http_status)

    # ── Standard endpoints ───────────────────────────────────────────

    @extend_schema(
        summary="List cases",
        description=(
            "List cases visible to the authenticated user.  Admins see every "
            "case, volunteers their assigned cases, submitters their own and "
            "donors accepted cases."
        ),
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY, description="pending, accepted or rejected."),
            OpenApiParameter(name="priority", type=str, location=OpenApiParameter.QUERY, description="High, Medium or Low."),
            OpenApiParameter(name="district", type=str, location=OpenApiParameter.QUERY, description="Karachi district."),
            OpenApiParameter(name="volunteer_approval_status", type=str, location=OpenApiParameter.QUERY, description="Volunteer verdict."),
            OpenApiParameter(name="zakat_eligible", type=bool, location=OpenApiParameter.QUERY, description="Zakat eligibility."),
            OpenApiParameter(name="search", type=str, location=OpenApiParameter.QUERY, description="Case number or patient name."),
        ],
        responses={
            200: OpenApiResponse(response=CaseListSerializer(many=True), description="Filtered list of cases."),
        },
        tags=["Cases"],
    )
    def list(self, request: Request) -> Response:
        filter_serializer = CaseFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)

        qs = CaseQueryService.get_filtered_queryset(
            request.user, filter_serializer.validated_data,
        )
        serializer = CaseListSerializer(qs, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Submit a case",
        description=(
            "Submit a new medical-need case.  Priority is derived from the "
            "patient's district and area; the case starts pending and "
            "unassigned.  Requires the Submitter role."
        ),
        request=CaseSubmitSerializer,
        responses={
            201: OpenApiResponse(response=CaseDetailSerializer, description="Case created."),
            400: OpenApiResponse(description="Validation error or incomplete disease information."),
            403: OpenApiResponse(description="Permission denied."),
        },
        tags=["Cases"],
    )
    def create(self, request: Request) -> Response:
        serializer = CaseSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        case = CaseSubmissionService.submit_case(serializer.validated_data, request.user)
        return self._detail(request, case, status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve case details",
        responses={
            200: OpenApiResponse(response=CaseDetailSerializer, description="Full case detail."),
            404: OpenApiResponse(description="Case not found or outside the caller's scope."),
        },
        tags=["Cases"],
    )
    def retrieve(self, request: Request, pk: int = None) -> Response:
        case = CaseQueryService.get_case_detail(pk, request.user)
        return self._detail(request, case)

    # ── Collection @actions ──────────────────────────────────────────

    @extend_schema(
        summary="Volunteer work queue",
        description="Cases currently assigned to the authenticated volunteer.",
        responses={
            200: OpenApiResponse(response=CaseListSerializer(many=True), description="Assigned cases."),
        },
        tags=["Cases – Volunteer"],
    )
    @action(detail=False, methods=["get"], url_path="volunteer-queue")
    def volunteer_queue(self, request: Request) -> Response:
        qs = CaseQueryService.list_cases_for_volunteer(request.user)
        serializer = CaseListSerializer(qs, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="List cases by status",
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY, required=True, description="pending, accepted or rejected."),
        ],
        responses={
            200: OpenApiResponse(response=CaseListSerializer(many=True), description="Cases in the given status."),
            400: OpenApiResponse(description="Unknown status."),
        },
        tags=["Cases"],
    )
    @action(detail=False, methods=["get"], url_path="by-status")
    def by_status(self, request: Request) -> Response:
        query = CasesByStatusQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        qs = CaseQueryService.list_cases_by_status(
            query.validated_data["status"], request.user,
        )
        serializer = CaseListSerializer(qs, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Recompute priorities",
        description=(
            "Re-run area classification for every case whose priority has "
            "not been pinned by an override.  Admin only."
        ),
        request=None,
        responses={
            200: OpenApiResponse(response=PriorityRecomputeResultSerializer, description="Recompute summary."),
            403: OpenApiResponse(description="Permission denied."),
        },
        tags=["Cases – Admin"],
    )
    @action(detail=False, methods=["post"], url_path="recompute-priorities")
    def recompute_priorities(self, request: Request) -> Response:
        result = CasePriorityService.recompute_priorities(request.user)
        return Response(
            PriorityRecomputeResultSerializer(result).data,
            status=status.HTTP_200_OK,
        )

    # ── Workflow @actions ────────────────────────────────────────────

    @extend_schema(
        summary="Assign a volunteer",
        description=(
            "Bind a volunteer to a pending case, replacing any previous "
            "volunteer and resetting the verdict.  Admin only."
        ),
        request=AssignVolunteerSerializer,
        responses={
            200: OpenApiResponse(response=CaseDetailSerializer, description="Volunteer assigned."),
            400: OpenApiResponse(description="User is inactive or not a volunteer."),
            403: OpenApiResponse(description="Permission denied."),
            404: OpenApiResponse(description="Case or volunteer not found."),
            409: OpenApiResponse(description="Case has already been decided."),
        },
        tags=["Cases – Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="assign-volunteer")
    def assign_volunteer(self, request: Request, pk: int = None) -> Response:
        serializer = AssignVolunteerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        case = VolunteerAssignmentService.assign_volunteer(
            pk, serializer.validated_data["volunteer_id"], request.user,
        )
        return self._detail(request, case)

    @extend_schema(
        summary="Record volunteer verdict",
        description=(
            "The assigned volunteer approves or rejects the case after "
            "verification.  Rejection requires at least one reason."
        ),
        request=VolunteerReviewSerializer,
        responses={
            200: OpenApiResponse(response=CaseDetailSerializer, description="Verdict recorded."),
            400: OpenApiResponse(description="Missing or invalid rejection reasons."),
            403: OpenApiResponse(description="Caller is not a volunteer."),
            404: OpenApiResponse(description="Case not found."),
            409: OpenApiResponse(description="Not assigned to the caller, or verdict already recorded."),
        },
        tags=["Cases – Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="volunteer-review")
    def volunteer_review(self, request: Request, pk: int = None) -> Response:
        serializer = VolunteerReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if data["decision"] == "approve":
            case = CaseWorkflowService.volunteer_approve(pk, request.user)
        else:
            case = CaseWorkflowService.volunteer_reject(pk, request.user, data["reasons"])
        return self._detail(request, case)

    @extend_schema(
        summary="Admin decision",
        description=(
            "Accept or reject a pending case.  The volunteer verdict is advisory.  "
            "Deciding a case that is already accepted or rejected returns it unchanged."
        ),
        request=AdminDecisionSerializer,
        responses={
            200: OpenApiResponse(
                response=CaseDetailSerializer,
                description="Decision recorded, or case already decided.",
            ),
            403: OpenApiResponse(description="Permission denied."),
            404: OpenApiResponse(description="Case not found."),
        },
        tags=["Cases – Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="admin-review")
    def admin_review(self, request: Request, pk: int = None) -> Response:
        serializer = AdminDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        if serializer.validated_data["decision"] == "approve":
            case = CaseWorkflowService.admin_approve(pk, request.user)
        else:
            case = CaseWorkflowService.admin_reject(pk, request.user)
        return self._detail(request, case)

    @extend_schema(
        summary="Override priority",
        description="Pin the case priority so recomputes leave it alone.  Admin only.",
        request=PriorityOverrideSerializer,
        responses={
            200: OpenApiResponse(response=CaseDetailSerializer, description="Priority pinned."),
            403: OpenApiResponse(description="Permission denied."),
            404: OpenApiResponse(description="Case not found."),
        },
        tags=["Cases – Admin"],
    )
    @action(detail=True, methods=["post"], url_path="override-priority")
    def override_priority(self, request: Request, pk: int = None) -> Response:
        serializer = PriorityOverrideSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        case = CasePriorityService.override_priority(
            pk, serializer.validated_data["priority"], request.user,
        )
        return self._detail(request, case)
