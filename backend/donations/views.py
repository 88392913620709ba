"""
Donations app ViewSets.

Thin views: validate with a serializer, delegate to
``FundingLedgerService`` / ``DonationQueryService``, serialize.

ViewSets
--------
- ``DonationViewSet``      — the caller's donation history and summary.
- ``CaseDonationViewSet``  — nested under ``/cases/{case_pk}/``: record
  a donation, list a case's donations, funding status, reconciliation.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    inline_serializer,
)
from rest_framework import serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from .serializers import (
    DonationCreateSerializer,
    DonationFilterSerializer,
    DonationSerializer,
    DonorSummarySerializer,
    FundingStatusSerializer,
    ReconcileResultSerializer,
)
from .services import DonationQueryService, FundingLedgerService

logger = logging.getLogger(__name__)


class DonationViewSet(viewsets.ViewSet):
    """
    Read-only donation history.

    Donors see their own donations; users holding
    ``donations.can_view_all_donations`` see every donation.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List donations",
        parameters=[
            OpenApiParameter(name="case", type=int, location=OpenApiParameter.QUERY, description="Filter by case PK."),
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY, description="pending, completed or failed."),
            OpenApiParameter(name="is_zakat_donation", type=bool, location=OpenApiParameter.QUERY, description="Zakat donations only / exclude them."),
        ],
        responses={
            200: OpenApiResponse(response=DonationSerializer(many=True), description="Visible donations."),
        },
        tags=["Donations"],
    )
    def list(self, request: Request) -> Response:
        filter_serializer = DonationFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        qs = DonationQueryService.list_donations(
            request.user, filter_serializer.validated_data,
        )
        return Response(DonationSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Retrieve a donation",
        responses={
            200: OpenApiResponse(response=DonationSerializer, description="Donation detail."),
            404: OpenApiResponse(description="Donation not found or not visible."),
        },
        tags=["Donations"],
    )
    def retrieve(self, request: Request, pk: int = None) -> Response:
        donation = DonationQueryService.get_donation(pk, request.user)
        return Response(DonationSerializer(donation).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Donor summary",
        description="Completed donation count, total given and distinct cases helped by the caller.",
        responses={
            200: OpenApiResponse(response=DonorSummarySerializer, description="Summary."),
        },
        tags=["Donations"],
    )
    @action(detail=False, methods=["get"], url_path="summary")
    def summary(self, request: Request) -> Response:
        data = DonationQueryService.donor_summary(request.user)
        return Response(DonorSummarySerializer(data).data, status=status.HTTP_200_OK)


class CaseDonationViewSet(viewsets.ViewSet):
    """Donations of a single case (``/api/cases/{case_pk}/donations/``)."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List a case's donations",
        responses={
            200: OpenApiResponse(response=DonationSerializer(many=True), description="Visible donations to this case."),
            404: OpenApiResponse(description="Case not found."),
        },
        tags=["Donations"],
    )
    def list(self, request: Request, case_pk: int = None) -> Response:
        qs = DonationQueryService.list_case_donations(case_pk, request.user)
        return Response(DonationSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Record a donation",
        description=(
            "Book a captured payment against an accepted case and add it to "
            "the case total.  Zakat donations require a zakat-eligible case. "
            "Repeating a known payment_reference returns the original entry."
        ),
        request=DonationCreateSerializer,
        responses={
            201: OpenApiResponse(response=DonationSerializer, description="Donation recorded."),
            400: OpenApiResponse(description="Invalid amount or zakat not allowed."),
            403: OpenApiResponse(description="Caller is not a donor."),
            404: OpenApiResponse(description="Case not found."),
            409: OpenApiResponse(description="Case not accepting donations, or reference clash."),
        },
        tags=["Donations"],
    )
    def create(self, request: Request, case_pk: int = None) -> Response:
        serializer = DonationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        donation = FundingLedgerService.record_donation(
            case_pk,
            request.user,
            data["amount"],
            data["is_zakat_donation"],
            payment_method=data["payment_method"],
            payment_reference=data["payment_reference"],
            transaction_id=data["transaction_id"],
        )
        return Response(DonationSerializer(donation).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Funding status",
        responses={
            200: OpenApiResponse(response=FundingStatusSerializer, description="Total, target and remaining amount."),
            404: OpenApiResponse(description="Case not found."),
        },
        tags=["Donations"],
    )
    @action(detail=False, methods=["get"], url_path="funding-status")
    def funding_status(self, request: Request, case_pk: int = None) -> Response:
        data = FundingLedgerService.funding_status(case_pk, request.user)
        return Response(FundingStatusSerializer(data).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Has the caller contributed?",
        description="Advisory: whether the caller already holds a completed donation to this case.",
        responses={
            200: OpenApiResponse(
                response=inline_serializer(
                    name="HasContributedResponse",
                    fields={"has_contributed": serializers.BooleanField()},
                ),
                description="Contribution flag.",
            ),
        },
        tags=["Donations"],
    )
    @action(detail=False, methods=["get"], url_path="contributed")
    def contributed(self, request: Request, case_pk: int = None) -> Response:
        flag = DonationQueryService.has_contributed(request.user, case_pk)
        return Response({"has_contributed": flag}, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Reconcile case total",
        description="Recompute the case total from completed donations.  Admin only.",
        request=None,
        responses={
            200: OpenApiResponse(response=ReconcileResultSerializer, description="Reconciliation result."),
            403: OpenApiResponse(description="Permission denied."),
            404: OpenApiResponse(description="Case not found."),
        },
        tags=["Donations"],
    )
    @action(detail=False, methods=["post"], url_path="reconcile")
    def reconcile(self, request: Request, case_pk: int = None) -> Response:
        data = FundingLedgerService.recalculate_total(case_pk, request.user)
        return Response(ReconcileResultSerializer(data).data, status=status.HTTP_200_OK)
