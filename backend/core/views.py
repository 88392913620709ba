"""
Core app views — **Thin Views**.

Each view delegates to the corresponding service in ``core.services``
and only serialises the result.  No model imports, no aggregation logic.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from drf_spectacular.utils import OpenApiResponse, extend_schema

from .serializers import PlatformStatsSerializer, SystemConstantsSerializer
from .services import PlatformStatsService, SystemConstantsService


class PlatformStatsView(APIView):
    """
    **GET /api/core/stats/**

    Public landing-page figures.  No authentication required.
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Platform statistics",
        description="Active donors, cases per status and total funds raised.",
        responses={200: OpenApiResponse(response=PlatformStatsSerializer, description="Platform statistics.")},
        tags=["System"],
    )
    def get(self, request: Request) -> Response:
        data = PlatformStatsService.get_stats()
        serializer = PlatformStatsSerializer(data)
        return Response(serializer.data, status=status.HTTP_200_OK)


class SystemConstantsView(APIView):
    """
    **GET /api/core/constants/**

    Choice enumerations (districts, priorities, rejection reasons, payment
    methods, ...) so the frontend can build dropdowns without hardcoding
    values.  Public.
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="System constants",
        responses={200: OpenApiResponse(response=SystemConstantsSerializer, description="System constants.")},
        tags=["System"],
    )
    def get(self, request: Request) -> Response:
        data = SystemConstantsService.get_constants()
        serializer = SystemConstantsSerializer(data)
        return Response(serializer.data, status=status.HTTP_200_OK)
