"""
Officers app ViewSets — thin views over ``OfficerService``.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from incidents.services import IncidentAnalyticsService

from .serializers import OfficerPerformanceSerializer, OfficerSerializer, OfficerWriteSerializer
from .services import OfficerService


class OfficerViewSet(viewsets.ViewSet):
    """
    /api/officers/

    GET    /api/officers/                  list (filters: status, district, search)
    POST   /api/officers/                  create
    GET    /api/officers/{id}/             retrieve
    PATCH  /api/officers/{id}/             partial update
    POST   /api/officers/{id}/deactivate/  soft-delete
    GET    /api/officers/{id}/performance/ incident workload and resolution figures
    GET    /api/officers/me/performance/  the same for the caller's own profile
    GET    /api/officers/badge/{badge}/    lookup by badge number
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List officers",
        parameters=[
            OpenApiParameter(name="status", type=str, required=False),
            OpenApiParameter(name="district", type=str, required=False),
            OpenApiParameter(name="search", type=str, required=False),
            OpenApiParameter(name="include_inactive", type=bool, required=False),
        ],
        responses={200: OpenApiResponse(response=OfficerSerializer(many=True), description="Officers.")},
        tags=["Officers"],
    )
    def list(self, request: Request) -> Response:
        params = request.query_params
        officers = OfficerService.list_officers(
            request.user,
            status=params.get("status") or None,
            district=params.get("district") or None,
            search=params.get("search") or None,
            include_inactive=params.get("include_inactive", "").lower() in {"1", "true", "yes"},
        )
        return Response(OfficerSerializer(officers, many=True).data)

    @extend_schema(
        summary="Create officer",
        request=OfficerWriteSerializer,
        responses={
            201: OpenApiResponse(response=OfficerSerializer, description="Officer created."),
            400: OpenApiResponse(description="Validation error."),
            403: OpenApiResponse(description="Missing permission."),
        },
        tags=["Officers"],
    )
    def create(self, request: Request) -> Response:
        serializer = OfficerWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        officer = OfficerService.create_officer(serializer.validated_data, request.user)
        return Response(OfficerSerializer(officer).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve officer",
        responses={200: OpenApiResponse(response=OfficerSerializer, description="Officer.")},
        tags=["Officers"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        officer = OfficerService.get_officer(pk, request.user)
        return Response(OfficerSerializer(officer).data)

    @extend_schema(
        summary="Update officer",
        request=OfficerWriteSerializer,
        responses={200: OpenApiResponse(response=OfficerSerializer, description="Officer updated.")},
        tags=["Officers"],
    )
    def partial_update(self, request: Request, pk: str = None) -> Response:
        officer = OfficerService.get_officer(pk, request.user)
        serializer = OfficerWriteSerializer(instance=officer, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        officer = OfficerService.update_officer(officer, serializer.validated_data, request.user)
        return Response(OfficerSerializer(officer).data)

    @extend_schema(
        summary="Deactivate officer",
        request=None,
        responses={200: OpenApiResponse(response=OfficerSerializer, description="Officer deactivated.")},
        tags=["Officers"],
    )
    @action(detail=True, methods=["post"], url_path="deactivate")
    def deactivate(self, request: Request, pk: str = None) -> Response:
        officer = OfficerService.get_officer(pk, request.user)
        officer = OfficerService.deactivate_officer(officer, request.user)
        return Response(OfficerSerializer(officer).data)

    @extend_schema(
        summary="Find officer by badge number",
        responses={
            200: OpenApiResponse(response=OfficerSerializer, description="Officer."),
            404: OpenApiResponse(description="No officer carries this badge."),
        },
        tags=["Officers"],
    )
    @action(detail=False, methods=["get"], url_path=r"badge/(?P<badge_number>[^/]+)")
    def by_badge(self, request: Request, badge_number: str = None) -> Response:
        officer = OfficerService.get_by_badge(badge_number, request.user)
        return Response(OfficerSerializer(officer).data)

    @extend_schema(
        summary="Officer performance figures",
        responses={200: OpenApiResponse(response=OfficerPerformanceSerializer, description="Figures.")},
        tags=["Officers"],
    )
    @action(detail=True, methods=["get"], url_path="performance")
    def performance(self, request: Request, pk: str = None) -> Response:
        officer = OfficerService.get_officer(pk, request.user)
        stats = IncidentAnalyticsService.officer_performance(officer, request.user)
        return Response(OfficerPerformanceSerializer(stats).data)

    @extend_schema(
        summary="My performance figures",
        responses={
            200: OpenApiResponse(response=OfficerPerformanceSerializer, description="Figures."),
            404: OpenApiResponse(description="No officer profile linked to this account."),
        },
        tags=["Officers"],
    )
    @action(detail=False, methods=["get"], url_path="me/performance")
    def my_performance(self, request: Request) -> Response:
        officer = OfficerService.get_linked_officer(request.user)
        stats = IncidentAnalyticsService.officer_performance(officer, request.user)
        return Response(OfficerPerformanceSerializer(stats).data)
