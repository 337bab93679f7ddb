"""
Alerts app ViewSets.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from .serializers import AlertCreateSerializer, AlertSerializer
from .services import AlertService


class AlertViewSet(viewsets.ViewSet):
    """
    /api/alerts/

    GET  /api/alerts/                   active alerts (filters: kind, severity, area)
    GET  /api/alerts/all/               every alert, for broadcasters
    POST /api/alerts/                   publish
    GET  /api/alerts/{id}/              retrieve
    POST /api/alerts/{id}/deactivate/   withdraw
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List active alerts",
        parameters=[
            OpenApiParameter(name="kind", type=str, required=False),
            OpenApiParameter(name="severity", type=str, required=False),
            OpenApiParameter(name="area", type=str, required=False),
        ],
        responses={200: OpenApiResponse(response=AlertSerializer(many=True), description="Active alerts.")},
        tags=["Alerts"],
    )
    def list(self, request: Request) -> Response:
        params = request.query_params
        alerts = AlertService.list_active(
            request.user,
            kind=params.get("kind") or None,
            severity=params.get("severity") or None,
            area=params.get("area") or None,
        )
        return Response(AlertSerializer(alerts, many=True).data)

    @extend_schema(
        summary="List all alerts",
        responses={200: OpenApiResponse(response=AlertSerializer(many=True), description="All alerts.")},
        tags=["Alerts"],
    )
    @action(detail=False, methods=["get"], url_path="all")
    def all_alerts(self, request: Request) -> Response:
        alerts = AlertService.list_all(request.user)
        return Response(AlertSerializer(alerts, many=True).data)

    @extend_schema(
        summary="Publish alert",
        request=AlertCreateSerializer,
        responses={
            201: OpenApiResponse(response=AlertSerializer, description="Alert published."),
            403: OpenApiResponse(description="Missing permission."),
        },
        tags=["Alerts"],
    )
    def create(self, request: Request) -> Response:
        serializer = AlertCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        alert = AlertService.create_alert(serializer.validated_data, request.user)
        return Response(AlertSerializer(alert).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve alert",
        responses={200: OpenApiResponse(response=AlertSerializer, description="Alert.")},
        tags=["Alerts"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        alert = AlertService.get_alert(pk, request.user)
        return Response(AlertSerializer(alert).data)

    @extend_schema(
        summary="Withdraw alert",
        request=None,
        responses={200: OpenApiResponse(response=AlertSerializer, description="Alert deactivated.")},
        tags=["Alerts"],
    )
    @action(detail=True, methods=["post"], url_path="deactivate")
    def deactivate(self, request: Request, pk: str = None) -> Response:
        alert = AlertService.get_alert(pk, request.user)
        alert = AlertService.deactivate_alert(alert, request.user)
        return Response(AlertSerializer(alert).data)
