"""
Core app views — **Thin Views**.

Each view delegates all business logic to the corresponding service in
``core.services``.  Views are responsible only for:

1. Extracting and validating query parameters from the request.
2. Calling the service with the authenticated user and parameters.
3. Serialising the result and returning an HTTP ``Response``.
"""

from __future__ import annotations

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)

from .serializers import (
    HealthCheckSerializer,
    NotificationSerializer,
    SystemMetricsSerializer,
)
from .services import (
    NotificationInboxService,
    SystemHealthService,
    SystemMetricsService,
)


class HealthCheckView(APIView):
    """
    **GET /api/core/health/**

    Public readiness probe.  Returns ``200`` when every check passes and
    ``503`` when the database is unreachable or the notification backlog
    is above its threshold.
    """

    permission_classes = [AllowAny]
    authentication_classes = []  # No authentication required

    @extend_schema(
        summary="System health",
        description=(
            "Report database connectivity and notification-queue backlog. "
            "Public; intended for load balancers and uptime monitors."
        ),
        responses={
            200: OpenApiResponse(response=HealthCheckSerializer, description="All checks passed."),
            503: OpenApiResponse(response=HealthCheckSerializer, description="At least one check failed."),
        },
        tags=["System"],
    )
    def get(self, request: Request) -> Response:
        data = SystemHealthService.check()
        http_status = (
            status.HTTP_200_OK
            if data["status"] == "ok"
            else status.HTTP_503_SERVICE_UNAVAILABLE
        )
        return Response(HealthCheckSerializer(data).data, status=http_status)


class SystemMetricsView(APIView):
    """
    **GET /api/core/metrics/**

    Aggregated counters across reports, incidents, shifts, alerts,
    officers and the notification queue.

    **Authentication**: Required, plus ``core.can_view_system_metrics``.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="System metrics",
        description="Aggregated operational counters. Requires `core.can_view_system_metrics`.",
        responses={
            200: OpenApiResponse(response=SystemMetricsSerializer, description="Metrics snapshot."),
            403: OpenApiResponse(description="Missing permission."),
        },
        tags=["System"],
    )
    def get(self, request: Request) -> Response:
        data = SystemMetricsService.collect(request.user)
        return Response(SystemMetricsSerializer(data).data, status=status.HTTP_200_OK)


class NotificationViewSet(viewsets.ViewSet):
    """
    **Notification API** — list and mark-as-read for the authenticated user.

    Endpoints
    ---------
    GET  /api/core/notifications/              → list notifications
    POST /api/core/notifications/{id}/read/    → mark a notification as read
    POST /api/core/notifications/read-all/     → mark every notification as read
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List notifications",
        description="Return notifications for the authenticated user, newest first.",
        parameters=[
            OpenApiParameter(name="unread", type=bool, required=False, description="Only unread notifications."),
        ],
        responses={200: OpenApiResponse(response=NotificationSerializer(many=True), description="Notification list.")},
        tags=["Notifications"],
    )
    def list(self, request: Request) -> Response:
        unread_only = request.query_params.get("unread", "").lower() in {"1", "true", "yes"}
        service = NotificationInboxService(user=request.user)
        notifications = service.list_notifications(unread_only=unread_only)
        serializer = NotificationSerializer(notifications, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Mark notification as read",
        description="Mark a single notification as read by ID.",
        request=None,
        responses={
            200: OpenApiResponse(response=NotificationSerializer, description="Updated notification."),
            404: OpenApiResponse(description="Notification not found."),
        },
        tags=["Notifications"],
    )
    @action(detail=True, methods=["post"], url_path="read")
    def mark_as_read(self, request: Request, pk: int = None) -> Response:
        service = NotificationInboxService(user=request.user)
        notification = service.mark_as_read(notification_id=pk)
        serializer = NotificationSerializer(notification)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Mark all notifications as read",
        request=None,
        responses={200: OpenApiResponse(description="Number of notifications updated.")},
        tags=["Notifications"],
    )
    @action(detail=False, methods=["post"], url_path="read-all")
    def mark_all_as_read(self, request: Request) -> Response:
        updated = NotificationInboxService(user=request.user).mark_all_as_read()
        return Response({"updated": updated}, status=status.HTTP_200_OK)
