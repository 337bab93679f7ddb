"""
Shifts app ViewSets.

Views validate request shape, call ``ShiftService`` and serialize the
result.  Scheduling rejections surface as ``ShiftRejected`` and are
rendered by the global exception handler as
``{"detail": ..., "code": ...}`` with status 400.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import serializers as drf_serializers
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from core.domain.exceptions import NotFound

from .serializers import (
    ShiftCreateSerializer,
    ShiftSerializer,
    ShiftStatusSerializer,
    ShiftUpdateSerializer,
    ShiftValidateRequestSerializer,
    ShiftValidationResultSerializer,
)
from .services import ShiftService

_REJECTION = OpenApiResponse(description="Scheduling rule violated (body carries `code`).")


def _parse_window(request: Request) -> tuple:
    field = drf_serializers.DateTimeField()
    parsed = []
    for key in ("start", "end"):
        raw = request.query_params.get(key)
        parsed.append(field.to_internal_value(raw) if raw else None)
    return tuple(parsed)


class ShiftViewSet(viewsets.ViewSet):
    """
    /api/shifts/

    GET    /api/shifts/                 list (filters: status, officer, start, end)
    POST   /api/shifts/                 create
    GET    /api/shifts/{id}/            retrieve
    PATCH  /api/shifts/{id}/            partial update
    DELETE /api/shifts/{id}/            delete
    POST   /api/shifts/{id}/status/     lifecycle transition
    GET    /api/shifts/upcoming/        shifts starting in a window
    POST   /api/shifts/validate/        dry-run validation
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List shifts",
        parameters=[
            OpenApiParameter(name="status", type=str, required=False),
            OpenApiParameter(name="officer", type=int, required=False),
            OpenApiParameter(name="start", type=str, required=False, description="ISO-8601 window start."),
            OpenApiParameter(name="end", type=str, required=False, description="ISO-8601 window end."),
        ],
        responses={200: OpenApiResponse(response=ShiftSerializer(many=True), description="Shifts.")},
        tags=["Shifts"],
    )
    def list(self, request: Request) -> Response:
        start, end = _parse_window(request)
        officer = request.query_params.get("officer")
        if officer is not None and not officer.isdigit():
            raise drf_serializers.ValidationError({"officer": "Must be an integer id."})
        shifts = ShiftService.list_shifts(
            request.user,
            status=request.query_params.get("status") or None,
            officer_id=int(officer) if officer else None,
            start=start,
            end=end,
        )
        return Response(ShiftSerializer(shifts, many=True).data)

    @extend_schema(
        summary="Create shift",
        request=ShiftCreateSerializer,
        responses={
            201: OpenApiResponse(response=ShiftSerializer, description="Shift created (pending)."),
            400: _REJECTION,
            403: OpenApiResponse(description="Missing permission."),
            503: OpenApiResponse(description="Officer or shift lookup unavailable."),
        },
        tags=["Shifts"],
    )
    def create(self, request: Request) -> Response:
        serializer = ShiftCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        shift = ShiftService.create_shift(serializer.validated_data, request.user)
        return Response(ShiftSerializer(shift).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve shift",
        responses={200: OpenApiResponse(response=ShiftSerializer, description="Shift.")},
        tags=["Shifts"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        shift = ShiftService.get_shift(pk, request.user)
        return Response(ShiftSerializer(shift).data)

    @extend_schema(
        summary="Update shift",
        request=ShiftUpdateSerializer,
        responses={
            200: OpenApiResponse(response=ShiftSerializer, description="Shift updated."),
            400: _REJECTION,
            409: OpenApiResponse(description="Shift is no longer editable."),
        },
        tags=["Shifts"],
    )
    def partial_update(self, request: Request, pk: str = None) -> Response:
        shift = ShiftService.get_shift(pk, request.user)
        serializer = ShiftUpdateSerializer(instance=shift, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        shift = ShiftService.update_shift(shift, serializer.validated_data, request.user)
        return Response(ShiftSerializer(shift).data)

    @extend_schema(
        summary="Delete shift",
        responses={
            204: OpenApiResponse(description="Deleted."),
            409: OpenApiResponse(description="Shift is in progress or completed."),
        },
        tags=["Shifts"],
    )
    def destroy(self, request: Request, pk: str = None) -> Response:
        shift = ShiftService.get_shift(pk, request.user)
        ShiftService.delete_shift(shift, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        summary="Change shift status",
        request=ShiftStatusSerializer,
        responses={
            200: OpenApiResponse(response=ShiftSerializer, description="Status changed."),
            409: OpenApiResponse(description="Transition not allowed."),
        },
        tags=["Shifts"],
    )
    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request: Request, pk: str = None) -> Response:
        shift = ShiftService.get_shift(pk, request.user)
        serializer = ShiftStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        shift = ShiftService.transition_status(
            shift, serializer.validated_data["status"], request.user,
        )
        return Response(ShiftSerializer(shift).data)

    @extend_schema(
        summary="Upcoming shifts",
        parameters=[
            OpenApiParameter(name="start", type=str, required=False, description="Defaults to now."),
            OpenApiParameter(name="end", type=str, required=False, description="Defaults to start + 7 days."),
        ],
        responses={
            200: OpenApiResponse(response=ShiftSerializer(many=True), description="Upcoming shifts."),
            400: OpenApiResponse(description="Window end before start."),
        },
        tags=["Shifts"],
    )
    @action(detail=False, methods=["get"], url_path="upcoming")
    def upcoming(self, request: Request) -> Response:
        start, end = _parse_window(request)
        shifts = ShiftService.list_upcoming(request.user, start=start, end=end)
        return Response(ShiftSerializer(shifts, many=True).data)

    @extend_schema(
        summary="Validate a shift without saving it",
        request=ShiftValidateRequestSerializer,
        responses={
            200: OpenApiResponse(response=ShiftValidationResultSerializer, description="Outcome."),
            404: OpenApiResponse(description="`shift_id` names no shift."),
            409: OpenApiResponse(description="Shift is no longer editable."),
        },
        tags=["Shifts"],
    )
    @action(detail=False, methods=["post"], url_path="validate")
    def validate(self, request: Request) -> Response:
        serializer = ShiftValidateRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = ShiftService.validate_proposal(serializer.validated_data, request.user)
        return Response(ShiftValidationResultSerializer(result).data)


class OfficerShiftViewSet(viewsets.ViewSet):
    """GET /api/officers/{officer_pk}/shifts/ — one officer's shifts."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List an officer's shifts",
        parameters=[OpenApiParameter(name="status", type=str, required=False)],
        responses={200: OpenApiResponse(response=ShiftSerializer(many=True), description="Shifts.")},
        tags=["Shifts"],
    )
    def list(self, request: Request, officer_pk: str = None) -> Response:
        if not str(officer_pk).isdigit():
            raise NotFound(f"Officer with id {officer_pk} not found.")
        shifts = ShiftService.list_for_officer(
            int(officer_pk),
            request.user,
            status=request.query_params.get("status") or None,
        )
        return Response(ShiftSerializer(shifts, many=True).data)
