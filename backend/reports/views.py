"""
Reports app ViewSets — thin views over ``ReportService``.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from incidents.serializers import IncidentSerializer

from .serializers import (
    ConvertToIncidentSerializer,
    ReportSerializer,
    ReportStatusSerializer,
    ReportWriteSerializer,
)
from .services import ReportService


class ReportViewSet(viewsets.ViewSet):
    """
    /api/reports/

    GET    /api/reports/                       list (own reports, or all for reviewers)
    POST   /api/reports/                       file a report
    GET    /api/reports/{id}/                  retrieve
    PATCH  /api/reports/{id}/                  edit
    DELETE /api/reports/{id}/                  withdraw / delete
    POST   /api/reports/{id}/status/           review transition
    POST   /api/reports/{id}/convert/          convert into an incident
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List reports",
        parameters=[
            OpenApiParameter(name="status", type=str, required=False),
            OpenApiParameter(name="report_type", type=str, required=False),
            OpenApiParameter(name="priority", type=str, required=False),
            OpenApiParameter(name="search", type=str, required=False),
        ],
        responses={200: OpenApiResponse(response=ReportSerializer(many=True), description="Reports.")},
        tags=["Reports"],
    )
    def list(self, request: Request) -> Response:
        params = request.query_params
        reports = ReportService.list_reports(
            request.user,
            status=params.get("status") or None,
            report_type=params.get("report_type") or None,
            priority=params.get("priority") or None,
            search=params.get("search") or None,
        )
        return Response(ReportSerializer(reports, many=True).data)

    @extend_schema(
        summary="File a report",
        request=ReportWriteSerializer,
        responses={
            201: OpenApiResponse(response=ReportSerializer, description="Report filed."),
            400: OpenApiResponse(description="Validation error."),
            403: OpenApiResponse(description="Missing permission."),
        },
        tags=["Reports"],
    )
    def create(self, request: Request) -> Response:
        serializer = ReportWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = ReportService.create_report(serializer.validated_data, request.user)
        return Response(ReportSerializer(report).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve report",
        responses={200: OpenApiResponse(response=ReportSerializer, description="Report.")},
        tags=["Reports"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        report = ReportService.get_report(pk, request.user)
        return Response(ReportSerializer(report).data)

    @extend_schema(
        summary="Edit report",
        request=ReportWriteSerializer,
        responses={
            200: OpenApiResponse(response=ReportSerializer, description="Report updated."),
            409: OpenApiResponse(description="Report can no longer be edited."),
        },
        tags=["Reports"],
    )
    def partial_update(self, request: Request, pk: str = None) -> Response:
        report = ReportService.get_report(pk, request.user)
        serializer = ReportWriteSerializer(instance=report, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        report = ReportService.update_report(report, serializer.validated_data, request.user)
        return Response(ReportSerializer(report).data)

    @extend_schema(
        summary="Delete report",
        responses={204: OpenApiResponse(description="Deleted.")},
        tags=["Reports"],
    )
    def destroy(self, request: Request, pk: str = None) -> Response:
        report = ReportService.get_report(pk, request.user)
        ReportService.delete_report(report, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        summary="Change report status",
        request=ReportStatusSerializer,
        responses={
            200: OpenApiResponse(response=ReportSerializer, description="Status changed."),
            409: OpenApiResponse(description="Transition not allowed."),
        },
        tags=["Reports"],
    )
    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request: Request, pk: str = None) -> Response:
        report = ReportService.get_report(pk, request.user)
        serializer = ReportStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = ReportService.change_status(
            report,
            serializer.validated_data["status"],
            request.user,
            notes=serializer.validated_data["notes"],
        )
        return Response(ReportSerializer(report).data)

    @extend_schema(
        summary="Convert report to incident",
        request=ConvertToIncidentSerializer,
        responses={
            201: OpenApiResponse(response=IncidentSerializer, description="Incident created."),
            409: OpenApiResponse(description="Report rejected or already converted."),
        },
        tags=["Reports"],
    )
    @action(detail=True, methods=["post"], url_path="convert")
    def convert(self, request: Request, pk: str = None) -> Response:
        report = ReportService.get_report(pk, request.user)
        serializer = ConvertToIncidentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        incident = ReportService.convert_to_incident(
            report,
            request.user,
            priority=data.get("priority"),
            officer_ids=data["officer_ids"],
            notes=data["notes"],
        )
        return Response(IncidentSerializer(incident).data, status=status.HTTP_201_CREATED)
