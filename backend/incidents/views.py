"""
Incidents app ViewSets — thin views over the incident services.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import serializers as drf_serializers
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from .serializers import (
    AnonymousIncidentReceiptSerializer,
    AnonymousIncidentSerializer,
    AssignOfficersSerializer,
    IncidentCreateSerializer,
    IncidentNoteSerializer,
    IncidentSerializer,
    IncidentStatusSerializer,
    IncidentTimelineSerializer,
    IncidentTypeCountSerializer,
    IncidentUpdateSerializer,
    MonthlyIncidentCountSerializer,
)
from .services import (
    IncidentAnalyticsService,
    IncidentAssignmentService,
    IncidentCreationService,
    IncidentQueryService,
    IncidentWorkflowService,
)


class IncidentViewSet(viewsets.ViewSet):
    """
    /api/incidents/

    GET    /api/incidents/                     list (scoped)
    POST   /api/incidents/                     open an incident
    GET    /api/incidents/{id}/                retrieve
    PATCH  /api/incidents/{id}/                edit details
    DELETE /api/incidents/{id}/                delete (reported / closed only)
    POST   /api/incidents/{id}/status/         lifecycle transition
    POST   /api/incidents/{id}/assign/         add officers
    GET    /api/incidents/{id}/timeline/       timeline entries
    POST   /api/incidents/{id}/timeline/       add a progress note
    POST   /api/incidents/anonymous/           public anonymous tip
    GET    /api/incidents/analytics/monthly/   counts per month and status
    GET    /api/incidents/analytics/categories/ counts per incident type
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List incidents",
        parameters=[
            OpenApiParameter(name="status", type=str, required=False),
            OpenApiParameter(name="priority", type=str, required=False),
            OpenApiParameter(name="incident_type", type=str, required=False),
            OpenApiParameter(name="officer", type=int, required=False),
            OpenApiParameter(name="search", type=str, required=False),
        ],
        responses={200: OpenApiResponse(response=IncidentSerializer(many=True), description="Incidents.")},
        tags=["Incidents"],
    )
    def list(self, request: Request) -> Response:
        params = request.query_params
        officer = params.get("officer")
        if officer is not None and not officer.isdigit():
            raise drf_serializers.ValidationError({"officer": "Must be an integer id."})
        incidents = IncidentQueryService.list_incidents(
            request.user,
            status=params.get("status") or None,
            priority=params.get("priority") or None,
            incident_type=params.get("incident_type") or None,
            officer_id=int(officer) if officer else None,
            search=params.get("search") or None,
        )
        return Response(IncidentSerializer(incidents, many=True).data)

    @extend_schema(
        summary="Open incident",
        request=IncidentCreateSerializer,
        responses={
            201: OpenApiResponse(response=IncidentSerializer, description="Incident opened."),
            400: OpenApiResponse(description="Validation error or unknown officer."),
            403: OpenApiResponse(description="Missing permission."),
        },
        tags=["Incidents"],
    )
    def create(self, request: Request) -> Response:
        serializer = IncidentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        incident = IncidentCreationService.create_incident(serializer.validated_data, request.user)
        incident = IncidentQueryService.get_incident(incident.pk, request.user)
        return Response(IncidentSerializer(incident).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve incident",
        responses={200: OpenApiResponse(response=IncidentSerializer, description="Incident.")},
        tags=["Incidents"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        incident = IncidentQueryService.get_incident(pk, request.user)
        return Response(IncidentSerializer(incident).data)

    @extend_schema(
        summary="Edit incident",
        request=IncidentUpdateSerializer,
        responses={
            200: OpenApiResponse(response=IncidentSerializer, description="Incident updated."),
            409: OpenApiResponse(description="Incident is resolved or closed."),
        },
        tags=["Incidents"],
    )
    def partial_update(self, request: Request, pk: str = None) -> Response:
        incident = IncidentQueryService.get_incident(pk, request.user)
        serializer = IncidentUpdateSerializer(instance=incident, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        IncidentWorkflowService.update_incident(incident, serializer.validated_data, request.user)
        incident = IncidentQueryService.get_incident(pk, request.user)
        return Response(IncidentSerializer(incident).data)

    @extend_schema(
        summary="Delete incident",
        responses={
            204: OpenApiResponse(description="Deleted."),
            409: OpenApiResponse(description="Incident is still being worked."),
        },
        tags=["Incidents"],
    )
    def destroy(self, request: Request, pk: str = None) -> Response:
        incident = IncidentQueryService.get_incident(pk, request.user)
        IncidentWorkflowService.delete_incident(incident, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        summary="Change incident status",
        request=IncidentStatusSerializer,
        responses={
            200: OpenApiResponse(response=IncidentSerializer, description="Status changed."),
            409: OpenApiResponse(description="Transition not allowed."),
        },
        tags=["Incidents"],
    )
    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request: Request, pk: str = None) -> Response:
        incident = IncidentQueryService.get_incident(pk, request.user)
        serializer = IncidentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        IncidentWorkflowService.change_status(
            incident,
            serializer.validated_data["status"],
            request.user,
            notes=serializer.validated_data["notes"],
        )
        incident = IncidentQueryService.get_incident(pk, request.user)
        return Response(IncidentSerializer(incident).data)

    @extend_schema(
        summary="Assign officers",
        request=AssignOfficersSerializer,
        responses={
            200: OpenApiResponse(response=IncidentSerializer, description="Officers assigned."),
            400: OpenApiResponse(description="Unknown officer id."),
        },
        tags=["Incidents"],
    )
    @action(detail=True, methods=["post"], url_path="assign")
    def assign(self, request: Request, pk: str = None) -> Response:
        incident = IncidentQueryService.get_incident(pk, request.user)
        serializer = AssignOfficersSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        IncidentAssignmentService.assign_officers(
            incident, serializer.validated_data["officer_ids"], request.user,
        )
        incident = IncidentQueryService.get_incident(pk, request.user)
        return Response(IncidentSerializer(incident).data)

    @extend_schema(
        summary="Incident timeline",
        methods=["GET"],
        responses={200: OpenApiResponse(response=IncidentTimelineSerializer(many=True), description="Timeline.")},
        tags=["Incidents"],
    )
    @extend_schema(
        summary="Add a progress note",
        methods=["POST"],
        request=IncidentNoteSerializer,
        responses={201: OpenApiResponse(response=IncidentTimelineSerializer, description="Note added.")},
        tags=["Incidents"],
    )
    @action(detail=True, methods=["get", "post"], url_path="timeline")
    def timeline(self, request: Request, pk: str = None) -> Response:
        incident = IncidentQueryService.get_incident(pk, request.user)
        if request.method == "GET":
            updates = IncidentQueryService.list_updates(incident)
            return Response(IncidentTimelineSerializer(updates, many=True).data)

        serializer = IncidentNoteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        note = IncidentWorkflowService.add_note(
            incident, serializer.validated_data["content"], request.user,
        )
        return Response(IncidentTimelineSerializer(note).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Report an incident anonymously",
        description="Public endpoint.  No account or token is needed and none is recorded.",
        request=AnonymousIncidentSerializer,
        responses={
            201: OpenApiResponse(response=AnonymousIncidentReceiptSerializer, description="Tip received."),
            400: OpenApiResponse(description="Validation error."),
            403: OpenApiResponse(description="Anonymous reporting is disabled."),
        },
        tags=["Incidents"],
    )
    @action(
        detail=False,
        methods=["post"],
        url_path="anonymous",
        url_name="anonymous",
        permission_classes=[AllowAny],
    )
    def report_anonymously(self, request: Request) -> Response:
        serializer = AnonymousIncidentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        incident = IncidentCreationService.report_anonymously(serializer.validated_data)
        return Response(AnonymousIncidentReceiptSerializer(incident).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Incidents per month by status",
        responses={200: OpenApiResponse(response=MonthlyIncidentCountSerializer(many=True), description="Counts.")},
        tags=["Incidents"],
    )
    @action(detail=False, methods=["get"], url_path="analytics/monthly")
    def analytics_monthly(self, request: Request) -> Response:
        rows = IncidentAnalyticsService.monthly_counts(request.user)
        return Response(MonthlyIncidentCountSerializer(rows, many=True).data)

    @extend_schema(
        summary="Incidents per type",
        responses={200: OpenApiResponse(response=IncidentTypeCountSerializer(many=True), description="Counts.")},
        tags=["Incidents"],
    )
    @action(detail=False, methods=["get"], url_path="analytics/categories")
    def analytics_categories(self, request: Request) -> Response:
        rows = IncidentAnalyticsService.type_counts(request.user)
        return Response(IncidentTypeCountSerializer(rows, many=True).data)
