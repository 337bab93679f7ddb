"""
Accounts app views.

All views follow the **Thin View** pattern: validate input via
serializers, delegate to the service layer, and return the result
wrapped in a DRF ``Response``.

View Map
--------
- ``RegisterView``  — POST /auth/register/
- ``LoginView``     — POST /auth/login/
- ``MeView``        — GET / PATCH /me/
- ``UserViewSet``   — /users/  (list, retrieve, assign-role,
                      activate, deactivate)
- ``RoleListView``  — GET /roles/
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import generics, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    AssignRoleSerializer,
    CustomTokenObtainPairSerializer,
    MeUpdateSerializer,
    RegisterRequestSerializer,
    RoleListSerializer,
    UserDetailSerializer,
    UserListSerializer,
)
from .services import (
    CurrentUserService,
    UserManagementService,
    UserRegistrationService,
)


def _parse_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    return value.strip().lower() in {"1", "true", "yes"}


# ═══════════════════════════════════════════════════════════════════
#  Authentication Views
# ═══════════════════════════════════════════════════════════════════


class RegisterView(generics.CreateAPIView):
    """
    POST /api/accounts/auth/register/

    Public endpoint.  Creates a new user with the default "Citizen" role.
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    serializer_class = RegisterRequestSerializer

    @extend_schema(
        summary="Register",
        responses={
            201: OpenApiResponse(response=UserDetailSerializer, description="User created."),
            400: OpenApiResponse(description="Validation error."),
            409: OpenApiResponse(description="Username, email or phone already taken."),
        },
        tags=["Accounts"],
    )
    def create(self, request: Request, *args, **kwargs) -> Response:
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserRegistrationService.register_user(serializer.validated_data)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_201_CREATED)


class LoginView(APIView):
    """
    POST /api/accounts/auth/login/

    Public endpoint.  Authenticates with ``identifier`` (username, email
    or phone number) plus password and returns a JWT pair together with
    the user profile.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Login",
        request=CustomTokenObtainPairSerializer,
        responses={
            200: OpenApiResponse(description="Token pair and user profile."),
            400: OpenApiResponse(description="Invalid credentials."),
        },
        tags=["Accounts"],
    )
    def post(self, request: Request) -> Response:
        serializer = CustomTokenObtainPairSerializer(
            data=request.data,
            context={"request": request},
        )
        serializer.is_valid(raise_exception=True)

        payload = dict(serializer.validated_data)
        payload["user"] = UserDetailSerializer(serializer.user).data
        return Response(payload, status=status.HTTP_200_OK)


# ═══════════════════════════════════════════════════════════════════
#  Current User ("Me") View
# ═══════════════════════════════════════════════════════════════════


class MeView(APIView):
    """
    GET   /api/accounts/me/ → current user profile with permissions.
    PATCH /api/accounts/me/ → update own profile fields.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Current user",
        responses={200: OpenApiResponse(response=UserDetailSerializer, description="Profile.")},
        tags=["Accounts"],
    )
    def get(self, request: Request) -> Response:
        user = CurrentUserService.get_profile(request.user)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Update current user",
        request=MeUpdateSerializer,
        responses={200: OpenApiResponse(response=UserDetailSerializer, description="Updated profile.")},
        tags=["Accounts"],
    )
    def patch(self, request: Request) -> Response:
        serializer = MeUpdateSerializer(
            instance=request.user,
            data=request.data,
            partial=True,
        )
        serializer.is_valid(raise_exception=True)
        user = CurrentUserService.update_profile(request.user, serializer.validated_data)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)


# ═══════════════════════════════════════════════════════════════════
#  User Management ViewSet
# ═══════════════════════════════════════════════════════════════════


class UserViewSet(viewsets.ViewSet):
    """
    /api/accounts/users/

    Administrative user management.  Requires
    ``accounts.can_manage_users``; enforced in ``UserManagementService``.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List users",
        parameters=[
            OpenApiParameter(name="role", type=int, required=False),
            OpenApiParameter(name="is_active", type=bool, required=False),
            OpenApiParameter(name="search", type=str, required=False),
        ],
        responses={200: OpenApiResponse(response=UserListSerializer(many=True), description="Users.")},
        tags=["Users"],
    )
    def list(self, request: Request) -> Response:
        params = request.query_params
        role = params.get("role")
        users = UserManagementService.list_users(
            request.user,
            role_id=int(role) if role and role.isdigit() else None,
            is_active=_parse_bool(params.get("is_active")),
            search=params.get("search") or None,
        )
        return Response(UserListSerializer(users, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Retrieve user",
        responses={200: OpenApiResponse(response=UserDetailSerializer, description="User.")},
        tags=["Users"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        user = UserManagementService.get_user(request.user, pk)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Assign role",
        request=AssignRoleSerializer,
        responses={
            200: OpenApiResponse(response=UserDetailSerializer, description="Updated user."),
            403: OpenApiResponse(description="Insufficient authority."),
            404: OpenApiResponse(description="User or role not found."),
        },
        tags=["Users"],
    )
    @action(detail=True, methods=["patch"], url_path="assign-role")
    def assign_role(self, request: Request, pk: str = None) -> Response:
        serializer = AssignRoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserManagementService.assign_role(
            user_id=pk,
            role_id=serializer.validated_data["role_id"],
            requesting_user=request.user,
        )
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)

    @extend_schema(summary="Activate user", request=None, tags=["Users"])
    @action(detail=True, methods=["patch"], url_path="activate")
    def activate(self, request: Request, pk: str = None) -> Response:
        user = UserManagementService.activate_user(pk, request.user)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)

    @extend_schema(summary="Deactivate user", request=None, tags=["Users"])
    @action(detail=True, methods=["patch"], url_path="deactivate")
    def deactivate(self, request: Request, pk: str = None) -> Response:
        user = UserManagementService.deactivate_user(pk, request.user)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_200_OK)


class RoleListView(generics.ListAPIView):
    """GET /api/accounts/roles/ — every role, highest authority first."""

    permission_classes = [IsAuthenticated]
    serializer_class = RoleListSerializer
    pagination_class = None

    def get_queryset(self):
        return UserManagementService.list_roles()
