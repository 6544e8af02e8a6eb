"""API views for role and account management and privileged checks."""

from __future__ import annotations

import logging

from django.contrib.auth import get_user_model  # type: ignore
from django.db import transaction  # type: ignore
from django.shortcuts import get_object_or_404  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.filters import SearchFilter  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.notifications.tasks import notify_roles_updated

from .models import Profile, UserRole
from .permissions import IsAdmin, permissions_for
from .rpc import is_admin
from .serializers import (
    ManagedUserSerializer,
    PermissionsSerializer,
    SuspendUserSerializer,
    UserRolesSerializer,
)

logger = logging.getLogger(__name__)

User = get_user_model()


class UserRolesView(APIView):
    """
    Roles of a single user.

    GET /api/v1/accounts/users/{id}/roles/ - current assignments and flags
    PUT /api/v1/accounts/users/{id}/roles/ - replace assignments, notify the user
    Body: {"roles": ["properties_admin", "moderator"]}
    """

    permission_classes = [IsAdmin]

    def get(self, request, user_id):  # type: ignore
        user = get_object_or_404(User, pk=user_id)
        serializer = PermissionsSerializer(permissions_for(user).as_dict())
        return Response(serializer.data, status=status.HTTP_200_OK)

    def put(self, request, user_id):  # type: ignore
        user = get_object_or_404(User, pk=user_id)
        serializer = UserRolesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        roles = serializer.validated_data["roles"]

        with transaction.atomic():
            UserRole.objects.filter(user=user).delete()
            # One save per role so each assignment reaches the realtime feed
            for role in roles:
                UserRole.objects.create(user=user, role=role)

        if roles:
            transaction.on_commit(lambda: notify_roles_updated.delay(user.pk, roles))

        logger.info(f"User {request.user.pk} set roles of user {user.pk} to {roles}")
        return Response(
            PermissionsSerializer(permissions_for(user).as_dict()).data,
            status=status.HTTP_200_OK,
        )


class IsAdminView(APIView):
    """
    RPC: is the given user an administrator?

    GET /api/v1/accounts/rpc/is-admin/{id}/ -> {"is_admin": true|false}
    """

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, user_id):  # type: ignore
        return Response({"is_admin": is_admin(user_id)}, status=status.HTTP_200_OK)


class UserAdminViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Account management for administrators.

    GET  /api/v1/accounts/users/                   - newest first, ?is_active= and ?search=
    GET  /api/v1/accounts/users/{id}/
    POST /api/v1/accounts/users/{id}/suspend/      - body: {"reason": "..."}
    POST /api/v1/accounts/users/{id}/reactivate/
    """

    queryset = Profile.objects.select_related("user").prefetch_related("user__role_assignments")
    serializer_class = ManagedUserSerializer
    permission_classes = [IsAdmin]
    filter_backends = [DjangoFilterBackend, SearchFilter]
    filterset_fields = ["is_active"]
    search_fields = ["full_name", "phone", "user__email"]
    lookup_field = "user_id"
    lookup_value_regex = r"\d+"

    @action(detail=True, methods=["post"])
    def suspend(self, request, user_id=None):  # type: ignore
        profile = self.get_object()
        if profile.user_id == request.user.pk:
            return Response(
                {"detail": "You cannot suspend your own account."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        serializer = SuspendUserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        with transaction.atomic():
            profile.suspend(serializer.validated_data["reason"], by=request.user)

        logger.info(f"User {request.user.pk} suspended user {profile.user_id}")
        return Response(self.get_serializer(profile).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"])
    def reactivate(self, request, user_id=None):  # type: ignore
        profile = self.get_object()
        with transaction.atomic():
            profile.reactivate()

        logger.info(f"User {request.user.pk} reactivated user {profile.user_id}")
        return Response(self.get_serializer(profile).data, status=status.HTTP_200_OK)
