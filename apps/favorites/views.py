"""API views for favorites."""

from __future__ import annotations

from django.db import IntegrityError, transaction  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .models import Favorite
from .serializers import FavoriteSerializer, FavoriteToggleSerializer


class FavoriteViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Favorites of the requesting user.

    Endpoints:
    - GET /api/v1/favorites/ - favorites, newest first
    - POST /api/v1/favorites/toggle/ - add or remove one listing
    - GET /api/v1/favorites/check/{property_id}/ - is the listing a favorite
    """

    queryset = Favorite.objects.select_related('user', 'property')
    serializer_class = FavoriteSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        return super().get_queryset().filter(user=self.request.user)

    def get_serializer_class(self):  # type: ignore
        if self.action == 'toggle':
            return FavoriteToggleSerializer
        return FavoriteSerializer

    @action(detail=False, methods=['post'])
    def toggle(self, request):  # type: ignore
        """
        POST /api/v1/favorites/toggle/
        Body: {"property_id": 123}

        Returns:
            {"action": "added" | "removed", "property_id": 123, "is_favorite": bool}
        """
        serializer = FavoriteToggleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        property_id = serializer.validated_data['property_id']

        deleted, _ = Favorite.objects.filter(user=request.user, property_id=property_id).delete()
        if deleted:
            return Response(
                {"action": "removed", "property_id": property_id, "is_favorite": False},
                status=status.HTTP_200_OK,
            )

        try:
            with transaction.atomic():
                Favorite.objects.create(user=request.user, property_id=property_id)
        except IntegrityError:
            # Concurrent request already added it
            pass
        return Response(
            {"action": "added", "property_id": property_id, "is_favorite": True},
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=['get'], url_path='check/(?P<property_id>[0-9]+)')
    def check(self, request, property_id=None):  # type: ignore
        """GET /api/v1/favorites/check/123/ -> {"is_favorite": bool, "favorite_id": int | null}"""
        favorite = self.get_queryset().filter(property_id=property_id).first()
        return Response(
            {"is_favorite": favorite is not None, "favorite_id": favorite.id if favorite else None},
            status=status.HTTP_200_OK,
        )
