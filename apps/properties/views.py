"""Listing and category API views."""

from __future__ import annotations

import logging

from django.db import IntegrityError  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import permissions, serializers, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.filters import OrderingFilter  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.accounts.permissions import IsCategoriesAdmin, IsPropertiesAdmin, permissions_for
from shared.domain.errors import DuplicateSlugError
from shared.infrastructure.django_gateway import instance_to_row

from .filtersets import ListingFilterSet
from .models import Category, Property
from .serializers import (
    CategorySerializer,
    CategoryTreeSerializer,
    PropertySerializer,
    PropertyWriteSerializer,
)
from .services import build_category_tree

logger = logging.getLogger(__name__)


class ListingViewSet(viewsets.ModelViewSet):
    """
    Listings.

    Anyone can browse active listings; properties admins see every status
    and manage listings.
    """

    queryset = Property.objects.select_related("owner")
    permission_classes = [IsPropertiesAdmin]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = ListingFilterSet
    ordering_fields = ["price", "created_at"]
    ordering = ["-created_at"]

    def get_permissions(self):  # type: ignore
        if self.action in {"list", "retrieve"}:
            return [permissions.AllowAny()]
        return super().get_permissions()

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        if permissions_for(self.request.user).is_properties_admin:
            return qs
        return qs.filter(status=Property.Status.ACTIVE)

    def get_serializer_class(self):  # type: ignore
        if self.action in {"create", "update", "partial_update"}:
            return PropertyWriteSerializer
        return PropertySerializer

    def perform_create(self, serializer):  # type: ignore
        listing = serializer.save(owner=self.request.user)
        logger.info(f"User {self.request.user.pk} created listing {listing.pk}")

    def perform_destroy(self, instance):  # type: ignore
        logger.info(f"User {self.request.user.pk} deleted listing {instance.pk}")
        instance.delete()


class CategoryViewSet(viewsets.ModelViewSet):
    """Catalogue sections; categories admins manage them."""

    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    permission_classes = [IsCategoriesAdmin]

    def get_permissions(self):  # type: ignore
        if self.action in {"list", "retrieve", "tree"}:
            return [permissions.AllowAny()]
        return super().get_permissions()

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        if permissions_for(self.request.user).is_categories_admin:
            return qs
        return qs.filter(status=Category.Status.ACTIVE)

    def perform_create(self, serializer):  # type: ignore
        try:
            serializer.save()
        except IntegrityError:
            # Another request took the slug after validation
            slug = serializer.validated_data.get("slug", "")
            raise serializers.ValidationError({"slug": [str(DuplicateSlugError(slug).user_message)]})

    def perform_update(self, serializer):  # type: ignore
        try:
            serializer.save()
        except IntegrityError:
            slug = serializer.validated_data.get("slug", "")
            raise serializers.ValidationError({"slug": [str(DuplicateSlugError(slug).user_message)]})

    @action(detail=False, methods=["get"])
    def tree(self, request):  # type: ignore
        """GET /api/v1/properties/categories/tree/ - nested categories."""
        rows = [instance_to_row(c) for c in self.get_queryset()]
        roots = build_category_tree(rows)
        return Response(CategoryTreeSerializer(roots, many=True).data)
