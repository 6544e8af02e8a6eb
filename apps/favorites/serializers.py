"""Serializers for the favorites domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.properties.models import Property
from apps.properties.serializers import PropertySerializer

from .models import Favorite


class FavoriteSerializer(serializers.ModelSerializer):
    """Serializer for listing favorites."""

    user_id = serializers.ReadOnlyField(source='user.id')
    property_id = serializers.ReadOnlyField(source='property.id')
    property = PropertySerializer(read_only=True)

    class Meta:
        model = Favorite
        fields = ['id', 'user_id', 'property_id', 'property', 'created_at']


class FavoriteToggleSerializer(serializers.Serializer):
    """Serializer for toggling favorite status."""

    property_id = serializers.IntegerField(required=True)

    def validate_property_id(self, value: int) -> int:  # type: ignore
        if not Property.objects.filter(pk=value).exists():
            raise serializers.ValidationError("Listing not found.")
        return value
