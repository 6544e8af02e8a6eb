"""Serializers for listings and categories."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from shared.domain.errors import DuplicateSlugError

from .custom_fields import normalize_custom_data, parse_schema, validate_custom_data
from .models import Category, Property
from .services import normalize_slug


class CategorySerializer(serializers.ModelSerializer):
    icon_kind = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = [
            "id",
            "title",
            "slug",
            "subtitle",
            "description",
            "icon",
            "icon_kind",
            "parent",
            "order_index",
            "status",
            "custom_fields",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]
        # Uniqueness is checked in validate_slug with the domain error message
        extra_kwargs = {"slug": {"validators": []}}

    def get_icon_kind(self, obj: Category) -> str:
        return obj.icon_kind.value

    def validate_slug(self, value: str) -> str:
        slug = normalize_slug(value)
        if not slug:
            raise serializers.ValidationError("Slug is required")
        existing = Category.objects.filter(slug=slug)
        if self.instance is not None:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise serializers.ValidationError(str(DuplicateSlugError(slug).user_message))
        return slug

    def validate_custom_fields(self, value):  # type: ignore
        if not isinstance(value, list):
            raise serializers.ValidationError("Expected a list of field definitions")
        return [definition.to_dict() for definition in parse_schema(value)]

    def validate(self, attrs):  # type: ignore
        parent = attrs.get("parent")
        if parent is not None and self.instance is not None and parent.pk == self.instance.pk:
            raise serializers.ValidationError({"parent": "A category cannot be its own parent"})
        return attrs


class CategoryTreeSerializer(serializers.Serializer):
    """Nested ``CategoryNode`` output."""

    def to_representation(self, node):  # type: ignore
        row = dict(node.row)
        row["icon_kind"] = node.icon.value
        row["children"] = [self.to_representation(child) for child in node.children]
        return row


class PropertySerializer(serializers.ModelSerializer):
    owner_id = serializers.ReadOnlyField(source="owner.id")

    class Meta:
        model = Property
        fields = [
            "id",
            "owner_id",
            "title",
            "description",
            "price",
            "category",
            "property_type",
            "listing_type",
            "status",
            "city",
            "location",
            "neighborhood",
            "bedrooms",
            "bathrooms",
            "area_sqm",
            "brand",
            "model",
            "year",
            "condition",
            "images",
            "videos",
            "amenities",
            "custom_data",
            "agent_name",
            "agent_phone",
            "agent_email",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PropertyWriteSerializer(serializers.ModelSerializer):
    class Meta:
        model = Property
        exclude = ["owner", "created_at", "updated_at"]

    def validate(self, attrs):  # type: ignore
        attrs = super().validate(attrs)
        slug = attrs.get("category") or getattr(self.instance, "category", None)
        category = Category.objects.filter(slug=slug).first() if slug else None
        if category is None:
            return attrs

        custom_data = attrs.get("custom_data")
        if custom_data is None:
            custom_data = getattr(self.instance, "custom_data", None) or {}
        schema = category.field_definitions
        custom_data = normalize_custom_data(schema, custom_data)
        errors = validate_custom_data(schema, custom_data)
        if errors:
            raise serializers.ValidationError({"custom_data": errors})
        attrs["custom_data"] = custom_data
        return attrs
