"""Listing and category models of the marketplace.

Categories form a tree (optional parent) and each category may declare
custom fields that its listings fill in ``custom_data``. Listings cover
real estate as well as general classifieds (cars, furniture, phones), so
the vehicle/product attributes live next to the real-estate ones.
"""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.core.exceptions import ValidationError  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .custom_fields import Icon, parse_schema, validate_custom_data


class Category(models.Model):
    """Section of the catalogue, addressed in URLs by its slug."""

    class Status(models.TextChoices):
        ACTIVE = "active", _("Active")
        INACTIVE = "inactive", _("Inactive")

    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=100, unique=True)
    subtitle = models.CharField(max_length=255, blank=True, null=True)
    description = models.TextField(blank=True, null=True)
    icon = models.CharField(max_length=50, blank=True, null=True)
    parent = models.ForeignKey(
        "self", on_delete=models.SET_NULL, related_name="children", null=True, blank=True
    )
    order_index = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    custom_fields = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "categories"
        ordering = ["order_index", "title"]
        verbose_name = _("Category")
        verbose_name_plural = _("Categories")

    def __str__(self) -> str:
        return self.title

    @property
    def icon_kind(self) -> Icon:
        return Icon.parse(self.icon)

    @property
    def field_definitions(self):
        return parse_schema(self.custom_fields)


class Property(models.Model):
    """A listing: something offered for sale or for rent."""

    class Status(models.TextChoices):
        ACTIVE = "active", _("Active")
        INACTIVE = "inactive", _("Inactive")
        SOLD = "sold", _("Sold")
        RENTED = "rented", _("Rented")

    class ListingType(models.TextChoices):
        SALE = "sale", _("For sale")
        RENT = "rent", _("For rent")

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(max_digits=14, decimal_places=2)
    # Category slug, the same value used in URLs and filters
    category = models.CharField(max_length=100, db_index=True)
    property_type = models.CharField(max_length=50, blank=True, default="")
    listing_type = models.CharField(
        max_length=20, choices=ListingType.choices, default=ListingType.SALE
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)

    city = models.CharField(max_length=100, db_index=True)
    location = models.CharField(max_length=255, blank=True, default="")
    neighborhood = models.CharField(max_length=255, blank=True, null=True)

    bedrooms = models.PositiveSmallIntegerField(null=True, blank=True)
    bathrooms = models.PositiveSmallIntegerField(null=True, blank=True)
    area_sqm = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    brand = models.CharField(max_length=100, blank=True, null=True)
    model = models.CharField(max_length=100, blank=True, null=True)
    year = models.PositiveSmallIntegerField(null=True, blank=True)
    condition = models.CharField(max_length=50, blank=True, null=True)

    images = models.JSONField(default=list, blank=True)
    videos = models.JSONField(default=list, blank=True)
    amenities = models.JSONField(default=list, blank=True)
    custom_data = models.JSONField(default=dict, blank=True)

    agent_name = models.CharField(max_length=255, blank=True, default="")
    agent_phone = models.CharField(max_length=20, blank=True, default="")
    agent_email = models.EmailField(blank=True, default="")
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="listings",
        null=True,
        blank=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "properties"
        ordering = ["-created_at"]
        verbose_name = _("Listing")
        verbose_name_plural = _("Listings")

    def __str__(self) -> str:
        return f"{self.title} ({self.city})"

    def clean(self) -> None:
        """Validate ``custom_data`` against the category's custom fields."""
        super().clean()
        category = Category.objects.filter(slug=self.category).first()
        if category is None:
            return
        errors = validate_custom_data(category.field_definitions, self.custom_data or {})
        if errors:
            raise ValidationError({"custom_data": [f"{k}: {v}" for k, v in errors.items()]})
