"""Admin registrations for listings and categories."""

from __future__ import annotations

from django.contrib import admin

from .models import Category, Property


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("title", "slug", "parent", "order_index", "status")
    list_filter = ("status",)
    search_fields = ("title", "slug")
    prepopulated_fields = {"slug": ("title",)}
    ordering = ("order_index", "title")


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "category",
        "city",
        "listing_type",
        "status",
        "price",
        "owner",
        "created_at",
    )
    list_filter = ("status", "listing_type", "category", "city")
    search_fields = ("title", "description", "location", "neighborhood", "brand", "model")
    readonly_fields = ("created_at", "updated_at")
    fieldsets = (
        (None, {"fields": ("title", "description", "category", "property_type", "listing_type", "status", "owner")}),
        ("Location", {"fields": ("city", "location", "neighborhood")}),
        ("Pricing", {"fields": ("price",)}),
        ("Details", {"fields": ("bedrooms", "bathrooms", "area_sqm", "brand", "model", "year", "condition")}),
        ("Media", {"fields": ("images", "videos", "amenities")}),
        ("Custom fields", {"fields": ("custom_data",)}),
        ("Agent", {"fields": ("agent_name", "agent_phone", "agent_email")}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )
