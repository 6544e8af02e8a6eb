"""Admin registrations for accounts."""

from django.contrib import admin  # type: ignore

from .models import Profile, UserRole


@admin.register(UserRole)
class UserRoleAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "created_at")
    list_filter = ("role",)
    search_fields = ("user__email", "user__username")


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "full_name", "phone", "is_active", "suspended_at")
    list_filter = ("is_active",)
    search_fields = ("full_name", "phone", "user__email")
    readonly_fields = ("suspended_at", "suspended_by")
