"""Permission classes for the admin console API."""

from __future__ import annotations

from rest_framework import permissions  # type: ignore

from .models import UserRole
from .roles import DEFAULT_ROLE, EffectivePermissions, Role


def permissions_for(user) -> EffectivePermissions:
    """Server-side counterpart of client role resolution (same hierarchy)."""
    if not user or not user.is_authenticated:
        return EffectivePermissions()
    # Platform superusers have full access
    if getattr(user, "is_superuser", False):
        return EffectivePermissions.from_roles([Role.ADMIN.value])
    roles = list(
        UserRole.objects.filter(user=user).order_by("created_at").values_list("role", flat=True)
    )
    return EffectivePermissions.from_roles(roles or [DEFAULT_ROLE])


class HasCapability(permissions.BasePermission):
    """Allow access when the requesting user's permissions set ``capability``."""

    capability = "is_admin"

    def has_permission(self, request, view) -> bool:  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        return getattr(permissions_for(user), self.capability)


class IsAdmin(HasCapability):
    capability = "is_admin"


class IsAnyAdmin(HasCapability):
    capability = "is_any_admin"


class IsPropertiesAdmin(HasCapability):
    capability = "is_properties_admin"


class IsCategoriesAdmin(HasCapability):
    capability = "is_categories_admin"


class IsNotificationsAdmin(HasCapability):
    capability = "is_notifications_admin"
