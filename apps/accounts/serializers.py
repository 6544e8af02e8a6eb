"""Serializers for role and user management."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Profile, UserRole
from .roles import DEFAULT_ROLE


class UserRolesSerializer(serializers.Serializer):
    """Full replacement set of roles for a user."""

    roles = serializers.ListField(
        child=serializers.ChoiceField(choices=UserRole.RoleChoices.choices),
        allow_empty=True,
        help_text="Roles the user keeps after the update",
    )

    def validate_roles(self, value):  # type: ignore
        return list(dict.fromkeys(value))


class PermissionsSerializer(serializers.Serializer):
    roles = serializers.ListField(child=serializers.CharField())
    is_admin = serializers.BooleanField()
    is_properties_admin = serializers.BooleanField()
    is_categories_admin = serializers.BooleanField()
    is_notifications_admin = serializers.BooleanField()
    is_moderator = serializers.BooleanField()
    is_any_admin = serializers.BooleanField()


class ManagedUserSerializer(serializers.ModelSerializer):
    """A user as listed in the admin console: profile, email and roles."""

    email = serializers.EmailField(source="user.email", read_only=True)
    roles = serializers.SerializerMethodField()

    class Meta:
        model = Profile
        fields = [
            "user_id",
            "email",
            "full_name",
            "phone",
            "is_active",
            "suspension_reason",
            "suspended_at",
            "suspended_by",
            "roles",
            "created_at",
        ]
        read_only_fields = fields

    def get_roles(self, obj):  # type: ignore
        # role_assignments is prefetched by the view
        return [assignment.role for assignment in obj.user.role_assignments.all()] or [DEFAULT_ROLE]


class SuspendUserSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000, trim_whitespace=True)
