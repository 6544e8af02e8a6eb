"""Account models: role assignments and user profiles.

A user may hold several roles at once; only the (user, role) pair is
unique. Holding no assignment at all means the implicit ``user`` role.
Profiles carry the contact details shown to buyers, the push token of
the user's device and, while an administrator has suspended the account,
who suspended it and why.
"""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class UserRole(models.Model):
    """Grant of a named permission bundle to a user."""

    class RoleChoices(models.TextChoices):
        ADMIN = "admin", _("Administrator")
        PROPERTIES_ADMIN = "properties_admin", _("Properties administrator")
        CATEGORIES_ADMIN = "categories_admin", _("Categories administrator")
        NOTIFICATIONS_ADMIN = "notifications_admin", _("Notifications administrator")
        MODERATOR = "moderator", _("Moderator")
        USER = "user", _("User")

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="role_assignments"
    )
    role = models.CharField(max_length=32, choices=RoleChoices.choices)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "user_roles"
        unique_together = ("user", "role")
        ordering = ["created_at", "id"]
        verbose_name = _("Role assignment")
        verbose_name_plural = _("Role assignments")

    def __str__(self) -> str:
        return f"{self.role} for user {self.user_id}"


class Profile(models.Model):
    """Public profile and device registration of a user."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="profile"
    )
    full_name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    push_token = models.CharField(max_length=512, null=True, blank=True)
    is_active = models.BooleanField(default=True)
    suspension_reason = models.TextField(null=True, blank=True)
    suspended_at = models.DateTimeField(null=True, blank=True)
    suspended_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="suspensions_made",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "profiles"
        ordering = ["-created_at", "-id"]
        verbose_name = _("Profile")
        verbose_name_plural = _("Profiles")

    def __str__(self) -> str:
        return self.full_name or f"Profile of user {self.user_id}"

    def suspend(self, reason: str, by=None) -> None:
        """Deactivate the account; the owner can no longer sign in."""
        self.is_active = False
        self.suspension_reason = reason
        self.suspended_at = timezone.now()
        self.suspended_by = by
        self.save()
        if self.user.is_active:
            self.user.is_active = False
            self.user.save(update_fields=["is_active"])

    def reactivate(self) -> None:
        self.is_active = True
        self.suspension_reason = None
        self.suspended_at = None
        self.suspended_by = None
        self.save()
        if not self.user.is_active:
            self.user.is_active = True
            self.user.save(update_fields=["is_active"])
