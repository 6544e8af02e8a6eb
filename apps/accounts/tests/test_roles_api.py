"""Tests for the role management API."""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIRequestFactory, APITestCase

from apps.accounts.models import UserRole
from apps.accounts.permissions import IsAdmin, IsAnyAdmin, IsCategoriesAdmin, IsPropertiesAdmin
from apps.accounts.roles import ROLES_UPDATED_TITLE
from apps.notifications.models import Notification

User = get_user_model()


class UserRolesAPITests(APITestCase):
    def setUp(self) -> None:
        self.admin = User.objects.create_user(username="admin@example.com", password="StrongPass123")
        UserRole.objects.create(user=self.admin, role=UserRole.RoleChoices.ADMIN)
        self.member = User.objects.create_user(username="member@example.com", password="StrongPass123")
        self.url = reverse("accounts:user-roles", args=[self.member.pk])

    def test_admin_replaces_roles_and_member_is_notified(self) -> None:
        self.client.force_authenticate(self.admin)
        UserRole.objects.create(user=self.member, role=UserRole.RoleChoices.MODERATOR)

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.put(
                self.url, {"roles": ["properties_admin", "categories_admin"]}, format="json"
            )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["roles"], ["properties_admin", "categories_admin"])
        self.assertTrue(response.data["is_properties_admin"])
        self.assertFalse(response.data["is_admin"])
        self.assertEqual(
            set(UserRole.objects.filter(user=self.member).values_list("role", flat=True)),
            {"properties_admin", "categories_admin"},
        )
        notification = Notification.objects.get(user=self.member)
        self.assertEqual(notification.title, ROLES_UPDATED_TITLE)
        self.assertEqual(notification.type, Notification.Type.SUCCESS)

    def test_clearing_roles_falls_back_to_user(self) -> None:
        self.client.force_authenticate(self.admin)
        UserRole.objects.create(user=self.member, role=UserRole.RoleChoices.MODERATOR)

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.put(self.url, {"roles": []}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["roles"], ["user"])
        self.assertFalse(Notification.objects.filter(user=self.member).exists())

    def test_unknown_role_is_rejected(self) -> None:
        self.client.force_authenticate(self.admin)
        response = self.client.put(self.url, {"roles": ["overlord"]}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)

    def test_get_roles(self) -> None:
        self.client.force_authenticate(self.admin)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["roles"], ["user"])
        self.assertFalse(response.data["is_any_admin"])

    def test_domain_admin_cannot_manage_roles(self) -> None:
        UserRole.objects.create(user=self.member, role=UserRole.RoleChoices.PROPERTIES_ADMIN)
        self.client.force_authenticate(self.member)
        response = self.client.put(self.url, {"roles": ["admin"]}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_superuser_counts_as_admin(self) -> None:
        root = User.objects.create_superuser(username="root@example.com", password="StrongPass123")
        self.client.force_authenticate(root)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)

    def test_anonymous_request_is_rejected(self) -> None:
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_unknown_user(self) -> None:
        self.client.force_authenticate(self.admin)
        response = self.client.get(reverse("accounts:user-roles", args=[999999]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class IsAdminRPCTests(APITestCase):
    def setUp(self) -> None:
        self.admin = User.objects.create_user(username="admin@example.com", password="StrongPass123")
        UserRole.objects.create(user=self.admin, role=UserRole.RoleChoices.ADMIN)
        self.member = User.objects.create_user(username="member@example.com", password="StrongPass123")

    def test_is_admin(self) -> None:
        self.client.force_authenticate(self.member)

        response = self.client.get(reverse("accounts:rpc-is-admin", args=[self.admin.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data, {"is_admin": True})

        response = self.client.get(reverse("accounts:rpc-is-admin", args=[self.member.pk]))
        self.assertEqual(response.data, {"is_admin": False})


class PermissionClassTests(APITestCase):
    def _allowed(self, permission_class, user) -> bool:
        request = APIRequestFactory().get("/")
        request.user = user
        return permission_class().has_permission(request, None)

    def test_capabilities_follow_roles(self) -> None:
        member = User.objects.create_user(username="member@example.com", password="StrongPass123")
        curator = User.objects.create_user(username="curator@example.com", password="StrongPass123")
        UserRole.objects.create(user=curator, role=UserRole.RoleChoices.CATEGORIES_ADMIN)

        self.assertFalse(self._allowed(IsAnyAdmin, member))
        self.assertTrue(self._allowed(IsAnyAdmin, curator))
        self.assertTrue(self._allowed(IsCategoriesAdmin, curator))
        self.assertFalse(self._allowed(IsPropertiesAdmin, curator))
        self.assertFalse(self._allowed(IsAdmin, curator))

    def test_anonymous_user_has_no_capability(self) -> None:
        self.assertFalse(self._allowed(IsAnyAdmin, AnonymousUser()))
