"""Tests for the admin account management API."""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.accounts.models import Profile, UserRole

User = get_user_model()


class UserAdminAPITests(APITestCase):
    def setUp(self) -> None:
        self.admin = User.objects.create_user(
            username="admin@example.com", email="admin@example.com", password="StrongPass123"
        )
        UserRole.objects.create(user=self.admin, role=UserRole.RoleChoices.ADMIN)
        Profile.objects.create(user=self.admin, full_name="Admin")
        self.member = User.objects.create_user(
            username="member@example.com", email="member@example.com", password="StrongPass123"
        )
        self.profile = Profile.objects.create(user=self.member, full_name="Sara", phone="0500000000")

    def suspend_url(self, user) -> str:
        return reverse("accounts:user-admin-suspend", args=[user.pk])

    def test_list_includes_email_and_roles(self) -> None:
        UserRole.objects.create(user=self.member, role=UserRole.RoleChoices.MODERATOR)
        self.client.force_authenticate(self.admin)

        response = self.client.get(reverse("accounts:user-admin-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        users = {row["user_id"]: row for row in response.data}
        self.assertEqual(set(users), {self.admin.pk, self.member.pk})
        self.assertEqual(users[self.member.pk]["email"], "member@example.com")
        self.assertEqual(users[self.member.pk]["roles"], ["moderator"])
        self.assertEqual(users[self.admin.pk]["roles"], ["admin"])

    def test_user_without_roles_is_listed_as_user(self) -> None:
        self.client.force_authenticate(self.admin)
        response = self.client.get(reverse("accounts:user-admin-detail", args=[self.member.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["roles"], ["user"])
        self.assertTrue(response.data["is_active"])
        self.assertIsNone(response.data["suspension_reason"])

    def test_search_and_status_filter(self) -> None:
        self.profile.suspend("spam", by=self.admin)
        self.client.force_authenticate(self.admin)

        found = self.client.get(reverse("accounts:user-admin-list"), {"search": "member@"})
        suspended = self.client.get(reverse("accounts:user-admin-list"), {"is_active": "false"})

        self.assertEqual([row["user_id"] for row in found.data], [self.member.pk])
        self.assertEqual([row["user_id"] for row in suspended.data], [self.member.pk])

    def test_suspend_records_reason_and_blocks_sign_in(self) -> None:
        self.client.force_authenticate(self.admin)

        response = self.client.post(self.suspend_url(self.member), {"reason": "  Fraudulent listings "}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertFalse(response.data["is_active"])
        self.assertEqual(response.data["suspension_reason"], "Fraudulent listings")
        self.assertEqual(response.data["suspended_by"], self.admin.pk)
        self.profile.refresh_from_db()
        self.assertIsNotNone(self.profile.suspended_at)
        self.member.refresh_from_db()
        self.assertFalse(self.member.is_active)
        self.assertFalse(self.client.login(username="member@example.com", password="StrongPass123"))

    def test_suspend_requires_a_reason(self) -> None:
        self.client.force_authenticate(self.admin)

        for body in ({}, {"reason": "   "}):
            response = self.client.post(self.suspend_url(self.member), body, format="json")
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)

        self.profile.refresh_from_db()
        self.assertTrue(self.profile.is_active)

    def test_admin_cannot_suspend_themselves(self) -> None:
        self.client.force_authenticate(self.admin)
        response = self.client.post(self.suspend_url(self.admin), {"reason": "testing"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertTrue(Profile.objects.get(user=self.admin).is_active)

    def test_reactivate_clears_suspension(self) -> None:
        self.profile.suspend("spam", by=self.admin)
        self.client.force_authenticate(self.admin)

        response = self.client.post(reverse("accounts:user-admin-reactivate", args=[self.member.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertTrue(response.data["is_active"])
        self.profile.refresh_from_db()
        self.assertIsNone(self.profile.suspension_reason)
        self.assertIsNone(self.profile.suspended_at)
        self.assertIsNone(self.profile.suspended_by)
        self.member.refresh_from_db()
        self.assertTrue(self.member.is_active)

    def test_unknown_user(self) -> None:
        self.client.force_authenticate(self.admin)
        response = self.client.post(self.suspend_url(User(pk=999999)), {"reason": "spam"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_domain_admin_cannot_manage_users(self) -> None:
        UserRole.objects.create(user=self.member, role=UserRole.RoleChoices.PROPERTIES_ADMIN)
        self.client.force_authenticate(self.member)

        self.assertEqual(self.client.get(reverse("accounts:user-admin-list")).status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.post(self.suspend_url(self.admin), {"reason": "spam"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_request_is_rejected(self) -> None:
        response = self.client.get(reverse("accounts:user-admin-list"))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
