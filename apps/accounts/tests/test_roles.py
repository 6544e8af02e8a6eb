"""Tests for client-side role resolution and role assignment."""

from __future__ import annotations

import asyncio

from django.test import SimpleTestCase

from apps.accounts.roles import (
    DEFAULT_ROLE,
    ROLES_UPDATED_TITLE,
    EffectivePermissions,
    RoleAssignmentService,
    RoleResolutionService,
    roles_updated_message,
)
from apps.accounts.session import Principal
from shared.infrastructure.gateway import NOTIFICATIONS, USER_ROLES
from shared.tests.utils import InMemoryBackendMixin, drain_events


class EffectivePermissionsTests(SimpleTestCase):
    def test_default_permissions_grant_nothing(self) -> None:
        permissions = EffectivePermissions.from_roles([DEFAULT_ROLE])
        self.assertEqual(permissions.roles, ("user",))
        self.assertFalse(permissions.is_any_admin)

    def test_admin_implies_every_domain_admin(self) -> None:
        permissions = EffectivePermissions.from_roles(["admin"])
        self.assertTrue(permissions.is_properties_admin)
        self.assertTrue(permissions.is_categories_admin)
        self.assertTrue(permissions.is_notifications_admin)
        self.assertFalse(permissions.is_moderator)

    def test_domain_admin_does_not_imply_admin(self) -> None:
        permissions = EffectivePermissions.from_roles(["categories_admin", "categories_admin"])
        self.assertEqual(permissions.roles, ("categories_admin",))
        self.assertTrue(permissions.is_categories_admin)
        self.assertFalse(permissions.is_admin)
        self.assertFalse(permissions.is_properties_admin)
        self.assertTrue(permissions.is_any_admin)

    def test_as_dict(self) -> None:
        data = EffectivePermissions.from_roles(["moderator"]).as_dict()
        self.assertEqual(data["roles"], ["moderator"])
        self.assertTrue(data["is_moderator"])
        self.assertTrue(data["is_any_admin"])


class RoleResolutionServiceTests(InMemoryBackendMixin, SimpleTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.service = RoleResolutionService(self.gateway, self.session, debounce_seconds=0.05)

    async def grant(self, user_id: str, *roles: str) -> None:
        await self.gateway.insert(USER_ROLES, [{"user_id": user_id, "role": r} for r in roles])

    async def test_principal_without_rows_gets_default_role(self) -> None:
        await self.sign_in()
        await self.service.start()

        self.assertEqual(self.service.roles, ("user",))
        self.assertFalse(self.service.permissions.value.is_any_admin)
        self.assertFalse(self.service.loading)
        self.service.close()

    async def test_admin_row_grants_every_admin_flag(self) -> None:
        user_id = await self.sign_in()
        await self.grant(user_id, "admin")

        await self.service.start()
        permissions = self.service.permissions.value

        self.assertTrue(permissions.is_admin)
        self.assertTrue(permissions.is_properties_admin)
        self.assertTrue(permissions.is_categories_admin)
        self.assertTrue(permissions.is_notifications_admin)
        self.service.close()

    async def test_unknown_roles_are_ignored(self) -> None:
        user_id = await self.sign_in()
        await self.grant(user_id, "moderator", "superhero")

        await self.service.start()

        self.assertEqual(self.service.roles, ("moderator",))
        self.service.close()

    async def test_fetch_failure_fails_open_to_default_role(self) -> None:
        user_id = await self.sign_in()
        await self.grant(user_id, "admin")
        self.gateway.fail("select", USER_ROLES)

        await self.service.start()

        self.assertEqual(self.service.roles, ("user",))
        self.assertFalse(self.service.permissions.value.is_admin)
        self.assertFalse(self.service.loading)
        self.service.close()

    async def test_fetch_roles_reports_the_failure(self) -> None:
        self.gateway.fail("select", USER_ROLES)
        result = await self.service.fetch_roles(Principal(id="1"))
        self.assertFalse(result.ok)

    async def test_no_principal_means_no_roles(self) -> None:
        await self.service.start()

        self.assertEqual(self.service.roles, ())
        self.assertFalse(self.service.loading)
        self.assertEqual(self.hub.subscription_count, 0)

    async def test_role_change_event_triggers_re_resolution(self) -> None:
        user_id = await self.sign_in()
        await self.service.start()
        self.assertFalse(self.service.permissions.value.is_admin)

        await self.grant(user_id, "admin")
        await drain_events()
        await self.service.settle()

        self.assertTrue(self.service.permissions.value.is_admin)

        await self.gateway.delete(USER_ROLES, {"user_id": user_id, "role": "admin"})
        await drain_events()
        await self.service.settle()

        self.assertEqual(self.service.roles, ("user",))
        self.service.close()

    async def test_burst_of_role_changes_resolves_once(self) -> None:
        user_id = await self.sign_in()
        await self.service.start()
        self.assertEqual(self.gateway.calls[("select", USER_ROLES)], 1)

        await self.grant(user_id, "properties_admin", "categories_admin", "moderator")
        await drain_events()
        await asyncio.sleep(0.1)
        await self.service.settle()

        self.assertEqual(self.gateway.calls[("select", USER_ROLES)], 2)
        self.assertEqual(self.service.roles, ("properties_admin", "categories_admin", "moderator"))
        self.service.close()

    async def test_changes_of_other_users_are_ignored(self) -> None:
        await self.sign_in()
        await self.service.start()

        await self.grant("999", "admin")
        await drain_events()
        await self.service.settle()

        self.assertEqual(self.gateway.calls[("select", USER_ROLES)], 1)
        self.service.close()

    async def test_sign_out_and_switch_principal(self) -> None:
        admin_id = await self.sign_in("admin@example.com")
        await self.grant(admin_id, "admin")
        await self.service.start()
        self.assertTrue(self.service.permissions.value.is_admin)

        await self.session.sign_out()
        await self.service.settle()
        self.assertEqual(self.service.roles, ())

        await self.sign_in("buyer@example.com")
        await self.service.settle()
        self.assertEqual(self.service.roles, ("user",))
        self.service.close()

    async def test_result_for_previous_principal_is_discarded(self) -> None:
        admin_id = await self.sign_in("admin@example.com")
        await self.grant(admin_id, "admin")
        gate = self.gateway.hold(USER_ROLES)

        starting = asyncio.ensure_future(self.service.start())
        await drain_events()
        await self.session.sign_out()
        await self.service.settle()
        gate.set()
        await starting

        self.assertEqual(self.service.roles, ())
        self.assertFalse(self.service.permissions.value.is_admin)
        self.service.close()

    async def test_close_drops_late_results(self) -> None:
        user_id = await self.sign_in()
        await self.grant(user_id, "admin")
        gate = self.gateway.hold(USER_ROLES)

        starting = asyncio.ensure_future(self.service.start())
        await drain_events()
        self.service.close()
        gate.set()
        await starting

        self.assertFalse(self.service.permissions.value.is_admin)
        self.assertEqual(self.hub.subscription_count, 0)


class RoleAssignmentServiceTests(InMemoryBackendMixin, SimpleTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.service = RoleAssignmentService(self.gateway)

    async def test_replace_roles_rewrites_rows_and_notifies(self) -> None:
        await self.gateway.insert(USER_ROLES, [{"user_id": "5", "role": "moderator"}])

        result = await self.service.replace_roles("5", ["admin", "properties_admin", "admin"])

        self.assertEqual(result.unwrap(), ["admin", "properties_admin"])
        rows = await self.gateway.select(USER_ROLES, {"user_id": "5"})
        self.assertEqual(sorted(r["role"] for r in rows), ["admin", "properties_admin"])
        notifications = await self.gateway.select(NOTIFICATIONS, {"user_id": "5"})
        self.assertEqual(len(notifications), 1)
        self.assertEqual(notifications[0]["title"], ROLES_UPDATED_TITLE)
        self.assertEqual(notifications[0]["type"], "success")

    async def test_clearing_roles_sends_no_notification(self) -> None:
        await self.gateway.insert(USER_ROLES, [{"user_id": "5", "role": "moderator"}])

        result = await self.service.replace_roles("5", [])

        self.assertEqual(result.unwrap(), [])
        self.assertEqual(await self.gateway.select(USER_ROLES), [])
        self.assertEqual(await self.gateway.select(NOTIFICATIONS), [])

    async def test_unknown_role_is_rejected_before_writing(self) -> None:
        await self.gateway.insert(USER_ROLES, [{"user_id": "5", "role": "moderator"}])

        result = await self.service.replace_roles("5", ["overlord"])

        self.assertIsInstance(result.error, ValueError)
        self.assertEqual(len(await self.gateway.select(USER_ROLES)), 1)

    async def test_backend_failure_is_returned(self) -> None:
        self.gateway.fail("insert", USER_ROLES)
        result = await self.service.replace_roles("5", ["admin"])
        self.assertFalse(result.ok)

    def test_message_uses_role_labels(self) -> None:
        message = roles_updated_message(["admin", "moderator"])
        self.assertIn("مدير عام", message)
        self.assertIn("مشرف", message)
