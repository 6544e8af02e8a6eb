"""Tests for the in-process backend."""

from __future__ import annotations

from django.test import SimpleTestCase

from shared.application.realtime import RealtimeHub
from shared.domain.base import DELETE, INSERT, UPDATE
from shared.domain.errors import AuthError, DuplicateError
from shared.infrastructure.gateway import CATEGORIES, FAVORITES, NOTIFICATIONS, USER_ROLES
from shared.infrastructure.memory import InMemoryAuthBackend, InMemoryGateway
from shared.tests.utils import drain_events


class InMemoryGatewayTests(SimpleTestCase):
    def setUp(self):
        self.hub = RealtimeHub()
        self.gateway = InMemoryGateway(hub=self.hub)

    async def test_insert_applies_defaults_and_ids(self):
        rows = await self.gateway.insert(NOTIFICATIONS, [{"user_id": "1", "title": "t", "message": "m"}])

        self.assertEqual(rows[0]["type"], "info")
        self.assertIs(rows[0]["read"], False)
        self.assertIn("id", rows[0])
        self.assertIn("created_at", rows[0])

    async def test_select_filters_orders_and_limits(self):
        await self.gateway.insert(CATEGORIES, [
            {"title": "B", "slug": "b", "order_index": 2},
            {"title": "A", "slug": "a", "order_index": 1},
            {"title": "C", "slug": "c", "order_index": 3, "status": "inactive"},
        ])

        active = await self.gateway.select(CATEGORIES, {"status": "active"}, order_by="order_index")
        newest = await self.gateway.select(CATEGORIES, order_by="-order_index", limit=1)

        self.assertEqual([r["slug"] for r in active], ["a", "b"])
        self.assertEqual([r["slug"] for r in newest], ["c"])

    async def test_rows_returned_are_copies(self):
        await self.gateway.insert(CATEGORIES, [{"title": "A", "slug": "a"}])
        rows = await self.gateway.select(CATEGORIES)
        rows[0]["slug"] = "changed"

        self.assertEqual((await self.gateway.select(CATEGORIES))[0]["slug"], "a")

    async def test_unique_columns_raise_duplicate_error(self):
        await self.gateway.insert(FAVORITES, [{"user_id": "1", "property_id": "5"}])

        with self.assertRaises(DuplicateError):
            await self.gateway.insert(FAVORITES, [{"user_id": 1, "property_id": 5}])
        with self.assertRaises(DuplicateError):
            await self.gateway.insert(CATEGORIES, [{"slug": "x"}, {"slug": "x"}])

        self.assertEqual(len(self.gateway.tables[FAVORITES]), 1)
        self.assertEqual(self.gateway.tables[CATEGORIES], [])

    async def test_update_rejects_duplicate_and_keeps_row(self):
        await self.gateway.insert(CATEGORIES, [{"slug": "a"}, {"slug": "b"}])

        with self.assertRaises(DuplicateError):
            await self.gateway.update(CATEGORIES, {"slug": "a"}, {"slug": "b"})

        self.assertEqual(sorted(r["slug"] for r in self.gateway.tables[CATEGORIES]), ["a", "b"])

    async def test_update_clashing_with_itself_writes_nothing(self):
        await self.gateway.insert(CATEGORIES, [{"slug": "a"}, {"slug": "b"}])
        events = []
        self.gateway.subscribe(CATEGORIES, events.append, event_types=(UPDATE,))

        with self.assertRaises(DuplicateError):
            await self.gateway.update(CATEGORIES, {"slug": "z"}, {"status": "active"})
        await drain_events()

        self.assertEqual([r["slug"] for r in self.gateway.tables[CATEGORIES]], ["a", "b"])
        self.assertEqual(events, [])

    async def test_single_row_update_without_clash(self):
        await self.gateway.insert(USER_ROLES, [
            {"user_id": "1", "role": "moderator"},
            {"user_id": "2", "role": "moderator"},
        ])

        updated = await self.gateway.update(USER_ROLES, {"user_id": "3"}, {"user_id": "1"})

        self.assertEqual([(r["user_id"], r["role"]) for r in updated], [("3", "moderator")])

    async def test_mutations_are_published(self):
        events = []
        self.gateway.subscribe(FAVORITES, events.append, filters={"user_id": "1"})

        await self.gateway.insert(FAVORITES, [{"user_id": "1", "property_id": "5"}])
        await self.gateway.update(FAVORITES, {"property_id": "6"}, {"user_id": "1"})
        deleted = await self.gateway.delete(FAVORITES, {"user_id": "1"})
        await drain_events()

        self.assertEqual(deleted, 1)
        self.assertEqual([e.event_type for e in events], [INSERT, UPDATE, DELETE])
        self.assertEqual(events[1].old["property_id"], "5")
        self.assertEqual(events[2].row["property_id"], "6")

    async def test_unknown_table_is_rejected(self):
        with self.assertRaises(ValueError):
            await self.gateway.select("bookings")

    async def test_is_admin_rpc(self):
        await self.gateway.insert(USER_ROLES, [{"user_id": "1", "role": "admin"}])

        self.assertTrue(await self.gateway.rpc("is_admin", user_id=1))
        self.assertFalse(await self.gateway.rpc("is_admin", user_id=2))
        with self.assertRaises(ValueError):
            await self.gateway.rpc("drop_everything")


class InMemoryAuthBackendTests(SimpleTestCase):
    def setUp(self):
        self.auth = InMemoryAuthBackend()
        self.sessions = []
        self.auth.on_session_change(self.sessions.append)

    async def test_sign_in_and_out_emit_sessions(self):
        self.auth.create_user("Seller@Example.com", "pw-123456")

        session = await self.auth.sign_in("seller@example.com", "pw-123456")
        await self.auth.sign_out()

        self.assertEqual(session["email"], "seller@example.com")
        self.assertEqual(self.sessions, [None, session, None])

    async def test_bad_credentials(self):
        self.auth.create_user("seller@example.com", "pw-123456")

        with self.assertRaises(AuthError):
            await self.auth.sign_in("seller@example.com", "wrong")
        with self.assertRaises(AuthError):
            await self.auth.sign_in("nobody@example.com", "pw-123456")

    async def test_sign_up_rejects_existing_account(self):
        await self.auth.sign_up("seller@example.com", "pw-123456")

        with self.assertRaises(AuthError):
            await self.auth.sign_up("seller@example.com", "pw-123456")
        with self.assertRaises(AuthError):
            await self.auth.sign_up("", "pw")

    async def test_expire_session(self):
        await self.auth.sign_up("seller@example.com", "pw-123456")
        self.auth.expire_session()

        self.assertIsNone(self.auth.current_session())
