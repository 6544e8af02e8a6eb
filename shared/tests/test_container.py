"""End-to-end test of the client wired from settings."""

from __future__ import annotations

from django.core.cache import caches
from django.test import SimpleTestCase, override_settings

from apps.notifications.platform import BrowserPlatform
from apps.properties.filters import FilterState
from apps.properties.media import MediaStorage
from config.container import MarketplaceClient
from shared.application.realtime import RealtimeHub
from shared.infrastructure.memory import InMemoryAuthBackend, InMemoryGateway
from shared.tests.utils import DEFAULT_PASSWORD, drain_events


@override_settings(
    MARKETPLACE_GATEWAY="shared.infrastructure.memory.InMemoryGateway",
    MARKETPLACE_AUTH_BACKEND="shared.infrastructure.memory.InMemoryAuthBackend",
)
class MarketplaceClientTests(SimpleTestCase):
    def setUp(self) -> None:
        caches["persisted"].clear()
        self.hub = RealtimeHub()
        self.client_ = MarketplaceClient.from_settings(hub=self.hub)

    def test_backends_come_from_settings(self) -> None:
        self.assertIsInstance(self.client_.gateway, InMemoryGateway)
        self.assertIs(self.client_.gateway.hub, self.hub)
        self.assertIsInstance(self.client_.auth, InMemoryAuthBackend)
        self.assertIsInstance(self.client_.storage, MediaStorage)
        self.assertIsInstance(self.client_.notifications.platform, BrowserPlatform)

    async def test_session_drives_every_service(self) -> None:
        client = self.client_
        await client.start()
        self.assertEqual(client.roles.roles, ())

        user_id = (await client.session.sign_up("buyer@example.com", DEFAULT_PASSWORD)).unwrap().id
        await client.settle()
        self.assertEqual(client.roles.roles, ("user",))

        self.assertTrue((await client.favorites.toggle_favorite(12)).unwrap())

        await client.role_assignments.replace_roles(user_id, ["moderator"])
        await drain_events()
        await client.settle()

        self.assertEqual(client.roles.roles, ("moderator",))
        self.assertEqual(client.notifications.unread_count.value, 1)

        client.search_filters.save(FilterState(category="cars"))
        await client.session.sign_out()
        await client.settle()

        self.assertEqual(client.favorites.favorites, [])
        self.assertEqual(client.notifications.notifications.value, ())
        self.assertEqual(client.search_filters.load().category, "cars")

        await client.session.sign_in("buyer@example.com", DEFAULT_PASSWORD)
        await client.settle()
        self.assertTrue(client.favorites.is_favorited(12))
        client.close()
        self.assertEqual(self.hub.subscription_count, 0)
