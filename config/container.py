"""
Composition root of the client sync layer

One ``MarketplaceClient`` per application session. Backends are chosen by
dotted path in settings, so the same services run against the ORM, the
in-memory backend or a test double:

    client = MarketplaceClient.from_settings()
    await client.start()
    ...
    client.close()
"""

from __future__ import annotations

import logging
from typing import Optional

from django.conf import settings  # type: ignore
from django.utils.module_loading import import_string  # type: ignore

from apps.accounts.preferences import PreferencesStore
from apps.accounts.roles import RoleAssignmentService, RoleResolutionService
from apps.accounts.session import SessionProvider
from apps.favorites.cache import FavoritesCache
from apps.notifications.bridge import NotificationBridge
from apps.notifications.platform import NativePlatform
from apps.properties.filters import SearchFilterStore
from apps.properties.services import CategoryService, ListingService
from shared.application.realtime import RealtimeHub, realtime_hub
from shared.infrastructure.gateway import AuthBackend, ObjectStorage, RemoteGateway
from shared.infrastructure.kv_store import PersistedKeyValueStore

logger = logging.getLogger(__name__)


class MarketplaceClient:
    """Every client-side service wired to one gateway, auth backend and store"""

    def __init__(
        self,
        gateway: RemoteGateway,
        auth: AuthBackend,
        store: PersistedKeyValueStore,
        *,
        storage: Optional[ObjectStorage] = None,
        platform: Optional[NativePlatform] = None,
    ):
        self.gateway = gateway
        self.auth = auth
        self.store = store
        self.storage = storage

        self.session = SessionProvider(auth)
        self.preferences = PreferencesStore(store)
        self.search_filters = SearchFilterStore(store, self.preferences)
        self.roles = RoleResolutionService(gateway, self.session)
        self.favorites = FavoritesCache(gateway, store, self.session)
        self.notifications = NotificationBridge(gateway, self.session, platform)
        self.categories = CategoryService(gateway)
        self.listings = ListingService(gateway, storage)
        self.role_assignments = RoleAssignmentService(gateway)
        self._started = False

    @classmethod
    def from_settings(cls, *, hub: Optional[RealtimeHub] = None) -> 'MarketplaceClient':
        gateway = import_string(settings.MARKETPLACE_GATEWAY)(hub=hub or realtime_hub)
        auth = import_string(settings.MARKETPLACE_AUTH_BACKEND)()
        storage = import_string(settings.MARKETPLACE_STORAGE)()
        platform = import_string(settings.NATIVE_PLATFORM_CLASS)()
        store = PersistedKeyValueStore()
        logger.debug(f"Client wired with {type(gateway).__name__} and {type(auth).__name__}")
        return cls(gateway, auth, store, storage=storage, platform=platform)

    async def start(self):
        """Resolve state for the current principal; must run inside the event loop"""
        if self._started:
            return
        self._started = True
        await self.roles.start()
        await self.favorites.start()
        await self.notifications.start()

    async def settle(self):
        """Wait for background work of every service (re-resolution, re-fetches)"""
        await self.roles.settle()
        await self.favorites.settle()
        await self.notifications.settle()

    def close(self):
        self.notifications.close()
        self.favorites.close()
        self.roles.close()
        self.session.close()
        self._started = False
