"""Helpers shared by the sync-layer tests."""

from __future__ import annotations

import asyncio
from typing import Dict, Set, Tuple

from django.core.cache import caches

from apps.accounts.session import SessionProvider
from shared.application.realtime import RealtimeHub
from shared.domain.errors import AuthError, GatewayError
from shared.infrastructure.kv_store import PersistedKeyValueStore
from shared.infrastructure.memory import InMemoryAuthBackend, InMemoryGateway

DEFAULT_PASSWORD = "secret-pass-123"


async def drain_events(rounds: int = 3) -> None:
    """Let realtime handlers scheduled with ``call_soon_threadsafe`` run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FlakyGateway(InMemoryGateway):
    """In-memory backend whose operations can fail or stall per table."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.failures: Set[Tuple[str, str]] = set()
        self.calls: Dict[Tuple[str, str], int] = {}
        self._gates: Dict[str, asyncio.Event] = {}

    def fail(self, operation: str, table: str) -> None:
        self.failures.add((operation, table))

    def recover(self) -> None:
        self.failures.clear()

    def hold(self, table: str) -> asyncio.Event:
        """Stall every operation on ``table`` until the returned event is set."""
        gate = asyncio.Event()
        self._gates[table] = gate
        return gate

    async def _before(self, operation: str, table: str) -> None:
        self.calls[(operation, table)] = self.calls.get((operation, table), 0) + 1
        gate = self._gates.get(table)
        if gate is not None:
            await gate.wait()
        if (operation, table) in self.failures:
            raise GatewayError(f"{operation} on {table} is unavailable")

    async def select(self, table, filters=None, **kwargs):
        await self._before("select", table)
        return await super().select(table, filters, **kwargs)

    async def insert(self, table, rows):
        await self._before("insert", table)
        return await super().insert(table, rows)

    async def update(self, table, patch, filters):
        await self._before("update", table)
        return await super().update(table, patch, filters)

    async def delete(self, table, filters):
        await self._before("delete", table)
        return await super().delete(table, filters)


class InMemoryBackendMixin:
    """Fresh in-memory backend, realtime hub, store and session per test."""

    def setUp(self) -> None:
        super().setUp()
        self.hub = RealtimeHub()
        self.gateway = FlakyGateway(hub=self.hub)
        self.auth = InMemoryAuthBackend()
        caches["persisted"].clear()
        self.store = PersistedKeyValueStore()
        self.session = SessionProvider(self.auth)

    def create_account(self, email: str = "buyer@example.com") -> str:
        return str(self.auth.create_user(email, DEFAULT_PASSWORD)["user_id"])

    async def sign_in(self, email: str = "buyer@example.com") -> str:
        """Create the account if needed, sign in and return the principal id."""
        try:
            self.create_account(email)
        except AuthError:
            pass  # already registered
        result = await self.session.sign_in(email, DEFAULT_PASSWORD)
        return result.unwrap().id
