"""Favorites cache for the client sync layer.

Membership is answered locally. Each listing id moves through
``UNKNOWN -> LOCAL_GUESS -> CONFIRMED``: a guess comes from the persisted
snapshot of a previous run, confirmation from the backend. Remote truth
always replaces a guess, and a failed mutation never changes local state.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from shared.application.state import BackgroundTasks, LifetimeGuard, ObservableValue
from shared.domain.base import DELETE, INSERT, ChangeEvent, Result
from shared.domain.errors import AuthError, DuplicateError
from shared.infrastructure.gateway import FAVORITES, RemoteGateway
from shared.infrastructure.kv_store import FAVORITES_KEY, PersistedKeyValueStore, scoped_key

from apps.accounts.session import Principal, SessionProvider

logger = logging.getLogger(__name__)


class FavoriteState(str, enum.Enum):
    UNKNOWN = "unknown"
    LOCAL_GUESS = "local_guess"
    CONFIRMED = "confirmed"


class StaleSessionError(AuthError):
    """The principal changed while a favorites request was in flight"""


def _key(listing_id) -> str:
    return str(listing_id)


class FavoritesCache:
    def __init__(self, gateway: RemoteGateway, store: PersistedKeyValueStore, session: SessionProvider):
        self.gateway = gateway
        self.store = store
        self.session = session
        # Favorited listing ids, for subscribers that render hearts
        self.favorite_ids: ObservableValue[FrozenSet[str]] = ObservableValue(frozenset())
        self._entries: Dict[str, Tuple[bool, FavoriteState]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        # Realtime echoes still expected for our own successful mutations
        self._echoes: Dict[str, int] = {}
        self._principal: Optional[Principal] = None
        self._subscription = None
        self._guard = LifetimeGuard()
        self._tasks = BackgroundTasks("favorites")
        self._unsubscribe_session = None

    async def start(self) -> None:
        self._unsubscribe_session = self.session.principal.subscribe(self._on_principal_change)
        await self._reinitialize(self.session.current)

    def _on_principal_change(self, principal: Optional[Principal]) -> None:
        self._tasks.spawn(self._reinitialize(principal))

    async def _reinitialize(self, principal: Optional[Principal]) -> None:
        token = self._guard.begin()
        self._principal = principal
        self.gateway.unsubscribe(self._subscription)
        self._subscription = None
        self._entries = {}
        self._locks = {}
        self._echoes = {}

        if principal is None:
            self._publish()
            return

        for listing_id in self._load_snapshot(principal):
            self._entries[listing_id] = (True, FavoriteState.LOCAL_GUESS)
        self._publish()

        self._subscription = self.gateway.subscribe(
            FAVORITES,
            self._on_remote_change,
            event_types=(INSERT, DELETE),
            filters={"user_id": principal.id},
        )
        result = await self._sync(token, principal)
        if not result.ok:
            logger.info(f"Keeping {len(self._entries)} guessed favorites until the backend is reachable")

    # ---------- reads ----------

    def is_favorited(self, listing_id) -> bool:
        favorited, _ = self._entries.get(_key(listing_id), (False, FavoriteState.UNKNOWN))
        return favorited

    def state_of(self, listing_id) -> FavoriteState:
        _, state = self._entries.get(_key(listing_id), (False, FavoriteState.UNKNOWN))
        return state

    @property
    def favorites(self) -> List[str]:
        return sorted(self.favorite_ids.value)

    # ---------- mutations ----------

    async def toggle_favorite(self, listing_id) -> Result[bool]:
        """
        Flip membership of ``listing_id`` and return the new membership.

        Toggles of one listing run one after another, so rapid taps end in
        the state of the last tap.
        """
        principal = self._principal
        if principal is None:
            return Result.failure(AuthError("Sign in to manage favorites"))

        key = _key(listing_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            token = self._guard.token
            if not self._guard.is_current(token) or self._principal != principal:
                return Result.failure(StaleSessionError("Session changed"))

            currently = self.is_favorited(key)
            row = {"user_id": principal.id, "property_id": key}
            # The echo can be delivered before the mutation call returns
            self._expect_echo(key)
            try:
                if currently:
                    if not await self.gateway.delete(FAVORITES, row):
                        self._forget_echo(key)
                else:
                    await self.gateway.insert(FAVORITES, [row])
            except DuplicateError:
                # Already favorited on another device; the intent holds
                self._forget_echo(key)
                logger.info(f"Listing {key} was already a favorite of user {principal.id}")
            except Exception as e:  # noqa: BLE001
                self._forget_echo(key)
                logger.warning(f"Failed to toggle favorite {key}: {e}")
                return Result.failure(e)

            if not self._guard.is_current(token):
                return Result.failure(StaleSessionError("Session changed"))

            self._set(key, not currently)
            self._save_snapshot(principal)
            logger.debug(f"Listing {key} favorited={not currently} for user {principal.id}")
            return Result.success(not currently)

    # ---------- reconciliation ----------

    async def confirm(self, listing_id) -> Result[bool]:
        """Check one listing against the backend and record the answer."""
        principal = self._principal
        if principal is None:
            return Result.failure(AuthError("Sign in to manage favorites"))

        key = _key(listing_id)
        token = self._guard.token
        try:
            rows = await self.gateway.select(
                FAVORITES, {"user_id": principal.id, "property_id": key}, limit=1
            )
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Could not confirm favorite {key}: {e}")
            return Result.failure(e)

        if not self._guard.is_current(token):
            return Result.failure(StaleSessionError("Session changed"))
        if self._locks.get(key) is not None and self._locks[key].locked():
            # A toggle in flight decides this listing
            return Result.success(self.is_favorited(key))

        favorited = bool(rows)
        self._set(key, favorited)
        self._save_snapshot(principal)
        return Result.success(favorited)

    async def sync(self) -> Result[FrozenSet[str]]:
        """Replace every local entry with the backend's favorites."""
        if self._principal is None:
            return Result.failure(AuthError("Sign in to manage favorites"))
        return await self._sync(self._guard.token, self._principal)

    async def _sync(self, token: int, principal: Principal) -> Result[FrozenSet[str]]:
        try:
            rows = await self.gateway.select(FAVORITES, {"user_id": principal.id})
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Favorites sync failed for user {principal.id}: {e}", exc_info=True)
            return Result.failure(e)

        if not self._guard.is_current(token):
            logger.debug(f"Discarding stale favorites of user {principal.id}")
            return Result.failure(StaleSessionError("Session changed"))

        remote = {_key(row["property_id"]) for row in rows}
        busy = {key for key, lock in self._locks.items() if lock.locked()}
        for key in set(self._entries) | remote:
            if key not in busy:
                self._set(key, key in remote, publish=False)
        self._publish()
        self._save_snapshot(principal)
        return Result.success(self.favorite_ids.value)

    def _on_remote_change(self, event: ChangeEvent) -> None:
        principal = self._principal
        if principal is None:
            return
        key = _key(event.row.get("property_id"))
        if self._echoes.get(key):
            self._echoes[key] -= 1
            return
        lock = self._locks.get(key)
        if lock is not None and lock.locked():
            return
        logger.debug(f"Favorite {key} {event.event_type} from another device")
        self._set(key, event.event_type == INSERT)
        self._save_snapshot(principal)

    def _expect_echo(self, key: str) -> None:
        self._echoes[key] = self._echoes.get(key, 0) + 1

    def _forget_echo(self, key: str) -> None:
        if self._echoes.get(key):
            self._echoes[key] -= 1

    # ---------- local state ----------

    def _set(self, key: str, favorited: bool, *, publish: bool = True) -> None:
        self._entries[key] = (favorited, FavoriteState.CONFIRMED)
        if publish:
            self._publish()

    def _publish(self) -> None:
        self.favorite_ids.set(frozenset(k for k, (fav, _) in self._entries.items() if fav))

    def _load_snapshot(self, principal: Principal) -> Iterable[str]:
        value = self.store.get(scoped_key(FAVORITES_KEY, principal.id)) or []
        if not isinstance(value, list):
            logger.warning(f"Discarding malformed favorites snapshot of user {principal.id}")
            return []
        return [_key(v) for v in value]

    def _save_snapshot(self, principal: Principal) -> None:
        self.store.set(scoped_key(FAVORITES_KEY, principal.id), sorted(self.favorite_ids.value))

    async def settle(self) -> None:
        await self._tasks.drain()

    def close(self) -> None:
        self._guard.close()
        self._tasks.cancel_all()
        self.gateway.unsubscribe(self._subscription)
        self._subscription = None
        if self._unsubscribe_session is not None:
            self._unsubscribe_session()
            self._unsubscribe_session = None
