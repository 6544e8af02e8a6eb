"""
Remote backend interfaces

The sync layer only talks to the backend through these abstractions:
- RemoteGateway: queries, mutations, realtime subscriptions and RPC
- AuthBackend: sign-in/sign-up/sign-out and the session-change stream
- ObjectStorage: media upload, public URLs and removal

Filters are equality predicates (``{"user_id": 7}``). Rows are plain dicts.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional

from shared.application.realtime import ALL_EVENTS, RealtimeHub, Subscription, realtime_hub
from shared.domain.base import ChangeEvent

PROPERTIES = 'properties'
CATEGORIES = 'categories'
FAVORITES = 'favorites'
USER_ROLES = 'user_roles'
NOTIFICATIONS = 'notifications'
PROFILES = 'profiles'

TABLES = (PROPERTIES, CATEGORIES, FAVORITES, USER_ROLES, NOTIFICATIONS, PROFILES)

Row = Dict[str, Any]


class RemoteGateway(ABC):
    """Abstract gateway over the backend tables"""

    def __init__(self, hub: Optional[RealtimeHub] = None):
        self.hub = hub or realtime_hub

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[Row] = None,
        *,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Row]:
        """Return matching rows; ``order_by`` is a column, ``-column`` for descending"""

    @abstractmethod
    async def insert(self, table: str, rows: Iterable[Row]) -> List[Row]:
        """Insert rows and return them as stored"""

    @abstractmethod
    async def update(self, table: str, patch: Row, filters: Row) -> List[Row]:
        """Apply ``patch`` to matching rows and return them as stored"""

    @abstractmethod
    async def delete(self, table: str, filters: Row) -> int:
        """Delete matching rows and return how many were removed"""

    @abstractmethod
    async def rpc(self, name: str, **params) -> Any:
        """Run a privileged function on the backend"""

    def subscribe(
        self,
        table: str,
        handler: Callable[[ChangeEvent], Any],
        *,
        event_types: Iterable[str] = ALL_EVENTS,
        filters: Optional[Row] = None,
    ) -> Subscription:
        return self.hub.subscribe(table, handler, event_types=event_types, filters=filters)

    def unsubscribe(self, subscription: Optional[Subscription]):
        self.hub.unsubscribe(subscription)

    @staticmethod
    def check_table(table: str):
        if table not in TABLES:
            raise ValueError(f"Unknown table: {table}")


class AuthBackend(ABC):
    """
    Abstract authentication service

    Sessions are plain dicts with at least ``user_id`` and ``email``.
    """

    def __init__(self):
        self._session: Optional[Row] = None
        self._listeners: List[Callable[[Optional[Row]], None]] = []

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> Row:
        """Return the new session or raise AuthError"""

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> Row:
        """Create an account, sign it in and return the session or raise AuthError"""

    async def sign_out(self) -> None:
        self._set_session(None)

    def current_session(self) -> Optional[Row]:
        return self._session

    def on_session_change(self, callback: Callable[[Optional[Row]], None]) -> Callable[[], None]:
        """
        Register a session listener

        The listener receives the current session right away, then every
        change. Returns a function that removes the listener.
        """
        self._listeners.append(callback)
        callback(self._session)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_session(self, session: Optional[Row]):
        self._session = session
        for listener in list(self._listeners):
            listener(session)


class ObjectStorage(ABC):
    """Abstract media storage organized in buckets"""

    @abstractmethod
    async def upload(self, bucket: str, path: str, content) -> str:
        """Store ``content`` and return its public URL"""

    @abstractmethod
    def get_public_url(self, bucket: str, path: str) -> str:
        """Public URL of a stored object"""

    @abstractmethod
    async def remove(self, bucket: str, paths: Iterable[str]) -> int:
        """Remove objects and return how many existed"""

    def path_from_url(self, bucket: str, url: str) -> Optional[str]:
        """Object path inside ``bucket`` for a URL returned by ``upload``"""
        marker = f"{bucket}/"
        index = url.find(marker)
        if index < 0:
            return None
        return url[index + len(marker):]
