"""Notification delivery bridge for the client sync layer.

Keeps the principal's inbox and unread count current, turns realtime
INSERT events into a re-fetch plus a native local notification, and
registers the device for push when running on a native platform.

User-initiated mutations return a ``Result``. Background work (realtime
handlers, push callbacks) logs failures and degrades to safe defaults.
"""

from __future__ import annotations

import itertools
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore

from shared.application.state import BackgroundTasks, LifetimeGuard, ObservableValue
from shared.domain.base import INSERT, ChangeEvent, Result
from shared.domain.errors import AuthError, GatewayError
from shared.infrastructure.gateway import NOTIFICATIONS, PROFILES, RemoteGateway, Row

from apps.accounts.session import Principal, SessionProvider

from .models import Notification
from .platform import GRANTED, BrowserPlatform, NativePlatform

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = frozenset(Notification.Type.values)

_local_ids = itertools.count(int(timezone.now().timestamp() * 1000))


class NotificationBridge:
    def __init__(
        self,
        gateway: RemoteGateway,
        session: SessionProvider,
        platform: Optional[NativePlatform] = None,
        *,
        fetch_limit: Optional[int] = None,
        local_delay: Optional[float] = None,
    ):
        self.gateway = gateway
        self.session = session
        self.platform = platform or BrowserPlatform()
        self.fetch_limit = fetch_limit or getattr(settings, "NOTIFICATIONS_FETCH_LIMIT", 50)
        if local_delay is None:
            local_delay = getattr(settings, "LOCAL_NOTIFICATION_DELAY_SECONDS", 1)
        self.local_delay = local_delay
        self.notifications: ObservableValue[Tuple[Row, ...]] = ObservableValue(())
        self.unread_count: ObservableValue[int] = ObservableValue(0)
        self.loading = True
        self._principal: Optional[Principal] = None
        self._subscription = None
        self._guard = LifetimeGuard()
        self._tasks = BackgroundTasks("notifications")
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

        if principal is None:
            self._replace([])
            self.loading = False
            return

        self._subscription = self.gateway.subscribe(
            NOTIFICATIONS,
            self._on_insert,
            event_types=(INSERT,),
            filters={"user_id": principal.id},
        )
        await self.fetch_notifications()
        if self._guard.is_current(token):
            await self.register_push()

    # ---------- reads ----------

    def _replace(self, rows: List[Row]) -> None:
        self.notifications.set(tuple(rows))
        self.unread_count.set(sum(1 for row in rows if not row.get("read")))

    def _find(self, notification_id) -> Optional[Row]:
        for row in self.notifications.value:
            if str(row.get("id")) == str(notification_id):
                return row
        return None

    async def fetch_notifications(self) -> List[Row]:
        """Newest notifications of the principal; failures degrade to an empty inbox."""
        principal = self._principal
        if principal is None:
            self._replace([])
            self.loading = False
            return []

        token = self._guard.token
        self.loading = True
        try:
            rows = await self.gateway.select(
                NOTIFICATIONS,
                {"user_id": principal.id},
                order_by="-created_at",
                limit=self.fetch_limit,
            )
        except Exception as e:  # noqa: BLE001
            logger.error(f"Error fetching notifications of user {principal.id}: {e}", exc_info=True)
            rows = []

        if not self._guard.is_current(token):
            logger.debug(f"Discarding stale notifications of user {principal.id}")
            return list(self.notifications.value)

        self._replace(rows)
        self.loading = False
        return rows

    # ---------- mutations ----------

    def _require_principal(self) -> Principal:
        if self._principal is None:
            raise AuthError("Sign in to manage notifications")
        return self._principal

    async def mark_as_read(self, notification_id) -> Result[None]:
        try:
            principal = self._require_principal()
            token = self._guard.token
            await self.gateway.update(
                NOTIFICATIONS, {"read": True}, {"id": notification_id, "user_id": principal.id}
            )
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Error marking notification {notification_id} as read: {e}")
            return Result.failure(e)

        if self._guard.is_current(token):
            row = self._find(notification_id)
            if row is not None and not row.get("read"):
                self.notifications.set(tuple(
                    {**r, "read": True} if r is row else r for r in self.notifications.value
                ))
                self.unread_count.set(max(0, self.unread_count.value - 1))
        return Result.success(None)

    async def mark_all_as_read(self) -> Result[None]:
        try:
            principal = self._require_principal()
            token = self._guard.token
            await self.gateway.update(
                NOTIFICATIONS, {"read": True}, {"user_id": principal.id, "read": False}
            )
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Error marking all notifications as read: {e}")
            return Result.failure(e)

        if self._guard.is_current(token):
            self.notifications.set(tuple({**r, "read": True} for r in self.notifications.value))
            self.unread_count.set(0)
        return Result.success(None)

    async def delete_notification(self, notification_id) -> Result[None]:
        try:
            principal = self._require_principal()
            token = self._guard.token
            await self.gateway.delete(NOTIFICATIONS, {"id": notification_id, "user_id": principal.id})
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Error deleting notification {notification_id}: {e}")
            return Result.failure(e)

        if self._guard.is_current(token):
            row = self._find(notification_id)
            if row is not None:
                self.notifications.set(tuple(r for r in self.notifications.value if r is not row))
                if not row.get("read"):
                    self.unread_count.set(max(0, self.unread_count.value - 1))
        return Result.success(None)

    async def create_notification(self, payload: Dict[str, Any]) -> Result[Row]:
        """Insert a notification for the principal and refresh the inbox."""
        try:
            principal = self._require_principal()
            kind = payload.get("type", Notification.Type.INFO)
            if kind not in NOTIFICATION_TYPES:
                raise ValueError(f"Unknown notification type: {kind}")
            if not payload.get("title") or not payload.get("message"):
                raise ValueError("Title and message are required")
            row = {
                "user_id": principal.id,
                "title": payload["title"],
                "message": payload["message"],
                "type": kind,
                "read": bool(payload.get("read", False)),
                "action_url": payload.get("action_url"),
            }
            created = await self.gateway.insert(NOTIFICATIONS, [row])
        except (AuthError, GatewayError, ValueError) as e:
            logger.warning(f"Error creating notification: {e}")
            return Result.failure(e)

        await self.fetch_notifications()
        return Result.success(created[0])

    # ---------- native delivery ----------

    async def send_local_notification(self, title: str, body: str) -> bool:
        """Schedule a device notification shortly from now; a no-op off native platforms."""
        if not self.platform.is_native():
            return False
        try:
            await self.platform.schedule_local_notification(
                title,
                body,
                notification_id=next(_local_ids),
                at=timezone.now() + timedelta(seconds=self.local_delay),
            )
        except Exception as e:  # noqa: BLE001
            logger.error(f"Error sending local notification: {e}", exc_info=True)
            return False
        return True

    def _on_insert(self, event: ChangeEvent) -> None:
        row = event.new
        logger.info(f"New notification received: {row.get('id')}")
        self._tasks.spawn(self.fetch_notifications())
        self._tasks.spawn(self.send_local_notification(row.get("title") or "", row.get("message") or ""))

    async def register_push(self) -> bool:
        """Ask for push permission and register the device; True when registered."""
        if not self.platform.is_native():
            return False
        try:
            permission = await self.platform.check_push_permission()
            if permission != GRANTED:
                permission = await self.platform.request_push_permission()
            if permission != GRANTED:
                logger.info("Push permission not granted")
                return False
            await self.platform.register_push(self._on_push_token, self._on_push_received)
        except Exception as e:  # noqa: BLE001
            logger.error(f"Error initializing push notifications: {e}", exc_info=True)
            return False
        return True

    def _on_push_token(self, token: str) -> None:
        logger.info("Push registration succeeded")
        self._tasks.spawn(self.save_push_token(token))

    def _on_push_received(self, payload: Dict[str, Any]) -> None:
        logger.debug(f"Push notification received: {payload}")
        self._tasks.spawn(self.fetch_notifications())

    async def save_push_token(self, token: str) -> Result[None]:
        """Store the device push token on the principal's profile."""
        try:
            principal = self._require_principal()
            await self.gateway.update(PROFILES, {"push_token": token}, {"user_id": principal.id})
        except Exception as e:  # noqa: BLE001
            logger.error(f"Error storing push token: {e}", exc_info=True)
            return Result.failure(e)
        return Result.success(None)

    async def settle(self) -> None:
        """Wait for re-fetches and local notifications spawned by events."""
        await self._tasks.drain()

    def close(self) -> None:
        self._guard.close()
        self._tasks.cancel_all()
        self.gateway.unsubscribe(self._subscription)
        self._subscription = None
        if self._unsubscribe_session is not None:
            self._unsubscribe_session()
            self._unsubscribe_session = None
