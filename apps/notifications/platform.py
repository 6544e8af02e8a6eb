"""Native platform capabilities used by the notification bridge.

The browser has no local scheduling or push registration, so
``BrowserPlatform`` answers "not native" and does nothing. Mobile shells
provide their own subclass through ``NATIVE_PLATFORM_CLASS``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict

GRANTED = "granted"
DENIED = "denied"
PROMPT = "prompt"

TokenCallback = Callable[[str], Any]
PushCallback = Callable[[Dict[str, Any]], Any]


class NativePlatform(ABC):
    @abstractmethod
    def is_native(self) -> bool:
        """True on a device that can show local and push notifications"""

    @abstractmethod
    async def check_push_permission(self) -> str:
        """``granted``, ``denied`` or ``prompt``"""

    @abstractmethod
    async def request_push_permission(self) -> str:
        """Ask the user; returns the resulting permission"""

    @abstractmethod
    async def register_push(self, on_token: TokenCallback, on_received: PushCallback) -> None:
        """Register for push; ``on_token`` gets the device token, ``on_received`` every push"""

    @abstractmethod
    async def schedule_local_notification(
        self, title: str, body: str, *, notification_id: int, at: datetime
    ) -> None:
        """Show ``title``/``body`` on the device at ``at``"""


class BrowserPlatform(NativePlatform):
    def is_native(self) -> bool:
        return False

    async def check_push_permission(self) -> str:
        return DENIED

    async def request_push_permission(self) -> str:
        return DENIED

    async def register_push(self, on_token, on_received) -> None:
        return None

    async def schedule_local_notification(self, title, body, *, notification_id, at) -> None:
        return None
