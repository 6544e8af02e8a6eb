"""Debounce/coalesce primitive for realtime-triggered refreshes."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Run ``callback`` once, ``delay`` seconds after the last ``trigger()``.

    Every trigger resets the timer, so a burst of events (a multi-statement
    remote transaction) produces a single refresh against settled data.
    Must be used from inside a running event loop.
    """

    def __init__(self, delay: float, callback: Callable[[], Awaitable[None]], *, name: str = "debouncer"):
        if delay < 0:
            raise ValueError("Debounce delay cannot be negative")
        self.delay = delay
        self._callback = callback
        self._name = name
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        self._task = asyncio.ensure_future(self._run())

    async def _run(self) -> None:
        try:
            await self._callback()
        except Exception as e:  # noqa: BLE001
            logger.error(f"Debounced callback {self._name} failed: {e}", exc_info=True)

    async def flush(self) -> None:
        """Run a pending callback now instead of waiting for the timer"""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            await self._run()
        elif self._task is not None and not self._task.done():
            await self._task

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
