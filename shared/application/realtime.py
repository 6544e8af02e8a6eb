"""
Realtime Hub

Routes row-level change events to the subscriptions watching them.
One hub per process; every component subscribes to a filtered slice of it
and owns the lifecycle of its own subscriptions.
"""

import asyncio
import inspect
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

from shared.domain.base import EVENT_TYPES, ChangeEvent

logger = logging.getLogger(__name__)

ALL_EVENTS = '*'


def _normalize_event_types(event_types) -> FrozenSet[str]:
    if event_types is None or event_types == ALL_EVENTS:
        return frozenset(EVENT_TYPES)
    if isinstance(event_types, str):
        event_types = [event_types]
    normalized = frozenset(e.upper() for e in event_types)
    unknown = normalized - frozenset(EVENT_TYPES)
    if unknown:
        raise ValueError(f"Unknown event types: {', '.join(sorted(unknown))}")
    return normalized


def row_matches(row: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
    """Equality filter, compared as strings like the ``col=eq.value`` syntax"""
    if not filters:
        return True
    for column, expected in filters.items():
        if column not in row:
            return False
        if str(row[column]) != str(expected):
            return False
    return True


@dataclass(eq=False)
class Subscription:
    """Handle returned by ``RealtimeHub.subscribe``"""
    table: str
    handler: Callable[[ChangeEvent], Any]
    event_types: FrozenSet[str]
    filters: Dict[str, Any] = field(default_factory=dict)
    loop: Optional[asyncio.AbstractEventLoop] = None
    active: bool = True

    def matches(self, event: ChangeEvent) -> bool:
        return (
            self.active
            and event.table == self.table
            and event.event_type in self.event_types
            and row_matches(event.row, self.filters)
        )


class RealtimeHub:
    """
    Fan-out of change events to subscriptions

    Handlers can be plain callables or coroutine functions. A handler
    subscribed from inside an event loop is always invoked on that loop,
    whichever thread published the event. Errors in handlers are logged
    and don't stop delivery to other subscriptions.
    """

    def __init__(self):
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(
        self,
        table: str,
        handler: Callable[[ChangeEvent], Any],
        *,
        event_types: Iterable[str] = ALL_EVENTS,
        filters: Optional[Dict[str, Any]] = None,
    ) -> Subscription:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        subscription = Subscription(
            table=table,
            handler=handler,
            event_types=_normalize_event_types(event_types),
            filters=dict(filters or {}),
            loop=loop,
        )
        with self._lock:
            self._subscriptions.append(subscription)
        logger.debug(f"Subscribed to {table} {sorted(subscription.event_types)} {subscription.filters}")
        return subscription

    def unsubscribe(self, subscription: Optional[Subscription]):
        if subscription is None:
            return
        subscription.active = False
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
        logger.debug(f"Unsubscribed from {subscription.table}")

    @property
    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, event: ChangeEvent):
        """Deliver an event to every matching subscription"""
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(event)]

        if not targets:
            return

        logger.debug(f"Publishing {event.event_type} on {event.table} to {len(targets)} subscription(s)")

        for subscription in targets:
            loop = subscription.loop
            if loop is not None and not loop.is_closed():
                try:
                    loop.call_soon_threadsafe(self._invoke, subscription, event)
                    continue
                except RuntimeError:
                    # Loop closed between the check and the call
                    logger.debug(f"Dropping {event.event_type} on {event.table}: subscriber loop closed")
                    continue
            self._invoke(subscription, event)

    def _invoke(self, subscription: Subscription, event: ChangeEvent):
        if not subscription.active:
            return
        handler_name = getattr(subscription.handler, '__name__', repr(subscription.handler))
        try:
            outcome = subscription.handler(event)
            if inspect.isawaitable(outcome):
                try:
                    asyncio.get_running_loop()
                except RuntimeError:
                    if inspect.iscoroutine(outcome):
                        outcome.close()
                    logger.error(f"Async realtime handler {handler_name} subscribed outside an event loop")
                    return
                task = asyncio.ensure_future(outcome)
                task.add_done_callback(lambda t: self._log_task_failure(t, handler_name, event))
        except Exception as e:
            logger.error(
                f"Error in realtime handler {handler_name} "
                f"for {event.event_type} on {event.table}: {e}",
                exc_info=True
            )
            # Don't raise - other subscriptions should still run

    @staticmethod
    def _log_task_failure(task: 'asyncio.Future', handler_name: str, event: ChangeEvent):
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                f"Error in realtime handler {handler_name} "
                f"for {event.event_type} on {event.table}: {error}",
                exc_info=error
            )


# Global realtime hub instance
realtime_hub = RealtimeHub()
