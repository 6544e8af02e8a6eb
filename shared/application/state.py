"""
Observable state cells and lifetime guards

``ObservableValue`` replaces ambient global state: services expose their
current value through a cell that dependents subscribe to explicitly.
``LifetimeGuard`` discards results of requests that resolve after the
owner moved on (principal changed, component closed).
"""

import asyncio
import logging
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ObservableValue(Generic[T]):
    """Current-value cell notifying subscribers on every change"""

    def __init__(self, initial: T):
        self._value = initial
        self._subscribers: List[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T):
        if value == self._value:
            return
        self._value = value
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception as e:
                logger.error(f"Error in state subscriber {getattr(callback, '__name__', callback)}: {e}", exc_info=True)
                # Don't raise - other subscribers should still run

    def subscribe(self, callback: Callable[[T], None], *, immediate: bool = False) -> Callable[[], None]:
        """
        Register a callback; returns a function that removes it

        With ``immediate=True`` the callback also receives the current value.
        """
        self._subscribers.append(callback)
        if immediate:
            callback(self._value)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe


class LifetimeGuard:
    """
    Generation counter

    ``begin()`` starts a new generation and returns its token; anything
    started under an older token is stale once ``is_current`` says so.
    """

    def __init__(self):
        self._generation = 0
        self._closed = False

    def begin(self) -> int:
        self._generation += 1
        return self._generation

    @property
    def token(self) -> int:
        return self._generation

    def is_current(self, token: int) -> bool:
        return not self._closed and token == self._generation

    def close(self):
        self._closed = True
        self._generation += 1

    @property
    def closed(self) -> bool:
        return self._closed


class BackgroundTasks:
    """
    Tasks spawned by a service, tracked so they can be awaited or cancelled

    Failures are logged; nothing propagates out of a background task.
    """

    def __init__(self, name: str):
        self._name = name
        self._tasks = set()

    def spawn(self, coroutine) -> 'asyncio.Task':
        task = asyncio.ensure_future(coroutine)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: 'asyncio.Task'):
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background task of {self._name} failed: {error}", exc_info=error)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self):
        """Wait until every task, including ones spawned meanwhile, is done"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel_all(self):
        for task in list(self._tasks):
            task.cancel()
