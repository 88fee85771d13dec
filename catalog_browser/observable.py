"""Push-based observable value holder."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StateFlow(Generic[T]):
    """Holds one current value and notifies observers when it is replaced.

    Values are treated as immutable snapshots. Emitting a value equal to the
    current one is a no-op. Async collectors are conflated: a slow collector
    sees the latest value, not every intermediate one. Callbacks are conflated
    only when a callback emits from inside another emit.
    """

    def __init__(self, initial: T):
        self._value = initial
        self._version = 0
        self._callbacks: list[Callable[[T], None]] = []
        self._waiters: set[asyncio.Event] = set()

    @property
    def value(self) -> T:
        return self._value

    def emit(self, value: T) -> None:
        """Replace the current value and notify observers.

        A callback may emit again. The nested emit delivers the newer value to
        every callback, and this one stops, so no observer is left holding a
        value older than ``value``.
        """
        if value == self._value:
            return
        self._value = value
        self._version += 1
        version = self._version

        for waiter in self._waiters:
            waiter.set()

        for callback in list(self._callbacks):
            if version != self._version:
                return
            try:
                callback(value)
            except Exception:
                logger.exception(f"Observer {callback!r} failed")

    def subscribe(self, callback: Callable[[T], None], replay: bool = True) -> Callable[[], None]:
        """Register a callback for every new value.

        Args:
            callback: Called synchronously with each new value
            replay: Also call it right away with the current value

        Returns:
            Function that removes the subscription
        """
        self._callbacks.append(callback)
        if replay:
            callback(self._value)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    async def collect(self) -> AsyncIterator[T]:
        """Yield the current value, then each new one as it is emitted."""
        seen = -1
        changed = asyncio.Event()
        self._waiters.add(changed)
        try:
            while True:
                if seen != self._version:
                    seen = self._version
                    yield self._value
                else:
                    changed.clear()
                    await changed.wait()
        finally:
            self._waiters.discard(changed)

    def __aiter__(self) -> AsyncIterator[T]:
        return self.collect()
