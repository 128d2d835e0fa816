"""
Single-slot, latest-value-wins state broadcast.

Producers call `publish()`, which never blocks: the new value replaces the
previous one, synchronous subscribers are called immediately, and async
watchers are woken up. A watcher that is slower than the producer skips the
intermediate values and observes the latest one.
"""

import asyncio
from typing import AsyncIterator, Callable, Generic, List, Set, TypeVar

from starview.log_utils import logger

T = TypeVar("T")

StateCallback = Callable[[T], None]


class StateChannel(Generic[T]):
    """
    Observable holder of the most recent state value.

    Example:
        channel = StateChannel(DownloadState.not_started())
        unsubscribe = channel.subscribe(print)
        channel.publish(DownloadState.finish())
        unsubscribe()
    """

    def __init__(self, initial: T) -> None:
        self._value: T = initial
        self._version = 0
        self._subscribers: List[StateCallback] = []
        self._wakeups: Set[asyncio.Event] = set()

    @property
    def value(self) -> T:
        """The latest published value."""
        return self._value

    @property
    def version(self) -> int:
        """Number of values published so far."""
        return self._version

    def publish(self, value: T) -> None:
        """
        Replace the current value and notify subscribers and watchers.

        Subscriber errors are logged at debug level and suppressed so a faulty
        observer never interrupts the producer.
        """
        self._value = value
        self._version += 1

        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception as e:
                logger.debug(f"State subscriber error: {e}")

        for wakeup in self._wakeups:
            wakeup.set()

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        """
        Register a synchronous callback invoked with every published value.

        Returns:
            Callable[[], None]: A function that removes the subscription.
        """
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    async def watch(self) -> AsyncIterator[T]:
        """
        Yield the latest value every time the channel changes.

        Values published before the watch starts are not replayed. Intermediate
        values published while the consumer is busy are skipped; the consumer
        always receives the newest one. The iterator never ends on its own.
        """
        wakeup = asyncio.Event()
        self._wakeups.add(wakeup)
        seen = self._version
        try:
            while True:
                if self._version == seen:
                    wakeup.clear()
                    await wakeup.wait()
                    continue
                seen = self._version
                yield self._value
        finally:
            self._wakeups.discard(wakeup)
