"""
Broadcast channel with replay-on-subscribe semantics.

A channel is a state cell plus an ordered list of listeners:

- Subscribing synchronously delivers the current value to the new listener.
- Every later `publish` is delivered to all listeners in registration order.
- Closing the channel drops every listener and rejects further use.

Delivery is synchronous. A publish returns only after every listener has
seen the value, so listeners observe updates in exactly the order they
were published. A value published by a listener while a round is being
delivered is queued and delivered once that round completes.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator, Callable
from typing import Generic, TypeVar

from chert_explorer.types import ExplorerError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]


class ChannelClosedError(ExplorerError):
    """Raised when a closed channel is published to or subscribed to."""


class Subscription(Generic[T]):
    """Handle returned by `Channel.subscribe`. Unsubscribing twice is harmless."""

    __slots__ = ("_channel", "_listener", "_active")

    def __init__(self, channel: Channel[T], listener: Listener[T]) -> None:
        self._channel = channel
        self._listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        """Whether the listener still receives updates."""
        return self._active and not self._channel.closed

    def unsubscribe(self) -> None:
        """Stop receiving updates."""
        if self._active:
            self._active = False
            self._channel._remove(self._listener)


class Channel(Generic[T]):
    """A named, replaying broadcast cell."""

    __slots__ = ("name", "_value", "_listeners", "_streams", "_closed", "_pending", "_delivering")

    def __init__(self, name: str, initial: T) -> None:
        self.name = name
        self._value = initial
        self._listeners: list[Listener[T]] = []
        self._streams: list[asyncio.Queue[tuple[bool, T | None]]] = []
        self._closed = False
        self._pending: deque[T] = deque()
        self._delivering = False

    @property
    def value(self) -> T:
        """The most recently published value."""
        return self._value

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Listener[T]) -> Subscription[T]:
        """
        Register `listener` and replay the current value to it.

        Raises:
            ChannelClosedError: If the channel has been closed.
        """
        if self._closed:
            raise ChannelClosedError(f"Channel {self.name!r} is closed")
        self._listeners.append(listener)
        self._deliver(listener, self._value)
        return Subscription(self, listener)

    def publish(self, value: T) -> None:
        """
        Store `value` and deliver it to every listener in registration order.

        Raises:
            ChannelClosedError: If the channel has been closed.
        """
        if self._closed:
            raise ChannelClosedError(f"Channel {self.name!r} is closed")
        self._pending.append(value)
        if self._delivering:
            return

        self._delivering = True
        try:
            while self._pending:
                current = self._pending.popleft()
                self._value = current
                # Iterate over a copy: a listener may unsubscribe itself while being notified.
                for listener in tuple(self._listeners):
                    self._deliver(listener, current)
        finally:
            self._delivering = False

    def close(self) -> None:
        """Drop every listener and end every stream. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._listeners.clear()
        self._pending.clear()
        for queue in self._streams:
            queue.put_nowait((False, None))
        self._streams.clear()

    async def stream(self) -> AsyncIterator[T]:
        """
        Iterate over the current value and every later update.

        Ends when the channel is closed. Values published faster than the
        consumer reads them are queued, not dropped.
        """
        queue: asyncio.Queue[tuple[bool, T | None]] = asyncio.Queue()
        subscription = self.subscribe(lambda value: queue.put_nowait((True, value)))
        self._streams.append(queue)
        try:
            while True:
                has_value, value = await queue.get()
                if not has_value:
                    return
                yield value  # type: ignore[misc]
        finally:
            subscription.unsubscribe()
            if queue in self._streams:
                self._streams.remove(queue)

    def _remove(self, listener: Listener[T]) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            # Already dropped by close().
            pass

    def _deliver(self, listener: Listener[T], value: T) -> None:
        # One failing consumer must not starve the others or abort the cycle.
        try:
            listener(value)
        except Exception:
            logger.exception("Listener on channel %r raised", self.name)
