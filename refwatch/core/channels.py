"""Bounded channels that a single thread can wait on together.

``select()`` blocks until one of several channels holds an item or a timeout
elapses, which is what the poll loop needs to race its timer against kill and
notification wake-ups without busy polling.

Producers never block: ``offer()`` on a full channel drops the item.  With a
capacity of one this coalesces repeated wake-ups into a single pending one.
"""

from __future__ import annotations

import collections
import threading
import time
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class Channel(Generic[T]):
    """Thread-safe bounded buffer with non-blocking producers.

    Parameters
    ----------
    capacity:
        Maximum number of buffered items.  Offers beyond this are dropped.
    name:
        Label used in log and repr output.
    """

    def __init__(self, capacity: int = 1, name: str = "") -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.name = name
        self._capacity = capacity
        self._items: collections.deque[T] = collections.deque()
        self._lock = threading.Lock()
        self._waiters: set[threading.Event] = set()
        self._closed = False

    def __repr__(self) -> str:
        return f"Channel(name={self.name!r}, capacity={self._capacity}, pending={len(self._items)})"

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def offer(self, item: T) -> bool:
        """Buffer ``item`` if there is room.  Returns whether it was kept."""
        with self._lock:
            if self._closed or len(self._items) >= self._capacity:
                return False
            self._items.append(item)
            waiters = list(self._waiters)
        for event in waiters:
            event.set()
        return True

    def close(self) -> None:
        """Stop accepting items.  Already-buffered items stay takeable."""
        with self._lock:
            self._closed = True
            waiters = list(self._waiters)
        for event in waiters:
            event.set()

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    def poll(self) -> tuple[bool, T | None]:
        """Take one item without blocking.  Returns ``(taken, item)``."""
        with self._lock:
            if self._items:
                return True, self._items.popleft()
            return False, None

    def _add_waiter(self, event: threading.Event) -> None:
        with self._lock:
            self._waiters.add(event)

    def _remove_waiter(self, event: threading.Event) -> None:
        with self._lock:
            self._waiters.discard(event)


def select(
    channels: Sequence[Channel[Any]], timeout: float | None
) -> tuple[Channel[Any] | None, Any]:
    """Wait for the first channel with a buffered item.

    Channels are checked in the order given whenever the caller wakes up, so
    earlier channels win ties.  Returns ``(channel, item)`` for the channel
    that delivered, or ``(None, None)`` once ``timeout`` seconds pass.  A
    closed, empty channel never becomes ready.
    """
    deadline = None if timeout is None else time.monotonic() + timeout
    wakeup = threading.Event()
    for ch in channels:
        ch._add_waiter(wakeup)
    try:
        while True:
            # Clear before checking so an offer racing the check still wakes us.
            wakeup.clear()
            for ch in channels:
                taken, item = ch.poll()
                if taken:
                    return ch, item
            if deadline is None:
                wakeup.wait()
                continue
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None, None
            wakeup.wait(remaining)
    finally:
        for ch in channels:
            ch._remove_waiter(wakeup)
