"""Kill switch and the bridge that turns it into a selectable wake-up.

The host pipeline owns a ``KillSwitch`` per running step and flips it when a
user aborts the step.  The watcher never sets it; it only observes it, through
a ``CancellationBridge`` whose channel can be waited on alongside the poll
timer and notifications.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from refwatch.core.channels import Channel

logger = logging.getLogger(__name__)

KillWatcher = Callable[[bool, bool], None]

_BRIDGE_WATCH_KEY = "refwatch.cancellation-bridge"


class KillSwitch:
    """Observable boolean flag, ``False`` until killed.

    Watchers are called with ``(old, new)`` after every change, outside the
    internal lock.  Only the ``False -> True`` edge is meaningful; resetting
    a killed switch is not supported.
    """

    def __init__(self) -> None:
        self._killed = False
        self._lock = threading.Lock()
        self._watchers: dict[str, KillWatcher] = {}

    @property
    def is_killed(self) -> bool:
        return self._killed

    def kill(self) -> None:
        with self._lock:
            old = self._killed
            self._killed = True
            watchers = list(self._watchers.values())
        if old:
            return
        logger.debug("Kill switch flipped")
        for watcher in watchers:
            watcher(old, True)

    def add_watch(self, key: str, watcher: KillWatcher) -> None:
        """Register ``watcher`` under ``key``, replacing any previous one."""
        with self._lock:
            self._watchers[key] = watcher

    def remove_watch(self, key: str) -> None:
        with self._lock:
            self._watchers.pop(key, None)

    def watch_keys(self) -> list[str]:
        with self._lock:
            return list(self._watchers)


class CancellationBridge:
    """One-shot adapter from a ``KillSwitch`` to a ``Channel``.

    Delivers at most one item on ``channel`` per open/close cycle: on the
    first ``False -> True`` transition, or immediately when the switch is
    already killed at open time.  Use as a context manager, or call
    ``close()`` on every exit path; closing twice is harmless.
    """

    def __init__(self, kill_switch: KillSwitch, *, key: str | None = None) -> None:
        self._kill_switch = kill_switch
        self._key = key or f"{_BRIDGE_WATCH_KEY}:{id(self):x}"
        self._fired = False
        self._fire_lock = threading.Lock()
        self.channel: Channel[str] = Channel(capacity=1, name="kill")
        self._closed = False

    def open(self) -> CancellationBridge:
        self._kill_switch.add_watch(self._key, self._on_change)
        # A switch killed before we subscribed must still wake the waiter.
        if self._kill_switch.is_killed:
            self._fire()
        return self

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._kill_switch.remove_watch(self._key)
        self.channel.close()

    @property
    def fired(self) -> bool:
        return self._fired

    def _on_change(self, old: bool, new: bool) -> None:
        if old != new and new is True:
            self._fire()

    def _fire(self) -> None:
        with self._fire_lock:
            if self._fired:
                return
            self._fired = True
        self.channel.offer("killed")

    def __enter__(self) -> CancellationBridge:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_bridge(kill_switch: KillSwitch) -> CancellationBridge:
    """Register a bridge on ``kill_switch`` and return it, already open."""
    return CancellationBridge(kill_switch).open()
