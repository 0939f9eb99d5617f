"""Notification bus — publish/subscribe for "poll now" requests.

One bus is shared by every watcher in the process.  Each subscription owns a
private bounded channel and an optional acceptance filter applied at publish
time, so watchers for different remotes never see each other's traffic and
can unsubscribe independently.

Payloads are validated ``NotificationEvent`` models; freeform messages are
rejected at the bus boundary.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from refwatch.core.channels import Channel
from refwatch.models.notifications import GIT_REMOTE_POLL_TOPIC, NotificationEvent

logger = logging.getLogger(__name__)

PayloadFilter = Callable[[NotificationEvent], bool]


class NotificationValidationError(ValueError):
    """Raised when a published payload is not a valid NotificationEvent."""


class Subscription:
    """A single subscriber's view of one topic."""

    def __init__(
        self,
        topic: str,
        *,
        accept: PayloadFilter | None = None,
        capacity: int = 1,
        name: str = "",
    ) -> None:
        self.topic = topic
        self._accept = accept
        self.channel: Channel[NotificationEvent] = Channel(
            capacity=capacity, name=name or topic
        )

    def deliver(self, event: NotificationEvent) -> bool:
        """Offer ``event`` if the filter accepts it.  Unmatched events are dropped."""
        if self._accept is not None and not self._accept(event):
            return False
        return self.channel.offer(event)

    @property
    def closed(self) -> bool:
        return self.channel.closed

    def close(self) -> None:
        self.channel.close()


class NotificationBus:
    """Thread-safe topic bus with filtered, independently closable subscribers."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Subscribe / unsubscribe
    # ------------------------------------------------------------------

    def subscribe(
        self,
        topic: str,
        *,
        accept: PayloadFilter | None = None,
        capacity: int = 1,
        name: str = "",
    ) -> Subscription:
        subscription = Subscription(topic, accept=accept, capacity=capacity, name=name)
        with self._lock:
            self._subscriptions.setdefault(topic, []).append(subscription)
        logger.debug("Subscribed %s to topic %s", subscription.channel.name, topic)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Detach and close ``subscription``.  Unknown subscriptions are ignored."""
        with self._lock:
            subs = self._subscriptions.get(subscription.topic, [])
            if subscription in subs:
                subs.remove(subscription)
            if not subs:
                self._subscriptions.pop(subscription.topic, None)
        subscription.close()
        logger.debug("Unsubscribed %s from topic %s", subscription.channel.name, subscription.topic)

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._subscriptions.get(topic, []))

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    def publish(self, topic: str, payload: NotificationEvent | dict[str, Any]) -> int:
        """Validate ``payload`` and deliver it to every matching subscriber.

        Returns the number of subscribers that buffered the event.
        """
        event = self._validate(payload)
        with self._lock:
            subscribers = list(self._subscriptions.get(topic, []))
        delivered = sum(1 for sub in subscribers if sub.deliver(event))
        logger.debug(
            "Published %s on %s: %d/%d subscribers buffered it",
            event.remote,
            topic,
            delivered,
            len(subscribers),
        )
        return delivered

    @staticmethod
    def _validate(payload: NotificationEvent | dict[str, Any]) -> NotificationEvent:
        if isinstance(payload, NotificationEvent):
            return payload
        try:
            return NotificationEvent.model_validate(payload)
        except ValidationError as exc:
            raise NotificationValidationError(f"Invalid notification payload: {exc}") from exc


def only_matching_remote(bus: NotificationBus, remote: str) -> Subscription:
    """Subscribe to poll notifications for ``remote`` only.

    The returned subscription buffers at most one pending notification;
    further notifications before it is consumed coalesce into it.
    """
    return bus.subscribe(
        GIT_REMOTE_POLL_TOPIC,
        accept=lambda event: event.remote == remote,
        capacity=1,
        name=f"notify:{remote}",
    )


def notify_git(bus: NotificationBus, remote: str) -> int:
    """Ask every watcher of ``remote`` to poll now."""
    return bus.publish(GIT_REMOTE_POLL_TOPIC, NotificationEvent(remote=remote))
