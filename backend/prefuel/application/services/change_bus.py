"""Change bus — in-process fan-out of change events to live subscribers."""

import asyncio
import logging
import uuid

from prefuel.domain.entities import ChangeEvent

logger = logging.getLogger(__name__)


class Subscription:
    """One subscriber's handle: a bounded queue of pending events.

    A ``None`` in the queue marks the end of the subscription.
    """

    def __init__(self, max_pending: int) -> None:
        self.id = uuid.uuid4().hex[:12]
        self._queue: asyncio.Queue[ChangeEvent | None] = asyncio.Queue(maxsize=max_pending)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def offer(self, event: ChangeEvent) -> bool:
        """Enqueue without blocking. False means the subscriber can no longer keep up."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            return False
        return True

    async def get(self) -> ChangeEvent | None:
        """Next event in publish order, or None once the subscription is closed."""
        if self._closed and self._queue.empty():
            return None
        return await self._queue.get()

    def close(self) -> None:
        """End the subscription, discarding anything still queued."""
        if self._closed:
            return
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(None)


class ChangeBus:
    """Publishes change events to every current subscription.

    Fan-out only: nothing is stored, a new subscriber sees only events
    published after it subscribed, and each subscriber receives events in
    publish order. A subscriber whose queue is full or closed is dropped
    rather than allowed to fail the publish for everyone else.
    """

    def __init__(self, max_pending: int = 1000) -> None:
        self._max_pending = max_pending
        self._subscriptions: list[Subscription] = []

    def subscribe(self) -> Subscription:
        subscription = Subscription(self._max_pending)
        self._subscriptions.append(subscription)
        logger.debug("Subscriber %s joined (%d total)", subscription.id, len(self._subscriptions))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription. Safe to call more than once."""
        subscription.close()
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
            logger.debug(
                "Subscriber %s left (%d total)", subscription.id, len(self._subscriptions)
            )

    def publish(self, event: ChangeEvent) -> int:
        """Deliver ``event`` to every subscriber. Returns the number reached."""
        delivered = 0
        dead: list[Subscription] = []

        for subscription in self._subscriptions:
            if subscription.offer(event):
                delivered += 1
            else:
                dead.append(subscription)

        for subscription in dead:
            logger.warning("Subscriber %s stopped accepting events — disconnecting", subscription.id)
            self.unsubscribe(subscription)

        logger.debug(
            "Published %s %s%s to %d subscriber(s)",
            event.type.value,
            event.entity,
            f" {event.id}" if event.id else "",
            delivered,
        )
        return delivered

    def shutdown(self) -> None:
        """Disconnect all subscribers."""
        for subscription in list(self._subscriptions):
            self.unsubscribe(subscription)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)
