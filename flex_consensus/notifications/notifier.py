"""Notifier - publish/subscribe channel keyed by query id.

Every lifecycle event is terminal, so a subscription yields at most one
event and then ends. Nothing is retained: a subscriber that joins after the
event was published receives nothing and must read the query store instead.

Example:
    >>> notifier = Notifier()
    >>> async with notifier.subscribe(query_id) as subscription:
    ...     async for event in subscription:
    ...         print(event.to_sse())
"""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType

from flex_consensus.notifications.events import LifecycleEvent


logger = logging.getLogger(__name__)


class Subscription:
    """Async stream of the lifecycle event for one query.

    Usable as an async iterator and as an async context manager; leaving the
    context unsubscribes.
    """

    def __init__(self, notifier: Notifier, query_id: str) -> None:
        self._notifier = notifier
        self.query_id = query_id
        self._queue: asyncio.Queue[LifecycleEvent] = asyncio.Queue(maxsize=1)
        self._done = False

    @property
    def closed(self) -> bool:
        return self._done

    def _deliver(self, event: LifecycleEvent) -> None:
        self._queue.put_nowait(event)

    async def next_event(self, timeout: float | None = None) -> LifecycleEvent | None:
        """Wait for the lifecycle event.

        Returns:
            The event, or None when the subscription is closed or the wait
            timed out.
        """
        if self._done and self._queue.empty():
            return None
        try:
            event = await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except TimeoutError:
            return None
        self.close()
        return event

    def close(self) -> None:
        if not self._done:
            self._done = True
            self._notifier._unsubscribe(self)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> LifecycleEvent:
        event = await self.next_event()
        if event is None:
            raise StopAsyncIteration
        return event

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class Notifier:
    """In-process fan-out of lifecycle events to current subscribers.

    Not thread-safe; publish and subscribe from the event loop thread.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, set[Subscription]] = {}

    def subscribe(self, query_id: str) -> Subscription:
        """Register interest in the next event of a query."""
        subscription = Subscription(self, query_id)
        self._subscribers.setdefault(query_id, set()).add(subscription)
        return subscription

    def publish(self, query_id: str, event: LifecycleEvent) -> int:
        """Deliver an event to current subscribers of `query_id`.

        Returns:
            Number of subscribers the event was delivered to.
        """
        subscribers = self._subscribers.pop(query_id, set())
        for subscription in subscribers:
            subscription._deliver(event)
        logger.debug(
            "Published %s for query=%s to %d subscriber(s)",
            event.event_type, query_id, len(subscribers),
        )
        return len(subscribers)

    def subscriber_count(self, query_id: str) -> int:
        return len(self._subscribers.get(query_id, ()))

    def _unsubscribe(self, subscription: Subscription) -> None:
        subscribers = self._subscribers.get(subscription.query_id)
        if subscribers is None:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self._subscribers[subscription.query_id]
