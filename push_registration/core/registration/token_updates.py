"""Push token update stream.

A single subscription channel for token changes. Each subscriber gets
its own queue, so a slow consumer never drops updates for the others.
"""

import asyncio

from push_registration.core.registration.models import TokenUpdate
from push_registration.logging_config import get_logger, mask_id

logger = get_logger(__name__)

# Sentinel pushed into a queue to end its subscription
_CLOSED = object()


class TokenSubscription:
    """Async iterator over the updates delivered to one subscriber.

    The subscription is registered as soon as it is created, so updates
    published before the first ``async for`` step are not lost.
    """

    def __init__(self, stream: "TokenUpdateStream") -> None:
        self._stream = stream
        self._queue: asyncio.Queue = asyncio.Queue()
        self._done = False

    def __aiter__(self) -> "TokenSubscription":
        return self

    async def __anext__(self) -> TokenUpdate:
        if self._done:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            self._finish()
            raise StopAsyncIteration
        return item

    def pending(self) -> int:
        return self._queue.qsize()

    def cancel(self) -> None:
        """Stop receiving updates and wake a consumer blocked on the next one."""
        if not self._done:
            self._deliver(_CLOSED)
        self._finish()

    def _deliver(self, item: object) -> None:
        self._queue.put_nowait(item)

    def _finish(self) -> None:
        self._done = True
        self._stream._subscribers.discard(self)


class TokenUpdateStream:
    """Fan-out stream of ``TokenUpdate`` notifications.

    Usage::

        subscription = stream.subscribe()
        async for update in subscription:
            await handle(update)

    ``publish`` is synchronous and must be called on the event loop that
    owns the subscriptions. ``close`` ends every active subscription.
    """

    def __init__(self) -> None:
        self._subscribers: set[TokenSubscription] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> TokenSubscription:
        """Register a new subscriber.

        Subscribing to a closed stream returns an already-finished
        subscription.
        """
        subscription = TokenSubscription(self)
        if self._closed:
            subscription._done = True
            return subscription
        self._subscribers.add(subscription)
        return subscription

    def publish(self, update: TokenUpdate) -> int:
        """Deliver an update to all current subscribers.

        Returns:
            Number of subscribers the update was queued for.
        """
        if self._closed:
            logger.warning("Token update published after stream closed")
            return 0
        for subscription in self._subscribers:
            subscription._deliver(update)
        logger.debug(
            "Token update published",
            kind=str(update.kind),
            token=mask_id(update.token),
            subscribers=len(self._subscribers),
        )
        return len(self._subscribers)

    def close(self) -> None:
        """End all subscriptions. Further publishes are ignored."""
        if self._closed:
            return
        self._closed = True
        for subscription in list(self._subscribers):
            subscription._deliver(_CLOSED)
