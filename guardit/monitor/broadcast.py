"""Fan-out of JSON events to every live dashboard connection."""

import asyncio
import itertools
from typing import Any

from guardit.core.logging import get_logger
from guardit.monitor.cache import StatusCache
from guardit.monitor.events import connected_event, encode_event, initial_event

logger = get_logger(__name__)

_CLOSED = object()


class SubscriberClosed(Exception):
    """Raised when reading from or writing to a closed subscriber."""


class Subscriber:
    """
    One open streaming channel.

    Frames are buffered in an unbounded queue: there is no backpressure and
    a slow reader is never dropped proactively, only a closed one is.
    """

    def __init__(self, subscriber_id: int) -> None:
        self.id = subscriber_id
        self.closed = False
        self._queue: asyncio.Queue[Any] = asyncio.Queue()

    def send(self, frame: str) -> None:
        if self.closed:
            raise SubscriberClosed(f"subscriber {self.id} is closed")
        self._queue.put_nowait(frame)

    async def receive(self, timeout: float | None = None) -> str | None:
        """Next frame, or None when ``timeout`` elapses first."""
        try:
            frame = await asyncio.wait_for(self._queue.get(), timeout)
        except TimeoutError:
            return None
        if frame is _CLOSED:
            raise SubscriberClosed(f"subscriber {self.id} is closed")
        return frame

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._queue.put_nowait(_CLOSED)

    def __repr__(self) -> str:
        return f"<Subscriber {self.id} closed={self.closed}>"


class BroadcastHub:
    """Registry of live subscribers; mutated only from the event loop."""

    def __init__(self, cache: StatusCache) -> None:
        self._cache = cache
        self._subscribers: dict[int, Subscriber] = {}
        self._ids = itertools.count(1)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscriber:
        """Open a channel primed with ``connected`` and the full ``initial`` snapshot."""
        subscriber = Subscriber(next(self._ids))
        subscriber.send(encode_event(connected_event()))
        subscriber.send(encode_event(initial_event(self._cache.get_all())))
        self._subscribers[subscriber.id] = subscriber

        logger.bind(subscriber_id=subscriber.id, total=self.subscriber_count).info(
            "sse_client_connected"
        )
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        subscriber.close()
        if self._subscribers.pop(subscriber.id, None) is not None:
            logger.bind(subscriber_id=subscriber.id, total=self.subscriber_count).info(
                "sse_client_disconnected"
            )

    def publish(self, event: dict[str, Any]) -> int:
        """
        Write one event to every registered subscriber.

        A subscriber whose write fails is dropped; the others still receive
        the event and nothing is raised to the caller. Returns the number of
        subscribers the event was written to.
        """
        frame = encode_event(event)
        delivered = 0
        for subscriber in list(self._subscribers.values()):
            try:
                subscriber.send(frame)
                delivered += 1
            except Exception as e:
                logger.bind(subscriber_id=subscriber.id, error=str(e)).warning(
                    "sse_write_failed"
                )
                self.unsubscribe(subscriber)
        return delivered

    def close_all(self) -> None:
        for subscriber in list(self._subscribers.values()):
            self.unsubscribe(subscriber)
