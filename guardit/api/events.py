"""Server-sent event stream for live dashboards."""

from collections.abc import AsyncGenerator

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from guardit.dependencies import Monitor
from guardit.monitor.broadcast import BroadcastHub, Subscriber, SubscriberClosed

router = APIRouter()

KEEPALIVE_FRAME = ": keepalive\n\n"


async def stream_frames(
    hub: BroadcastHub,
    subscriber: Subscriber | None = None,
    keepalive_seconds: float | None = None,
) -> AsyncGenerator[str, None]:
    """
    Yield frames queued for a subscriber until it is closed.

    Subscribes on first iteration unless a subscriber is passed in. The
    subscriber is unregistered when the generator finishes for any reason,
    including cancellation on client disconnect.
    """
    subscriber = subscriber or hub.subscribe()
    try:
        while True:
            try:
                frame = await subscriber.receive(timeout=keepalive_seconds)
            except SubscriberClosed:
                break
            yield frame if frame is not None else KEEPALIVE_FRAME
    finally:
        hub.unsubscribe(subscriber)


@router.get("/events")
async def events(monitor: Monitor) -> StreamingResponse:
    """Subscribe to ``connected``, ``initial``, ``update``, ``alert_notification`` and ``clear_all``."""
    return StreamingResponse(
        stream_frames(monitor.hub, keepalive_seconds=monitor.settings.sse_keepalive_seconds),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
