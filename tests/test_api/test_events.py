"""Tests for the SSE stream behind GET /events."""

import json

import pytest

from guardit.api.events import KEEPALIVE_FRAME, stream_frames
from guardit.monitor.events import clear_all_event

pytestmark = pytest.mark.asyncio


def _decode(frame: str) -> dict:
    return json.loads(frame.removeprefix("data: "))


class TestEventStream:
    async def test_stream_starts_with_connected_and_initial(self, runtime, task_factory):
        await task_factory("backup-db-01")
        await runtime.pipeline.ingest("backup-db-01", status="running")

        subscriber = runtime.hub.subscribe()
        stream = stream_frames(runtime.hub, subscriber, keepalive_seconds=1)

        connected = _decode(await anext(stream))
        initial = _decode(await anext(stream))
        await stream.aclose()

        assert connected["type"] == "connected"
        assert initial["type"] == "initial"
        assert initial["statuses"]["backup-db-01"]["status"] == "running"

    async def test_next_line_after_report_is_the_update(self, runtime, task_factory):
        await task_factory("backup-db-01")
        subscriber = runtime.hub.subscribe()
        stream = stream_frames(runtime.hub, subscriber, keepalive_seconds=1)
        await anext(stream)
        await anext(stream)

        await runtime.pipeline.ingest("backup-db-01", status="completed", progress=100)
        update = _decode(await anext(stream))
        await stream.aclose()

        assert update["type"] == "update"
        assert update["taskId"] == "backup-db-01"
        assert update["status"]["status"] == "completed"
        assert update["status"]["progress"] == 100

    async def test_keepalive_when_idle(self, runtime):
        subscriber = runtime.hub.subscribe()
        stream = stream_frames(runtime.hub, subscriber, keepalive_seconds=0.01)
        await anext(stream)
        await anext(stream)

        assert await anext(stream) == KEEPALIVE_FRAME
        await stream.aclose()

    async def test_closing_stream_unsubscribes(self, runtime):
        subscriber = runtime.hub.subscribe()
        stream = stream_frames(runtime.hub, subscriber)
        await anext(stream)
        assert runtime.hub.subscriber_count == 1

        await stream.aclose()

        assert runtime.hub.subscriber_count == 0
        assert subscriber.closed
        assert runtime.hub.publish(clear_all_event()) == 0

    async def test_stream_ends_on_shutdown(self, runtime):
        subscriber = runtime.hub.subscribe()
        stream = stream_frames(runtime.hub, subscriber)
        await anext(stream)
        await anext(stream)

        runtime.hub.close_all()

        with pytest.raises(StopAsyncIteration):
            await anext(stream)

    async def test_subscribes_lazily_when_no_subscriber_given(self, runtime):
        stream = stream_frames(runtime.hub, keepalive_seconds=1)
        assert runtime.hub.subscriber_count == 0

        assert _decode(await anext(stream))["type"] == "connected"
        assert runtime.hub.subscriber_count == 1

        await stream.aclose()
        assert runtime.hub.subscriber_count == 0
