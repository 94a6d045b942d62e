import asyncio
import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from conftest import make_config, make_monitor, make_runner
from sitewatch.monitor_manager import Watchdog
from sitewatch.routers.state_trace import watchdog_event_feed
from sitewatch.trace_manager import TraceManager


def fake_request(disconnects):
    request = MagicMock()
    request.is_disconnected = AsyncMock(side_effect=disconnects)
    return request


async def wait_for_listener(trace, count=1):
    for _ in range(100):
        if len(trace.listeners) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError("listener never subscribed")


@pytest.mark.asyncio
async def test_subscriber_receives_watchdog_events():
    trace = TraceManager()
    watchdog = Watchdog(make_config(), monitor=make_monitor([False]), runner=make_runner(),
                        trace=trace, sleep=AsyncMock(), clock=lambda: 1700000000.0)
    queue = await trace.subscribe()

    await watchdog.run_cycle()

    received = [queue.get_nowait() for _ in range(queue.qsize())]
    assert [e.reason for e in received] == ["remediation executed", "site down"]
    assert received[1].old_state == "NOMINAL"
    assert received[1].new_state == "DEGRADED"
    assert received[1].timestamp == 1700000000.0


@pytest.mark.asyncio
async def test_full_queue_drops_the_listener():
    trace = TraceManager(queue_size=2)
    slow = await trace.subscribe()
    fast = await trace.subscribe()

    for i in range(3):
        await trace.record("http://example.test", "NOMINAL", "NOMINAL", f"event {i}", 0)
        if not fast.empty():
            fast.get_nowait()

    assert slow not in trace.listeners
    assert fast in trace.listeners
    assert trace.dropped_listeners == 1
    # History is kept regardless of listeners
    assert len(trace.get_recent_events()) == 3


@pytest.mark.asyncio
async def test_unsubscribe_is_idempotent():
    trace = TraceManager()
    queue = await trace.subscribe()

    await trace.unsubscribe(queue)
    await trace.unsubscribe(queue)

    assert trace.listeners == []
    await trace.record("http://example.test", "NOMINAL", "DEGRADED", "site down", 1)
    assert queue.empty()


@pytest.mark.asyncio
async def test_recent_events_limit():
    trace = TraceManager(max_events=3)
    for i in range(5):
        await trace.record("http://example.test", "NOMINAL", "NOMINAL", f"event {i}", 0, timestamp=float(i))

    assert [e["reason"] for e in trace.get_recent_events()] == ["event 2", "event 3", "event 4"]
    assert [e["reason"] for e in trace.get_recent_events(limit=1)] == ["event 4"]
    assert trace.get_recent_events(limit=0) == []


@pytest.mark.asyncio
async def test_event_feed_yields_sse_frames_and_unsubscribes():
    trace = TraceManager()
    feed = watchdog_event_feed(fake_request([False, True]), trace)

    pending = asyncio.ensure_future(feed.__anext__())
    await wait_for_listener(trace)
    await trace.record("http://example.test", "NOMINAL", "DEGRADED", "site down", 1, delay=60.0)
    chunk = await asyncio.wait_for(pending, timeout=1)

    assert chunk.startswith("data: ")
    assert chunk.endswith("\n\n")
    payload = json.loads(chunk[len("data: "):])
    assert payload["reason"] == "site down"
    assert payload["delay"] == 60.0

    with pytest.raises(StopAsyncIteration):
        await feed.__anext__()
    assert trace.listeners == []


@pytest.mark.asyncio
async def test_event_feed_sends_keepalive_when_idle():
    trace = TraceManager()
    feed = watchdog_event_feed(fake_request([False, True]), trace, keepalive=0.01)

    chunk = await asyncio.wait_for(feed.__anext__(), timeout=1)

    assert chunk == ": keepalive\n\n"
    await feed.aclose()
    assert trace.listeners == []
