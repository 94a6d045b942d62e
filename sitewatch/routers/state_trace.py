"""
Trace Router - watchdog event history and live SSE feed
"""
import asyncio
from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from sitewatch.routers.status import get_watchdog


router = APIRouter(prefix="/trace", tags=["trace"])

KEEPALIVE_SECONDS = 30.0


@router.get("/events")
async def get_recent_events(request: Request, limit: int = 100):
    events = get_watchdog(request).trace.get_recent_events(limit)
    return {"events": events}


async def watchdog_event_feed(request: Request, trace, keepalive: float = KEEPALIVE_SECONDS):
    """Yield SSE frames for each new watchdog event until the client goes away"""
    queue = await trace.subscribe()
    try:
        while not await request.is_disconnected():
            try:
                event = await asyncio.wait_for(queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield event.to_sse()
    finally:
        await trace.unsubscribe(queue)


@router.get("/stream")
async def stream_events(request: Request):
    trace = get_watchdog(request).trace
    return StreamingResponse(
        watchdog_event_feed(request, trace),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no"  # Disable nginx buffering
        }
    )
