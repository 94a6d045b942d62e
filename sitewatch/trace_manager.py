"""
Trace Manager - bounded in-memory history of watchdog events.
Live listeners (the SSE endpoint) each get their own queue. Nothing survives a restart.
"""
import asyncio
import json
import time
import logging
from collections import deque
from typing import List, Optional
from dataclasses import dataclass, asdict

logger = logging.getLogger("SiteWatch.TraceManager")


@dataclass
class TraceEvent:
    """A state change, backoff step or remediation run"""
    timestamp: float
    target: str
    old_state: str
    new_state: str
    reason: str
    consecutive_failures: int
    delay: Optional[float] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["timestamp_iso"] = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(self.timestamp))
        return data

    def to_sse(self) -> str:
        return f"data: {json.dumps(self.to_dict())}\n\n"


class TraceManager:
    def __init__(self, max_events: int = 500, queue_size: int = 100):
        self.events: deque = deque(maxlen=max_events)
        self.queue_size = queue_size
        self.listeners: List[asyncio.Queue] = []
        self.dropped_listeners = 0

    async def record(
        self,
        target: str,
        old_state: str,
        new_state: str,
        reason: str,
        consecutive_failures: int,
        delay: Optional[float] = None,
        timestamp: Optional[float] = None,
    ) -> TraceEvent:
        event = TraceEvent(
            timestamp=timestamp if timestamp is not None else time.time(),
            target=target,
            old_state=old_state,
            new_state=new_state,
            reason=reason,
            consecutive_failures=consecutive_failures,
            delay=delay,
        )
        await self.emit(event)
        return event

    async def emit(self, event: TraceEvent):
        """Store the event and fan it out. A listener whose queue is full is disconnected."""
        self.events.append(event)
        logger.debug(f"Trace event: {event.target} {event.old_state} -> {event.new_state} ({event.reason})")

        for queue in list(self.listeners):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                self.listeners.remove(queue)
                self.dropped_listeners += 1
                logger.warning(f"Dropping slow trace listener. Remaining: {len(self.listeners)}")

    def get_recent_events(self, limit: int = 100) -> List[dict]:
        if limit <= 0:
            return []
        return [e.to_dict() for e in list(self.events)[-limit:]]

    async def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self.listeners.append(queue)
        logger.info(f"New trace listener. Total: {len(self.listeners)}")
        return queue

    async def unsubscribe(self, queue: asyncio.Queue):
        if queue in self.listeners:
            self.listeners.remove(queue)
        logger.info(f"Trace listener removed. Total: {len(self.listeners)}")
