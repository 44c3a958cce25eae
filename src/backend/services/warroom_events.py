"""
War-room change notifications.

Submissions and allocations publish a small "something changed" event and
connected dashboards receive it as a server-sent event, then refetch the
summary. Delivery is in-process and best effort: a subscriber that falls
behind loses its oldest pending events.
"""

import asyncio
import json
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)

EVENT_TYPES = ("votes", "alert", "evidence", "assignment")

KEEPALIVE_FRAME = ": ping\n\n"


def _now_ms() -> int:
    return int(time.time() * 1000)


def format_sse(event: str, data: Any) -> str:
    """Frame one server-sent event with a JSON payload."""
    return f"event: {event}\ndata: {json.dumps(data, separators=(',', ':'))}\n\n"


class WarRoomEvents:
    """Fan-out of war-room updates to every open stream."""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscribers: set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event_type: str = "votes", source: Optional[str] = None) -> dict[str, Any]:
        """Queue an update for every subscriber and return the payload sent."""
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown war-room event type {event_type!r}; expected one of {EVENT_TYPES}")

        payload: dict[str, Any] = {"ts": _now_ms(), "type": event_type}
        if source:
            payload["source"] = source

        for queue in list(self._subscribers):
            if queue.full():
                queue.get_nowait()
                logger.debug("warroom_event_dropped", type=event_type)
            queue.put_nowait(payload)

        logger.debug(
            "warroom_event_published",
            type=event_type,
            source=source,
            subscribers=len(self._subscribers),
        )
        return payload

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[asyncio.Queue]:
        """Receive updates published while the context is open."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers.add(queue)
        try:
            yield queue
        finally:
            self._subscribers.discard(queue)


async def event_stream(
    events: WarRoomEvents,
    keepalive_seconds: float,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[str]:
    """
    Yield the frames of one war-room stream.

    Starts with a ``ready`` event, then one ``update`` per published change
    and a comment line whenever ``keepalive_seconds`` pass in silence. Ends
    when ``is_disconnected`` reports the client has gone.
    """
    async with events.subscribe() as queue:
        logger.info("warroom_stream_opened", subscribers=events.subscriber_count)
        try:
            yield format_sse("ready", {"ts": _now_ms()})
            while True:
                if is_disconnected is not None and await is_disconnected():
                    break
                try:
                    payload = await asyncio.wait_for(queue.get(), timeout=keepalive_seconds)
                except asyncio.TimeoutError:
                    yield KEEPALIVE_FRAME
                    continue
                yield format_sse("update", payload)
        finally:
            logger.info("warroom_stream_closed", subscribers=events.subscriber_count - 1)
