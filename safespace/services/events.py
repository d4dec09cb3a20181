"""
Request events: lets independent observers (badges, open request lists)
learn that the queue changed without being coupled to the code that changed it.

One broker per application instance. Each subscriber gets its own bounded
queue; a subscriber that falls behind loses events rather than blocking
publishers.
"""
import asyncio
import json
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, asdict
from typing import AsyncIterator

from safespace.logging_config import get_logger

logger = get_logger(__name__)

EVENT_NAME = "requests:updated"


@dataclass(frozen=True)
class RequestEvent:
    type: str  # created | accepted | closed
    request_id: str
    status: str

    @classmethod
    def for_request(cls, type: str, request_id: uuid.UUID, status: str) -> "RequestEvent":
        return cls(type=type, request_id=str(request_id), status=status)

    def to_sse(self) -> str:
        return f"event: {EVENT_NAME}\ndata: {json.dumps(asdict(self))}\n\n"


class RequestEventBroker:
    """In-process publish/subscribe channel for queue changes."""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscribers: set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event: RequestEvent) -> int:
        """Fan out to every subscriber. Returns how many received the event."""
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("request_event_dropped", event_type=event.type, request_id=event.request_id)
        logger.debug("request_event_published", event_type=event.type, delivered=delivered)
        return delivered

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[asyncio.Queue]:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers.add(queue)
        try:
            yield queue
        finally:
            self._subscribers.discard(queue)

    async def stream(self, keepalive_seconds: float) -> AsyncIterator[str]:
        """Server-sent events: one frame per event, a comment line while idle."""
        async with self.subscribe() as queue:
            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=keepalive_seconds)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield event.to_sse()
