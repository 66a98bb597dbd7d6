"""In-process pub/sub fan-out to connected subscribers."""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

REAL_TIME_DATA = "realTimeData"
ALERT = "alert"
TOPICS = (REAL_TIME_DATA, ALERT)


@dataclass(frozen=True)
class BusEvent:
    topic: str
    payload: Any

    def to_message(self) -> dict:
        return {"type": self.topic, "data": self.payload}


@dataclass(eq=False)
class Subscription:
    """Handle for one subscriber. Events arrive on a bounded queue."""

    id: int
    queue: asyncio.Queue[BusEvent]
    dropped: int = field(default=0)

    async def get(self) -> BusEvent:
        return await self.queue.get()

    def pending(self) -> list[BusEvent]:
        """Drain whatever is queued right now without waiting."""
        events = []
        while not self.queue.empty():
            events.append(self.queue.get_nowait())
        return events


class BroadcastBus:
    """Delivers every published event to every subscriber registered at publish time.

    Publishing never waits on subscribers. Each subscriber has its own bounded
    queue; when it is full the oldest queued event is dropped to make room.
    """

    def __init__(self, queue_size: int = 100) -> None:
        self.queue_size = queue_size
        self._subscribers: dict[int, Subscription] = {}
        self._ids = itertools.count(1)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        sub = Subscription(id=next(self._ids), queue=asyncio.Queue(maxsize=self.queue_size))
        self._subscribers[sub.id] = sub
        logger.info("Subscriber %d connected (%d total)", sub.id, len(self._subscribers))
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        if self._subscribers.pop(sub.id, None) is not None:
            logger.info("Subscriber %d disconnected (%d total)", sub.id, len(self._subscribers))

    def publish(self, topic: str, payload: Any) -> int:
        """Queue the event for all current subscribers. Returns how many received it."""
        if topic not in TOPICS:
            raise ValueError(f"Unknown topic: {topic}")
        event = BusEvent(topic, payload)
        # Copy so subscribe/unsubscribe during fan-out cannot disturb iteration
        subscribers = list(self._subscribers.values())
        for sub in subscribers:
            self._offer(sub, event)
        return len(subscribers)

    def _offer(self, sub: Subscription, event: BusEvent) -> None:
        try:
            sub.queue.put_nowait(event)
        except asyncio.QueueFull:
            sub.queue.get_nowait()
            sub.dropped += 1
            sub.queue.put_nowait(event)
            logger.warning("Subscriber %d is slow; dropped oldest event (%d dropped)", sub.id, sub.dropped)
