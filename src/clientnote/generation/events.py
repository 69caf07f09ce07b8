"""
Progress Bus — lightweight async pub/sub for generation events.

The orchestrator publishes every GenerationEvent of a job on
activity.{activity_id}.events; SSE endpoints and other listeners subscribe
per activity.

Design:
- Each subscriber gets its own asyncio.Queue (no cross-talk)
- Non-blocking: publish() never blocks the publisher
- A job's terminal event is followed by an end-of-stream marker, so
  listen() ends when the job does

Usage:
    bus = ProgressBus()
    queue = bus.subscribe(activity_topic("abc"))
    async for event in bus.listen(queue):
        print(event.to_dict())
    bus.unsubscribe(activity_topic("abc"), queue)
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, AsyncGenerator

logger = logging.getLogger(__name__)

# Sentinel to signal end of stream
_STREAM_END = object()


def activity_topic(activity_id: str) -> str:
    return f"activity.{activity_id}.events"


class ProgressBus:
    def __init__(self) -> None:
        # topic → list of subscriber queues
        self._subscribers: dict[str, list[asyncio.Queue]] = defaultdict(list)

    def publish(self, topic: str, event: Any) -> int:
        """Deliver to every subscriber. Returns how many received it."""
        delivered = 0
        for queue in self._subscribers.get(topic, []):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("Progress bus: subscriber queue full for %s, dropping event", topic)
        return delivered

    def publish_end(self, topic: str) -> None:
        for queue in self._subscribers.get(topic, []):
            try:
                queue.put_nowait(_STREAM_END)
            except asyncio.QueueFull:
                pass

    def subscribe(self, topic: str, maxsize: int = 1000) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._subscribers[topic].append(queue)
        logger.debug("Subscribed to %s (total: %d)", topic, len(self._subscribers[topic]))
        return queue

    def unsubscribe(self, topic: str, queue: asyncio.Queue) -> None:
        """Safe to call even if the queue was already removed."""
        queues = self._subscribers.get(topic, [])
        try:
            queues.remove(queue)
        except ValueError:
            return
        if not queues:
            del self._subscribers[topic]

    async def listen(self, queue: asyncio.Queue) -> AsyncGenerator[Any, None]:
        while True:
            item = await queue.get()
            if item is _STREAM_END:
                break
            yield item

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, []))
