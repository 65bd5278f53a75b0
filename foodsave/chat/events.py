"""Live chat updates (read and delivery receipts) for connected clients.

Publishing is fire-and-forget: it may be called from worker threads, never
blocks, and silently drops events for subscribers that are full or gone.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Protocol

logger = logging.getLogger(__name__)

SUBSCRIBER_QUEUE_SIZE = 100


class EventPublisher(Protocol):
    def publish(self, name: str, payload: dict[str, Any]) -> None: ...


class NullEventPublisher:
    def publish(self, name: str, payload: dict[str, Any]) -> None:
        pass


@dataclass(eq=False)
class Subscription:
    loop: asyncio.AbstractEventLoop
    queue: asyncio.Queue = field(default_factory=lambda: asyncio.Queue(maxsize=SUBSCRIBER_QUEUE_SIZE))

    def _offer(self, event: dict[str, Any]) -> None:
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.debug("Subscriber queue full, dropping %s", event.get("event"))


class InMemoryEventPublisher:
    """Broadcasts every event to every subscriber of this process."""

    def __init__(self) -> None:
        self._subscribers: set[Subscription] = set()
        self._lock = threading.Lock()

    def subscribe(self) -> Subscription:
        """Register a subscriber bound to the running event loop."""
        sub = Subscription(loop=asyncio.get_running_loop())
        with self._lock:
            self._subscribers.add(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            self._subscribers.discard(sub)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, name: str, payload: dict[str, Any]) -> None:
        event = {"event": name, **payload}
        with self._lock:
            subscribers = list(self._subscribers)
        for sub in subscribers:
            try:
                sub.loop.call_soon_threadsafe(sub._offer, event)
            except RuntimeError:
                # Event loop already closed
                self.unsubscribe(sub)
