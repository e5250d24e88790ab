"""
Destination queue store: per-destination FIFO buffers of NotificationPayload.

The processor appends with enqueue(); the dispatcher drains. Each destination
has its own lock so concurrent enqueues to different destinations never
contend, and enqueues to one destination are never lost or reordered (short of
max_depth overflow). Locks are threading locks: the dispatcher may drain
from another thread.

With max_depth set, each queue holds at most max_depth payloads; when full,
the oldest payload is dropped and counted. Without it queues are unbounded.
"""

from __future__ import annotations

import threading
from collections import deque

from backend_buybot.buybot_logging import get_logger
from backend_buybot.pipeline.models import NotificationPayload

logger = get_logger(__name__)


class _DestinationQueue:
    __slots__ = ("lock", "items", "dropped")

    def __init__(self, max_depth: int | None) -> None:
        self.lock = threading.Lock()
        self.items: deque[NotificationPayload] = deque(maxlen=max_depth)
        self.dropped = 0


class DestinationQueueStore:
    def __init__(self, max_depth: int | None = None) -> None:
        if max_depth is not None and max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        self.max_depth = max_depth
        self._queues: dict[str, _DestinationQueue] = {}
        self._registry_lock = threading.Lock()

    def _queue_for(self, destination_id: str) -> _DestinationQueue:
        queue = self._queues.get(destination_id)
        if queue is not None:
            return queue
        with self._registry_lock:
            queue = self._queues.get(destination_id)
            if queue is None:
                queue = _DestinationQueue(self.max_depth)
                self._queues[destination_id] = queue
                logger.info("queue_created", destination_id=destination_id, max_depth=self.max_depth)
            return queue

    def enqueue(self, destination_id: str, payload: NotificationPayload) -> int:
        """Append payload to the destination's queue (created on first use). Returns queue length."""
        if not destination_id:
            raise ValueError("destination_id must be non-empty")
        queue = self._queue_for(destination_id)
        with queue.lock:
            overflow = len(queue.items) == self.max_depth
            queue.items.append(payload)
            if overflow:
                queue.dropped += 1
            depth = len(queue.items)
            dropped = queue.dropped
        if overflow:
            logger.warning(
                "queue_overflow_dropped_oldest",
                destination_id=destination_id,
                max_depth=self.max_depth,
                dropped_total=dropped,
            )
        return depth

    def drain(self, destination_id: str, limit: int | None = None) -> list[NotificationPayload]:
        """Remove and return up to limit payloads (all if None) in enqueue order."""
        queue = self._queues.get(destination_id)
        if queue is None:
            return []
        with queue.lock:
            count = len(queue.items) if limit is None else min(limit, len(queue.items))
            return [queue.items.popleft() for _ in range(count)]

    def pending(self, destination_id: str) -> int:
        queue = self._queues.get(destination_id)
        if queue is None:
            return 0
        with queue.lock:
            return len(queue.items)

    def dropped(self, destination_id: str) -> int:
        """Payloads discarded from this destination because its queue was full."""
        queue = self._queues.get(destination_id)
        if queue is None:
            return 0
        with queue.lock:
            return queue.dropped

    def destinations(self) -> list[str]:
        with self._registry_lock:
            return list(self._queues)

    def total_pending(self) -> int:
        return sum(self.pending(d) for d in self.destinations())

    def total_dropped(self) -> int:
        return sum(self.dropped(d) for d in self.destinations())
