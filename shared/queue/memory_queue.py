"""
In-process mutation queue.

Same FIFO and single-consumer semantics as the Redis queue, for tests and
single-process deployments.
"""

import asyncio
from collections import deque

from shared.mutations.models import QueuedCall, epoch_ms


class InMemoryMutationQueue:
    """FIFO queue backed by a deque and guarded by a condition variable."""

    def __init__(self, name: str = "memory"):
        self.name = name
        self._items: deque[QueuedCall] = deque()
        self._condition = asyncio.Condition()

    async def enqueue(self, item: QueuedCall) -> None:
        await self.enqueue_batch([item])

    async def enqueue_batch(self, items: list[QueuedCall]) -> None:
        if not items:
            return
        async with self._condition:
            for item in items:
                self._items.append(item.model_copy(update={"timestamp": epoch_ms()}))
            self._condition.notify(len(items))

    async def dequeue(self, timeout: float) -> QueuedCall | None:
        async with self._condition:
            if not self._items and timeout > 0:
                try:
                    await asyncio.wait_for(
                        self._condition.wait_for(lambda: bool(self._items)),
                        timeout,
                    )
                except TimeoutError:
                    return None
            if not self._items:
                return None
            return self._items.popleft()

    async def length(self) -> int:
        return len(self._items)
