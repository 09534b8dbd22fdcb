"""
Mutation queue interface.

Implementations must deliver items head-to-tail and hand each popped item to
exactly one consumer.
"""

from typing import Protocol, runtime_checkable

from shared.mutations.models import QueuedCall


@runtime_checkable
class MutationQueue(Protocol):
    """FIFO queue of wire-exact write calls awaiting execution."""

    name: str

    async def enqueue(self, item: QueuedCall) -> None:
        """Append one item to the tail."""
        ...

    async def enqueue_batch(self, items: list[QueuedCall]) -> None:
        """Append several items to the tail, in order."""
        ...

    async def dequeue(self, timeout: float) -> QueuedCall | None:
        """Pop the head item, waiting up to ``timeout`` seconds; None when empty."""
        ...

    async def length(self) -> int:
        """Number of items waiting."""
        ...
