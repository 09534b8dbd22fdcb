"""
Unit tests for the in-memory mutation queue.
"""

import asyncio

import pytest

from shared.mutations.models import QueuedCall
from shared.queue.base import MutationQueue
from shared.queue.memory_queue import InMemoryMutationQueue


def make_item(n: int) -> QueuedCall:
    """Create a queued call numbered ``n``."""
    return QueuedCall(payload={"jsonrpc": "2.0", "id": n}, action_id=f"a{n}", timestamp=0)


@pytest.fixture
def queue():
    """Create an empty queue."""
    return InMemoryMutationQueue()


class TestMemoryQueue:
    """Tests for basic queue behavior."""

    def test_satisfies_protocol(self, queue):
        """Test the queue implements the MutationQueue protocol."""
        assert isinstance(queue, MutationQueue)
        assert queue.name == "memory"

    @pytest.mark.asyncio
    async def test_fifo_order(self, queue):
        """Test items come out in the order they went in."""
        await queue.enqueue(make_item(1))
        await queue.enqueue_batch([make_item(2), make_item(3)])

        popped = [await queue.dequeue(0) for _ in range(3)]

        assert [item.action_id for item in popped] == ["a1", "a2", "a3"]

    @pytest.mark.asyncio
    async def test_enqueue_stamps_time(self, queue):
        """Test the timestamp is set at enqueue time."""
        await queue.enqueue(make_item(1))

        item = await queue.dequeue(0)

        assert item.timestamp > 0

    @pytest.mark.asyncio
    async def test_length(self, queue):
        """Test length tracks pushes and pops."""
        await queue.enqueue_batch([make_item(1), make_item(2)])
        assert await queue.length() == 2

        await queue.dequeue(0)
        assert await queue.length() == 1

    @pytest.mark.asyncio
    async def test_empty_batch(self, queue):
        """Test an empty batch is a no-op."""
        await queue.enqueue_batch([])

        assert await queue.length() == 0

    @pytest.mark.asyncio
    async def test_dequeue_timeout_returns_none(self, queue):
        """Test an empty queue yields None after the timeout."""
        assert await queue.dequeue(0.01) is None
        assert await queue.dequeue(0) is None

    @pytest.mark.asyncio
    async def test_dequeue_wakes_on_enqueue(self, queue):
        """Test a blocked consumer receives an item pushed later."""
        consumer = asyncio.create_task(queue.dequeue(1.0))
        await asyncio.sleep(0.01)

        await queue.enqueue(make_item(1))
        item = await asyncio.wait_for(consumer, 1.0)

        assert item.action_id == "a1"


class TestConcurrentConsumers:
    """Tests for several consumers on one queue."""

    @pytest.mark.asyncio
    async def test_every_item_delivered_once(self, queue):
        """Test concurrent consumers never share or lose an item."""
        await queue.enqueue_batch([make_item(n) for n in range(50)])

        async def consume() -> list[str]:
            seen = []
            while True:
                item = await queue.dequeue(0.01)
                if item is None:
                    return seen
                seen.append(item.action_id)
                await asyncio.sleep(0)

        batches = await asyncio.gather(*(consume() for _ in range(4)))
        delivered = [action_id for batch in batches for action_id in batch]

        assert sorted(delivered) == sorted(f"a{n}" for n in range(50))
        assert len(delivered) == len(set(delivered))
