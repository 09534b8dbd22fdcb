"""
Unit tests for the RPC drain worker.

Tests the bounded drain pass, the continuous loop and error isolation.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from shared.exceptions import QueueConnectionError, QueueError
from shared.mutations.models import QueuedCall
from shared.odoo.transport import JsonRpcTransport
from shared.queue.memory_queue import InMemoryMutationQueue
from shared.queue.redis_client import RedisClient
from shared.queue.redis_queue import RedisMutationQueue
from workers.rpc_drain.config import WorkerSettings
from workers.rpc_drain.executor import RpcPayloadExecutor
from workers.rpc_drain.models import DrainResult, DrainSummary
from workers.rpc_drain.worker import RpcDrainWorker


def make_item(n: int) -> QueuedCall:
    """Create a queued call whose request id is ``n``."""
    return QueuedCall(payload={"jsonrpc": "2.0", "id": n}, action_id=f"a{n}")


@pytest.fixture
def settings():
    """Create fast worker settings."""
    return WorkerSettings(
        odoo_url="http://odoo.test",
        dequeue_timeout=0.01,
        drain_dequeue_timeout=0.01,
        idle_sleep=0.01,
        error_backoff=0.01,
    )


@pytest.fixture
def queue():
    """Create an in-memory queue."""
    return InMemoryMutationQueue()


@pytest.fixture
def mock_executor():
    """Create mock executor that succeeds for every call."""
    executor = MagicMock(spec=RpcPayloadExecutor)

    async def execute(item):
        return DrainResult(action_id=item.action_id, success=True)

    executor.execute = AsyncMock(side_effect=execute)
    executor.close = AsyncMock()
    return executor


@pytest.fixture
def worker(queue, mock_executor, settings):
    """Create worker with mocked executor."""
    return RpcDrainWorker(queue=queue, executor=mock_executor, settings=settings)


class TestDrainOnce:
    """Tests for the bounded drain pass."""

    @pytest.mark.asyncio
    async def test_mixed_outcomes_against_endpoint(self, queue, settings):
        """Test success, remote error and HTTP failure in one pass."""

        def handler(request):
            request_id = json.loads(request.content)["id"]
            if request_id == 1:
                return httpx.Response(200, json={"id": 1, "result": True})
            if request_id == 2:
                return httpx.Response(200, json={"id": 2, "error": {"message": "access denied"}})
            return httpx.Response(500, text="<html>oops</html>")

        transport = JsonRpcTransport("http://odoo.test", transport=httpx.MockTransport(handler))
        worker = RpcDrainWorker(queue, RpcPayloadExecutor(transport), settings)
        await queue.enqueue_batch([make_item(1), make_item(2), make_item(3)])

        results = await worker.drain_once()
        await worker.close()

        assert [result.action_id for result in results] == ["a1", "a2", "a3"]
        assert [result.success for result in results] == [True, False, False]
        assert results[1].error == "access denied"
        assert results[2].error.startswith("HTTP 500")
        assert await queue.length() == 0

        summary = DrainSummary.from_results(results)
        assert (summary.total, summary.successful, summary.failed) == (3, 1, 2)

    @pytest.mark.asyncio
    async def test_empty_queue(self, worker, mock_executor):
        """Test draining an empty queue."""
        assert await worker.drain_once() == []
        mock_executor.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_items_added_during_drain_wait(self, worker, queue, mock_executor):
        """Test the pass is bounded by the length read at the start."""
        await queue.enqueue_batch([make_item(1), make_item(2)])
        queue.dequeue = AsyncMock(wraps=queue.dequeue)

        async def execute(item):
            await queue.enqueue(make_item(100 + int(item.action_id[1:])))
            return DrainResult(action_id=item.action_id, success=True)

        mock_executor.execute.side_effect = execute

        results = await worker.drain_once()

        assert [result.action_id for result in results] == ["a1", "a2"]
        assert queue.dequeue.await_count == 2
        assert await queue.length() == 2

    @pytest.mark.asyncio
    async def test_item_taken_by_another_consumer(self, worker, queue):
        """Test an empty dequeue mid-pass is skipped, not reported."""
        await queue.enqueue_batch([make_item(1), make_item(2)])
        await queue.dequeue(0)

        queue.length = AsyncMock(return_value=2)
        results = await worker.drain_once()

        assert [result.action_id for result in results] == ["a2"]

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_the_pass(self, worker, queue, mock_executor):
        """Test an executor crash is isolated to its own item."""
        await queue.enqueue_batch([make_item(1), make_item(2)])

        async def execute(item):
            if item.action_id == "a1":
                raise RuntimeError("kaboom")
            return DrainResult(action_id=item.action_id, success=True)

        mock_executor.execute.side_effect = execute

        results = await worker.drain_once()

        assert results[0].success is False
        assert results[0].error == "kaboom"
        assert results[0].error_code == "EXECUTION_ERROR"
        assert results[1].success is True

    @pytest.mark.asyncio
    async def test_undecodable_entry_mid_pass(self, mock_executor, settings):
        """Test a bad entry between two good ones is reported and the pass continues."""
        redis = AsyncMock(spec=RedisClient)
        redis.llen.return_value = 3
        redis.brpop.side_effect = [make_item(1).to_json(), "BAD", make_item(3).to_json()]
        worker = RpcDrainWorker(RedisMutationQueue(redis, "q"), mock_executor, settings)

        results = await worker.drain_once()

        assert [result.action_id for result in results] == ["a1", None, "a3"]
        assert [result.success for result in results] == [True, False, True]
        assert results[1].error_code == "QUEUE_ERROR"
        assert results[1].error.startswith("Undecodable queue entry: BAD")
        assert mock_executor.execute.await_count == 2
        assert redis.brpop.await_count == 3

    @pytest.mark.asyncio
    async def test_lost_connection_keeps_earlier_results(self, mock_executor, settings):
        """Test a dropped Redis connection ends the pass with what was executed."""
        queue = MagicMock()
        queue.name = "mock"
        queue.length = AsyncMock(return_value=3)
        queue.dequeue = AsyncMock(
            side_effect=[make_item(1), QueueConnectionError("Lost connection to Redis")]
        )
        worker = RpcDrainWorker(queue, mock_executor, settings)

        results = await worker.drain_once()

        assert [result.action_id for result in results] == ["a1"]
        assert queue.dequeue.await_count == 2

    @pytest.mark.asyncio
    async def test_drain_uses_short_dequeue_timeout(self, queue, mock_executor):
        """Test an emptied queue does not hold each attempt for the loop timeout."""
        settings = WorkerSettings(
            odoo_url="http://odoo.test",
            dequeue_timeout=30.0,
            drain_dequeue_timeout=0.01,
        )
        worker = RpcDrainWorker(queue, mock_executor, settings)
        queue.length = AsyncMock(return_value=3)
        queue.dequeue = AsyncMock(wraps=queue.dequeue)

        results = await asyncio.wait_for(worker.drain_once(), timeout=2)

        assert results == []
        assert [call.args for call in queue.dequeue.await_args_list] == [(0.01,)] * 3


class TestProcessOne:
    """Tests for process_one."""

    @pytest.mark.asyncio
    async def test_returns_none_when_empty(self, worker):
        """Test an empty queue yields None."""
        assert await worker.process_one() is None

    @pytest.mark.asyncio
    async def test_queue_error_propagates(self, mock_executor, settings):
        """Test a broken queue surfaces to the caller."""
        queue = MagicMock()
        queue.dequeue = AsyncMock(side_effect=QueueError("Undecodable queue entry"))
        worker = RpcDrainWorker(queue, mock_executor, settings)

        with pytest.raises(QueueError):
            await worker.process_one()


class TestRun:
    """Tests for the continuous loop."""

    @pytest.mark.asyncio
    async def test_processes_until_stopped(self, worker, queue):
        """Test the loop reports each result and stops cooperatively."""
        await queue.enqueue_batch([make_item(1), make_item(2)])
        seen = []

        async def on_result(result):
            seen.append(result.action_id)
            if len(seen) == 2:
                worker.stop()

        await asyncio.wait_for(worker.run(on_result), timeout=2)

        assert seen == ["a1", "a2"]
        assert not worker.is_running

    @pytest.mark.asyncio
    async def test_stop_before_run(self, worker, mock_executor):
        """Test a stopped worker does not dequeue."""
        worker.stop()

        await asyncio.wait_for(worker.run(), timeout=1)

        mock_executor.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_idle_loop_stops(self, worker):
        """Test an idle worker wakes up for a stop request."""
        task = asyncio.create_task(worker.run())
        await asyncio.sleep(0.05)

        worker.stop()
        await asyncio.wait_for(task, timeout=1)

        assert task.done()

    @pytest.mark.asyncio
    async def test_continues_after_queue_error(self, mock_executor, settings):
        """Test a queue failure backs off and keeps going."""
        queue = MagicMock()
        queue.name = "mock"
        queue.dequeue = AsyncMock(side_effect=[QueueError("boom"), make_item(1), None, None])
        worker = RpcDrainWorker(queue, mock_executor, settings)
        seen = []

        async def on_result(result):
            seen.append(result.action_id)
            worker.stop()

        await asyncio.wait_for(worker.run(on_result), timeout=2)

        assert seen == ["a1"]


class TestClose:
    """Tests for close."""

    @pytest.mark.asyncio
    async def test_close_closes_executor(self, worker, mock_executor):
        """Test close releases the executor."""
        await worker.close()

        mock_executor.close.assert_awaited_once()
