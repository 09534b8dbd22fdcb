"""
RPC drain worker.

Background worker that pops queued Odoo write calls from Redis and executes
them, reporting one result per call. Failed calls are reported and
discarded; requeueing is left to the operator.
"""

import asyncio
import contextlib
import logging
import signal
import sys
from collections.abc import Awaitable, Callable

from pydantic import ValidationError as PydanticValidationError

from shared.exceptions import QueueConnectionError, QueueError
from shared.mutations.models import QueuedCall
from shared.observability.metrics import queue_depth
from shared.odoo.transport import JsonRpcTransport
from shared.queue import MutationQueue, RedisClient, RedisMutationQueue, get_queue_settings
from workers.rpc_drain.config import WorkerSettings, get_worker_settings
from workers.rpc_drain.executor import RpcPayloadExecutor
from workers.rpc_drain.models import DrainResult

logger = logging.getLogger(__name__)

ResultHandler = Callable[[DrainResult], Awaitable[None]]


class RpcDrainWorker:
    """
    Worker draining the mutation queue.

    Supports a bounded drain-to-empty pass and a continuous loop that
    stops cooperatively between iterations.
    """

    def __init__(
        self,
        queue: MutationQueue,
        executor: RpcPayloadExecutor,
        settings: WorkerSettings | None = None,
    ):
        """
        Initialize drain worker.

        Args:
            queue: Queue to drain
            executor: Executor for popped calls
            settings: Worker configuration
        """
        self.queue = queue
        self.executor = executor
        self.settings = settings or get_worker_settings()
        self._stop_event = asyncio.Event()

    async def process_one(self, timeout: float | None = None) -> DrainResult | None:
        """
        Dequeue and execute one call.

        Args:
            timeout: Dequeue timeout (defaults to settings)

        Returns:
            Result of the call, or None when the queue stayed empty

        Raises:
            QueueError: The queue failed or returned an undecodable entry
        """
        wait = self.settings.dequeue_timeout if timeout is None else timeout
        item = await self.queue.dequeue(wait)
        if item is None:
            return None
        return await self._execute(item)

    async def _execute(self, item: QueuedCall) -> DrainResult:
        try:
            return await self.executor.execute(item)
        except Exception as e:
            logger.exception(f"Unexpected error executing call {item.action_id}: {e}")
            return DrainResult(
                action_id=item.action_id,
                success=False,
                error=str(e) or type(e).__name__,
                error_code="EXECUTION_ERROR",
            )

    async def drain_once(self) -> list[DrainResult]:
        """
        Drain the calls present right now.

        Reads the queue length once and makes exactly that many dequeue
        attempts, so items enqueued meanwhile are left for the next pass.
        Each attempt waits at most ``drain_dequeue_timeout``. An undecodable
        entry is reported as a failed result without an action id and the
        pass continues. A lost Redis connection ends the pass early.

        Returns:
            Results in dequeue order
        """
        pending = await self.queue.length()
        queue_depth.labels(service=self.settings.worker_name, queue=self.queue.name).set(pending)
        logger.info(f"Draining {pending} queued call(s) from {self.queue.name}")

        results: list[DrainResult] = []
        for attempt in range(pending):
            try:
                result = await self.process_one(timeout=self.settings.drain_dequeue_timeout)
            except QueueConnectionError as e:
                logger.error(
                    f"Queue unavailable after {attempt} of {pending} attempt(s), "
                    f"ending drain: {e.message}"
                )
                break
            except QueueError as e:
                logger.error(f"Dropped queue entry: {e.message}")
                result = DrainResult(
                    action_id=None,
                    success=False,
                    error=e.message,
                    error_code=e.error_code,
                )
            if result is None:
                # another consumer got there first
                continue
            self._log_result(result)
            results.append(result)

        successful = sum(1 for result in results if result.success)
        logger.info(
            f"Drain finished: {len(results)} processed, {successful} succeeded, "
            f"{len(results) - successful} failed"
        )
        return results

    async def run(self, on_result: ResultHandler | None = None) -> None:
        """
        Process calls until :meth:`stop` is called.

        Args:
            on_result: Optional coroutine called with every result
        """
        logger.info(f"Starting {self.settings.worker_name} on queue {self.queue.name}")

        while not self._stop_event.is_set():
            try:
                result = await self.process_one()
                if result is None:
                    await self._pause(self.settings.idle_sleep)
                    continue

                self._log_result(result)
                if on_result is not None:
                    await on_result(result)

            except Exception as e:
                logger.exception(f"Error in worker loop: {e}")
                await self._pause(self.settings.error_backoff)

        logger.info(f"{self.settings.worker_name} stopped")

    def stop(self) -> None:
        """Request a cooperative stop; the in-flight call is allowed to finish."""
        logger.info(f"Stopping {self.settings.worker_name}")
        self._stop_event.set()

    @property
    def is_running(self) -> bool:
        """True until a stop has been requested."""
        return not self._stop_event.is_set()

    async def close(self) -> None:
        """Release the executor's HTTP resources."""
        await self.executor.close()

    async def _pause(self, seconds: float) -> None:
        # Wakes early when a stop is requested
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)

    @staticmethod
    def _log_result(result: DrainResult) -> None:
        if result.success:
            logger.info(f"Call {result.action_id} applied")
        else:
            logger.error(f"Call {result.action_id} failed: {result.error}")


async def run_worker(settings: WorkerSettings | None = None) -> int:
    """
    Run the continuous loop until SIGINT/SIGTERM.

    Returns:
        Process exit code: 0 on a clean stop, 1 on error
    """
    try:
        settings = settings or get_worker_settings()
    except PydanticValidationError as e:
        logger.error(f"ODOO_URL environment variable is required: {e}")
        return 1

    queue_settings = get_queue_settings()
    redis_client = RedisClient(
        url=queue_settings.url,
        max_connections=queue_settings.max_connections,
        socket_timeout=queue_settings.socket_timeout,
        socket_connect_timeout=queue_settings.socket_connect_timeout,
    )
    transport = JsonRpcTransport(
        base_url=settings.odoo_url,
        connection_timeout=settings.connection_timeout,
        request_timeout=settings.request_timeout,
    )
    worker = RpcDrainWorker(
        queue=RedisMutationQueue(redis_client, queue_settings.queue_name),
        executor=RpcPayloadExecutor(transport),
        settings=settings,
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, worker.stop)

    try:
        await redis_client.connect()
        logger.info(f"Posting queued calls to {transport.endpoint}")
        await worker.run()
        return 0
    except Exception as e:
        logger.exception(f"Worker failed: {e}")
        return 1
    finally:
        await worker.close()
        await redis_client.disconnect()


def main() -> None:
    """Main entry point for the worker."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    sys.exit(asyncio.run(run_worker()))


if __name__ == "__main__":
    main()
