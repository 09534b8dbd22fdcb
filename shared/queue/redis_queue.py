"""
Redis-backed mutation queue.

Items are pushed with LPUSH and popped with BRPOP, so the list behaves as a
FIFO queue whose pop is atomic across any number of consumers.
"""

from pydantic import ValidationError as PydanticValidationError

from shared.config.logging import get_logger
from shared.exceptions import QueueError
from shared.mutations.models import QueuedCall, epoch_ms
from shared.queue.redis_client import RedisClient

logger = get_logger(__name__)

DEFAULT_QUEUE_NAME = "odoo:rpc:calls"


class RedisMutationQueue:
    """Durable FIFO queue of write calls stored in a Redis list."""

    def __init__(self, redis_client: RedisClient, name: str = DEFAULT_QUEUE_NAME):
        """
        Initialize queue.

        Args:
            redis_client: Connected Redis client
            name: Redis list key
        """
        self.redis = redis_client
        self.name = name

    @staticmethod
    def _stamp(item: QueuedCall) -> str:
        return item.model_copy(update={"timestamp": epoch_ms()}).to_json()

    async def enqueue(self, item: QueuedCall) -> None:
        """
        Append one call to the tail of the queue.

        Raises:
            QueueError: Redis rejected the push
        """
        await self.redis.lpush(self.name, self._stamp(item))
        logger.debug("queue_item_enqueued", queue=self.name, action_id=item.action_id)

    async def enqueue_batch(self, items: list[QueuedCall]) -> None:
        """
        Append calls in order within one transaction.

        Either every item lands or none does.

        Raises:
            QueueError: The transaction failed
        """
        if not items:
            return
        await self.redis.lpush_many(self.name, [self._stamp(item) for item in items])
        logger.debug("queue_batch_enqueued", queue=self.name, count=len(items))

    async def dequeue(self, timeout: float) -> QueuedCall | None:
        """
        Pop the head call, blocking up to ``timeout`` seconds.

        Returns:
            The popped call, or None when the queue stayed empty

        Raises:
            QueueError: Redis failed, or the popped entry could not be decoded.
                An undecodable entry has already left the queue.
        """
        raw = await self.redis.brpop(self.name, timeout)
        if raw is None:
            return None
        try:
            return QueuedCall.from_json(raw)
        except PydanticValidationError as e:
            logger.error("queue_item_undecodable", queue=self.name, raw=str(raw)[:200])
            raise QueueError(f"Undecodable queue entry: {str(raw)[:200]}", queue=self.name) from e

    async def length(self) -> int:
        """Number of calls waiting."""
        return await self.redis.llen(self.name)
