"""
Durable mutation queue.
"""

from shared.queue.base import MutationQueue
from shared.queue.config import QueueSettings, get_queue_settings
from shared.queue.memory_queue import InMemoryMutationQueue
from shared.queue.redis_client import RedisClient
from shared.queue.redis_queue import DEFAULT_QUEUE_NAME, RedisMutationQueue

__all__ = [
    "DEFAULT_QUEUE_NAME",
    "InMemoryMutationQueue",
    "MutationQueue",
    "QueueSettings",
    "RedisClient",
    "RedisMutationQueue",
    "get_queue_settings",
]
