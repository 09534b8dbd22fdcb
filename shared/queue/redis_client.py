"""
Redis client with connection pooling.

Narrowed to the list primitives the mutation queue needs.
"""

from redis.asyncio import Redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import ConnectionError as RedisConnectionError

from shared.config.logging import get_logger
from shared.exceptions import QueueConnectionError, QueueError

logger = get_logger(__name__)


class RedisClient:
    """Redis client with async connection pool."""

    def __init__(
        self,
        url: str,
        max_connections: int = 20,
        decode_responses: bool = True,
        socket_timeout: float = 10.0,
        socket_connect_timeout: float = 5.0,
    ):
        """
        Initialize Redis client.

        Args:
            url: Redis connection URL
            max_connections: Maximum number of connections
            decode_responses: Decode responses to strings
            socket_timeout: Socket timeout in seconds
            socket_connect_timeout: Socket connect timeout in seconds
        """
        self.url = url
        self.max_connections = max_connections
        self.decode_responses = decode_responses
        self.socket_timeout = socket_timeout
        self.socket_connect_timeout = socket_connect_timeout

        self._pool: ConnectionPool | None = None
        self._client: Redis | None = None

    async def connect(self) -> None:
        """
        Connect to Redis server.

        Raises:
            QueueConnectionError: If connection fails
        """
        try:
            self._pool = ConnectionPool.from_url(
                self.url,
                max_connections=self.max_connections,
                decode_responses=self.decode_responses,
                socket_timeout=self.socket_timeout,
                socket_connect_timeout=self.socket_connect_timeout,
            )

            self._client = Redis(connection_pool=self._pool)

            # Test connection
            await self._client.ping()

            logger.info("redis_connected", url=self.url)

        except Exception as e:
            logger.error("redis_connection_failed", error=str(e), url=self.url)
            raise QueueConnectionError(f"Failed to connect to Redis: {e}") from e

    async def disconnect(self) -> None:
        """Disconnect from Redis server."""
        if self._client:
            await self._client.aclose()
            self._client = None

        if self._pool:
            await self._pool.aclose()
            self._pool = None

        logger.info("redis_disconnected")

    def get_client(self) -> Redis:
        """
        Get Redis client.

        Returns:
            Redis client instance

        Raises:
            QueueConnectionError: If not connected
        """
        if not self._client:
            raise QueueConnectionError("Redis client not connected. Call connect() first.")
        return self._client

    async def ping(self) -> bool:
        """
        Ping Redis server.

        Returns:
            True if ping successful

        Raises:
            QueueError: If ping fails
        """
        try:
            client = self.get_client()
            result: bool = await client.ping()
            return result
        except QueueError:
            raise
        except Exception as e:
            logger.error("redis_ping_failed", error=str(e))
            raise QueueError(f"Redis ping failed: {e}") from e

    async def lpush(self, key: str, *values: str) -> int:
        """
        Push values onto the head of a list.

        Returns:
            List length after the push

        Raises:
            QueueError: If operation fails
        """
        try:
            client = self.get_client()
            return await client.lpush(key, *values)  # type: ignore[no-any-return]
        except QueueError:
            raise
        except Exception as e:
            logger.error("redis_lpush_failed", key=key, error=str(e))
            raise QueueError(f"Redis lpush failed: {e}", queue=key) from e

    async def lpush_many(self, key: str, values: list[str]) -> None:
        """
        Push values in one MULTI/EXEC transaction, so they land all or nothing.

        Raises:
            QueueError: If the transaction fails
        """
        try:
            client = self.get_client()
            async with client.pipeline(transaction=True) as pipe:
                for value in values:
                    pipe.lpush(key, value)
                await pipe.execute()
        except QueueError:
            raise
        except Exception as e:
            logger.error("redis_lpush_many_failed", key=key, count=len(values), error=str(e))
            raise QueueError(f"Redis batch push failed: {e}", queue=key) from e

    async def brpop(self, key: str, timeout: float) -> str | None:
        """
        Pop from the tail of a list, blocking up to ``timeout`` seconds.

        Returns:
            The popped value, or None on timeout

        Raises:
            QueueConnectionError: The connection to Redis is gone
            QueueError: If operation fails
        """
        try:
            client = self.get_client()
            popped = await client.brpop([key], timeout=timeout)
        except QueueError:
            raise
        except RedisConnectionError as e:
            logger.error("redis_brpop_disconnected", key=key, error=str(e))
            raise QueueConnectionError(f"Lost connection to Redis: {e}") from e
        except Exception as e:
            logger.error("redis_brpop_failed", key=key, error=str(e))
            raise QueueError(f"Redis brpop failed: {e}", queue=key) from e
        if popped is None:
            return None
        # BRPOP answers [key, value]
        return popped[1]  # type: ignore[no-any-return]

    async def llen(self, key: str) -> int:
        """
        Length of a list.

        Raises:
            QueueError: If operation fails
        """
        try:
            client = self.get_client()
            return await client.llen(key)  # type: ignore[no-any-return]
        except QueueError:
            raise
        except Exception as e:
            logger.error("redis_llen_failed", key=key, error=str(e))
            raise QueueError(f"Redis llen failed: {e}", queue=key) from e
