"""
Configuration settings for the Redis-backed mutation queue.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class QueueSettings(BaseSettings):
    """Settings for the mutation queue."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="REDIS_",
        case_sensitive=False,
        extra="ignore",
    )

    # Connection settings
    url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )

    queue_name: str = Field(
        default="odoo:rpc:calls",
        description="Redis list holding queued write calls",
    )

    # Connection pool settings
    max_connections: int = Field(
        default=20,
        ge=1,
        le=500,
        description="Maximum number of connections in pool",
    )

    socket_timeout: float = Field(
        default=10.0,
        ge=0.1,
        description="Socket timeout in seconds (must exceed dequeue_timeout)",
    )

    socket_connect_timeout: float = Field(
        default=5.0,
        ge=0.1,
        description="Socket connect timeout in seconds",
    )

    # Consumer behavior
    dequeue_timeout: float = Field(
        default=5.0,
        ge=0.0,
        description="Seconds a blocking dequeue waits before reporting an empty queue",
    )


@lru_cache
def get_queue_settings() -> QueueSettings:
    """
    Get cached queue settings instance.

    Returns:
        QueueSettings: Cached settings instance
    """
    return QueueSettings()
