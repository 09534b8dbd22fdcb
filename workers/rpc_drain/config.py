"""
Configuration for the RPC drain worker.

The worker only needs to know where to POST; credentials travel inside the
queued payloads.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WorkerSettings(BaseSettings):
    """Settings for the RPC drain worker."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Worker Configuration
    worker_name: str = Field(
        default="rpc-drain-worker",
        description="Worker instance name for logging",
    )

    # Remote endpoint
    odoo_url: str = Field(
        ...,
        validation_alias="ODOO_URL",
        description="Odoo base URL; the worker POSTs to <url>/jsonrpc",
    )
    connection_timeout: float = Field(
        default=10.0,
        gt=0,
        validation_alias="ODOO_CONNECTION_TIMEOUT",
        description="Seconds allowed to establish a connection",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        validation_alias="ODOO_REQUEST_TIMEOUT",
        description="Seconds allowed for a whole request",
    )

    # Loop Configuration
    dequeue_timeout: float = Field(
        default=5.0,
        ge=0,
        description="Seconds a blocking dequeue waits for an item",
    )
    drain_dequeue_timeout: float = Field(
        default=0.5,
        gt=0,
        description="Seconds each dequeue of a drain-to-empty pass waits for an item",
    )
    idle_sleep: float = Field(
        default=0.1,
        ge=0,
        description="Pause after an empty dequeue",
    )
    error_backoff: float = Field(
        default=1.0,
        ge=0,
        description="Pause after an unexpected error in the loop",
    )


@lru_cache
def get_worker_settings() -> WorkerSettings:
    """
    Get cached worker settings instance.

    Returns:
        Cached WorkerSettings instance
    """
    return WorkerSettings()  # type: ignore[call-arg]
