"""
Health check endpoints for planner service.

Provides service health status and dependency checks.
"""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from services.planner.app.core.config import PlannerServiceSettings, get_settings
from services.planner.app.core.dependencies import get_redis_client
from shared.exceptions import QueueError
from shared.queue import RedisClient

router = APIRouter()


class HealthStatus(BaseModel):
    """Health status response model."""

    status: str = Field(..., description="Service status (healthy/unhealthy)")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    timestamp: datetime = Field(..., description="Check timestamp")


@router.get(
    "/health",
    response_model=HealthStatus,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Returns basic service health status",
)
async def health_check(
    settings: Annotated[PlannerServiceSettings, Depends(get_settings)],
) -> HealthStatus:
    """
    Basic health check endpoint.

    Returns:
        Service health status
    """
    return HealthStatus(
        status="healthy",
        service=settings.service_name,
        version=settings.service_version,
        timestamp=datetime.now(UTC),
    )


@router.get(
    "/health/ready",
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
    description="Returns 200 if the mutation queue is reachable",
)
async def readiness_check(
    redis_client: Annotated[RedisClient, Depends(get_redis_client)],
) -> dict[str, str]:
    """
    Readiness check for Kubernetes/container orchestration.

    Args:
        redis_client: Redis client backing the mutation queue

    Returns:
        Ready status

    Raises:
        HTTPException: If Redis does not answer
    """
    try:
        await redis_client.ping()
    except QueueError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Service not ready: {e.message}",
        ) from e

    return {"status": "ready"}


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
    description="Returns 200 if service is alive",
)
async def liveness_check() -> dict[str, str]:
    """
    Liveness check for Kubernetes/container orchestration.

    Returns:
        Alive status
    """
    return {"status": "alive"}
