"""
Main FastAPI application for planner service.

Provides REST API for reconciling proposed changes against Odoo, enqueueing
the compiled write calls and draining the queue.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from services.planner.app.api.errors import planboard_error_handler
from services.planner.app.api.health import router as health_router
from services.planner.app.api.v1.mutations import router as mutations_router
from services.planner.app.core.config import get_settings
from services.planner.app.core.dependencies import close_connections
from shared.config.logging import get_logger, setup_logging
from shared.exceptions import PlanboardError
from shared.observability.metrics import get_metrics
from shared.observability.middleware import MetricsMiddleware

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging on startup; release Redis, HTTP and database pools on shutdown."""
    settings = get_settings()
    app.state.settings = settings
    setup_logging(
        log_level=settings.log_level,
        json_logs=settings.json_logs and not settings.debug,
        service_name=settings.service_name,
    )
    logger.info("service_started", service=settings.service_name, version=settings.service_version)

    yield

    await close_connections()
    logger.info("service_stopped", service=settings.service_name)


def create_app() -> FastAPI:
    """Build the planner app: routers, error mapping, CORS and request metrics."""
    settings = get_settings()

    app = FastAPI(
        title="Planner Service",
        description="Reconciles, compiles and queues Odoo write calls for the planning dashboard",
        version=settings.service_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Metrics middleware
    app.add_middleware(MetricsMiddleware, service_name=settings.service_name)

    # Pipeline errors carry their own HTTP mapping
    app.add_exception_handler(PlanboardError, planboard_error_handler)  # type: ignore[arg-type]

    # Register routers
    app.include_router(health_router, tags=["health"])
    app.include_router(mutations_router, tags=["mutations"])

    # Metrics endpoint
    @app.get("/metrics")
    async def metrics() -> Response:
        """Prometheus metrics endpoint."""
        return Response(content=get_metrics(), media_type="text/plain")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "services.planner.app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
