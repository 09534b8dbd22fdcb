"""
FastAPI middleware for HTTP metrics.

Requests are labelled by route template (``/api/v1/sessions/{session_id}/apply``)
rather than by raw path, so session ids do not create new series.
"""

import time
from collections.abc import Callable
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from shared.observability.metrics import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)

UNMATCHED_ROUTE = "unmatched"


def route_template(request: Request) -> str:
    """Path template of the matched route, or a fixed label when nothing matched."""
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path if isinstance(path, str) else UNMATCHED_ROUTE


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect HTTP metrics."""

    def __init__(self, app: Any, service_name: str):
        """
        Initialize metrics middleware.

        Args:
            app: FastAPI application
            service_name: Name of the service
        """
        super().__init__(app)
        self.service_name = service_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request and collect metrics.

        The in-progress gauge is keyed by method only; the route is known
        only once routing has run.
        """
        method = request.method
        in_progress = http_requests_in_progress.labels(
            service=self.service_name,
            method=method,
            endpoint="*",
        )
        in_progress.inc()

        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            in_progress.dec()
            endpoint = route_template(request)
            http_requests_total.labels(
                service=self.service_name,
                method=method,
                endpoint=endpoint,
                status_code=status_code,
            ).inc()
            http_request_duration_seconds.labels(
                service=self.service_name,
                method=method,
                endpoint=endpoint,
            ).observe(time.perf_counter() - start)
