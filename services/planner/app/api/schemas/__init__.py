"""API schemas for requests and responses."""

from services.planner.app.api.schemas.requests import ApplyRequest, ReconcileRequest
from services.planner.app.api.schemas.responses import (
    ApplyResponse,
    CompiledCallResponse,
    DrainResponse,
    ErrorResponse,
    QueueStatusResponse,
    ReconcileResponse,
)

__all__ = [
    "ReconcileRequest",
    "ApplyRequest",
    "ReconcileResponse",
    "CompiledCallResponse",
    "ApplyResponse",
    "DrainResponse",
    "QueueStatusResponse",
    "ErrorResponse",
]
