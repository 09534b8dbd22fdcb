"""
Error mapping for planner API.

Pipeline exceptions carry stable error codes; this module turns them into
HTTP statuses and a JSON error body.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from services.planner.app.api.schemas.responses import ErrorResponse
from shared.config.logging import get_logger
from shared.exceptions import (
    ConfigurationError,
    ErpError,
    NotReadyError,
    PlanboardError,
    QueueError,
    RecordNotFoundError,
    TransportError,
    ValidationError,
)

logger = get_logger(__name__)


def status_for_error(error: PlanboardError) -> int:
    """
    Map a pipeline error to an HTTP status code.

    Args:
        error: Pipeline error

    Returns:
        HTTP status code
    """
    if isinstance(error, ConfigurationError | QueueError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(error, NotReadyError):
        return status.HTTP_409_CONFLICT
    if isinstance(error, ValidationError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(error, RecordNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, ErpError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(error: PlanboardError) -> ErrorResponse:
    """Build the JSON error body for a pipeline error."""
    configuration_fault = isinstance(error, ConfigurationError) or (
        isinstance(error, TransportError) and error.is_configuration_fault
    )
    return ErrorResponse(
        error_code=error.error_code,
        message=error.message,
        configuration_fault=configuration_fault,
        details=error.details,
    )


async def planboard_error_handler(request: Request, exc: PlanboardError) -> JSONResponse:
    """
    Exception handler for PlanboardError.

    Args:
        request: HTTP request
        exc: Raised exception

    Returns:
        JSON error response
    """
    status_code = status_for_error(exc)
    logger.warning(
        "request_failed",
        path=request.url.path,
        status_code=status_code,
        error_code=exc.error_code,
        error=exc.message,
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": error_body(exc).model_dump(mode="json")},
    )
