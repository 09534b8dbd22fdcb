"""
Custom exceptions for Planboard.
"""

from typing import Any


class PlanboardError(Exception):
    """Base exception for all Planboard errors."""

    def __init__(self, message: str, error_code: str | None = None, details: dict | None = None):
        """
        Initialize exception.

        Args:
            message: Error message
            error_code: Optional error code
            details: Optional error details
        """
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


# Configuration Errors


class ConfigurationError(PlanboardError):
    """Missing or incomplete configuration. Never retried."""

    def __init__(self, message: str, key: str | list[str] | None = None):
        """
        Initialize exception.

        Args:
            message: Error message
            key: Offending configuration key(s)
        """
        details = {"key": key} if key else {}
        super().__init__(message, error_code="CONFIGURATION_ERROR", details=details)


# Validation Errors


class ValidationError(PlanboardError):
    """Validation errors."""

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        """
        Initialize exception.

        Args:
            message: Error message
            field: Field name
            value: Field value
        """
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, error_code="VALIDATION_ERROR", details=details)


# Remote ERP Errors


class ErpError(PlanboardError):
    """Errors raised while talking to the remote ERP."""

    pass


class AuthenticationError(ErpError):
    """The ERP rejected the configured credentials."""

    def __init__(self, message: str, details: dict | None = None):
        """Initialize exception."""
        super().__init__(message, error_code="AUTHENTICATION_ERROR", details=details)


class TransportError(ErpError):
    """The JSON-RPC exchange failed below the application level."""

    default_code = "TRANSPORT_ERROR"
    configuration_fault = False

    def __init__(self, message: str, endpoint: str, details: dict | None = None):
        """
        Initialize exception.

        Args:
            message: Human-actionable error message
            endpoint: JSON-RPC endpoint that was called
            details: Optional extra details
        """
        self.endpoint = endpoint
        merged = {"endpoint": endpoint}
        merged.update(details or {})
        super().__init__(message, error_code=self.default_code, details=merged)

    @property
    def is_configuration_fault(self) -> bool:
        """True when the failure most likely points at a wrong URL rather than a flaky network."""
        return self.configuration_fault


class HostResolutionError(TransportError):
    """DNS lookup of the ERP host failed."""

    default_code = "HOST_RESOLUTION_ERROR"
    configuration_fault = True


class ConnectionRefusedByServerError(TransportError):
    """The ERP host actively refused the connection."""

    default_code = "CONNECTION_REFUSED"
    configuration_fault = True


class ConnectionResetByServerError(TransportError):
    """The connection was reset mid-flight."""

    default_code = "CONNECTION_RESET"


class ConnectTimeoutError(TransportError):
    """The connection could not be established in time."""

    default_code = "CONNECT_TIMEOUT"


class RequestTimeoutError(TransportError):
    """The whole request exceeded its time budget."""

    default_code = "REQUEST_TIMEOUT"


class HttpStatusError(TransportError):
    """The ERP answered with a non-2xx HTTP status."""

    default_code = "HTTP_STATUS_ERROR"

    def __init__(self, message: str, endpoint: str, status_code: int, body: str = ""):
        """
        Initialize exception.

        Args:
            message: Error message
            endpoint: JSON-RPC endpoint
            status_code: HTTP status code
            body: Truncated response body
        """
        self.status_code = status_code
        super().__init__(message, endpoint, details={"status_code": status_code, "body": body})

    @property
    def is_configuration_fault(self) -> bool:
        """A 404 on the JSON-RPC path means the base URL is wrong."""
        return self.status_code == 404


class ServerTimeoutError(HttpStatusError):
    """The ERP (or a proxy in front of it) timed out server-side."""

    default_code = "SERVER_TIMEOUT"


class MalformedResponseError(ErpError):
    """The response body could not be parsed as a JSON-RPC response."""

    def __init__(self, message: str, endpoint: str, body: str = ""):
        """Initialize exception."""
        self.endpoint = endpoint
        self.body = body
        super().__init__(
            message,
            error_code="MALFORMED_RESPONSE",
            details={"endpoint": endpoint, "body": body},
        )


class RemoteApplicationError(ErpError):
    """The ERP returned a JSON-RPC error object."""

    def __init__(self, message: str, code: int | None = None, data: Any = None):
        """
        Initialize exception.

        Args:
            message: Message taken from the remote error object
            code: Remote error code
            data: Remote error data
        """
        self.code = code
        self.data = data
        super().__init__(
            message,
            error_code="REMOTE_APPLICATION_ERROR",
            details={"code": code, "data": data},
        )


# Pipeline Errors


class NotReadyError(PlanboardError):
    """Reconciliation could not confirm live state; nothing may be compiled."""

    def __init__(self, message: str = "Remote state is not ready; nothing was sent"):
        """Initialize exception."""
        super().__init__(message, error_code="NOT_READY")


# Queue Errors


class QueueError(PlanboardError):
    """Mutation queue errors."""

    def __init__(self, message: str, queue: str | None = None):
        """Initialize exception."""
        details = {"queue": queue} if queue else {}
        super().__init__(message, error_code="QUEUE_ERROR", details=details)


class QueueConnectionError(QueueError):
    """The queue backend is unreachable."""

    def __init__(self, message: str = "Failed to connect to queue backend"):
        """Initialize exception."""
        super().__init__(message)
        self.error_code = "QUEUE_CONNECTION_ERROR"


# Database Errors


class DatabaseError(PlanboardError):
    """Database-related errors."""

    pass


class RecordNotFoundError(DatabaseError):
    """Record not found in database."""

    def __init__(self, entity: str, identifier: str | dict):
        """
        Initialize exception.

        Args:
            entity: Entity type (e.g., "MutationSession", "Action")
            identifier: Entity identifier
        """
        message = f"{entity} not found: {identifier}"
        super().__init__(
            message,
            error_code="RECORD_NOT_FOUND",
            details={"entity": entity, "identifier": str(identifier)},
        )
