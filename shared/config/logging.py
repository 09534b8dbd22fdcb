"""
Structured logging configuration using structlog.
"""

import copy
import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

REDACTED = "***"

# Keys whose values never reach the log output
SECRET_KEYS = frozenset({"api_key", "apikey", "password", "secret"})


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add application context to log events.

    Args:
        logger: Logger instance
        method_name: Method name
        event_dict: Event dictionary

    Returns:
        Updated event dictionary
    """
    event_dict["app"] = "planboard"
    return event_dict


def mask_rpc_payload(payload: Any) -> Any:
    """
    Return a copy of a JSON-RPC request with the credential argument masked.

    ``execute_kw`` and ``authenticate`` both carry the API key as the third
    positional argument in ``params.args``.
    """
    if not isinstance(payload, dict):
        return payload
    args = payload.get("params", {}).get("args") if isinstance(payload.get("params"), dict) else None
    if not isinstance(args, list) or len(args) < 3:
        return payload
    masked = copy.deepcopy(payload)
    masked["params"]["args"][2] = REDACTED
    return masked


def redact_secrets(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask credentials in log events, including those embedded in RPC payloads."""
    for key in list(event_dict):
        if key.lower() in SECRET_KEYS:
            event_dict[key] = REDACTED
        elif key == "payload":
            event_dict[key] = mask_rpc_payload(event_dict[key])
    return event_dict


def setup_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    service_name: str | None = None,
) -> None:
    """
    Setup structured logging with structlog.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Whether to output logs as JSON (True) or console-friendly format (False)
        service_name: Service name to include in logs
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
        redact_secrets,
    ]

    if service_name:

        def add_service_name(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
            event_dict["service"] = service_name
            return event_dict

        shared_processors.append(add_service_name)

    if json_logs:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.ExceptionPrettyPrinter(),
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structured logger instance
    """
    return structlog.get_logger(name)
