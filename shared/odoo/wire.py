"""
JSON-RPC wire format for Odoo.

Every call is ``{"jsonrpc": "2.0", "method": "call", "params": {...}, "id": n}``.
Model methods go through ``service="object"``, ``method="execute_kw"`` with
``args = [database, uid, api_key, model, method, positional(, keyword)]``.
"""

from typing import Any

JSONRPC_VERSION = "2.0"
JSONRPC_PATH = "/jsonrpc"

# Odoo x2many write commands
LINK_COMMAND = 4
SET_COMMAND = 6


def jsonrpc_url(base_url: str) -> str:
    """Build the JSON-RPC endpoint from a base URL, dropping one trailing slash."""
    base = base_url[:-1] if base_url.endswith("/") else base_url
    return f"{base}{JSONRPC_PATH}"


def build_request(service: str, method: str, args: list[Any], request_id: int) -> dict[str, Any]:
    """
    Build a JSON-RPC ``call`` request.

    Args:
        service: Odoo service ("common" or "object")
        method: Service method ("authenticate", "execute_kw", ...)
        args: Positional call arguments
        request_id: JSON-RPC request id

    Returns:
        Request object ready to be JSON-encoded
    """
    return {
        "jsonrpc": JSONRPC_VERSION,
        "method": "call",
        "params": {"service": service, "method": method, "args": args},
        "id": request_id,
    }


def build_execute_kw_args(
    database: str,
    uid: int,
    api_key: str,
    model: str,
    method: str,
    positional: list[Any],
    keyword: dict[str, Any] | None = None,
) -> list[Any]:
    """Build the positional argument list for ``object.execute_kw``."""
    args: list[Any] = [database, uid, api_key, model, method, positional]
    if keyword is not None:
        args.append(keyword)
    return args


def describe_write_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Summarize a queued write payload for logging.

    Returns:
        Model, method and target ids, without credentials
    """
    args = payload.get("params", {}).get("args") or []
    call = args[5] if len(args) > 5 else None
    return {
        "model": args[3] if len(args) > 3 else None,
        "method": payload.get("params", {}).get("method"),
        "ids": call[0] if isinstance(call, list) and call else None,
    }
