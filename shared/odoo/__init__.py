"""
Odoo JSON-RPC protocol client.
"""

from shared.odoo.client import (
    DEFAULT_STATE_FIELDS,
    PROJECT_MODEL,
    TASK_MODEL,
    OdooClient,
    create_odoo_client,
)
from shared.odoo.config import OdooSettings, get_odoo_settings
from shared.odoo.transport import JsonRpcTransport

__all__ = [
    "OdooClient",
    "OdooSettings",
    "JsonRpcTransport",
    "create_odoo_client",
    "get_odoo_settings",
    "DEFAULT_STATE_FIELDS",
    "TASK_MODEL",
    "PROJECT_MODEL",
]
