"""
Odoo JSON-RPC client.

Reads live record state and builds exact ``execute_kw``/``write`` payloads for
the mutation queue. Writes are normally not executed here; the drain worker
POSTs the stored payloads.
"""

import itertools
from typing import Any

from shared.config.logging import get_logger
from shared.exceptions import (
    AuthenticationError,
    ConfigurationError,
    RemoteApplicationError,
    ValidationError,
)
from shared.odoo.config import OdooSettings, get_odoo_settings
from shared.odoo.transport import JsonRpcTransport
from shared.odoo.wire import build_execute_kw_args, build_request

logger = get_logger(__name__)

TASK_MODEL = "project.task"
PROJECT_MODEL = "project.project"

DEFAULT_STATE_FIELDS: dict[str, list[str]] = {
    TASK_MODEL: [
        "id",
        "name",
        "user_ids",
        "allocated_hours",
        "effective_hours",
        "stage_id",
        "date_deadline",
        "project_id",
    ],
    PROJECT_MODEL: ["id", "name", "user_id", "active"],
}


class OdooClient:
    """Authenticated JSON-RPC client for a single Odoo database."""

    def __init__(self, settings: OdooSettings, transport: JsonRpcTransport | None = None):
        """
        Initialize the client.

        Args:
            settings: Odoo connection settings
            transport: Optional pre-built transport (defaults to one built from settings)
        """
        self.settings = settings
        self.transport = transport or JsonRpcTransport(
            base_url=settings.url,
            connection_timeout=settings.connection_timeout,
            request_timeout=settings.request_timeout,
        )
        self._uid: int | None = None
        self._request_ids = itertools.count(1)

    async def __aenter__(self) -> "OdooClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        await self.transport.close()

    def next_request_id(self) -> int:
        """Allocate a JSON-RPC request id; ids are never handed out twice."""
        return next(self._request_ids)

    @property
    def uid(self) -> int | None:
        """Cached user id, if already known."""
        return self._uid

    async def _call(self, service: str, method: str, args: list[Any]) -> Any:
        request = build_request(service, method, args, self.next_request_id())
        return await self.transport.call(request)

    async def authenticate(self) -> int:
        """
        Exchange the configured credentials for a uid.

        The uid is cached for the lifetime of the client. A static
        ``user_id`` in the settings short-circuits the round trip.

        Returns:
            Odoo user id

        Raises:
            AuthenticationError: Credentials or database rejected
            TransportError: The endpoint could not be reached
        """
        if self._uid is not None:
            return self._uid

        if self.settings.user_id is not None:
            self._uid = self.settings.user_id
            logger.debug("odoo_static_uid_used", uid=self._uid)
            return self._uid

        try:
            result = await self._call(
                "common",
                "authenticate",
                [self.settings.database, self.settings.username, self.settings.api_key, {}],
            )
        except RemoteApplicationError as e:
            logger.error(
                "odoo_authentication_failed",
                database=self.settings.database,
                username=self.settings.username,
                url=self.settings.url,
                error=e.message,
            )
            raise AuthenticationError(
                f"Odoo authentication failed: {e.message}",
                details={"database": self.settings.database, "code": e.code},
            ) from e

        # bool is an int subclass; False is Odoo's "rejected" answer
        if isinstance(result, bool) or not isinstance(result, int) or result <= 0:
            logger.error(
                "odoo_authentication_rejected",
                database=self.settings.database,
                username=self.settings.username,
                result=result,
            )
            raise AuthenticationError(
                "Odoo authentication failed: Invalid credentials or database name. "
                f"Result: {result!r}",
                details={"database": self.settings.database},
            )

        self._uid = result
        logger.info("odoo_authenticated", uid=result, database=self.settings.database)
        return result

    async def execute_kw(
        self,
        model: str,
        method: str,
        positional: list[Any],
        keyword: dict[str, Any] | None = None,
    ) -> Any:
        """
        Call a model method through ``object.execute_kw``.

        Args:
            model: Odoo model name
            method: Model method
            positional: Positional arguments
            keyword: Keyword arguments

        Returns:
            The call's ``result`` member
        """
        uid = await self.authenticate()
        args = build_execute_kw_args(
            self.settings.database,
            uid,
            self.settings.api_key,
            model,
            method,
            positional,
            keyword,
        )
        return await self._call("object", "execute_kw", args)

    async def fetch_current_state(
        self,
        model: str,
        ids: list[int],
        fields: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Read the current field values of records.

        Args:
            model: Odoo model name
            ids: Record ids
            fields: Fields to read (defaults per model)

        Returns:
            One dict per record found; an empty list for empty ``ids``
        """
        if not ids:
            return []

        read_fields = fields or DEFAULT_STATE_FIELDS.get(model, ["id", "name"])
        result = await self.execute_kw(
            model,
            "search_read",
            [[["id", "in", list(ids)]]],
            {"fields": read_fields},
        )
        records = result or []
        logger.debug("odoo_state_fetched", model=model, requested=len(ids), found=len(records))
        return records

    async def build_write_call_payload(
        self,
        model: str,
        ids: list[int],
        fields: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Build the exact ``write`` request without sending it.

        Args:
            model: Odoo model name
            ids: Target record ids
            fields: Values to write

        Returns:
            JSON-RPC request object

        Raises:
            ValidationError: ``ids`` or ``fields`` is empty
            AuthenticationError: No uid could be obtained
        """
        if not ids:
            raise ValidationError("At least one record ID is required", field="ids")
        if not fields:
            raise ValidationError("At least one field value is required", field="fields")

        uid = await self.authenticate()
        args = build_execute_kw_args(
            self.settings.database,
            uid,
            self.settings.api_key,
            model,
            "write",
            [list(ids), fields],
        )
        return build_request("object", "execute_kw", args, self.next_request_id())

    async def write(self, model: str, ids: list[int], fields: dict[str, Any]) -> bool:
        """
        Write values immediately.

        Returns:
            True when Odoo acknowledged the write
        """
        request = await self.build_write_call_payload(model, ids, fields)
        result = await self.transport.call(request)
        return result is True


def create_odoo_client(settings: OdooSettings | None = None) -> OdooClient:
    """
    Create an Odoo client from settings.

    Args:
        settings: Odoo settings (defaults to environment)

    Returns:
        Configured OdooClient

    Raises:
        ConfigurationError: A required connection setting is empty
    """
    settings = settings or get_odoo_settings()
    missing = settings.missing_keys()
    if missing:
        raise ConfigurationError(
            "Odoo configuration is incomplete. Set " + ", ".join(missing) + " in the environment.",
            key=missing,
        )
    return OdooClient(settings)
