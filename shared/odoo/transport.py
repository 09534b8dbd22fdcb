"""JSON-RPC transport for Odoo with explicit timeouts and failure classification."""

import asyncio
import json
import socket
from collections.abc import Iterator
from typing import Any

import httpx

from shared.config.logging import get_logger
from shared.exceptions import (
    ConnectionRefusedByServerError,
    ConnectionResetByServerError,
    ConnectTimeoutError,
    HostResolutionError,
    HttpStatusError,
    MalformedResponseError,
    RemoteApplicationError,
    RequestTimeoutError,
    ServerTimeoutError,
    TransportError,
)
from shared.odoo.wire import jsonrpc_url

logger = get_logger(__name__)

HTTP_BODY_EXCERPT = 500
MALFORMED_BODY_EXCERPT = 200

_DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "getaddrinfo failed",
    "no address associated with hostname",
)
_REFUSED_MARKERS = ("connection refused", "errno 111", "errno 61")
_RESET_MARKERS = ("connection reset", "errno 104", "errno 54")


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Walk ``exc`` and its causes/contexts, once each."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _matches(exc: BaseException, os_error: type[BaseException], markers: tuple[str, ...]) -> bool:
    for link in _exception_chain(exc):
        if isinstance(link, os_error):
            return True
        text = str(link).lower()
        if any(marker in text for marker in markers):
            return True
    return False


class JsonRpcTransport:
    """
    POSTs JSON-RPC request objects to ``<base_url>/jsonrpc``.

    Only the endpoint is needed; credentials, if any, travel inside the payload.
    Nothing is retried here, retry policy belongs to the caller.
    """

    def __init__(
        self,
        base_url: str,
        connection_timeout: float = 10.0,
        request_timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the transport.

        Args:
            base_url: Odoo base URL (a trailing slash is stripped)
            connection_timeout: Seconds allowed to establish the connection
            request_timeout: Seconds allowed for the whole request
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.base_url = base_url
        self.endpoint = jsonrpc_url(base_url)
        self.connection_timeout = connection_timeout
        self.request_timeout = request_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "JsonRpcTransport":
        """Async context manager entry."""
        await self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.request_timeout, connect=self.connection_timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def send(self, request: dict[str, Any]) -> dict[str, Any]:
        """
        POST a request object verbatim and return the decoded response object.

        Application-level ``error`` members are left in place; use :meth:`call`
        to have them raised.

        Args:
            request: JSON-RPC request object

        Returns:
            Decoded JSON-RPC response object

        Raises:
            TransportError: Network, timeout or HTTP status failure
            MalformedResponseError: Body is not a JSON object
            RemoteApplicationError: Non-2xx response carrying an error object
        """
        client = await self._get_client()
        body = json.dumps(request)

        try:
            async with asyncio.timeout(self.request_timeout):
                response = await client.post(
                    self.endpoint,
                    content=body,
                    headers={"Content-Type": "application/json", "Accept": "application/json"},
                )
        except TimeoutError as e:
            raise RequestTimeoutError(
                f"Request timeout: Odoo API call exceeded {self.request_timeout}s. "
                f"The server may be slow or unresponsive. Check {self.base_url}",
                self.endpoint,
            ) from e
        except httpx.ConnectTimeout as e:
            raise ConnectTimeoutError(
                f"Connection timeout: Could not connect to Odoo server within "
                f"{self.connection_timeout}s. Check if Odoo server is running and accessible "
                f"at {self.base_url}",
                self.endpoint,
            ) from e
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(
                f"Request timeout: Odoo server stopped responding. "
                f"The server may be slow or unresponsive. Check {self.base_url}",
                self.endpoint,
            ) from e
        except httpx.HTTPError as e:
            raise self._classify_network_error(e) from e

        text = response.text
        if not response.is_success:
            raise self._status_error(response.status_code, text)

        return self._decode(text)

    async def call(self, request: dict[str, Any]) -> Any:
        """
        Send a request and return its ``result`` member.

        Raises:
            RemoteApplicationError: The response carries an ``error`` object
        """
        data = await self.send(request)
        error = data.get("error")
        if error:
            raise self.remote_error(error)
        return data.get("result")

    @staticmethod
    def remote_error(error: Any) -> RemoteApplicationError:
        """Build a RemoteApplicationError from a JSON-RPC error member."""
        if not isinstance(error, dict):
            return RemoteApplicationError(json.dumps(error))
        message = error.get("message") or json.dumps(error)
        data = error.get("data")
        if isinstance(data, dict) and data.get("message") and data["message"] != message:
            message = f"{message}: {data['message']}"
        return RemoteApplicationError(message, code=error.get("code"), data=data)

    def _decode(self, text: str) -> dict[str, Any]:
        try:
            data = json.loads(text)
        except ValueError as e:
            logger.error(
                "odoo_response_unparseable",
                endpoint=self.endpoint,
                body=text[:MALFORMED_BODY_EXCERPT],
            )
            raise MalformedResponseError(
                f"Invalid JSON response: {text[:MALFORMED_BODY_EXCERPT]}",
                self.endpoint,
                body=text[:MALFORMED_BODY_EXCERPT],
            ) from e
        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Invalid JSON-RPC response: {text[:MALFORMED_BODY_EXCERPT]}",
                self.endpoint,
                body=text[:MALFORMED_BODY_EXCERPT],
            )
        return data

    def _status_error(self, status_code: int, text: str) -> Exception:
        # Odoo sometimes wraps server faults in a JSON-RPC error even on 5xx
        try:
            data = json.loads(text)
        except ValueError:
            data = None
        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            return self.remote_error(data["error"])

        excerpt = text[:HTTP_BODY_EXCERPT]
        if status_code in (408, 504):
            return ServerTimeoutError(
                f"Server timeout: Odoo (or a proxy in front of it) gave up with HTTP "
                f"{status_code}. The server may be overloaded. Check {self.base_url}",
                self.endpoint,
                status_code=status_code,
                body=excerpt,
            )
        return HttpStatusError(
            f"HTTP {status_code}: {excerpt}. Check if Odoo URL is correct: {self.base_url}",
            self.endpoint,
            status_code=status_code,
            body=excerpt,
        )

    def _classify_network_error(self, exc: httpx.HTTPError) -> TransportError:
        if _matches(exc, socket.gaierror, _DNS_MARKERS):
            return HostResolutionError(
                f"Cannot resolve hostname. Check if Odoo URL is correct: {self.base_url}",
                self.endpoint,
            )
        if _matches(exc, ConnectionRefusedError, _REFUSED_MARKERS):
            return ConnectionRefusedByServerError(
                f"Connection refused. Check if Odoo server is running and accessible "
                f"at {self.base_url}",
                self.endpoint,
            )
        if _matches(exc, ConnectionResetError, _RESET_MARKERS):
            return ConnectionResetByServerError(
                f"Connection reset by Odoo server. Check if URL is correct ({self.base_url}), "
                f"server is running, and network is accessible.",
                self.endpoint,
            )
        detail = str(exc) or type(exc).__name__
        return TransportError(
            f"Odoo API call failed: {detail}",
            self.endpoint,
        )
