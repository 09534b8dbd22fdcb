"""
RPC payload executor.

POSTs a stored wire payload verbatim and classifies the response.
"""

import json
import logging
import time

from shared.exceptions import ErpError
from shared.mutations.models import QueuedCall
from shared.observability.metrics import rpc_call_duration_seconds, rpc_calls_executed_total
from shared.odoo.transport import JsonRpcTransport
from shared.odoo.wire import describe_write_payload
from workers.rpc_drain.models import DrainResult

logger = logging.getLogger(__name__)

SERVICE_LABEL = "rpc-drain-worker"
UNEXPECTED_RESULT = "UNEXPECTED_RESULT"


class RpcPayloadExecutor:
    """Executes queued write calls against the Odoo JSON-RPC endpoint."""

    def __init__(self, transport: JsonRpcTransport):
        """
        Initialize executor.

        Args:
            transport: Transport pointed at the Odoo base URL
        """
        self.transport = transport

    async def execute(self, item: QueuedCall) -> DrainResult:
        """
        Execute one queued call.

        Transport, HTTP, parse and remote failures all become a failed
        result; nothing is retried.

        Args:
            item: Queued call

        Returns:
            DrainResult for the call
        """
        target = describe_write_payload(item.payload)
        logger.debug(
            f"Posting {target['method']} on {target['model']} {target['ids']} "
            f"for action {item.action_id}"
        )

        start = time.perf_counter()
        try:
            result = await self._send(item)
        finally:
            rpc_call_duration_seconds.labels(service=SERVICE_LABEL).observe(
                time.perf_counter() - start
            )

        status = "success" if result.success else "failed"
        rpc_calls_executed_total.labels(service=SERVICE_LABEL, status=status).inc()
        return result

    async def _send(self, item: QueuedCall) -> DrainResult:
        try:
            data = await self.transport.send(item.payload)
        except ErpError as e:
            return DrainResult(
                action_id=item.action_id,
                success=False,
                error=e.message,
                error_code=e.error_code,
            )

        error = data.get("error")
        if error:
            remote = self.transport.remote_error(error)
            return DrainResult(
                action_id=item.action_id,
                success=False,
                error=remote.message,
                error_code=remote.error_code,
            )

        # A write answers with literal true
        result = data.get("result")
        if result is not True:
            return DrainResult(
                action_id=item.action_id,
                success=False,
                error=f"Unexpected result: {json.dumps(result)}",
                error_code=UNEXPECTED_RESULT,
            )

        return DrainResult(action_id=item.action_id, success=True)

    async def close(self) -> None:
        """Close the underlying transport."""
        await self.transport.close()
