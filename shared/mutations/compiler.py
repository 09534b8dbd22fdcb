"""
Payload compiler.

Merges reconciled changes into one write per remote record and pushes the
resulting wire payloads onto the mutation queue in a single batch.
"""

from shared.config.logging import get_logger, mask_rpc_payload
from shared.exceptions import NotReadyError, ValidationError
from shared.mutations.families import FAMILIES, ChangeFamily
from shared.mutations.models import (
    CompiledWriteCall,
    CompileOutcome,
    QueuedCall,
    ReconciliationReport,
    ReconciliationResult,
)
from shared.observability.metrics import rpc_calls_enqueued_total
from shared.odoo.client import OdooClient
from shared.queue.base import MutationQueue

logger = get_logger(__name__)

SERVICE_LABEL = "planboard"


class PayloadCompiler:
    """Compiles reconciliation reports into queued write calls."""

    def __init__(
        self,
        client: OdooClient,
        queue: MutationQueue,
        families: tuple[ChangeFamily, ...] = FAMILIES,
    ):
        """
        Initialize compiler.

        Args:
            client: Odoo client that builds (but does not send) write payloads
            queue: Queue receiving the compiled payloads
            families: Change families, in compile order
        """
        self.client = client
        self.queue = queue
        self.families = families

    def compile(self, report: ReconciliationReport) -> list[CompiledWriteCall]:
        """
        Merge reconciled changes into one call per remote record.

        Team membership calls come first, then task calls. Invalid changes
        are logged and skipped.

        Args:
            report: Reconciliation report

        Returns:
            Compiled write calls
        """
        by_family = {"task": report.task_statuses, "team": report.project_statuses}
        calls: list[CompiledWriteCall] = []
        for family in self.families:
            calls.extend(self._compile_family(family, by_family.get(family.name, [])))
        return calls

    def _compile_family(
        self,
        family: ChangeFamily,
        results: list[ReconciliationResult],
    ) -> list[CompiledWriteCall]:
        grouped: dict[int, CompiledWriteCall] = {}

        for result in results:
            change = result.action
            if not change.is_compilable:
                logger.warning(
                    "compile_change_skipped",
                    action_id=change.id,
                    reason="missing update_payload or match_condition",
                )
                continue

            target_id = family.result_target(result)
            if target_id is None:
                logger.warning(
                    "compile_change_skipped",
                    action_id=change.id,
                    reason="no target id in match_condition",
                )
                continue

            try:
                patch = family.build_patch(change)
            except ValidationError as e:
                logger.warning("compile_change_skipped", action_id=change.id, reason=e.message)
                continue

            if not len(patch):
                logger.warning(
                    "compile_change_skipped",
                    action_id=change.id,
                    reason="no writable fields",
                )
                continue

            call = grouped.get(target_id)
            if call is None:
                grouped[target_id] = CompiledWriteCall(
                    target_type=family.model,
                    target_ids=[target_id],
                    fields=patch,
                    origin_action_id=change.id,
                    action_ids=[change.id],
                )
                continue

            call.fields.merge(patch)
            if change.id not in call.action_ids:
                call.action_ids.append(change.id)

        return list(grouped.values())

    async def compile_and_enqueue(self, report: ReconciliationReport) -> CompileOutcome:
        """
        Compile a report and enqueue every resulting payload.

        Every payload is built before anything is enqueued, so an
        authentication failure leaves the queue untouched.

        Args:
            report: Reconciliation report accepted by the caller

        Returns:
            Number of enqueued calls and the calls themselves

        Raises:
            NotReadyError: The report is not ready
            AuthenticationError: No uid could be obtained
            QueueError: The batch could not be enqueued
        """
        if not report.ready:
            raise NotReadyError(
                report.reason or "Remote state is not ready; nothing was sent"
            )

        calls = self.compile(report)
        if not calls:
            logger.info("compile_nothing_to_enqueue", results=report.result_count)
            return CompileOutcome(enqueued_count=0, calls=[])

        items: list[QueuedCall] = []
        for call in calls:
            payload = await self.client.build_write_call_payload(
                call.target_type,
                call.target_ids,
                call.fields.to_values(),
            )
            logger.info(
                "rpc_payload_built",
                action_id=call.origin_action_id,
                action_ids=call.action_ids,
                payload=mask_rpc_payload(payload),
            )
            items.append(QueuedCall(payload=payload, action_id=call.origin_action_id))

        await self.queue.enqueue_batch(items)
        rpc_calls_enqueued_total.labels(service=SERVICE_LABEL, queue=self.queue.name).inc(
            len(items)
        )
        logger.info("rpc_calls_enqueued", count=len(items), queue=self.queue.name)
        return CompileOutcome(enqueued_count=len(items), calls=calls)
