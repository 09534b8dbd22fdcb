"""
Mutation service.

Business logic layer tying the compiler and drain worker to the
audit record store. Lifecycle statuses are written only here.
"""

from services.planner.app.db.repositories.action_repository import ActionRepository
from services.planner.app.db.repositories.session_repository import MutationSessionRepository
from shared.config.logging import get_logger
from shared.mutations.compiler import PayloadCompiler
from shared.mutations.models import (
    CompileOutcome,
    LifecycleStatus,
    ProposedChange,
    ReconciliationReport,
    SessionStatus,
)
from workers.rpc_drain.models import DrainResult, DrainSummary
from workers.rpc_drain.worker import RpcDrainWorker

logger = get_logger(__name__)

SKIPPED_REASON = "Skipped during compilation: invalid or incomplete change"

_TERMINAL = {LifecycleStatus.APPLIED.value, LifecycleStatus.FAILED.value}


class MutationService:
    """Service for applying and draining mutation sessions."""

    def __init__(
        self,
        session_repo: MutationSessionRepository,
        action_repo: ActionRepository,
        compiler: PayloadCompiler | None = None,
        worker: RpcDrainWorker | None = None,
    ):
        """
        Initialize mutation service.

        Args:
            session_repo: Session repository
            action_repo: Action repository
            compiler: Compiler (required for apply)
            worker: Drain worker (required for drain)
        """
        self.session_repo = session_repo
        self.action_repo = action_repo
        self.compiler = compiler
        self.worker = worker

    async def apply(
        self,
        session_id: str,
        report: ReconciliationReport,
        created_by: str = "system",
    ) -> CompileOutcome:
        """
        Compile and enqueue an accepted report, then record the lifecycle.

        The session becomes ``confirmed``; every change is stored as
        ``pending`` and linked to the queued call it was compiled into.
        Changes that compiled into nothing are stored as ``failed``.

        Args:
            session_id: Session ID
            report: Accepted reconciliation report
            created_by: Session creator

        Returns:
            Compile outcome

        Raises:
            NotReadyError: The report is not ready
            AuthenticationError: No uid could be obtained
            QueueError: The batch could not be enqueued
        """
        if self.compiler is None:
            raise RuntimeError("MutationService was built without a compiler")
        outcome = await self.compiler.compile_and_enqueue(report)

        changes = self._unique_changes(report)
        await self.session_repo.upsert_session(
            session_id, SessionStatus.CONFIRMED.value, created_by=created_by
        )
        await self.action_repo.upsert_actions(session_id, changes)

        compiled: set[str] = set()
        for call in outcome.calls:
            await self.action_repo.mark_enqueued(call.action_ids, call.origin_action_id)
            compiled.update(call.action_ids)

        skipped = [change.id for change in changes if change.id not in compiled]
        if skipped:
            await self.action_repo.mark_skipped(skipped, SKIPPED_REASON)
            await self._settle_sessions({session_id})

        logger.info(
            "session_applied",
            session_id=session_id,
            enqueued=outcome.enqueued_count,
            changes=len(changes),
            skipped=len(skipped),
        )
        return outcome

    async def drain(self) -> DrainSummary:
        """
        Drain the queue once and record every outcome.

        Returns:
            Drain summary with per-call results in dequeue order
        """
        if self.worker is None:
            raise RuntimeError("MutationService was built without a drain worker")
        results = await self.worker.drain_once()
        await self.record_results(results)
        return DrainSummary.from_results(results)

    async def record_results(self, results: list[DrainResult]) -> None:
        """Mark actions applied/failed and settle the sessions they belong to."""
        touched: set[str] = set()
        for result in results:
            if result.action_id is None:
                # undecodable entry, nothing to correlate
                continue
            records = await self.action_repo.mark_outcome(
                result.action_id, result.success, result.error
            )
            touched.update(record.session_id for record in records)
        await self._settle_sessions(touched)

    async def _settle_sessions(self, session_ids: set[str]) -> None:
        for session_id in session_ids:
            actions = await self.action_repo.list_by_session(session_id)
            if not actions or any(action.status not in _TERMINAL for action in actions):
                continue
            failed = any(action.status == LifecycleStatus.FAILED.value for action in actions)
            status = SessionStatus.FAILED if failed else SessionStatus.APPLIED
            await self.session_repo.set_status(session_id, status.value)
            logger.info("session_settled", session_id=session_id, status=status.value)

    @staticmethod
    def _unique_changes(report: ReconciliationReport) -> list[ProposedChange]:
        seen: dict[str, ProposedChange] = {}
        for result in [*report.project_statuses, *report.task_statuses]:
            seen.setdefault(result.action.id, result.action)
        return list(seen.values())
