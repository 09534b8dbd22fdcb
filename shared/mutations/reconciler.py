"""
Staleness reconciler.

Pairs every pending change with freshly read live state before anything is
compiled. Each change family is read with a single batched ``search_read``.
"""

from collections.abc import Iterable

from shared.config.logging import get_logger
from shared.mutations.families import FAMILIES, ChangeFamily, family_for
from shared.mutations.models import (
    ProposedChange,
    ReconciliationReport,
    ReconciliationResult,
)
from shared.observability.metrics import reconciliations_total
from shared.odoo.client import OdooClient

logger = get_logger(__name__)

SERVICE_LABEL = "planboard"


def _unique(ids: Iterable[int]) -> list[int]:
    seen: list[int] = []
    for value in ids:
        if value not in seen:
            seen.append(value)
    return seen


class StalenessReconciler:
    """Checks proposed changes against the ERP's current records."""

    def __init__(self, client: OdooClient, families: tuple[ChangeFamily, ...] = FAMILIES):
        """
        Initialize reconciler.

        Args:
            client: Odoo client used for live reads
            families: Change families to reconcile, in order
        """
        self.client = client
        self.families = families

    def _partition(self, changes: Iterable[ProposedChange]) -> dict[str, list[ProposedChange]]:
        groups: dict[str, list[ProposedChange]] = {family.name: [] for family in self.families}
        for change in changes:
            family = family_for(change)
            if family is None or family.name not in groups:
                logger.warning(
                    "reconcile_change_unsupported",
                    action_id=change.id,
                    entity_type=change.entity_type,
                    change_kind=change.change_kind.value,
                )
                continue
            groups[family.name].append(change)
        return groups

    async def reconcile(
        self,
        session_id: str,
        changes: list[ProposedChange],
    ) -> ReconciliationReport:
        """
        Pair pending changes with live ERP state.

        If any family with pending changes reads back zero records, the whole
        report is not ready and carries no results.

        Args:
            session_id: Session the changes belong to
            changes: Pending proposed changes

        Returns:
            Reconciliation report

        Raises:
            AuthenticationError: Credentials were rejected
            TransportError: The ERP could not be reached
            RemoteApplicationError: The read itself failed remotely
        """
        groups = self._partition(changes)
        results: dict[str, list[ReconciliationResult]] = {name: [] for name in groups}
        dropped: list[str] = []

        for family in self.families:
            members = groups[family.name]
            if not members:
                continue

            ids = _unique(i for change in members for i in family.fetch_ids(change))
            if not ids:
                for change in members:
                    logger.warning(
                        "reconcile_change_unkeyed",
                        session_id=session_id,
                        action_id=change.id,
                        family=family.name,
                    )
                    dropped.append(change.id)
                continue

            live = await self.client.fetch_current_state(family.model, ids)
            if not live:
                reason = (
                    f"No live {family.model} records returned for ids {ids}; "
                    "the ERP may be unreachable or misconfigured"
                )
                logger.error(
                    "reconcile_not_ready",
                    session_id=session_id,
                    model=family.model,
                    requested_ids=ids,
                )
                reconciliations_total.labels(service=SERVICE_LABEL, outcome="not_ready").inc()
                return ReconciliationReport.not_ready(reason)

            by_id = {record.get("id"): record for record in live}
            for change in members:
                matched = False
                for record_id in _unique(family.fetch_ids(change)):
                    record = by_id.get(record_id)
                    if record is None:
                        logger.warning(
                            "reconcile_record_missing",
                            session_id=session_id,
                            action_id=change.id,
                            model=family.model,
                            record_id=record_id,
                        )
                        continue
                    matched = True
                    results[family.name].append(
                        ReconciliationResult(
                            original=record,
                            upcoming=change.after_state,
                            action=change,
                            context_info=change.context_info or {},
                        )
                    )
                if not matched:
                    dropped.append(change.id)

        report = ReconciliationReport(
            ready=True,
            task_statuses=results.get("task", []),
            project_statuses=results.get("team", []),
            dropped_action_ids=dropped,
        )
        outcome = "partial" if dropped else "ready"
        reconciliations_total.labels(service=SERVICE_LABEL, outcome=outcome).inc()
        logger.info(
            "reconcile_completed",
            session_id=session_id,
            changes=len(changes),
            results=report.result_count,
            dropped=report.dropped_count,
        )
        return report
