"""
Mutation pipeline API v1 endpoints.

Provides REST API for reconciling, applying and draining proposed changes.
Pipeline errors are rendered by the PlanboardError exception handler.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from services.planner.app.api.schemas.requests import ApplyRequest, ReconcileRequest
from services.planner.app.api.schemas.responses import (
    ApplyResponse,
    CompiledCallResponse,
    DrainResponse,
    QueueStatusResponse,
    ReconcileResponse,
)
from services.planner.app.core.dependencies import (
    get_apply_service,
    get_drain_service,
    get_mutation_queue,
    get_reconciler,
)
from services.planner.app.services.mutation_service import MutationService
from shared.mutations.reconciler import StalenessReconciler
from shared.observability.metrics import queue_depth
from shared.queue.base import MutationQueue

router = APIRouter(prefix="/api/v1")


@router.post(
    "/sessions/{session_id}/reconcile",
    response_model=ReconcileResponse,
    summary="Check pending changes against live ERP state",
)
async def reconcile_session(
    session_id: str,
    request: ReconcileRequest,
    reconciler: Annotated[StalenessReconciler, Depends(get_reconciler)],
) -> ReconcileResponse:
    """Pair each pending change with the live record it targets. Nothing is persisted."""
    report = await reconciler.reconcile(session_id, request.changes)
    return ReconcileResponse.from_report(report)


@router.post(
    "/sessions/{session_id}/apply",
    response_model=ApplyResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Compile accepted changes and enqueue the write calls",
)
async def apply_session(
    session_id: str,
    request: ApplyRequest,
    service: Annotated[MutationService, Depends(get_apply_service)],
) -> ApplyResponse:
    """Compile the reviewed report into write calls and push them onto the queue."""
    outcome = await service.apply(session_id, request.to_report(), created_by=request.created_by)
    return ApplyResponse(
        enqueued_count=outcome.enqueued_count,
        message=f"Queued {outcome.enqueued_count} write call(s)",
        calls=[CompiledCallResponse.from_call(call) for call in outcome.calls],
    )


@router.post(
    "/queue/drain",
    response_model=DrainResponse,
    summary="Execute every call currently on the queue",
)
async def drain_queue(
    service: Annotated[MutationService, Depends(get_drain_service)],
) -> DrainResponse:
    """Drain the calls present now; calls enqueued meanwhile wait for the next pass."""
    summary = await service.drain()
    return DrainResponse(
        success=summary.failed == 0,
        total=summary.total,
        successful=summary.successful,
        failed=summary.failed,
        results=summary.results,
    )


@router.get(
    "/queue",
    response_model=QueueStatusResponse,
    summary="Queue status",
)
async def queue_status(
    queue: Annotated[MutationQueue, Depends(get_mutation_queue)],
) -> QueueStatusResponse:
    """Report how many calls are waiting."""
    length = await queue.length()
    queue_depth.labels(service="planner", queue=queue.name).set(length)
    return QueueStatusResponse(length=length, message=f"{length} call(s) waiting")
