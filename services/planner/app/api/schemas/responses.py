"""
Response schemas for planner API.

Defines Pydantic models for API response serialization.
"""

from typing import Any

from pydantic import BaseModel, Field

from shared.mutations.models import (
    CompiledWriteCall,
    ReconciliationReport,
    ReconciliationResult,
)
from workers.rpc_drain.models import DrainResult


class ReconcileResponse(BaseModel):
    """Response model for a reconciliation pass."""

    ready: bool = Field(..., description="Whether live state was confirmed")
    task_statuses: list[ReconciliationResult] = Field(default_factory=list)
    project_statuses: list[ReconciliationResult] = Field(default_factory=list)
    dropped_action_ids: list[str] = Field(
        default_factory=list, description="Changes whose target no longer exists"
    )
    dropped_count: int = Field(0, description="Number of dropped changes")
    reason: str | None = Field(None, description="Why the report is not ready")

    @classmethod
    def from_report(cls, report: ReconciliationReport) -> "ReconcileResponse":
        return cls(
            ready=report.ready,
            task_statuses=report.task_statuses,
            project_statuses=report.project_statuses,
            dropped_action_ids=report.dropped_action_ids,
            dropped_count=report.dropped_count,
            reason=report.reason,
        )


class CompiledCallResponse(BaseModel):
    """One compiled write call."""

    target_type: str
    target_ids: list[int]
    fields: dict[str, Any]
    origin_action_id: str
    action_ids: list[str]

    @classmethod
    def from_call(cls, call: CompiledWriteCall) -> "CompiledCallResponse":
        return cls(
            target_type=call.target_type,
            target_ids=call.target_ids,
            fields=call.fields.to_values(),
            origin_action_id=call.origin_action_id,
            action_ids=call.action_ids,
        )


class ApplyResponse(BaseModel):
    """Response model for compile-and-enqueue."""

    enqueued_count: int = Field(..., description="Number of calls placed on the queue")
    message: str = Field(..., description="Human-readable summary")
    calls: list[CompiledCallResponse] = Field(default_factory=list)


class DrainResponse(BaseModel):
    """Response model for a drain-to-empty pass."""

    success: bool = Field(..., description="True when every call succeeded")
    total: int = Field(..., description="Calls processed")
    successful: int = Field(..., description="Calls acknowledged by the ERP")
    failed: int = Field(..., description="Calls that failed")
    results: list[DrainResult] = Field(default_factory=list)


class QueueStatusResponse(BaseModel):
    """Response model for queue introspection."""

    length: int = Field(..., description="Calls waiting on the queue")
    message: str = Field(..., description="Human-readable summary")


class ErrorResponse(BaseModel):
    """Error body returned for pipeline failures."""

    error_code: str | None = Field(None, description="Stable error code")
    message: str = Field(..., description="Human-actionable message")
    configuration_fault: bool = Field(
        False, description="True when the failure points at wrong configuration"
    )
    details: dict = Field(default_factory=dict)
