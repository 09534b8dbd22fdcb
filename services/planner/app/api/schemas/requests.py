"""
Request schemas for planner API.

Defines Pydantic models for API request validation.
"""

from pydantic import BaseModel, Field

from shared.mutations.models import ProposedChange, ReconciliationReport, ReconciliationResult


class ReconcileRequest(BaseModel):
    """Request model for reconciling pending changes."""

    changes: list[ProposedChange] = Field(..., description="Pending proposed changes")

    model_config = {
        "json_schema_extra": {
            "example": {
                "changes": [
                    {
                        "id": "a1",
                        "session_id": "s1",
                        "entity_type": "project.task",
                        "entity_id": 42,
                        "change_kind": "assign",
                        "update_payload": {"user_ids": [7]},
                        "match_condition": {"id": 42},
                    }
                ]
            }
        }
    }


class ApplyRequest(BaseModel):
    """Request model for applying a reviewed reconciliation report."""

    ready: bool = Field(True, description="Readiness flag from the reconcile step")
    task_statuses: list[ReconciliationResult] = Field(
        default_factory=list, description="Accepted task results"
    )
    project_statuses: list[ReconciliationResult] = Field(
        default_factory=list, description="Accepted team membership results"
    )
    reason: str | None = Field(None, description="Not-ready reason, if any")
    created_by: str = Field("system", description="Who confirmed the session", max_length=255)

    def to_report(self) -> ReconciliationReport:
        """Build the report handed to the compiler."""
        return ReconciliationReport(
            ready=self.ready,
            task_statuses=self.task_statuses,
            project_statuses=self.project_statuses,
            reason=self.reason,
        )
