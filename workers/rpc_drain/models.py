"""
Data models for the RPC drain worker.
"""

from datetime import UTC, datetime

from pydantic import BaseModel, Field


class DrainResult(BaseModel):
    """Outcome of executing one queued write call."""

    action_id: str | None = Field(
        None, description="Originating change id; None when the queue entry was undecodable"
    )
    success: bool = Field(default=False, description="Whether the write was acknowledged")
    error: str | None = Field(None, description="Error message if failed")
    error_code: str | None = Field(None, description="Stable error code if failed")
    processed_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When execution completed",
    )


class DrainSummary(BaseModel):
    """Aggregate of one drain-to-empty pass."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    results: list[DrainResult] = Field(default_factory=list)

    @classmethod
    def from_results(cls, results: list[DrainResult]) -> "DrainSummary":
        successful = sum(1 for result in results if result.success)
        return cls(
            total=len(results),
            successful=successful,
            failed=len(results) - successful,
            results=results,
        )
