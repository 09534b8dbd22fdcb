"""
Data models for the mutation pipeline.

Proposed changes flow through reconciliation (paired with live state),
compilation (merged into one write per remote record) and the queue
(serialized wire payloads).
"""

import time
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from shared.exceptions import ValidationError
from shared.odoo.wire import LINK_COMMAND, SET_COMMAND


class ChangeKind(str, Enum):
    """Kinds of user-initiated changes."""

    ASSIGN = "assign"
    UNASSIGN = "unassign"
    CHANGE_STAGE = "change_stage"
    ADD_TO_TEAM = "add_to_team"


class LifecycleStatus(str, Enum):
    """Lifecycle of a single proposed change."""

    PENDING = "pending"
    APPLIED = "applied"
    FAILED = "failed"


class SessionStatus(str, Enum):
    """Lifecycle of a mutation session."""

    DRAFT = "draft"
    CONFIRMED = "confirmed"
    APPLIED = "applied"
    FAILED = "failed"


def utc_now() -> datetime:
    """Current time, timezone-aware."""
    return datetime.now(UTC)


def epoch_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


class ProposedChange(BaseModel):
    """A single user-intended mutation of one remote record."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)

    id: str = Field(..., description="Unique change id")
    session_id: str = Field(..., description="Owning mutation session")
    description: str = Field(default="", description="Human-readable summary")
    entity_type: str = Field(..., description="Remote model, e.g. project.task")
    entity_id: int = Field(..., description="Remote record id")
    change_kind: ChangeKind = Field(
        ...,
        validation_alias=AliasChoices("change_kind", "action_type"),
        description="What kind of change this is",
    )
    update_payload: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("update_payload", "update_json"),
        description="Remote field name -> new value",
    )
    match_condition: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("match_condition", "condition_json"),
        description="Which remote record(s) the update applies to",
    )
    context_info: dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("context_info", "additional_info_json"),
        description="Display-only context, never sent to the ERP",
    )
    before_state: dict[str, Any] = Field(default_factory=dict)
    after_state: dict[str, Any] = Field(default_factory=dict)
    status: LifecycleStatus = Field(default=LifecycleStatus.PENDING)
    applied_at: datetime | None = Field(default=None)

    @property
    def is_compilable(self) -> bool:
        """Both the update and the match condition must be present."""
        return bool(self.update_payload) and bool(self.match_condition)


class MutationSession(BaseModel):
    """A named group of proposed changes."""

    id: str
    created_by: str = "system"
    status: SessionStatus = SessionStatus.DRAFT
    created_at: datetime = Field(default_factory=utc_now)


class ReconciliationResult(BaseModel):
    """A proposed change paired with the live record it targets."""

    original: dict[str, Any] = Field(..., description="Live remote snapshot")
    upcoming: dict[str, Any] = Field(default_factory=dict, description="Intended after-state")
    action: ProposedChange
    context_info: dict[str, Any] = Field(default_factory=dict)


class ReconciliationReport(BaseModel):
    """Outcome of a reconciliation pass. Never persisted."""

    ready: bool = False
    task_statuses: list[ReconciliationResult] = Field(default_factory=list)
    project_statuses: list[ReconciliationResult] = Field(default_factory=list)
    dropped_action_ids: list[str] = Field(
        default_factory=list,
        description="Changes whose target was not found upstream",
    )
    reason: str | None = Field(default=None, description="Why the report is not ready")

    @property
    def dropped_count(self) -> int:
        """Number of changes that could not be paired with live state."""
        return len(self.dropped_action_ids)

    @property
    def result_count(self) -> int:
        """Number of paired changes."""
        return len(self.task_statuses) + len(self.project_statuses)

    @classmethod
    def not_ready(cls, reason: str) -> "ReconciliationReport":
        """Build an empty, not-ready report."""
        return cls(ready=False, reason=reason)


# Field patches


class RelationMode(str, Enum):
    """How a relation field's accumulated ids are written."""

    SET = "set"  # replace all links: [[6, 0, ids]]
    LINK = "link"  # add links: [[4, id], ...]


@dataclass
class ScalarValue:
    """A field value that replaces whatever was there."""

    value: Any


@dataclass
class RelationUnion:
    """Member ids accumulated for a relation field, unique and in first-seen order."""

    mode: RelationMode
    ids: list[int] = field(default_factory=list)

    def add(self, ids: Iterable[int]) -> None:
        for member_id in ids:
            if member_id not in self.ids:
                self.ids.append(member_id)

    def encode(self) -> list[Any]:
        if self.mode is RelationMode.SET:
            return [[SET_COMMAND, 0, list(self.ids)]]
        return [[LINK_COMMAND, member_id] for member_id in self.ids]


FieldValue = ScalarValue | RelationUnion


class FieldPatch:
    """Ordered field name -> tagged value mapping for one remote record."""

    def __init__(self) -> None:
        self._fields: dict[str, FieldValue] = {}

    def set_scalar(self, name: str, value: Any) -> None:
        """Set a scalar field; a later value for the same field wins."""
        self._fields[name] = ScalarValue(value)

    def union_relation(self, name: str, ids: Iterable[int], mode: RelationMode) -> None:
        """Add member ids to a relation field without dropping earlier ones."""
        existing = self._fields.get(name)
        if isinstance(existing, RelationUnion) and existing.mode is mode:
            existing.add(ids)
            return
        relation = RelationUnion(mode=mode)
        relation.add(ids)
        self._fields[name] = relation

    def merge(self, other: "FieldPatch") -> None:
        """Fold another patch into this one."""
        for name, value in other.items():
            if isinstance(value, RelationUnion):
                self.union_relation(name, value.ids, value.mode)
            else:
                self.set_scalar(name, value.value)

    def items(self) -> Iterator[tuple[str, FieldValue]]:
        return iter(self._fields.items())

    def to_values(self) -> dict[str, Any]:
        """Render the patch as an Odoo ``write`` values dict."""
        values: dict[str, Any] = {}
        for name, value in self._fields.items():
            if isinstance(value, RelationUnion):
                values[name] = value.encode()
            else:
                values[name] = value.value
        return values

    def __getitem__(self, name: str) -> FieldValue:
        return self._fields[name]

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"<FieldPatch({self.to_values()!r})>"


@dataclass
class CompiledWriteCall:
    """One merged write for exactly one remote record."""

    target_type: str
    target_ids: list[int]
    fields: FieldPatch
    origin_action_id: str
    action_ids: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if len(self.target_ids) != 1:
            raise ValidationError(
                "A compiled write call must target exactly one record",
                field="target_ids",
                value=self.target_ids,
            )


class QueuedCall(BaseModel):
    """Durable queue entry: the exact wire payload plus correlation data."""

    model_config = ConfigDict(populate_by_name=True)

    payload: dict[str, Any] = Field(..., description="Exact JSON-RPC request object")
    action_id: str = Field(..., alias="actionId", description="Originating change id")
    timestamp: int = Field(default_factory=epoch_ms, description="Enqueue time (epoch ms)")

    def to_json(self) -> str:
        """Serialize as ``{"payload": ..., "actionId": ..., "timestamp": ...}``."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "QueuedCall":
        """Parse a serialized queue entry."""
        return cls.model_validate_json(raw)


@dataclass
class CompileOutcome:
    """Result of a compile-and-enqueue pass."""

    enqueued_count: int
    calls: list[CompiledWriteCall] = field(default_factory=list)
