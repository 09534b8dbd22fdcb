"""
Mutation pipeline data model and change builders.

The reconciler and compiler live in ``shared.mutations.reconciler`` and
``shared.mutations.compiler``.
"""

from shared.mutations.builders import (
    build_add_member_to_team_change,
    build_stage_change,
    build_task_assign_change,
    build_task_unassign_change,
)
from shared.mutations.models import (
    ChangeKind,
    CompiledWriteCall,
    CompileOutcome,
    FieldPatch,
    LifecycleStatus,
    MutationSession,
    ProposedChange,
    QueuedCall,
    ReconciliationReport,
    ReconciliationResult,
    RelationMode,
    SessionStatus,
)

__all__ = [
    "ChangeKind",
    "CompiledWriteCall",
    "CompileOutcome",
    "FieldPatch",
    "LifecycleStatus",
    "MutationSession",
    "ProposedChange",
    "QueuedCall",
    "ReconciliationReport",
    "ReconciliationResult",
    "RelationMode",
    "SessionStatus",
    "build_add_member_to_team_change",
    "build_stage_change",
    "build_task_assign_change",
    "build_task_unassign_change",
]
