"""
Change families.

A family is a set of change kinds that share one batched live-state read
and one compile strategy: task changes read and write ``project.task``,
team-membership changes read and write ``project.project``.
"""

from dataclasses import dataclass
from typing import Any

from shared.exceptions import ValidationError
from shared.mutations.models import (
    ChangeKind,
    FieldPatch,
    ProposedChange,
    ReconciliationResult,
    RelationMode,
)
from shared.odoo.client import PROJECT_MODEL, TASK_MODEL
from shared.odoo.wire import LINK_COMMAND, SET_COMMAND


def _as_id(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


@dataclass(frozen=True)
class ChangeFamily:
    """Describes how one group of change kinds is reconciled and compiled."""

    name: str
    model: str
    kinds: frozenset[ChangeKind]
    relation_fields: frozenset[str]
    relation_mode: RelationMode
    # x2many commands accepted as ``[command, id]`` pairs; None accepts any
    accepted_commands: frozenset[int] | None = None
    # kinds allowed to write an empty relation (clearing it)
    empty_relation_kinds: frozenset[ChangeKind] = frozenset()

    def accepts(self, change: ProposedChange) -> bool:
        return change.entity_type == self.model and change.change_kind in self.kinds

    def fetch_ids(self, change: ProposedChange) -> list[int]:
        """Ids whose live state must be read for this change."""
        if self.model == PROJECT_MODEL:
            return self._project_ids(change)
        return [change.entity_id]

    def result_target(self, result: ReconciliationResult) -> int | None:
        """The single record id a reconciled change writes to."""
        change = result.action
        if self.model == PROJECT_MODEL:
            live_id = _as_id(result.original.get("id"))
            return live_id if live_id in self._project_ids(change) else None
        return _as_id(change.match_condition.get("id"))

    def build_patch(self, change: ProposedChange) -> FieldPatch:
        """
        Translate a change's update payload into a field patch.

        Raises:
            ValidationError: A relation field carries no usable member ids
        """
        patch = FieldPatch()
        for name, value in change.update_payload.items():
            if name in self.relation_fields:
                ids = self.normalize_relation_ids(value)
                if not ids and change.change_kind not in self.empty_relation_kinds:
                    raise ValidationError(
                        f"Invalid {change.change_kind.value} change {change.id}: "
                        f"no valid ids in {name}",
                        field=name,
                        value=value,
                    )
                patch.union_relation(name, ids, self.relation_mode)
            elif value is not None:
                patch.set_scalar(name, value)
        return patch

    def normalize_relation_ids(self, value: Any) -> list[int]:
        """
        Extract member ids from the shapes the dashboard sends.

        Accepts plain ids, ``[command, id]`` pairs and ``[6, 0, [ids]]``.
        """
        if not isinstance(value, list):
            return []
        ids: list[int] = []
        for entry in value:
            plain = _as_id(entry)
            if plain is not None:
                ids.append(plain)
                continue
            if not isinstance(entry, list | tuple) or len(entry) < 2:
                continue
            command = entry[0]
            if command == SET_COMMAND and len(entry) >= 3 and isinstance(entry[2], list):
                if self.accepted_commands is None or SET_COMMAND in self.accepted_commands:
                    ids.extend(i for i in entry[2] if _as_id(i) is not None)
                continue
            if self.accepted_commands is not None and command not in self.accepted_commands:
                continue
            member_id = _as_id(entry[1])
            if member_id is not None:
                ids.append(member_id)
        return ids

    @staticmethod
    def _project_ids(change: ProposedChange) -> list[int]:
        raw = change.match_condition.get("project_ids")
        if not isinstance(raw, list):
            return []
        return [i for i in raw if _as_id(i) is not None]


TASK_FAMILY = ChangeFamily(
    name="task",
    model=TASK_MODEL,
    kinds=frozenset({ChangeKind.ASSIGN, ChangeKind.UNASSIGN, ChangeKind.CHANGE_STAGE}),
    relation_fields=frozenset({"user_ids"}),
    relation_mode=RelationMode.SET,
    empty_relation_kinds=frozenset({ChangeKind.UNASSIGN}),
)

TEAM_FAMILY = ChangeFamily(
    name="team",
    model=PROJECT_MODEL,
    kinds=frozenset({ChangeKind.ADD_TO_TEAM}),
    relation_fields=frozenset({"user_ids"}),
    relation_mode=RelationMode.LINK,
    accepted_commands=frozenset({LINK_COMMAND}),
)

# Compile order: team membership first, then task writes
FAMILIES: tuple[ChangeFamily, ...] = (TEAM_FAMILY, TASK_FAMILY)


def family_for(change: ProposedChange) -> ChangeFamily | None:
    """Find the family handling a change, if any."""
    for family in FAMILIES:
        if family.accepts(change):
            return family
    return None
