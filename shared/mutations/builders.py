"""
Builders for proposed changes originated by the dashboard.

Each builder returns a pending ProposedChange whose ``update_payload`` holds
the literal Odoo fields to write and whose ``match_condition`` pins the
target record(s).
"""

import uuid
from typing import Any

from shared.mutations.models import ChangeKind, ProposedChange
from shared.odoo.client import PROJECT_MODEL, TASK_MODEL
from shared.odoo.wire import LINK_COMMAND


def new_change_id() -> str:
    """Generate a unique change id."""
    return uuid.uuid4().hex


def _many2one_id(value: Any) -> int | None:
    """Odoo returns many2one fields as ``[id, display_name]`` or ``False``."""
    if isinstance(value, list | tuple) and value:
        return int(value[0])
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _task_condition(task: dict[str, Any]) -> dict[str, Any]:
    condition: dict[str, Any] = {"id": task["id"]}
    project_id = _many2one_id(task.get("project_id"))
    if project_id:
        condition["project_id"] = project_id
    return condition


def build_task_assign_change(
    session_id: str,
    task: dict[str, Any],
    member: dict[str, Any],
    change_id: str | None = None,
) -> ProposedChange:
    """
    Propose assigning a task to a team member.

    Args:
        session_id: Owning session
        task: Task record (at least ``id``; ``project_id`` and ``user_ids`` if known)
        member: Team member record (at least ``id``)
        change_id: Optional explicit change id

    Returns:
        Pending assign change
    """
    current = list(task.get("user_ids") or [])
    return ProposedChange(
        id=change_id or new_change_id(),
        session_id=session_id,
        description=f"assign task {task['id']} to {member.get('name', member['id'])}",
        entity_type=TASK_MODEL,
        entity_id=task["id"],
        change_kind=ChangeKind.ASSIGN,
        update_payload={"user_ids": [member["id"]]},
        match_condition=_task_condition(task),
        context_info={"member": member},
        before_state={"user_ids": current},
        after_state={"user_ids": [member["id"]]},
    )


def build_task_unassign_change(
    session_id: str,
    task: dict[str, Any],
    remaining_user_ids: list[int],
    change_id: str | None = None,
) -> ProposedChange:
    """
    Propose narrowing a task's assignees to ``remaining_user_ids``.

    An empty list clears every assignee.
    """
    return ProposedChange(
        id=change_id or new_change_id(),
        session_id=session_id,
        description=f"unassign task {task['id']}",
        entity_type=TASK_MODEL,
        entity_id=task["id"],
        change_kind=ChangeKind.UNASSIGN,
        update_payload={"user_ids": list(remaining_user_ids)},
        match_condition=_task_condition(task),
        before_state={"user_ids": list(task.get("user_ids") or [])},
        after_state={"user_ids": list(remaining_user_ids)},
    )


def build_stage_change(
    session_id: str,
    task: dict[str, Any],
    stage_id: int,
    change_id: str | None = None,
) -> ProposedChange:
    """Propose moving a task to another stage."""
    return ProposedChange(
        id=change_id or new_change_id(),
        session_id=session_id,
        description=f"move task {task['id']} to stage {stage_id}",
        entity_type=TASK_MODEL,
        entity_id=task["id"],
        change_kind=ChangeKind.CHANGE_STAGE,
        update_payload={"stage_id": stage_id},
        match_condition=_task_condition(task),
        before_state={"stage_id": _many2one_id(task.get("stage_id"))},
        after_state={"stage_id": stage_id},
    )


def build_add_member_to_team_change(
    session_id: str,
    member: dict[str, Any],
    project_ids: list[int],
    change_id: str | None = None,
) -> ProposedChange:
    """
    Propose adding a member to the teams of one or more projects.

    Args:
        session_id: Owning session
        member: Team member record (at least ``id``)
        project_ids: Projects whose team gains the member

    Returns:
        Pending add-to-team change
    """
    return ProposedChange(
        id=change_id or new_change_id(),
        session_id=session_id,
        description=f"add {member.get('name', member['id'])} to projects {project_ids}",
        entity_type=PROJECT_MODEL,
        entity_id=project_ids[0] if project_ids else 0,
        change_kind=ChangeKind.ADD_TO_TEAM,
        update_payload={"user_ids": [[LINK_COMMAND, member["id"]]]},
        match_condition={"project_ids": list(project_ids)},
        context_info={"member": member},
        after_state={"added_user_id": member["id"]},
    )
