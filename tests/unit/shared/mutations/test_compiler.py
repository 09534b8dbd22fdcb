"""
Unit tests for the payload compiler.

Tests merging into one write per record, ordering and atomic enqueue.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.exceptions import AuthenticationError, NotReadyError
from shared.mutations.builders import (
    build_add_member_to_team_change,
    build_stage_change,
    build_task_assign_change,
)
from shared.mutations.compiler import PayloadCompiler
from shared.mutations.models import ReconciliationReport, ReconciliationResult
from shared.odoo.client import OdooClient


def task_result(change, record_id=None) -> ReconciliationResult:
    """Pair a task change with a live record."""
    return ReconciliationResult(
        original={"id": record_id or change.entity_id},
        upcoming=change.after_state,
        action=change,
    )


def team_result(change, project_id) -> ReconciliationResult:
    """Pair a team change with a live project."""
    return ReconciliationResult(original={"id": project_id}, action=change)


@pytest.fixture
def compiler(odoo_client, memory_queue):
    """Create compiler with a real client and in-memory queue."""
    return PayloadCompiler(odoo_client, memory_queue)


class TestCompile:
    """Tests for compile."""

    def test_single_assign(self, compiler, assign_change):
        """Test assigning task 42 to member 7."""
        report = ReconciliationReport(ready=True, task_statuses=[task_result(assign_change)])

        calls = compiler.compile(report)

        assert len(calls) == 1
        call = calls[0]
        assert call.target_type == "project.task"
        assert call.target_ids == [42]
        assert call.fields.to_values() == {"user_ids": [[6, 0, [7]]]}
        assert call.origin_action_id == "a1"
        assert call.action_ids == ["a1"]

    def test_two_members_same_project(self, compiler):
        """Test two team additions on one project merge into one link write."""
        first = build_add_member_to_team_change("s1", {"id": 7}, [5], change_id="t1")
        second = build_add_member_to_team_change("s1", {"id": 9}, [5], change_id="t2")
        report = ReconciliationReport(
            ready=True,
            project_statuses=[team_result(first, 5), team_result(second, 5)],
        )

        calls = compiler.compile(report)

        assert len(calls) == 1
        assert calls[0].target_type == "project.project"
        assert calls[0].target_ids == [5]
        assert calls[0].fields.to_values() == {"user_ids": [[4, 7], [4, 9]]}
        assert calls[0].origin_action_id == "t1"
        assert calls[0].action_ids == ["t1", "t2"]

    def test_changes_on_same_task_merge(self, compiler):
        """Test an assign and a stage move on one task become one write."""
        assign = build_task_assign_change("s1", {"id": 42}, {"id": 7}, change_id="c1")
        stage = build_stage_change("s1", {"id": 42}, 3, change_id="c2")
        report = ReconciliationReport(
            ready=True, task_statuses=[task_result(assign), task_result(stage)]
        )

        calls = compiler.compile(report)

        assert len(calls) == 1
        assert calls[0].fields.to_values() == {"user_ids": [[6, 0, [7]]], "stage_id": 3}
        assert calls[0].action_ids == ["c1", "c2"]

    def test_assigns_on_same_task_union_members(self, compiler):
        """Test two assigns on one task keep both members."""
        first = build_task_assign_change("s1", {"id": 42}, {"id": 7}, change_id="c1")
        second = build_task_assign_change("s1", {"id": 42}, {"id": 9}, change_id="c2")
        report = ReconciliationReport(
            ready=True, task_statuses=[task_result(first), task_result(second)]
        )

        calls = compiler.compile(report)

        assert calls[0].fields.to_values() == {"user_ids": [[6, 0, [7, 9]]]}

    def test_one_call_per_record(self, compiler):
        """Test changes on different tasks never share a call."""
        report = ReconciliationReport(
            ready=True,
            task_statuses=[
                task_result(build_stage_change("s1", {"id": 1}, 3)),
                task_result(build_stage_change("s1", {"id": 2}, 3)),
            ],
        )

        calls = compiler.compile(report)

        assert [call.target_ids for call in calls] == [[1], [2]]

    def test_team_calls_come_first(self, compiler, assign_change, team_change):
        """Test team membership is written before task assignment."""
        report = ReconciliationReport(
            ready=True,
            task_statuses=[task_result(assign_change)],
            project_statuses=[team_result(team_change, 5)],
        )

        calls = compiler.compile(report)

        assert [call.target_type for call in calls] == ["project.project", "project.task"]

    def test_invalid_changes_are_skipped(self, compiler, assign_change):
        """Test incomplete changes produce no call."""
        no_payload = assign_change.model_copy(update={"id": "x1", "update_payload": {}})
        no_members = assign_change.model_copy(
            update={"id": "x2", "update_payload": {"user_ids": []}}
        )
        no_condition = assign_change.model_copy(update={"id": "x3", "match_condition": {}})
        only_none = assign_change.model_copy(
            update={"id": "x4", "update_payload": {"stage_id": None}}
        )
        report = ReconciliationReport(
            ready=True,
            task_statuses=[
                task_result(no_payload),
                task_result(no_members),
                task_result(no_condition),
                task_result(only_none),
            ],
        )

        assert compiler.compile(report) == []

    def test_skipped_change_does_not_block_others(self, compiler, assign_change):
        """Test a bad change on the same task leaves the good one intact."""
        bad = assign_change.model_copy(update={"id": "bad", "update_payload": {"user_ids": []}})
        report = ReconciliationReport(
            ready=True, task_statuses=[task_result(bad), task_result(assign_change)]
        )

        calls = compiler.compile(report)

        assert len(calls) == 1
        assert calls[0].action_ids == ["a1"]
        assert calls[0].origin_action_id == "a1"


class TestCompileAndEnqueue:
    """Tests for compile_and_enqueue."""

    @pytest.mark.asyncio
    async def test_enqueues_exact_payload(self, compiler, memory_queue, assign_change):
        """Test the queued entry carries the full write request."""
        report = ReconciliationReport(ready=True, task_statuses=[task_result(assign_change)])

        outcome = await compiler.compile_and_enqueue(report)

        assert outcome.enqueued_count == 1
        assert await memory_queue.length() == 1
        item = await memory_queue.dequeue(0)
        assert item.action_id == "a1"
        assert item.timestamp > 0
        assert item.payload["params"]["args"] == [
            "planboard",
            2,
            "secret-key",
            "project.task",
            "write",
            [[42], {"user_ids": [[6, 0, [7]]]}],
        ]

    @pytest.mark.asyncio
    async def test_queue_order_follows_compile_order(
        self, compiler, memory_queue, assign_change, team_change
    ):
        """Test team writes are dequeued before task writes."""
        report = ReconciliationReport(
            ready=True,
            task_statuses=[task_result(assign_change)],
            project_statuses=[team_result(team_change, 5)],
        )

        await compiler.compile_and_enqueue(report)

        first = await memory_queue.dequeue(0)
        second = await memory_queue.dequeue(0)
        assert first.action_id == "t1"
        assert second.action_id == "a1"
        assert first.payload["id"] < second.payload["id"]

    @pytest.mark.asyncio
    async def test_nothing_to_enqueue(self, compiler, memory_queue):
        """Test a ready report without results."""
        outcome = await compiler.compile_and_enqueue(ReconciliationReport(ready=True))

        assert outcome.enqueued_count == 0
        assert outcome.calls == []
        assert await memory_queue.length() == 0

    @pytest.mark.asyncio
    async def test_not_ready_raises(self, compiler, memory_queue, assign_change):
        """Test a not-ready report is refused."""
        report = ReconciliationReport(
            ready=False, task_statuses=[task_result(assign_change)], reason="stale"
        )

        with pytest.raises(NotReadyError) as exc_info:
            await compiler.compile_and_enqueue(report)

        assert exc_info.value.message == "stale"
        assert await memory_queue.length() == 0

    @pytest.mark.asyncio
    async def test_authentication_failure_enqueues_nothing(
        self, memory_queue, assign_change, team_change
    ):
        """Test a failure while building payloads leaves the queue empty."""
        client = MagicMock(spec=OdooClient)
        client.build_write_call_payload = AsyncMock(
            side_effect=[{"id": 1}, AuthenticationError("Odoo authentication failed")]
        )
        compiler = PayloadCompiler(client, memory_queue)
        report = ReconciliationReport(
            ready=True,
            task_statuses=[task_result(assign_change)],
            project_statuses=[team_result(team_change, 5)],
        )

        with pytest.raises(AuthenticationError):
            await compiler.compile_and_enqueue(report)

        assert await memory_queue.length() == 0

    @pytest.mark.asyncio
    async def test_single_batch_enqueue(self, odoo_client, assign_change, team_change):
        """Test all calls are handed to the queue at once."""
        queue = MagicMock()
        queue.name = "mock"
        queue.enqueue_batch = AsyncMock()
        compiler = PayloadCompiler(odoo_client, queue)
        report = ReconciliationReport(
            ready=True,
            task_statuses=[task_result(assign_change)],
            project_statuses=[team_result(team_change, 5)],
        )

        await compiler.compile_and_enqueue(report)

        queue.enqueue_batch.assert_awaited_once()
        items = queue.enqueue_batch.await_args.args[0]
        assert [item.action_id for item in items] == ["t1", "a1"]
