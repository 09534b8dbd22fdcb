"""
Action repository for database operations.

Tracks the lifecycle of each proposed change from enqueue to outcome.
"""

from uuid import uuid4

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from services.planner.app.db.repositories.base import BaseRepository
from shared.database.base import utc_now
from shared.models.mutation import ActionCallRecord, ActionRecord
from shared.mutations.models import LifecycleStatus, ProposedChange


class ActionRepository(BaseRepository[ActionRecord]):
    """Repository for ActionRecord model."""

    def __init__(self, db_session: AsyncSession):
        """
        Initialize action repository.

        Args:
            db_session: Database session
        """
        super().__init__(db_session, ActionRecord)

    async def upsert_actions(
        self,
        session_id: str,
        changes: list[ProposedChange],
        status: str = LifecycleStatus.PENDING.value,
    ) -> list[ActionRecord]:
        """
        Store proposed changes, replacing earlier versions of the same ids.

        Args:
            session_id: Owning session
            changes: Changes to store
            status: Lifecycle status to record

        Returns:
            Stored action records, in input order
        """
        # A re-applied change starts over with no calls
        await self._clear_calls([change.id for change in changes])
        records: list[ActionRecord] = []
        for change in changes:
            values = {
                "session_id": session_id,
                "description": change.description,
                "entity_type": change.entity_type,
                "entity_id": change.entity_id,
                "change_kind": change.change_kind.value,
                "update_payload": change.update_payload,
                "match_condition": change.match_condition,
                "context_info": change.context_info,
                "before_state": change.before_state,
                "after_state": change.after_state,
                "status": status,
                "error": None,
                "applied_at": None,
            }
            existing = await self.get_by_id(change.id)
            if existing is None:
                records.append(await self.create(id=change.id, **values))
            else:
                records.append(await self.update(existing, **values))
        return records

    async def list_by_session(self, session_id: str) -> list[ActionRecord]:
        """
        List a session's actions in creation order.

        Args:
            session_id: Session ID

        Returns:
            Action records
        """
        stmt = (
            select(ActionRecord)
            .where(ActionRecord.session_id == session_id)
            .order_by(ActionRecord.created_at.asc(), ActionRecord.id.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_by_entity(
        self,
        entity_id: int,
        change_kind: str | None = None,
    ) -> list[ActionRecord]:
        """
        Find actions targeting a remote record.

        Args:
            entity_id: Remote record id
            change_kind: Optional change kind filter

        Returns:
            Matching action records, newest first
        """
        stmt = select(ActionRecord).where(ActionRecord.entity_id == entity_id)
        if change_kind is not None:
            stmt = stmt.where(ActionRecord.change_kind == change_kind)
        stmt = stmt.order_by(ActionRecord.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def mark_enqueued(self, action_ids: list[str], origin_action_id: str) -> int:
        """
        Link actions to one queued call they were compiled into.

        Each call gets its own row per action, so a change compiled into
        several calls stays pending until every one of them has reported.

        Returns:
            Number of actions updated
        """
        records = await self.get_by_ids(action_ids)
        call_key = uuid4().hex
        for record in records:
            record.origin_action_id = origin_action_id
            record.status = LifecycleStatus.PENDING.value
            self.db.add(
                ActionCallRecord(
                    action_id=record.id,
                    origin_action_id=origin_action_id,
                    call_key=call_key,
                    status=LifecycleStatus.PENDING.value,
                )
            )
        await self.db.flush()
        return len(records)

    async def mark_outcome(
        self,
        origin_action_id: str,
        success: bool,
        error: str | None = None,
    ) -> list[ActionRecord]:
        """
        Record the outcome of a queued call on every action compiled into it.

        Results are matched to the oldest pending call carrying
        ``origin_action_id``; calls leave the queue in the order they were
        enqueued. An action becomes ``applied`` once all of its calls
        succeeded and ``failed`` as soon as one of them failed. A later
        success never clears a failure.

        Args:
            origin_action_id: Action id carried by the queued call
            success: Whether the call was acknowledged
            error: Failure message

        Returns:
            Action records whose calls were updated
        """
        stmt = (
            select(ActionCallRecord)
            .where(
                ActionCallRecord.origin_action_id == origin_action_id,
                ActionCallRecord.status == LifecycleStatus.PENDING.value,
            )
            .order_by(ActionCallRecord.id.asc())
            .limit(1)
        )
        oldest = (await self.db.execute(stmt)).scalar_one_or_none()
        if oldest is None:
            return await self._mark_unlinked(origin_action_id, success, error)

        result = await self.db.execute(
            select(ActionCallRecord).where(ActionCallRecord.call_key == oldest.call_key)
        )
        calls = list(result.scalars().all())
        for call in calls:
            call.status = (
                LifecycleStatus.APPLIED.value if success else LifecycleStatus.FAILED.value
            )
            call.error = None if success else error
        await self.db.flush()

        records = await self.get_by_ids([call.action_id for call in calls])
        for record in records:
            await self._derive_status(record)
        await self.db.flush()
        return records

    async def _derive_status(self, record: ActionRecord) -> None:
        result = await self.db.execute(
            select(ActionCallRecord)
            .where(ActionCallRecord.action_id == record.id)
            .order_by(ActionCallRecord.id.asc())
        )
        calls = list(result.scalars().all())
        failures = [call for call in calls if call.status == LifecycleStatus.FAILED.value]
        if failures:
            record.status = LifecycleStatus.FAILED.value
            record.error = failures[0].error
            record.applied_at = None
        elif all(call.status == LifecycleStatus.APPLIED.value for call in calls):
            record.status = LifecycleStatus.APPLIED.value
            record.error = None
            record.applied_at = utc_now()
        else:
            record.status = LifecycleStatus.PENDING.value

    async def _mark_unlinked(
        self, action_id: str, success: bool, error: str | None
    ) -> list[ActionRecord]:
        # Outcome for an action never linked to a call, e.g. stored by an older apply
        record = await self.get_by_id(action_id)
        if record is None or await self._has_calls(action_id):
            return []
        if success:
            if record.status != LifecycleStatus.FAILED.value:
                record.status = LifecycleStatus.APPLIED.value
                record.applied_at = utc_now()
        else:
            record.status = LifecycleStatus.FAILED.value
            record.error = error
        await self.db.flush()
        return [record]

    async def _has_calls(self, action_id: str) -> bool:
        result = await self.db.execute(
            select(ActionCallRecord.id).where(ActionCallRecord.action_id == action_id).limit(1)
        )
        return result.first() is not None

    async def _clear_calls(self, action_ids: list[str]) -> None:
        if not action_ids:
            return
        await self.db.execute(
            delete(ActionCallRecord).where(ActionCallRecord.action_id.in_(action_ids))
        )

    async def mark_skipped(self, action_ids: list[str], reason: str) -> int:
        """
        Mark actions that were dropped before reaching the queue as failed.

        Returns:
            Number of actions updated
        """
        records = await self.get_by_ids(action_ids)
        for record in records:
            record.status = LifecycleStatus.FAILED.value
            record.error = reason
        await self.db.flush()
        return len(records)
