"""
Mutation session repository for database operations.
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from services.planner.app.db.repositories.base import BaseRepository
from shared.models.mutation import ActionCallRecord, ActionRecord, MutationSessionRecord


class MutationSessionRepository(BaseRepository[MutationSessionRecord]):
    """Repository for MutationSessionRecord model."""

    def __init__(self, db_session: AsyncSession):
        """
        Initialize session repository.

        Args:
            db_session: Database session
        """
        super().__init__(db_session, MutationSessionRecord)

    async def upsert_session(
        self,
        session_id: str,
        status: str,
        created_by: str = "system",
    ) -> MutationSessionRecord:
        """
        Create a session or update the status of an existing one.

        Args:
            session_id: Session ID
            status: Session status
            created_by: Creator, used only when the session is new

        Returns:
            Session instance
        """
        session = await self.get_by_id(session_id)
        if session is None:
            return await self.create(id=session_id, status=status, created_by=created_by)
        return await self.update(session, status=status)

    async def set_status(self, session_id: str, status: str) -> MutationSessionRecord | None:
        """
        Set a session's status.

        Returns:
            Updated session or None if not found
        """
        session = await self.get_by_id(session_id)
        if session is None:
            return None
        return await self.update(session, status=status)

    async def delete_session(self, session_id: str) -> bool:
        """
        Delete a session together with its actions and their call links.

        Returns:
            True if the session existed
        """
        session = await self.get_by_id(session_id)
        if session is None:
            return False
        session_actions = select(ActionRecord.id).where(ActionRecord.session_id == session_id)
        await self.db.execute(
            delete(ActionCallRecord).where(ActionCallRecord.action_id.in_(session_actions))
        )
        await self.db.execute(delete(ActionRecord).where(ActionRecord.session_id == session_id))
        await self.delete(session)
        return True
