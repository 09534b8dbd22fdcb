"""
Mutation session database models.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.database.base import Base, TimestampMixin


class MutationSessionRecord(Base, TimestampMixin):
    """A group of proposed changes applied together."""

    __tablename__ = "mutation_sessions"

    # Primary key (assigned by the dashboard)
    id: Mapped[str] = mapped_column(String(64), primary_key=True, nullable=False)

    created_by: Mapped[str] = mapped_column(String(255), nullable=False, default="system")
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="draft")

    # Relationships
    actions: Mapped[list["ActionRecord"]] = relationship(
        "ActionRecord",
        back_populates="session",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("idx_mutation_sessions_status", "status"),)

    def __repr__(self) -> str:
        return f"<MutationSessionRecord(id={self.id}, status={self.status})>"


class ActionRecord(Base, TimestampMixin):
    """Audit record of one proposed change and its lifecycle."""

    __tablename__ = "mutation_actions"

    # Primary key
    id: Mapped[str] = mapped_column(String(64), primary_key=True, nullable=False)

    # Foreign keys
    session_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("mutation_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Target
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    change_kind: Mapped[str] = mapped_column(String(32), nullable=False)

    # Change content
    update_payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    match_condition: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    context_info: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    before_state: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    after_state: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # Lifecycle
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending")
    # Id of the last queued call this change was compiled into
    origin_action_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    applied_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    session: Mapped["MutationSessionRecord"] = relationship(
        "MutationSessionRecord", back_populates="actions"
    )

    __table_args__ = (
        Index("idx_mutation_actions_entity", "entity_id", "change_kind"),
        Index("idx_mutation_actions_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<ActionRecord(id={self.id}, session_id={self.session_id}, "
            f"kind={self.change_kind}, status={self.status})>"
        )


class ActionCallRecord(Base, TimestampMixin):
    """
    One queued write call an action was compiled into.

    A change can land in several calls (a team change over two projects),
    so its lifecycle status is derived from all of its call rows.
    """

    __tablename__ = "mutation_action_calls"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    action_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("mutation_actions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # actionId carried by the queued call
    origin_action_id: Mapped[str] = mapped_column(String(64), nullable=False)
    # Shared by the rows of one queued call
    call_key: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending")
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (Index("idx_mutation_action_calls_origin", "origin_action_id", "status"),)

    def __repr__(self) -> str:
        return (
            f"<ActionCallRecord(action_id={self.action_id}, "
            f"origin={self.origin_action_id}, status={self.status})>"
        )
