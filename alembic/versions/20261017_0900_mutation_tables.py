"""mutation_tables

Revision ID: 001
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create mutation_sessions table
    op.create_table(
        "mutation_sessions",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("created_by", sa.String(length=255), nullable=False, server_default="system"),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="draft"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_mutation_sessions_status", "mutation_sessions", ["status"])

    # Create mutation_actions table
    op.create_table(
        "mutation_actions",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("session_id", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("change_kind", sa.String(length=32), nullable=False),
        sa.Column("update_payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("match_condition", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("context_info", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("before_state", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("after_state", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("origin_action_id", sa.String(length=64), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["session_id"], ["mutation_sessions.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_mutation_actions_session_id", "mutation_actions", ["session_id"])
    op.create_index(
        "ix_mutation_actions_origin_action_id", "mutation_actions", ["origin_action_id"]
    )
    op.create_index(
        "idx_mutation_actions_entity", "mutation_actions", ["entity_id", "change_kind"]
    )
    op.create_index("idx_mutation_actions_status", "mutation_actions", ["status"])

    # Create mutation_action_calls table
    op.create_table(
        "mutation_action_calls",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("action_id", sa.String(length=64), nullable=False),
        sa.Column("origin_action_id", sa.String(length=64), nullable=False),
        sa.Column("call_key", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["action_id"], ["mutation_actions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_mutation_action_calls_action_id", "mutation_action_calls", ["action_id"]
    )
    op.create_index(
        "ix_mutation_action_calls_call_key", "mutation_action_calls", ["call_key"]
    )
    op.create_index(
        "idx_mutation_action_calls_origin",
        "mutation_action_calls",
        ["origin_action_id", "status"],
    )


def downgrade() -> None:
    op.drop_table("mutation_action_calls")
    op.drop_table("mutation_actions")
    op.drop_table("mutation_sessions")
