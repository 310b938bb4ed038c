"""Initial migration: poll responses

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Unique constraints are the duplicate-vote authority; NULL device ids never collide
    op.create_table(
        "poll_responses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("session_id", sa.String(64), nullable=False),
        sa.Column("device_id", sa.String(64), nullable=True),
        sa.Column("ip", sa.String(64), nullable=False),
        sa.Column("gender", sa.String(10), nullable=False),
        sa.Column("age", sa.Integer(), nullable=False),
        sa.Column("answer", sa.String(3), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("session_id", name="uq_poll_responses_session_id"),
        sa.UniqueConstraint("device_id", name="uq_poll_responses_device_id"),
        sa.CheckConstraint("age >= 16 AND age <= 120", name="ck_poll_responses_age_range"),
        sa.CheckConstraint("answer IN ('yes', 'no')", name="ck_poll_responses_answer"),
    )
    op.create_index("ix_poll_responses_ip", "poll_responses", ["ip"])
    op.create_index("ix_poll_responses_gender", "poll_responses", ["gender"])
    op.create_index("ix_poll_responses_answer", "poll_responses", ["answer"])
    op.create_index("ix_poll_responses_created_at", "poll_responses", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_poll_responses_created_at", table_name="poll_responses")
    op.drop_index("ix_poll_responses_answer", table_name="poll_responses")
    op.drop_index("ix_poll_responses_gender", table_name="poll_responses")
    op.drop_index("ix_poll_responses_ip", table_name="poll_responses")
    op.drop_table("poll_responses")
