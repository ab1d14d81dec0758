"""Record the reputation each vote actually applied.

Revision ID: 002_vote_reputation_delta
Revises: 001_community_baseline
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "002_vote_reputation_delta"
down_revision: str | None = "001_community_baseline"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.add_column(
        "votes",
        sa.Column("reputation_delta", sa.Integer(), nullable=False, server_default="0"),
    )
    # Existing votes are assumed to have applied their full nominal amount
    op.execute(
        "UPDATE votes SET reputation_delta = CASE "
        "WHEN question_id IS NOT NULL AND type = 'UP' THEN 5 "
        "WHEN comment_id IS NOT NULL AND type = 'UP' THEN 10 "
        "ELSE -2 END"
    )


def downgrade() -> None:
    with op.batch_alter_table("votes") as batch_op:
        batch_op.drop_column("reputation_delta")
