"""Community hub baseline: users, categories, questions, comments, votes, follows, notifications.

Revision ID: 001_community_baseline
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_community_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

BigIntId = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

VOTE_TYPES = ("UP", "DOWN")
NOTIFICATION_TYPES = (
    "NEW_COMMENT",
    "QUESTION_SOLVED",
    "NEW_FOLLOWER",
    "EXPERT_REPLY",
    "UPVOTE_MILESTONE",
    "BADGE_EARNED",
    "SYSTEM_ALERT",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # --- Users ---
    op.create_table(
        "community_users",
        sa.Column("id", BigIntId, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=True),
        sa.Column("first_name", sa.String(64), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(64), nullable=False, server_default=""),
        sa.Column("avatar", sa.Text(), nullable=True),
        sa.Column("bio", sa.String(500), nullable=True),
        sa.Column("location", sa.String(128), nullable=True),
        sa.Column("farm_name", sa.String(128), nullable=True),
        sa.Column("farm_size", sa.String(16), nullable=True),
        sa.Column("farm_type", sa.String(16), nullable=True),
        sa.Column("experience", sa.String(16), nullable=True),
        sa.Column("specialties", JSONType, nullable=False, server_default="[]"),
        sa.Column("reputation", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("badges", JSONType, nullable=False, server_default="[]"),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_moderator", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_expert", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notification_preferences", JSONType, nullable=False, server_default="{}"),
        *_timestamps(),
        sa.Column("last_active", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("email", name="uq_community_users_email"),
        sa.UniqueConstraint("username", name="uq_community_users_username"),
    )

    # --- Categories ---
    op.create_table(
        "categories",
        sa.Column("id", BigIntId, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("slug", sa.String(64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(16), nullable=False, server_default="#22c55e"),
        sa.Column("icon", sa.String(64), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("name", name="uq_categories_name"),
        sa.UniqueConstraint("slug", name="uq_categories_slug"),
    )

    # --- Questions ---
    op.create_table(
        "questions",
        sa.Column("id", BigIntId, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("tags", JSONType, nullable=False, server_default="[]"),
        sa.Column("images", JSONType, nullable=False, server_default="[]"),
        sa.Column("is_urgent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_pinned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_solved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_anonymous", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("vote_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "author_id", BigIntId,
            sa.ForeignKey("community_users.id", ondelete="RESTRICT", name="fk_questions_author_id_community_users"),
            nullable=False,
        ),
        sa.Column(
            "category_id", BigIntId,
            sa.ForeignKey("categories.id", ondelete="RESTRICT", name="fk_questions_category_id_categories"),
            nullable=False,
        ),
        *_timestamps(),
    )
    op.create_index("ix_questions_author_id", "questions", ["author_id"])
    op.create_index("ix_questions_category_created", "questions", ["category_id", "created_at"])

    # --- Comments (reply tree) ---
    op.create_table(
        "comments",
        sa.Column("id", BigIntId, primary_key=True, autoincrement=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("images", JSONType, nullable=False, server_default="[]"),
        sa.Column("is_accepted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_by_expert", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("vote_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "author_id", BigIntId,
            sa.ForeignKey("community_users.id", ondelete="RESTRICT", name="fk_comments_author_id_community_users"),
            nullable=False,
        ),
        sa.Column(
            "question_id", BigIntId,
            sa.ForeignKey("questions.id", ondelete="CASCADE", name="fk_comments_question_id_questions"),
            nullable=False,
        ),
        sa.Column(
            "parent_id", BigIntId,
            sa.ForeignKey("comments.id", ondelete="CASCADE", name="fk_comments_parent_id_comments"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_comments_author_id", "comments", ["author_id"])
    op.create_index("ix_comments_question_id", "comments", ["question_id"])
    op.create_index("ix_comments_parent_id", "comments", ["parent_id"])

    # --- Votes ---
    op.create_table(
        "votes",
        sa.Column("id", BigIntId, primary_key=True, autoincrement=True),
        sa.Column("type", sa.Enum(*VOTE_TYPES, name="vote_type"), nullable=False),
        sa.Column(
            "user_id", BigIntId,
            sa.ForeignKey("community_users.id", ondelete="CASCADE", name="fk_votes_user_id_community_users"),
            nullable=False,
        ),
        sa.Column(
            "question_id", BigIntId,
            sa.ForeignKey("questions.id", ondelete="CASCADE", name="fk_votes_question_id_questions"),
            nullable=True,
        ),
        sa.Column(
            "comment_id", BigIntId,
            sa.ForeignKey("comments.id", ondelete="CASCADE", name="fk_votes_comment_id_comments"),
            nullable=True,
        ),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "question_id", name="uq_votes_user_question"),
        sa.UniqueConstraint("user_id", "comment_id", name="uq_votes_user_comment"),
        sa.CheckConstraint("(question_id IS NULL) <> (comment_id IS NULL)", name="ck_votes_single_target"),
    )
    op.create_index("ix_votes_question_id", "votes", ["question_id"])
    op.create_index("ix_votes_comment_id", "votes", ["comment_id"])

    # --- Follows ---
    op.create_table(
        "follows",
        sa.Column("id", BigIntId, primary_key=True, autoincrement=True),
        sa.Column(
            "follower_id", BigIntId,
            sa.ForeignKey("community_users.id", ondelete="CASCADE", name="fk_follows_follower_id_community_users"),
            nullable=False,
        ),
        sa.Column(
            "following_id", BigIntId,
            sa.ForeignKey("community_users.id", ondelete="CASCADE", name="fk_follows_following_id_community_users"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
        sa.CheckConstraint("follower_id <> following_id", name="ck_follows_no_self_follow"),
    )
    op.create_index("ix_follows_following_id", "follows", ["following_id"])

    # --- Notifications ---
    op.create_table(
        "notifications",
        sa.Column("id", BigIntId, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", BigIntId,
            sa.ForeignKey("community_users.id", ondelete="CASCADE", name="fk_notifications_user_id_community_users"),
            nullable=False,
        ),
        sa.Column("type", sa.Enum(*NOTIFICATION_TYPES, name="notification_type"), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("data", JSONType, nullable=False, server_default="{}"),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user_created", "notifications", ["user_id", "created_at"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("follows")
    op.drop_table("votes")
    op.drop_table("comments")
    op.drop_table("questions")
    op.drop_table("categories")
    op.drop_table("community_users")
    sa.Enum(name="notification_type").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="vote_type").drop(op.get_bind(), checkfirst=True)
