"""ORM models for the community hub.

Seven tables: community users, categories, questions, comments (a reply
tree keyed by ``parent_id``), votes, follows and notifications.
``vote_score`` on questions and comments is a denormalized aggregate owned
by ``community.votes.ledger``; nothing else writes it.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from community.db.base import Base, BigIntId, JSONType, utcnow


class VoteType(str, enum.Enum):
    UP = "UP"
    DOWN = "DOWN"

    @property
    def weight(self) -> int:
        return 1 if self is VoteType.UP else -1


class NotificationType(str, enum.Enum):
    NEW_COMMENT = "NEW_COMMENT"
    QUESTION_SOLVED = "QUESTION_SOLVED"
    NEW_FOLLOWER = "NEW_FOLLOWER"
    EXPERT_REPLY = "EXPERT_REPLY"
    UPVOTE_MILESTONE = "UPVOTE_MILESTONE"
    BADGE_EARNED = "BADGE_EARNED"
    SYSTEM_ALERT = "SYSTEM_ALERT"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class CommunityUser(Base):
    """A community member. Never hard-deleted while they own questions or comments."""

    __tablename__ = "community_users"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(256), nullable=True)
    first_name: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    avatar: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str | None] = mapped_column(String(500), nullable=True)
    location: Mapped[str | None] = mapped_column(String(128), nullable=True)

    # Farming profile
    farm_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    farm_size: Mapped[str | None] = mapped_column(String(16), nullable=True)
    farm_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    experience: Mapped[str | None] = mapped_column(String(16), nullable=True)
    specialties: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    # Reputation
    reputation: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    badges: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    # Role flags
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    is_moderator: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    is_expert: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")

    notification_preferences: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
    last_active: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


class Category(Base):
    """Static reference data for grouping questions."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str] = mapped_column(String(16), nullable=False, default="#22c55e")
    icon: Mapped[str | None] = mapped_column(String(64), nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Questions & Comments
# ---------------------------------------------------------------------------


class Question(Base):
    __tablename__ = "questions"
    __table_args__ = (
        Index("ix_questions_category_created", "category_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    images: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    is_urgent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    is_pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    is_solved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    is_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    vote_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    author_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("community_users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    category_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    author: Mapped[CommunityUser] = relationship("CommunityUser")
    category: Mapped[Category] = relationship("Category")


class Comment(Base):
    """An answer or reply. ``parent_id`` must point at a comment on the same question."""

    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    images: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    is_accepted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    is_by_expert: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    vote_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    author_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("community_users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    question_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    parent_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    author: Mapped[CommunityUser] = relationship("CommunityUser")


# ---------------------------------------------------------------------------
# Votes
# ---------------------------------------------------------------------------


class Vote(Base):
    """One user's vote on exactly one question or comment."""

    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("user_id", "question_id", name="uq_votes_user_question"),
        UniqueConstraint("user_id", "comment_id", name="uq_votes_user_comment"),
        CheckConstraint(
            "(question_id IS NULL) <> (comment_id IS NULL)",
            name="single_target",
        ),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    type: Mapped[VoteType] = mapped_column(Enum(VoteType, name="vote_type"), nullable=False)
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("community_users.id", ondelete="CASCADE"), nullable=False
    )
    question_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("questions.id", ondelete="CASCADE"), nullable=True, index=True
    )
    comment_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True
    )
    # Reputation this vote actually gave the target's author (after the 0 floor)
    reputation_delta: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


# ---------------------------------------------------------------------------
# Follows
# ---------------------------------------------------------------------------


class Follow(Base):
    __tablename__ = "follows"
    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
        CheckConstraint("follower_id <> following_id", name="no_self_follow"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    follower_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("community_users.id", ondelete="CASCADE"), nullable=False
    )
    following_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("community_users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class Notification(Base):
    """Persisted user notification. Only ``is_read`` changes after creation."""

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("community_users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, name="notification_type"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
