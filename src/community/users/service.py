"""Community user accounts, profiles and reputation."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from community.db.models import Comment, CommunityUser, Question
from community.errors import Conflict, NotFound, PermissionDenied, ValidationError
from community.social.events import BadgeEarned, DomainEvent
from community.store.entity_store import EntityStore
from community.users.reputation import badges_for, compute_level

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[a-z0-9_.-]{3,64}$")

PROFILE_FIELDS = frozenset({
    "first_name",
    "last_name",
    "avatar",
    "bio",
    "location",
    "farm_name",
    "farm_size",
    "farm_type",
    "experience",
    "specialties",
    "notification_preferences",
})


def normalize_username(raw: str) -> str:
    """Lowercase, collapse whitespace to underscores, drop anything else."""
    username = re.sub(r"\s+", "_", raw.strip().lower())
    return re.sub(r"[^a-z0-9_.-]", "", username)


async def get_user(db: AsyncSession, user_id: int) -> CommunityUser:
    user = await db.get(CommunityUser, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found")
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> CommunityUser | None:
    result = await db.execute(
        select(CommunityUser).where(func.lower(CommunityUser.email) == email.lower())
    )
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> CommunityUser | None:
    result = await db.execute(select(CommunityUser).where(CommunityUser.username == username))
    return result.scalar_one_or_none()


async def register_user(
    db: AsyncSession,
    email: str,
    username: str,
    first_name: str = "",
    last_name: str = "",
    **profile: Any,  # noqa: ANN401
) -> CommunityUser:
    """Create a community user. Email (case-insensitive) and username must be unique."""
    username = normalize_username(username)
    if not USERNAME_PATTERN.match(username):
        raise ValidationError("Username must be 3-64 characters of a-z, 0-9, '_', '.', '-'")

    unknown = set(profile) - PROFILE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown profile field(s): {', '.join(sorted(unknown))}")

    if await get_user_by_email(db, email):
        raise Conflict("A user with this email already exists")
    if await get_user_by_username(db, username):
        raise Conflict("This username is already taken")

    store = EntityStore(db)
    user = await store.create_row("community_user", {
        "email": email.lower(),
        "username": username,
        "first_name": first_name,
        "last_name": last_name,
        **profile,
    })
    logger.info("Community user registered: %s (id=%d)", username, user.id)
    return user


async def _unique_username(db: AsyncSession, base: str) -> str:
    base = normalize_username(base)[:56] or "user"
    if len(base) < 3:
        base = f"{base}_user"
    candidate = base
    suffix = 1
    while await get_user_by_username(db, candidate):
        suffix += 1
        candidate = f"{base}{suffix}"
    return candidate


async def find_or_create_by_email(
    db: AsyncSession,
    email: str,
    display_name: str | None = None,
) -> tuple[CommunityUser, bool]:
    """Return the user for ``email``, provisioning one on first sight.

    Returns (user, created).
    """
    user = await get_user_by_email(db, email)
    if user is not None:
        user.last_active = datetime.now(timezone.utc)
        return user, False

    name_parts = (display_name or "").split()
    username = await _unique_username(db, display_name or email.split("@")[0])
    user = await register_user(
        db,
        email=email,
        username=username,
        first_name=name_parts[0] if name_parts else "User",
        last_name=name_parts[1] if len(name_parts) > 1 else "",
    )
    return user, True


async def update_profile(db: AsyncSession, user_id: int, fields: dict[str, Any]) -> CommunityUser:
    """Update whitelisted profile fields."""
    unknown = set(fields) - PROFILE_FIELDS
    if unknown:
        raise ValidationError(f"Field(s) cannot be updated: {', '.join(sorted(unknown))}")
    await get_user(db, user_id)
    return await EntityStore(db).update("community_user", user_id, fields)


async def apply_reputation(db: AsyncSession, user_id: int, delta: int) -> tuple[int, list[DomainEvent]]:
    """Apply a reputation delta (floored at 0), recompute level, award badges.

    Returns the change actually applied, which differs from ``delta`` when
    the floor absorbs part of it, and BadgeEarned events for newly unlocked
    badges.
    """
    user = await get_user(db, user_id)
    if delta == 0:
        return 0, []

    before = user.reputation
    user.reputation = max(0, before + delta)
    user.level = compute_level(user.reputation)["level"]

    events: list[DomainEvent] = []
    new_badges = badges_for(user.reputation, user.badges)
    if new_badges:
        # Reassign so the JSON column is flagged dirty
        user.badges = [*user.badges, *(b["slug"] for b in new_badges)]
        events = [
            BadgeEarned(recipient_id=user.id, badge=b["slug"], label=b["label"])
            for b in new_badges
        ]
    await db.flush()
    return user.reputation - before, events


async def adjust_reputation(db: AsyncSession, user_id: int, delta: int) -> list[DomainEvent]:
    """Same as apply_reputation, returning only the BadgeEarned events."""
    _, events = await apply_reputation(db, user_id, delta)
    return events


async def delete_user(db: AsyncSession, user_id: int) -> None:
    """Hard-delete a user that owns no questions or comments."""
    await get_user(db, user_id)
    owned = await db.execute(
        select(
            select(func.count()).select_from(Question).where(Question.author_id == user_id).scalar_subquery(),
            select(func.count()).select_from(Comment).where(Comment.author_id == user_id).scalar_subquery(),
        )
    )
    questions, comments = owned.one()
    if questions or comments:
        raise Conflict("User still owns questions or comments and cannot be deleted")
    await EntityStore(db).delete("community_user", user_id)
    logger.info("Community user deleted: id=%d", user_id)


def ensure_owner_or_moderator(actor: CommunityUser, owner_id: int, action: str) -> None:
    """Raise PermissionDenied unless ``actor`` owns the row or moderates."""
    if actor.id != owner_id and not actor.is_moderator:
        raise PermissionDenied(f"Only the author or a moderator can {action}")
