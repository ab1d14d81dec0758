"""Follow relationships between community users.

Rules:
- A user cannot follow themselves
- At most one follow row per (follower, following) pair
- Following someone notifies them (NEW_FOLLOWER)
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from community.db.models import CommunityUser, Follow
from community.errors import Conflict, ValidationError
from community.social.events import DomainEvent, NewFollower
from community.store.entity_store import EntityStore
from community.users.service import get_user

logger = logging.getLogger(__name__)


async def get_follow(db: AsyncSession, follower_id: int, following_id: int) -> Follow | None:
    result = await db.execute(
        select(Follow).where(Follow.follower_id == follower_id, Follow.following_id == following_id)
    )
    return result.scalar_one_or_none()


async def is_following(db: AsyncSession, follower_id: int, following_id: int) -> bool:
    return await get_follow(db, follower_id, following_id) is not None


async def follow(db: AsyncSession, follower_id: int, following_id: int) -> tuple[Follow, list[DomainEvent]]:
    """Create a follow. Returns the row and the NEW_FOLLOWER event to dispatch."""
    if follower_id == following_id:
        raise ValidationError("You cannot follow yourself")

    follower = await get_user(db, follower_id)
    await get_user(db, following_id)

    if await get_follow(db, follower_id, following_id):
        raise Conflict("You are already following this user")

    row = await EntityStore(db).create_row("follow", {
        "follower_id": follower_id,
        "following_id": following_id,
    })
    logger.info("User %d followed user %d", follower_id, following_id)
    event = NewFollower(
        recipient_id=following_id,
        follower_id=follower_id,
        follower_name=follower.username,
    )
    return row, [event]


async def unfollow(db: AsyncSession, follower_id: int, following_id: int) -> bool:
    """Remove a follow. Returns False when there was nothing to remove."""
    result = await db.execute(
        delete(Follow).where(Follow.follower_id == follower_id, Follow.following_id == following_id)
    )
    await db.flush()
    return result.rowcount > 0


async def list_followers(
    db: AsyncSession, user_id: int, page: int = 1, per_page: int = 20,
) -> tuple[list[CommunityUser], int]:
    """Users following ``user_id``, newest follow first."""
    await get_user(db, user_id)
    total = (await db.execute(
        select(func.count()).select_from(Follow).where(Follow.following_id == user_id)
    )).scalar_one()
    result = await db.execute(
        select(CommunityUser)
        .join(Follow, Follow.follower_id == CommunityUser.id)
        .where(Follow.following_id == user_id)
        .order_by(Follow.created_at.desc(), Follow.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def list_following(
    db: AsyncSession, user_id: int, page: int = 1, per_page: int = 20,
) -> tuple[list[CommunityUser], int]:
    """Users that ``user_id`` follows, newest follow first."""
    await get_user(db, user_id)
    total = (await db.execute(
        select(func.count()).select_from(Follow).where(Follow.follower_id == user_id)
    )).scalar_one()
    result = await db.execute(
        select(CommunityUser)
        .join(Follow, Follow.following_id == CommunityUser.id)
        .where(Follow.follower_id == user_id)
        .order_by(Follow.created_at.desc(), Follow.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total
