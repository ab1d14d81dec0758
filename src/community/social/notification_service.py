"""Notification emitter and inbox.

Notifications are:
1. Produced from domain events after the triggering transaction commits
2. Persisted in the database
3. Pushed to the user via Redis pub/sub when Redis is available
4. Filtered by the recipient's notification preferences

Writing a notification is best-effort: failures are logged and swallowed so
they never undo or fail the operation that caused them.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from community.db.models import CommunityUser, Notification, NotificationType
from community.social.events import DomainEvent, SystemAlert
from community.social.notification_push import push_notification_to_user

logger = logging.getLogger(__name__)

# Preference keys stored in CommunityUser.notification_preferences
DEFAULT_PREFERENCES: dict[str, bool] = {
    NotificationType.NEW_COMMENT.value: True,
    NotificationType.QUESTION_SOLVED.value: True,
    NotificationType.NEW_FOLLOWER.value: True,
    NotificationType.EXPERT_REPLY.value: True,
    NotificationType.UPVOTE_MILESTONE.value: True,
    NotificationType.BADGE_EARNED.value: True,
}


def should_deliver(preferences: dict[str, Any], type_: NotificationType) -> bool:
    """Check if a notification type is enabled for the recipient."""
    if type_ is NotificationType.SYSTEM_ALERT:
        return True
    return bool(preferences.get(type_.value, DEFAULT_PREFERENCES.get(type_.value, True)))


async def create_notification(
    db: AsyncSession,
    user_id: int,
    type_: NotificationType,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
) -> Notification | None:
    """Insert a notification unless the recipient opted out of its type."""
    recipient = await db.get(CommunityUser, user_id)
    if recipient is None:
        logger.warning("Notification recipient %d does not exist", user_id)
        return None
    if not should_deliver(recipient.notification_preferences or {}, type_):
        return None

    notification = Notification(
        user_id=user_id,
        type=type_,
        title=title,
        message=message,
        data=data or {},
    )
    db.add(notification)
    await db.flush()
    return notification


async def dispatch_events(
    db: AsyncSession,
    events: Iterable[DomainEvent],
    redis: Any | None = None,  # noqa: ANN401
) -> list[Notification]:
    """Turn domain events into notifications, one commit per event.

    Call only after the triggering transaction has committed.
    """
    delivered: list[Notification] = []
    for event in events:
        try:
            notification = await create_notification(
                db,
                event.recipient_id,
                event.notification_type,
                event.title(),
                event.message(),
                event.data(),
            )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.warning(
                "Failed to write %s notification for user %d",
                event.notification_type.value,
                event.recipient_id,
                exc_info=True,
            )
            continue
        if notification is not None:
            delivered.append(notification)
            await push_notification_to_user(redis, notification)
    return delivered


async def broadcast_system_alert(
    db: AsyncSession,
    title: str,
    message: str,
    redis: Any | None = None,  # noqa: ANN401
) -> int:
    """Send a SYSTEM_ALERT to every community user. Returns count delivered."""
    result = await db.execute(select(CommunityUser.id).order_by(CommunityUser.id))
    events = [
        SystemAlert(recipient_id=user_id, alert_title=title, alert_message=message)
        for user_id in result.scalars().all()
    ]
    delivered = await dispatch_events(db, events, redis)
    logger.info("System alert broadcast to %d users", len(delivered))
    return len(delivered)


async def get_notifications(
    db: AsyncSession,
    user_id: int,
    unread_only: bool = False,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Notification], int]:
    """Get user's notifications (paginated, most recent first)."""
    offset = (page - 1) * per_page
    conditions = [Notification.user_id == user_id]
    if unread_only:
        conditions.append(Notification.is_read.is_(False))

    total_result = await db.execute(
        select(func.count()).select_from(Notification).where(*conditions)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(Notification)
        .where(*conditions)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(offset)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def mark_as_read(db: AsyncSession, user_id: int, notification_id: int) -> bool:
    """Mark a single notification as read. Returns True if found."""
    result = await db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user_id)
        .values(is_read=True)
        .execution_options(synchronize_session="fetch")
    )
    await db.flush()
    return result.rowcount > 0


async def mark_all_as_read(db: AsyncSession, user_id: int) -> int:
    """Mark all unread notifications as read. Returns count updated."""
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session="fetch")
    )
    await db.flush()
    return result.rowcount


async def get_unread_count(db: AsyncSession, user_id: int) -> int:
    """Get count of unread notifications."""
    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
    )
    return result.scalar_one()
