"""Push formatted notification over Redis pub/sub for per-user delivery."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from community.db.models import Notification

logger = logging.getLogger(__name__)


def notification_payload(notification: "Notification") -> dict:
    return {
        "event": "notification",
        "data": {
            "id": str(notification.id),
            "type": notification.type.value,
            "title": notification.title,
            "message": notification.message,
            "data": notification.data,
            "timestamp": (
                notification.created_at.isoformat()
                if notification.created_at
                else None
            ),
            "isRead": notification.is_read,
        },
    }


async def push_notification_to_user(redis: object | None, notification: "Notification") -> None:
    """Publish a formatted notification dict to ws:user:{user_id}.

    The notification must already be flushed (have an ``id``).
    """
    if redis is None:
        return

    try:
        await redis.publish(  # type: ignore[union-attr]
            f"ws:user:{notification.user_id}",
            json.dumps(notification_payload(notification)),
        )
    except Exception:
        logger.warning(
            "Failed to push notification via ws:user:%s",
            notification.user_id,
            exc_info=True,
        )
