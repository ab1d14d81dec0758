"""Notification API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from community.auth.dependencies import get_current_moderator, get_current_user
from community.database import get_session
from community.db.models import CommunityUser
from community.dependencies import get_redis_dep, page_size
from community.social.notification_service import (
    broadcast_system_alert,
    get_notifications,
    get_unread_count,
    mark_all_as_read,
    mark_as_read,
)
from community.social.schemas import (
    NotificationListResponse,
    NotificationResponse,
    SystemAlertRequest,
    SystemAlertResponse,
    UnreadCountResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Notifications"])


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1),
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """List the caller's notifications, newest first."""
    per_page = page_size(per_page)
    notifications, total = await get_notifications(db, user.id, unread_only, page, per_page)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("/notifications/{notification_id}/read", status_code=200)
async def mark_notification_read(
    notification_id: int,
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Mark a notification as read."""
    found = await mark_as_read(db, user.id, notification_id)
    if not found:
        raise HTTPException(status_code=404, detail="Notification not found")
    await db.commit()
    return {"detail": "Notification marked as read"}


@router.post("/notifications/read-all", status_code=200)
async def mark_all_read(
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Mark all notifications as read."""
    count = await mark_all_as_read(db, user.id)
    await db.commit()
    return {"detail": f"Marked {count} notifications as read"}


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
async def get_unread_notification_count(
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Get unread notification count."""
    count = await get_unread_count(db, user.id)
    return UnreadCountResponse(unread_count=count)


@router.post("/notifications/system-alert", response_model=SystemAlertResponse)
async def send_system_alert(
    body: SystemAlertRequest,
    _moderator: CommunityUser = Depends(get_current_moderator),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Broadcast a SYSTEM_ALERT to every user (moderators only)."""
    delivered = await broadcast_system_alert(db, body.title, body.message, redis)
    return SystemAlertResponse(delivered=delivered)
