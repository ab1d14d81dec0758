"""User and follow API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from community.auth.dependencies import get_current_user
from community.database import get_session
from community.db.models import CommunityUser
from community.dependencies import get_redis_dep, page_size
from community.social.follow_service import follow, list_followers, list_following, unfollow
from community.social.notification_service import dispatch_events
from community.users.reputation import compute_level
from community.users.schemas import (
    FollowResponse,
    ProfileUpdateRequest,
    PublicUserResponse,
    RegisterUserRequest,
    UserListResponse,
    UserResponse,
    UserSummary,
)
from community.users.service import get_user, register_user, update_profile

router = APIRouter(prefix="/api/v1", tags=["Users"])


def _public(user: CommunityUser) -> PublicUserResponse:
    return PublicUserResponse.model_validate(user).model_copy(
        update={"level_title": compute_level(user.reputation)["title"]},
    )


def _private(user: CommunityUser) -> UserResponse:
    data = _public(user).model_dump()
    data.update(
        email=user.email,
        notification_preferences=user.notification_preferences or {},
        last_active=user.last_active,
    )
    return UserResponse(**data)


@router.post("/users", response_model=UserResponse, status_code=201)
async def register_user_endpoint(
    body: RegisterUserRequest,
    db: AsyncSession = Depends(get_session),
):
    """Register a community user explicitly (header identities are provisioned automatically)."""
    fields = body.model_dump(exclude={"email", "username", "first_name", "last_name"}, exclude_none=True)
    user = await register_user(db, body.email, body.username, body.first_name, body.last_name, **fields)
    await db.commit()
    return _private(user)


@router.get("/users/me", response_model=UserResponse)
async def get_me(user: CommunityUser = Depends(get_current_user)):
    """The caller's own profile."""
    return _private(user)


@router.patch("/users/me", response_model=UserResponse)
async def update_me(
    body: ProfileUpdateRequest,
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Update the caller's profile fields."""
    updated = await update_profile(db, user.id, body.model_dump(exclude_unset=True, exclude_none=True))
    await db.commit()
    return _private(updated)


@router.get("/users/{user_id}", response_model=PublicUserResponse)
async def get_user_endpoint(user_id: int, db: AsyncSession = Depends(get_session)):
    """Public profile of any user."""
    return _public(await get_user(db, user_id))


@router.post("/users/{user_id}/follow", response_model=FollowResponse, status_code=201)
async def follow_user(
    user_id: int,
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Follow another user."""
    row, events = await follow(db, user.id, user_id)
    await db.commit()
    response = FollowResponse(
        follower_id=row.follower_id, following_id=row.following_id, created_at=row.created_at,
    )
    await dispatch_events(db, events, redis)
    return response


@router.delete("/users/{user_id}/follow", status_code=204)
async def unfollow_user(
    user_id: int,
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Stop following a user. Succeeds even if not following."""
    await unfollow(db, user.id, user_id)
    await db.commit()
    return Response(status_code=204)


@router.get("/users/{user_id}/followers", response_model=UserListResponse)
async def followers_endpoint(
    user_id: int,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1),
    db: AsyncSession = Depends(get_session),
):
    """Users following this user."""
    per_page = page_size(per_page)
    users, total = await list_followers(db, user_id, page, per_page)
    return UserListResponse(
        users=[UserSummary.model_validate(u) for u in users], total=total, page=page, per_page=per_page,
    )


@router.get("/users/{user_id}/following", response_model=UserListResponse)
async def following_endpoint(
    user_id: int,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1),
    db: AsyncSession = Depends(get_session),
):
    """Users this user follows."""
    per_page = page_size(per_page)
    users, total = await list_following(db, user_id, page, per_page)
    return UserListResponse(
        users=[UserSummary.model_validate(u) for u in users], total=total, page=page, per_page=per_page,
    )
