"""FastAPI identity dependencies.

The hub sits behind the main site's login; the frontend forwards the
signed-in identity as ``X-User-Email`` / ``X-User-Name`` headers, and
community users are provisioned on first sight.
"""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from community.database import get_session
from community.db.models import CommunityUser
from community.errors import CommunityError
from community.users.service import find_or_create_by_email


async def get_current_user(
    x_user_email: str | None = Header(None),
    x_user_name: str | None = Header(None),
    db: AsyncSession = Depends(get_session),
) -> CommunityUser:
    """Resolve the caller, creating their community user if needed. Raises 401 without identity."""
    if not x_user_email or "@" not in x_user_email:
        raise HTTPException(status_code=401, detail="Missing user identity")

    try:
        user, _ = await find_or_create_by_email(db, x_user_email.strip(), x_user_name)
    except CommunityError as e:
        raise HTTPException(status_code=401, detail=e.detail) from e
    await db.commit()
    return user


async def get_current_moderator(
    user: CommunityUser = Depends(get_current_user),
) -> CommunityUser:
    """Same as get_current_user but additionally requires the moderator flag."""
    if not user.is_moderator:
        raise HTTPException(status_code=403, detail="Moderator access required")
    return user


async def get_optional_user(
    x_user_email: str | None = Header(None),
    x_user_name: str | None = Header(None),
    db: AsyncSession = Depends(get_session),
) -> CommunityUser | None:
    """Resolve the caller when identity headers are present; anonymous readers get None."""
    if not x_user_email:
        return None
    return await get_current_user(x_user_email, x_user_name, db)
