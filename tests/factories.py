"""Row builders and request helpers shared by the unit and integration tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from community.database import get_session
from community.db.models import Category, Comment, CommunityUser, Question
from community.questions.category_service import create_category
from community.questions.comment_service import create_comment
from community.questions.question_service import create_question
from community.users.service import get_user_by_email, register_user


async def make_user(
    db: AsyncSession,
    username: str,
    is_expert: bool = False,
    is_moderator: bool = False,
    **profile: object,
) -> CommunityUser:
    user = await register_user(db, f"{username}@example.com", username, **profile)
    if is_expert or is_moderator:
        user.is_expert = is_expert
        user.is_moderator = is_moderator
        await db.flush()
    return user


async def make_category(db: AsyncSession, name: str = "Crop Diseases", **fields: object) -> Category:
    return await create_category(db, name, **fields)


async def make_question(
    db: AsyncSession,
    author: CommunityUser,
    category: Category,
    title: str = "Why are my tomato leaves turning yellow?",
    content: str = "Lower leaves first, spreading upwards over a week.",
    **fields: object,
) -> Question:
    return await create_question(db, author.id, category.id, title, content, **fields)


async def make_comment(
    db: AsyncSession,
    question: Question,
    author: CommunityUser,
    content: str = "Looks like early blight. Remove the affected leaves.",
    parent: Comment | None = None,
) -> Comment:
    comment, _ = await create_comment(
        db, question.id, author.id, content, parent_id=parent.id if parent else None,
    )
    return comment


def as_user(username: str) -> dict[str, str]:
    """Identity headers the frontend forwards for a signed-in user."""
    return {"X-User-Email": f"{username}@example.com", "X-User-Name": username}


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """Standalone session for seeding or inspecting the API test database."""
    async for session in get_session():
        yield session


async def promote(username: str, is_moderator: bool = False, is_expert: bool = False) -> None:
    """Set role flags on a header-provisioned user."""
    async with session_scope() as db:
        user = await get_user_by_email(db, f"{username}@example.com")
        assert user is not None
        user.is_moderator = is_moderator
        user.is_expert = is_expert
        await db.commit()
