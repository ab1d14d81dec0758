"""Question business logic.

Rules:
- Title 5-200 characters, content required
- Author and category must exist; inactive categories take no new questions
- Only the author or a moderator edits or deletes; only moderators pin
- Deleting a question removes its comments and every vote on them
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from community.db.models import Comment, CommunityUser, Question, Vote
from community.errors import NotFound, PermissionDenied, ValidationError
from community.questions.category_service import get_category
from community.store.entity_store import EntityStore
from community.users.service import ensure_owner_or_moderator, get_user

logger = logging.getLogger(__name__)

TITLE_MIN_LENGTH = 5
TITLE_MAX_LENGTH = 200
MAX_TAGS = 10
MAX_IMAGES = 5

VALID_FILTERS = {"all", "urgent", "solved", "unsolved"}
VALID_SORTS = {"newest", "oldest", "votes"}

EDITABLE_FIELDS = frozenset({
    "title",
    "content",
    "tags",
    "images",
    "is_urgent",
    "is_anonymous",
    "category_id",
    "is_pinned",
})


def normalize_tags(tags: list[str] | str | None) -> list[str]:
    """Strip, lowercase and de-duplicate tags, keeping first-seen order."""
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = [tags]
    seen: list[str] = []
    for tag in tags:
        cleaned = tag.strip().lower()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    if len(seen) > MAX_TAGS:
        raise ValidationError(f"At most {MAX_TAGS} tags are allowed")
    return seen


def validate_title(title: str) -> str:
    title = title.strip()
    if not TITLE_MIN_LENGTH <= len(title) <= TITLE_MAX_LENGTH:
        raise ValidationError(f"Title must be {TITLE_MIN_LENGTH}-{TITLE_MAX_LENGTH} characters")
    return title


def validate_content(content: str) -> str:
    content = content.strip()
    if not content:
        raise ValidationError("Content is required")
    return content


def validate_images(images: list[str] | None) -> list[str]:
    images = list(images or [])
    if len(images) > MAX_IMAGES:
        raise ValidationError(f"At most {MAX_IMAGES} images are allowed")
    return images


async def create_question(
    db: AsyncSession,
    author_id: int,
    category_id: int,
    title: str,
    content: str,
    tags: list[str] | str | None = None,
    images: list[str] | None = None,
    is_urgent: bool = False,
    is_anonymous: bool = False,
) -> Question:
    """Create a question in an active category."""
    await get_user(db, author_id)
    category = await get_category(db, category_id)
    if not category.is_active:
        raise ValidationError("This category is not accepting questions")

    question = await EntityStore(db).create_row("question", {
        "author_id": author_id,
        "category_id": category_id,
        "title": validate_title(title),
        "content": validate_content(content),
        "tags": normalize_tags(tags),
        "images": validate_images(images),
        "is_urgent": is_urgent,
        "is_anonymous": is_anonymous,
    })
    logger.info("Question created: id=%d author=%d category=%d", question.id, author_id, category_id)
    return question


async def get_question(db: AsyncSession, question_id: int, count_view: bool = False) -> Question:
    """Load a question with author and category. Optionally counts a view."""
    result = await db.execute(
        select(Question)
        .where(Question.id == question_id)
        .options(selectinload(Question.author), selectinload(Question.category))
    )
    question = result.scalar_one_or_none()
    if question is None:
        raise NotFound(f"Question {question_id} not found")
    if count_view:
        question.view_count += 1
        await db.flush()
    return question


async def list_questions(
    db: AsyncSession,
    category_id: int | None = None,
    search: str | None = None,
    filter_: str = "all",
    sort: str = "newest",
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Question], int]:
    """List questions; pinned questions always lead the page."""
    if filter_ not in VALID_FILTERS:
        raise ValidationError(f"Invalid filter: {filter_}. Must be one of {sorted(VALID_FILTERS)}")
    if sort not in VALID_SORTS:
        raise ValidationError(f"Invalid sort: {sort}. Must be one of {sorted(VALID_SORTS)}")

    conditions: list[Any] = []
    if category_id is not None:
        conditions.append(Question.category_id == category_id)
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(or_(Question.title.ilike(pattern), Question.content.ilike(pattern)))
    if filter_ == "urgent":
        conditions.append(Question.is_urgent.is_(True))
    elif filter_ == "solved":
        conditions.append(Question.is_solved.is_(True))
    elif filter_ == "unsolved":
        conditions.append(Question.is_solved.is_(False))

    total = (await db.execute(
        select(func.count()).select_from(Question).where(*conditions)
    )).scalar_one()

    order_by: list[Any] = [Question.is_pinned.desc()]
    if sort == "oldest":
        order_by += [Question.created_at.asc(), Question.id.asc()]
    elif sort == "votes":
        order_by += [Question.vote_score.desc(), Question.created_at.desc(), Question.id.desc()]
    else:
        order_by += [Question.created_at.desc(), Question.id.desc()]

    result = await db.execute(
        select(Question)
        .where(*conditions)
        .options(selectinload(Question.author), selectinload(Question.category))
        .order_by(*order_by)
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def update_question(
    db: AsyncSession,
    question_id: int,
    actor: CommunityUser,
    fields: dict[str, Any],
) -> Question:
    """Edit a question. ``vote_score`` and ``is_solved`` are not editable here."""
    unknown = set(fields) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Field(s) cannot be updated: {', '.join(sorted(unknown))}")

    question = await get_question(db, question_id)
    ensure_owner_or_moderator(actor, question.author_id, "edit this question")
    if "is_pinned" in fields and not actor.is_moderator:
        raise PermissionDenied("Only moderators can pin questions")

    changes = dict(fields)
    if "title" in changes:
        changes["title"] = validate_title(changes["title"])
    if "content" in changes:
        changes["content"] = validate_content(changes["content"])
    if "tags" in changes:
        changes["tags"] = normalize_tags(changes["tags"])
    if "images" in changes:
        changes["images"] = validate_images(changes["images"])
    if "category_id" in changes:
        await get_category(db, changes["category_id"])

    return await EntityStore(db).update("question", question_id, changes)


async def delete_question(db: AsyncSession, question_id: int, actor: CommunityUser) -> None:
    """Delete a question together with its comments and all their votes."""
    question = await get_question(db, question_id)
    ensure_owner_or_moderator(actor, question.author_id, "delete this question")

    comment_ids = select(Comment.id).where(Comment.question_id == question_id).scalar_subquery()
    await db.execute(
        delete(Vote).where(or_(Vote.question_id == question_id, Vote.comment_id.in_(comment_ids)))
    )
    await db.execute(delete(Comment).where(Comment.question_id == question_id))
    await db.delete(question)
    await db.flush()
    logger.info("Question deleted: id=%d by user %d", question_id, actor.id)


async def community_stats(db: AsyncSession) -> dict[str, int]:
    """Totals across the community."""
    result = await db.execute(
        select(
            select(func.count()).select_from(Question).scalar_subquery(),
            select(func.count()).select_from(CommunityUser).scalar_subquery(),
            select(func.count()).select_from(Comment).scalar_subquery(),
            select(func.count()).select_from(Vote).scalar_subquery(),
        )
    )
    questions, users, comments, votes = result.one()
    return {
        "total_questions": questions,
        "total_users": users,
        "total_comments": comments,
        "total_votes": votes,
    }
