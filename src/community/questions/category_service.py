"""Question categories (static reference data)."""

from __future__ import annotations

import logging
import re

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from community.db.models import Category, Question
from community.errors import Conflict, NotFound
from community.store.entity_store import EntityStore

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


async def get_category(db: AsyncSession, category_id: int) -> Category:
    category = await db.get(Category, category_id)
    if category is None:
        raise NotFound(f"Category {category_id} not found")
    return category


async def create_category(
    db: AsyncSession,
    name: str,
    slug: str | None = None,
    description: str | None = None,
    color: str | None = None,
    icon: str | None = None,
    order: int = 0,
) -> Category:
    """Create a category. Name (case-insensitive) and slug must be unique."""
    slug = slug or slugify(name)
    existing = await db.execute(
        select(Category).where(
            (func.lower(Category.name) == name.lower()) | (Category.slug == slug)
        )
    )
    if existing.scalars().first():
        raise Conflict("A category with this name or slug already exists")

    fields = {"name": name, "slug": slug, "description": description, "icon": icon, "order": order}
    if color:
        fields["color"] = color
    category = await EntityStore(db).create_row("category", fields)
    logger.info("Category created: %s (id=%d)", name, category.id)
    return category


async def list_categories(db: AsyncSession, active_only: bool = True) -> list[tuple[Category, int]]:
    """Categories ordered by display order, each with its question count."""
    counts = (
        select(Question.category_id, func.count(Question.id).label("question_count"))
        .group_by(Question.category_id)
        .subquery()
    )
    stmt = (
        select(Category, func.coalesce(counts.c.question_count, 0))
        .outerjoin(counts, counts.c.category_id == Category.id)
        .order_by(Category.order, Category.name)
    )
    if active_only:
        stmt = stmt.where(Category.is_active.is_(True))
    result = await db.execute(stmt)
    return [(category, count) for category, count in result.all()]
