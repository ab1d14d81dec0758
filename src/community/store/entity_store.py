"""Generic CRUD over the community tables.

``EntityStore`` is the thin data-access layer the services build on: rows are
addressed by entity name, and database integrity errors come back as domain
errors instead of driver exceptions.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import Select, delete, func, inspect, select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from community.db.base import Base
from community.db.models import (
    Category,
    Comment,
    CommunityUser,
    Follow,
    Notification,
    Question,
    Vote,
)
from community.errors import (
    Conflict,
    ForeignKeyViolation,
    NotFound,
    UniqueConstraintViolation,
    ValidationError,
)

logger = logging.getLogger(__name__)

ENTITIES: dict[str, type[Base]] = {
    "community_user": CommunityUser,
    "category": Category,
    "question": Question,
    "comment": Comment,
    "vote": Vote,
    "follow": Follow,
    "notification": Notification,
}

# SQLSTATE codes (PostgreSQL)
_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"
_SERIALIZATION_FAILURE = {"40001", "40P01"}


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_unique_violation(exc: DBAPIError) -> bool:
    if _sqlstate(exc) == _UNIQUE_VIOLATION:
        return True
    message = str(exc.orig).lower()
    return "unique constraint" in message or "duplicate key" in message


def is_foreign_key_violation(exc: DBAPIError) -> bool:
    if _sqlstate(exc) == _FOREIGN_KEY_VIOLATION:
        return True
    return "foreign key constraint" in str(exc.orig).lower()


def is_serialization_failure(exc: DBAPIError) -> bool:
    if _sqlstate(exc) in _SERIALIZATION_FAILURE:
        return True
    return "database is locked" in str(exc.orig).lower()


def translate_integrity_error(exc: IntegrityError, entity: str) -> Conflict | ForeignKeyViolation:
    """Map a driver IntegrityError onto the domain taxonomy."""
    if is_foreign_key_violation(exc):
        return ForeignKeyViolation(f"{entity} references a row that does not exist")
    if is_unique_violation(exc):
        return UniqueConstraintViolation(f"{entity} already exists")
    return Conflict(f"{entity} violates a database constraint")


def resolve_entity(entity: str) -> type[Base]:
    try:
        return ENTITIES[entity]
    except KeyError:
        raise ValidationError(f"Unknown entity: {entity}") from None


def _check_fields(model: type[Base], fields: Mapping[str, Any]) -> None:
    columns = {attr.key for attr in inspect(model).column_attrs}
    unknown = sorted(set(fields) - columns)
    if unknown:
        raise ValidationError(f"Unknown field(s) for {model.__tablename__}: {', '.join(unknown)}")


class EntityStore:
    """CRUD and filtered queries over the seven community tables."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(self, entity: str, fields: Mapping[str, Any]) -> int:
        """Insert a row and return its id."""
        row = await self.create_row(entity, fields)
        return row.id  # type: ignore[attr-defined]

    async def create_row(self, entity: str, fields: Mapping[str, Any]) -> Any:  # noqa: ANN401
        model = resolve_entity(entity)
        _check_fields(model, fields)
        row = model(**fields)
        self.db.add(row)
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise translate_integrity_error(e, entity) from e
        return row

    async def find_by_id(self, entity: str, id_: int) -> Any | None:  # noqa: ANN401
        model = resolve_entity(entity)
        return await self.db.get(model, id_)

    async def get(self, entity: str, id_: int) -> Any:  # noqa: ANN401
        row = await self.find_by_id(entity, id_)
        if row is None:
            raise NotFound(f"{entity} {id_} not found")
        return row

    async def update(self, entity: str, id_: int, fields: Mapping[str, Any]) -> Any:  # noqa: ANN401
        model = resolve_entity(entity)
        _check_fields(model, fields)
        row = await self.get(entity, id_)
        for key, value in fields.items():
            setattr(row, key, value)
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise translate_integrity_error(e, entity) from e
        return row

    async def delete(self, entity: str, id_: int) -> None:
        model = resolve_entity(entity)
        try:
            result = await self.db.execute(delete(model).where(model.id == id_))  # type: ignore[attr-defined]
        except IntegrityError as e:
            raise translate_integrity_error(e, entity) from e
        if result.rowcount == 0:
            raise NotFound(f"{entity} {id_} not found")

    def _filtered(self, entity: str, filters: Mapping[str, Any] | None) -> tuple[type[Base], Select]:  # type: ignore[type-arg]
        model = resolve_entity(entity)
        filters = filters or {}
        _check_fields(model, filters)
        stmt = select(model)
        for key, value in filters.items():
            column = getattr(model, key)
            stmt = stmt.where(column.is_(None) if value is None else column == value)
        return model, stmt

    async def query(
        self,
        entity: str,
        filters: Mapping[str, Any] | None = None,
        sort: Sequence[str] = (),
        page: int = 1,
        per_page: int | None = None,
    ) -> list[Any]:
        """Equality-filtered, sorted, offset-paginated query.

        ``sort`` entries are column names, prefixed with ``-`` for descending.
        """
        model, stmt = self._filtered(entity, filters)
        for key in sort:
            name = key.lstrip("-")
            _check_fields(model, {name: None})
            column = getattr(model, name)
            stmt = stmt.order_by(column.desc() if key.startswith("-") else column.asc())
        if per_page is not None:
            stmt = stmt.offset((max(page, 1) - 1) * per_page).limit(per_page)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count(self, entity: str, filters: Mapping[str, Any] | None = None) -> int:
        _, stmt = self._filtered(entity, filters)
        result = await self.db.execute(select(func.count()).select_from(stmt.subquery()))
        return result.scalar_one()
