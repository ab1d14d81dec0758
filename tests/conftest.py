"""Shared test fixtures."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator

# Settings are read on first import of the app, so the database URL must be set first
os.environ["COMMUNITY_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["COMMUNITY_LOG_FORMAT"] = "console"

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from community.config import get_settings  # noqa: E402
from community.database import close_db, get_engine, get_session, init_db  # noqa: E402
from community.db import models  # noqa: E402, F401
from community.db.base import Base  # noqa: E402
from community.main import create_app  # noqa: E402
from community.redis_client import close_redis  # noqa: E402

get_settings.cache_clear()


async def _create_schema() -> None:
    """Fresh in-memory database with every table from the ORM metadata."""
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """A session on an empty database, discarded after the test."""
    await _create_schema()
    async for session in get_session():
        yield session
    await close_db()


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP test client over an empty database, without Redis."""
    await close_redis()
    app = create_app()
    await _create_schema()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await close_db()
