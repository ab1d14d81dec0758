"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from community.config import get_settings
from community.redis_client import get_optional_redis


async def get_redis_dep() -> AsyncGenerator[object | None, None]:
    """Yield the Redis client (or None when Redis is not initialized)."""
    yield get_optional_redis()


def page_size(per_page: int) -> int:
    """Clamp a requested page size to the configured maximum."""
    return max(1, min(per_page, get_settings().max_page_size))
