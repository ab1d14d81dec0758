"""Optional Redis pool for notification push and rate limiting.

Redis is never required: when ``COMMUNITY_REDIS_URL`` is unset the pool stays
``None`` and callers skip the Redis path.
"""

import redis.asyncio as redis

_pool: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 50) -> None:
    """Open the shared pool."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
    )


async def close_redis() -> None:
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_optional_redis() -> redis.Redis | None:
    """The shared client, or None when Redis is not configured."""
    return _pool
