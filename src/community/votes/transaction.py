"""Commit a vote operation as one unit, retrying once on write conflicts."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from community.config import get_settings
from community.errors import Conflict, UniqueConstraintViolation
from community.store.entity_store import is_serialization_failure, is_unique_violation

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, UniqueConstraintViolation):
        return True
    if isinstance(exc, DBAPIError):
        return is_serialization_failure(exc) or is_unique_violation(exc)
    return False


async def run_vote_transaction(
    db: AsyncSession,
    operation: Callable[[AsyncSession], Awaitable[T]],
    retries: int | None = None,
) -> T:
    """Run ``operation`` and commit.

    A duplicate-vote race (unique violation) or a serialization failure rolls
    back and re-runs the operation from scratch; when retries are exhausted
    the failure surfaces as ``Conflict``. Any other error rolls back and
    propagates unchanged.
    """
    if retries is None:
        retries = get_settings().vote_retry_attempts
    if retries < 0:
        msg = "retries must be >= 0"
        raise ValueError(msg)
    attempts = retries + 1

    last_error: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            result = await operation(db)
            await db.commit()
            return result
        except Exception as exc:
            await db.rollback()
            if not _is_retryable(exc):
                raise
            last_error = exc
            logger.warning("Vote transaction conflict (attempt %d/%d)", attempt, attempts, exc_info=True)

    raise Conflict("The vote could not be applied because of a concurrent update") from last_error
