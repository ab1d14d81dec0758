"""Vote ledger: one vote per user per target, and the target's vote score.

Every change to a Vote row and the matching ``vote_score`` adjustment happen
in the same transaction, with the target row locked (SELECT ... FOR UPDATE)
so concurrent votes on one target serialize. The unique constraints on
(user_id, question_id) and (user_id, comment_id) back this up.

Repeat semantics: casting the vote a user already has is a no-op.
``toggle_vote`` provides vote-button behaviour where repeating retracts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from community.config import get_settings
from community.db.models import Comment, Question, Vote, VoteType
from community.errors import NotFound, ValidationError
from community.social.events import DomainEvent, VoteMilestoneReached
from community.store.entity_store import EntityStore
from community.users.reputation import vote_reputation
from community.users.service import apply_reputation, get_user
from community.votes.targets import QuestionTarget, VoteTarget, target_of, vote_fields

logger = logging.getLogger(__name__)


@dataclass
class VoteOutcome:
    target: VoteTarget
    previous: VoteType | None
    current: VoteType | None
    score: int
    events: list[DomainEvent] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.previous != self.current


def _weight(vote_type: VoteType | None) -> int:
    return 0 if vote_type is None else vote_type.weight


async def _lock_target(db: AsyncSession, target: VoteTarget) -> Question | Comment:
    row = await db.get(target.model, target.id, with_for_update=True, populate_existing=True)
    if row is None:
        raise NotFound(f"{target.kind.capitalize()} {target.id} not found")
    return row


async def _find_vote(db: AsyncSession, user_id: int, target: VoteTarget, lock: bool = False) -> Vote | None:
    stmt = select(Vote).where(
        Vote.user_id == user_id,
        getattr(Vote, target.vote_column) == target.id,
    )
    if lock:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


def milestone_crossed(old_score: int, new_score: int, step: int) -> int | None:
    """Highest positive multiple of ``step`` reached on the way up, if any."""
    if step <= 0 or new_score <= old_score or new_score < step:
        return None
    reached = new_score // step
    if reached > max(old_score, 0) // step:
        return reached * step
    return None


def _milestone_events(target: VoteTarget, row: Question | Comment, old_score: int) -> list[DomainEvent]:
    milestone = milestone_crossed(old_score, row.vote_score, get_settings().vote_milestone_step)
    if milestone is None:
        return []
    question_id = row.id if isinstance(target, QuestionTarget) else row.question_id  # type: ignore[union-attr]
    return [VoteMilestoneReached(
        recipient_id=row.author_id,
        target_type=target.kind,
        target_id=target.id,
        question_id=question_id,
        score=milestone,
    )]


async def _apply(
    db: AsyncSession,
    user_id: int,
    target: VoteTarget,
    new_type: VoteType | None,
) -> VoteOutcome:
    await get_user(db, user_id)
    row = await _lock_target(db, target)
    existing = await _find_vote(db, user_id, target, lock=True)
    previous = existing.type if existing else None

    if previous == new_type:
        return VoteOutcome(target, previous, new_type, row.vote_score)

    if new_type is not None and row.author_id == user_id:
        raise ValidationError(f"You cannot vote on your own {target.kind}")

    # Undo what the old vote actually gave the author, then apply the new one
    events: list[DomainEvent] = []
    if existing is not None and existing.reputation_delta:
        _, badge_events = await apply_reputation(db, row.author_id, -existing.reputation_delta)
        events.extend(badge_events)
    applied = 0
    if new_type is not None:
        applied, badge_events = await apply_reputation(
            db, row.author_id, vote_reputation(target.kind, new_type),
        )
        events.extend(badge_events)

    if existing is None:
        await EntityStore(db).create_row("vote", {
            "user_id": user_id,
            "type": new_type,
            "reputation_delta": applied,
            **vote_fields(target),
        })
    elif new_type is None:
        await db.delete(existing)
    else:
        existing.type = new_type
        existing.reputation_delta = applied

    old_score = row.vote_score
    row.vote_score = old_score + _weight(new_type) - _weight(previous)
    events.extend(_milestone_events(target, row, old_score))
    await db.flush()

    logger.info(
        "Vote by user %d on %s %d: %s -> %s (score %d -> %d)",
        user_id, target.kind, target.id,
        previous.value if previous else None,
        new_type.value if new_type else None,
        old_score, row.vote_score,
    )
    return VoteOutcome(target, previous, new_type, row.vote_score, events)


async def cast_vote(db: AsyncSession, user_id: int, target: VoteTarget, vote_type: VoteType) -> VoteOutcome:
    """Record ``vote_type`` for the user on ``target``.

    New vote: +1/-1. Opposite of existing vote: updated in place, +2/-2.
    Same as existing vote: no-op.
    """
    return await _apply(db, user_id, target, vote_type)


async def retract_vote(db: AsyncSession, user_id: int, target: VoteTarget) -> VoteOutcome:
    """Remove the user's vote on ``target``. No-op when there is none."""
    return await _apply(db, user_id, target, None)


async def toggle_vote(db: AsyncSession, user_id: int, target: VoteTarget, vote_type: VoteType) -> VoteOutcome:
    """Vote-button semantics: repeating the current vote retracts it."""
    existing = await _find_vote(db, user_id, target)
    if existing is not None and existing.type == vote_type:
        return await retract_vote(db, user_id, target)
    return await cast_vote(db, user_id, target, vote_type)


async def get_user_vote(db: AsyncSession, user_id: int, target: VoteTarget) -> VoteType | None:
    """The user's current vote on ``target``, or None."""
    vote = await _find_vote(db, user_id, target)
    return vote.type if vote else None


async def get_user_votes(
    db: AsyncSession, user_id: int, targets: list[VoteTarget],
) -> dict[VoteTarget, VoteType]:
    """Batch lookup of the user's votes, for decorating listings."""
    if not targets:
        return {}
    question_ids = [t.id for t in targets if isinstance(t, QuestionTarget)]
    comment_ids = [t.id for t in targets if not isinstance(t, QuestionTarget)]
    result = await db.execute(
        select(Vote).where(
            Vote.user_id == user_id,
            Vote.question_id.in_(question_ids) | Vote.comment_id.in_(comment_ids),
        )
    )
    return {target_of(vote): vote.type for vote in result.scalars().all()}


async def recalculate_score(db: AsyncSession, target: VoteTarget) -> int:
    """Recompute ``vote_score`` from the Vote rows and store it.

    Repairs drift; in normal operation the result equals the stored score.
    """
    row = await _lock_target(db, target)
    result = await db.execute(
        select(func.coalesce(func.sum(case((Vote.type == VoteType.UP, 1), else_=-1)), 0))
        .where(getattr(Vote, target.vote_column) == target.id)
    )
    score = int(result.scalar_one())
    if score != row.vote_score:
        logger.warning(
            "Vote score drift on %s %d: stored %d, actual %d",
            target.kind, target.id, row.vote_score, score,
        )
        row.vote_score = score
        await db.flush()
    return score
