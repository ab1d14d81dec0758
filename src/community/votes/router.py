"""Vote API endpoints.

All mutations go through ``run_vote_transaction`` so the vote row and the
target's score commit together; notifications are dispatched afterwards.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from community.auth.dependencies import get_current_user
from community.database import get_session
from community.db.models import CommunityUser, VoteType
from community.dependencies import get_redis_dep
from community.social.notification_service import dispatch_events
from community.votes.ledger import VoteOutcome, cast_vote, get_user_vote, retract_vote, toggle_vote
from community.votes.schemas import TargetVoteRequest, UserVoteResponse, VoteRequest, VoteResponse
from community.votes.targets import CommentTarget, QuestionTarget, VoteTarget, target_from_ids
from community.votes.transaction import run_vote_transaction

router = APIRouter(prefix="/api/v1", tags=["Votes"])


def _message(outcome: VoteOutcome) -> str:
    if not outcome.changed:
        return "Vote unchanged"
    if outcome.current is None:
        return "Vote removed"
    if outcome.previous is None:
        return "Vote recorded"
    return "Vote updated"


async def _cast(
    db: AsyncSession, redis: object | None, user_id: int, target: VoteTarget, vote_type: VoteType,
) -> VoteResponse:
    outcome = await run_vote_transaction(db, lambda s: cast_vote(s, user_id, target, vote_type))
    return await _respond(db, redis, outcome)


async def _retract(db: AsyncSession, redis: object | None, user_id: int, target: VoteTarget) -> VoteResponse:
    outcome = await run_vote_transaction(db, lambda s: retract_vote(s, user_id, target))
    return await _respond(db, redis, outcome)


async def _toggle(
    db: AsyncSession, redis: object | None, user_id: int, target: VoteTarget, vote_type: VoteType,
) -> VoteResponse:
    outcome = await run_vote_transaction(db, lambda s: toggle_vote(s, user_id, target, vote_type))
    return await _respond(db, redis, outcome)


async def _respond(db: AsyncSession, redis: object | None, outcome: VoteOutcome) -> VoteResponse:
    response = VoteResponse(
        target_type=outcome.target.kind,
        target_id=outcome.target.id,
        vote=outcome.current,
        previous=outcome.previous,
        vote_score=outcome.score,
        changed=outcome.changed,
        message=_message(outcome),
    )
    await dispatch_events(db, outcome.events, redis)
    return response


@router.post("/questions/{question_id}/vote", response_model=VoteResponse)
async def vote_question(
    question_id: int,
    body: VoteRequest,
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Vote on a question. Repeating the same vote changes nothing."""
    return await _cast(db, redis, user.id, QuestionTarget(question_id), body.type)


@router.delete("/questions/{question_id}/vote", response_model=VoteResponse)
async def retract_question_vote(
    question_id: int,
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Retract the caller's vote on a question."""
    return await _retract(db, redis, user.id, QuestionTarget(question_id))


@router.post("/questions/{question_id}/vote/toggle", response_model=VoteResponse)
async def toggle_question_vote(
    question_id: int,
    body: VoteRequest,
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Vote-button behaviour: pressing the active vote again removes it."""
    return await _toggle(db, redis, user.id, QuestionTarget(question_id), body.type)


@router.post("/comments/{comment_id}/vote", response_model=VoteResponse)
async def vote_comment(
    comment_id: int,
    body: VoteRequest,
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Vote on a comment. Repeating the same vote changes nothing."""
    return await _cast(db, redis, user.id, CommentTarget(comment_id), body.type)


@router.delete("/comments/{comment_id}/vote", response_model=VoteResponse)
async def retract_comment_vote(
    comment_id: int,
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Retract the caller's vote on a comment."""
    return await _retract(db, redis, user.id, CommentTarget(comment_id))


@router.post("/comments/{comment_id}/vote/toggle", response_model=VoteResponse)
async def toggle_comment_vote(
    comment_id: int,
    body: VoteRequest,
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Vote-button behaviour: pressing the active vote again removes it."""
    return await _toggle(db, redis, user.id, CommentTarget(comment_id), body.type)


@router.post("/votes", response_model=VoteResponse)
async def vote_target(
    body: TargetVoteRequest,
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Vote on exactly one of ``question_id`` / ``comment_id``."""
    target = target_from_ids(body.question_id, body.comment_id)
    return await _cast(db, redis, user.id, target, body.type)


@router.get("/votes/mine", response_model=UserVoteResponse)
async def my_vote(
    question_id: int | None = Query(None),
    comment_id: int | None = Query(None),
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """The caller's current vote on one target."""
    target = target_from_ids(question_id, comment_id)
    vote = await get_user_vote(db, user.id, target)
    return UserVoteResponse(target_type=target.kind, target_id=target.id, vote=vote)
