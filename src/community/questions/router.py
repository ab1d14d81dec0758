"""Category, question and comment API endpoints."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from community.auth.dependencies import get_current_moderator, get_current_user, get_optional_user
from community.database import get_session
from community.db.models import Comment, CommunityUser, Question, VoteType
from community.dependencies import get_redis_dep, page_size
from community.questions.category_service import create_category, list_categories
from community.questions.comment_service import (
    CommentNode,
    accept_comment,
    create_comment,
    delete_comment,
    get_comment_tree,
    unaccept_comment,
)
from community.questions.question_service import (
    community_stats,
    create_question,
    delete_question,
    get_question,
    list_questions,
    update_question,
)
from community.questions.schemas import (
    CategoryListResponse,
    CategoryResponse,
    CommentResponse,
    CommentTreeResponse,
    CreateCategoryRequest,
    CreateCommentRequest,
    CreateQuestionRequest,
    QuestionDetailResponse,
    QuestionListResponse,
    QuestionResponse,
    StatsResponse,
    UpdateQuestionRequest,
)
from community.social.notification_service import dispatch_events
from community.users.schemas import UserSummary
from community.votes.ledger import get_user_votes
from community.votes.targets import CommentTarget, QuestionTarget, VoteTarget

router = APIRouter(prefix="/api/v1", tags=["Questions"])


# ── Helpers ──


def _vote_label(votes: dict[VoteTarget, VoteType], target: VoteTarget) -> str | None:
    vote = votes.get(target)
    return vote.value if vote else None


def _question_response(
    question: Question,
    votes: dict[VoteTarget, VoteType] | None = None,
    viewer: CommunityUser | None = None,
) -> dict:
    show_author = not question.is_anonymous or (viewer is not None and viewer.id == question.author_id)
    return {
        "id": question.id,
        "title": question.title,
        "content": question.content,
        "tags": question.tags,
        "images": question.images,
        "is_urgent": question.is_urgent,
        "is_pinned": question.is_pinned,
        "is_solved": question.is_solved,
        "is_anonymous": question.is_anonymous,
        "view_count": question.view_count,
        "vote_score": question.vote_score,
        "category_id": question.category_id,
        "category_name": question.category.name if question.category else None,
        "author": UserSummary.model_validate(question.author) if show_author else None,
        "user_vote": _vote_label(votes or {}, QuestionTarget(question.id)),
        "created_at": question.created_at,
        "updated_at": question.updated_at,
    }


def _comment_response(
    comment: Comment,
    votes: dict[VoteTarget, VoteType] | None = None,
    replies: list[CommentResponse] | None = None,
) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        content=comment.content,
        images=comment.images,
        is_accepted=comment.is_accepted,
        is_by_expert=comment.is_by_expert,
        vote_score=comment.vote_score,
        question_id=comment.question_id,
        parent_id=comment.parent_id,
        author=UserSummary.model_validate(comment.author),
        user_vote=_vote_label(votes or {}, CommentTarget(comment.id)),
        created_at=comment.created_at,
        updated_at=comment.updated_at,
        replies=replies or [],
    )


def _tree_response(nodes: list[CommentNode], votes: dict[VoteTarget, VoteType]) -> list[CommentResponse]:
    return [
        _comment_response(node.comment, votes, _tree_response(node.replies, votes))
        for node in nodes
    ]


def _flatten(nodes: list[CommentNode]) -> list[Comment]:
    flat: list[Comment] = []
    stack = list(nodes)
    while stack:
        node = stack.pop()
        flat.append(node.comment)
        stack.extend(node.replies)
    return flat


# ── Categories ──


@router.get("/categories", response_model=CategoryListResponse)
async def list_categories_endpoint(db: AsyncSession = Depends(get_session)):
    """Active categories with question counts."""
    rows = await list_categories(db)
    return CategoryListResponse(categories=[
        CategoryResponse.model_validate(category).model_copy(update={"question_count": count})
        for category, count in rows
    ])


@router.post("/categories", response_model=CategoryResponse, status_code=201)
async def create_category_endpoint(
    body: CreateCategoryRequest,
    _moderator: CommunityUser = Depends(get_current_moderator),
    db: AsyncSession = Depends(get_session),
):
    """Create a category (moderators only)."""
    category = await create_category(db, **body.model_dump())
    await db.commit()
    return CategoryResponse.model_validate(category)


# ── Questions ──


@router.get("/questions", response_model=QuestionListResponse)
async def list_questions_endpoint(
    category: int | None = Query(None),
    search: str | None = Query(None, max_length=200),
    filter: str = Query("all"),  # noqa: A002
    sort: str = Query("newest"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1),
    viewer: CommunityUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """List questions with category, search, status filter and sort."""
    per_page = page_size(per_page)
    questions, total = await list_questions(db, category, search, filter, sort, page, per_page)
    votes = {}
    if viewer is not None:
        votes = await get_user_votes(db, viewer.id, [QuestionTarget(q.id) for q in questions])
    return QuestionListResponse(
        questions=[QuestionResponse(**_question_response(q, votes, viewer)) for q in questions],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("/questions", response_model=QuestionResponse, status_code=201)
async def create_question_endpoint(
    body: CreateQuestionRequest,
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Ask a question."""
    question = await create_question(
        db,
        author_id=user.id,
        category_id=body.category_id,
        title=body.title,
        content=body.content,
        tags=body.tags,
        images=body.images,
        is_urgent=body.priority == "urgent",
        is_anonymous=body.is_anonymous,
    )
    await db.commit()
    await db.refresh(question, attribute_names=["author", "category"])
    return QuestionResponse(**_question_response(question, viewer=user))


@router.get("/questions/{question_id}", response_model=QuestionDetailResponse)
async def get_question_endpoint(
    question_id: int,
    viewer: CommunityUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """A question with its comment tree. Counts a view."""
    question = await get_question(db, question_id, count_view=True)
    await db.commit()
    tree = await get_comment_tree(db, question_id)

    votes = {}
    if viewer is not None:
        targets: list[VoteTarget] = [QuestionTarget(question.id)]
        targets += [CommentTarget(c.id) for c in _flatten(tree)]
        votes = await get_user_votes(db, viewer.id, targets)

    return QuestionDetailResponse(
        **_question_response(question, votes, viewer),
        comments=_tree_response(tree, votes),
    )


@router.patch("/questions/{question_id}", response_model=QuestionResponse)
async def update_question_endpoint(
    question_id: int,
    body: UpdateQuestionRequest,
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Edit a question (author or moderator)."""
    await update_question(db, question_id, user, body.model_dump(exclude_unset=True, exclude_none=True))
    await db.commit()
    question = await get_question(db, question_id)
    return QuestionResponse(**_question_response(question, viewer=user))


@router.delete("/questions/{question_id}", status_code=204)
async def delete_question_endpoint(
    question_id: int,
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Delete a question with its comments and votes (author or moderator)."""
    await delete_question(db, question_id, user)
    await db.commit()
    return Response(status_code=204)


@router.get("/stats", response_model=StatsResponse)
async def stats_endpoint(db: AsyncSession = Depends(get_session)):
    """Community totals."""
    stats = await community_stats(db)
    return StatsResponse(**stats, timestamp=datetime.now(timezone.utc))


# ── Comments ──


@router.get("/questions/{question_id}/comments", response_model=CommentTreeResponse)
async def list_comments_endpoint(
    question_id: int,
    viewer: CommunityUser | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_session),
):
    """The question's reply tree."""
    tree = await get_comment_tree(db, question_id)
    flat = _flatten(tree)
    votes = {}
    if viewer is not None:
        votes = await get_user_votes(db, viewer.id, [CommentTarget(c.id) for c in flat])
    return CommentTreeResponse(question_id=question_id, comments=_tree_response(tree, votes), total=len(flat))


@router.post("/questions/{question_id}/comments", response_model=CommentResponse, status_code=201)
async def create_comment_endpoint(
    question_id: int,
    body: CreateCommentRequest,
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Answer a question, or reply to a comment with ``parent_id``."""
    comment, events = await create_comment(
        db, question_id, user.id, body.content, body.images, body.parent_id,
    )
    await db.commit()
    await db.refresh(comment, attribute_names=["author"])
    response = _comment_response(comment)
    await dispatch_events(db, events, redis)
    return response


@router.post("/comments/{comment_id}/accept", response_model=CommentResponse)
async def accept_comment_endpoint(
    comment_id: int,
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Mark the accepted answer (question author or moderator)."""
    comment, events = await accept_comment(db, comment_id, user)
    await db.commit()
    response = _comment_response(comment)
    await dispatch_events(db, events, redis)
    return response


@router.delete("/comments/{comment_id}/accept", response_model=CommentResponse)
async def unaccept_comment_endpoint(
    comment_id: int,
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Withdraw the accepted mark."""
    comment = await unaccept_comment(db, comment_id, user)
    await db.commit()
    return _comment_response(comment)


@router.delete("/comments/{comment_id}", status_code=204)
async def delete_comment_endpoint(
    comment_id: int,
    user: CommunityUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Delete a comment and its replies (author or moderator)."""
    await delete_comment(db, comment_id, user)
    await db.commit()
    return Response(status_code=204)
