"""Comments and the per-question reply tree.

Comments are stored flat with a nullable ``parent_id``; trees are built by id
lookup, never by walking ORM relationships. A reply's parent must belong to
the same question.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from community.db.models import Comment, CommunityUser, Question, Vote
from community.errors import NotFound, ValidationError
from community.questions.question_service import validate_content, validate_images, get_question
from community.social.events import CommentAccepted, DomainEvent, ExpertReply, NewComment
from community.store.entity_store import EntityStore
from community.users.reputation import ACCEPTED_ANSWER_REPUTATION
from community.users.service import adjust_reputation, ensure_owner_or_moderator, get_user

logger = logging.getLogger(__name__)


@dataclass
class CommentNode:
    comment: Comment
    replies: list[CommentNode] = field(default_factory=list)


async def get_comment(db: AsyncSession, comment_id: int) -> Comment:
    result = await db.execute(
        select(Comment).where(Comment.id == comment_id).options(selectinload(Comment.author))
    )
    comment = result.scalar_one_or_none()
    if comment is None:
        raise NotFound(f"Comment {comment_id} not found")
    return comment


async def create_comment(
    db: AsyncSession,
    question_id: int,
    author_id: int,
    content: str,
    images: list[str] | None = None,
    parent_id: int | None = None,
) -> tuple[Comment, list[DomainEvent]]:
    """Post an answer (no parent) or a reply.

    Returns the comment and the notification events to dispatch.
    """
    question = await get_question(db, question_id)
    author = await get_user(db, author_id)

    parent: Comment | None = None
    if parent_id is not None:
        parent = await db.get(Comment, parent_id)
        if parent is None:
            raise ValidationError(f"Parent comment {parent_id} does not exist")
        if parent.question_id != question_id:
            raise ValidationError("Parent comment belongs to a different question")

    comment = await EntityStore(db).create_row("comment", {
        "question_id": question_id,
        "author_id": author_id,
        "content": validate_content(content),
        "images": validate_images(images),
        "parent_id": parent_id,
        "is_by_expert": author.is_expert,
    })
    logger.info("Comment created: id=%d question=%d author=%d", comment.id, question_id, author_id)

    events: list[DomainEvent] = []
    if question.author_id != author_id:
        if author.is_expert:
            events.append(ExpertReply(
                recipient_id=question.author_id,
                question_id=question_id,
                comment_id=comment.id,
                author_name=author.username,
            ))
        else:
            events.append(NewComment(
                recipient_id=question.author_id,
                question_id=question_id,
                comment_id=comment.id,
                author_name=author.username,
            ))
    if parent is not None and parent.author_id not in (author_id, question.author_id):
        events.append(NewComment(
            recipient_id=parent.author_id,
            question_id=question_id,
            comment_id=comment.id,
            author_name=author.username,
            is_reply=True,
        ))
    return comment, events


async def list_comments(db: AsyncSession, question_id: int) -> list[Comment]:
    """All comments on a question in creation order."""
    result = await db.execute(
        select(Comment)
        .where(Comment.question_id == question_id)
        .options(selectinload(Comment.author))
        .order_by(Comment.created_at, Comment.id)
    )
    return list(result.scalars().all())


def build_tree(comments: list[Comment]) -> list[CommentNode]:
    """Assemble flat comments into a forest keyed by ``parent_id``.

    Roots are ordered accepted-first, then oldest-first; replies oldest-first.
    Replies whose parent is missing from ``comments`` are promoted to roots.
    """
    nodes = {c.id: CommentNode(c) for c in comments}
    roots: list[CommentNode] = []
    for comment in comments:
        node = nodes[comment.id]
        parent = nodes.get(comment.parent_id) if comment.parent_id is not None else None
        if parent is None:
            roots.append(node)
        else:
            parent.replies.append(node)

    for node in nodes.values():
        node.replies.sort(key=lambda n: n.comment.id)
    roots.sort(key=lambda n: (not n.comment.is_accepted, n.comment.id))
    return roots


async def get_comment_tree(db: AsyncSession, question_id: int) -> list[CommentNode]:
    await get_question(db, question_id)
    return build_tree(await list_comments(db, question_id))


async def get_thread(db: AsyncSession, comment_id: int) -> list[Comment]:
    """Ancestor chain from the root answer down to ``comment_id``."""
    chain = [await get_comment(db, comment_id)]
    seen = {comment_id}
    while chain[-1].parent_id is not None:
        parent_id = chain[-1].parent_id
        if parent_id in seen:
            raise ValidationError(f"Reply cycle detected at comment {parent_id}")
        seen.add(parent_id)
        chain.append(await get_comment(db, parent_id))
    chain.reverse()
    return chain


async def accept_comment(
    db: AsyncSession,
    comment_id: int,
    actor: CommunityUser,
) -> tuple[Comment, list[DomainEvent]]:
    """Mark a comment as the accepted answer and the question as solved.

    At most one comment per question is accepted; accepting another one
    moves the flag and the reputation grant.
    """
    comment = await get_comment(db, comment_id)
    question = await db.get(Question, comment.question_id, with_for_update=True)
    if question is None:
        raise NotFound(f"Question {comment.question_id} not found")
    ensure_owner_or_moderator(actor, question.author_id, "accept an answer")

    if comment.is_accepted:
        return comment, []

    events: list[DomainEvent] = []
    previous = (await db.execute(
        select(Comment).where(Comment.question_id == question.id, Comment.is_accepted.is_(True))
    )).scalars().all()
    for prior in previous:
        prior.is_accepted = False
        if prior.author_id != question.author_id:
            await adjust_reputation(db, prior.author_id, -ACCEPTED_ANSWER_REPUTATION)

    comment.is_accepted = True
    question.is_solved = True
    await db.flush()

    if comment.author_id != question.author_id:
        events.extend(await adjust_reputation(db, comment.author_id, ACCEPTED_ANSWER_REPUTATION))
        events.append(CommentAccepted(
            recipient_id=comment.author_id,
            question_id=question.id,
            comment_id=comment.id,
            question_title=question.title,
        ))
    logger.info("Comment %d accepted on question %d", comment.id, question.id)
    return comment, events


async def unaccept_comment(db: AsyncSession, comment_id: int, actor: CommunityUser) -> Comment:
    """Withdraw acceptance; the question is no longer solved."""
    comment = await get_comment(db, comment_id)
    question = await db.get(Question, comment.question_id, with_for_update=True)
    if question is None:
        raise NotFound(f"Question {comment.question_id} not found")
    ensure_owner_or_moderator(actor, question.author_id, "change the accepted answer")
    if not comment.is_accepted:
        return comment

    comment.is_accepted = False
    question.is_solved = False
    if comment.author_id != question.author_id:
        await adjust_reputation(db, comment.author_id, -ACCEPTED_ANSWER_REPUTATION)
    await db.flush()
    return comment


async def _descendant_ids(db: AsyncSession, comment: Comment) -> list[int]:
    """Ids of ``comment`` and all replies below it, by repeated id lookup."""
    rows = (await db.execute(
        select(Comment.id, Comment.parent_id).where(Comment.question_id == comment.question_id)
    )).all()
    children: dict[int, list[int]] = {}
    for id_, parent_id in rows:
        if parent_id is not None:
            children.setdefault(parent_id, []).append(id_)

    ids: list[int] = []
    stack = [comment.id]
    while stack:
        current = stack.pop()
        ids.append(current)
        stack.extend(children.get(current, []))
    return ids


async def delete_comment(db: AsyncSession, comment_id: int, actor: CommunityUser) -> int:
    """Delete a comment, its replies and their votes. Returns rows removed."""
    comment = await get_comment(db, comment_id)
    ensure_owner_or_moderator(actor, comment.author_id, "delete this comment")

    ids = await _descendant_ids(db, comment)
    # The accepted answer may be anywhere in the removed subtree
    accepted = (await db.execute(
        select(Comment).where(Comment.id.in_(ids), Comment.is_accepted.is_(True))
    )).scalars().all()
    if accepted:
        question = await db.get(Question, comment.question_id, with_for_update=True)
        if question is not None:
            question.is_solved = False
            for answer in accepted:
                if answer.author_id != question.author_id:
                    await adjust_reputation(db, answer.author_id, -ACCEPTED_ANSWER_REPUTATION)
        await db.flush()
    await db.execute(delete(Vote).where(Vote.comment_id.in_(ids)))
    await db.execute(delete(Comment).where(Comment.id.in_(ids)))
    await db.flush()
    logger.info("Comment %d deleted with %d replies", comment_id, len(ids) - 1)
    return len(ids)
