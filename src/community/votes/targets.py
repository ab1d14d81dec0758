"""Vote targets: a question or a comment, never both, never neither."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from community.db.models import Comment, Question, Vote
from community.errors import InvalidTarget


@dataclass(frozen=True)
class QuestionTarget:
    id: int

    kind: ClassVar[str] = "question"
    model: ClassVar[type[Question]] = Question
    vote_column: ClassVar[str] = "question_id"


@dataclass(frozen=True)
class CommentTarget:
    id: int

    kind: ClassVar[str] = "comment"
    model: ClassVar[type[Comment]] = Comment
    vote_column: ClassVar[str] = "comment_id"


VoteTarget = QuestionTarget | CommentTarget


def target_from_ids(question_id: int | None = None, comment_id: int | None = None) -> VoteTarget:
    """Build a target from the two nullable ids used in storage and requests."""
    if (question_id is None) == (comment_id is None):
        raise InvalidTarget("A vote must reference exactly one of question_id or comment_id")
    if question_id is not None:
        return QuestionTarget(question_id)
    return CommentTarget(comment_id)  # type: ignore[arg-type]


def target_of(vote: Vote) -> VoteTarget:
    return target_from_ids(vote.question_id, vote.comment_id)


def vote_fields(target: VoteTarget) -> dict[str, int | None]:
    """Storage columns for ``target``; the other column is always NULL."""
    return {
        "question_id": target.id if isinstance(target, QuestionTarget) else None,
        "comment_id": target.id if isinstance(target, CommentTarget) else None,
    }
