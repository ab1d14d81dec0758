"""Domain events that produce notifications.

Services collect these while they work and hand them back to the caller,
which dispatches them after its own transaction has committed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from community.db.models import NotificationType


@dataclass(frozen=True)
class DomainEvent:
    recipient_id: int

    notification_type = NotificationType.SYSTEM_ALERT

    def title(self) -> str:
        raise NotImplementedError

    def message(self) -> str:
        raise NotImplementedError

    def data(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class VoteMilestoneReached(DomainEvent):
    target_type: str
    target_id: int
    question_id: int
    score: int

    notification_type = NotificationType.UPVOTE_MILESTONE

    def title(self) -> str:
        return f"{self.score} upvotes!"

    def message(self) -> str:
        return f"Your {self.target_type} reached a score of {self.score}."

    def data(self) -> dict[str, Any]:
        return {
            "targetType": self.target_type,
            "targetId": self.target_id,
            "questionId": self.question_id,
            "score": self.score,
        }


@dataclass(frozen=True)
class CommentAccepted(DomainEvent):
    question_id: int
    comment_id: int
    question_title: str

    notification_type = NotificationType.QUESTION_SOLVED

    def title(self) -> str:
        return "Your answer was accepted"

    def message(self) -> str:
        return f'Your answer to "{self.question_title}" was marked as the solution.'

    def data(self) -> dict[str, Any]:
        return {"questionId": self.question_id, "commentId": self.comment_id}


@dataclass(frozen=True)
class NewComment(DomainEvent):
    question_id: int
    comment_id: int
    author_name: str
    is_reply: bool = False

    notification_type = NotificationType.NEW_COMMENT

    def title(self) -> str:
        return "New reply" if self.is_reply else "New answer"

    def message(self) -> str:
        if self.is_reply:
            return f"{self.author_name} replied to your comment."
        return f"{self.author_name} answered your question."

    def data(self) -> dict[str, Any]:
        return {"questionId": self.question_id, "commentId": self.comment_id}


@dataclass(frozen=True)
class ExpertReply(DomainEvent):
    question_id: int
    comment_id: int
    author_name: str

    notification_type = NotificationType.EXPERT_REPLY

    def title(self) -> str:
        return "An expert answered"

    def message(self) -> str:
        return f"Expert {self.author_name} answered your question."

    def data(self) -> dict[str, Any]:
        return {"questionId": self.question_id, "commentId": self.comment_id}


@dataclass(frozen=True)
class NewFollower(DomainEvent):
    follower_id: int
    follower_name: str

    notification_type = NotificationType.NEW_FOLLOWER

    def title(self) -> str:
        return "New follower"

    def message(self) -> str:
        return f"{self.follower_name} started following you."

    def data(self) -> dict[str, Any]:
        return {"followerId": self.follower_id}


@dataclass(frozen=True)
class BadgeEarned(DomainEvent):
    badge: str
    label: str

    notification_type = NotificationType.BADGE_EARNED

    def title(self) -> str:
        return "Badge earned!"

    def message(self) -> str:
        return f"You earned the {self.label} badge."

    def data(self) -> dict[str, Any]:
        return {"badge": self.badge}


@dataclass(frozen=True)
class SystemAlert(DomainEvent):
    alert_title: str
    alert_message: str

    notification_type = NotificationType.SYSTEM_ALERT

    def title(self) -> str:
        return self.alert_title

    def message(self) -> str:
        return self.alert_message
