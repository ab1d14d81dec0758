"""Pydantic schemas for vote endpoints."""

from __future__ import annotations

from pydantic import BaseModel, field_validator

from community.db.models import VoteType


class VoteRequest(BaseModel):
    type: VoteType

    @field_validator("type", mode="before")
    @classmethod
    def _upper(cls, v: object) -> object:
        """Accept "up"/"down" as well as the stored "UP"/"DOWN"."""
        return v.upper() if isinstance(v, str) else v


class TargetVoteRequest(VoteRequest):
    question_id: int | None = None
    comment_id: int | None = None


class VoteResponse(BaseModel):
    target_type: str
    target_id: int
    vote: VoteType | None = None
    previous: VoteType | None = None
    vote_score: int
    changed: bool
    message: str


class UserVoteResponse(BaseModel):
    target_type: str
    target_id: int
    vote: VoteType | None = None
