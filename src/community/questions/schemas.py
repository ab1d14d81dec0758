"""Pydantic schemas for category, question and comment endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from community.users.schemas import UserSummary


# --- Categories ---


class CreateCategoryRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=64)
    slug: str | None = Field(None, pattern=r"^[a-z0-9-]+$", max_length=64)
    description: str | None = None
    color: str | None = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    icon: str | None = Field(None, max_length=64)
    order: int = 0


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    description: str | None = None
    color: str
    icon: str | None = None
    order: int
    is_active: bool
    question_count: int = 0


class CategoryListResponse(BaseModel):
    categories: list[CategoryResponse]


# --- Questions ---


class CreateQuestionRequest(BaseModel):
    title: str = Field(..., min_length=5, max_length=200)
    content: str = Field(..., min_length=1)
    category_id: int
    tags: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    priority: Literal["normal", "urgent"] = "normal"
    is_anonymous: bool = False


class UpdateQuestionRequest(BaseModel):
    title: str | None = Field(None, min_length=5, max_length=200)
    content: str | None = Field(None, min_length=1)
    category_id: int | None = None
    tags: list[str] | None = None
    images: list[str] | None = None
    is_urgent: bool | None = None
    is_anonymous: bool | None = None
    is_pinned: bool | None = None


class QuestionResponse(BaseModel):
    id: int
    title: str
    content: str
    tags: list[str]
    images: list[str]
    is_urgent: bool
    is_pinned: bool
    is_solved: bool
    is_anonymous: bool
    view_count: int
    vote_score: int
    category_id: int
    category_name: str | None = None
    author: UserSummary | None = None  # None for anonymous questions
    user_vote: str | None = None
    created_at: datetime
    updated_at: datetime


class QuestionListResponse(BaseModel):
    questions: list[QuestionResponse]
    total: int
    page: int
    per_page: int


# --- Comments ---


class CreateCommentRequest(BaseModel):
    content: str = Field(..., min_length=1)
    images: list[str] = Field(default_factory=list)
    parent_id: int | None = None


class CommentResponse(BaseModel):
    id: int
    content: str
    images: list[str]
    is_accepted: bool
    is_by_expert: bool
    vote_score: int
    question_id: int
    parent_id: int | None = None
    author: UserSummary
    user_vote: str | None = None
    created_at: datetime
    updated_at: datetime
    replies: list[CommentResponse] = []


class CommentTreeResponse(BaseModel):
    question_id: int
    comments: list[CommentResponse]
    total: int


class QuestionDetailResponse(QuestionResponse):
    comments: list[CommentResponse] = []


class StatsResponse(BaseModel):
    total_questions: int
    total_users: int
    total_comments: int
    total_votes: int
    timestamp: datetime
