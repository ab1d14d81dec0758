"""Pydantic schemas for user and follow endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class RegisterUserRequest(BaseModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=64)
    first_name: str = Field("", max_length=64)
    last_name: str = Field("", max_length=64)
    location: str | None = Field(None, max_length=128)
    farm_name: str | None = Field(None, max_length=128)
    farm_size: Literal["Small", "Medium", "Large"] | None = None
    farm_type: Literal["Organic", "Traditional", "Mixed"] | None = None
    experience: Literal["Beginner", "Intermediate", "Expert"] | None = None
    specialties: list[str] = Field(default_factory=list, max_length=20)


class ProfileUpdateRequest(BaseModel):
    first_name: str | None = Field(None, max_length=64)
    last_name: str | None = Field(None, max_length=64)
    avatar: str | None = None
    bio: str | None = Field(None, max_length=500)
    location: str | None = Field(None, max_length=128)
    farm_name: str | None = Field(None, max_length=128)
    farm_size: Literal["Small", "Medium", "Large"] | None = None
    farm_type: Literal["Organic", "Traditional", "Mixed"] | None = None
    experience: Literal["Beginner", "Intermediate", "Expert"] | None = None
    specialties: list[str] | None = Field(None, max_length=20)
    notification_preferences: dict[str, bool] | None = None


class UserSummary(BaseModel):
    """Author block embedded in questions and comments."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    first_name: str
    last_name: str
    avatar: str | None = None
    reputation: int
    level: int
    is_expert: bool
    is_verified: bool
    is_moderator: bool


class PublicUserResponse(UserSummary):
    bio: str | None = None
    location: str | None = None
    farm_name: str | None = None
    farm_size: str | None = None
    farm_type: str | None = None
    experience: str | None = None
    specialties: list[str] = []
    badges: list[str] = []
    level_title: str = ""
    created_at: datetime


class UserResponse(PublicUserResponse):
    """The caller's own profile, including private fields."""

    email: str
    notification_preferences: dict[str, bool] = {}
    last_active: datetime


class FollowResponse(BaseModel):
    follower_id: int
    following_id: int
    created_at: datetime


class UserListResponse(BaseModel):
    users: list[UserSummary]
    total: int
    page: int
    per_page: int
