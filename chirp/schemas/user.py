"""Pydantic schemas for user and follow endpoints."""

from datetime import datetime

from pydantic import BaseModel

from chirp.models.user import Gender, Role


class UserResponse(BaseModel):
    id: int
    name: str
    role: Role
    gender: Gender | None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserDetailResponse(UserResponse):
    following_count: int
    followers_count: int
    is_following: bool | None = None


class UserListResponse(BaseModel):
    items: list[UserResponse]
    total: int


class UpdateProfileRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    gender: str | None = None


class ProfileResponse(UserResponse):
    email: str
    activated: bool
