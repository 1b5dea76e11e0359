"""Pydantic schemas for likes and follows."""
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from vidsphere.models.content import ContentType
from vidsphere.schemas.common import Pagination
from vidsphere.schemas.user import UserPublic


class LikeToggleRequest(BaseModel):
    content_id: UUID = Field(..., alias="contentId")
    content_type: ContentType = Field(..., alias="contentType")

    model_config = {"populate_by_name": True}


class LikeResponse(BaseModel):
    id: UUID
    user_id: UUID
    content_type: ContentType
    content_id: UUID
    created_at: datetime

    model_config = {"from_attributes": True}


class LikeToggleResponse(BaseModel):
    status: Literal["liked", "unliked"]
    likes_count: int
    like: LikeResponse | None = None


class FollowResponse(BaseModel):
    follower_id: UUID
    following_id: UUID
    status: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class FollowToggleResponse(BaseModel):
    status: Literal["followed", "unfollowed"]
    follow: FollowResponse | None = None


class FollowersPage(BaseModel):
    followers: list[UserPublic]
    pagination: Pagination


class FollowingPage(BaseModel):
    following: list[UserPublic]
    pagination: Pagination
