"""Pydantic schemas for Video."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from vidsphere.schemas.common import Pagination
from vidsphere.schemas.user import UserPublic


class VideoBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    duration: int | None = Field(None, ge=0)


class VideoCreate(VideoBase):
    video_file: str = Field(..., min_length=1)
    thumbnail_url: str | None = None
    is_published: bool = True
    allow_comments: bool = True


class VideoResponse(VideoBase):
    id: UUID
    user_id: UUID
    video_file: str
    thumbnail_url: str | None = None
    views_count: int = 0
    likes_count: int = 0
    is_liked: bool = False
    is_bookmarked: bool = False
    is_published: bool = True
    allow_comments: bool = True
    created_at: datetime
    user: UserPublic | None = None


class VideoFeedResponse(BaseModel):
    videos: list[VideoResponse]
    pagination: Pagination
