"""Pydantic schemas for Article."""
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from vidsphere.schemas.common import Pagination
from vidsphere.schemas.user import UserPublic


class ArticleBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    summary: str | None = Field(None, max_length=500)


class ArticleCreate(ArticleBase):
    status: Literal["draft", "published"] = "draft"
    related_video_id: UUID | None = None


class ArticleResponse(ArticleBase):
    id: UUID
    user_id: UUID
    status: str
    related_video_id: UUID | None = None
    likes_count: int = 0
    created_at: datetime
    user: UserPublic | None = None


class ArticleListResponse(BaseModel):
    articles: list[ArticleResponse]
    pagination: Pagination
