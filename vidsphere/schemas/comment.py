"""Pydantic schemas for Comment."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from vidsphere.models.content import ContentType
from vidsphere.schemas.common import Pagination
from vidsphere.schemas.user import UserPublic

COMMENT_MAX_LENGTH = 1000


class CommentCreate(BaseModel):
    content_id: UUID = Field(..., alias="contentId")
    content_type: ContentType = Field(..., alias="contentType")
    text: str  # stripped and length-checked by comment_service.clean_comment_text
    parent_comment: UUID | None = Field(None, alias="parentComment")

    model_config = {"populate_by_name": True}


class CommentUpdate(BaseModel):
    text: str  # stripped and length-checked by comment_service.clean_comment_text


class CommentResponse(BaseModel):
    id: UUID
    user_id: UUID
    content_type: ContentType
    content_id: UUID
    text: str
    parent_id: UUID | None = None
    replies_count: int = 0
    likes_count: int = 0
    is_liked: bool = False
    is_edited: bool = False
    created_at: datetime
    updated_at: datetime | None = None
    user: UserPublic | None = None
    replies: list["CommentResponse"] = []


class CommentListResponse(BaseModel):
    comments: list[CommentResponse]
    pagination: Pagination
