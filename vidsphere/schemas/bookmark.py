"""Pydantic schemas for bookmarks."""
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from vidsphere.schemas.common import Pagination
from vidsphere.schemas.video import VideoResponse


class BookmarkRequest(BaseModel):
    # Lengths are checked after trimming, in bookmark_service
    notes: str | None = None
    collection_name: str | None = Field(None, alias="collectionName")

    model_config = {"populate_by_name": True}


class BookmarkResponse(BaseModel):
    id: UUID
    user_id: UUID
    video_id: UUID
    notes: str | None = None
    collection_name: str
    created_at: datetime
    updated_at: datetime | None = None
    video: VideoResponse | None = None


class BookmarkSaveResponse(BaseModel):
    status: Literal["created", "updated"]
    bookmark: BookmarkResponse


class BookmarkListResponse(BaseModel):
    bookmarks: list[BookmarkResponse]
    pagination: Pagination


class BookmarkCollection(BaseModel):
    name: str
    count: int


class BookmarkCollectionsResponse(BaseModel):
    collections: list[BookmarkCollection]
