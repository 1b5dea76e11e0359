"""Existence oracle for engageable content.

Likes and comments point at content through a ``ContentRef`` (kind tag + id).
Each kind registers a resolver that answers one question: does this id exist
and can it be engaged with right now. This is the only place engagement code
touches video/article/comment storage.
"""
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vidsphere.core.exceptions import NotFound
from vidsphere.models.article import Article
from vidsphere.models.comment import Comment
from vidsphere.models.content import ContentType
from vidsphere.models.video import Video


@dataclass(frozen=True)
class ContentRef:
    type: ContentType
    id: UUID

    @classmethod
    def of(cls, content_type: ContentType | str, content_id: UUID) -> "ContentRef":
        return cls(ContentType(content_type), content_id)


class ContentResolver(Protocol):
    async def exists(self, db: AsyncSession, content_id: UUID) -> bool:
        ...


class VideoResolver:
    async def exists(self, db: AsyncSession, content_id: UUID) -> bool:
        result = await db.execute(
            select(Video.id).where(Video.id == content_id, Video.is_published.is_(True))
        )
        return result.first() is not None


class ArticleResolver:
    async def exists(self, db: AsyncSession, content_id: UUID) -> bool:
        result = await db.execute(
            select(Article.id).where(Article.id == content_id, Article.status == "published")
        )
        return result.first() is not None


class CommentResolver:
    async def exists(self, db: AsyncSession, content_id: UUID) -> bool:
        result = await db.execute(
            select(Comment.id).where(Comment.id == content_id, Comment.active.is_(True))
        )
        return result.first() is not None


RESOLVERS: dict[ContentType, ContentResolver] = {
    ContentType.VIDEO: VideoResolver(),
    ContentType.ARTICLE: ArticleResolver(),
    ContentType.COMMENT: CommentResolver(),
}


async def content_exists(db: AsyncSession, ref: ContentRef) -> bool:
    return await RESOLVERS[ref.type].exists(db, ref.id)


async def require_content(db: AsyncSession, ref: ContentRef) -> None:
    if not await content_exists(db, ref):
        raise NotFound(f"{ref.type.value} not found")
