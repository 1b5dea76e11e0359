"""Bookmark ledger: one row per (user, video), with notes and a collection name.

Saving is an upsert. Two concurrent first saves both see "absent" and both
insert; the unique constraint on (user_id, video_id) lets one win and the
other applies its fields to the winner's row as an update.
"""
import logging
from uuid import UUID

from sqlalchemy import desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from vidsphere.core.exceptions import Forbidden, NotFound, ValidationError
from vidsphere.models.bookmark import (
    BOOKMARK_NOTES_MAX_LENGTH,
    COLLECTION_NAME_MAX_LENGTH,
    DEFAULT_COLLECTION,
    Bookmark,
)
from vidsphere.models.video import Video
from vidsphere.schemas.bookmark import BookmarkCollection, BookmarkResponse
from vidsphere.services.like_service import count_likes_for, get_user_liked_ids
from vidsphere.services.video_service import video_to_response

logger = logging.getLogger(__name__)


def clean_notes(notes: str | None) -> str | None:
    cleaned = (notes or "").strip()
    if not cleaned:
        return None
    if len(cleaned) > BOOKMARK_NOTES_MAX_LENGTH:
        raise ValidationError(f"Notes cannot be longer than {BOOKMARK_NOTES_MAX_LENGTH} characters")
    return cleaned


def clean_collection_name(name: str | None) -> str | None:
    cleaned = (name or "").strip()
    if not cleaned:
        return None
    if len(cleaned) > COLLECTION_NAME_MAX_LENGTH:
        raise ValidationError(f"Collection name cannot be longer than {COLLECTION_NAME_MAX_LENGTH} characters")
    return cleaned


async def get_bookmark(db: AsyncSession, user_id: UUID, video_id: UUID) -> Bookmark | None:
    result = await db.execute(select(Bookmark).where(Bookmark.user_id == user_id, Bookmark.video_id == video_id))
    return result.scalar_one_or_none()


async def is_bookmarked(db: AsyncSession, user_id: UUID, video_id: UUID) -> bool:
    result = await db.execute(
        select(Bookmark.id).where(Bookmark.user_id == user_id, Bookmark.video_id == video_id)
    )
    return result.first() is not None


async def _load(db: AsyncSession, bookmark_id: UUID) -> Bookmark:
    result = await db.execute(
        select(Bookmark)
        .where(Bookmark.id == bookmark_id)
        .options(selectinload(Bookmark.video).selectinload(Video.user))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def save_bookmark(
    db: AsyncSession,
    *,
    user_id: UUID,
    video_id: UUID,
    notes: str | None = None,
    collection_name: str | None = None,
) -> tuple[Bookmark, bool]:
    """Bookmark a published video, or update the notes/collection of an existing bookmark.

    Returns ``(bookmark, created)``. Blank fields leave the stored values alone.
    """
    video = await db.get(Video, video_id)
    if video is None:
        raise NotFound("Video not found")
    if not video.is_published:
        raise Forbidden("Cannot bookmark unavailable videos")
    notes = clean_notes(notes)
    collection_name = clean_collection_name(collection_name)

    bookmark = await get_bookmark(db, user_id, video_id)
    if bookmark is None:
        bookmark = Bookmark(
            user_id=user_id,
            video_id=video_id,
            notes=notes,
            collection_name=collection_name or DEFAULT_COLLECTION,
        )
        db.add(bookmark)
        try:
            await db.flush()
            await db.commit()
            return await _load(db, bookmark.id), True
        except IntegrityError:
            await db.rollback()
            logger.info("Concurrent bookmark of %s by %s resolved to existing row", video_id, user_id)
            bookmark = await get_bookmark(db, user_id, video_id)

    if notes is not None:
        bookmark.notes = notes
    if collection_name is not None:
        bookmark.collection_name = collection_name
    await db.commit()
    return await _load(db, bookmark.id), False


async def remove_bookmark(db: AsyncSession, *, user_id: UUID, video_id: UUID) -> None:
    bookmark = await get_bookmark(db, user_id, video_id)
    if bookmark is None:
        raise NotFound("Bookmark not found")
    await db.delete(bookmark)
    await db.commit()


async def list_bookmarks(
    db: AsyncSession,
    user_id: UUID,
    *,
    collection: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Bookmark], int]:
    where = [Bookmark.user_id == user_id]
    if collection:
        where.append(Bookmark.collection_name == collection)
    result = await db.execute(
        select(Bookmark)
        .where(*where)
        .order_by(desc(Bookmark.created_at))
        .offset((page - 1) * limit)
        .limit(limit)
        .options(selectinload(Bookmark.video).selectinload(Video.user))
    )
    total = await db.scalar(select(func.count(Bookmark.id)).where(*where))
    return list(result.scalars().all()), total or 0


async def list_collections(db: AsyncSession, user_id: UUID) -> list[BookmarkCollection]:
    result = await db.execute(
        select(Bookmark.collection_name, func.count(Bookmark.id))
        .where(Bookmark.user_id == user_id)
        .group_by(Bookmark.collection_name)
        .order_by(Bookmark.collection_name)
    )
    return [BookmarkCollection(name=name, count=n) for name, n in result.all()]


async def bookmarks_to_response(db: AsyncSession, bookmarks: list[Bookmark], viewer_id: UUID) -> list[BookmarkResponse]:
    video_ids = [b.video_id for b in bookmarks]
    counts = await count_likes_for(db, video_ids)
    liked = await get_user_liked_ids(db, viewer_id, video_ids)
    return [
        BookmarkResponse(
            id=b.id,
            user_id=b.user_id,
            video_id=b.video_id,
            notes=b.notes,
            collection_name=b.collection_name,
            created_at=b.created_at,
            updated_at=b.updated_at,
            video=video_to_response(
                b.video,
                likes_count=counts.get(b.video_id, 0),
                is_liked=b.video_id in liked,
                is_bookmarked=True,
            )
            if b.video
            else None,
        )
        for b in bookmarks
    ]
