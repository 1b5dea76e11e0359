"""Video catalogue business logic."""
from uuid import UUID

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from vidsphere.core.exceptions import ValidationError
from vidsphere.models.video import Video
from vidsphere.schemas.video import VideoCreate, VideoResponse
from vidsphere.services.auth_service import user_to_public
from vidsphere.services.video_stream import sanitize_video_filename


async def create_video(db: AsyncSession, user_id: UUID, data: VideoCreate) -> Video:
    try:
        video_file = sanitize_video_filename(data.video_file)
    except ValueError as e:
        raise ValidationError(str(e))
    video = Video(
        user_id=user_id,
        title=data.title,
        description=data.description,
        video_file=video_file,
        thumbnail_url=data.thumbnail_url,
        duration=data.duration,
        is_published=data.is_published,
        allow_comments=data.allow_comments,
    )
    db.add(video)
    await db.flush()
    await db.refresh(video)
    return video


async def get_video(db: AsyncSession, video_id: UUID) -> Video | None:
    result = await db.execute(select(Video).where(Video.id == video_id).options(selectinload(Video.user)))
    return result.scalar_one_or_none()


async def get_video_feed(db: AsyncSession, *, page: int = 1, limit: int = 10) -> tuple[list[Video], int]:
    q = (
        select(Video)
        .where(Video.is_published.is_(True))
        .order_by(desc(Video.created_at))
        .offset((page - 1) * limit)
        .limit(limit)
        .options(selectinload(Video.user))
    )
    result = await db.execute(q)
    total = await db.scalar(select(func.count(Video.id)).where(Video.is_published.is_(True)))
    return list(result.scalars().all()), total or 0


def video_to_response(
    video: Video, *, likes_count: int = 0, is_liked: bool = False, is_bookmarked: bool = False
) -> VideoResponse:
    return VideoResponse(
        id=video.id,
        user_id=video.user_id,
        title=video.title,
        description=video.description,
        duration=video.duration,
        video_file=video.video_file,
        thumbnail_url=video.thumbnail_url,
        views_count=video.views_count or 0,
        likes_count=likes_count,
        is_liked=is_liked,
        is_bookmarked=is_bookmarked,
        is_published=bool(video.is_published),
        allow_comments=bool(video.allow_comments),
        created_at=video.created_at,
        user=user_to_public(video.user) if video.user else None,
    )
