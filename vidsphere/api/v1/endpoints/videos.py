"""Video catalogue, feed and byte-range streaming."""
import logging
import os
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import FileResponse, StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from vidsphere.api.deps import get_db, get_current_user, get_current_user_optional, get_cache
from vidsphere.core.config import settings
from vidsphere.core.exceptions import NotFound
from vidsphere.models.user import User
from vidsphere.schemas.bookmark import (
    BookmarkCollectionsResponse,
    BookmarkListResponse,
    BookmarkRequest,
    BookmarkSaveResponse,
)
from vidsphere.schemas.common import page_meta
from vidsphere.schemas.video import VideoCreate, VideoResponse, VideoFeedResponse
from vidsphere.services import cache_service
from vidsphere.services.bookmark_service import (
    bookmarks_to_response,
    is_bookmarked,
    list_bookmarks,
    list_collections,
    remove_bookmark,
    save_bookmark,
)
from vidsphere.services.cache_service import CacheAccelerator
from vidsphere.services.counter_service import record_video_view
from vidsphere.services.like_service import count_likes_for, get_user_liked_ids
from vidsphere.services.video_service import create_video, get_video, get_video_feed, video_to_response
from vidsphere.services.video_stream import (
    RangeNotSatisfiable,
    iter_file_range,
    parse_range,
    sanitize_video_filename,
    video_content_type,
    videos_dir,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/videos", tags=["videos"])


@router.post("", response_model=VideoResponse, status_code=status.HTTP_201_CREATED)
async def create_video_endpoint(
    data: VideoCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CacheAccelerator = Depends(get_cache),
):
    video = await create_video(db, current_user.id, data)
    await db.commit()
    video.user = current_user
    await cache.invalidate_by_prefix(cache_service.FEED_PREFIX)
    return video_to_response(video)


@router.get("/feed", response_model=VideoFeedResponse)
async def video_feed(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
    cache: CacheAccelerator = Depends(get_cache),
):
    viewer_id = current_user.id if current_user else None
    key = f"{cache_service.FEED_PREFIX}{page}:{limit}:{viewer_id or 'anon'}"
    cached = await cache.get(key)
    if cached is not None:
        return cached

    videos, total = await get_video_feed(db, page=page, limit=limit)
    ids = [v.id for v in videos]
    counts = await count_likes_for(db, ids)
    liked = await get_user_liked_ids(db, viewer_id, ids) if viewer_id else set()
    body = VideoFeedResponse(
        videos=[video_to_response(v, likes_count=counts.get(v.id, 0), is_liked=v.id in liked) for v in videos],
        pagination=page_meta(page, limit, total),
    )
    await cache.set(key, body.model_dump(mode="json"))
    return body


@router.get("/user/bookmarks", response_model=BookmarkListResponse)
async def my_bookmarks(
    collection: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    bookmarks, total = await list_bookmarks(db, current_user.id, collection=collection, page=page, limit=limit)
    return BookmarkListResponse(
        bookmarks=await bookmarks_to_response(db, bookmarks, current_user.id),
        pagination=page_meta(page, limit, total),
    )


@router.get("/user/bookmark-collections", response_model=BookmarkCollectionsResponse)
async def my_bookmark_collections(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return BookmarkCollectionsResponse(collections=await list_collections(db, current_user.id))


@router.get("/{video_id}", response_model=VideoResponse)
async def get_video_endpoint(
    video_id: UUID,
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
    cache: CacheAccelerator = Depends(get_cache),
):
    viewer_id = current_user.id if current_user else None
    # Every fetch counts, cached or not
    views = await record_video_view(db, video_id)
    await db.commit()
    key = f"{cache_service.video_prefix(video_id)}{viewer_id or 'anon'}"
    cached = await cache.get(key)
    if cached is not None:
        if views is not None:
            cached["views_count"] = views
        return cached

    video = await get_video(db, video_id)
    # Unpublished videos are visible to their creator only
    if not video or (not video.is_published and video.user_id != viewer_id):
        raise NotFound("Video not found")
    counts = await count_likes_for(db, [video.id])
    liked = await get_user_liked_ids(db, viewer_id, [video.id]) if viewer_id else set()
    body = video_to_response(
        video,
        likes_count=counts.get(video.id, 0),
        is_liked=video.id in liked,
        is_bookmarked=await is_bookmarked(db, viewer_id, video.id) if viewer_id else False,
    )
    await cache.set(key, body.model_dump(mode="json"))
    return body


@router.get("/{video_id}/stream")
async def stream_video(
    video_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Serve the video file, honouring ``Range: bytes=start-[end]`` with chunks capped at VIDEO_MAX_CHUNK_BYTES."""
    video = await get_video(db, video_id)
    if not video or not video.is_published:
        raise NotFound("Video not found")
    try:
        filename = sanitize_video_filename(video.video_file)
    except ValueError:
        logger.warning("Video %s has an unusable file name %r", video_id, video.video_file)
        raise NotFound("Video file not found")

    path = videos_dir(settings.UPLOAD_DIR) / filename
    if not path.is_file():
        logger.warning("Video file missing for %s: %s", video_id, path)
        raise NotFound("Video file not found")

    file_size = os.path.getsize(path)
    content_type = video_content_type(filename)
    range_header = request.headers.get("range")
    if not range_header:
        await record_video_view(db, video_id)
        await db.commit()
        return FileResponse(path, media_type=content_type, headers={"Accept-Ranges": "bytes"})

    try:
        byte_range = parse_range(range_header, file_size, settings.VIDEO_MAX_CHUNK_BYTES)
    except RangeNotSatisfiable:
        return Response(
            status_code=status.HTTP_416_REQUESTED_RANGE_NOT_SATISFIABLE,
            headers={"Content-Range": f"bytes */{file_size}"},
        )
    # Players fetch a video in many ranges; only the one starting at byte 0 is a view
    if byte_range.start == 0:
        await record_video_view(db, video_id)
        await db.commit()
    return StreamingResponse(
        iter_file_range(path, byte_range.start, byte_range.length),
        status_code=status.HTTP_206_PARTIAL_CONTENT,
        media_type=content_type,
        headers={
            "Content-Range": byte_range.content_range(file_size),
            "Accept-Ranges": "bytes",
            "Content-Length": str(byte_range.length),
        },
    )


@router.post("/{video_id}/bookmark", response_model=BookmarkSaveResponse)
async def bookmark_video(
    video_id: UUID,
    response: Response,
    data: BookmarkRequest | None = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CacheAccelerator = Depends(get_cache),
):
    data = data or BookmarkRequest()
    bookmark, created = await save_bookmark(
        db,
        user_id=current_user.id,
        video_id=video_id,
        notes=data.notes,
        collection_name=data.collection_name,
    )
    await cache.invalidate_by_prefix(cache_service.video_prefix(video_id))
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    [body] = await bookmarks_to_response(db, [bookmark], current_user.id)
    return BookmarkSaveResponse(status="created" if created else "updated", bookmark=body)


@router.delete("/{video_id}/bookmark")
async def unbookmark_video(
    video_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CacheAccelerator = Depends(get_cache),
):
    await remove_bookmark(db, user_id=current_user.id, video_id=video_id)
    await cache.invalidate_by_prefix(cache_service.video_prefix(video_id))
    return {"message": "Bookmark removed", "video_id": str(video_id)}
