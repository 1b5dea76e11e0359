"""Engagement endpoints: likes, threaded comments, follows."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from vidsphere.api.deps import get_db, get_current_user, get_current_user_optional, get_bus, get_cache
from vidsphere.models.content import ContentType
from vidsphere.models.user import User
from vidsphere.realtime.bus import NotificationBus
from vidsphere.schemas.comment import CommentCreate, CommentUpdate, CommentResponse, CommentListResponse
from vidsphere.schemas.common import page_meta
from vidsphere.schemas.engagement import (
    FollowersPage,
    FollowingPage,
    FollowResponse,
    FollowToggleResponse,
    LikeResponse,
    LikeToggleRequest,
    LikeToggleResponse,
)
from vidsphere.services import cache_service
from vidsphere.services.auth_service import user_to_public
from vidsphere.services.cache_service import CacheAccelerator
from vidsphere.services.comment_service import create_comment, delete_comment, list_comments, update_comment
from vidsphere.services.content_registry import ContentRef
from vidsphere.services.follow_service import list_followers, list_following, toggle_follow
from vidsphere.services.like_service import toggle_like

router = APIRouter(prefix="/engagement", tags=["engagement"])


@router.post("/likes/toggle", response_model=LikeToggleResponse)
async def toggle_like_endpoint(
    data: LikeToggleRequest,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    bus: NotificationBus = Depends(get_bus),
    cache: CacheAccelerator = Depends(get_cache),
):
    result = await toggle_like(
        db,
        user_id=current_user.id,
        content=ContentRef.of(data.content_type, data.content_id),
        bus=bus,
        cache=cache,
    )
    response.status_code = status.HTTP_201_CREATED if result.liked else status.HTTP_200_OK
    return LikeToggleResponse(
        status=result.status,
        likes_count=result.likes_count,
        like=LikeResponse.model_validate(result.like) if result.like else None,
    )


@router.post("/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    bus: NotificationBus = Depends(get_bus),
    cache: CacheAccelerator = Depends(get_cache),
):
    return await create_comment(
        db,
        user_id=current_user.id,
        content=ContentRef.of(data.content_type, data.content_id),
        text=data.text,
        parent_comment_id=data.parent_comment,
        bus=bus,
        cache=cache,
    )


@router.put("/comments/{comment_id}", response_model=CommentResponse)
async def edit_comment(
    comment_id: UUID,
    data: CommentUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    bus: NotificationBus = Depends(get_bus),
    cache: CacheAccelerator = Depends(get_cache),
):
    return await update_comment(
        db, comment_id=comment_id, user_id=current_user.id, text=data.text, bus=bus, cache=cache
    )


@router.delete("/comments/{comment_id}")
async def remove_comment(
    comment_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    bus: NotificationBus = Depends(get_bus),
    cache: CacheAccelerator = Depends(get_cache),
):
    await delete_comment(db, comment_id=comment_id, user_id=current_user.id, bus=bus, cache=cache)
    return {"message": "Comment deleted", "comment_id": str(comment_id)}


@router.get("/comments", response_model=CommentListResponse)
async def get_comments(
    content_id: UUID = Query(..., alias="contentId"),
    content_type: ContentType = Query(..., alias="contentType"),
    parent_comment: UUID | None = Query(None, alias="parentComment"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
    cache: CacheAccelerator = Depends(get_cache),
):
    """Newest-first page of active comments, each with its direct replies."""
    viewer_id = current_user.id if current_user else None
    key = (
        f"{cache_service.comments_prefix(content_type.value, content_id)}"
        f"{parent_comment or 'root'}:{page}:{limit}:{viewer_id or 'anon'}"
    )
    cached = await cache.get(key)
    if cached is not None:
        return cached

    items, total = await list_comments(
        db,
        content=ContentRef.of(content_type, content_id),
        parent_comment_id=parent_comment,
        page=page,
        limit=limit,
        viewer_id=viewer_id,
    )
    body = CommentListResponse(comments=items, pagination=page_meta(page, limit, total))
    await cache.set(key, body.model_dump(mode="json"))
    return body


@router.post("/follow/{target_user_id}", response_model=FollowToggleResponse)
async def toggle_follow_endpoint(
    target_user_id: UUID,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    bus: NotificationBus = Depends(get_bus),
    cache: CacheAccelerator = Depends(get_cache),
):
    result = await toggle_follow(
        db, follower_id=current_user.id, target_user_id=target_user_id, bus=bus, cache=cache
    )
    response.status_code = status.HTTP_201_CREATED if result.status == "followed" else status.HTTP_200_OK
    return FollowToggleResponse(
        status=result.status,
        follow=FollowResponse.model_validate(result.follow) if result.follow else None,
    )


@router.get("/followers/{user_id}", response_model=FollowersPage)
async def get_followers(
    user_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    cache: CacheAccelerator = Depends(get_cache),
):
    key = f"{cache_service.followers_prefix(user_id)}{page}:{limit}"
    cached = await cache.get(key)
    if cached is not None:
        return cached
    users, total = await list_followers(db, user_id, page=page, limit=limit)
    body = FollowersPage(followers=[user_to_public(u) for u in users], pagination=page_meta(page, limit, total))
    await cache.set(key, body.model_dump(mode="json"))
    return body


@router.get("/following/{user_id}", response_model=FollowingPage)
async def get_following(
    user_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    cache: CacheAccelerator = Depends(get_cache),
):
    key = f"{cache_service.following_prefix(user_id)}{page}:{limit}"
    cached = await cache.get(key)
    if cached is not None:
        return cached
    users, total = await list_following(db, user_id, page=page, limit=limit)
    body = FollowingPage(following=[user_to_public(u) for u in users], pagination=page_meta(page, limit, total))
    await cache.set(key, body.model_dump(mode="json"))
    return body
