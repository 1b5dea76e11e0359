"""Threaded comments on videos and articles.

Deleting a comment only flips ``active`` off: rows stay so that reply threads
keep their parent, and every read path filters on ``active``. A parent's
``replies_count`` tracks its active children and is adjusted in the same
transaction as the child's create/delete.
"""
from uuid import UUID

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from vidsphere.core.exceptions import Forbidden, NotFound, ValidationError
from vidsphere.models.comment import Comment
from vidsphere.models.content import COMMENTABLE_TYPES, ContentType
from vidsphere.models.video import Video
from vidsphere.realtime import events
from vidsphere.realtime.bus import NotificationBus
from vidsphere.realtime.channels import content_channel
from vidsphere.schemas.comment import COMMENT_MAX_LENGTH, CommentResponse
from vidsphere.services import cache_service
from vidsphere.services.auth_service import user_to_public
from vidsphere.services.cache_service import CacheAccelerator
from vidsphere.services.content_registry import ContentRef, require_content
from vidsphere.services.counter_service import adjust_replies_count
from vidsphere.services.like_service import count_likes_for, get_user_liked_ids


def clean_comment_text(text: str | None) -> str:
    cleaned = (text or "").strip()
    if not cleaned:
        raise ValidationError("Comment text is required")
    if len(cleaned) > COMMENT_MAX_LENGTH:
        raise ValidationError(f"Comment cannot be longer than {COMMENT_MAX_LENGTH} characters")
    return cleaned


def comment_to_response(
    comment: Comment,
    *,
    likes_count: int = 0,
    is_liked: bool = False,
    replies: list[CommentResponse] | None = None,
) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        user_id=comment.user_id,
        content_type=comment.content_type,
        content_id=comment.content_id,
        text=comment.text,
        parent_id=comment.parent_id,
        replies_count=comment.replies_count or 0,
        likes_count=likes_count,
        is_liked=is_liked,
        is_edited=bool(comment.is_edited),
        created_at=comment.created_at,
        updated_at=comment.updated_at,
        user=user_to_public(comment.user) if comment.user else None,
        replies=replies or [],
    )


async def get_active_comment(db: AsyncSession, comment_id: UUID) -> Comment | None:
    result = await db.execute(
        select(Comment)
        .where(Comment.id == comment_id, Comment.active.is_(True))
        .options(selectinload(Comment.user))
    )
    return result.scalar_one_or_none()


async def _load_with_author(db: AsyncSession, comment_id: UUID) -> Comment:
    result = await db.execute(
        select(Comment)
        .where(Comment.id == comment_id)
        .options(selectinload(Comment.user))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _comments_allowed(db: AsyncSession, content: ContentRef) -> bool:
    if content.type is not ContentType.VIDEO:
        return True
    allowed = await db.scalar(select(Video.allow_comments).where(Video.id == content.id))
    return allowed is not False


async def _invalidate(cache: CacheAccelerator, comment: Comment) -> None:
    await cache.invalidate_by_prefix(cache_service.comments_prefix(comment.content_type, comment.content_id))


async def create_comment(
    db: AsyncSession,
    *,
    user_id: UUID,
    content: ContentRef,
    text: str,
    parent_comment_id: UUID | None = None,
    bus: NotificationBus,
    cache: CacheAccelerator,
) -> CommentResponse:
    if content.type not in COMMENTABLE_TYPES:
        raise ValidationError(f"Comments are not supported on {content.type.value}")
    text = clean_comment_text(text)
    await require_content(db, content)
    if not await _comments_allowed(db, content):
        raise Forbidden("Comments are disabled on this video")

    if parent_comment_id is not None:
        parent = await get_active_comment(db, parent_comment_id)
        if parent is None:
            raise NotFound("Parent comment not found")
        if parent.content_id != content.id or parent.content_type != content.type.value:
            raise ValidationError("Parent comment belongs to different content")

    comment = Comment(
        user_id=user_id,
        content_type=content.type.value,
        content_id=content.id,
        text=text,
        parent_id=parent_comment_id,
    )
    db.add(comment)
    await db.flush()
    if parent_comment_id is not None:
        await adjust_replies_count(db, comment_id=parent_comment_id, delta=1)
    await db.commit()

    comment = await _load_with_author(db, comment.id)
    response = comment_to_response(comment)
    bus.publish(
        content_channel(content.type, content.id),
        events.comment_event(events.COMMENT_NEW, response.model_dump(mode="json")),
    )
    await _invalidate(cache, comment)
    return response


async def update_comment(
    db: AsyncSession,
    *,
    comment_id: UUID,
    user_id: UUID,
    text: str,
    bus: NotificationBus,
    cache: CacheAccelerator,
) -> CommentResponse:
    comment = await get_active_comment(db, comment_id)
    if comment is None:
        raise NotFound("Comment not found")
    if comment.user_id != user_id:
        raise Forbidden("Not authorized to update this comment")

    comment.text = clean_comment_text(text)
    comment.is_edited = True
    await db.commit()

    comment = await _load_with_author(db, comment.id)
    counts = await count_likes_for(db, [comment.id])
    liked = await get_user_liked_ids(db, user_id, [comment.id])
    response = comment_to_response(comment, likes_count=counts.get(comment.id, 0), is_liked=comment.id in liked)
    bus.publish(
        content_channel(comment.content_type, comment.content_id),
        events.comment_event(events.COMMENT_UPDATE, response.model_dump(mode="json")),
    )
    await _invalidate(cache, comment)
    return response


async def delete_comment(
    db: AsyncSession,
    *,
    comment_id: UUID,
    user_id: UUID,
    bus: NotificationBus,
    cache: CacheAccelerator,
) -> None:
    comment = await get_active_comment(db, comment_id)
    if comment is None:
        raise NotFound("Comment not found")
    if comment.user_id != user_id:
        raise Forbidden("Not authorized to delete this comment")

    comment.active = False
    if comment.parent_id is not None:
        await adjust_replies_count(db, comment_id=comment.parent_id, delta=-1)
    await db.commit()

    bus.publish(
        content_channel(comment.content_type, comment.content_id),
        events.comment_deleted_event(comment.id),
    )
    await _invalidate(cache, comment)


async def list_comments(
    db: AsyncSession,
    *,
    content: ContentRef,
    parent_comment_id: UUID | None = None,
    page: int = 1,
    limit: int = 10,
    viewer_id: UUID | None = None,
) -> tuple[list[CommentResponse], int]:
    """Newest-first page of active comments with their immediate active replies attached."""
    where = [
        Comment.content_type == content.type.value,
        Comment.content_id == content.id,
        Comment.active.is_(True),
        Comment.parent_id.is_(None) if parent_comment_id is None else Comment.parent_id == parent_comment_id,
    ]
    result = await db.execute(
        select(Comment)
        .where(*where)
        .order_by(desc(Comment.created_at))
        .offset((page - 1) * limit)
        .limit(limit)
        .options(selectinload(Comment.user))
    )
    comments = list(result.scalars().all())
    total = await db.scalar(select(func.count(Comment.id)).where(*where)) or 0

    replies_by_parent: dict[UUID, list[Comment]] = {}
    if comments:
        replies_result = await db.execute(
            select(Comment)
            .where(Comment.parent_id.in_([c.id for c in comments]), Comment.active.is_(True))
            .order_by(desc(Comment.created_at))
            .options(selectinload(Comment.user))
        )
        for reply in replies_result.scalars().all():
            replies_by_parent.setdefault(reply.parent_id, []).append(reply)

    all_ids = [c.id for c in comments] + [r.id for rs in replies_by_parent.values() for r in rs]
    counts = await count_likes_for(db, all_ids)
    liked = await get_user_liked_ids(db, viewer_id, all_ids) if viewer_id else set()

    def build(c: Comment, replies: list[CommentResponse] | None = None) -> CommentResponse:
        return comment_to_response(c, likes_count=counts.get(c.id, 0), is_liked=c.id in liked, replies=replies)

    items = [build(c, [build(r) for r in replies_by_parent.get(c.id, [])]) for c in comments]
    return items, total
