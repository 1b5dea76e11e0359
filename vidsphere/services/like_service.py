"""Like ledger: toggle semantics and ad-hoc like counts.

A Like row's existence is the liked state. Toggling reads the row and then
inserts or deletes it; there is no lock between the read and the write. Two
concurrent toggles by the same user can both see "absent" and both insert, so
the unique constraint on (user_id, content_id) decides: the loser's insert
fails, its transaction is rolled back, and it reports ``liked`` because the
row it wanted now exists.
"""
import logging
from dataclasses import dataclass
from typing import Literal
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vidsphere.models.content import ContentType
from vidsphere.models.engagement import Like
from vidsphere.realtime import events
from vidsphere.realtime.bus import NotificationBus
from vidsphere.realtime.channels import content_channel
from vidsphere.services import cache_service
from vidsphere.services.cache_service import CacheAccelerator
from vidsphere.services.content_registry import ContentRef, require_content
from vidsphere.services.counter_service import adjust_creator_likes

logger = logging.getLogger(__name__)


@dataclass
class LikeToggleResult:
    status: Literal["liked", "unliked"]
    likes_count: int
    like: Like | None = None

    @property
    def liked(self) -> bool:
        return self.status == "liked"


async def get_like(db: AsyncSession, user_id: UUID, content_id: UUID) -> Like | None:
    result = await db.execute(select(Like).where(Like.user_id == user_id, Like.content_id == content_id))
    return result.scalar_one_or_none()


async def count_likes(db: AsyncSession, content_id: UUID) -> int:
    result = await db.execute(select(func.count(Like.id)).where(Like.content_id == content_id))
    return result.scalar() or 0


async def count_likes_for(db: AsyncSession, content_ids: list[UUID]) -> dict[UUID, int]:
    if not content_ids:
        return {}
    result = await db.execute(
        select(Like.content_id, func.count(Like.id)).where(Like.content_id.in_(content_ids)).group_by(Like.content_id)
    )
    return {content_id: n for content_id, n in result.all()}


async def get_user_liked_ids(db: AsyncSession, user_id: UUID, content_ids: list[UUID]) -> set[UUID]:
    if not content_ids:
        return set()
    result = await db.execute(
        select(Like.content_id).where(Like.user_id == user_id, Like.content_id.in_(content_ids))
    )
    return {r[0] for r in result.all()}


async def toggle_like(
    db: AsyncSession,
    *,
    user_id: UUID,
    content: ContentRef,
    bus: NotificationBus,
    cache: CacheAccelerator,
) -> LikeToggleResult:
    await require_content(db, content)

    existing = await get_like(db, user_id, content.id)
    if existing is not None:
        result = await db.execute(delete(Like).where(Like.user_id == user_id, Like.content_id == content.id))
        changed = (result.rowcount or 0) > 0
        if changed:
            await adjust_creator_likes(db, content_type=content.type, content_id=content.id, delta=-1)
        await db.commit()
        status, like = "unliked", None
    else:
        like = Like(user_id=user_id, content_type=content.type.value, content_id=content.id)
        db.add(like)
        try:
            await db.flush()
            await adjust_creator_likes(db, content_type=content.type, content_id=content.id, delta=1)
            await db.commit()
            changed = True
        except IntegrityError:
            # A concurrent toggle inserted the same row first
            await db.rollback()
            logger.info("Concurrent like on %s by %s resolved to existing row", content.id, user_id)
            like = await get_like(db, user_id, content.id)
            changed = False
        status = "liked"

    likes_count = await count_likes(db, content.id)
    if changed:
        # The request that actually changed the row announces it
        bus.publish(
            content_channel(content.type, content.id),
            events.like_event(events.LIKE if status == "liked" else events.UNLIKE, user_id, content.id),
        )
        await invalidate_like_read_paths(cache, content)
    return LikeToggleResult(status=status, likes_count=likes_count, like=like)


async def invalidate_like_read_paths(cache: CacheAccelerator, content: ContentRef) -> None:
    if content.type is ContentType.VIDEO:
        await cache.invalidate_prefixes(cache_service.FEED_PREFIX, cache_service.video_prefix(content.id))
    elif content.type is ContentType.ARTICLE:
        await cache.invalidate_prefixes(cache_service.ARTICLES_PREFIX, cache_service.article_prefix(content.id))
    else:
        # Comment like counts show up in every comment listing of the parent content
        await cache.invalidate_by_prefix(cache_service.COMMENTS_PREFIX)
