"""Follow ledger: toggle semantics with follower/following counters kept in lockstep."""
import logging
from dataclasses import dataclass
from typing import Literal
from uuid import UUID

from sqlalchemy import delete, desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vidsphere.core.exceptions import InvalidOperation, NotFound
from vidsphere.models.engagement import FOLLOW_ACTIVE, Follow
from vidsphere.models.user import User
from vidsphere.realtime import events
from vidsphere.realtime.bus import NotificationBus
from vidsphere.realtime.channels import user_channel
from vidsphere.services import cache_service
from vidsphere.services.cache_service import CacheAccelerator
from vidsphere.services.counter_service import adjust_follow_counters

logger = logging.getLogger(__name__)


@dataclass
class FollowToggleResult:
    status: Literal["followed", "unfollowed"]
    follow: Follow | None = None


async def get_follow(db: AsyncSession, follower_id: UUID, following_id: UUID) -> Follow | None:
    result = await db.execute(
        select(Follow).where(Follow.follower_id == follower_id, Follow.following_id == following_id)
    )
    return result.scalar_one_or_none()


async def _user_exists(db: AsyncSession, user_id: UUID) -> bool:
    result = await db.execute(select(User.id).where(User.id == user_id))
    return result.first() is not None


async def toggle_follow(
    db: AsyncSession,
    *,
    follower_id: UUID,
    target_user_id: UUID,
    bus: NotificationBus,
    cache: CacheAccelerator,
) -> FollowToggleResult:
    """Follow the target if not following yet, unfollow otherwise.

    The ledger row and both counters change in one transaction. Counters move
    only when this call actually created or removed an active row, so a lost
    race never double-counts.
    """
    if follower_id == target_user_id:
        raise InvalidOperation("Users cannot follow themselves")
    if not await _user_exists(db, target_user_id):
        raise NotFound("Target user not found")

    existing = await get_follow(db, follower_id, target_user_id)
    if existing is not None:
        was_active = existing.status == FOLLOW_ACTIVE
        result = await db.execute(
            delete(Follow).where(Follow.follower_id == follower_id, Follow.following_id == target_user_id)
        )
        changed = (result.rowcount or 0) > 0
        if changed and was_active:
            await adjust_follow_counters(db, follower_id=follower_id, following_id=target_user_id, delta=-1)
        await db.commit()
        status, follow = "unfollowed", None
    else:
        follow = Follow(follower_id=follower_id, following_id=target_user_id, status=FOLLOW_ACTIVE)
        db.add(follow)
        try:
            await db.flush()
            await adjust_follow_counters(db, follower_id=follower_id, following_id=target_user_id, delta=1)
            await db.commit()
            changed = True
        except IntegrityError:
            await db.rollback()
            logger.info("Concurrent follow %s -> %s resolved to existing row", follower_id, target_user_id)
            follow = await get_follow(db, follower_id, target_user_id)
            changed = False
        status = "followed"

    if changed:
        bus.publish(
            user_channel(target_user_id),
            events.follow_event(events.FOLLOW if status == "followed" else events.UNFOLLOW, follower_id, target_user_id),
        )
        await cache.invalidate_prefixes(
            cache_service.followers_prefix(target_user_id),
            cache_service.following_prefix(follower_id),
        )
        await cache.invalidate(cache_service.profile_key(target_user_id))
        await cache.invalidate(cache_service.profile_key(follower_id))
    return FollowToggleResult(status=status, follow=follow)


async def list_followers(db: AsyncSession, user_id: UUID, *, page: int = 1, limit: int = 20) -> tuple[list[User], int]:
    where = (Follow.following_id == user_id, Follow.status == FOLLOW_ACTIVE)
    result = await db.execute(
        select(User)
        .join(Follow, Follow.follower_id == User.id)
        .where(*where)
        .order_by(desc(Follow.created_at))
        .offset((page - 1) * limit)
        .limit(limit)
    )
    total = await db.scalar(select(func.count()).select_from(Follow).where(*where))
    return list(result.scalars().all()), total or 0


async def list_following(db: AsyncSession, user_id: UUID, *, page: int = 1, limit: int = 20) -> tuple[list[User], int]:
    where = (Follow.follower_id == user_id, Follow.status == FOLLOW_ACTIVE)
    result = await db.execute(
        select(User)
        .join(Follow, Follow.following_id == User.id)
        .where(*where)
        .order_by(desc(Follow.created_at))
        .offset((page - 1) * limit)
        .limit(limit)
    )
    total = await db.scalar(select(func.count()).select_from(Follow).where(*where))
    return list(result.scalars().all()), total or 0
