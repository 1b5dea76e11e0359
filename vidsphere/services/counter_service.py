"""Denormalized counter maintenance.

Sole writer of ``User.followers_count``, ``User.following_count``,
``User.total_views``, ``User.total_likes``, ``Video.views_count`` and
``Comment.replies_count``. ``total_likes`` counts likes on the creator's
videos and articles; likes on comments are not credited.

Adjustments are server-side ``col = col + delta`` updates issued inside the
caller's transaction, so they commit or roll back together with the ledger
row that caused them. Concurrent adjustments from different requests are not
ordered relative to each other.

The reconcile functions recompute the counters from ledger rows and repair
anything that drifted (crash between writes, manual data fixes, old bugs).
"""
import logging
from uuid import UUID

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vidsphere.models.article import Article
from vidsphere.models.comment import Comment
from vidsphere.models.content import ContentType
from vidsphere.models.engagement import FOLLOW_ACTIVE, Follow, Like
from vidsphere.models.user import User
from vidsphere.models.video import Video

logger = logging.getLogger(__name__)


def _bounded(column, delta: int):
    # Decrements never take a counter below zero
    if delta >= 0:
        return column + delta
    return case((column + delta < 0, 0), else_=column + delta)


async def adjust_follow_counters(db: AsyncSession, *, follower_id: UUID, following_id: UUID, delta: int) -> None:
    await db.execute(
        update(User)
        .where(User.id == following_id)
        .values(followers_count=_bounded(User.followers_count, delta))
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(User)
        .where(User.id == follower_id)
        .values(following_count=_bounded(User.following_count, delta))
        .execution_options(synchronize_session=False)
    )


async def adjust_replies_count(db: AsyncSession, *, comment_id: UUID, delta: int) -> None:
    await db.execute(
        update(Comment)
        .where(Comment.id == comment_id)
        .values(replies_count=_bounded(Comment.replies_count, delta))
        .execution_options(synchronize_session=False)
    )


async def record_video_view(db: AsyncSession, video_id: UUID) -> int | None:
    """Count one view of a published video and credit its creator.

    Returns the new ``views_count``, or None when no published video has that id.
    The caller commits.
    """
    result = await db.execute(
        update(Video)
        .where(Video.id == video_id, Video.is_published.is_(True))
        .values(views_count=Video.views_count + 1)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        return None
    creator_id = select(Video.user_id).where(Video.id == video_id).scalar_subquery()
    await db.execute(
        update(User)
        .where(User.id == creator_id)
        .values(total_views=User.total_views + 1)
        .execution_options(synchronize_session=False)
    )
    return await db.scalar(select(Video.views_count).where(Video.id == video_id))


_OWNED_CONTENT = {ContentType.VIDEO: Video, ContentType.ARTICLE: Article}


async def adjust_creator_likes(db: AsyncSession, *, content_type: ContentType, content_id: UUID, delta: int) -> None:
    model = _OWNED_CONTENT.get(content_type)
    if model is None:
        return
    creator_id = select(model.user_id).where(model.id == content_id).scalar_subquery()
    await db.execute(
        update(User)
        .where(User.id == creator_id)
        .values(total_likes=_bounded(User.total_likes, delta))
        .execution_options(synchronize_session=False)
    )


async def reconcile_follow_counters(db: AsyncSession) -> int:
    """Recompute follower/following counts from active follows. Returns number of users fixed."""
    followers = (
        select(Follow.following_id.label("user_id"), func.count().label("n"))
        .where(Follow.status == FOLLOW_ACTIVE)
        .group_by(Follow.following_id)
        .subquery()
    )
    following = (
        select(Follow.follower_id.label("user_id"), func.count().label("n"))
        .where(Follow.status == FOLLOW_ACTIVE)
        .group_by(Follow.follower_id)
        .subquery()
    )
    result = await db.execute(
        select(
            User.id,
            User.followers_count,
            User.following_count,
            func.coalesce(followers.c.n, 0),
            func.coalesce(following.c.n, 0),
        )
        .outerjoin(followers, followers.c.user_id == User.id)
        .outerjoin(following, following.c.user_id == User.id)
    )
    fixed = 0
    for user_id, stored_followers, stored_following, actual_followers, actual_following in result.all():
        if stored_followers == actual_followers and stored_following == actual_following:
            continue
        logger.warning(
            "Counter drift for user %s: followers %s->%s following %s->%s",
            user_id, stored_followers, actual_followers, stored_following, actual_following,
        )
        await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(followers_count=actual_followers, following_count=actual_following)
            .execution_options(synchronize_session=False)
        )
        fixed += 1
    return fixed


async def reconcile_replies_counts(db: AsyncSession) -> int:
    """Recompute replies_count from active child comments. Returns number of comments fixed."""
    child = Comment.__table__.alias("child")
    actual = (
        select(child.c.parent_id.label("comment_id"), func.count().label("n"))
        .where(child.c.parent_id.is_not(None), child.c.active.is_(True))
        .group_by(child.c.parent_id)
        .subquery()
    )
    actual_n = func.coalesce(actual.c.n, 0)
    result = await db.execute(
        select(Comment.id, Comment.replies_count, actual_n)
        .outerjoin(actual, actual.c.comment_id == Comment.id)
        .where(Comment.replies_count != actual_n)
    )
    fixed = 0
    for comment_id, stored, expected in result.all():
        logger.warning("replies_count drift for comment %s: %s->%s", comment_id, stored, expected)
        await db.execute(
            update(Comment)
            .where(Comment.id == comment_id)
            .values(replies_count=expected)
            .execution_options(synchronize_session=False)
        )
        fixed += 1
    return fixed


async def reconcile_creator_totals(db: AsyncSession) -> int:
    """Recompute total_views and total_likes from videos, articles and likes. Returns number of users fixed."""
    views = (
        select(Video.user_id.label("user_id"), func.sum(Video.views_count).label("n"))
        .group_by(Video.user_id)
        .subquery()
    )
    owned_likes = (
        select(Video.user_id.label("user_id"), Like.id.label("like_id"))
        .join(Like, (Like.content_id == Video.id) & (Like.content_type == ContentType.VIDEO.value))
        .union_all(
            select(Article.user_id.label("user_id"), Like.id.label("like_id"))
            .join(Like, (Like.content_id == Article.id) & (Like.content_type == ContentType.ARTICLE.value))
        )
        .subquery()
    )
    likes = (
        select(owned_likes.c.user_id, func.count(owned_likes.c.like_id).label("n"))
        .group_by(owned_likes.c.user_id)
        .subquery()
    )
    result = await db.execute(
        select(
            User.id,
            User.total_views,
            User.total_likes,
            func.coalesce(views.c.n, 0),
            func.coalesce(likes.c.n, 0),
        )
        .outerjoin(views, views.c.user_id == User.id)
        .outerjoin(likes, likes.c.user_id == User.id)
    )
    fixed = 0
    for user_id, stored_views, stored_likes, actual_views, actual_likes in result.all():
        actual_views, actual_likes = int(actual_views), int(actual_likes)
        if stored_views == actual_views and stored_likes == actual_likes:
            continue
        logger.warning(
            "Creator totals drift for user %s: views %s->%s likes %s->%s",
            user_id, stored_views, actual_views, stored_likes, actual_likes,
        )
        await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(total_views=actual_views, total_likes=actual_likes)
            .execution_options(synchronize_session=False)
        )
        fixed += 1
    return fixed
