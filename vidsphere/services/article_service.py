"""Article catalogue business logic."""
from uuid import UUID

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from vidsphere.models.article import Article
from vidsphere.schemas.article import ArticleCreate, ArticleResponse
from vidsphere.services.auth_service import user_to_public

PUBLISHED = "published"


async def create_article(db: AsyncSession, user_id: UUID, data: ArticleCreate) -> Article:
    article = Article(
        user_id=user_id,
        title=data.title,
        content=data.content,
        summary=data.summary,
        status=data.status,
        related_video_id=data.related_video_id,
    )
    db.add(article)
    await db.flush()
    await db.refresh(article)
    return article


async def get_article(db: AsyncSession, article_id: UUID) -> Article | None:
    result = await db.execute(select(Article).where(Article.id == article_id).options(selectinload(Article.user)))
    return result.scalar_one_or_none()


async def list_published_articles(db: AsyncSession, *, page: int = 1, limit: int = 10) -> tuple[list[Article], int]:
    result = await db.execute(
        select(Article)
        .where(Article.status == PUBLISHED)
        .order_by(desc(Article.created_at))
        .offset((page - 1) * limit)
        .limit(limit)
        .options(selectinload(Article.user))
    )
    total = await db.scalar(select(func.count(Article.id)).where(Article.status == PUBLISHED))
    return list(result.scalars().all()), total or 0


def article_to_response(article: Article, *, likes_count: int = 0) -> ArticleResponse:
    return ArticleResponse(
        id=article.id,
        user_id=article.user_id,
        title=article.title,
        content=article.content,
        summary=article.summary,
        status=article.status,
        related_video_id=article.related_video_id,
        likes_count=likes_count,
        created_at=article.created_at,
        user=user_to_public(article.user) if article.user else None,
    )
