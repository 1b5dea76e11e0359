"""Article endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from vidsphere.api.deps import get_db, get_current_user, get_current_user_optional, get_cache
from vidsphere.core.exceptions import NotFound
from vidsphere.models.user import User
from vidsphere.schemas.article import ArticleCreate, ArticleResponse, ArticleListResponse
from vidsphere.schemas.common import page_meta
from vidsphere.services import cache_service
from vidsphere.services.article_service import (
    PUBLISHED,
    article_to_response,
    create_article,
    get_article,
    list_published_articles,
)
from vidsphere.services.cache_service import CacheAccelerator
from vidsphere.services.like_service import count_likes_for

router = APIRouter(prefix="/articles", tags=["articles"])


@router.post("", response_model=ArticleResponse, status_code=status.HTTP_201_CREATED)
async def create_article_endpoint(
    data: ArticleCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CacheAccelerator = Depends(get_cache),
):
    article = await create_article(db, current_user.id, data)
    await db.commit()
    article.user = current_user
    if article.status == PUBLISHED:
        await cache.invalidate_by_prefix(cache_service.ARTICLES_PREFIX)
    return article_to_response(article)


@router.get("", response_model=ArticleListResponse)
async def list_articles(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    cache: CacheAccelerator = Depends(get_cache),
):
    key = f"{cache_service.ARTICLES_PREFIX}{page}:{limit}"
    cached = await cache.get(key)
    if cached is not None:
        return cached
    articles, total = await list_published_articles(db, page=page, limit=limit)
    counts = await count_likes_for(db, [a.id for a in articles])
    body = ArticleListResponse(
        articles=[article_to_response(a, likes_count=counts.get(a.id, 0)) for a in articles],
        pagination=page_meta(page, limit, total),
    )
    await cache.set(key, body.model_dump(mode="json"))
    return body


@router.get("/{article_id}", response_model=ArticleResponse)
async def get_article_endpoint(
    article_id: UUID,
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
    cache: CacheAccelerator = Depends(get_cache),
):
    key = f"{cache_service.article_prefix(article_id)}detail"
    cached = await cache.get(key)
    if cached is not None:
        return cached

    article = await get_article(db, article_id)
    if not article:
        raise NotFound("Article not found")
    # Drafts are visible to their author only and never cached
    if article.status != PUBLISHED:
        if not current_user or article.user_id != current_user.id:
            raise NotFound("Article not found")
        return article_to_response(article)

    counts = await count_likes_for(db, [article.id])
    body = article_to_response(article, likes_count=counts.get(article.id, 0))
    await cache.set(key, body.model_dump(mode="json"))
    return body
