"""User profile endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vidsphere.api.deps import get_db, get_cache
from vidsphere.core.exceptions import NotFound
from vidsphere.schemas.user import UserPublic
from vidsphere.services.auth_service import get_user_by_id, user_to_public
from vidsphere.services.cache_service import CacheAccelerator, profile_key

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}", response_model=UserPublic)
async def get_user_profile(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    cache: CacheAccelerator = Depends(get_cache),
):
    """Public profile with follower/following stats."""
    key = profile_key(user_id)
    cached = await cache.get(key)
    if cached is not None:
        return cached
    user = await get_user_by_id(db, user_id)
    if not user:
        raise NotFound("User not found")
    profile = user_to_public(user)
    await cache.set(key, profile.model_dump(mode="json"))
    return profile
