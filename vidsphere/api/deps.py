"""API dependencies: auth, db session, realtime bus and cache."""
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from vidsphere.core.exceptions import AuthError
from vidsphere.core.security import verify_token
from vidsphere.db.session import get_db
from vidsphere.models.user import User
from vidsphere.realtime.bus import NotificationBus
from vidsphere.services.auth_service import get_user_by_id
from vidsphere.services.cache_service import CacheAccelerator

__all__ = ["get_db", "get_current_user", "get_current_user_optional", "get_bus", "get_cache"]

security = HTTPBearer(auto_error=False)


async def get_current_user_optional(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    if not credentials:
        return None
    try:
        user_id = verify_token(credentials.credentials)
    except AuthError:
        return None
    return await get_user_by_id(db, user_id)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    user_id = verify_token(credentials.credentials if credentials else None)
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise AuthError("User not found")
    return user


def get_bus(request: Request) -> NotificationBus:
    return request.app.state.bus


def get_cache(request: Request) -> CacheAccelerator:
    return request.app.state.cache
