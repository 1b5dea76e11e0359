"""Authentication business logic."""
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vidsphere.core.security import verify_password, get_password_hash, create_access_token, create_refresh_token
from vidsphere.models.user import User
from vidsphere.schemas.user import UserCreate, UserPublic, UserResponse, UserStats


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username.lower()))
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: UUID) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def create_user(db: AsyncSession, data: UserCreate) -> User:
    user = User(
        username=data.username.lower(),
        email=data.email.lower(),
        password_hash=get_password_hash(data.password),
        display_name=data.display_name or data.username,
        bio=data.bio,
        avatar_url=data.avatar_url,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User | None:
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def user_stats(user: User) -> UserStats:
    return UserStats(
        followers=user.followers_count or 0,
        following=user.following_count or 0,
        total_views=user.total_views or 0,
        total_likes=user.total_likes or 0,
    )


def user_to_public(user: User) -> UserPublic:
    return UserPublic(
        id=user.id,
        username=user.username,
        display_name=user.display_name,
        bio=user.bio,
        avatar_url=user.avatar_url,
        is_verified=bool(user.is_verified),
        stats=user_stats(user),
        created_at=user.created_at,
    )


def user_to_response(user: User, include_email: bool = False) -> UserResponse:
    return UserResponse(
        **user_to_public(user).model_dump(),
        email=user.email if include_email else None,
    )


def create_tokens_for_user(user: User) -> tuple[str, str]:
    return create_access_token(user.id), create_refresh_token(user.id)
