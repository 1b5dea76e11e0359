"""Auth endpoints: register, login, refresh."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vidsphere.api.deps import get_db, get_current_user
from vidsphere.core.exceptions import AuthError, InvalidOperation
from vidsphere.core.security import verify_token
from vidsphere.models.user import User
from vidsphere.schemas.user import UserCreate, UserResponse, Token, LoginRequest, TokenRefresh
from vidsphere.services.auth_service import (
    create_user,
    get_user_by_email,
    get_user_by_username,
    get_user_by_id,
    authenticate_user,
    user_to_response,
    create_tokens_for_user,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_pair(user: User) -> Token:
    access_token, refresh_token = create_tokens_for_user(user)
    return Token(
        access_token=access_token,
        refresh_token=refresh_token,
        user=user_to_response(user, include_email=True),
    )


@router.post("/register", response_model=Token)
async def register(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
):
    logger.info("Register attempt: %s", data.username)
    if await get_user_by_email(db, data.email):
        raise InvalidOperation("Email already registered")
    if await get_user_by_username(db, data.username):
        raise InvalidOperation("Username already taken")
    user = await create_user(db, data)
    await db.commit()
    logger.info("Register success: %s (%s)", user.username, user.id)
    return _token_pair(user)


@router.post("/login", response_model=Token)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await authenticate_user(db, data.email, data.password)
    if not user:
        logger.info("Login failed for %s", data.email)
        raise AuthError("Invalid email or password")
    logger.info("Login success: %s", user.id)
    return _token_pair(user)


@router.post("/refresh", response_model=Token)
async def refresh_token(
    body: TokenRefresh,
    db: AsyncSession = Depends(get_db),
):
    user_id = verify_token(body.refresh_token, token_type="refresh")
    user = await get_user_by_id(db, user_id)
    if not user:
        raise AuthError("User not found")
    return _token_pair(user)


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)):
    return user_to_response(current_user, include_email=True)
