"""FastAPI dependency injection functions."""

import hashlib
import hmac
from collections.abc import AsyncGenerator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campus_insider.config import Settings, get_settings
from campus_insider.db.engine import get_session
from campus_insider.db.engine import get_session_factory as _engine_session_factory
from campus_insider.models.access_token import AccessToken
from campus_insider.models.user import User


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session."""
    async for session in get_session():
        yield session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the session factory used for concurrent feed reads."""
    return _engine_session_factory()


def get_app_settings() -> Settings:
    """Return application settings."""
    return get_settings()


def hash_token(raw_token: str, secret: str) -> str:
    """Hash an access token with HMAC-SHA256 keyed on the API secret."""
    return hmac.new(secret.encode(), raw_token.encode(), hashlib.sha256).hexdigest()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    authorization: str | None = Header(None, description="Bearer <access_token>"),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> User:
    """Resolve the calling user from a Bearer access token.

    The token is hashed and matched against an active access token whose
    user is still active. Any failure is reported as 401.
    """
    if not authorization:
        raise _unauthorized("Not authenticated")

    if not authorization.startswith("Bearer "):
        raise _unauthorized("Authorization header must use Bearer scheme")

    raw_token = authorization[7:].strip()
    if not raw_token:
        raise _unauthorized("Access token is required")

    token_hash = hash_token(raw_token, settings.api_secret_key)
    stmt = (
        select(AccessToken)
        .where(AccessToken.token_hash == token_hash)
        .where(AccessToken.is_active.is_(True))
    )
    result = await db.execute(stmt)
    access_token = result.scalar_one_or_none()

    # Timing-safe comparison to prevent timing side-channel attacks
    if access_token is None or not hmac.compare_digest(access_token.token_hash, token_hash):
        raise _unauthorized("Invalid or revoked access token")

    user_stmt = (
        select(User)
        .where(User.id == access_token.user_id)
        .where(User.is_active.is_(True))
    )
    user_result = await db.execute(user_stmt)
    user = user_result.scalar_one_or_none()

    if user is None:
        raise _unauthorized("User account is inactive")

    return user
