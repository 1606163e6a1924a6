"""
FastAPI dependency injection functions.

Provides Redis connections and the current user.
"""

from __future__ import annotations

from uuid import UUID

import redis.asyncio as aioredis
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from truk.core.config import settings
from truk.core.database import get_db
from truk.core.security import blacklist_redis_key, decode_access_token
from truk.models.user import User

# ---------------------------------------------------------------------------
# HTTP Bearer scheme (auto_error=False so we can return custom 401)
# ---------------------------------------------------------------------------

bearer_scheme = HTTPBearer(auto_error=False)

# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------

_redis_pool: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """
    Return a shared async Redis client.

    Uses a module-level pool so connections are reused across requests.
    """
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            str(settings.REDIS_URL),
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis_pool


async def close_redis() -> None:
    global _redis_pool
    if _redis_pool is not None:
        await _redis_pool.aclose()
        _redis_pool = None


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------

def _unauthorized(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": code, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _resolve_user(
    token: str, db: AsyncSession, redis: aioredis.Redis
) -> User:
    try:
        payload = decode_access_token(token)
        user_id = UUID(payload.get("sub", ""))
    except (JWTError, ValueError):
        raise _unauthorized("INVALID_TOKEN", "Token is invalid or expired")

    jti: str = payload.get("jti", "")

    # Check blacklist
    if await redis.exists(blacklist_redis_key(jti)):
        raise _unauthorized("TOKEN_REVOKED", "Token has been revoked")

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise _unauthorized("USER_NOT_FOUND", "User not found or inactive")

    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> User:
    """
    Validate Bearer JWT and return the authenticated User.

    Raises 401 if:
    - No token provided
    - Token is invalid or expired
    - JTI is blacklisted
    - User does not exist or is inactive
    """
    if credentials is None:
        raise _unauthorized("MISSING_TOKEN", "Authorization header required")

    return await _resolve_user(credentials.credentials, db, redis)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> User | None:
    """Like get_current_user, but anonymous requests get None instead of 401."""
    if credentials is None:
        return None
    return await _resolve_user(credentials.credentials, db, redis)
