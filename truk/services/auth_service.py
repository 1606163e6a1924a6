"""
Authentication business logic.

Handles user registration, login, logout and email verification.
Routers only handle HTTP concerns.
"""

from __future__ import annotations

import logging
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from truk.core.config import settings
from truk.core.security import (
    blacklist_redis_key,
    create_access_token,
    create_email_verification_token,
    email_verification_redis_key,
    hash_password,
    token_ttl_seconds,
    verify_password,
)
from truk.models.user import User
from truk.schemas.auth import LoginRequest, MeResponse, RegisterRequest, TokenResponse

logger = logging.getLogger(__name__)


class AuthService:
    """Handles all authentication operations."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    # -----------------------------------------------------------------------
    # Register
    # -----------------------------------------------------------------------

    async def register(self, data: RegisterRequest) -> TokenResponse:
        """
        Register a new user.

        - Validates email uniqueness
        - Hashes password
        - Queues the verification email
        """
        existing = await self.db.scalar(select(User.id).where(User.email == data.email.lower()))
        if existing is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "EMAIL_TAKEN", "message": "Email is already registered"},
            )

        user = User(
            email=data.email.lower(),
            password_hash=hash_password(data.password),
            name=data.name,
            email_verified=False,
        )
        self.db.add(user)
        await self.db.flush()

        await self.request_email_verification(user)
        logger.info("User %s registered", user.id)
        return self._issue_token(user)

    # -----------------------------------------------------------------------
    # Login
    # -----------------------------------------------------------------------

    async def login(self, data: LoginRequest) -> TokenResponse:
        """
        Authenticate user with email + password.

        Raises 401 for invalid credentials (never reveals which field is wrong).
        """
        user = await self.db.scalar(select(User).where(User.email == data.email.lower()))

        if user is None or user.password_hash is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail={"code": "INVALID_CREDENTIALS", "message": "Invalid email or password"},
            )

        if not verify_password(data.password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail={"code": "INVALID_CREDENTIALS", "message": "Invalid email or password"},
            )

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"code": "ACCOUNT_DISABLED", "message": "Account is disabled"},
            )

        return self._issue_token(user)

    # -----------------------------------------------------------------------
    # Logout
    # -----------------------------------------------------------------------

    async def logout(self, payload: dict) -> None:
        """Blacklist the access token's JTI until it would have expired anyway."""
        await self.redis.setex(
            blacklist_redis_key(payload.get("jti", "")),
            token_ttl_seconds(payload),
            "1",
        )

    # -----------------------------------------------------------------------
    # Email verification
    # -----------------------------------------------------------------------

    async def request_email_verification(self, user: User) -> None:
        if user.email_verified:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "EMAIL_ALREADY_VERIFIED", "message": "Email is already verified"},
            )

        token = create_email_verification_token()
        await self.redis.setex(
            email_verification_redis_key(token),
            settings.EMAIL_VERIFICATION_EXPIRE_HOURS * 3600,
            str(user.id),
        )

        from truk.workers.email_tasks import queue_email, send_verification_email

        queue_email(
            send_verification_email,
            to_email=user.email,
            name=user.name,
            token=token,
            frontend_url=settings.FRONTEND_URL,
        )

    async def confirm_email_verification(self, token: str) -> MeResponse:
        """Mark the token's user as verified. Tokens are single-use."""
        redis_key = email_verification_redis_key(token)
        user_id = await self.redis.get(redis_key)

        if user_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "INVALID_TOKEN", "message": "Verification token is invalid or expired"},
            )

        user = await self.db.get(User, UUID(user_id))
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "USER_NOT_FOUND", "message": "User not found"},
            )

        user.email_verified = True
        await self.db.flush()
        await self.redis.delete(redis_key)

        logger.info("User %s verified their email", user.id)
        return MeResponse.model_validate(user)

    # -----------------------------------------------------------------------
    # Me
    # -----------------------------------------------------------------------

    async def get_me(self, user: User) -> MeResponse:
        return MeResponse.model_validate(user)

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _issue_token(self, user: User) -> TokenResponse:
        return TokenResponse(
            access_token=create_access_token(str(user.id), role=user.role.value),
            expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        )
