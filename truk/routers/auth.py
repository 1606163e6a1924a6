"""
Authentication endpoints.

Register, login, logout, email verification, me.
"""

from __future__ import annotations

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, HTTPException, Request, status
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from truk.core.database import get_db
from truk.core.dependencies import get_current_user, get_redis
from truk.core.security import decode_access_token
from truk.models.user import User
from truk.schemas.auth import LoginRequest, MeResponse, MessageResponse, RegisterRequest, TokenResponse
from truk.services.auth_service import AuthService

router = APIRouter()


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> AuthService:
    """Dependency that constructs AuthService."""
    return AuthService(db=db, redis=redis)


# ---------------------------------------------------------------------------
# Register / login
# ---------------------------------------------------------------------------

@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    data: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """
    Create a new user account.

    - Email must be globally unique
    - Password must be min 8 chars and contain at least 1 number
    - A verification email is queued
    """
    return await service.register(data)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login with email and password",
)
async def login(
    data: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    return await service.login(data)


# ---------------------------------------------------------------------------
# Logout
# ---------------------------------------------------------------------------

@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout and revoke the access token",
)
async def logout(
    request: Request,
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    auth_header = request.headers.get("Authorization", "")
    access_token = auth_header.removeprefix("Bearer ").strip()

    try:
        payload = decode_access_token(access_token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "INVALID_TOKEN", "message": "Could not decode access token"},
        )

    await service.logout(payload)
    return MessageResponse(message="Logged out")


# ---------------------------------------------------------------------------
# Email verification
# ---------------------------------------------------------------------------

@router.post(
    "/verify-email/request",
    response_model=MessageResponse,
    summary="Send a new verification email",
)
async def request_email_verification(
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await service.request_email_verification(current_user)
    return MessageResponse(message="Verification email sent")


@router.post(
    "/verify-email/{token}",
    response_model=MeResponse,
    summary="Confirm an email address",
)
async def confirm_email_verification(
    token: str,
    service: AuthService = Depends(get_auth_service),
) -> MeResponse:
    """Token is single-use and expires after EMAIL_VERIFICATION_EXPIRE_HOURS."""
    return await service.confirm_email_verification(token)


# ---------------------------------------------------------------------------
# Me
# ---------------------------------------------------------------------------

@router.get(
    "/me",
    response_model=MeResponse,
    summary="Get current user profile",
)
async def get_me(
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> MeResponse:
    return await service.get_me(current_user)
