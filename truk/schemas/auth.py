"""
Authentication schemas.

Request/response models for auth endpoints, plus the user summaries
embedded in other responses.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from truk.models.user import EconomyTier, UserRole


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)

    @field_validator("password")
    @classmethod
    def password_must_contain_number(cls, v: str) -> str:
        if not any(c.isdigit() for c in v):
            raise ValueError("Password must contain at least one number")
        return v


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    email: EmailStr
    password: str = Field(min_length=1)


class TokenResponse(BaseModel):
    """Response for register and login."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Access token TTL in seconds")


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------

class UserSummary(BaseModel):
    """Public user fields embedded in listings."""

    id: UUID
    name: str
    avatar_url: str | None = None
    generosity_score: int = 0

    model_config = {"from_attributes": True}


class MeResponse(BaseModel):
    """Response for GET /auth/me."""

    id: UUID
    email: str
    name: str
    avatar_url: str | None
    bio: str | None
    role: UserRole
    email_verified: bool
    credits: int
    generosity_score: int
    economy_tier: EconomyTier | None
    created_at: datetime

    model_config = {"from_attributes": True}


class MessageResponse(BaseModel):
    message: str
