"""
Security utilities.

Password hashing, JWT access tokens, Redis key helpers.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt as _bcrypt
from jose import JWTError, jwt

from truk.core.config import settings


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a plaintext password using bcrypt (cost=12)."""
    password_bytes = password.encode("utf-8")[:72]
    salt = _bcrypt.gensalt(rounds=12)
    return _bcrypt.hashpw(password_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a bcrypt hash."""
    password_bytes = plain_password.encode("utf-8")[:72]
    return _bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))


# ---------------------------------------------------------------------------
# JWT tokens
# ---------------------------------------------------------------------------

def create_access_token(user_id: str, role: str = "user", jti: str | None = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        user_id: The user's UUID as string.
        role: User role, embedded for clients; the server always reloads it.
        jti: Optional JWT ID. Generated if not provided.
    """
    now = datetime.now(UTC)
    expire = now + timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    payload: dict[str, Any] = {
        "sub": user_id,
        "jti": jti or str(uuid.uuid4()),
        "type": "access",
        "role": role,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT token.

    Raises:
        JWTError: If the token is invalid, expired, or tampered.
    """
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT access token.

    Raises:
        JWTError: If invalid or wrong type.
    """
    payload = decode_token(token)
    if payload.get("type") != "access":
        raise JWTError("Not an access token")
    return payload


def token_ttl_seconds(payload: dict[str, Any]) -> int:
    """Seconds left before the token in ``payload`` expires (min 1)."""
    exp = int(payload.get("exp", 0))
    remaining = exp - int(datetime.now(UTC).timestamp())
    return max(remaining, 1)


# ---------------------------------------------------------------------------
# Redis key helpers
# ---------------------------------------------------------------------------

def blacklist_redis_key(jti: str) -> str:
    """Redis key for a blacklisted access token JTI. Format: blacklist:{jti}"""
    return f"blacklist:{jti}"


def email_verification_redis_key(token: str) -> str:
    """Redis key for an email verification token. Format: email_verify:{token}"""
    return f"email_verify:{token}"


# ---------------------------------------------------------------------------
# One-off tokens
# ---------------------------------------------------------------------------

def create_email_verification_token() -> str:
    """Generate a URL-safe email verification token."""
    return secrets.token_urlsafe(32)


def create_qr_token(seed: str) -> str:
    """QR token for event check-in: ``{seed}-{32 hex chars}``."""
    return f"{seed}-{secrets.token_hex(16)}"
