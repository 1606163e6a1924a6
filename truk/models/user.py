"""
User ORM model.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Boolean, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from truk.models.base import Base, TimestampMixin, UUIDMixin


class UserRole(str, enum.Enum):
    user = "user"
    moderator = "moderator"
    admin = "admin"


class EconomyTier(str, enum.Enum):
    basic = "basic"
    intermediate = "intermediate"
    advanced = "advanced"


class User(Base, UUIDMixin, TimestampMixin):
    """A community member. Holds the credit balance and reputation."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    bio: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role"), nullable=False, default=UserRole.user
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Gamification
    credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    generosity_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Economic layer progression
    economy_tier: Mapped[EconomyTier | None] = mapped_column(
        Enum(EconomyTier, name="economy_tier"), nullable=True
    )
    economy_transactions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    economy_credit_transactions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    intermediate_unlocked_at: Mapped[datetime | None] = mapped_column(nullable=True)
    advanced_unlocked_at: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"
