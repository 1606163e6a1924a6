"""
Credit ledger ORM model.
"""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from truk.models.base import Base, TimestampMixin, UUIDMixin


class CreditReason(str, enum.Enum):
    # Earning
    event_attendance = "event_attendance"
    offer_created = "offer_created"
    review = "review"
    referral = "referral"
    eco_action = "eco_action"
    local_purchase = "local_purchase"
    time_bank_hour = "time_bank_hour"
    community_help = "community_help"
    daily_seed = "daily_seed"
    support_post = "support_post"
    # Movement between users and administrative adjustments
    space_booking = "space_booking"
    housing_booking = "housing_booking"
    mutual_aid = "mutual_aid"
    refund = "refund"
    admin_grant = "admin_grant"
    purchase = "purchase"


class CreditTransaction(Base, UUIDMixin, TimestampMixin):
    """One signed movement on a user's credit balance."""

    __tablename__ = "credit_transactions"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    balance: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[CreditReason] = mapped_column(
        Enum(CreditReason, name="credit_reason"), nullable=False
    )
    related_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<CreditTransaction user={self.user_id} amount={self.amount} reason={self.reason}>"
