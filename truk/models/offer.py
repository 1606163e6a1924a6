"""
Marketplace offer ORM models.
"""

from __future__ import annotations

import enum
from uuid import UUID

from sqlalchemy import JSON, Boolean, Enum, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from truk.models.base import Base, TimestampMixin, UUIDMixin


class OfferType(str, enum.Enum):
    product = "product"
    service = "service"
    time_bank = "time_bank"
    group_buy = "group_buy"
    event = "event"


class OfferStatus(str, enum.Enum):
    active = "active"
    paused = "paused"
    completed = "completed"
    cancelled = "cancelled"


class Offer(Base, UUIDMixin, TimestampMixin):
    """Something a member offers to the community."""

    __tablename__ = "offers"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    community_id: Mapped[UUID | None] = mapped_column(nullable=True, index=True)
    type: Mapped[OfferType] = mapped_column(Enum(OfferType, name="offer_type"), nullable=False)
    status: Mapped[OfferStatus] = mapped_column(
        Enum(OfferStatus, name="offer_status"), nullable=False, default=OfferStatus.active
    )
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    price_eur: Mapped[float | None] = mapped_column(Float, nullable=True)
    price_credits: Mapped[int | None] = mapped_column(Integer, nullable=True)
    stock: Mapped[int | None] = mapped_column(Integer, nullable=True)
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    interested: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Offer id={self.id} title={self.title!r} status={self.status}>"


class OfferInterest(Base, UUIDMixin, TimestampMixin):
    """A user flagged interest in an offer."""

    __tablename__ = "offer_interests"
    __table_args__ = (UniqueConstraint("offer_id", "user_id", name="uq_offer_interest"),)

    offer_id: Mapped[UUID] = mapped_column(
        ForeignKey("offers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
