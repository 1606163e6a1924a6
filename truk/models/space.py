"""
Space bank ORM models, plus the exchange and booking enums shared with
temporary housing.
"""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, Boolean, Enum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from truk.models.base import Base, TimestampMixin, UUIDMixin


class ExchangeType(str, enum.Enum):
    eur = "eur"
    credits = "credits"
    time_hours = "time_hours"
    free = "free"


class BookingStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    approved = "approved"
    checked_in = "checked_in"
    completed = "completed"
    cancelled = "cancelled"


# Bookings that hold a slot
ACTIVE_BOOKING_STATUSES = (
    BookingStatus.pending,
    BookingStatus.confirmed,
    BookingStatus.approved,
    BookingStatus.checked_in,
)


class SpaceType(str, enum.Enum):
    office = "office"
    meeting_room = "meeting_room"
    workshop = "workshop"
    kitchen = "kitchen"
    storage = "storage"
    event_hall = "event_hall"
    garden = "garden"
    other = "other"


class ListingStatus(str, enum.Enum):
    active = "active"
    paused = "paused"
    archived = "archived"


class SpaceBank(Base, UUIDMixin, TimestampMixin):
    """A shared space bookable by the hour."""

    __tablename__ = "space_banks"

    owner_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    community_id: Mapped[UUID | None] = mapped_column(nullable=True, index=True)
    type: Mapped[SpaceType] = mapped_column(Enum(SpaceType, name="space_type"), nullable=False)
    status: Mapped[ListingStatus] = mapped_column(
        Enum(ListingStatus, name="listing_status"), nullable=False, default=ListingStatus.active
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    square_meters: Mapped[float | None] = mapped_column(Float, nullable=True)
    features: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    equipment: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    available_days: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    available_hours: Mapped[str | None] = mapped_column(String(50), nullable=True)
    min_booking_hours: Mapped[float] = mapped_column(Float, nullable=False, default=1)
    max_booking_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    exchange_type: Mapped[ExchangeType] = mapped_column(
        Enum(ExchangeType, name="exchange_type"), nullable=False
    )
    price_per_hour: Mapped[float | None] = mapped_column(Float, nullable=True)
    credits_per_hour: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hours_per_hour: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_free: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    min_reputation: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    requires_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rules: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<SpaceBank id={self.id} title={self.title!r}>"


class SpaceBooking(Base, UUIDMixin, TimestampMixin):
    """An hourly booking of a space."""

    __tablename__ = "space_bookings"

    space_id: Mapped[UUID] = mapped_column(
        ForeignKey("space_banks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    booker_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_time: Mapped[datetime] = mapped_column(nullable=False)
    end_time: Mapped[datetime] = mapped_column(nullable=False)
    hours: Mapped[float] = mapped_column(Float, nullable=False)
    purpose: Mapped[str | None] = mapped_column(String(500), nullable=True)
    attendees: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, name="booking_status"), nullable=False, default=BookingStatus.pending
    )
    paid_eur: Mapped[float | None] = mapped_column(Float, nullable=True)
    paid_credits: Mapped[int | None] = mapped_column(Integer, nullable=True)
    paid_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    credits_transferred: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    review: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
