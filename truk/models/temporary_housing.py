"""
Temporary housing ORM models.
"""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, Boolean, Enum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from truk.models.base import Base, TimestampMixin, UUIDMixin
from truk.models.space import BookingStatus, ExchangeType, ListingStatus


class HousingType(str, enum.Enum):
    guest = "guest"
    nomad = "nomad"
    emergency = "emergency"
    exchange = "exchange"
    student = "student"


class AccommodationType(str, enum.Enum):
    entire_place = "entire_place"
    private_room = "private_room"
    shared_room = "shared_room"
    couch = "couch"


class TemporaryHousing(Base, UUIDMixin, TimestampMixin):
    """A place a host offers for short stays, priced per night."""

    __tablename__ = "temporary_housing"

    host_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    community_id: Mapped[UUID | None] = mapped_column(nullable=True, index=True)
    type: Mapped[HousingType] = mapped_column(Enum(HousingType, name="housing_type"), nullable=False)
    accommodation_type: Mapped[AccommodationType] = mapped_column(
        Enum(AccommodationType, name="accommodation_type"), nullable=False
    )
    status: Mapped[ListingStatus] = mapped_column(
        Enum(ListingStatus, name="listing_status"), nullable=False, default=ListingStatus.active
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    beds: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    bathrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    amenities: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    house_rules: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    available_from: Mapped[datetime] = mapped_column(nullable=False)
    available_to: Mapped[datetime | None] = mapped_column(nullable=True)
    min_nights: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    max_nights: Mapped[int | None] = mapped_column(Integer, nullable=True)
    exchange_type: Mapped[ExchangeType] = mapped_column(
        Enum(ExchangeType, name="exchange_type"), nullable=False
    )
    price_per_night: Mapped[float | None] = mapped_column(Float, nullable=True)
    credits_per_night: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hours_per_night: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_free: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    min_reputation: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    requires_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    max_guests: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    community_insured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    emergency_contact: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<TemporaryHousing id={self.id} title={self.title!r}>"


class HousingBooking(Base, UUIDMixin, TimestampMixin):
    """A guest's stay request for a temporary housing listing."""

    __tablename__ = "housing_bookings"

    housing_id: Mapped[UUID] = mapped_column(
        ForeignKey("temporary_housing.id", ondelete="CASCADE"), nullable=False, index=True
    )
    guest_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    check_in: Mapped[datetime] = mapped_column(nullable=False)
    check_out: Mapped[datetime] = mapped_column(nullable=False)
    nights: Mapped[int] = mapped_column(Integer, nullable=False)
    guests: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, name="booking_status"), nullable=False, default=BookingStatus.pending
    )
    paid_eur: Mapped[float | None] = mapped_column(Float, nullable=True)
    paid_credits: Mapped[int | None] = mapped_column(Integer, nullable=True)
    paid_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    credits_transferred: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    host_response: Mapped[str | None] = mapped_column(Text, nullable=True)
    host_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    host_review: Mapped[str | None] = mapped_column(Text, nullable=True)
    guest_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    guest_review: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    checked_in_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
