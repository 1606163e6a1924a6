"""
Community event ORM models.
"""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, Enum, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from truk.models.base import Base, TimestampMixin, UUIDMixin, utcnow


class EventType(str, enum.Enum):
    in_person = "in_person"
    virtual = "virtual"
    hybrid = "hybrid"


class Event(Base, UUIDMixin, TimestampMixin):
    """A scheduled gathering members can register for and check into."""

    __tablename__ = "events"

    organizer_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    community_id: Mapped[UUID | None] = mapped_column(nullable=True, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    type: Mapped[EventType] = mapped_column(
        Enum(EventType, name="event_type"), nullable=False, default=EventType.in_person
    )
    starts_at: Mapped[datetime] = mapped_column(nullable=False, index=True)
    ends_at: Mapped[datetime | None] = mapped_column(nullable=True)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    credits_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    requirements: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    qr_code: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)

    def __repr__(self) -> str:
        return f"<Event id={self.id} title={self.title!r} starts_at={self.starts_at}>"


class EventAttendee(Base, UUIDMixin):
    """Registration of a user for an event."""

    __tablename__ = "event_attendees"
    __table_args__ = (UniqueConstraint("event_id", "user_id", name="uq_event_attendee"),)

    event_id: Mapped[UUID] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    registered_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    checked_in_at: Mapped[datetime | None] = mapped_column(nullable=True)
