"""
Event schemas.

Request/response models for event, registration and check-in endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, Field, model_validator

from truk.models.event import EventType
from truk.schemas.auth import UserSummary


class EventCreateRequest(BaseModel):
    """Request body for POST /events."""

    title: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=1, max_length=5000)
    category: str = Field(min_length=1, max_length=50)
    type: EventType = EventType.in_person
    starts_at: AwareDatetime
    ends_at: AwareDatetime | None = None
    address: str | None = Field(default=None, max_length=255)
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    capacity: int | None = Field(default=None, gt=0)
    credits_reward: int = Field(default=0, ge=0)
    tags: list[str] = Field(default_factory=list)
    requirements: list[str] = Field(default_factory=list)
    image: str | None = Field(default=None, max_length=500)
    community_id: UUID | None = None

    @model_validator(mode="after")
    def ends_after_start(self) -> "EventCreateRequest":
        if self.ends_at is not None and self.ends_at <= self.starts_at:
            raise ValueError("ends_at must be after starts_at")
        return self


class EventUpdateRequest(BaseModel):
    """Request body for PATCH /events/{event_id}."""

    title: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = Field(default=None, min_length=1, max_length=5000)
    category: str | None = Field(default=None, min_length=1, max_length=50)
    type: EventType | None = None
    starts_at: AwareDatetime | None = None
    ends_at: AwareDatetime | None = None
    address: str | None = Field(default=None, max_length=255)
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    capacity: int | None = Field(default=None, gt=0)
    tags: list[str] | None = None
    requirements: list[str] | None = None
    image: str | None = Field(default=None, max_length=500)


class EventResponse(BaseModel):
    id: UUID
    organizer_id: UUID
    community_id: UUID | None
    title: str
    description: str
    category: str
    type: EventType
    starts_at: datetime
    ends_at: datetime | None
    address: str | None
    lat: float | None
    lng: float | None
    capacity: int | None
    credits_reward: int
    tags: list[str]
    requirements: list[str]
    image: str | None
    created_at: datetime
    organizer: UserSummary | None = None
    attendee_count: int = 0

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    """Response for GET /events."""

    events: list[EventResponse]
    total: int
    limit: int
    offset: int


class EventQRResponse(BaseModel):
    event_id: UUID
    qr_code: str


class AttendeeResponse(BaseModel):
    id: UUID
    event_id: UUID
    user_id: UUID
    registered_at: datetime
    checked_in_at: datetime | None
    user: UserSummary | None = None

    model_config = {"from_attributes": True}


class AttendeeStats(BaseModel):
    total: int
    checked_in: int
    registered: int


class AttendeeListResponse(BaseModel):
    attendees: list[AttendeeResponse]
    stats: AttendeeStats


class CheckInRequest(BaseModel):
    """Request body for POST /events/check-in."""

    qr_token: str = Field(min_length=1, max_length=100)


class CheckInResponse(BaseModel):
    attendee: AttendeeResponse
    event_id: UUID
    event_title: str
    credits_awarded: int
    message: str


class UserEventResponse(BaseModel):
    """A registration together with its event."""

    event: EventResponse
    registered_at: datetime
    checked_in_at: datetime | None
