"""
Event endpoints.

Listing, registration, QR check-in and organizer tools.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from truk.core.database import get_db
from truk.core.dependencies import get_current_user
from truk.core.guards import require_ownership, require_verified_email
from truk.models.event import Event
from truk.models.user import User
from truk.schemas.event import (
    AttendeeListResponse,
    AttendeeResponse,
    CheckInRequest,
    CheckInResponse,
    EventCreateRequest,
    EventListResponse,
    EventQRResponse,
    EventResponse,
    EventUpdateRequest,
    UserEventResponse,
)
from truk.services.event_service import EventService

router = APIRouter()


def get_event_service(db: AsyncSession = Depends(get_db)) -> EventService:
    return EventService(db=db)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an event",
)
async def create_event(
    data: EventCreateRequest,
    current_user: User = Depends(require_verified_email),
    service: EventService = Depends(get_event_service),
) -> EventResponse:
    return await service.create(current_user, data)


@router.get("", response_model=EventListResponse, summary="List events")
async def list_events(
    upcoming: bool = Query(default=True),
    category: str | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    service: EventService = Depends(get_event_service),
) -> EventListResponse:
    return await service.find_all(upcoming=upcoming, category=category, limit=limit, offset=offset)


@router.post("/check-in", response_model=CheckInResponse, summary="Check in with a QR code")
async def check_in(
    data: CheckInRequest,
    current_user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
) -> CheckInResponse:
    """
    Scan the event QR code to check in.

    Open from 1h before to 2h after the start. Attendance credits are
    awarded when possible; the check-in stands either way.
    """
    return await service.check_in(data.qr_token, current_user)


@router.get("/me", response_model=list[UserEventResponse], summary="Events I registered for")
async def my_events(
    upcoming: bool = Query(default=True),
    current_user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
) -> list[UserEventResponse]:
    return await service.get_user_events(current_user, upcoming=upcoming)


@router.get("/me/created", response_model=list[EventResponse], summary="Events I organize")
async def my_created_events(
    current_user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
) -> list[EventResponse]:
    return await service.get_user_created_events(current_user)


@router.get("/{event_id}", response_model=EventResponse, summary="Event detail")
async def get_event(
    event_id: UUID,
    service: EventService = Depends(get_event_service),
) -> EventResponse:
    return await service.find_one(event_id)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

@router.post(
    "/{event_id}/register",
    response_model=AttendeeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register for an event",
)
async def register(
    event_id: UUID,
    current_user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
) -> AttendeeResponse:
    return await service.register(event_id, current_user)


@router.delete(
    "/{event_id}/register",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Cancel a registration",
)
async def cancel_registration(
    event_id: UUID,
    current_user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
) -> None:
    await service.cancel_registration(event_id, current_user)


# ---------------------------------------------------------------------------
# Organizer tools
# ---------------------------------------------------------------------------

@router.get("/{event_id}/qr", response_model=EventQRResponse, summary="Check-in QR code")
async def get_qr_code(
    event_id: UUID,
    current_user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
) -> EventQRResponse:
    return await service.get_qr_code(event_id, current_user)


@router.get(
    "/{event_id}/attendees",
    response_model=AttendeeListResponse,
    summary="Attendees and check-in stats",
)
async def get_attendees(
    event_id: UUID,
    current_user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
) -> AttendeeListResponse:
    return await service.get_attendees(event_id, current_user)


@router.patch("/{event_id}", response_model=EventResponse, summary="Update an event")
async def update_event(
    data: EventUpdateRequest,
    event: Event = Depends(require_ownership("event")),
    service: EventService = Depends(get_event_service),
) -> EventResponse:
    return await service.update(event, data)


@router.delete(
    "/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an event without attendees",
)
async def delete_event(
    event: Event = Depends(require_ownership("event")),
    service: EventService = Depends(get_event_service),
) -> None:
    await service.remove(event)
