"""
Event business logic.

Handles event lifecycle, registration, QR check-in and attendance rewards.
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime, timedelta
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from truk.core.config import settings
from truk.core.security import create_qr_token
from truk.models.credit import CreditReason
from truk.models.event import Event, EventAttendee
from truk.models.user import User
from truk.schemas.auth import UserSummary
from truk.schemas.event import (
    AttendeeListResponse,
    AttendeeResponse,
    AttendeeStats,
    CheckInResponse,
    EventCreateRequest,
    EventListResponse,
    EventQRResponse,
    EventResponse,
    EventUpdateRequest,
    UserEventResponse,
)
from truk.services.credit_service import CreditService

logger = logging.getLogger(__name__)


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")[:40] or "event"


def check_in_window(starts_at: datetime) -> tuple[datetime, datetime]:
    """Interval in which attendees may check in, around the event start."""
    return (
        starts_at - timedelta(minutes=settings.CHECKIN_WINDOW_BEFORE_MINUTES),
        starts_at + timedelta(minutes=settings.CHECKIN_WINDOW_AFTER_MINUTES),
    )


class EventService:
    """Handles all event operations."""

    def __init__(self, db: AsyncSession, credits: CreditService | None = None) -> None:
        self.db = db
        self.credits = credits or CreditService(db)

    # -----------------------------------------------------------------------
    # Create
    # -----------------------------------------------------------------------

    async def create(self, user: User, data: EventCreateRequest) -> EventResponse:
        """Create an event with a fresh check-in QR token."""
        event = Event(
            organizer_id=user.id,
            qr_code=create_qr_token(_slug(data.title)),
            **data.model_dump(),
        )
        self.db.add(event)
        await self.db.flush()

        logger.info("Event %s created by %s", event.id, user.id)
        return self._to_response(event, user, 0)

    # -----------------------------------------------------------------------
    # List / detail
    # -----------------------------------------------------------------------

    async def find_all(
        self,
        upcoming: bool = True,
        category: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> EventListResponse:
        """Events ordered by start time, optionally only those still to come."""
        stmt = select(Event)
        if upcoming:
            stmt = stmt.where(Event.starts_at >= datetime.now(UTC))
        if category:
            stmt = stmt.where(Event.category == category)

        total = await self.db.scalar(select(func.count()).select_from(stmt.subquery()))

        counts = (
            select(EventAttendee.event_id, func.count().label("attendee_count"))
            .group_by(EventAttendee.event_id)
            .subquery()
        )
        rows = await self.db.execute(
            select(Event, User, func.coalesce(counts.c.attendee_count, 0))
            .join(User, Event.organizer_id == User.id)
            .outerjoin(counts, counts.c.event_id == Event.id)
            .where(Event.id.in_(stmt.with_only_columns(Event.id)))
            .order_by(Event.starts_at.asc())
            .limit(limit)
            .offset(offset)
        )

        return EventListResponse(
            events=[self._to_response(e, o, c) for e, o, c in rows.all()],
            total=total or 0,
            limit=limit,
            offset=offset,
        )

    async def find_one(self, event_id: UUID) -> EventResponse:
        event = await self._get_event(event_id)
        organizer = await self.db.get(User, event.organizer_id)
        return self._to_response(event, organizer, await self._attendee_count(event.id))

    # -----------------------------------------------------------------------
    # Registration
    # -----------------------------------------------------------------------

    async def register(self, event_id: UUID, user: User) -> AttendeeResponse:
        """Register the caller. Full, started and duplicate registrations are rejected."""
        event = await self._get_event(event_id)

        if event.capacity is not None and await self._attendee_count(event.id) >= event.capacity:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "EVENT_FULL", "message": "Event is full"},
            )

        if event.starts_at < datetime.now(UTC):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "EVENT_STARTED", "message": "Event has already started"},
            )

        if await self._get_attendee(event.id, user.id) is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "ALREADY_REGISTERED", "message": "Already registered for this event"},
            )

        attendee = EventAttendee(event_id=event.id, user_id=user.id)
        self.db.add(attendee)
        await self.db.flush()

        return self._attendee_response(attendee, user)

    async def cancel_registration(self, event_id: UUID, user: User) -> None:
        attendee = await self._get_attendee(event_id, user.id)
        if attendee is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "NOT_REGISTERED", "message": "Registration not found"},
            )

        if attendee.checked_in_at is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "ALREADY_CHECKED_IN", "message": "Cannot cancel after check-in"},
            )

        await self.db.delete(attendee)
        await self.db.flush()

    # -----------------------------------------------------------------------
    # QR check-in
    # -----------------------------------------------------------------------

    async def get_qr_code(self, event_id: UUID, user: User) -> EventQRResponse:
        """Only the organizer may display the check-in QR code."""
        event = await self._get_event(event_id)
        self._require_organizer(event, user, "Only the organizer can view the QR code")
        return EventQRResponse(event_id=event.id, qr_code=event.qr_code)

    async def check_in(self, qr_token: str, user: User) -> CheckInResponse:
        """
        Check the caller in by scanning the event's QR code.

        Attendance credits are granted best-effort: if the grant fails
        (daily limit, duplicate, storage error) the check-in still stands.
        """
        event = await self.db.scalar(select(Event).where(Event.qr_code == qr_token))
        if event is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "INVALID_QR_CODE", "message": "Invalid QR code"},
            )

        attendee = await self._get_attendee(event.id, user.id)
        if attendee is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "NOT_REGISTERED", "message": "You must register for this event first"},
            )

        if attendee.checked_in_at is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "ALREADY_CHECKED_IN", "message": "You have already checked in"},
            )

        now = datetime.now(UTC)
        opens_at, closes_at = check_in_window(event.starts_at)
        if now < opens_at or now > closes_at:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "code": "CHECK_IN_CLOSED",
                    "message": "Check-in is only available 1h before to 2h after the event start",
                },
            )

        attendee.checked_in_at = now
        await self.db.flush()

        reward = settings.EVENT_ATTENDANCE_CREDITS
        credits_awarded = 0
        try:
            async with self.db.begin_nested():
                await self.credits.grant_credits(
                    user.id,
                    reward,
                    CreditReason.event_attendance,
                    related_id=str(event.id),
                    description=f"Event attendance: {event.title}",
                )
            credits_awarded = reward
        except Exception:
            logger.exception("Error awarding event attendance credits for event %s", event.id)

        logger.info("User %s checked in to event %s", user.id, event.id)

        message = (
            f"Check-in successful! You earned {credits_awarded} credits."
            if credits_awarded
            else "Check-in successful!"
        )
        return CheckInResponse(
            attendee=self._attendee_response(attendee, user),
            event_id=event.id,
            event_title=event.title,
            credits_awarded=credits_awarded,
            message=message,
        )

    # -----------------------------------------------------------------------
    # Attendees
    # -----------------------------------------------------------------------

    async def get_attendees(self, event_id: UUID, user: User) -> AttendeeListResponse:
        event = await self._get_event(event_id)
        self._require_organizer(event, user, "Only the organizer can view attendees")

        rows = await self.db.execute(
            select(EventAttendee, User)
            .join(User, EventAttendee.user_id == User.id)
            .where(EventAttendee.event_id == event.id)
            .order_by(EventAttendee.registered_at.asc())
        )
        attendees = [self._attendee_response(a, u) for a, u in rows.all()]
        checked_in = sum(1 for a in attendees if a.checked_in_at is not None)

        return AttendeeListResponse(
            attendees=attendees,
            stats=AttendeeStats(
                total=len(attendees),
                checked_in=checked_in,
                registered=len(attendees) - checked_in,
            ),
        )

    async def get_user_events(self, user: User, upcoming: bool = True) -> list[UserEventResponse]:
        """Events the user registered for."""
        stmt = (
            select(EventAttendee, Event)
            .join(Event, EventAttendee.event_id == Event.id)
            .where(EventAttendee.user_id == user.id)
        )
        if upcoming:
            stmt = stmt.where(Event.starts_at >= datetime.now(UTC))

        rows = await self.db.execute(stmt.order_by(Event.starts_at.asc()))
        return [
            UserEventResponse(
                event=self._to_response(event, None, await self._attendee_count(event.id)),
                registered_at=attendee.registered_at,
                checked_in_at=attendee.checked_in_at,
            )
            for attendee, event in rows.all()
        ]

    async def get_user_created_events(self, user: User) -> list[EventResponse]:
        events = await self.db.scalars(
            select(Event).where(Event.organizer_id == user.id).order_by(Event.starts_at.desc())
        )
        return [self._to_response(e, user, await self._attendee_count(e.id)) for e in events]

    # -----------------------------------------------------------------------
    # Organizer operations
    # -----------------------------------------------------------------------

    async def update(self, event: Event, data: EventUpdateRequest) -> EventResponse:
        changes = data.model_dump(exclude_unset=True)
        starts_at = changes.get("starts_at", event.starts_at)
        ends_at = changes.get("ends_at", event.ends_at)
        if ends_at is not None and ends_at <= starts_at:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "INVALID_DATES", "message": "ends_at must be after starts_at"},
            )

        for field, value in changes.items():
            setattr(event, field, value)
        await self.db.flush()
        return self._to_response(event, None, await self._attendee_count(event.id))

    async def remove(self, event: Event) -> None:
        """Delete an event nobody has registered for yet."""
        if await self._attendee_count(event.id) > 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "code": "EVENT_HAS_ATTENDEES",
                    "message": "Cannot delete an event with registered attendees",
                },
            )
        await self.db.delete(event)
        await self.db.flush()

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _get_event(self, event_id: UUID) -> Event:
        event = await self.db.get(Event, event_id)
        if event is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "EVENT_NOT_FOUND", "message": "Event not found"},
            )
        return event

    async def _get_attendee(self, event_id: UUID, user_id: UUID) -> EventAttendee | None:
        return await self.db.scalar(
            select(EventAttendee).where(
                EventAttendee.event_id == event_id, EventAttendee.user_id == user_id
            )
        )

    async def _attendee_count(self, event_id: UUID) -> int:
        count = await self.db.scalar(
            select(func.count()).select_from(EventAttendee).where(EventAttendee.event_id == event_id)
        )
        return count or 0

    @staticmethod
    def _require_organizer(event: Event, user: User, message: str) -> None:
        if event.organizer_id != user.id and not user.is_admin:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"code": "NOT_ORGANIZER", "message": message},
            )

    @staticmethod
    def _to_response(event: Event, organizer: User | None, attendee_count: int) -> EventResponse:
        response = EventResponse.model_validate(event)
        response.attendee_count = attendee_count
        if organizer is not None:
            response.organizer = UserSummary.model_validate(organizer)
        return response

    @staticmethod
    def _attendee_response(attendee: EventAttendee, user: User | None) -> AttendeeResponse:
        response = AttendeeResponse.model_validate(attendee)
        if user is not None:
            response.user = UserSummary.model_validate(user)
        return response
