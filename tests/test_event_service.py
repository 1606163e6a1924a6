"""
Tests for EventService: registration, QR check-in and attendance credits.
"""

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from fastapi import HTTPException

from truk.models.credit import CreditReason
from truk.models.event import Event
from truk.schemas.event import EventCreateRequest, EventUpdateRequest
from truk.services.credit_service import CreditService
from truk.services.event_service import EventService


def event_data(starts_in: timedelta = timedelta(minutes=30), **overrides) -> EventCreateRequest:
    values = {
        "title": "Community Picnic",
        "description": "Bring something to share",
        "category": "social",
        "starts_at": datetime.now(UTC) + starts_in,
    }
    values.update(overrides)
    return EventCreateRequest(**values)


@pytest_asyncio.fixture
async def organizer(make_user):
    return await make_user(name="Organizer")


async def test_create_event_generates_qr(db, organizer):
    event = await EventService(db).create(organizer, event_data())

    stored = await db.get(Event, event.id)
    assert stored.qr_code.startswith("community-picnic-")
    assert event.attendee_count == 0
    assert event.organizer.name == "Organizer"


class TestRegistration:
    async def test_register_and_duplicate(self, db, organizer, make_user):
        service = EventService(db)
        event = await service.create(organizer, event_data())
        guest = await make_user()

        await service.register(event.id, guest)
        with pytest.raises(HTTPException) as exc:
            await service.register(event.id, guest)
        assert exc.value.status_code == 409

        detail = await service.find_one(event.id)
        assert detail.attendee_count == 1

    async def test_full_event(self, db, organizer, make_user):
        service = EventService(db)
        event = await service.create(organizer, event_data(capacity=1))
        await service.register(event.id, await make_user())

        with pytest.raises(HTTPException) as exc:
            await service.register(event.id, await make_user())
        assert exc.value.detail["code"] == "EVENT_FULL"

    async def test_started_event(self, db, organizer, make_user):
        service = EventService(db)
        event = await service.create(organizer, event_data(starts_in=timedelta(minutes=-10)))

        with pytest.raises(HTTPException) as exc:
            await service.register(event.id, await make_user())
        assert exc.value.detail["code"] == "EVENT_STARTED"

    async def test_cancel_registration(self, db, organizer, make_user):
        service = EventService(db)
        event = await service.create(organizer, event_data())
        guest = await make_user()
        await service.register(event.id, guest)

        await service.cancel_registration(event.id, guest)

        with pytest.raises(HTTPException) as exc:
            await service.cancel_registration(event.id, guest)
        assert exc.value.detail["code"] == "NOT_REGISTERED"


class TestCheckIn:
    async def _registered(self, db, organizer, make_user, **event_overrides):
        service = EventService(db)
        created = await service.create(organizer, event_data(**event_overrides))
        guest = await make_user()
        await service.register(created.id, guest)
        return service, await db.get(Event, created.id), guest

    async def test_check_in_grants_credits(self, db, organizer, make_user):
        service, event, guest = await self._registered(db, organizer, make_user)

        result = await service.check_in(event.qr_code, guest)

        assert result.credits_awarded == 3
        assert result.attendee.checked_in_at is not None
        balance = await CreditService(db).get_balance(guest.id)
        assert balance.balance == 3

    async def test_second_check_in_rejected(self, db, organizer, make_user):
        service, event, guest = await self._registered(db, organizer, make_user)
        await service.check_in(event.qr_code, guest)

        with pytest.raises(HTTPException) as exc:
            await service.check_in(event.qr_code, guest)
        assert exc.value.detail["code"] == "ALREADY_CHECKED_IN"

    async def test_unknown_qr(self, db, make_user):
        with pytest.raises(HTTPException) as exc:
            await EventService(db).check_in("nope-0000", await make_user())
        assert exc.value.status_code == 404

    async def test_unregistered_user(self, db, organizer, make_user):
        service, event, _ = await self._registered(db, organizer, make_user)

        with pytest.raises(HTTPException) as exc:
            await service.check_in(event.qr_code, await make_user())
        assert exc.value.detail["code"] == "NOT_REGISTERED"

    async def test_window_closed(self, db, organizer, make_user):
        service, event, guest = await self._registered(
            db, organizer, make_user, starts_in=timedelta(hours=5)
        )

        with pytest.raises(HTTPException) as exc:
            await service.check_in(event.qr_code, guest)
        assert exc.value.detail["code"] == "CHECK_IN_CLOSED"

    async def test_failed_grant_keeps_check_in(self, db, organizer, make_user):
        service, event, guest = await self._registered(db, organizer, make_user)
        credits = CreditService(db)
        for i in range(5):
            await credits.grant_credits(guest.id, 3, CreditReason.event_attendance, related_id=f"other-{i}")

        result = await service.check_in(event.qr_code, guest)

        assert result.credits_awarded == 0
        assert result.message == "Check-in successful!"
        assert result.attendee.checked_in_at is not None


class TestOrganizer:
    async def test_attendees_visible_to_organizer_only(self, db, organizer, make_user):
        service = EventService(db)
        event = await service.create(organizer, event_data())
        guest = await make_user()
        await service.register(event.id, guest)

        listing = await service.get_attendees(event.id, organizer)
        assert listing.stats.total == 1
        assert listing.stats.registered == 1

        with pytest.raises(HTTPException) as exc:
            await service.get_attendees(event.id, guest)
        assert exc.value.status_code == 403
        with pytest.raises(HTTPException):
            await service.get_qr_code(event.id, guest)

    async def test_update_rejects_inverted_dates(self, db, organizer):
        service = EventService(db)
        created = await service.create(organizer, event_data())
        event = await db.get(Event, created.id)

        with pytest.raises(HTTPException) as exc:
            await service.update(event, EventUpdateRequest(ends_at=event.starts_at - timedelta(hours=1)))
        assert exc.value.detail["code"] == "INVALID_DATES"

    async def test_remove_with_attendees(self, db, organizer, make_user):
        service = EventService(db)
        created = await service.create(organizer, event_data())
        await service.register(created.id, await make_user())

        with pytest.raises(HTTPException) as exc:
            await service.remove(await db.get(Event, created.id))
        assert exc.value.detail["code"] == "EVENT_HAS_ATTENDEES"

    async def test_user_events(self, db, organizer, make_user):
        service = EventService(db)
        event = await service.create(organizer, event_data())
        guest = await make_user()
        await service.register(event.id, guest)

        mine = await service.get_user_events(guest)
        created = await service.get_user_created_events(organizer)

        assert [e.event.id for e in mine] == [event.id]
        assert [e.id for e in created] == [event.id]
