"""
Tests for HousingService: space bank bookings, temporary stays and dashboards.
"""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi import HTTPException

from truk.models.space import BookingStatus, ExchangeType, SpaceBank, SpaceType
from truk.models.temporary_housing import AccommodationType, HousingType, TemporaryHousing
from truk.schemas.housing import (
    BookingReviewRequest,
    HousingBookingRequest,
    HousingCreateRequest,
    HousingFilters,
    HousingUpdateRequest,
    SolutionFilters,
    SpaceBookingRequest,
    SpaceCreateRequest,
    SpaceFilters,
    SpaceUpdateRequest,
)
from truk.services.housing_service import HousingService, compute_payment

TOMORROW = (datetime.now(UTC) + timedelta(days=1)).replace(hour=10, minute=0, second=0, microsecond=0)


def space_data(**overrides) -> SpaceCreateRequest:
    values = {
        "type": SpaceType.meeting_room,
        "title": "Co-op meeting room",
        "description": "Room for twelve with a projector",
        "address": "Calle Mayor 1",
        "min_booking_hours": 2,
        "max_booking_hours": 8,
        "exchange_type": ExchangeType.credits,
        "credits_per_hour": 3,
    }
    values.update(overrides)
    return SpaceCreateRequest(**values)


def housing_data(**overrides) -> HousingCreateRequest:
    values = {
        "type": HousingType.guest,
        "accommodation_type": AccommodationType.private_room,
        "title": "Spare room in the centre",
        "description": "Quiet room near the market",
        "address": "Plaza Nueva 3",
        "available_from": TOMORROW,
        "available_to": TOMORROW + timedelta(days=30),
        "min_nights": 2,
        "max_nights": 7,
        "exchange_type": ExchangeType.credits,
        "credits_per_night": 5,
        "min_reputation": 0,
        "max_guests": 2,
    }
    values.update(overrides)
    return HousingCreateRequest(**values)


def slot(start_offset_hours: float, hours: float) -> SpaceBookingRequest:
    start = TOMORROW + timedelta(hours=start_offset_hours)
    return SpaceBookingRequest(start_time=start, end_time=start + timedelta(hours=hours))


def stay(nights: float, start_offset_days: int = 1, guests: int = 1) -> HousingBookingRequest:
    check_in = TOMORROW + timedelta(days=start_offset_days)
    return HousingBookingRequest(
        check_in=check_in, check_out=check_in + timedelta(days=nights), guests=guests
    )


def test_compute_payment():
    assert compute_payment(ExchangeType.credits, 2.5, None, 3, None).credits == 8
    assert compute_payment(ExchangeType.eur, 3, 12.5, None, None).eur == pytest.approx(37.5)
    assert compute_payment(ExchangeType.time_hours, 2, None, None, None).hours == 2
    assert compute_payment(ExchangeType.credits, 2, None, 3, None, is_free=True).credits is None


class TestSpaceBooking:
    async def test_confirmed_booking_transfers_credits(self, db, make_user):
        owner = await make_user()
        booker = await make_user(credits=20)
        service = HousingService(db)
        space = await service.create_space(owner, space_data())

        booking = await service.book_space(booker, space.id, slot(0, 2.5))

        assert booking.status == BookingStatus.confirmed
        assert booking.paid_credits == 8
        await db.refresh(owner)
        await db.refresh(booker)
        assert owner.credits == 8
        assert booker.credits == 12

    async def test_booking_length_limits(self, db, make_user):
        owner = await make_user()
        booker = await make_user(credits=100)
        service = HousingService(db)
        space = await service.create_space(owner, space_data())

        with pytest.raises(HTTPException) as exc:
            await service.book_space(booker, space.id, slot(0, 1))
        assert exc.value.detail["code"] == "BOOKING_TOO_SHORT"

        with pytest.raises(HTTPException) as exc:
            await service.book_space(booker, space.id, slot(0, 9))
        assert exc.value.detail["code"] == "BOOKING_TOO_LONG"

    async def test_overlapping_slot(self, db, make_user):
        owner = await make_user()
        service = HousingService(db)
        space = await service.create_space(owner, space_data(exchange_type=ExchangeType.free))
        await service.book_space(await make_user(), space.id, slot(0, 3))

        with pytest.raises(HTTPException) as exc:
            await service.book_space(await make_user(), space.id, slot(2, 2))
        assert exc.value.status_code == 409

        adjacent = await service.book_space(await make_user(), space.id, slot(3, 2))
        assert adjacent.status == BookingStatus.confirmed

    async def test_insufficient_credits(self, db, make_user):
        owner = await make_user()
        service = HousingService(db)
        space = await service.create_space(owner, space_data())

        with pytest.raises(HTTPException) as exc:
            await service.book_space(await make_user(credits=1), space.id, slot(0, 2))
        assert exc.value.detail["code"] == "INSUFFICIENT_CREDITS"

    async def test_reputation_required(self, db, make_user):
        owner = await make_user()
        service = HousingService(db)
        space = await service.create_space(owner, space_data(min_reputation=50))

        with pytest.raises(HTTPException) as exc:
            await service.book_space(await make_user(credits=50), space.id, slot(0, 2))
        assert exc.value.status_code == 403

    async def test_approval_flow(self, db, make_user, queued_emails):
        owner = await make_user(email="owner@example.com")
        booker = await make_user(credits=10)
        service = HousingService(db)
        space = await service.create_space(owner, space_data(requires_approval=True))

        booking = await service.book_space(booker, space.id, slot(0, 2))
        assert booking.status == BookingStatus.pending
        assert queued_emails.call_args.kwargs["to_email"] == "owner@example.com"
        await db.refresh(booker)
        assert booker.credits == 10

        with pytest.raises(HTTPException) as exc:
            await service.approve_space_booking(booker, booking.id)
        assert exc.value.detail["code"] == "NOT_OWNER"

        approved = await service.approve_space_booking(owner, booking.id)
        assert approved.status == BookingStatus.approved
        await db.refresh(booker)
        assert booker.credits == 4

        with pytest.raises(HTTPException) as exc:
            await service.approve_space_booking(owner, booking.id)
        assert exc.value.detail["code"] == "BOOKING_NOT_PENDING"

    async def test_cancel_refunds_booker(self, db, make_user):
        owner = await make_user()
        booker = await make_user(credits=10)
        service = HousingService(db)
        space = await service.create_space(owner, space_data())
        booking = await service.book_space(booker, space.id, slot(0, 2))

        cancelled = await service.cancel_space_booking(booker, booking.id)

        assert cancelled.status == BookingStatus.cancelled
        await db.refresh(owner)
        await db.refresh(booker)
        assert booker.credits == 10
        assert owner.credits == 0

        # The freed slot can be booked again
        await service.book_space(booker, space.id, slot(0, 2))

    async def test_complete_with_review(self, db, make_user):
        owner = await make_user()
        booker = await make_user()
        service = HousingService(db)
        space = await service.create_space(owner, space_data(exchange_type=ExchangeType.free))
        booking = await service.book_space(booker, space.id, slot(0, 2))

        with pytest.raises(HTTPException) as exc:
            await service.complete_space_booking(owner, booking.id, BookingReviewRequest(rating=5))
        assert exc.value.detail["code"] == "NOT_BOOKER"

        done = await service.complete_space_booking(booker, booking.id, BookingReviewRequest(rating=4))
        assert done.status == BookingStatus.completed
        assert done.rating == 4

    async def test_find_spaces_near(self, db, make_user):
        owner = await make_user()
        service = HousingService(db)
        await service.create_space(owner, space_data(title="Madrid room", lat=40.4168, lng=-3.7038))
        await service.create_space(owner, space_data(title="Bilbao room", lat=43.263, lng=-2.935))

        near = await service.find_spaces(SpaceFilters(lat=40.42, lng=-3.70, radius_km=20))

        assert [s.title for s in near] == ["Madrid room"]

    async def test_detail_lists_upcoming_bookings(self, db, make_user):
        owner = await make_user()
        service = HousingService(db)
        space = await service.create_space(owner, space_data(exchange_type=ExchangeType.free))
        await service.book_space(await make_user(), space.id, slot(0, 2))

        detail = await service.find_space_by_id(space.id)
        assert len(detail.upcoming_bookings) == 1

    async def test_approving_overlapping_requests(self, db, make_user):
        owner = await make_user()
        first = await make_user(credits=20)
        second = await make_user(credits=20)
        service = HousingService(db)
        space = await service.create_space(owner, space_data(requires_approval=True))

        morning = await service.book_space(first, space.id, slot(0, 3))
        late_morning = await service.book_space(second, space.id, slot(1, 3))
        assert morning.status == late_morning.status == BookingStatus.pending

        await service.approve_space_booking(owner, morning.id)
        with pytest.raises(HTTPException) as exc:
            await service.approve_space_booking(owner, late_morning.id)

        assert exc.value.status_code == 409
        assert exc.value.detail["code"] == "SLOT_UNAVAILABLE"
        await db.refresh(second)
        assert second.credits == 20

    async def test_find_spaces_east_of_origin_at_high_latitude(self, db, make_user):
        owner = await make_user()
        service = HousingService(db)
        # About 8 km due east of central Oslo
        await service.create_space(owner, space_data(title="Oslo east", lat=59.91, lng=10.8937))

        near = await service.find_spaces(SpaceFilters(lat=59.91, lng=10.75, radius_km=10))

        assert [s.title for s in near] == ["Oslo east"]


class TestSpaceListing:
    async def test_update_space(self, db, make_user):
        owner = await make_user()
        service = HousingService(db)
        created = await service.create_space(owner, space_data())
        space = await db.get(SpaceBank, created.id)

        with pytest.raises(HTTPException) as exc:
            await service.update_space(space, SpaceUpdateRequest(max_booking_hours=1))
        assert exc.value.detail["code"] == "INVALID_BOOKING_HOURS"

        updated = await service.update_space(space, SpaceUpdateRequest(title="Big meeting room", capacity=20))
        assert updated.title == "Big meeting room"
        assert updated.capacity == 20
        assert updated.max_booking_hours == 8

    async def test_delete_space(self, db, make_user):
        owner = await make_user()
        service = HousingService(db)
        busy = await service.create_space(owner, space_data(exchange_type=ExchangeType.free))
        idle = await service.create_space(owner, space_data(title="Quiet room"))
        await service.book_space(await make_user(), busy.id, slot(0, 2))

        with pytest.raises(HTTPException) as exc:
            await service.delete_space(await db.get(SpaceBank, busy.id))
        assert exc.value.detail["code"] == "SPACE_HAS_ACTIVE_BOOKINGS"

        await service.delete_space(await db.get(SpaceBank, idle.id))
        assert await db.get(SpaceBank, idle.id) is None

    async def test_only_owner_edits_over_http(self, client, db, make_user, auth_headers):
        owner = await make_user()
        space = await HousingService(db).create_space(owner, space_data())

        intruder = await client.patch(
            f"/api/v1/housing/spaces/{space.id}",
            json={"title": "Mine now"},
            headers=auth_headers(await make_user()),
        )
        allowed = await client.patch(
            f"/api/v1/housing/spaces/{space.id}",
            json={"title": "Renamed room"},
            headers=auth_headers(owner),
        )

        assert intruder.status_code == 403
        assert intruder.json()["detail"]["code"] == "NOT_OWNER"
        assert allowed.status_code == 200
        assert allowed.json()["title"] == "Renamed room"


class TestTemporaryHousing:
    async def test_booking_computes_nights(self, db, make_user, queued_emails):
        host = await make_user()
        guest = await make_user(credits=30)
        service = HousingService(db)
        housing = await service.create_housing(host, housing_data())

        booking = await service.book_housing(guest, housing.id, stay(2.5))

        assert booking.nights == 3
        assert booking.paid_credits == 15
        assert booking.status == BookingStatus.pending
        queued_emails.assert_called_once()

    @pytest.mark.parametrize(
        ("request_factory", "code"),
        [
            (lambda: stay(1), "STAY_TOO_SHORT"),
            (lambda: stay(8), "STAY_TOO_LONG"),
            (lambda: stay(2, guests=3), "TOO_MANY_GUESTS"),
            (lambda: stay(3, start_offset_days=29), "DATES_UNAVAILABLE"),
        ],
    )
    async def test_booking_rules(self, db, make_user, request_factory, code):
        host = await make_user()
        service = HousingService(db)
        housing = await service.create_housing(host, housing_data())

        with pytest.raises(HTTPException) as exc:
            await service.book_housing(await make_user(credits=100), housing.id, request_factory())
        assert exc.value.detail["code"] == code

    async def test_stay_lifecycle(self, db, make_user):
        host = await make_user()
        guest = await make_user(credits=30)
        service = HousingService(db)
        housing = await service.create_housing(host, housing_data())
        booking = await service.book_housing(guest, housing.id, stay(2))

        with pytest.raises(HTTPException) as exc:
            await service.check_in_housing(guest, booking.id)
        assert exc.value.detail["code"] == "BOOKING_NOT_APPROVED"

        approved = await service.approve_housing_booking(host, booking.id, "Welcome!")
        assert approved.host_response == "Welcome!"
        await db.refresh(host)
        assert host.credits == 10

        checked_in = await service.check_in_housing(guest, booking.id)
        assert checked_in.status == BookingStatus.checked_in

        done = await service.complete_housing_stay(guest, booking.id, BookingReviewRequest(rating=5))
        assert done.status == BookingStatus.completed
        assert done.host_rating == 5

        rated = await service.complete_housing_stay(host, booking.id, BookingReviewRequest(rating=4))
        assert rated.guest_rating == 4

    async def test_open_ended_availability(self, db, make_user):
        host = await make_user()
        service = HousingService(db)
        await service.create_housing(host, housing_data(available_to=None, max_nights=None))

        found = await service.find_housing(
            HousingFilters(check_in=TOMORROW, check_out=TOMORROW + timedelta(days=400))
        )
        assert len(found) == 1

        booking = await service.book_housing(
            await make_user(credits=1000), found[0].id, stay(90, start_offset_days=100)
        )
        assert booking.nights == 90

    async def test_update_and_delete(self, db, make_user):
        host = await make_user()
        service = HousingService(db)
        created = await service.create_housing(host, housing_data())
        housing = await db.get(TemporaryHousing, created.id)

        with pytest.raises(HTTPException) as exc:
            await service.update_housing(housing, HousingUpdateRequest(available_to=TOMORROW - timedelta(days=1)))
        assert exc.value.detail["code"] == "INVALID_DATES"

        await service.book_housing(await make_user(credits=30), housing.id, stay(2))
        with pytest.raises(HTTPException) as exc:
            await service.delete_housing(housing)
        assert exc.value.detail["code"] == "HOUSING_HAS_ACTIVE_BOOKINGS"


class TestDashboards:
    async def test_my_bookings_and_offerings(self, db, make_user):
        host = await make_user()
        guest = await make_user(credits=50)
        service = HousingService(db)
        space = await service.create_space(host, space_data())
        housing = await service.create_housing(host, housing_data())
        await service.book_space(guest, space.id, slot(0, 2))
        await service.book_space(guest, space.id, slot(4, 2))
        await service.book_housing(guest, housing.id, stay(2))

        bookings = await service.get_my_bookings(guest)
        offerings = await service.get_my_offerings(host)

        assert len(bookings.spaces) == 2
        assert len(bookings.housing) == 1
        assert offerings.spaces[0].booking_count == 2
        assert offerings.housing[0].booking_count == 1

    async def test_solutions(self, db, make_user):
        host = await make_user()
        service = HousingService(db)
        await service.create_space(host, space_data())
        await service.create_housing(host, housing_data())

        everything = await service.find_all_solutions(SolutionFilters())
        only_spaces = await service.find_all_solutions(SolutionFilters(solution_type="SPACE_BANK"))

        assert {s.solution_type for s in everything} == {"SPACE_BANK", "TEMPORARY_HOUSING"}
        assert [s.solution_type for s in only_spaces] == ["SPACE_BANK"]
