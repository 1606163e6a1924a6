"""
Housing business logic.

Space bank (hourly bookings), temporary housing (nightly stays) and the
housing dashboards. Cooperatives and guarantees live in coop_service.

Reputation checks use the member's generosity score.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from truk.core.config import settings
from truk.core.geo import bounding_box, haversine_km
from truk.models.coop import CoopStatus, HousingCoop
from truk.models.credit import CreditReason
from truk.models.space import (
    ACTIVE_BOOKING_STATUSES,
    BookingStatus,
    ExchangeType,
    ListingStatus,
    SpaceBank,
    SpaceBooking,
)
from truk.models.temporary_housing import HousingBooking, TemporaryHousing
from truk.models.user import User
from truk.schemas.auth import UserSummary
from truk.schemas.housing import (
    BookingReviewRequest,
    HousingBookingRequest,
    HousingBookingResponse,
    HousingCreateRequest,
    HousingFilters,
    HousingResponse,
    HousingUpdateRequest,
    MyBookingsResponse,
    MyOfferingsResponse,
    SolutionFilters,
    SolutionResponse,
    SpaceBookingRequest,
    SpaceBookingResponse,
    SpaceCreateRequest,
    SpaceDetailResponse,
    SpaceFilters,
    SpaceResponse,
    SpaceUpdateRequest,
)
from truk.services.credit_service import CreditService

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400

# Statuses whose slot blocks a new space booking
BLOCKING_SPACE_STATUSES = (
    BookingStatus.confirmed,
    BookingStatus.approved,
    BookingStatus.checked_in,
)


@dataclass
class Payment:
    eur: float | None = None
    credits: int | None = None
    hours: float | None = None


def compute_payment(
    exchange_type: ExchangeType,
    units: float,
    price_eur: float | None,
    price_credits: int | None,
    price_hours: float | None,
    is_free: bool = False,
) -> Payment:
    """
    Price of ``units`` hours or nights for a listing.

    Credits are whole numbers, rounded up. A time-bank listing without a
    rate costs one hour per unit.
    """
    if is_free or exchange_type == ExchangeType.free:
        return Payment()
    if exchange_type == ExchangeType.eur:
        return Payment(eur=round((price_eur or 0) * units, 2))
    if exchange_type == ExchangeType.credits:
        return Payment(credits=math.ceil((price_credits or 0) * units))
    return Payment(hours=(price_hours or 1) * units)


def _space_response(space: SpaceBank, owner: User | None = None) -> SpaceResponse:
    response = SpaceResponse.model_validate(space)
    if owner is not None:
        response.owner = UserSummary.model_validate(owner)
    return response


def _housing_response(housing: TemporaryHousing, host: User | None = None) -> HousingResponse:
    response = HousingResponse.model_validate(housing)
    if host is not None:
        response.host = UserSummary.model_validate(host)
    return response


def _forbidden(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN, detail={"code": code, "message": message}
    )


def _bad_request(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST, detail={"code": code, "message": message}
    )


class HousingService:
    """Handles space bank and temporary housing operations."""

    def __init__(self, db: AsyncSession, credits: CreditService | None = None) -> None:
        self.db = db
        self.credits = credits or CreditService(db)

    # -----------------------------------------------------------------------
    # Space bank
    # -----------------------------------------------------------------------

    async def create_space(self, user: User, data: SpaceCreateRequest) -> SpaceResponse:
        space = SpaceBank(owner_id=user.id, status=ListingStatus.active, **data.model_dump())
        self.db.add(space)
        await self.db.flush()

        logger.info("Space %s created by %s", space.id, user.id)
        return _space_response(space, user)

    async def find_spaces(self, filters: SpaceFilters) -> list[SpaceResponse]:
        stmt = (
            select(SpaceBank, User)
            .join(User, SpaceBank.owner_id == User.id)
            .where(SpaceBank.status == ListingStatus.active)
        )
        if filters.type is not None:
            stmt = stmt.where(SpaceBank.type == filters.type)
        if filters.community_id is not None:
            stmt = stmt.where(SpaceBank.community_id == filters.community_id)
        if filters.is_free is not None:
            stmt = stmt.where(SpaceBank.is_free.is_(filters.is_free))
        if filters.exchange_type is not None:
            stmt = stmt.where(SpaceBank.exchange_type == filters.exchange_type)

        proximity = filters.lat is not None and filters.lng is not None and filters.radius_km is not None
        if proximity:
            min_lat, max_lat, min_lng, max_lng = bounding_box(filters.lat, filters.lng, filters.radius_km)
            stmt = stmt.where(
                SpaceBank.lat.between(min_lat, max_lat),
                SpaceBank.lng.between(min_lng, max_lng),
            )

        rows = await self.db.execute(stmt.order_by(SpaceBank.created_at.desc()))

        results = []
        for space, owner in rows.all():
            response = _space_response(space, owner)
            if proximity:
                distance = haversine_km(filters.lat, filters.lng, space.lat, space.lng)
                if distance > filters.radius_km:
                    continue
                response.distance_km = round(distance, 2)
            results.append(response)
        return results

    async def find_space_by_id(self, space_id: UUID) -> SpaceDetailResponse:
        """Space detail with its upcoming confirmed slots."""
        space = await self._get_space(space_id)
        owner = await self.db.get(User, space.owner_id)

        bookings = await self.db.scalars(
            select(SpaceBooking)
            .where(
                SpaceBooking.space_id == space.id,
                SpaceBooking.status.in_(BLOCKING_SPACE_STATUSES),
                SpaceBooking.end_time >= datetime.now(UTC),
            )
            .order_by(SpaceBooking.start_time)
        )

        response = SpaceDetailResponse.model_validate(space)
        if owner is not None:
            response.owner = UserSummary.model_validate(owner)
        response.upcoming_bookings = [SpaceBookingResponse.model_validate(b) for b in bookings]
        return response

    async def update_space(self, space: SpaceBank, data: SpaceUpdateRequest) -> SpaceResponse:
        changes = data.model_dump(exclude_unset=True)
        min_hours = changes.get("min_booking_hours", space.min_booking_hours)
        max_hours = changes.get("max_booking_hours", space.max_booking_hours)
        if max_hours is not None and max_hours < min_hours:
            raise _bad_request("INVALID_BOOKING_HOURS", "max_booking_hours must be >= min_booking_hours")

        for field, value in changes.items():
            setattr(space, field, value)
        await self.db.flush()
        return _space_response(space)

    async def delete_space(self, space: SpaceBank) -> None:
        active = await self.db.scalar(
            select(func.count(SpaceBooking.id)).where(
                SpaceBooking.space_id == space.id,
                SpaceBooking.status.in_(ACTIVE_BOOKING_STATUSES),
            )
        )
        if active:
            raise _bad_request("SPACE_HAS_ACTIVE_BOOKINGS", "Cannot delete a space with active bookings")

        await self.db.execute(delete(SpaceBooking).where(SpaceBooking.space_id == space.id))
        await self.db.delete(space)
        await self.db.flush()
        logger.info("Space %s deleted", space.id)

    async def book_space(
        self, user: User, space_id: UUID, data: SpaceBookingRequest
    ) -> SpaceBookingResponse:
        """
        Book a space for a time range.

        - 403 when the caller's reputation is below the space minimum
        - 400 for an empty range or one outside min/max booking hours
        - 409 when the range overlaps a confirmed booking
        - 400 when a credits booking is not covered by the balance

        Spaces without approval are confirmed at once; credit payments
        then move to the owner immediately.
        """
        space = await self._get_space(space_id)
        if space.status != ListingStatus.active:
            raise _bad_request("SPACE_NOT_AVAILABLE", "This space is not accepting bookings")

        if user.generosity_score < space.min_reputation:
            raise _forbidden(
                "INSUFFICIENT_REPUTATION",
                f"This space requires a reputation of at least {space.min_reputation}",
            )

        if data.end_time <= data.start_time:
            raise _bad_request("INVALID_DATES", "End time must be after start time")

        hours = (data.end_time - data.start_time).total_seconds() / SECONDS_PER_HOUR
        if hours < space.min_booking_hours:
            raise _bad_request(
                "BOOKING_TOO_SHORT", f"Minimum booking is {space.min_booking_hours} hours"
            )
        if space.max_booking_hours is not None and hours > space.max_booking_hours:
            raise _bad_request(
                "BOOKING_TOO_LONG", f"Maximum booking is {space.max_booking_hours} hours"
            )

        await self._ensure_slot_free(space.id, data.start_time, data.end_time)

        payment = compute_payment(
            space.exchange_type,
            hours,
            space.price_per_hour,
            space.credits_per_hour,
            space.hours_per_hour,
            space.is_free,
        )
        if payment.credits and user.credits < payment.credits:
            raise _bad_request(
                "INSUFFICIENT_CREDITS",
                f"Insufficient credits. Balance: {user.credits}, Required: {payment.credits}",
            )

        booking = SpaceBooking(
            space_id=space.id,
            booker_id=user.id,
            start_time=data.start_time,
            end_time=data.end_time,
            hours=hours,
            purpose=data.purpose,
            attendees=data.attendees,
            status=BookingStatus.pending if space.requires_approval else BookingStatus.confirmed,
            paid_eur=payment.eur,
            paid_credits=payment.credits,
            paid_hours=payment.hours,
        )
        self.db.add(booking)
        await self.db.flush()

        if booking.status == BookingStatus.confirmed:
            await self._transfer_space_credits(booking, space)
        else:
            await self._notify_owner(space.owner_id, user, space.title, "space")

        logger.info("Space booking %s (%s) created by %s", booking.id, booking.status.value, user.id)
        return SpaceBookingResponse.model_validate(booking)

    async def approve_space_booking(self, user: User, booking_id: UUID) -> SpaceBookingResponse:
        booking = await self._get_space_booking(booking_id)
        space = await self._get_space(booking.space_id)

        if space.owner_id != user.id and not user.is_admin:
            raise _forbidden("NOT_OWNER", "Only the space owner can approve bookings")
        if booking.status != BookingStatus.pending:
            raise _bad_request("BOOKING_NOT_PENDING", "Only pending bookings can be approved")

        # Another request for the same slot may have been approved meanwhile
        await self._ensure_slot_free(space.id, booking.start_time, booking.end_time, exclude_id=booking.id)

        booking.status = BookingStatus.approved
        booking.approved_at = datetime.now(UTC)
        await self._transfer_space_credits(booking, space)
        await self.db.flush()

        logger.info("Space booking %s approved", booking.id)
        return SpaceBookingResponse.model_validate(booking)

    async def complete_space_booking(
        self, user: User, booking_id: UUID, data: BookingReviewRequest
    ) -> SpaceBookingResponse:
        booking = await self._get_space_booking(booking_id)

        if booking.booker_id != user.id:
            raise _forbidden("NOT_BOOKER", "Only the booker can complete this booking")
        if booking.status in (BookingStatus.completed, BookingStatus.cancelled):
            raise _bad_request("BOOKING_CLOSED", f"Booking is already {booking.status.value}")

        booking.status = BookingStatus.completed
        booking.completed_at = datetime.now(UTC)
        booking.rating = data.rating
        booking.review = data.review
        await self.db.flush()
        return SpaceBookingResponse.model_validate(booking)

    async def cancel_space_booking(self, user: User, booking_id: UUID) -> SpaceBookingResponse:
        """Booker or owner cancels; credits already paid go back to the booker."""
        booking = await self._get_space_booking(booking_id)
        space = await self._get_space(booking.space_id)

        if user.id not in (booking.booker_id, space.owner_id) and not user.is_admin:
            raise _forbidden("NOT_PARTICIPANT", "Only the booker or the owner can cancel this booking")
        if booking.status in (BookingStatus.completed, BookingStatus.cancelled):
            raise _bad_request("BOOKING_CLOSED", f"Booking is already {booking.status.value}")

        if booking.credits_transferred and booking.paid_credits:
            await self.credits.transfer_credits(
                space.owner_id,
                booking.booker_id,
                booking.paid_credits,
                CreditReason.refund,
                related_id=str(booking.id),
                description=f"Refund: {space.title}",
            )
            booking.credits_transferred = False

        booking.status = BookingStatus.cancelled
        await self.db.flush()

        logger.info("Space booking %s cancelled by %s", booking.id, user.id)
        return SpaceBookingResponse.model_validate(booking)

    # -----------------------------------------------------------------------
    # Temporary housing
    # -----------------------------------------------------------------------

    async def create_housing(self, user: User, data: HousingCreateRequest) -> HousingResponse:
        housing = TemporaryHousing(host_id=user.id, status=ListingStatus.active, **data.model_dump())
        self.db.add(housing)
        await self.db.flush()

        logger.info("Housing %s listed by %s", housing.id, user.id)
        return _housing_response(housing, user)

    async def find_housing(self, filters: HousingFilters) -> list[HousingResponse]:
        """
        Active listings, newest first.

        check_in/check_out keep only listings whose availability window
        covers the requested dates.
        """
        stmt = (
            select(TemporaryHousing, User)
            .join(User, TemporaryHousing.host_id == User.id)
            .where(TemporaryHousing.status == ListingStatus.active)
        )
        if filters.type is not None:
            stmt = stmt.where(TemporaryHousing.type == filters.type)
        if filters.community_id is not None:
            stmt = stmt.where(TemporaryHousing.community_id == filters.community_id)
        if filters.accommodation_type is not None:
            stmt = stmt.where(TemporaryHousing.accommodation_type == filters.accommodation_type)
        if filters.min_beds is not None:
            stmt = stmt.where(TemporaryHousing.beds >= filters.min_beds)
        if filters.is_free is not None:
            stmt = stmt.where(TemporaryHousing.is_free.is_(filters.is_free))
        if filters.check_in is not None:
            stmt = stmt.where(TemporaryHousing.available_from <= filters.check_in)
        if filters.check_out is not None:
            stmt = stmt.where(
                TemporaryHousing.available_to.is_(None)
                | (TemporaryHousing.available_to >= filters.check_out)
            )

        proximity = filters.lat is not None and filters.lng is not None and filters.radius_km is not None
        if proximity:
            min_lat, max_lat, min_lng, max_lng = bounding_box(filters.lat, filters.lng, filters.radius_km)
            stmt = stmt.where(
                TemporaryHousing.lat.between(min_lat, max_lat),
                TemporaryHousing.lng.between(min_lng, max_lng),
            )

        rows = await self.db.execute(stmt.order_by(TemporaryHousing.created_at.desc()))

        results = []
        for housing, host in rows.all():
            response = _housing_response(housing, host)
            if proximity:
                distance = haversine_km(filters.lat, filters.lng, housing.lat, housing.lng)
                if distance > filters.radius_km:
                    continue
                response.distance_km = round(distance, 2)
            results.append(response)
        return results

    async def find_housing_by_id(self, housing_id: UUID) -> HousingResponse:
        housing = await self._get_housing(housing_id)
        host = await self.db.get(User, housing.host_id)
        return _housing_response(housing, host)

    async def update_housing(self, housing: TemporaryHousing, data: HousingUpdateRequest) -> HousingResponse:
        changes = data.model_dump(exclude_unset=True)
        available_from = changes.get("available_from", housing.available_from)
        available_to = changes.get("available_to", housing.available_to)
        if available_to is not None and available_to <= available_from:
            raise _bad_request("INVALID_DATES", "available_to must be after available_from")

        for field, value in changes.items():
            setattr(housing, field, value)
        await self.db.flush()
        return _housing_response(housing)

    async def delete_housing(self, housing: TemporaryHousing) -> None:
        active = await self.db.scalar(
            select(func.count(HousingBooking.id)).where(
                HousingBooking.housing_id == housing.id,
                HousingBooking.status.in_(ACTIVE_BOOKING_STATUSES),
            )
        )
        if active:
            raise _bad_request(
                "HOUSING_HAS_ACTIVE_BOOKINGS", "Cannot delete a listing with active bookings"
            )

        await self.db.execute(delete(HousingBooking).where(HousingBooking.housing_id == housing.id))
        await self.db.delete(housing)
        await self.db.flush()
        logger.info("Housing %s deleted", housing.id)

    async def book_housing(
        self, user: User, housing_id: UUID, data: HousingBookingRequest
    ) -> HousingBookingResponse:
        """
        Request a stay.

        Nights are whole days rounded up. The stay must fit the listing's
        availability window and its min/max nights.
        """
        housing = await self._get_housing(housing_id)
        if housing.status != ListingStatus.active:
            raise _bad_request("HOUSING_NOT_AVAILABLE", "This listing is not accepting bookings")

        if user.generosity_score < housing.min_reputation:
            raise _forbidden(
                "INSUFFICIENT_REPUTATION",
                f"This listing requires a reputation of at least {housing.min_reputation}",
            )

        if data.check_out <= data.check_in:
            raise _bad_request("INVALID_DATES", "Check-out must be after check-in")

        nights = math.ceil((data.check_out - data.check_in).total_seconds() / SECONDS_PER_DAY)
        if nights < housing.min_nights:
            raise _bad_request("STAY_TOO_SHORT", f"Minimum stay is {housing.min_nights} nights")
        if housing.max_nights is not None and nights > housing.max_nights:
            raise _bad_request("STAY_TOO_LONG", f"Maximum stay is {housing.max_nights} nights")
        if data.guests > housing.max_guests:
            raise _bad_request("TOO_MANY_GUESTS", f"Maximum {housing.max_guests} guests")

        outside = data.check_in < housing.available_from or (
            housing.available_to is not None and data.check_out > housing.available_to
        )
        if outside:
            raise _bad_request("DATES_UNAVAILABLE", "Requested dates are outside the availability window")

        payment = compute_payment(
            housing.exchange_type,
            nights,
            housing.price_per_night,
            housing.credits_per_night,
            housing.hours_per_night,
            housing.is_free,
        )
        if payment.credits and user.credits < payment.credits:
            raise _bad_request(
                "INSUFFICIENT_CREDITS",
                f"Insufficient credits. Balance: {user.credits}, Required: {payment.credits}",
            )

        booking = HousingBooking(
            housing_id=housing.id,
            guest_id=user.id,
            check_in=data.check_in,
            check_out=data.check_out,
            nights=nights,
            guests=data.guests,
            message=data.message,
            status=BookingStatus.pending if housing.requires_approval else BookingStatus.confirmed,
            paid_eur=payment.eur,
            paid_credits=payment.credits,
            paid_hours=payment.hours,
        )
        self.db.add(booking)
        await self.db.flush()

        if booking.status == BookingStatus.confirmed:
            await self._transfer_housing_credits(booking, housing)
        else:
            await self._notify_owner(housing.host_id, user, housing.title, "stay")

        logger.info("Housing booking %s (%s) created by %s", booking.id, booking.status.value, user.id)
        return HousingBookingResponse.model_validate(booking)

    async def approve_housing_booking(
        self, user: User, booking_id: UUID, response: str | None = None
    ) -> HousingBookingResponse:
        booking = await self._get_housing_booking(booking_id)
        housing = await self._get_housing(booking.housing_id)

        if housing.host_id != user.id and not user.is_admin:
            raise _forbidden("NOT_HOST", "Only the host can approve this booking")
        if booking.status != BookingStatus.pending:
            raise _bad_request("BOOKING_NOT_PENDING", "Only pending bookings can be approved")

        booking.status = BookingStatus.approved
        booking.approved_at = datetime.now(UTC)
        booking.host_response = response
        await self._transfer_housing_credits(booking, housing)
        await self.db.flush()

        logger.info("Housing booking %s approved", booking.id)
        return HousingBookingResponse.model_validate(booking)

    async def check_in_housing(self, user: User, booking_id: UUID) -> HousingBookingResponse:
        booking = await self._get_housing_booking(booking_id)

        if booking.guest_id != user.id:
            raise _forbidden("NOT_GUEST", "Only the guest can check in")
        if booking.status not in (BookingStatus.approved, BookingStatus.confirmed):
            raise _bad_request("BOOKING_NOT_APPROVED", "Booking must be approved before check-in")

        booking.status = BookingStatus.checked_in
        booking.checked_in_at = datetime.now(UTC)
        await self.db.flush()
        return HousingBookingResponse.model_validate(booking)

    async def complete_housing_stay(
        self, user: User, booking_id: UUID, data: BookingReviewRequest
    ) -> HousingBookingResponse:
        """The guest closes the stay and rates the host; the host rates the guest."""
        booking = await self._get_housing_booking(booking_id)
        housing = await self._get_housing(booking.housing_id)

        is_guest = booking.guest_id == user.id
        is_host = housing.host_id == user.id
        if not is_guest and not is_host:
            raise _forbidden("NOT_PARTICIPANT", "Only the guest or the host can complete this stay")
        if booking.status in (BookingStatus.pending, BookingStatus.cancelled):
            raise _bad_request("BOOKING_NOT_ACTIVE", f"Booking is {booking.status.value}")

        if is_guest:
            booking.status = BookingStatus.completed
            booking.completed_at = booking.completed_at or datetime.now(UTC)
            booking.host_rating = data.rating
            booking.host_review = data.review
        else:
            booking.guest_rating = data.rating
            booking.guest_review = data.review

        await self.db.flush()
        return HousingBookingResponse.model_validate(booking)

    # -----------------------------------------------------------------------
    # Dashboards
    # -----------------------------------------------------------------------

    async def get_my_bookings(self, user: User) -> MyBookingsResponse:
        spaces = await self.db.scalars(
            select(SpaceBooking)
            .where(SpaceBooking.booker_id == user.id)
            .order_by(SpaceBooking.created_at.desc())
        )
        housing = await self.db.scalars(
            select(HousingBooking)
            .where(HousingBooking.guest_id == user.id)
            .order_by(HousingBooking.created_at.desc())
        )
        return MyBookingsResponse(
            spaces=[SpaceBookingResponse.model_validate(b) for b in spaces],
            housing=[HousingBookingResponse.model_validate(b) for b in housing],
        )

    async def get_my_offerings(self, user: User) -> MyOfferingsResponse:
        """Listings the user owns or hosts, with their booking counts."""
        space_counts = (
            select(SpaceBooking.space_id, func.count(SpaceBooking.id).label("n"))
            .group_by(SpaceBooking.space_id)
            .subquery()
        )
        space_rows = await self.db.execute(
            select(SpaceBank, func.coalesce(space_counts.c.n, 0))
            .outerjoin(space_counts, space_counts.c.space_id == SpaceBank.id)
            .where(SpaceBank.owner_id == user.id, SpaceBank.status != ListingStatus.archived)
            .order_by(SpaceBank.created_at.desc())
        )

        housing_counts = (
            select(HousingBooking.housing_id, func.count(HousingBooking.id).label("n"))
            .group_by(HousingBooking.housing_id)
            .subquery()
        )
        housing_rows = await self.db.execute(
            select(TemporaryHousing, func.coalesce(housing_counts.c.n, 0))
            .outerjoin(housing_counts, housing_counts.c.housing_id == TemporaryHousing.id)
            .where(
                TemporaryHousing.host_id == user.id,
                TemporaryHousing.status != ListingStatus.archived,
            )
            .order_by(TemporaryHousing.created_at.desc())
        )

        spaces = []
        for space, count in space_rows.all():
            response = _space_response(space)
            response.booking_count = count
            spaces.append(response)

        housing = []
        for listing, count in housing_rows.all():
            response = _housing_response(listing)
            response.booking_count = count
            housing.append(response)

        return MyOfferingsResponse(spaces=spaces, housing=housing)

    async def find_all_solutions(self, filters: SolutionFilters) -> list[SolutionResponse]:
        """Spaces, stays and cooperatives in one list, newest first."""
        wanted = filters.solution_type
        solutions: list[SolutionResponse] = []

        if wanted in (None, "SPACE_BANK"):
            stmt = select(SpaceBank).where(SpaceBank.status == ListingStatus.active)
            if filters.community_id is not None:
                stmt = stmt.where(SpaceBank.community_id == filters.community_id)
            for space in await self.db.scalars(stmt):
                solutions.append(
                    SolutionResponse(
                        id=space.id,
                        solution_type="SPACE_BANK",
                        title=space.title,
                        description=space.description,
                        latitude=space.lat,
                        longitude=space.lng,
                        community_id=space.community_id,
                        created_at=space.created_at,
                    )
                )

        if wanted in (None, "TEMPORARY_HOUSING"):
            stmt = select(TemporaryHousing).where(TemporaryHousing.status == ListingStatus.active)
            if filters.community_id is not None:
                stmt = stmt.where(TemporaryHousing.community_id == filters.community_id)
            for housing in await self.db.scalars(stmt):
                solutions.append(
                    SolutionResponse(
                        id=housing.id,
                        solution_type="TEMPORARY_HOUSING",
                        title=housing.title,
                        description=housing.description,
                        latitude=housing.lat,
                        longitude=housing.lng,
                        community_id=housing.community_id,
                        created_at=housing.created_at,
                    )
                )

        if wanted in (None, "HOUSING_COOP"):
            stmt = select(HousingCoop).where(HousingCoop.status != CoopStatus.archived)
            if filters.community_id is not None:
                stmt = stmt.where(HousingCoop.community_id == filters.community_id)
            for coop in await self.db.scalars(stmt):
                solutions.append(
                    SolutionResponse(
                        id=coop.id,
                        solution_type="HOUSING_COOP",
                        title=coop.name,
                        description=coop.description,
                        latitude=coop.lat,
                        longitude=coop.lng,
                        community_id=coop.community_id,
                        created_at=coop.created_at,
                    )
                )

        solutions.sort(key=lambda s: s.created_at, reverse=True)
        return solutions

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _ensure_slot_free(
        self,
        space_id: UUID,
        start_time: datetime,
        end_time: datetime,
        exclude_id: UUID | None = None,
    ) -> None:
        """409 when the range overlaps a booking that holds its slot."""
        query = select(SpaceBooking.id).where(
            SpaceBooking.space_id == space_id,
            SpaceBooking.status.in_(BLOCKING_SPACE_STATUSES),
            SpaceBooking.start_time < end_time,
            SpaceBooking.end_time > start_time,
        )
        if exclude_id is not None:
            query = query.where(SpaceBooking.id != exclude_id)

        if await self.db.scalar(query.limit(1)) is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "SLOT_UNAVAILABLE", "message": "This time slot is already booked"},
            )

    async def _transfer_space_credits(self, booking: SpaceBooking, space: SpaceBank) -> None:
        if not booking.paid_credits or booking.credits_transferred:
            return
        await self.credits.transfer_credits(
            booking.booker_id,
            space.owner_id,
            booking.paid_credits,
            CreditReason.space_booking,
            related_id=str(booking.id),
            description=f"Space booking: {space.title}",
        )
        booking.credits_transferred = True

    async def _transfer_housing_credits(self, booking: HousingBooking, housing: TemporaryHousing) -> None:
        if not booking.paid_credits or booking.credits_transferred:
            return
        await self.credits.transfer_credits(
            booking.guest_id,
            housing.host_id,
            booking.paid_credits,
            CreditReason.housing_booking,
            related_id=str(booking.id),
            description=f"Stay: {housing.title}",
        )
        booking.credits_transferred = True

    async def _notify_owner(self, owner_id: UUID, guest: User, title: str, kind: str) -> None:
        owner = await self.db.get(User, owner_id)
        if owner is None or owner.id == guest.id:
            return

        from truk.workers.email_tasks import queue_email, send_booking_request_email

        queue_email(
            send_booking_request_email,
            to_email=owner.email,
            owner_name=owner.name,
            guest_name=guest.name,
            listing_title=title,
            booking_kind=kind,
            frontend_url=settings.FRONTEND_URL,
        )

    async def _get_space(self, space_id: UUID) -> SpaceBank:
        space = await self.db.get(SpaceBank, space_id)
        if space is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "SPACE_NOT_FOUND", "message": "Space not found"},
            )
        return space

    async def _get_space_booking(self, booking_id: UUID) -> SpaceBooking:
        booking = await self.db.get(SpaceBooking, booking_id)
        if booking is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "BOOKING_NOT_FOUND", "message": "Booking not found"},
            )
        return booking

    async def _get_housing(self, housing_id: UUID) -> TemporaryHousing:
        housing = await self.db.get(TemporaryHousing, housing_id)
        if housing is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "HOUSING_NOT_FOUND", "message": "Housing listing not found"},
            )
        return housing

    async def _get_housing_booking(self, booking_id: UUID) -> HousingBooking:
        booking = await self.db.get(HousingBooking, booking_id)
        if booking is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "BOOKING_NOT_FOUND", "message": "Booking not found"},
            )
        return booking
