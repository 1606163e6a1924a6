"""
Housing endpoints.

Space bank, temporary housing, cooperatives, guarantees and dashboards.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from truk.core.database import get_db
from truk.core.dependencies import get_current_user
from truk.core.guards import require_ownership, require_verified_email
from truk.models.space import SpaceBank
from truk.models.temporary_housing import TemporaryHousing
from truk.models.user import User
from truk.schemas.housing import (
    BookingReviewRequest,
    CoopCreateRequest,
    CoopDetailResponse,
    CoopFilters,
    CoopJoinRequest,
    CoopMemberResponse,
    CoopResponse,
    CoopVoteRequest,
    CoopVoteResponse,
    GuaranteeRequest,
    GuaranteeResponse,
    GuaranteeSupportRequest,
    GuaranteeSupportResponse,
    HostResponseRequest,
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
from truk.services.coop_service import CoopService
from truk.services.housing_service import HousingService

router = APIRouter()


def get_housing_service(db: AsyncSession = Depends(get_db)) -> HousingService:
    return HousingService(db=db)


def get_coop_service(db: AsyncSession = Depends(get_db)) -> CoopService:
    return CoopService(db=db)


# ---------------------------------------------------------------------------
# Space bank
# ---------------------------------------------------------------------------

@router.post(
    "/spaces",
    response_model=SpaceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="List a shared space",
)
async def create_space(
    data: SpaceCreateRequest,
    current_user: User = Depends(require_verified_email),
    service: HousingService = Depends(get_housing_service),
) -> SpaceResponse:
    return await service.create_space(current_user, data)


@router.get("/spaces", response_model=list[SpaceResponse], summary="Browse spaces")
async def list_spaces(
    filters: Annotated[SpaceFilters, Query()],
    service: HousingService = Depends(get_housing_service),
) -> list[SpaceResponse]:
    return await service.find_spaces(filters)


@router.get("/spaces/{space_id}", response_model=SpaceDetailResponse, summary="Space detail")
async def get_space(
    space_id: UUID,
    service: HousingService = Depends(get_housing_service),
) -> SpaceDetailResponse:
    return await service.find_space_by_id(space_id)


@router.patch("/spaces/{space_id}", response_model=SpaceResponse, summary="Update a space")
async def update_space(
    data: SpaceUpdateRequest,
    space: SpaceBank = Depends(require_ownership("space")),
    service: HousingService = Depends(get_housing_service),
) -> SpaceResponse:
    return await service.update_space(space, data)


@router.delete(
    "/spaces/{space_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a space without active bookings",
)
async def delete_space(
    space: SpaceBank = Depends(require_ownership("space")),
    service: HousingService = Depends(get_housing_service),
) -> None:
    await service.delete_space(space)


@router.post(
    "/spaces/{space_id}/book",
    response_model=SpaceBookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book a space",
)
async def book_space(
    space_id: UUID,
    data: SpaceBookingRequest,
    current_user: User = Depends(require_verified_email),
    service: HousingService = Depends(get_housing_service),
) -> SpaceBookingResponse:
    """
    Book a time range.

    Rejected when outside the space's min/max hours, when it overlaps a
    confirmed booking, or when the caller's reputation or credits fall short.
    """
    return await service.book_space(current_user, space_id, data)


@router.post(
    "/spaces/bookings/{booking_id}/approve",
    response_model=SpaceBookingResponse,
    summary="Approve a pending space booking",
)
async def approve_space_booking(
    booking_id: UUID,
    current_user: User = Depends(get_current_user),
    service: HousingService = Depends(get_housing_service),
) -> SpaceBookingResponse:
    return await service.approve_space_booking(current_user, booking_id)


@router.post(
    "/spaces/bookings/{booking_id}/complete",
    response_model=SpaceBookingResponse,
    summary="Complete and review a space booking",
)
async def complete_space_booking(
    booking_id: UUID,
    data: BookingReviewRequest,
    current_user: User = Depends(get_current_user),
    service: HousingService = Depends(get_housing_service),
) -> SpaceBookingResponse:
    return await service.complete_space_booking(current_user, booking_id, data)


@router.post(
    "/spaces/bookings/{booking_id}/cancel",
    response_model=SpaceBookingResponse,
    summary="Cancel a space booking",
)
async def cancel_space_booking(
    booking_id: UUID,
    current_user: User = Depends(get_current_user),
    service: HousingService = Depends(get_housing_service),
) -> SpaceBookingResponse:
    return await service.cancel_space_booking(current_user, booking_id)


# ---------------------------------------------------------------------------
# Temporary housing
# ---------------------------------------------------------------------------

@router.post(
    "/temporary",
    response_model=HousingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Offer temporary housing",
)
async def create_housing(
    data: HousingCreateRequest,
    current_user: User = Depends(require_verified_email),
    service: HousingService = Depends(get_housing_service),
) -> HousingResponse:
    return await service.create_housing(current_user, data)


@router.get("/temporary", response_model=list[HousingResponse], summary="Browse temporary housing")
async def list_housing(
    filters: Annotated[HousingFilters, Query()],
    service: HousingService = Depends(get_housing_service),
) -> list[HousingResponse]:
    return await service.find_housing(filters)


@router.get("/temporary/{housing_id}", response_model=HousingResponse, summary="Housing detail")
async def get_housing(
    housing_id: UUID,
    service: HousingService = Depends(get_housing_service),
) -> HousingResponse:
    return await service.find_housing_by_id(housing_id)


@router.patch("/temporary/{housing_id}", response_model=HousingResponse, summary="Update a listing")
async def update_housing(
    data: HousingUpdateRequest,
    housing: TemporaryHousing = Depends(require_ownership("housing_listing")),
    service: HousingService = Depends(get_housing_service),
) -> HousingResponse:
    return await service.update_housing(housing, data)


@router.delete(
    "/temporary/{housing_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a listing without active bookings",
)
async def delete_housing(
    housing: TemporaryHousing = Depends(require_ownership("housing_listing")),
    service: HousingService = Depends(get_housing_service),
) -> None:
    await service.delete_housing(housing)


@router.post(
    "/temporary/{housing_id}/book",
    response_model=HousingBookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a stay",
)
async def book_housing(
    housing_id: UUID,
    data: HousingBookingRequest,
    current_user: User = Depends(require_verified_email),
    service: HousingService = Depends(get_housing_service),
) -> HousingBookingResponse:
    return await service.book_housing(current_user, housing_id, data)


@router.post(
    "/temporary/bookings/{booking_id}/approve",
    response_model=HousingBookingResponse,
    summary="Approve a stay request",
)
async def approve_housing_booking(
    booking_id: UUID,
    data: HostResponseRequest,
    current_user: User = Depends(get_current_user),
    service: HousingService = Depends(get_housing_service),
) -> HousingBookingResponse:
    return await service.approve_housing_booking(current_user, booking_id, data.response)


@router.post(
    "/temporary/bookings/{booking_id}/check-in",
    response_model=HousingBookingResponse,
    summary="Check in to a stay",
)
async def check_in_housing(
    booking_id: UUID,
    current_user: User = Depends(get_current_user),
    service: HousingService = Depends(get_housing_service),
) -> HousingBookingResponse:
    return await service.check_in_housing(current_user, booking_id)


@router.post(
    "/temporary/bookings/{booking_id}/complete",
    response_model=HousingBookingResponse,
    summary="Complete a stay and leave a review",
)
async def complete_housing_stay(
    booking_id: UUID,
    data: BookingReviewRequest,
    current_user: User = Depends(get_current_user),
    service: HousingService = Depends(get_housing_service),
) -> HousingBookingResponse:
    """The guest rates the host and closes the stay; the host rates the guest."""
    return await service.complete_housing_stay(current_user, booking_id, data)


# ---------------------------------------------------------------------------
# Cooperatives
# ---------------------------------------------------------------------------

@router.post(
    "/coops",
    response_model=CoopResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Found a housing cooperative",
)
async def create_coop(
    data: CoopCreateRequest,
    current_user: User = Depends(require_verified_email),
    service: CoopService = Depends(get_coop_service),
) -> CoopResponse:
    return await service.create_coop(current_user, data)


@router.get("/coops", response_model=list[CoopResponse], summary="Browse cooperatives")
async def list_coops(
    filters: Annotated[CoopFilters, Query()],
    service: CoopService = Depends(get_coop_service),
) -> list[CoopResponse]:
    return await service.find_coops(filters)


@router.get("/coops/{coop_id}", response_model=CoopDetailResponse, summary="Cooperative detail")
async def get_coop(
    coop_id: UUID,
    service: CoopService = Depends(get_coop_service),
) -> CoopDetailResponse:
    return await service.find_coop_by_id(coop_id)


@router.post(
    "/coops/{coop_id}/join",
    response_model=CoopMemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Apply to a cooperative",
)
async def join_coop(
    coop_id: UUID,
    data: CoopJoinRequest,
    current_user: User = Depends(get_current_user),
    service: CoopService = Depends(get_coop_service),
) -> CoopMemberResponse:
    return await service.join_coop(current_user, coop_id, data)


@router.post(
    "/coops/proposals/{proposal_id}/vote",
    response_model=CoopVoteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Vote on a cooperative proposal",
)
async def vote_coop_proposal(
    proposal_id: UUID,
    data: CoopVoteRequest,
    current_user: User = Depends(get_current_user),
    service: CoopService = Depends(get_coop_service),
) -> CoopVoteResponse:
    return await service.vote_coop_proposal(current_user, proposal_id, data)


# ---------------------------------------------------------------------------
# Community guarantee
# ---------------------------------------------------------------------------

@router.post(
    "/guarantees",
    response_model=GuaranteeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a community rent guarantee",
)
async def request_guarantee(
    data: GuaranteeRequest,
    current_user: User = Depends(require_verified_email),
    service: CoopService = Depends(get_coop_service),
) -> GuaranteeResponse:
    return await service.request_guarantee(current_user, data)


@router.post(
    "/guarantees/{guarantee_id}/support",
    response_model=GuaranteeSupportResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Pledge support to a guarantee",
)
async def support_guarantee(
    guarantee_id: UUID,
    data: GuaranteeSupportRequest,
    current_user: User = Depends(get_current_user),
    service: CoopService = Depends(get_coop_service),
) -> GuaranteeSupportResponse:
    return await service.support_guarantee(current_user, guarantee_id, data.months, data.amount)


# ---------------------------------------------------------------------------
# Dashboards
# ---------------------------------------------------------------------------

@router.get("/me/bookings", response_model=MyBookingsResponse, summary="My space and housing bookings")
async def my_bookings(
    current_user: User = Depends(get_current_user),
    service: HousingService = Depends(get_housing_service),
) -> MyBookingsResponse:
    return await service.get_my_bookings(current_user)


@router.get("/me/offerings", response_model=MyOfferingsResponse, summary="Spaces and housing I offer")
async def my_offerings(
    current_user: User = Depends(get_current_user),
    service: HousingService = Depends(get_housing_service),
) -> MyOfferingsResponse:
    return await service.get_my_offerings(current_user)


@router.get("/solutions", response_model=list[SolutionResponse], summary="All housing solutions")
async def list_solutions(
    filters: Annotated[SolutionFilters, Query()],
    service: HousingService = Depends(get_housing_service),
) -> list[SolutionResponse]:
    return await service.find_all_solutions(filters)
