"""
Housing schemas.

Request/response models for the space bank, temporary housing, housing
cooperatives and community guarantees.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, Field, model_validator

from truk.models.coop import (
    CoopMemberRole,
    CoopPhase,
    CoopProposalType,
    CoopStatus,
    CoopType,
    GovernanceType,
    MemberStatus,
    VoteDecision,
)
from truk.models.guarantee import GuaranteeStatus, SupportStatus
from truk.models.space import BookingStatus, ExchangeType, ListingStatus, SpaceType
from truk.models.temporary_housing import AccommodationType, HousingType
from truk.schemas.auth import UserSummary

SolutionType = Literal["SPACE_BANK", "TEMPORARY_HOUSING", "HOUSING_COOP"]


class GeoFilter(BaseModel):
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    radius_km: float | None = Field(default=None, gt=0)


# ---------------------------------------------------------------------------
# Space bank
# ---------------------------------------------------------------------------

class SpaceCreateRequest(BaseModel):
    """Request body for POST /housing/spaces."""

    type: SpaceType
    title: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=1, max_length=5000)
    address: str = Field(min_length=1, max_length=255)
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    capacity: int = Field(default=1, gt=0)
    square_meters: float | None = Field(default=None, gt=0)
    features: list[str] = Field(default_factory=list)
    equipment: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    available_days: list[str] = Field(default_factory=list)
    available_hours: str | None = Field(default=None, max_length=50)
    min_booking_hours: float = Field(default=1, gt=0)
    max_booking_hours: float | None = Field(default=None, gt=0)
    exchange_type: ExchangeType
    price_per_hour: float | None = Field(default=None, ge=0)
    credits_per_hour: int | None = Field(default=None, ge=0)
    hours_per_hour: float | None = Field(default=None, gt=0)
    is_free: bool = False
    min_reputation: int = Field(default=0, ge=0)
    requires_approval: bool = False
    rules: str | None = None
    community_id: UUID | None = None

    @model_validator(mode="after")
    def booking_hours_consistent(self) -> "SpaceCreateRequest":
        if self.max_booking_hours is not None and self.max_booking_hours < self.min_booking_hours:
            raise ValueError("max_booking_hours must be >= min_booking_hours")
        return self


class SpaceUpdateRequest(BaseModel):
    """Request body for PATCH /housing/spaces/{space_id}."""

    title: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = Field(default=None, min_length=1, max_length=5000)
    capacity: int | None = Field(default=None, gt=0)
    features: list[str] | None = None
    equipment: list[str] | None = None
    images: list[str] | None = None
    available_days: list[str] | None = None
    available_hours: str | None = Field(default=None, max_length=50)
    min_booking_hours: float | None = Field(default=None, gt=0)
    max_booking_hours: float | None = Field(default=None, gt=0)
    price_per_hour: float | None = Field(default=None, ge=0)
    credits_per_hour: int | None = Field(default=None, ge=0)
    hours_per_hour: float | None = Field(default=None, gt=0)
    min_reputation: int | None = Field(default=None, ge=0)
    requires_approval: bool | None = None
    rules: str | None = None
    status: ListingStatus | None = None


class SpaceFilters(GeoFilter):
    type: SpaceType | None = None
    community_id: UUID | None = None
    is_free: bool | None = None
    exchange_type: ExchangeType | None = None


class SpaceResponse(BaseModel):
    id: UUID
    owner_id: UUID
    community_id: UUID | None
    type: SpaceType
    status: ListingStatus
    title: str
    description: str
    address: str
    lat: float | None
    lng: float | None
    capacity: int
    square_meters: float | None
    features: list[str]
    equipment: list[str]
    images: list[str]
    available_days: list[str]
    available_hours: str | None
    min_booking_hours: float
    max_booking_hours: float | None
    exchange_type: ExchangeType
    price_per_hour: float | None
    credits_per_hour: int | None
    hours_per_hour: float | None
    is_free: bool
    min_reputation: int
    requires_approval: bool
    rules: str | None
    created_at: datetime
    owner: UserSummary | None = None
    booking_count: int = 0
    distance_km: float | None = None

    model_config = {"from_attributes": True}


class SpaceBookingRequest(BaseModel):
    """Request body for POST /housing/spaces/{space_id}/book."""

    start_time: AwareDatetime
    end_time: AwareDatetime
    purpose: str | None = Field(default=None, max_length=500)
    attendees: int | None = Field(default=None, gt=0)


class SpaceBookingResponse(BaseModel):
    id: UUID
    space_id: UUID
    booker_id: UUID
    start_time: datetime
    end_time: datetime
    hours: float
    purpose: str | None
    attendees: int | None
    status: BookingStatus
    paid_eur: float | None
    paid_credits: int | None
    paid_hours: float | None
    rating: int | None
    review: str | None
    approved_at: datetime | None
    completed_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class SpaceDetailResponse(SpaceResponse):
    upcoming_bookings: list[SpaceBookingResponse] = Field(default_factory=list)


class BookingReviewRequest(BaseModel):
    """Request body for completing a booking or stay."""

    rating: int | None = Field(default=None, ge=1, le=5)
    review: str | None = Field(default=None, max_length=2000)


# ---------------------------------------------------------------------------
# Temporary housing
# ---------------------------------------------------------------------------

class HousingCreateRequest(BaseModel):
    """Request body for POST /housing/temporary."""

    type: HousingType
    accommodation_type: AccommodationType
    title: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=1, max_length=5000)
    address: str = Field(min_length=1, max_length=255)
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    beds: int = Field(default=1, gt=0)
    bathrooms: int = Field(default=1, ge=0)
    amenities: list[str] = Field(default_factory=list)
    house_rules: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    available_from: AwareDatetime
    available_to: AwareDatetime | None = None
    min_nights: int = Field(default=1, gt=0)
    max_nights: int | None = Field(default=None, gt=0)
    exchange_type: ExchangeType
    price_per_night: float | None = Field(default=None, ge=0)
    credits_per_night: int | None = Field(default=None, ge=0)
    hours_per_night: float | None = Field(default=None, gt=0)
    is_free: bool = False
    min_reputation: int = Field(default=10, ge=0)
    requires_approval: bool = True
    max_guests: int = Field(default=1, gt=0)
    community_insured: bool = True
    emergency_contact: str | None = Field(default=None, max_length=255)
    community_id: UUID | None = None

    @model_validator(mode="after")
    def dates_and_nights_consistent(self) -> "HousingCreateRequest":
        if self.available_to is not None and self.available_to <= self.available_from:
            raise ValueError("available_to must be after available_from")
        if self.max_nights is not None and self.max_nights < self.min_nights:
            raise ValueError("max_nights must be >= min_nights")
        return self


class HousingUpdateRequest(BaseModel):
    """Request body for PATCH /housing/temporary/{housing_id}."""

    title: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = Field(default=None, min_length=1, max_length=5000)
    beds: int | None = Field(default=None, gt=0)
    bathrooms: int | None = Field(default=None, ge=0)
    amenities: list[str] | None = None
    house_rules: list[str] | None = None
    images: list[str] | None = None
    available_from: AwareDatetime | None = None
    available_to: AwareDatetime | None = None
    min_nights: int | None = Field(default=None, gt=0)
    max_nights: int | None = Field(default=None, gt=0)
    price_per_night: float | None = Field(default=None, ge=0)
    credits_per_night: int | None = Field(default=None, ge=0)
    hours_per_night: float | None = Field(default=None, gt=0)
    max_guests: int | None = Field(default=None, gt=0)
    requires_approval: bool | None = None
    status: ListingStatus | None = None


class HousingFilters(GeoFilter):
    type: HousingType | None = None
    community_id: UUID | None = None
    accommodation_type: AccommodationType | None = None
    min_beds: int | None = Field(default=None, gt=0)
    check_in: AwareDatetime | None = None
    check_out: AwareDatetime | None = None
    is_free: bool | None = None


class HousingResponse(BaseModel):
    id: UUID
    host_id: UUID
    community_id: UUID | None
    type: HousingType
    accommodation_type: AccommodationType
    status: ListingStatus
    title: str
    description: str
    address: str
    lat: float | None
    lng: float | None
    beds: int
    bathrooms: int
    amenities: list[str]
    house_rules: list[str]
    images: list[str]
    available_from: datetime
    available_to: datetime | None
    min_nights: int
    max_nights: int | None
    exchange_type: ExchangeType
    price_per_night: float | None
    credits_per_night: int | None
    hours_per_night: float | None
    is_free: bool
    min_reputation: int
    requires_approval: bool
    max_guests: int
    community_insured: bool
    created_at: datetime
    host: UserSummary | None = None
    booking_count: int = 0
    distance_km: float | None = None

    model_config = {"from_attributes": True}


class HousingBookingRequest(BaseModel):
    """Request body for POST /housing/temporary/{housing_id}/book."""

    check_in: AwareDatetime
    check_out: AwareDatetime
    guests: int = Field(default=1, gt=0)
    message: str | None = Field(default=None, max_length=2000)


class HousingBookingResponse(BaseModel):
    id: UUID
    housing_id: UUID
    guest_id: UUID
    check_in: datetime
    check_out: datetime
    nights: int
    guests: int
    message: str | None
    status: BookingStatus
    paid_eur: float | None
    paid_credits: int | None
    paid_hours: float | None
    host_response: str | None
    host_rating: int | None
    host_review: str | None
    guest_rating: int | None
    guest_review: str | None
    approved_at: datetime | None
    checked_in_at: datetime | None
    completed_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class HostResponseRequest(BaseModel):
    """Request body for approving a housing booking."""

    response: str | None = Field(default=None, max_length=2000)


# ---------------------------------------------------------------------------
# Housing cooperatives
# ---------------------------------------------------------------------------

class CoopCreateRequest(BaseModel):
    """Request body for POST /housing/coops."""

    name: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=1, max_length=5000)
    vision: str | None = None
    images: list[str] = Field(default_factory=list)
    type: CoopType
    address: str | None = Field(default=None, max_length=255)
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    min_members: int = Field(default=5, gt=0)
    max_members: int | None = Field(default=None, gt=0)
    total_budget: float | None = Field(default=None, ge=0)
    monthly_contribution: float | None = Field(default=None, ge=0)
    governance: GovernanceType
    decision_threshold: float = Field(default=0.66, gt=0, le=1)
    shared_spaces: list[str] = Field(default_factory=list)
    community_rules: list[str] = Field(default_factory=list)
    target_move_in: AwareDatetime | None = None
    community_id: UUID | None = None


class CoopFilters(BaseModel):
    type: CoopType | None = None
    phase: CoopPhase | None = None
    open_to_members: bool | None = None


class CoopResponse(BaseModel):
    id: UUID
    founder_id: UUID
    community_id: UUID | None
    name: str
    description: str
    vision: str | None
    images: list[str]
    type: CoopType
    address: str | None
    lat: float | None
    lng: float | None
    min_members: int
    max_members: int | None
    current_members: int
    total_budget: float | None
    monthly_contribution: float | None
    governance: GovernanceType
    decision_threshold: float
    shared_spaces: list[str]
    community_rules: list[str]
    phase: CoopPhase
    status: CoopStatus
    target_move_in: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class CoopMemberResponse(BaseModel):
    id: UUID
    coop_id: UUID
    user_id: UUID
    role: CoopMemberRole
    status: MemberStatus
    application_message: str | None
    skills: list[str]
    commitment_level: str | None
    joined_at: datetime | None
    user: UserSummary | None = None

    model_config = {"from_attributes": True}


class CoopProposalResponse(BaseModel):
    id: UUID
    coop_id: UUID
    creator_id: UUID
    applicant_id: UUID | None
    type: CoopProposalType
    title: str
    description: str
    required_votes: int
    current_votes: int
    approved_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class CoopDetailResponse(CoopResponse):
    members: list[CoopMemberResponse] = Field(default_factory=list)
    open_proposals: list[CoopProposalResponse] = Field(default_factory=list)


class CoopJoinRequest(BaseModel):
    """Request body for POST /housing/coops/{coop_id}/join."""

    message: str | None = Field(default=None, max_length=2000)
    skills: list[str] = Field(default_factory=list)
    commitment_level: str | None = Field(default=None, max_length=50)


class CoopVoteRequest(BaseModel):
    """Request body for POST /housing/coops/proposals/{proposal_id}/vote."""

    points: int = Field(default=1, ge=1, le=10)
    decision: VoteDecision
    reason: str | None = Field(default=None, max_length=2000)


class CoopVoteResponse(BaseModel):
    id: UUID
    proposal_id: UUID
    voter_id: UUID
    points: int
    decision: VoteDecision
    reason: str | None
    proposal_approved: bool = False

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Community guarantee
# ---------------------------------------------------------------------------

class GuaranteeRequest(BaseModel):
    """Request body for POST /housing/guarantees."""

    landlord_name: str = Field(min_length=1, max_length=200)
    landlord_email: str | None = Field(default=None, max_length=255)
    landlord_phone: str | None = Field(default=None, max_length=50)
    property_address: str = Field(min_length=1, max_length=255)
    monthly_rent: float = Field(gt=0)
    coverage_months: int = Field(default=3, ge=1, le=24)
    community_id: UUID | None = None


class GuaranteeSupportRequest(BaseModel):
    """Request body for POST /housing/guarantees/{guarantee_id}/support."""

    months: int = Field(ge=1, le=24)
    amount: float = Field(gt=0)


class GuaranteeResponse(BaseModel):
    id: UUID
    user_id: UUID
    community_id: UUID | None
    landlord_name: str
    property_address: str
    monthly_rent: float
    coverage_months: int
    max_coverage: float
    reputation: int
    status: GuaranteeStatus
    fund_allocated: float | None
    activated_at: datetime | None
    expires_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class GuaranteeSupporterResponse(BaseModel):
    id: UUID
    guarantee_id: UUID
    supporter_id: UUID
    months_committed: int
    amount_committed: float
    status: SupportStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class GuaranteeSupportResponse(BaseModel):
    supporter: GuaranteeSupporterResponse
    guarantee: GuaranteeResponse
    total_committed: float


# ---------------------------------------------------------------------------
# Dashboards
# ---------------------------------------------------------------------------

class MyBookingsResponse(BaseModel):
    spaces: list[SpaceBookingResponse]
    housing: list[HousingBookingResponse]


class MyOfferingsResponse(BaseModel):
    spaces: list[SpaceResponse]
    housing: list[HousingResponse]


class SolutionFilters(BaseModel):
    solution_type: SolutionType | None = None
    community_id: UUID | None = None


class SolutionResponse(BaseModel):
    """One entry of the unified housing solutions listing."""

    id: UUID
    solution_type: SolutionType
    title: str
    description: str
    latitude: float | None
    longitude: float | None
    community_id: UUID | None
    created_at: datetime
