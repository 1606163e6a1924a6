"""
Offer schemas.

Request/response models for marketplace offer endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from truk.models.offer import OfferStatus, OfferType
from truk.schemas.auth import UserSummary


class OfferCreateRequest(BaseModel):
    """Request body for POST /offers."""

    type: OfferType
    category: str = Field(min_length=1, max_length=50)
    title: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=1, max_length=5000)
    images: list[str] = Field(default_factory=list)
    price_eur: float | None = Field(default=None, ge=0)
    price_credits: int | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    address: str | None = Field(default=None, max_length=255)
    tags: list[str] = Field(default_factory=list)
    community_id: UUID | None = None


class OfferUpdateRequest(BaseModel):
    """Request body for PATCH /offers/{offer_id}."""

    category: str | None = Field(default=None, min_length=1, max_length=50)
    title: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = Field(default=None, min_length=1, max_length=5000)
    images: list[str] | None = None
    price_eur: float | None = Field(default=None, ge=0)
    price_credits: int | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    address: str | None = Field(default=None, max_length=255)
    tags: list[str] | None = None
    status: OfferStatus | None = None


class OfferFilters(BaseModel):
    """Query filters for GET /offers."""

    type: OfferType | None = None
    category: str | None = None
    community_id: UUID | None = None
    near_lat: float | None = Field(default=None, ge=-90, le=90)
    near_lng: float | None = Field(default=None, ge=-180, le=180)
    max_distance: float | None = Field(default=None, gt=0, description="Kilometres")

    # Short names accepted by older clients
    lat: float | None = Field(default=None, ge=-90, le=90, exclude=True)
    lng: float | None = Field(default=None, ge=-180, le=180, exclude=True)
    radius: float | None = Field(default=None, gt=0, exclude=True)

    @model_validator(mode="after")
    def apply_short_names(self) -> "OfferFilters":
        if self.near_lat is None:
            self.near_lat = self.lat
        if self.near_lng is None:
            self.near_lng = self.lng
        if self.max_distance is None:
            self.max_distance = self.radius
        return self


class OfferResponse(BaseModel):
    id: UUID
    user_id: UUID
    community_id: UUID | None
    type: OfferType
    status: OfferStatus
    category: str
    title: str
    description: str
    images: list[str]
    price_eur: float | None
    price_credits: int | None
    stock: int | None
    lat: float | None
    lng: float | None
    address: str | None
    tags: list[str]
    views: int
    interested: int
    featured: bool
    created_at: datetime
    updated_at: datetime
    user: UserSummary | None = None
    distance_km: float | None = None
    user_is_interested: bool | None = None

    model_config = {"from_attributes": True}


class InterestToggleResponse(BaseModel):
    interested: bool
