"""
Offer endpoints.

Marketplace listings: browse, detail, interest, owner updates.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from truk.core.database import get_db
from truk.core.dependencies import get_current_user, get_optional_user
from truk.core.guards import require_ownership, require_verified_email
from truk.models.offer import Offer
from truk.models.user import User
from truk.schemas.offer import (
    InterestToggleResponse,
    OfferCreateRequest,
    OfferFilters,
    OfferResponse,
    OfferUpdateRequest,
)
from truk.services.offer_service import OfferService

router = APIRouter()


def get_offer_service(db: AsyncSession = Depends(get_db)) -> OfferService:
    return OfferService(db=db)


# ---------------------------------------------------------------------------
# Browse
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=OfferResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Publish an offer",
)
async def create_offer(
    data: OfferCreateRequest,
    current_user: User = Depends(require_verified_email),
    service: OfferService = Depends(get_offer_service),
) -> OfferResponse:
    return await service.create(current_user, data)


@router.get("", response_model=list[OfferResponse], summary="List active offers")
async def list_offers(
    filters: Annotated[OfferFilters, Query()],
    service: OfferService = Depends(get_offer_service),
) -> list[OfferResponse]:
    """Newest first. near_lat/near_lng/max_distance restrict to a radius in km."""
    return await service.find_all(filters)


@router.get("/me", response_model=list[OfferResponse], summary="My offers")
async def my_offers(
    current_user: User = Depends(get_current_user),
    service: OfferService = Depends(get_offer_service),
) -> list[OfferResponse]:
    return await service.find_user_offers(current_user.id)


@router.get("/{offer_id}", response_model=OfferResponse, summary="Offer detail")
async def get_offer(
    offer_id: UUID,
    viewer: User | None = Depends(get_optional_user),
    service: OfferService = Depends(get_offer_service),
) -> OfferResponse:
    return await service.find_one(offer_id, viewer)


@router.post(
    "/{offer_id}/interest",
    response_model=InterestToggleResponse,
    summary="Toggle interest in an offer",
)
async def toggle_interest(
    offer_id: UUID,
    current_user: User = Depends(get_current_user),
    service: OfferService = Depends(get_offer_service),
) -> InterestToggleResponse:
    return await service.toggle_interest(offer_id, current_user)


# ---------------------------------------------------------------------------
# Owner operations
# ---------------------------------------------------------------------------

@router.patch("/{offer_id}", response_model=OfferResponse, summary="Update an offer")
async def update_offer(
    data: OfferUpdateRequest,
    offer: Offer = Depends(require_ownership("offer")),
    service: OfferService = Depends(get_offer_service),
) -> OfferResponse:
    return await service.update(offer, data)


@router.delete("/{offer_id}", response_model=OfferResponse, summary="Cancel an offer")
async def delete_offer(
    offer: Offer = Depends(require_ownership("offer")),
    service: OfferService = Depends(get_offer_service),
) -> OfferResponse:
    return await service.delete(offer)
