"""
Offer business logic.

Marketplace listings: create, browse with proximity search, interest
toggling, owner updates and soft deletion.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from truk.core.config import settings
from truk.core.geo import bounding_box, haversine_km
from truk.models.offer import Offer, OfferInterest, OfferStatus
from truk.models.user import User
from truk.schemas.auth import UserSummary
from truk.schemas.offer import (
    InterestToggleResponse,
    OfferCreateRequest,
    OfferFilters,
    OfferResponse,
    OfferUpdateRequest,
)

logger = logging.getLogger(__name__)


def _to_response(offer: Offer, owner: User | None = None) -> OfferResponse:
    response = OfferResponse.model_validate(offer)
    if owner is not None:
        response.user = UserSummary.model_validate(owner)
    return response


class OfferService:
    """Handles all offer operations."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # -----------------------------------------------------------------------
    # Create
    # -----------------------------------------------------------------------

    async def create(self, user: User, data: OfferCreateRequest) -> OfferResponse:
        offer = Offer(user_id=user.id, status=OfferStatus.active, **data.model_dump())
        self.db.add(offer)
        await self.db.flush()

        logger.info("Offer %s created by %s", offer.id, user.id)
        return _to_response(offer, user)

    # -----------------------------------------------------------------------
    # Browse
    # -----------------------------------------------------------------------

    async def find_all(self, filters: OfferFilters) -> list[OfferResponse]:
        """
        Active offers, newest first.

        With near_lat/near_lng/max_distance, only offers with coordinates
        inside the radius are returned, annotated with their distance.
        """
        stmt = (
            select(Offer, User)
            .join(User, Offer.user_id == User.id)
            .where(Offer.status == OfferStatus.active)
        )
        if filters.type is not None:
            stmt = stmt.where(Offer.type == filters.type)
        if filters.category:
            stmt = stmt.where(Offer.category == filters.category)
        if filters.community_id is not None:
            stmt = stmt.where(Offer.community_id == filters.community_id)

        proximity = (
            filters.near_lat is not None
            and filters.near_lng is not None
            and filters.max_distance is not None
        )
        if proximity:
            min_lat, max_lat, min_lng, max_lng = bounding_box(
                filters.near_lat, filters.near_lng, filters.max_distance
            )
            stmt = stmt.where(
                Offer.lat.is_not(None),
                Offer.lng.is_not(None),
                Offer.lat.between(min_lat, max_lat),
                Offer.lng.between(min_lng, max_lng),
            )

        rows = await self.db.execute(stmt.order_by(Offer.created_at.desc()))

        results = []
        for offer, owner in rows.all():
            response = _to_response(offer, owner)
            if proximity:
                distance = haversine_km(filters.near_lat, filters.near_lng, offer.lat, offer.lng)
                if distance > filters.max_distance:
                    continue
                response.distance_km = round(distance, 2)
            results.append(response)
        return results

    # -----------------------------------------------------------------------
    # Detail
    # -----------------------------------------------------------------------

    async def find_one(self, offer_id: UUID, viewer: User | None = None) -> OfferResponse:
        """Offer detail. Counts a view and reports whether the viewer is interested."""
        offer = await self._get_offer(offer_id)
        offer.views += 1
        await self.db.flush()

        owner = await self.db.get(User, offer.user_id)
        response = _to_response(offer, owner)

        if viewer is not None:
            response.user_is_interested = await self._get_interest(offer.id, viewer.id) is not None
        return response

    # -----------------------------------------------------------------------
    # Interest
    # -----------------------------------------------------------------------

    async def toggle_interest(self, offer_id: UUID, user: User) -> InterestToggleResponse:
        """Flip the caller's interest; the owner is emailed when someone new is interested."""
        offer = await self._get_offer(offer_id)
        existing = await self._get_interest(offer.id, user.id)

        if existing is not None:
            await self.db.delete(existing)
            offer.interested = max(offer.interested - 1, 0)
            await self.db.flush()
            return InterestToggleResponse(interested=False)

        self.db.add(OfferInterest(offer_id=offer.id, user_id=user.id))
        offer.interested += 1
        await self.db.flush()

        if offer.user_id != user.id:
            owner = await self.db.get(User, offer.user_id)
            if owner is not None:
                from truk.workers.email_tasks import queue_email, send_offer_interest_email

                queue_email(
                    send_offer_interest_email,
                    to_email=owner.email,
                    owner_name=owner.name,
                    interested_name=user.name,
                    offer_title=offer.title,
                    offer_id=str(offer.id),
                    frontend_url=settings.FRONTEND_URL,
                )

        return InterestToggleResponse(interested=True)

    # -----------------------------------------------------------------------
    # Owner operations
    # -----------------------------------------------------------------------

    async def update(self, offer: Offer, data: OfferUpdateRequest) -> OfferResponse:
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(offer, field, value)
        await self.db.flush()
        return _to_response(offer)

    async def delete(self, offer: Offer) -> OfferResponse:
        """Soft delete: the offer is kept as cancelled."""
        offer.status = OfferStatus.cancelled
        await self.db.flush()
        return _to_response(offer)

    async def find_user_offers(self, user_id: UUID) -> list[OfferResponse]:
        offers = await self.db.scalars(
            select(Offer)
            .where(Offer.user_id == user_id, Offer.status != OfferStatus.cancelled)
            .order_by(Offer.created_at.desc())
        )
        return [_to_response(o) for o in offers]

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _get_offer(self, offer_id: UUID) -> Offer:
        offer = await self.db.get(Offer, offer_id)
        if offer is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "OFFER_NOT_FOUND", "message": "Offer not found"},
            )
        return offer

    async def _get_interest(self, offer_id: UUID, user_id: UUID) -> OfferInterest | None:
        return await self.db.scalar(
            select(OfferInterest).where(
                OfferInterest.offer_id == offer_id, OfferInterest.user_id == user_id
            )
        )
