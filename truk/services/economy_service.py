"""
Economic layer progression.

Members start on EUR-only features and unlock credits, then time banking,
as they transact. Progress is stored on the user row.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from truk.models.user import EconomyTier, User
from truk.schemas.credits import (
    EconomyProgressionResponse,
    FeatureCheckResponse,
    RecordTransactionResponse,
    UnlockCondition,
)

logger = logging.getLogger(__name__)

TIER_ORDER = [EconomyTier.basic, EconomyTier.intermediate, EconomyTier.advanced]

_BASIC_FEATURES = ["eur_payments", "eur_offers"]
_INTERMEDIATE_FEATURES = _BASIC_FEATURES + [
    "credits_balance",
    "credits_payments",
    "credits_offers",
    "credits_filter",
    "credits_earn",
]
_ADVANCED_FEATURES = _INTERMEDIATE_FEATURES + [
    "timebank_balance",
    "timebank_offers",
    "timebank_transactions",
    "timebank_filter",
    "timebank_create",
]

TIER_FEATURES: dict[EconomyTier, list[str]] = {
    EconomyTier.basic: _BASIC_FEATURES,
    EconomyTier.intermediate: _INTERMEDIATE_FEATURES,
    EconomyTier.advanced: _ADVANCED_FEATURES,
}


def next_tier(tier: EconomyTier) -> EconomyTier | None:
    index = TIER_ORDER.index(tier)
    return TIER_ORDER[index + 1] if index + 1 < len(TIER_ORDER) else None


def _days_between(start: datetime | None, end: datetime) -> int:
    if start is None:
        return 0
    return max((end - start).days, 0)


def unlock_conditions(user: User, now: datetime) -> list[UnlockCondition]:
    """
    Conditions for leaving the user's current tier; any one is enough.

    basic -> intermediate: first transaction, or 3 days since sign-up.
    intermediate -> advanced: 5 credit transactions, 14 days in the
    intermediate tier, or 10 transactions overall.
    """
    tier = user.economy_tier or EconomyTier.basic

    if tier == EconomyTier.basic:
        days_active = _days_between(user.created_at, now)
        return [
            UnlockCondition(
                type="transactions",
                threshold=1,
                current=user.economy_transactions,
                met=user.economy_transactions >= 1,
                description="First successful transaction",
            ),
            UnlockCondition(
                type="days",
                threshold=3,
                current=days_active,
                met=days_active >= 3,
                description="3 days of activity",
            ),
        ]

    if tier == EconomyTier.intermediate:
        days_in_tier = _days_between(user.intermediate_unlocked_at, now)
        return [
            UnlockCondition(
                type="credit_transactions",
                threshold=5,
                current=user.economy_credit_transactions,
                met=user.economy_credit_transactions >= 5,
                description="5 transactions paid with credits",
            ),
            UnlockCondition(
                type="days",
                threshold=14,
                current=days_in_tier,
                met=days_in_tier >= 14,
                description="2 weeks in the intermediate tier",
            ),
            UnlockCondition(
                type="transactions",
                threshold=10,
                current=user.economy_transactions,
                met=user.economy_transactions >= 10,
                description="10 transactions in total",
            ),
        ]

    return []


class EconomyService:
    """Reads and advances a user's economic layer."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_progression(self, user: User) -> EconomyProgressionResponse:
        await self._ensure_initialized(user)
        return self._build(user, datetime.now(UTC))

    async def record_transaction(self, user: User, used_credits: bool = False) -> RecordTransactionResponse:
        """Count a completed transaction and unlock the next tier when earned."""
        await self._ensure_initialized(user)

        user.economy_transactions += 1
        if used_credits:
            user.economy_credit_transactions += 1

        unlocked = None
        now = datetime.now(UTC)
        if any(c.met for c in unlock_conditions(user, now)):
            unlocked = self._advance(user, now)

        await self.db.flush()
        return RecordTransactionResponse(progression=self._build(user, now), unlocked=unlocked)

    async def unlock_next_tier(self, user: User) -> EconomyProgressionResponse:
        """User-initiated unlock. 400 when already on the last tier."""
        await self._ensure_initialized(user)

        now = datetime.now(UTC)
        if self._advance(user, now) is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "MAX_TIER_REACHED", "message": "All economic layers are already unlocked"},
            )

        await self.db.flush()
        return self._build(user, now)

    async def is_feature_unlocked(self, user: User, feature: str) -> FeatureCheckResponse:
        await self._ensure_initialized(user)
        tier = user.economy_tier or EconomyTier.basic
        return FeatureCheckResponse(feature=feature, unlocked=feature in TIER_FEATURES[tier], tier=tier)

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _ensure_initialized(self, user: User) -> None:
        """First read: members who already hold credits skip straight to advanced."""
        if user.economy_tier is not None:
            return

        if user.credits > 0:
            now = datetime.now(UTC)
            user.economy_tier = EconomyTier.advanced
            user.intermediate_unlocked_at = now
            user.advanced_unlocked_at = now
            user.economy_transactions = max(user.economy_transactions, 10)
            user.economy_credit_transactions = max(user.economy_credit_transactions, 5)
        else:
            user.economy_tier = EconomyTier.basic

        await self.db.flush()

    def _advance(self, user: User, now: datetime) -> EconomyTier | None:
        target = next_tier(user.economy_tier or EconomyTier.basic)
        if target is None:
            return None

        user.economy_tier = target
        if target == EconomyTier.intermediate:
            user.intermediate_unlocked_at = now
        else:
            user.advanced_unlocked_at = now

        logger.info("User %s unlocked the %s economic layer", user.id, target.value)
        return target

    def _build(self, user: User, now: datetime) -> EconomyProgressionResponse:
        tier = user.economy_tier or EconomyTier.basic
        conditions = unlock_conditions(user, now)
        tier_started = {
            EconomyTier.basic: user.created_at,
            EconomyTier.intermediate: user.intermediate_unlocked_at,
            EconomyTier.advanced: user.advanced_unlocked_at,
        }[tier]

        return EconomyProgressionResponse(
            tier=tier,
            features=TIER_FEATURES[tier],
            transactions=user.economy_transactions,
            credit_transactions=user.economy_credit_transactions,
            days_active=_days_between(user.created_at, now),
            days_in_tier=_days_between(tier_started, now),
            next_tier=next_tier(tier),
            conditions=conditions,
            can_unlock=any(c.met for c in conditions),
        )
