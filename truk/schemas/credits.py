"""
Credit schemas.

Request/response models for balances, ledger, leaderboard and economy
progression endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from truk.models.credit import CreditReason
from truk.models.user import EconomyTier


class LevelResponse(BaseModel):
    level: int
    name: str
    min_credits: int
    badge: str


class CreditGrantResponse(BaseModel):
    """Result of granting credits to a user."""

    new_balance: int
    amount: int
    level: LevelResponse
    leveled_up: bool
    transaction_id: UUID


class CreditSpendResponse(BaseModel):
    new_balance: int
    spent: int
    transaction_id: UUID


class BalanceResponse(BaseModel):
    """Response for GET /credits/balance."""

    balance: int
    level: LevelResponse
    next_level: LevelResponse | None
    progress: float = Field(description="Percent progress towards the next level")


class CreditTransactionResponse(BaseModel):
    id: UUID
    amount: int
    balance: int
    reason: CreditReason
    related_id: str | None
    description: str | None
    expires_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class CreditTransactionListResponse(BaseModel):
    transactions: list[CreditTransactionResponse]
    total: int
    limit: int
    offset: int


class EarningStatsResponse(BaseModel):
    today: int
    week: int
    month: int
    total_earned: int
    total_spent: int


class EarningOpportunity(BaseModel):
    reason: CreditReason
    amount: int
    daily_limit: int | None
    description: str


class LeaderboardEntry(BaseModel):
    id: UUID
    name: str
    avatar_url: str | None
    credits: int
    level: LevelResponse


class AdminGrantRequest(BaseModel):
    """Request body for POST /credits/grant (admins only)."""

    user_id: UUID
    amount: int = Field(gt=0, le=10_000)
    description: str | None = Field(default=None, max_length=255)


# ---------------------------------------------------------------------------
# Economy progression
# ---------------------------------------------------------------------------

class UnlockCondition(BaseModel):
    type: Literal["transactions", "days", "credit_transactions"]
    threshold: int
    current: int
    met: bool
    description: str


class EconomyProgressionResponse(BaseModel):
    """Response for GET /credits/economy."""

    tier: EconomyTier
    features: list[str]
    transactions: int
    credit_transactions: int
    days_active: int
    days_in_tier: int
    next_tier: EconomyTier | None
    conditions: list[UnlockCondition]
    can_unlock: bool


class RecordTransactionRequest(BaseModel):
    """Request body for POST /credits/economy/transactions."""

    used_credits: bool = False


class RecordTransactionResponse(BaseModel):
    progression: EconomyProgressionResponse
    unlocked: EconomyTier | None = None


class FeatureCheckResponse(BaseModel):
    feature: str
    unlocked: bool
    tier: EconomyTier
