"""
Credit and economy endpoints.

Balance, ledger, earning stats, leaderboard, admin grants and the
economic layer progression.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from truk.core.database import get_db
from truk.core.dependencies import get_current_user
from truk.core.guards import require_role
from truk.models.credit import CreditReason
from truk.models.user import User, UserRole
from truk.schemas.credits import (
    AdminGrantRequest,
    BalanceResponse,
    CreditGrantResponse,
    CreditTransactionListResponse,
    EarningOpportunity,
    EarningStatsResponse,
    EconomyProgressionResponse,
    FeatureCheckResponse,
    LeaderboardEntry,
    RecordTransactionRequest,
    RecordTransactionResponse,
)
from truk.services.credit_service import CreditService
from truk.services.economy_service import EconomyService

router = APIRouter()


def get_credit_service(db: AsyncSession = Depends(get_db)) -> CreditService:
    return CreditService(db=db)


def get_economy_service(db: AsyncSession = Depends(get_db)) -> EconomyService:
    return EconomyService(db=db)


# ---------------------------------------------------------------------------
# Balance & ledger
# ---------------------------------------------------------------------------

@router.get("/balance", response_model=BalanceResponse, summary="Current balance and level")
async def get_balance(
    current_user: User = Depends(get_current_user),
    service: CreditService = Depends(get_credit_service),
) -> BalanceResponse:
    return await service.get_balance(current_user.id)


@router.get(
    "/transactions",
    response_model=CreditTransactionListResponse,
    summary="Credit ledger, newest first",
)
async def get_transactions(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    kind: Literal["earning", "spending"] | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    service: CreditService = Depends(get_credit_service),
) -> CreditTransactionListResponse:
    return await service.get_transactions(current_user.id, limit=limit, offset=offset, kind=kind)


@router.get("/stats", response_model=EarningStatsResponse, summary="Earnings by period")
async def get_earning_stats(
    current_user: User = Depends(get_current_user),
    service: CreditService = Depends(get_credit_service),
) -> EarningStatsResponse:
    return await service.get_earning_stats(current_user.id)


@router.get(
    "/opportunities",
    response_model=list[EarningOpportunity],
    summary="Ways to earn credits",
)
async def get_earning_opportunities() -> list[EarningOpportunity]:
    return CreditService.get_earning_opportunities()


@router.get("/leaderboard", response_model=list[LeaderboardEntry], summary="Top credit holders")
async def get_leaderboard(
    limit: int = Query(default=10, ge=1, le=100),
    service: CreditService = Depends(get_credit_service),
) -> list[LeaderboardEntry]:
    return await service.get_leaderboard(limit)


@router.post(
    "/grant",
    response_model=CreditGrantResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Grant credits to a user (admins only)",
)
async def admin_grant(
    data: AdminGrantRequest,
    admin: User = Depends(require_role(UserRole.admin)),
    service: CreditService = Depends(get_credit_service),
) -> CreditGrantResponse:
    return await service.grant_credits(
        data.user_id,
        data.amount,
        CreditReason.admin_grant,
        description=data.description or f"Granted by {admin.name}",
    )


# ---------------------------------------------------------------------------
# Economic layers
# ---------------------------------------------------------------------------

@router.get(
    "/economy",
    response_model=EconomyProgressionResponse,
    summary="Economic layer progression",
)
async def get_progression(
    current_user: User = Depends(get_current_user),
    service: EconomyService = Depends(get_economy_service),
) -> EconomyProgressionResponse:
    return await service.get_progression(current_user)


@router.post(
    "/economy/transactions",
    response_model=RecordTransactionResponse,
    summary="Count a completed transaction",
)
async def record_transaction(
    data: RecordTransactionRequest,
    current_user: User = Depends(get_current_user),
    service: EconomyService = Depends(get_economy_service),
) -> RecordTransactionResponse:
    return await service.record_transaction(current_user, used_credits=data.used_credits)


@router.post(
    "/economy/unlock",
    response_model=EconomyProgressionResponse,
    summary="Unlock the next economic layer",
)
async def unlock_next_tier(
    current_user: User = Depends(get_current_user),
    service: EconomyService = Depends(get_economy_service),
) -> EconomyProgressionResponse:
    return await service.unlock_next_tier(current_user)


@router.get(
    "/economy/features/{feature}",
    response_model=FeatureCheckResponse,
    summary="Whether a feature is unlocked for the caller",
)
async def is_feature_unlocked(
    feature: str,
    current_user: User = Depends(get_current_user),
    service: EconomyService = Depends(get_economy_service),
) -> FeatureCheckResponse:
    return await service.is_feature_unlocked(current_user, feature)
