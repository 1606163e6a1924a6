"""
Credit business logic.

Earning rules, daily limits, levels and the signed credit ledger.
Balance changes are single UPDATE statements so concurrent requests
cannot overdraw an account.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from truk.core.config import settings
from truk.models.credit import CreditReason, CreditTransaction
from truk.models.user import User
from truk.schemas.credits import (
    BalanceResponse,
    CreditGrantResponse,
    CreditSpendResponse,
    CreditTransactionListResponse,
    CreditTransactionResponse,
    EarningOpportunity,
    EarningStatsResponse,
    LeaderboardEntry,
    LevelResponse,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EarningRule:
    amount: int
    description: str
    daily_limit: int | None = None


EARNING_RULES: dict[CreditReason, EarningRule] = {
    CreditReason.time_bank_hour: EarningRule(1, "Completed time bank hour"),
    CreditReason.event_attendance: EarningRule(3, "Event attendance", daily_limit=15),
    CreditReason.local_purchase: EarningRule(1, "Local purchase (1 credit per 10 EUR)", daily_limit=20),
    CreditReason.referral: EarningRule(5, "Verified referral", daily_limit=20),
    CreditReason.eco_action: EarningRule(2, "Verified eco action", daily_limit=10),
    CreditReason.offer_created: EarningRule(2, "Offer published", daily_limit=6),
    CreditReason.review: EarningRule(1, "Review published", daily_limit=10),
    CreditReason.community_help: EarningRule(2, "Community help"),
    CreditReason.daily_seed: EarningRule(1, "Daily seed"),
    CreditReason.support_post: EarningRule(1, "Supported a post", daily_limit=5),
    CreditReason.space_booking: EarningRule(0, "Space booking"),
    CreditReason.housing_booking: EarningRule(0, "Housing booking"),
    CreditReason.mutual_aid: EarningRule(0, "Mutual aid contribution"),
    CreditReason.refund: EarningRule(0, "Refund"),
    CreditReason.admin_grant: EarningRule(0, "Granted by an administrator"),
    CreditReason.purchase: EarningRule(0, "Purchase with credits"),
}


USER_LEVELS: list[LevelResponse] = [
    LevelResponse(level=1, name="Semilla", min_credits=0, badge="🌱"),
    LevelResponse(level=2, name="Brote", min_credits=50, badge="🌿"),
    LevelResponse(level=3, name="Colaborador", min_credits=150, badge="🌳"),
    LevelResponse(level=4, name="Conector", min_credits=300, badge="🤝"),
    LevelResponse(level=5, name="Impulsor", min_credits=500, badge="⭐"),
    LevelResponse(level=6, name="Líder", min_credits=1000, badge="👑"),
]


def get_user_level(credits: int) -> LevelResponse:
    """Highest level whose threshold ``credits`` reaches."""
    for level in reversed(USER_LEVELS):
        if credits >= level.min_credits:
            return level
    return USER_LEVELS[0]


def get_next_level(level: LevelResponse) -> LevelResponse | None:
    return next((lv for lv in USER_LEVELS if lv.level == level.level + 1), None)


def add_months(moment: datetime, months: int) -> datetime:
    """Same day ``months`` later, clamped to the end of shorter months."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


class CreditService:
    """Handles all credit operations."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # -----------------------------------------------------------------------
    # Grant
    # -----------------------------------------------------------------------

    async def grant_credits(
        self,
        user_id: UUID,
        amount: int,
        reason: CreditReason,
        related_id: str | None = None,
        description: str | None = None,
    ) -> CreditGrantResponse:
        """
        Credit an earning to a user.

        - 404 if the user does not exist
        - 400 if the reason's daily limit would be exceeded
        - 400 if the same (reason, related_id) was already rewarded
        """
        user = await self.db.get(User, user_id)
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "USER_NOT_FOUND", "message": "User not found"},
            )

        rule = EARNING_RULES[reason]
        if rule.daily_limit is not None:
            earned_today = await self._earned_today(user_id, reason)
            if earned_today + amount > rule.daily_limit:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail={
                        "code": "DAILY_LIMIT_EXCEEDED",
                        "message": (
                            f"Daily limit exceeded for {rule.description}. "
                            f"Limit: {rule.daily_limit} credits/day"
                        ),
                    },
                )

        if related_id is not None:
            duplicate = await self.db.scalar(
                select(CreditTransaction.id).where(
                    CreditTransaction.user_id == user_id,
                    CreditTransaction.reason == reason,
                    CreditTransaction.related_id == related_id,
                    CreditTransaction.amount > 0,
                )
            )
            if duplicate is not None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail={
                        "code": "DUPLICATE_GRANT",
                        "message": "Credits already granted for this action",
                    },
                )

        old_level = get_user_level(user.credits)
        expires_at = add_months(datetime.now(UTC), settings.CREDIT_EXPIRY_MONTHS)
        transaction = await self._apply(
            user_id, amount, reason, related_id, description or rule.description, expires_at
        )
        new_level = get_user_level(transaction.balance)

        if new_level.level > old_level.level:
            logger.info("User %s reached level %s", user_id, new_level.name)

        return CreditGrantResponse(
            new_balance=transaction.balance,
            amount=amount,
            level=new_level,
            leveled_up=new_level.level > old_level.level,
            transaction_id=transaction.id,
        )

    # -----------------------------------------------------------------------
    # Spend / transfer / refund
    # -----------------------------------------------------------------------

    async def spend_credits(
        self,
        user_id: UUID,
        amount: int,
        reason: CreditReason,
        related_id: str | None = None,
        description: str | None = None,
    ) -> CreditSpendResponse:
        """Debit credits. 400 if the balance does not cover ``amount``."""
        new_balance = await self.db.scalar(
            update(User)
            .where(User.id == user_id, User.credits >= amount)
            .values(credits=User.credits - amount)
            .returning(User.credits)
        )
        if new_balance is None:
            user = await self.db.get(User, user_id)
            if user is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail={"code": "USER_NOT_FOUND", "message": "User not found"},
                )
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "code": "INSUFFICIENT_CREDITS",
                    "message": f"Insufficient credits. Balance: {user.credits}, Required: {amount}",
                },
            )

        transaction = CreditTransaction(
            user_id=user_id,
            amount=-amount,
            balance=new_balance,
            reason=reason,
            related_id=related_id,
            description=description or f"Credits spent: {reason.value}",
        )
        self.db.add(transaction)
        await self.db.flush()

        return CreditSpendResponse(new_balance=new_balance, spent=amount, transaction_id=transaction.id)

    async def transfer_credits(
        self,
        from_user_id: UUID,
        to_user_id: UUID,
        amount: int,
        reason: CreditReason,
        related_id: str | None = None,
        description: str | None = None,
    ) -> None:
        """Move credits between two users inside the current transaction."""
        if amount <= 0:
            return
        await self.spend_credits(from_user_id, amount, reason, related_id, description)
        await self._apply(to_user_id, amount, reason, related_id, description, expires_at=None)

    async def refund_credits(
        self, user_id: UUID, amount: int, related_id: str | None = None, description: str | None = None
    ) -> None:
        """Give back credits previously spent; no earning rules apply."""
        if amount <= 0:
            return
        await self._apply(user_id, amount, CreditReason.refund, related_id, description, expires_at=None)

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    async def get_balance(self, user_id: UUID) -> BalanceResponse:
        user = await self.db.get(User, user_id)
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "USER_NOT_FOUND", "message": "User not found"},
            )

        level = get_user_level(user.credits)
        next_level = get_next_level(level)
        if next_level is None:
            progress = 100.0
        else:
            span = next_level.min_credits - level.min_credits
            progress = (user.credits - level.min_credits) / span * 100

        return BalanceResponse(
            balance=user.credits, level=level, next_level=next_level, progress=progress
        )

    async def get_transactions(
        self,
        user_id: UUID,
        limit: int = 50,
        offset: int = 0,
        kind: str | None = None,
    ) -> CreditTransactionListResponse:
        """Paginated ledger, newest first. ``kind`` is 'earning' or 'spending'."""
        stmt = select(CreditTransaction).where(CreditTransaction.user_id == user_id)
        if kind == "earning":
            stmt = stmt.where(CreditTransaction.amount > 0)
        elif kind == "spending":
            stmt = stmt.where(CreditTransaction.amount < 0)

        total = await self.db.scalar(select(func.count()).select_from(stmt.subquery()))
        rows = await self.db.scalars(
            stmt.order_by(CreditTransaction.created_at.desc()).limit(limit).offset(offset)
        )

        return CreditTransactionListResponse(
            transactions=[CreditTransactionResponse.model_validate(t) for t in rows],
            total=total or 0,
            limit=limit,
            offset=offset,
        )

    async def get_earning_stats(self, user_id: UUID) -> EarningStatsResponse:
        today = start_of_day(datetime.now(UTC))

        async def earned_since(since: datetime | None) -> int:
            stmt = select(func.coalesce(func.sum(CreditTransaction.amount), 0)).where(
                CreditTransaction.user_id == user_id, CreditTransaction.amount > 0
            )
            if since is not None:
                stmt = stmt.where(CreditTransaction.created_at >= since)
            return int(await self.db.scalar(stmt) or 0)

        spent = await self.db.scalar(
            select(func.coalesce(func.sum(CreditTransaction.amount), 0)).where(
                CreditTransaction.user_id == user_id, CreditTransaction.amount < 0
            )
        )

        return EarningStatsResponse(
            today=await earned_since(today),
            week=await earned_since(today - timedelta(days=7)),
            month=await earned_since(add_months(today, -1)),
            total_earned=await earned_since(None),
            total_spent=abs(int(spent or 0)),
        )

    @staticmethod
    def get_earning_opportunities() -> list[EarningOpportunity]:
        return [
            EarningOpportunity(
                reason=reason,
                amount=rule.amount,
                daily_limit=rule.daily_limit,
                description=rule.description,
            )
            for reason, rule in EARNING_RULES.items()
            if rule.amount > 0
        ]

    async def get_leaderboard(self, limit: int = 10) -> list[LeaderboardEntry]:
        users = await self.db.scalars(
            select(User).where(User.is_active.is_(True)).order_by(User.credits.desc()).limit(limit)
        )
        return [
            LeaderboardEntry(
                id=u.id,
                name=u.name,
                avatar_url=u.avatar_url,
                credits=u.credits,
                level=get_user_level(u.credits),
            )
            for u in users
        ]

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _earned_today(self, user_id: UUID, reason: CreditReason) -> int:
        total = await self.db.scalar(
            select(func.coalesce(func.sum(CreditTransaction.amount), 0)).where(
                CreditTransaction.user_id == user_id,
                CreditTransaction.reason == reason,
                CreditTransaction.amount > 0,
                CreditTransaction.created_at >= start_of_day(datetime.now(UTC)),
            )
        )
        return int(total or 0)

    async def _apply(
        self,
        user_id: UUID,
        amount: int,
        reason: CreditReason,
        related_id: str | None,
        description: str | None,
        expires_at: datetime | None,
    ) -> CreditTransaction:
        """Increment the balance and write the matching ledger row."""
        new_balance = await self.db.scalar(
            update(User)
            .where(User.id == user_id)
            .values(credits=User.credits + amount)
            .returning(User.credits)
        )
        if new_balance is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "USER_NOT_FOUND", "message": "User not found"},
            )

        transaction = CreditTransaction(
            user_id=user_id,
            amount=amount,
            balance=new_balance,
            reason=reason,
            related_id=related_id,
            description=description,
            expires_at=expires_at,
        )
        self.db.add(transaction)
        await self.db.flush()
        return transaction
