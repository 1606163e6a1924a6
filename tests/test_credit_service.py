"""
Tests for CreditService: earning rules, spending and the ledger.
"""

import uuid
from datetime import UTC, datetime

import pytest
from fastapi import HTTPException

from truk.models.credit import CreditReason
from truk.services.credit_service import CreditService, add_months, get_user_level


def test_user_levels():
    assert get_user_level(0).name == "Semilla"
    assert get_user_level(49).level == 1
    assert get_user_level(50).level == 2
    assert get_user_level(5000).name == "Líder"


def test_add_months_clamps_day():
    assert add_months(datetime(2024, 1, 31, tzinfo=UTC), 1) == datetime(2024, 2, 29, tzinfo=UTC)
    assert add_months(datetime(2024, 3, 15, tzinfo=UTC), -1) == datetime(2024, 2, 15, tzinfo=UTC)


class TestGrant:
    async def test_grant_updates_balance_and_ledger(self, db, make_user):
        user = await make_user()
        service = CreditService(db)

        result = await service.grant_credits(user.id, 3, CreditReason.event_attendance, related_id="e1")

        assert result.new_balance == 3
        assert result.amount == 3
        ledger = await service.get_transactions(user.id)
        assert ledger.total == 1
        assert ledger.transactions[0].expires_at is not None

    async def test_daily_limit(self, db, make_user):
        user = await make_user()
        service = CreditService(db)

        for i in range(5):
            await service.grant_credits(user.id, 3, CreditReason.event_attendance, related_id=f"e{i}")

        with pytest.raises(HTTPException) as exc:
            await service.grant_credits(user.id, 3, CreditReason.event_attendance, related_id="e5")
        assert exc.value.status_code == 400
        assert exc.value.detail["code"] == "DAILY_LIMIT_EXCEEDED"

    async def test_duplicate_related_id(self, db, make_user):
        user = await make_user()
        service = CreditService(db)
        await service.grant_credits(user.id, 2, CreditReason.eco_action, related_id="tree-1")

        with pytest.raises(HTTPException) as exc:
            await service.grant_credits(user.id, 2, CreditReason.eco_action, related_id="tree-1")
        assert exc.value.detail["code"] == "DUPLICATE_GRANT"

    async def test_unknown_user(self, db):
        with pytest.raises(HTTPException) as exc:
            await CreditService(db).grant_credits(uuid.uuid4(), 1, CreditReason.daily_seed)
        assert exc.value.status_code == 404

    async def test_level_up_is_reported(self, db, make_user):
        user = await make_user(credits=48)
        result = await CreditService(db).grant_credits(user.id, 2, CreditReason.community_help)
        assert result.leveled_up is True
        assert result.level.level == 2


class TestSpend:
    async def test_spend(self, db, make_user):
        user = await make_user(credits=10)
        result = await CreditService(db).spend_credits(user.id, 4, CreditReason.purchase)

        assert result.new_balance == 6
        await db.refresh(user)
        assert user.credits == 6

    async def test_insufficient_credits(self, db, make_user):
        user = await make_user(credits=2)
        with pytest.raises(HTTPException) as exc:
            await CreditService(db).spend_credits(user.id, 5, CreditReason.purchase)
        assert exc.value.status_code == 400
        assert exc.value.detail["code"] == "INSUFFICIENT_CREDITS"

    async def test_transfer_and_refund(self, db, make_user):
        payer = await make_user(credits=10)
        payee = await make_user()
        service = CreditService(db)

        await service.transfer_credits(payer.id, payee.id, 7, CreditReason.space_booking, related_id="b1")
        await db.refresh(payer)
        await db.refresh(payee)
        assert payer.credits == 3
        assert payee.credits == 7

        await service.refund_credits(payer.id, 7, related_id="b1")
        await db.refresh(payer)
        assert payer.credits == 10

        spending = await service.get_transactions(payer.id, kind="spending")
        assert [t.amount for t in spending.transactions] == [-7]


class TestQueries:
    async def test_balance_progress(self, db, make_user):
        user = await make_user(credits=100)
        balance = await CreditService(db).get_balance(user.id)

        assert balance.level.level == 2
        assert balance.next_level.level == 3
        assert balance.progress == pytest.approx(50.0)

    async def test_earning_stats(self, db, make_user):
        user = await make_user(credits=5)
        service = CreditService(db)
        await service.grant_credits(user.id, 2, CreditReason.eco_action)
        await service.spend_credits(user.id, 3, CreditReason.purchase)

        stats = await service.get_earning_stats(user.id)
        assert stats.today == 2
        assert stats.total_earned == 2
        assert stats.total_spent == 3

    async def test_leaderboard_orders_by_credits(self, db, make_user):
        await make_user(name="Low", credits=5)
        await make_user(name="High", credits=500)

        board = await CreditService(db).get_leaderboard(limit=2)
        assert [e.name for e in board] == ["High", "Low"]

    def test_opportunities_exclude_administrative_reasons(self):
        reasons = {o.reason for o in CreditService.get_earning_opportunities()}
        assert CreditReason.event_attendance in reasons
        assert CreditReason.refund not in reasons
        assert CreditReason.admin_grant not in reasons
