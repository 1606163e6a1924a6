"""
Tests for EconomyService tier progression.
"""

import pytest
from fastapi import HTTPException

from truk.models.user import EconomyTier
from truk.services.economy_service import EconomyService, next_tier


def test_next_tier():
    assert next_tier(EconomyTier.basic) == EconomyTier.intermediate
    assert next_tier(EconomyTier.advanced) is None


async def test_new_member_starts_basic(db, make_user):
    user = await make_user()
    progression = await EconomyService(db).get_progression(user)

    assert progression.tier == EconomyTier.basic
    assert progression.features == ["eur_payments", "eur_offers"]
    assert progression.can_unlock is False


async def test_member_with_credits_starts_advanced(db, make_user):
    user = await make_user(credits=20)
    progression = await EconomyService(db).get_progression(user)

    assert progression.tier == EconomyTier.advanced
    assert progression.next_tier is None
    assert user.economy_transactions == 10


async def test_first_transaction_unlocks_intermediate(db, make_user):
    user = await make_user()
    result = await EconomyService(db).record_transaction(user)

    assert result.unlocked == EconomyTier.intermediate
    assert result.progression.tier == EconomyTier.intermediate
    assert user.intermediate_unlocked_at is not None


async def test_credit_transactions_unlock_advanced(db, make_user):
    user = await make_user()
    service = EconomyService(db)
    await service.record_transaction(user)

    unlocked = [(await service.record_transaction(user, used_credits=True)).unlocked for _ in range(5)]

    assert unlocked == [None, None, None, None, EconomyTier.advanced]


async def test_unlock_past_last_tier(db, make_user):
    user = await make_user(credits=1)
    with pytest.raises(HTTPException) as exc:
        await EconomyService(db).unlock_next_tier(user)
    assert exc.value.detail["code"] == "MAX_TIER_REACHED"


async def test_feature_check(db, make_user):
    user = await make_user()
    service = EconomyService(db)

    assert (await service.is_feature_unlocked(user, "credits_payments")).unlocked is False
    await service.unlock_next_tier(user)
    assert (await service.is_feature_unlocked(user, "credits_payments")).unlocked is True
