from decimal import Decimal
from random import Random

import pytest

from flog_economy.core.exceptions import BoxNotFoundException, InsufficientFundsException
from flog_economy.models.mystery_box import BoxTier
from flog_economy.models.wallet import TransactionType
from flog_economy.services.loot_tables import LOOT_TABLES, REWARD_FLOG, REWARD_XP
from flog_economy.services.mystery_box import MysteryBoxLootEngine

async def test_list_boxes(boxes):
    listed = await boxes.list_boxes()
    assert [(box.box_id, box.price) for box in listed] == [
        ("bronze_box", Decimal("100")),
        ("silver_box", Decimal("250")),
        ("gold_box", Decimal("500")),
    ]

async def test_open_debits_price_and_credits_rewards(boxes, wallet, leveling):
    result = await boxes.open("alice", "gold_box")

    table = LOOT_TABLES[BoxTier.GOLD]
    flog = [r for r in result.rewards if r.type == REWARD_FLOG]
    xp = sum(r.amount for r in result.rewards if r.type == REWARD_XP)

    assert len(flog) == 1
    assert table.flog_min <= flog[0].amount <= table.flog_max
    assert table.min_items + 1 <= len(result.rewards) <= table.max_items + 1
    assert result.total_flog_rewarded == Decimal(flog[0].amount)
    assert result.total_xp_rewarded == xp

    expected = Decimal("1000") - Decimal("500") + result.total_flog_rewarded
    assert result.new_balance == expected
    assert await wallet.get_balance("alice") == expected

    kinds = [t.kind for t in await wallet.history("alice")]
    assert kinds == [TransactionType.MYSTERY_BOX, TransactionType.MYSTERY_BOX]

async def test_opening_is_recorded(boxes):
    result = await boxes.open("alice", "silver_box")

    openings = await boxes.get_user_openings("alice")
    assert len(openings) == 1
    opening = openings[0]
    assert opening.id == result.opening_id
    assert opening.flog_spent == Decimal("250")
    assert opening.flog_received == result.total_flog_rewarded
    # Every reward counts, the FLOG payout included
    assert opening.items_received == len(result.rewards)
    assert len(opening.rewards_json) == len(result.rewards)

async def test_unknown_box(boxes):
    with pytest.raises(BoxNotFoundException):
        await boxes.open("alice", "platinum_box")

async def test_insufficient_funds_generates_nothing(boxes, wallet):
    await wallet.debit("alice", 950, TransactionType.PURCHASE, "Big purchase")

    with pytest.raises(InsufficientFundsException):
        await boxes.open("alice", "bronze_box")

    assert await wallet.get_balance("alice") == Decimal("50")
    assert await boxes.get_user_openings("alice") == []
    assert len(await wallet.history("alice")) == 1

async def test_same_seed_same_rewards(db, wallet, leveling, activity, locks):
    def engine(seed):
        return MysteryBoxLootEngine(
            db, wallet=wallet, leveling=leveling, activity=activity, locks=locks, rng=Random(seed)
        )

    first = await engine(11).open("alice", "bronze_box")
    second = await engine(11).open("bob", "bronze_box")
    assert first.rewards == second.rewards

async def test_xp_rewards_reach_leveling(boxes, leveling):
    total_xp = 0
    for _ in range(2):
        result = await boxes.open("alice", "bronze_box")
        total_xp += result.total_xp_rewarded

    profile = await leveling.get_or_create("alice")
    spent = sum(100 + 50 * level for level in range(1, profile.level))
    assert spent + profile.xp == total_xp

async def test_open_with_exact_price_balance(boxes, wallet):
    await wallet.debit("alice", 900, TransactionType.PURCHASE, "Spend down")
    assert await wallet.get_balance("alice") == Decimal("100")

    result = await boxes.open("alice", "bronze_box")

    assert result.new_balance == result.total_flog_rewarded
    assert await wallet.get_balance("alice") == result.total_flog_rewarded

    openings = await boxes.get_user_openings("alice")
    assert len(openings) == 1
    assert openings[0].flog_spent == Decimal("100")
    assert openings[0].id == result.opening_id

async def test_open_survives_feed_outage(boxes, activity, wallet, broken_feed):
    activity.session_factory = broken_feed

    result = await boxes.open("alice", "bronze_box")

    assert result.opening_id is not None
    assert await wallet.get_balance("alice") == Decimal("900") + result.total_flog_rewarded
    assert len(await boxes.get_user_openings("alice")) == 1
    assert await activity.get_recent_activity() == []
