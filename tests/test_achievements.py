from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from flog_economy.core.exceptions import AchievementNotFoundException
from flog_economy.models.achievement import UserAchievement
from flog_economy.models.activity import ActivityType
from flog_economy.models.wallet import TransactionType

async def test_catalog_is_seeded(achievements):
    catalog = await achievements.list_achievements()
    assert len(catalog) == 12
    assert "streak_warrior" in {a.achievement_id for a in catalog}

async def test_unlock_pays_rewards(achievements, wallet, leveling):
    result = await achievements.unlock("alice", "first_sale")

    assert result.success
    assert result.flog_rewarded == Decimal("200")
    assert result.xp_rewarded == 100
    assert await wallet.get_balance("alice") == Decimal("1200")
    assert (await leveling.get_or_create("alice")).xp == 100

    history = await wallet.history("alice")
    assert [t.kind for t in history] == [TransactionType.ACHIEVEMENT_REWARD]

async def test_unlock_twice_pays_once(achievements, wallet):
    await achievements.unlock("alice", "first_purchase")
    second = await achievements.unlock("alice", "first_purchase")

    assert not second.success
    assert second.already_unlocked
    assert await wallet.get_balance("alice") == Decimal("1100")
    assert len(await achievements.get_user_achievements("alice")) == 1

async def test_unknown_achievement(achievements):
    with pytest.raises(AchievementNotFoundException):
        await achievements.unlock("alice", "dragon_slayer")

async def test_unlock_reports_level_up(achievements):
    # 5000 XP from level 1 crosses many thresholds
    result = await achievements.unlock("alice", "level_50")
    assert result.leveled_up
    assert result.new_level > 1

async def test_unlock_writes_activity(achievements, activity):
    await achievements.unlock("alice", "rare_collector")

    feed = await activity.get_user_activity("alice")
    assert ActivityType.ACHIEVEMENT in {entry.activity_type for entry in feed}

async def test_check_and_unlock_level_milestones(achievements, leveling):
    # Levels 1..9 need 150 + 200 + ... + 550 = 3150 XP
    await leveling.add_experience("alice", 3150)

    unlocked = await achievements.check_and_unlock("alice")
    ids = [result.achievement_id for result in unlocked]
    assert ids[0] == "level_10"
    assert "level_25" not in ids

    assert await achievements.check_and_unlock("alice") == []

async def test_check_and_unlock_streak(achievements, leveling, db):
    profile = await leveling.get_or_create("alice")
    profile.streak_days = 7
    await db.commit()

    ids = [result.achievement_id for result in await achievements.check_and_unlock("alice")]
    assert ids == ["streak_warrior"]

async def test_check_and_unlock_trading_firsts(achievements, wallet):
    await wallet.debit("alice", 10, TransactionType.PURCHASE, "Purchase", counterparty_id="bob")
    await wallet.credit("bob", 10, TransactionType.SALE, "Sale", counterparty_id="alice")
    # Listing rewards are Sale credits without a counterparty
    await wallet.credit("carol", 10, TransactionType.SALE, "Listing reward")

    assert [r.achievement_id for r in await achievements.check_and_unlock("alice")] == ["first_purchase"]
    assert [r.achievement_id for r in await achievements.check_and_unlock("bob")] == ["first_sale"]
    assert await achievements.check_and_unlock("carol") == []

async def test_nothing_to_unlock_for_new_user(achievements):
    assert await achievements.check_and_unlock("newbie") == []

async def test_unlock_race_reports_already_unlocked(achievements, session_factory, wallet, monkeypatch):
    async with session_factory() as other:
        other.add(UserAchievement(user_id="alice", achievement_id="first_purchase"))
        await other.commit()

    real_unlocked_ids = achievements._unlocked_ids
    calls = []

    async def stale_first_read(user_id):
        calls.append(user_id)
        if len(calls) == 1:
            return set()
        return await real_unlocked_ids(user_id)

    monkeypatch.setattr(achievements, "_unlocked_ids", stale_first_read)
    result = await achievements.unlock("alice", "first_purchase")

    assert result.already_unlocked
    assert await wallet.get_balance("alice") == Decimal("1000")

async def test_unlock_reraises_other_integrity_errors(achievements, wallet, monkeypatch):
    async def rejected_credit(*args, **kwargs):
        raise IntegrityError("UPDATE wallets", {}, Exception("CHECK constraint failed"))

    monkeypatch.setattr(wallet, "credit", rejected_credit)
    with pytest.raises(IntegrityError):
        await achievements.unlock("alice", "first_sale")

    assert await achievements.get_user_achievements("alice") == []
