import importlib
from collections import Counter
from random import Random

import pytest

from flog_economy.models.mystery_box import BoxTier, Rarity, RARITY_ORDER
from flog_economy.services import loot_tables
from flog_economy.services.loot_tables import (
    LOOT_TABLES,
    ITEM_NOUNS,
    XP_BOOST_RANGES,
    REWARD_FLOG,
    REWARD_XP,
    REWARD_ITEM,
    LootTable,
    generate_rewards,
    item_name,
    roll_rarity,
    validate_chances,
)

class FixedRandom(Random):
    """Random whose randrange always returns a chosen value"""

    def __init__(self, value):
        super().__init__(0)
        self.value = value

    def randrange(self, *args, **kwargs):
        return self.value

def test_tables_build_on_fresh_import():
    module = importlib.reload(loot_tables)
    assert set(module.LOOT_TABLES) == set(BoxTier)
    assert all(sum(table.rarity_chances) == 100 for table in module.LOOT_TABLES.values())

def test_every_table_sums_to_100():
    for table in LOOT_TABLES.values():
        assert sum(table.rarity_chances) == 100

@pytest.mark.parametrize("chances", [(50, 50), (60, 30, 5, 5, 5), (110, -10, 0, 0, 0)])
def test_invalid_chances_rejected(chances):
    with pytest.raises(ValueError):
        validate_chances(chances)

def test_loot_table_validates_on_construction():
    with pytest.raises(ValueError):
        LootTable(flog_min=10, flog_max=5, rarity_chances=(100, 0, 0, 0, 0), min_items=1, max_items=1)

@pytest.mark.parametrize("roll, expected", [
    (0, Rarity.COMMON),
    (19, Rarity.COMMON),
    (20, Rarity.UNCOMMON),
    (54, Rarity.UNCOMMON),
    (55, Rarity.RARE),
    (85, Rarity.EPIC),
    (96, Rarity.EPIC),
    (97, Rarity.LEGENDARY),
    (99, Rarity.LEGENDARY),
])
def test_roll_rarity_uses_cumulative_buckets(roll, expected):
    assert roll_rarity(FixedRandom(roll), LOOT_TABLES[BoxTier.GOLD].rarity_chances) == expected

def test_gold_rarity_distribution_matches_weights():
    rng = Random(42)
    chances = LOOT_TABLES[BoxTier.GOLD].rarity_chances
    samples = 20_000
    counts = Counter(roll_rarity(rng, chances) for _ in range(samples))

    legendary = counts[Rarity.LEGENDARY] / samples
    assert abs(legendary - 0.03) < 0.01

    for rarity, weight in zip(RARITY_ORDER, chances):
        assert abs(counts[rarity] / samples - weight / 100) < 0.02

def test_bronze_never_rolls_epic_or_legendary():
    rng = Random(7)
    chances = LOOT_TABLES[BoxTier.BRONZE].rarity_chances
    rolled = {roll_rarity(rng, chances) for _ in range(5_000)}
    assert Rarity.EPIC not in rolled
    assert Rarity.LEGENDARY not in rolled

def test_common_items_have_no_prefix():
    rng = Random(3)
    for _ in range(50):
        assert item_name(rng, Rarity.COMMON) in ITEM_NOUNS
        assert item_name(rng, Rarity.LEGENDARY).split(" ", 1)[1] in ITEM_NOUNS

@pytest.mark.parametrize("tier", list(BoxTier))
def test_generate_rewards_respects_table(tier):
    table = LOOT_TABLES[tier]
    rng = Random(99)

    for _ in range(200):
        rewards = generate_rewards(tier, rng)

        first = rewards[0]
        assert first.type == REWARD_FLOG
        assert first.rarity == Rarity.COMMON
        assert table.flog_min <= first.amount <= table.flog_max

        extras = rewards[1:]
        assert table.min_items <= len(extras) <= table.max_items
        for reward in extras:
            assert reward.type in (REWARD_XP, REWARD_ITEM)
            assert table.rarity_chances[RARITY_ORDER.index(reward.rarity)] > 0
            if reward.type == REWARD_XP:
                low, high = XP_BOOST_RANGES[reward.rarity]
                assert low <= reward.amount <= high
            else:
                assert reward.amount == 1

def test_generate_rewards_is_reproducible_with_seed():
    assert generate_rewards(BoxTier.SILVER, Random(5)) == generate_rewards(BoxTier.SILVER, Random(5))
