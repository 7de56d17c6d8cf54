"""
Loot tables and reward generation for mystery boxes

Everything here is pure: callers pass the random source, so fixed seeds
give reproducible outcomes.
"""

from dataclasses import dataclass
from random import Random
from typing import List, Mapping, Sequence, Tuple

from flog_economy.models.mystery_box import BoxTier, Rarity, RARITY_ORDER
from flog_economy.schemas.economy import LootReward

REWARD_FLOG = "FLOG"
REWARD_XP = "XP"
REWARD_ITEM = "Item"

def validate_chances(chances: Sequence[int]) -> None:
    if len(chances) != len(RARITY_ORDER):
        raise ValueError(f"Expected {len(RARITY_ORDER)} rarity weights, got {len(chances)}")
    if any(weight < 0 for weight in chances):
        raise ValueError("Rarity weights must be non-negative")
    if sum(chances) != 100:
        raise ValueError(f"Rarity weights must sum to 100, got {sum(chances)}")

@dataclass(frozen=True)
class LootTable:
    """Reward generosity for one box tier"""

    flog_min: int
    flog_max: int
    rarity_chances: Tuple[int, int, int, int, int]  # Common..Legendary, sums to 100
    min_items: int
    max_items: int

    def __post_init__(self):
        validate_chances(self.rarity_chances)
        if not 0 < self.flog_min <= self.flog_max:
            raise ValueError("FLOG range must be positive and ordered")
        if not 0 <= self.min_items <= self.max_items:
            raise ValueError("Item count range must be ordered")

LOOT_TABLES: Mapping[BoxTier, LootTable] = {
    BoxTier.BRONZE: LootTable(
        flog_min=50,
        flog_max=200,
        rarity_chances=(70, 25, 5, 0, 0),
        min_items=1,
        max_items=2,
    ),
    BoxTier.SILVER: LootTable(
        flog_min=100,
        flog_max=500,
        rarity_chances=(40, 40, 15, 5, 0),
        min_items=2,
        max_items=3,
    ),
    BoxTier.GOLD: LootTable(
        flog_min=200,
        flog_max=1000,
        rarity_chances=(20, 35, 30, 12, 3),
        min_items=3,
        max_items=5,
    ),
}

# Inclusive XP ranges per rarity
XP_BOOST_RANGES: Mapping[Rarity, Tuple[int, int]] = {
    Rarity.COMMON: (25, 49),
    Rarity.UNCOMMON: (50, 99),
    Rarity.RARE: (100, 199),
    Rarity.EPIC: (200, 499),
    Rarity.LEGENDARY: (500, 999),
}

ITEM_PREFIXES: Mapping[Rarity, Tuple[str, ...]] = {
    Rarity.COMMON: (),
    Rarity.UNCOMMON: ("Unusual", "Sturdy", "Polished"),
    Rarity.RARE: ("Rare", "Enchanted", "Gleaming"),
    Rarity.EPIC: ("Epic", "Mystic", "Arcane"),
    Rarity.LEGENDARY: ("Legendary", "Ancient", "Mythic"),
}

ITEM_NOUNS = ("Sword", "Shield", "Amulet", "Ring", "Potion", "Scroll", "Gem", "Artifact", "Rune")

def roll_rarity(rng: Random, chances: Sequence[int]) -> Rarity:
    """Cumulative weighted roll over Common..Legendary"""
    validate_chances(chances)
    roll = rng.randrange(100)
    cumulative = 0
    for rarity, weight in zip(RARITY_ORDER, chances):
        cumulative += weight
        if roll < cumulative:
            return rarity
    return Rarity.COMMON

def xp_boost_amount(rng: Random, rarity: Rarity) -> int:
    low, high = XP_BOOST_RANGES[rarity]
    return rng.randint(low, high)

def item_name(rng: Random, rarity: Rarity) -> str:
    """Combine a rarity prefix with a generic item noun, Common items have no prefix"""
    prefixes = ITEM_PREFIXES[rarity]
    noun = rng.choice(ITEM_NOUNS)
    if not prefixes:
        return noun
    return f"{rng.choice(prefixes)} {noun}"

def generate_rewards(
    tier: BoxTier,
    rng: Random,
    tables: Mapping[BoxTier, LootTable] = LOOT_TABLES,
) -> List[LootReward]:
    """
    Roll the contents of one box

    Always yields one FLOG reward first, followed by item_count extra
    rewards that are each an XP boost or an item with equal probability.
    """
    table = tables[tier]
    rewards = [
        LootReward(
            type=REWARD_FLOG,
            name="FLOG Coins",
            amount=rng.randint(table.flog_min, table.flog_max),
            rarity=Rarity.COMMON,
        )
    ]

    item_count = rng.randint(table.min_items, table.max_items)
    for _ in range(item_count):
        rarity = roll_rarity(rng, table.rarity_chances)
        if rng.randrange(2) == 0:
            rewards.append(LootReward(
                type=REWARD_XP,
                name=f"{rarity.value} XP Boost",
                amount=xp_boost_amount(rng, rarity),
                rarity=rarity,
            ))
        else:
            rewards.append(LootReward(
                type=REWARD_ITEM,
                name=item_name(rng, rarity),
                amount=1,
                rarity=rarity,
            ))

    return rewards
