"""
Static economy catalogs

Loaded once at import time and injected into the services. The database
copies of achievements and boxes are seeded from these by the bootstrap
step, they are never edited at runtime.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Tuple

from flog_economy.core.config import settings
from flog_economy.models.achievement import AchievementCategory, AchievementRarity
from flog_economy.models.mystery_box import BoxTier

@dataclass(frozen=True)
class AchievementDefinition:
    achievement_id: str
    name: str
    description: str
    icon: str
    xp_reward: int
    flog_reward: Decimal
    category: AchievementCategory
    rarity: AchievementRarity

@dataclass(frozen=True)
class BoxDefinition:
    box_id: str
    name: str
    tier: BoxTier
    price: Decimal
    min_items: int
    max_items: int

@dataclass(frozen=True)
class QuestTemplate:
    key: str
    name: str
    description: str
    target: int
    flog_reward: Decimal
    xp_reward: int

def _index(entries, attr):
    return {getattr(entry, attr): entry for entry in entries}

ACHIEVEMENTS: Mapping[str, AchievementDefinition] = _index((
    # Trading
    AchievementDefinition("first_sale", "First Sale!", "Complete your first sale", "🎉",
                          100, Decimal("200"), AchievementCategory.TRADING, AchievementRarity.COMMON),
    AchievementDefinition("first_purchase", "First Purchase", "Make your first purchase", "🛒",
                          50, Decimal("100"), AchievementCategory.TRADING, AchievementRarity.COMMON),
    AchievementDefinition("speed_trader", "Speed Trader", "Complete 5 transactions in one day", "⚡",
                          250, Decimal("500"), AchievementCategory.TRADING, AchievementRarity.RARE),
    AchievementDefinition("trading_tycoon", "Trading Tycoon", "Complete 100 total transactions", "💼",
                          1000, Decimal("2000"), AchievementCategory.TRADING, AchievementRarity.EPIC),
    # Collection
    AchievementDefinition("rare_collector", "Rare Collector", "Own 3 rare or better items", "💎",
                          500, Decimal("1000"), AchievementCategory.COLLECTION, AchievementRarity.RARE),
    AchievementDefinition("legendary_hunter", "Legendary Hunter", "Obtain a legendary item", "🏆",
                          2000, Decimal("5000"), AchievementCategory.COLLECTION, AchievementRarity.LEGENDARY),
    # Milestones
    AchievementDefinition("level_10", "Experienced Trader", "Reach level 10", "⭐",
                          500, Decimal("1000"), AchievementCategory.MILESTONE, AchievementRarity.RARE),
    AchievementDefinition("level_25", "Master Merchant", "Reach level 25", "👑",
                          1500, Decimal("3000"), AchievementCategory.MILESTONE, AchievementRarity.EPIC),
    AchievementDefinition("level_50", "Trading Legend", "Reach maximum level 50", "🌟",
                          5000, Decimal("10000"), AchievementCategory.MILESTONE, AchievementRarity.LEGENDARY),
    # Social
    AchievementDefinition("social_butterfly", "Social Butterfly", "Like and comment on 50 items", "🦋",
                          300, Decimal("600"), AchievementCategory.SOCIAL, AchievementRarity.RARE),
    # Special
    AchievementDefinition("mystery_master", "Mystery Master", "Open 10 mystery boxes", "🎁",
                          750, Decimal("1500"), AchievementCategory.SPECIAL, AchievementRarity.EPIC),
    AchievementDefinition("streak_warrior", "Streak Warrior", "Maintain a 7-day login streak", "🔥",
                          500, Decimal("1000"), AchievementCategory.SPECIAL, AchievementRarity.RARE),
), "achievement_id")

MYSTERY_BOXES: Mapping[str, BoxDefinition] = _index((
    BoxDefinition("bronze_box", "Bronze Mystery Box", BoxTier.BRONZE, settings.BRONZE_BOX_PRICE, 1, 2),
    BoxDefinition("silver_box", "Silver Mystery Box", BoxTier.SILVER, settings.SILVER_BOX_PRICE, 2, 3),
    BoxDefinition("gold_box", "Gold Mystery Box", BoxTier.GOLD, settings.GOLD_BOX_PRICE, 3, 5),
), "box_id")

# Quest keys collaborators report progress against
QUEST_DAILY_LOGIN = "daily_login"
QUEST_LIST_ITEMS = "list_items"
QUEST_MAKE_PURCHASE = "make_purchase"
QUEST_SOCIAL_ACTIONS = "social_actions"

DAILY_QUESTS: Tuple[QuestTemplate, ...] = (
    QuestTemplate(QUEST_DAILY_LOGIN, "Daily Login", "Login to claim your daily bonus", 1, Decimal("50"), 10),
    QuestTemplate(QUEST_LIST_ITEMS, "Market Maker", "List 3 items for sale", 3, Decimal("100"), 50),
    QuestTemplate(QUEST_MAKE_PURCHASE, "Smart Shopper", "Purchase any item", 1, Decimal("75"), 35),
    QuestTemplate(QUEST_SOCIAL_ACTIONS, "Social Butterfly", "Like and comment on 5 items", 5, Decimal("50"), 25),
)

# Level and streak thresholds that unlock achievements automatically
LEVEL_MILESTONES: Tuple[Tuple[int, str], ...] = (
    (10, "level_10"),
    (25, "level_25"),
    (50, "level_50"),
)
STREAK_MILESTONES: Tuple[Tuple[int, str], ...] = (
    (7, "streak_warrior"),
)
MYSTERY_MASTER_OPENINGS = 10
