"""Services package"""

from .wallet_ledger import WalletLedger
from .leveling import LevelingEngine
from .quest_tracker import QuestTracker
from .achievements import AchievementUnlocker
from .mystery_box import MysteryBoxLootEngine
from .marketplace import MarketplaceHooks
from .activity_feed import ActivityFeedService
from .bootstrap import seed_catalogs

__all__ = [
    "WalletLedger",
    "LevelingEngine",
    "QuestTracker",
    "AchievementUnlocker",
    "MysteryBoxLootEngine",
    "MarketplaceHooks",
    "ActivityFeedService",
    "seed_catalogs",
]
