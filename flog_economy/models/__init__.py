"""Models package initialization"""

from .base import Base
from .wallet import Wallet, WalletTransaction, TransactionType
from .gamification import UserGamification
from .quest import Quest, QuestProgress, QuestType
from .achievement import Achievement, UserAchievement, AchievementCategory, AchievementRarity
from .mystery_box import MysteryBox, MysteryBoxOpening, BoxTier, Rarity, RARITY_ORDER
from .activity import ActivityFeed, ActivityType

# Export all models
__all__ = [
    "Base",
    "Wallet",
    "WalletTransaction",
    "TransactionType",
    "UserGamification",
    "Quest",
    "QuestProgress",
    "QuestType",
    "Achievement",
    "UserAchievement",
    "AchievementCategory",
    "AchievementRarity",
    "MysteryBox",
    "MysteryBoxOpening",
    "BoxTier",
    "Rarity",
    "RARITY_ORDER",
    "ActivityFeed",
    "ActivityType",
]
