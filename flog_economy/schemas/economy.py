"""Result schemas returned to collaborators"""

from typing import Optional, List, Dict, Any
from decimal import Decimal
from datetime import datetime
import uuid

from pydantic import BaseModel, Field

from flog_economy.models.wallet import TransactionType
from flog_economy.models.mystery_box import Rarity


class WalletSummary(BaseModel):
    user_id: str
    balance: Decimal
    staked: Decimal
    total_earned: Decimal
    total_spent: Decimal

    class Config:
        from_attributes = True


class TransactionRecord(BaseModel):
    id: uuid.UUID
    sequence: int
    amount: Decimal
    fee: Decimal
    kind: TransactionType
    description: str
    counterparty_id: Optional[str] = None
    item_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LevelUpResult(BaseModel):
    """Outcome of an XP award, used by callers for level-up celebrations"""
    leveled_up: bool
    old_level: int
    new_level: int
    current_xp: int
    xp_for_next: int
    new_title: str


class QuestRewardResult(BaseModel):
    success: bool = True
    message: str
    quest_id: str
    flog_rewarded: Decimal
    xp_rewarded: int
    leveled_up: bool = False
    new_level: int
    new_title: Optional[str] = None


class AchievementUnlockResult(BaseModel):
    success: bool
    already_unlocked: bool = False
    message: str
    achievement_id: str
    flog_rewarded: Decimal = Decimal("0")
    xp_rewarded: int = 0
    leveled_up: bool = False
    new_level: Optional[int] = None
    new_title: Optional[str] = None


class LootReward(BaseModel):
    type: str = Field(..., description="FLOG, XP or Item")
    name: str
    amount: int
    rarity: Rarity

    class Config:
        frozen = True


class MysteryBoxOpenResult(BaseModel):
    success: bool = True
    message: str
    box_id: str
    opening_id: uuid.UUID
    rewards: List[LootReward]
    total_flog_rewarded: Decimal
    total_xp_rewarded: int
    new_balance: Decimal
    leveled_up: bool = False
    new_level: int
    new_title: Optional[str] = None


class PurchaseResult(BaseModel):
    success: bool = True
    message: str
    transaction_id: uuid.UUID
    amount: Decimal
    fee: Decimal
    seller_received: Decimal
    buyer_new_balance: Decimal
    seller_new_balance: Decimal
    buyer_level: LevelUpResult
    seller_level: LevelUpResult


class ListingRewardResult(BaseModel):
    flog_rewarded: Decimal
    new_balance: Decimal


class DailyLoginResult(BaseModel):
    bonus_paid: bool
    flog_rewarded: Decimal
    streak_days: int
    new_balance: Decimal
    achievements_unlocked: List[str] = Field(default_factory=list)


class UserStats(BaseModel):
    user_id: str
    level: int
    xp: int
    xp_for_next: int
    title: str
    streak_days: int
    achievement_count: int
    completed_quests_count: int


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    level: int
    xp: int
    title: str


class ActivityRecord(BaseModel):
    id: uuid.UUID
    activity_type: str
    user_id: str
    username: Optional[str] = None
    message: str
    details: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True
