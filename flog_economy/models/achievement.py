"""Achievement catalog and unlock records"""

from sqlalchemy import Column, String, Integer, Text, Numeric, DateTime, ForeignKey, Enum, UniqueConstraint, Index
import enum

from .base import Base, CreatedAtModel, UUIDModel
from flog_economy.utils.helpers import utcnow

class AchievementCategory(str, enum.Enum):
    TRADING = "Trading"
    SOCIAL = "Social"
    COLLECTION = "Collection"
    MILESTONE = "Milestone"
    SPECIAL = "Special"

class AchievementRarity(str, enum.Enum):
    COMMON = "Common"
    RARE = "Rare"
    EPIC = "Epic"
    LEGENDARY = "Legendary"

class Achievement(Base, UUIDModel, CreatedAtModel):
    """Persisted copy of a static catalog entry"""

    __tablename__ = "achievements"

    achievement_id = Column(String(50), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text)
    icon = Column(String(20))
    xp_reward = Column(Integer, nullable=False, default=0)
    flog_reward = Column(Numeric(18, 2), nullable=False, default=0)
    category = Column(Enum(AchievementCategory, native_enum=False, length=20), nullable=False)
    rarity = Column(Enum(AchievementRarity, native_enum=False, length=20), nullable=False)

    __table_args__ = (
        Index("idx_achievements_category", "category"),
    )

class UserAchievement(Base, UUIDModel):
    """Existence of a row is the proof that an achievement is unlocked"""

    __tablename__ = "user_achievements"

    user_id = Column(String(100), nullable=False, index=True)
    achievement_id = Column(String(50), ForeignKey("achievements.achievement_id"), nullable=False)
    unlocked_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),
    )
