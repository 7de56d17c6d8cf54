"""Activity feed model"""

from sqlalchemy import Column, String, Text, Enum, JSON, Index
import enum

from .base import Base, CreatedAtModel, UUIDModel

class ActivityType(str, enum.Enum):
    PURCHASE = "Purchase"
    LISTING = "Listing"
    ACHIEVEMENT = "Achievement"
    LEVEL_UP = "LevelUp"
    QUEST_COMPLETE = "QuestComplete"
    MYSTERY_BOX = "MysteryBox"

class ActivityFeed(Base, UUIDModel, CreatedAtModel):
    """Human-readable marketplace event with structured metadata"""

    __tablename__ = "activity_feed"

    activity_type = Column(Enum(ActivityType, native_enum=False, length=20), nullable=False)
    user_id = Column(String(100), nullable=False)
    username = Column(String(100))
    message = Column(Text, nullable=False)
    details = Column("metadata", JSON, default=dict)

    __table_args__ = (
        Index("idx_activity_feed_user", "user_id"),
        Index("idx_activity_feed_type", "activity_type"),
    )
