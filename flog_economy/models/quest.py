"""Daily quest models"""

from sqlalchemy import (
    Column, String, Integer, Boolean, Date, DateTime, ForeignKey, Numeric, Text, Enum,
    UniqueConstraint, CheckConstraint, Index, Uuid
)
from sqlalchemy.orm import relationship
import enum

from .base import Base, CreatedAtModel, UUIDModel
from flog_economy.utils.helpers import utcnow

class QuestType(str, enum.Enum):
    DAILY = "Daily"
    WEEKLY = "Weekly"
    SPECIAL = "Special"

class Quest(Base, UUIDModel, CreatedAtModel):
    """Quest instance scoped to one UTC day through its quest_id"""

    __tablename__ = "quests"

    quest_id = Column(String(100), unique=True, nullable=False)  # e.g. list_items_20250101
    quest_key = Column(String(50), nullable=False)  # e.g. list_items
    quest_date = Column(Date, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text)
    quest_type = Column(Enum(QuestType, native_enum=False, length=20), nullable=False, default=QuestType.DAILY)
    target = Column(Integer, nullable=False)
    flog_reward = Column(Numeric(18, 2), nullable=False)
    xp_reward = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("target > 0", name="check_positive_target"),
        Index("idx_quests_date_key", "quest_date", "quest_key"),
    )

class QuestProgress(Base, UUIDModel):
    """Per-user progress on one quest"""

    __tablename__ = "quest_progress"

    user_id = Column(String(100), nullable=False, index=True)
    quest_id = Column(Uuid(as_uuid=True), ForeignKey("quests.id", ondelete="CASCADE"), nullable=False)
    progress = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)
    claimed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True))
    claimed_at = Column(DateTime(timezone=True))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    quest = relationship("Quest", lazy="joined", innerjoin=True)

    __table_args__ = (
        UniqueConstraint("user_id", "quest_id", name="uq_quest_progress_user_quest"),
        CheckConstraint("progress >= 0", name="check_non_negative_progress"),
        CheckConstraint("NOT claimed OR completed", name="check_claimed_implies_completed"),
    )

    @property
    def state(self) -> str:
        if self.claimed:
            return "claimed"
        if self.completed:
            return "completed"
        if self.progress:
            return "in_progress"
        return "created"
