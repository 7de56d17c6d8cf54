"""Player progression model"""

from sqlalchemy import Column, String, Integer, DateTime, CheckConstraint, Index

from .base import Base, TimestampedModel, UUIDModel

class UserGamification(Base, UUIDModel, TimestampedModel):
    """Level, settled XP, title and login streak for a user"""

    __tablename__ = "user_gamification"

    user_id = Column(String(100), unique=True, nullable=False, index=True)
    level = Column(Integer, nullable=False, default=1)
    xp = Column(Integer, nullable=False, default=0)
    title = Column(String(50), nullable=False, default="Novice Trader")

    # Streaks
    streak_days = Column(Integer, nullable=False, default=0)
    last_login = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("level >= 1", name="check_min_level"),
        CheckConstraint("xp >= 0", name="check_non_negative_xp"),
        CheckConstraint("streak_days >= 0", name="check_non_negative_streak"),
        Index("idx_user_gamification_rank", "level", "xp"),
    )
