"""Mystery box models"""

from sqlalchemy import Column, String, Integer, Numeric, DateTime, ForeignKey, Enum, JSON, Index
import enum

from .base import Base, CreatedAtModel, UUIDModel
from flog_economy.utils.helpers import utcnow

class BoxTier(str, enum.Enum):
    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"

class Rarity(str, enum.Enum):
    COMMON = "Common"
    UNCOMMON = "Uncommon"
    RARE = "Rare"
    EPIC = "Epic"
    LEGENDARY = "Legendary"

# Roll order for weighted rarity draws
RARITY_ORDER = (Rarity.COMMON, Rarity.UNCOMMON, Rarity.RARE, Rarity.EPIC, Rarity.LEGENDARY)

class MysteryBox(Base, UUIDModel, CreatedAtModel):
    """Persisted copy of a box tier configuration"""

    __tablename__ = "mystery_boxes"

    box_id = Column(String(50), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    tier = Column(Enum(BoxTier, native_enum=False, length=20), nullable=False)
    price = Column(Numeric(18, 2), nullable=False)
    min_items = Column(Integer, nullable=False)
    max_items = Column(Integer, nullable=False)

class MysteryBoxOpening(Base, UUIDModel):
    """Immutable record of one box purchase"""

    __tablename__ = "mystery_box_openings"

    user_id = Column(String(100), nullable=False)
    box_id = Column(String(50), ForeignKey("mystery_boxes.box_id"), nullable=False)
    flog_spent = Column(Numeric(18, 2), nullable=False)
    flog_received = Column(Numeric(18, 2), nullable=False, default=0)
    xp_received = Column(Integer, nullable=False, default=0)
    items_received = Column(Integer, nullable=False, default=0)
    rewards_json = Column(JSON, nullable=False, default=list)
    opened_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_box_openings_user_opened", "user_id", "opened_at"),
    )
