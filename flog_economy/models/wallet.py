"""Wallet and ledger transaction models"""

from sqlalchemy import Column, String, Integer, ForeignKey, Numeric, Text, Enum, CheckConstraint, Index, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from decimal import Decimal
import enum

from .base import Base, TimestampedModel, CreatedAtModel, UUIDModel

class TransactionType(str, enum.Enum):
    PURCHASE = "Purchase"
    SALE = "Sale"
    QUEST_REWARD = "QuestReward"
    ACHIEVEMENT_REWARD = "AchievementReward"
    DAILY_BONUS = "DailyBonus"
    MYSTERY_BOX = "MysteryBox"
    STAKING = "Staking"
    UNSTAKING = "Unstaking"

class Wallet(Base, UUIDModel, TimestampedModel):
    """One FLOG wallet per user, created lazily and never deleted"""

    __tablename__ = "wallets"

    user_id = Column(String(100), unique=True, nullable=False, index=True)
    balance = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    staked = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    total_earned = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    total_spent = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    transaction_count = Column(Integer, nullable=False, default=0)  # Last ledger sequence issued

    # Relationships
    transactions = relationship(
        "WalletTransaction",
        back_populates="wallet",
        lazy="noload",
    )

    __table_args__ = (
        CheckConstraint("balance >= 0", name="check_non_negative_balance"),
        CheckConstraint("staked >= 0", name="check_non_negative_staked"),
    )

class WalletTransaction(Base, UUIDModel, CreatedAtModel):
    """Immutable audit record, one per balance change"""

    __tablename__ = "wallet_transactions"

    wallet_id = Column(Uuid(as_uuid=True), ForeignKey("wallets.id", ondelete="RESTRICT"), nullable=False)
    user_id = Column(String(100), nullable=False)
    sequence = Column(Integer, nullable=False)  # 1-based, per wallet
    amount = Column(Numeric(18, 2), nullable=False)  # Positive for credit, negative for debit
    fee = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    kind = Column(Enum(TransactionType, native_enum=False, length=30), nullable=False)
    description = Column(Text, nullable=False, default="")
    counterparty_id = Column(String(100))  # Other side of a purchase or sale
    item_id = Column(String(100))

    # Relationships
    wallet = relationship("Wallet", back_populates="transactions", lazy="noload")

    __table_args__ = (
        Index("idx_wallet_transactions_user_sequence", "user_id", "sequence"),
        Index("idx_wallet_transactions_kind", "kind"),
        UniqueConstraint("wallet_id", "sequence", name="uq_wallet_transaction_sequence"),
    )
