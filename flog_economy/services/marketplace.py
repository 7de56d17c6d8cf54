"""
Marketplace hooks

Entry points the auction and bidding side calls when trades, listings and
logins happen. Each hook runs as one unit of work over the wallet,
leveling and quest services.
"""

from typing import Optional, Union
from decimal import Decimal
from datetime import datetime
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from flog_economy.core.config import settings
from flog_economy.core.exceptions import BadRequestException
from flog_economy.core.locks import UserLockRegistry, user_locks
from flog_economy.core.monitoring import OperationTimer
from flog_economy.models.quest import QuestProgress
from flog_economy.models.wallet import TransactionType
from flog_economy.schemas.economy import PurchaseResult, ListingRewardResult, DailyLoginResult
from flog_economy.services.achievements import AchievementUnlocker
from flog_economy.services.activity_feed import ActivityFeedService
from flog_economy.services.catalogs import QUEST_DAILY_LOGIN, QUEST_LIST_ITEMS, QUEST_MAKE_PURCHASE
from flog_economy.services.leveling import LevelingEngine
from flog_economy.services.quest_tracker import QuestTracker
from flog_economy.services.wallet_ledger import WalletLedger
from flog_economy.utils.helpers import to_flog, utcnow, as_utc
from flog_economy.utils.validators import validate_flog_amount, validate_user_id

logger = logging.getLogger(__name__)

class MarketplaceHooks:
    """Economy side effects of marketplace events"""

    def __init__(
        self,
        db: AsyncSession,
        locks: Optional[UserLockRegistry] = None,
        wallet: Optional[WalletLedger] = None,
        leveling: Optional[LevelingEngine] = None,
    ):
        self.db = db
        self.locks = locks or user_locks
        self.wallet = wallet or WalletLedger(db, locks=self.locks)
        self.leveling = leveling or LevelingEngine(db, locks=self.locks)
        self.activity = ActivityFeedService(db)
        self.quests = QuestTracker(
            db, wallet=self.wallet, leveling=self.leveling, activity=self.activity, locks=self.locks
        )
        self.achievements = AchievementUnlocker(
            db, wallet=self.wallet, leveling=self.leveling, activity=self.activity, locks=self.locks
        )

    @staticmethod
    def marketplace_fee(amount: Decimal) -> Decimal:
        return to_flog(amount * settings.MARKETPLACE_FEE_PERCENTAGE)

    async def record_purchase(
        self,
        buyer_id: str,
        seller_id: str,
        item_id: str,
        amount: Union[Decimal, int, str],
        item_name: Optional[str] = None,
    ) -> PurchaseResult:
        """
        Settle a completed marketplace purchase

        The buyer pays the full amount, the seller receives it minus the
        marketplace fee, and both earn XP. Everything commits together;
        a buyer who cannot cover the amount leaves both wallets untouched.
        """
        buyer_id = validate_user_id(buyer_id)
        seller_id = validate_user_id(seller_id)
        if buyer_id == seller_id:
            raise BadRequestException("Buyer and seller must be different users", error_code="SELF_PURCHASE")

        amount = validate_flog_amount(amount)
        fee = self.marketplace_fee(amount)
        seller_amount = amount - fee
        item_name = item_name or f"item {item_id}"

        await self.quests.ensure_daily_quests()

        with OperationTimer("record_purchase"):
            async with self.locks.hold(buyer_id, seller_id):
                try:
                    purchase = await self.wallet.debit(
                        buyer_id,
                        amount,
                        TransactionType.PURCHASE,
                        f"Purchased {item_name}",
                        fee=fee,
                        counterparty_id=seller_id,
                        item_id=item_id,
                        commit=False,
                    )
                    transaction_id = purchase.id
                    await self.wallet.credit(
                        seller_id,
                        seller_amount,
                        TransactionType.SALE,
                        f"Sold {item_name}",
                        fee=fee,
                        counterparty_id=buyer_id,
                        item_id=item_id,
                        commit=False,
                    )

                    buyer_level = await self.leveling.add_experience(
                        buyer_id, settings.PURCHASE_XP_REWARD, commit=False
                    )
                    seller_level = await self.leveling.add_experience(
                        seller_id, settings.SALE_XP_REWARD, commit=False
                    )
                    await self.quests.increment_progress(buyer_id, QUEST_MAKE_PURCHASE, commit=False)

                    buyer_balance = (await self.wallet.get_or_create(buyer_id, commit=False)).balance
                    seller_balance = (await self.wallet.get_or_create(seller_id, commit=False)).balance
                    await self.db.commit()
                except Exception:
                    await self.db.rollback()
                    raise

        logger.info(f"Purchase of {item_id}: {buyer_id} paid {amount} FLOG, {seller_id} received {seller_amount} FLOG")

        await self.activity.add_purchase_activity(buyer_id, item_name, amount)
        await self.activity.add_level_up_activity(buyer_id, buyer_level)
        await self.activity.add_level_up_activity(seller_id, seller_level)

        return PurchaseResult(
            message=f"Purchased {item_name} for {amount} FLOG",
            transaction_id=transaction_id,
            amount=amount,
            fee=fee,
            seller_received=seller_amount,
            buyer_new_balance=buyer_balance,
            seller_new_balance=seller_balance,
            buyer_level=buyer_level,
            seller_level=seller_level,
        )

    async def record_listing(
        self,
        user_id: str,
        item_name: str,
        item_id: Optional[str] = None,
        price: Optional[Decimal] = None,
    ) -> ListingRewardResult:
        """Pay the flat listing reward and advance the listing quest"""
        user_id = validate_user_id(user_id)
        reward = to_flog(settings.LISTING_REWARD)

        await self.quests.ensure_daily_quests()

        async with self.locks.hold(user_id):
            try:
                await self.wallet.credit(
                    user_id,
                    reward,
                    TransactionType.SALE,
                    f"Listing reward: {item_name}",
                    item_id=item_id,
                    commit=False,
                )
                await self.quests.increment_progress(user_id, QUEST_LIST_ITEMS, commit=False)
                new_balance = (await self.wallet.get_or_create(user_id, commit=False)).balance
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        await self.activity.add_listing_activity(user_id, item_name, price)

        return ListingRewardResult(flog_rewarded=reward, new_balance=new_balance)

    async def record_daily_login(self, user_id: str, now: Optional[datetime] = None) -> DailyLoginResult:
        """
        Record a login: advance the streak, pay the daily bonus once per UTC
        day, tick the login quest and unlock any achievements now earned
        """
        user_id = validate_user_id(user_id)
        now = as_utc(now) if now is not None else utcnow()
        bonus = to_flog(settings.DAILY_LOGIN_BONUS)

        await self.quests.ensure_daily_quests(now.date())

        async with self.locks.hold(user_id):
            try:
                streak = await self.leveling.update_login_streak(user_id, now=now, commit=False)
                if streak.first_login_today:
                    await self.wallet.credit(
                        user_id, bonus, TransactionType.DAILY_BONUS, "Daily login bonus", commit=False
                    )
                await self.quests.increment_progress(user_id, QUEST_DAILY_LOGIN, commit=False, today=now.date())
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        unlocked = await self.achievements.check_and_unlock(user_id)

        return DailyLoginResult(
            bonus_paid=streak.first_login_today,
            flog_rewarded=bonus if streak.first_login_today else Decimal("0"),
            streak_days=streak.streak_days,
            new_balance=await self.wallet.get_balance(user_id),
            achievements_unlocked=[result.achievement_id for result in unlocked],
        )

    async def increment_quest_progress(self, user_id: str, quest_type: str, amount: int = 1) -> QuestProgress:
        return await self.quests.increment_progress(user_id, quest_type, amount)
