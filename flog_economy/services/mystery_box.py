"""Mystery box purchase and opening"""

from typing import List, Mapping, Optional
from decimal import Decimal
from random import Random
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flog_economy.core.exceptions import BoxNotFoundException
from flog_economy.core.locks import UserLockRegistry, user_locks
from flog_economy.core.monitoring import boxes_opened, loot_rarity, OperationTimer
from flog_economy.models.mystery_box import BoxTier, MysteryBox, MysteryBoxOpening
from flog_economy.models.wallet import TransactionType
from flog_economy.schemas.economy import MysteryBoxOpenResult, LevelUpResult
from flog_economy.services.activity_feed import ActivityFeedService
from flog_economy.services.catalogs import MYSTERY_BOXES, BoxDefinition
from flog_economy.services.leveling import LevelingEngine, xp_threshold
from flog_economy.services.loot_tables import LOOT_TABLES, LootTable, generate_rewards, REWARD_FLOG, REWARD_XP
from flog_economy.services.wallet_ledger import WalletLedger
from flog_economy.utils.validators import validate_user_id, validate_limit

logger = logging.getLogger(__name__)

class MysteryBoxLootEngine:
    """
    Sells mystery boxes and pays out their contents

    The price debit, every reward credit, the XP award and the opening
    record commit as one unit. The random source is injectable so tests
    can seed it.
    """

    def __init__(
        self,
        db: AsyncSession,
        wallet: Optional[WalletLedger] = None,
        leveling: Optional[LevelingEngine] = None,
        activity: Optional[ActivityFeedService] = None,
        locks: Optional[UserLockRegistry] = None,
        rng: Optional[Random] = None,
        boxes: Mapping[str, BoxDefinition] = MYSTERY_BOXES,
        tables: Mapping[BoxTier, LootTable] = LOOT_TABLES,
    ):
        self.db = db
        self.locks = locks or user_locks
        self.wallet = wallet or WalletLedger(db, locks=self.locks)
        self.leveling = leveling or LevelingEngine(db, locks=self.locks)
        self.activity = activity or ActivityFeedService(db)
        self.rng = rng or Random()
        self.boxes = boxes
        self.tables = tables

    async def list_boxes(self) -> List[MysteryBox]:
        result = await self.db.execute(select(MysteryBox).order_by(MysteryBox.price))
        return list(result.scalars().all())

    async def open(self, user_id: str, box_id: str) -> MysteryBoxOpenResult:
        """
        Buy and open a box

        Raises BoxNotFoundException for an unknown box and
        InsufficientFundsException before any reward is rolled.
        """
        user_id = validate_user_id(user_id)
        box = self.boxes.get(box_id)
        if box is None:
            raise BoxNotFoundException(box_id)

        with OperationTimer("open_mystery_box"):
            async with self.locks.hold(user_id):
                try:
                    await self.wallet.debit(
                        user_id, box.price, TransactionType.MYSTERY_BOX, f"Opened {box.name}", commit=False
                    )

                    rewards = generate_rewards(box.tier, self.rng, self.tables)

                    total_flog = Decimal("0")
                    total_xp = 0
                    for reward in rewards:
                        if reward.type == REWARD_FLOG:
                            await self.wallet.credit(
                                user_id,
                                reward.amount,
                                TransactionType.MYSTERY_BOX,
                                f"Mystery box reward: {reward.amount} FLOG",
                                commit=False,
                            )
                            total_flog += reward.amount
                        elif reward.type == REWARD_XP:
                            total_xp += reward.amount

                    if total_xp:
                        level = await self.leveling.add_experience(user_id, total_xp, commit=False)
                    else:
                        profile = await self.leveling.get_or_create(user_id, commit=False)
                        level = LevelUpResult(
                            leveled_up=False,
                            old_level=profile.level,
                            new_level=profile.level,
                            current_xp=profile.xp,
                            xp_for_next=xp_threshold(profile.level),
                            new_title=profile.title,
                        )

                    opening = MysteryBoxOpening(
                        user_id=user_id,
                        box_id=box.box_id,
                        flog_spent=box.price,
                        flog_received=total_flog,
                        xp_received=total_xp,
                        items_received=len(rewards),
                        rewards_json=[reward.model_dump(mode="json") for reward in rewards],
                    )
                    self.db.add(opening)
                    await self.db.flush()
                    opening_id = opening.id

                    wallet = await self.wallet.get_or_create(user_id, commit=False)
                    new_balance = wallet.balance
                    await self.db.commit()
                except Exception:
                    await self.db.rollback()
                    raise

        boxes_opened.labels(tier=box.tier.value).inc()
        for reward in rewards[1:]:
            loot_rarity.labels(tier=box.tier.value, rarity=reward.rarity.value).inc()
        logger.info(
            f"User {user_id} opened {box.box_id}: {len(rewards)} rewards, "
            f"{total_flog} FLOG, {total_xp} XP"
        )

        await self.activity.add_mystery_box_activity(user_id, box.name, len(rewards))
        await self.activity.add_level_up_activity(user_id, level)

        return MysteryBoxOpenResult(
            message=f"Successfully opened {box.name}!",
            box_id=box.box_id,
            opening_id=opening_id,
            rewards=rewards,
            total_flog_rewarded=total_flog,
            total_xp_rewarded=total_xp,
            new_balance=new_balance,
            leveled_up=level.leveled_up,
            new_level=level.new_level,
            new_title=level.new_title if level.leveled_up else None,
        )

    async def get_user_openings(self, user_id: str, limit: int = 20) -> List[MysteryBoxOpening]:
        """Box openings for a user, newest first"""
        result = await self.db.execute(
            select(MysteryBoxOpening)
            .where(MysteryBoxOpening.user_id == validate_user_id(user_id))
            .order_by(MysteryBoxOpening.opened_at.desc())
            .limit(validate_limit(limit))
        )
        return list(result.scalars().all())
