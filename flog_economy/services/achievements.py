"""Achievement unlocking service"""

from typing import List, Mapping, Optional, Set
import logging

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from flog_economy.core.exceptions import AchievementNotFoundException
from flog_economy.core.locks import UserLockRegistry, user_locks
from flog_economy.core.monitoring import achievements_unlocked
from flog_economy.models.achievement import Achievement, UserAchievement
from flog_economy.models.mystery_box import MysteryBoxOpening
from flog_economy.models.wallet import WalletTransaction, TransactionType
from flog_economy.schemas.economy import AchievementUnlockResult
from flog_economy.services.activity_feed import ActivityFeedService
from flog_economy.services.catalogs import (
    ACHIEVEMENTS,
    AchievementDefinition,
    LEVEL_MILESTONES,
    STREAK_MILESTONES,
    MYSTERY_MASTER_OPENINGS,
)
from flog_economy.services.leveling import LevelingEngine
from flog_economy.services.wallet_ledger import WalletLedger
from flog_economy.utils.validators import validate_user_id

logger = logging.getLogger(__name__)

class AchievementUnlocker:
    """Grants one-time achievements and their FLOG and XP rewards"""

    def __init__(
        self,
        db: AsyncSession,
        wallet: Optional[WalletLedger] = None,
        leveling: Optional[LevelingEngine] = None,
        activity: Optional[ActivityFeedService] = None,
        locks: Optional[UserLockRegistry] = None,
        catalog: Mapping[str, AchievementDefinition] = ACHIEVEMENTS,
    ):
        self.db = db
        self.locks = locks or user_locks
        self.wallet = wallet or WalletLedger(db, locks=self.locks)
        self.leveling = leveling or LevelingEngine(db, locks=self.locks)
        self.activity = activity or ActivityFeedService(db)
        self.catalog = catalog

    async def list_achievements(self) -> List[Achievement]:
        result = await self.db.execute(
            select(Achievement).order_by(Achievement.category, Achievement.achievement_id)
        )
        return list(result.scalars().all())

    async def get_user_achievements(self, user_id: str) -> List[UserAchievement]:
        """Unlocked achievements, most recent first"""
        result = await self.db.execute(
            select(UserAchievement)
            .where(UserAchievement.user_id == validate_user_id(user_id))
            .order_by(UserAchievement.unlocked_at.desc())
        )
        return list(result.scalars().all())

    async def _unlocked_ids(self, user_id: str) -> Set[str]:
        result = await self.db.execute(
            select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
        )
        return set(result.scalars().all())

    async def unlock(self, user_id: str, achievement_id: str) -> AchievementUnlockResult:
        """
        Unlock an achievement for a user and pay its rewards

        Unlocking twice is not an error: the second call reports
        already_unlocked and pays nothing.
        """
        user_id = validate_user_id(user_id)
        achievement = self.catalog.get(achievement_id)
        if achievement is None:
            raise AchievementNotFoundException(achievement_id)

        already_unlocked = AchievementUnlockResult(
            success=False,
            already_unlocked=True,
            message="Achievement already unlocked",
            achievement_id=achievement_id,
        )

        async with self.locks.hold(user_id):
            try:
                if achievement_id in await self._unlocked_ids(user_id):
                    return already_unlocked

                self.db.add(UserAchievement(user_id=user_id, achievement_id=achievement_id))
                await self.db.flush()

                await self.wallet.credit(
                    user_id,
                    achievement.flog_reward,
                    TransactionType.ACHIEVEMENT_REWARD,
                    f"Achievement unlocked: {achievement.name}",
                    commit=False,
                )
                level = await self.leveling.add_experience(user_id, achievement.xp_reward, commit=False)
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                # Only a lost race on the unique (user_id, achievement_id) means already unlocked
                if achievement_id in await self._unlocked_ids(user_id):
                    return already_unlocked
                raise
            except Exception:
                await self.db.rollback()
                raise

        achievements_unlocked.labels(achievement_id=achievement_id).inc()
        logger.info(f"User {user_id} unlocked achievement {achievement_id}")

        await self.activity.add_achievement_activity(user_id, achievement.name, achievement.icon)
        await self.activity.add_level_up_activity(user_id, level)

        return AchievementUnlockResult(
            success=True,
            message=f"Achievement unlocked: {achievement.name}!",
            achievement_id=achievement_id,
            flog_rewarded=achievement.flog_reward,
            xp_rewarded=achievement.xp_reward,
            leveled_up=level.leveled_up,
            new_level=level.new_level,
            new_title=level.new_title if level.leveled_up else None,
        )

    async def _count_transactions(self, user_id: str, kind: TransactionType, with_counterparty: bool = False) -> int:
        stmt = select(func.count(WalletTransaction.id)).where(
            WalletTransaction.user_id == user_id,
            WalletTransaction.kind == kind,
        )
        if with_counterparty:
            stmt = stmt.where(WalletTransaction.counterparty_id.is_not(None))
        return await self.db.scalar(stmt) or 0

    async def _eligible(self, user_id: str) -> List[str]:
        profile = await self.leveling.get_or_create(user_id)

        eligible = [achievement_id for level, achievement_id in LEVEL_MILESTONES if profile.level >= level]
        eligible += [achievement_id for days, achievement_id in STREAK_MILESTONES if profile.streak_days >= days]

        if await self._count_transactions(user_id, TransactionType.PURCHASE):
            eligible.append("first_purchase")
        if await self._count_transactions(user_id, TransactionType.SALE, with_counterparty=True):
            eligible.append("first_sale")

        openings = await self.db.scalar(
            select(func.count(MysteryBoxOpening.id)).where(MysteryBoxOpening.user_id == user_id)
        )
        if (openings or 0) >= MYSTERY_MASTER_OPENINGS:
            eligible.append("mystery_master")

        return [achievement_id for achievement_id in eligible if achievement_id in self.catalog]

    async def check_and_unlock(self, user_id: str) -> List[AchievementUnlockResult]:
        """
        Unlock every achievement the user currently qualifies for

        Achievement XP can itself cross a level milestone, so conditions are
        re-evaluated until a pass unlocks nothing new.
        """
        user_id = validate_user_id(user_id)
        unlocked: List[AchievementUnlockResult] = []

        while True:
            owned = await self._unlocked_ids(user_id)
            pending = [achievement_id for achievement_id in await self._eligible(user_id) if achievement_id not in owned]
            if not pending:
                break

            newly = 0
            for achievement_id in pending:
                result = await self.unlock(user_id, achievement_id)
                if result.success:
                    unlocked.append(result)
                    newly += 1
            if not newly:
                break

        return unlocked
