"""Daily quest generation, progress tracking and reward claims"""

from typing import Dict, List, Optional, Sequence
from datetime import date
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from flog_economy.core.exceptions import (
    QuestNotFoundException,
    QuestNotCompletedException,
    RewardAlreadyClaimedException,
)
from flog_economy.core.locks import UserLockRegistry, user_locks
from flog_economy.core.monitoring import quest_claims, OperationTimer
from flog_economy.models.quest import Quest, QuestProgress, QuestType
from flog_economy.models.wallet import TransactionType
from flog_economy.schemas.economy import QuestRewardResult
from flog_economy.services.activity_feed import ActivityFeedService
from flog_economy.services.catalogs import DAILY_QUESTS, QuestTemplate
from flog_economy.services.leveling import LevelingEngine
from flog_economy.services.wallet_ledger import WalletLedger
from flog_economy.utils.helpers import utcnow, utc_today
from flog_economy.utils.validators import validate_xp_amount, validate_user_id

logger = logging.getLogger(__name__)

def daily_quest_id(key: str, day: date) -> str:
    """Quest ids embed the UTC day, e.g. list_items_20250101"""
    return f"{key}_{day:%Y%m%d}"

class QuestTracker:
    """
    Tracks per-user progress against the day's quests

    Progress moves Created -> InProgress -> Completed -> Claimed and never
    goes back. Progress is clamped to the quest target and increments on a
    completed quest are ignored.
    """

    def __init__(
        self,
        db: AsyncSession,
        wallet: Optional[WalletLedger] = None,
        leveling: Optional[LevelingEngine] = None,
        activity: Optional[ActivityFeedService] = None,
        locks: Optional[UserLockRegistry] = None,
        templates: Sequence[QuestTemplate] = DAILY_QUESTS,
    ):
        self.db = db
        self.locks = locks or user_locks
        self.wallet = wallet or WalletLedger(db, locks=self.locks)
        self.leveling = leveling or LevelingEngine(db, locks=self.locks)
        self.activity = activity or ActivityFeedService(db)
        self.templates: Dict[str, QuestTemplate] = {template.key: template for template in templates}

    async def _load_quests(self, quest_ids: Sequence[str]) -> Dict[str, Quest]:
        result = await self.db.execute(
            select(Quest)
            .where(Quest.quest_id.in_(quest_ids))
            .execution_options(populate_existing=True)
        )
        return {quest.quest_id: quest for quest in result.scalars().all()}

    async def ensure_daily_quests(self, today: Optional[date] = None, commit: bool = True) -> List[Quest]:
        """
        Return the day's quests, creating any that are missing

        Safe to call concurrently: a duplicate insert from another worker
        trips the unique quest_id and the rows are read back instead.
        """
        today = today or utc_today()
        wanted = {daily_quest_id(key, today): template for key, template in self.templates.items()}

        async with self.locks.hold(f"quests:{today.isoformat()}"):
            existing = await self._load_quests(list(wanted))
            missing = [quest_id for quest_id in wanted if quest_id not in existing]

            if missing:
                for quest_id in missing:
                    template = wanted[quest_id]
                    self.db.add(Quest(
                        quest_id=quest_id,
                        quest_key=template.key,
                        quest_date=today,
                        name=template.name,
                        description=template.description,
                        quest_type=QuestType.DAILY,
                        target=template.target,
                        flog_reward=template.flog_reward,
                        xp_reward=template.xp_reward,
                        is_active=True,
                    ))
                try:
                    await self.db.flush()
                    if commit:
                        await self.db.commit()
                    logger.info(f"Generated {len(missing)} daily quests for {today.isoformat()}")
                except IntegrityError:
                    if not commit:
                        raise
                    await self.db.rollback()
                    logger.info(f"Daily quests for {today.isoformat()} were created concurrently, reloading")
                existing = await self._load_quests(list(wanted))

        return [existing[quest_id] for quest_id in wanted if quest_id in existing]

    def _new_progress(self, user_id: str, quest: Quest) -> QuestProgress:
        progress = QuestProgress(
            user_id=user_id,
            quest_id=quest.id,
            progress=0,
            completed=False,
            claimed=False,
        )
        progress.quest = quest
        self.db.add(progress)
        return progress

    async def _load_progress(self, user_id: str, quest_ids: Sequence[uuid.UUID]) -> Dict[uuid.UUID, QuestProgress]:
        result = await self.db.execute(
            select(QuestProgress)
            .where(QuestProgress.user_id == user_id, QuestProgress.quest_id.in_(quest_ids))
            .with_for_update(of=QuestProgress)
            .execution_options(populate_existing=True)
        )
        return {progress.quest_id: progress for progress in result.scalars().all()}

    async def get_user_progress(self, user_id: str, today: Optional[date] = None) -> List[QuestProgress]:
        """Progress on each of today's quests, created zeroed on first touch"""
        user_id = validate_user_id(user_id)
        quests = await self.ensure_daily_quests(today)

        async with self.locks.hold(user_id):
            try:
                by_quest = await self._load_progress(user_id, [quest.id for quest in quests])
                progress_rows = [
                    by_quest.get(quest.id) or self._new_progress(user_id, quest)
                    for quest in quests
                ]
                await self.db.flush()
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        return progress_rows

    async def increment_progress(
        self,
        user_id: str,
        quest_type: str,
        amount: int = 1,
        commit: bool = True,
        today: Optional[date] = None,
    ) -> QuestProgress:
        """Advance today's quest of the given type for a user"""
        user_id = validate_user_id(user_id)
        amount = validate_xp_amount(amount)
        if quest_type not in self.templates:
            raise QuestNotFoundException(f"Unknown quest type '{quest_type}'")

        today = today or utc_today()
        quests = await self.ensure_daily_quests(today, commit=commit)
        quest = next((q for q in quests if q.quest_key == quest_type), None)
        if quest is None:
            raise QuestNotFoundException(f"No '{quest_type}' quest for {today.isoformat()}")

        async with self.locks.hold(user_id):
            try:
                progress = (await self._load_progress(user_id, [quest.id])).get(quest.id)
                if progress is None:
                    progress = self._new_progress(user_id, quest)

                if not progress.completed:
                    progress.progress = min(progress.progress + amount, quest.target)
                    if progress.progress >= quest.target:
                        progress.completed = True
                        progress.completed_at = utcnow()
                        logger.info(f"User {user_id} completed quest {quest.quest_id}")

                await self.db.flush()
                if commit:
                    await self.db.commit()
            except Exception:
                if commit:
                    await self.db.rollback()
                raise

        return progress

    async def claim_reward(self, user_id: str, progress_id: uuid.UUID) -> QuestRewardResult:
        """
        Pay out a completed quest

        The FLOG credit, XP award and claimed flag commit together, so a
        reward is paid at most once.
        """
        user_id = validate_user_id(user_id)

        with OperationTimer("claim_quest_reward"):
            async with self.locks.hold(user_id):
                try:
                    result = await self.db.execute(
                        select(QuestProgress)
                        .where(QuestProgress.id == progress_id, QuestProgress.user_id == user_id)
                        .with_for_update(of=QuestProgress)
                        .execution_options(populate_existing=True)
                    )
                    progress = result.scalar_one_or_none()
                    if progress is None:
                        raise QuestNotFoundException()
                    if not progress.completed:
                        raise QuestNotCompletedException()
                    if progress.claimed:
                        raise RewardAlreadyClaimedException()

                    quest = progress.quest
                    quest_id, quest_key, quest_name = quest.quest_id, quest.quest_key, quest.name
                    flog_reward, xp_reward = quest.flog_reward, quest.xp_reward
                    await self.wallet.credit(
                        user_id,
                        flog_reward,
                        TransactionType.QUEST_REWARD,
                        f"Quest reward: {quest_name}",
                        commit=False,
                    )
                    level = await self.leveling.add_experience(user_id, xp_reward, commit=False)

                    progress.claimed = True
                    progress.claimed_at = utcnow()
                    await self.db.commit()
                except Exception:
                    await self.db.rollback()
                    raise

        quest_claims.labels(quest_key=quest_key).inc()
        logger.info(f"User {user_id} claimed {quest_id}: {flog_reward} FLOG, {xp_reward} XP")

        await self.activity.add_quest_complete_activity(user_id, quest_name)
        await self.activity.add_level_up_activity(user_id, level)

        return QuestRewardResult(
            message="Quest reward claimed!",
            quest_id=quest_id,
            flog_rewarded=flog_reward,
            xp_rewarded=xp_reward,
            leveled_up=level.leveled_up,
            new_level=level.new_level,
            new_title=level.new_title if level.leveled_up else None,
        )
