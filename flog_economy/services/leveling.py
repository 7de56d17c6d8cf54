"""Player levels, experience and login streaks"""

from typing import List, NamedTuple, Optional, Tuple
from datetime import datetime, timedelta
import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from flog_economy.core.cache import RedisCache, cache as default_cache
from flog_economy.core.config import settings
from flog_economy.core.locks import UserLockRegistry, user_locks
from flog_economy.core.monitoring import level_ups
from flog_economy.models.gamification import UserGamification
from flog_economy.models.achievement import UserAchievement
from flog_economy.models.quest import QuestProgress
from flog_economy.schemas.economy import LevelUpResult, UserStats, LeaderboardEntry
from flog_economy.utils.helpers import utcnow, as_utc
from flog_economy.utils.validators import validate_xp_amount, validate_user_id, validate_limit

logger = logging.getLogger(__name__)

LEADERBOARD_CACHE_PREFIX = "leaderboard:"

TITLES = (
    (50, "Trading Legend"),
    (40, "Master Merchant"),
    (30, "Expert Trader"),
    (20, "Skilled Dealer"),
    (10, "Experienced Seller"),
    (5, "Apprentice Trader"),
)
DEFAULT_TITLE = "Novice Trader"

def xp_threshold(level: int) -> int:
    """XP needed to advance from level to level + 1"""
    return settings.BASE_XP_FOR_LEVEL + level * settings.XP_MULTIPLIER_PER_LEVEL

def title_for(level: int) -> str:
    for minimum, title in TITLES:
        if level >= minimum:
            return title
    return DEFAULT_TITLE

def settle(xp: int, level: int, max_level: int = settings.MAX_LEVEL) -> Tuple[int, int, bool]:
    """
    Convert accumulated XP into levels

    Subtracts the threshold of the current level while XP covers it.
    At max_level the remaining XP is kept as is.

    Returns:
        (remaining_xp, new_level, leveled_up)
    """
    leveled_up = False
    while level < max_level and xp >= xp_threshold(level):
        xp -= xp_threshold(level)
        level += 1
        leveled_up = True
    return xp, level, leveled_up

class StreakUpdate(NamedTuple):
    streak_days: int
    first_login_today: bool

class LevelingEngine:
    """Owns level, XP, title and streak state for each user"""

    def __init__(
        self,
        db: AsyncSession,
        locks: Optional[UserLockRegistry] = None,
        cache: Optional[RedisCache] = None,
        max_level: int = settings.MAX_LEVEL,
    ):
        self.db = db
        self.locks = locks or user_locks
        self.cache = cache or default_cache
        self.max_level = max_level

    async def _load_or_create(self, user_id: str) -> UserGamification:
        result = await self.db.execute(
            select(UserGamification)
            .where(UserGamification.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        profile = result.scalar_one_or_none()
        if profile is None:
            profile = UserGamification(
                user_id=user_id,
                level=1,
                xp=0,
                title=title_for(1),
                streak_days=0,
                last_login=None,
            )
            self.db.add(profile)
            await self.db.flush()
        return profile

    async def get_or_create(self, user_id: str, commit: bool = True) -> UserGamification:
        user_id = validate_user_id(user_id)
        async with self.locks.hold(user_id):
            try:
                profile = await self._load_or_create(user_id)
                await self.db.flush()
                if commit:
                    await self.db.commit()
            except Exception:
                if commit:
                    await self.db.rollback()
                raise
        return profile

    async def add_experience(self, user_id: str, amount: int, commit: bool = True) -> LevelUpResult:
        """Award XP and settle any level-ups it causes"""
        user_id = validate_user_id(user_id)
        amount = validate_xp_amount(amount)

        async with self.locks.hold(user_id):
            try:
                profile = await self._load_or_create(user_id)
                old_level = profile.level
                xp, level, leveled_up = settle(profile.xp + amount, profile.level, self.max_level)
                profile.xp = xp
                profile.level = level
                if leveled_up:
                    profile.title = title_for(level)
                await self.db.flush()
                if commit:
                    await self.db.commit()
            except Exception:
                if commit:
                    await self.db.rollback()
                raise

        if leveled_up:
            level_ups.inc(level - old_level)
            logger.info(f"User {user_id} leveled up {old_level} -> {level} ({profile.title})")
            await self.cache.delete_pattern(LEADERBOARD_CACHE_PREFIX)

        return LevelUpResult(
            leveled_up=leveled_up,
            old_level=old_level,
            new_level=level,
            current_xp=xp,
            xp_for_next=xp_threshold(level),
            new_title=profile.title,
        )

    async def update_login_streak(
        self,
        user_id: str,
        now: Optional[datetime] = None,
        commit: bool = True,
    ) -> StreakUpdate:
        """
        Record a login and advance the streak

        Less than a day since the last login leaves the streak alone, one to
        two days extends it, anything longer starts over at 1. The very first
        login starts the streak at 1.
        """
        user_id = validate_user_id(user_id)
        now = as_utc(now) if now is not None else utcnow()

        async with self.locks.hold(user_id):
            try:
                profile = await self._load_or_create(user_id)
                last_login = as_utc(profile.last_login)

                if last_login is None:
                    profile.streak_days = 1
                else:
                    elapsed = now - last_login
                    if timedelta(days=1) <= elapsed < timedelta(days=2):
                        profile.streak_days += 1
                    elif elapsed >= timedelta(days=2):
                        profile.streak_days = 1

                first_login_today = last_login is None or last_login.date() < now.date()
                profile.last_login = now
                await self.db.flush()
                if commit:
                    await self.db.commit()
            except Exception:
                if commit:
                    await self.db.rollback()
                raise

        return StreakUpdate(profile.streak_days, first_login_today)

    async def get_user_stats(self, user_id: str) -> UserStats:
        profile = await self.get_or_create(user_id)

        achievement_count = await self.db.scalar(
            select(func.count(UserAchievement.id)).where(UserAchievement.user_id == profile.user_id)
        )
        completed_quests_count = await self.db.scalar(
            select(func.count(QuestProgress.id)).where(
                QuestProgress.user_id == profile.user_id,
                QuestProgress.completed.is_(True),
            )
        )

        return UserStats(
            user_id=profile.user_id,
            level=profile.level,
            xp=profile.xp,
            xp_for_next=xp_threshold(profile.level),
            title=profile.title,
            streak_days=profile.streak_days,
            achievement_count=achievement_count or 0,
            completed_quests_count=completed_quests_count or 0,
        )

    async def get_leaderboard(self, limit: int = 100) -> List[LeaderboardEntry]:
        """Top players by level then XP, cached briefly"""
        limit = validate_limit(limit)
        cache_key = f"{LEADERBOARD_CACHE_PREFIX}{limit}"

        cached = await self.cache.get(cache_key)
        if cached is not None:
            return [LeaderboardEntry(**entry) for entry in cached]

        result = await self.db.execute(
            select(UserGamification)
            .order_by(UserGamification.level.desc(), UserGamification.xp.desc())
            .limit(limit)
        )
        leaderboard = [
            LeaderboardEntry(
                rank=rank,
                user_id=profile.user_id,
                level=profile.level,
                xp=profile.xp,
                title=profile.title,
            )
            for rank, profile in enumerate(result.scalars().all(), start=1)
        ]

        await self.cache.set(
            cache_key,
            [entry.model_dump() for entry in leaderboard],
            expire=settings.LEADERBOARD_CACHE_SECONDS,
        )
        return leaderboard
