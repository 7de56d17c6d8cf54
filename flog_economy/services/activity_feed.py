"""
Activity feed service

Writes are fire-and-forget: callers record activity only after their own
unit of work has committed, and a failed write is logged and dropped.
"""

from typing import Optional, List, Dict, Any
from decimal import Decimal
from datetime import timedelta
import logging

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from flog_economy.core.config import settings
from flog_economy.models.activity import ActivityFeed, ActivityType
from flog_economy.schemas.economy import LevelUpResult
from flog_economy.utils.helpers import utcnow, format_flog
from flog_economy.utils.validators import validate_limit

logger = logging.getLogger(__name__)

class ActivityFeedService:
    """Service for the public marketplace activity feed"""

    def __init__(self, db: AsyncSession, session_factory: Optional[async_sessionmaker] = None):
        self.db = db
        # Writes use their own session so a failed insert never rolls back
        # or expires the caller's objects
        self.session_factory = session_factory or async_sessionmaker(
            db.bind, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

    async def add_activity(
        self,
        activity_type: ActivityType,
        user_id: str,
        message: str,
        username: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[ActivityFeed]:
        """Persist one activity, returning None when the write failed"""
        activity = ActivityFeed(
            activity_type=activity_type,
            user_id=user_id,
            username=username or user_id,
            message=message,
            details=details or {},
        )
        try:
            async with self.session_factory() as session:
                session.add(activity)
                await session.commit()
        except Exception as e:
            logger.error(f"Failed to record {activity_type.value} activity for {user_id}: {e}")
            return None
        return activity

    async def add_purchase_activity(self, buyer_id: str, item_name: str, amount: Decimal, username: Optional[str] = None):
        name = username or buyer_id
        return await self.add_activity(
            ActivityType.PURCHASE,
            buyer_id,
            f"{name} just bought {item_name} for {format_flog(amount)}!",
            username=name,
            details={"item_name": item_name, "amount": str(amount)},
        )

    async def add_listing_activity(self, seller_id: str, item_name: str, price: Optional[Decimal] = None, username: Optional[str] = None):
        name = username or seller_id
        message = f"{name} listed {item_name}"
        if price is not None:
            message += f" for {format_flog(price)}"
        return await self.add_activity(
            ActivityType.LISTING,
            seller_id,
            message,
            username=name,
            details={"item_name": item_name, "price": str(price) if price is not None else None},
        )

    async def add_achievement_activity(self, user_id: str, achievement_name: str, icon: str, username: Optional[str] = None):
        name = username or user_id
        return await self.add_activity(
            ActivityType.ACHIEVEMENT,
            user_id,
            f"{name} unlocked achievement: {icon} {achievement_name}!",
            username=name,
            details={"achievement_name": achievement_name, "icon": icon},
        )

    async def add_level_up_activity(self, user_id: str, result: LevelUpResult, username: Optional[str] = None):
        """Record a level-up, ignoring results that did not level"""
        if not result.leveled_up:
            return None
        name = username or user_id
        return await self.add_activity(
            ActivityType.LEVEL_UP,
            user_id,
            f"{name} reached level {result.new_level} - {result.new_title}!",
            username=name,
            details={"new_level": result.new_level, "title": result.new_title},
        )

    async def add_quest_complete_activity(self, user_id: str, quest_name: str, username: Optional[str] = None):
        name = username or user_id
        return await self.add_activity(
            ActivityType.QUEST_COMPLETE,
            user_id,
            f"{name} completed quest: {quest_name}",
            username=name,
            details={"quest_name": quest_name},
        )

    async def add_mystery_box_activity(self, user_id: str, box_name: str, item_count: int, username: Optional[str] = None):
        name = username or user_id
        return await self.add_activity(
            ActivityType.MYSTERY_BOX,
            user_id,
            f"{name} opened a {box_name} and got {item_count} items!",
            username=name,
            details={"box_name": box_name, "item_count": item_count},
        )

    async def get_recent_activity(self, limit: int = 50) -> List[ActivityFeed]:
        result = await self.db.execute(
            select(ActivityFeed)
            .order_by(ActivityFeed.created_at.desc())
            .limit(validate_limit(limit))
        )
        return list(result.scalars().all())

    async def get_user_activity(self, user_id: str, limit: int = 50) -> List[ActivityFeed]:
        result = await self.db.execute(
            select(ActivityFeed)
            .where(ActivityFeed.user_id == user_id)
            .order_by(ActivityFeed.created_at.desc())
            .limit(validate_limit(limit))
        )
        return list(result.scalars().all())

    async def cleanup_old_activities(self, days_to_keep: int = settings.ACTIVITY_RETENTION_DAYS) -> int:
        """Delete activity older than the retention window"""
        cutoff = utcnow() - timedelta(days=days_to_keep)
        result = await self.db.execute(
            delete(ActivityFeed).where(ActivityFeed.created_at < cutoff)
        )
        await self.db.commit()

        deleted = result.rowcount or 0
        logger.info(f"Removed {deleted} activity entries older than {days_to_keep} days")
        return deleted
