"""Economy maintenance tasks"""

from celery.utils.log import get_task_logger
import asyncio

from flog_economy.core.celery_app import celery_app
from flog_economy.core.config import settings
from flog_economy.core.database import build_engine, build_session_factory
from flog_economy.services.activity_feed import ActivityFeedService
from flog_economy.services.quest_tracker import QuestTracker

logger = get_task_logger(__name__)

def run_async(factory):
    """Run a coroutine factory on a private event loop with its own engine"""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    async def runner():
        task_engine = build_engine(settings.database_url_async)
        try:
            async with build_session_factory(task_engine)() as session:
                return await factory(session)
        finally:
            await task_engine.dispose()

    try:
        return loop.run_until_complete(runner())
    finally:
        loop.close()

async def _cleanup_activity_feed(session, days: int) -> int:
    return await ActivityFeedService(session).cleanup_old_activities(days)

async def _generate_daily_quests(session) -> int:
    quests = await QuestTracker(session).ensure_daily_quests()
    return len(quests)

@celery_app.task(name="cleanup_activity_feed")
def cleanup_activity_feed(days: int = settings.ACTIVITY_RETENTION_DAYS):
    """Remove activity feed entries past the retention window"""
    try:
        deleted = run_async(lambda session: _cleanup_activity_feed(session, days))
        logger.info(f"Deleted {deleted} activity feed entries")
        return {"deleted_count": deleted}
    except Exception as e:
        logger.error(f"Error cleaning up activity feed: {str(e)}")
        raise

@celery_app.task(name="generate_daily_quests")
def generate_daily_quests():
    """Make sure today's quests exist before the first player asks"""
    try:
        count = run_async(_generate_daily_quests)
        logger.info(f"{count} daily quests available")
        return {"quest_count": count}
    except Exception as e:
        logger.error(f"Error generating daily quests: {str(e)}")
        raise
