"""Shared fixtures: a fresh SQLite database per test"""

from random import Random

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from flog_economy.core.cache import RedisCache
from flog_economy.core.database import build_engine, build_session_factory, init_db, close_db
from flog_economy.core.locks import UserLockRegistry
from flog_economy.services.activity_feed import ActivityFeedService
from flog_economy.services.achievements import AchievementUnlocker
from flog_economy.services.bootstrap import seed_catalogs
from flog_economy.services.leveling import LevelingEngine
from flog_economy.services.marketplace import MarketplaceHooks
from flog_economy.services.mystery_box import MysteryBoxLootEngine
from flog_economy.services.quest_tracker import QuestTracker
from flog_economy.services.wallet_ledger import WalletLedger

@pytest.fixture
async def engine(tmp_path):
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'economy.db'}")
    await init_db(test_engine)
    yield test_engine
    await close_db(test_engine)

@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)

@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        await seed_catalogs(session)
        yield session

@pytest.fixture
def locks():
    return UserLockRegistry()

@pytest.fixture
def memory_cache():
    # Never connected, so every call uses the in-memory fallback
    return RedisCache(url="redis://localhost:1")

@pytest.fixture
def rng():
    return Random(1234)

@pytest.fixture
def wallet(db, locks):
    return WalletLedger(db, locks=locks)

@pytest.fixture
def leveling(db, locks, memory_cache):
    return LevelingEngine(db, locks=locks, cache=memory_cache)

@pytest.fixture
def activity(db):
    return ActivityFeedService(db)

@pytest.fixture
def quests(db, wallet, leveling, activity, locks):
    return QuestTracker(db, wallet=wallet, leveling=leveling, activity=activity, locks=locks)

@pytest.fixture
def achievements(db, wallet, leveling, activity, locks):
    return AchievementUnlocker(db, wallet=wallet, leveling=leveling, activity=activity, locks=locks)

@pytest.fixture
def boxes(db, wallet, leveling, activity, locks, rng):
    return MysteryBoxLootEngine(db, wallet=wallet, leveling=leveling, activity=activity, locks=locks, rng=rng)

@pytest.fixture
def marketplace(db, wallet, leveling, locks):
    return MarketplaceHooks(db, locks=locks, wallet=wallet, leveling=leveling)

class UnavailableSession(AsyncSession):
    """Session whose commits always fail, standing in for a feed outage"""

    async def commit(self):
        raise RuntimeError("database unavailable")

@pytest.fixture
def broken_feed(engine):
    return async_sessionmaker(engine, class_=UnavailableSession, expire_on_commit=False)
