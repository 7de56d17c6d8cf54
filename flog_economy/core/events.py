"""
Application lifecycle events
Handles startup and shutdown of the economy engine inside a host app
"""

from fastapi import FastAPI
import logging
from contextlib import asynccontextmanager

from .database import init_db, close_db, get_db_context
from .cache import cache
from .monitoring import setup_logging
from .config import settings

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager
    Creates tables, seeds the catalogs and connects the cache
    """
    # Imported here to keep core free of service imports at module load
    from flog_economy.services.bootstrap import seed_catalogs

    # Startup
    try:
        # Setup logging
        setup_logging()
        logger.info(f"Starting {settings.APP_NAME}...")

        # Initialize database
        await init_db()
        async with get_db_context() as session:
            await seed_catalogs(session)
        logger.info("Database initialized")

        # Connect to Redis
        await cache.connect()
        logger.info("Cache connected")

        logger.info(f"{settings.APP_NAME} started successfully")

        yield

    finally:
        # Shutdown
        logger.info(f"Shutting down {settings.APP_NAME}...")

        # Close database connections
        await close_db()

        # Disconnect from Redis
        await cache.disconnect()
        logger.info("Cache disconnected")

        logger.info(f"{settings.APP_NAME} shutdown complete")
