"""
Application configuration management using Pydantic Settings
Handles environment variables and the economy tuning constants
"""

from pydantic_settings import BaseSettings
from decimal import Decimal
from typing import Optional
from functools import lru_cache

class Settings(BaseSettings):
    """Main application settings"""

    # Application Settings
    APP_NAME: str = "FLOG Economy Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./flog_economy.db"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 40
    DATABASE_POOL_TIMEOUT: int = 30
    DATABASE_ECHO: bool = False

    # Redis Configuration
    REDIS_URL: str = "redis://localhost:6379"
    REDIS_DECODE_RESPONSES: bool = True
    REDIS_MAX_CONNECTIONS: int = 50

    # Celery Configuration
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"
    CELERY_TIMEZONE: str = "UTC"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = "logs/flog_economy.log"
    LOG_MAX_BYTES: int = 10 * 1024 * 1024  # 10MB
    LOG_BACKUP_COUNT: int = 5

    # Wallet
    STARTING_BALANCE: Decimal = Decimal("1000")
    DAILY_LOGIN_BONUS: Decimal = Decimal("50")
    LISTING_REWARD: Decimal = Decimal("10")
    MARKETPLACE_FEE_PERCENTAGE: Decimal = Decimal("0.05")  # 5%
    DEFAULT_HISTORY_LIMIT: int = 50

    # Display-only exchange rates
    FLOG_TO_GBP: Decimal = Decimal("0.88")
    FLOG_TO_USD: Decimal = Decimal("1.10")
    FLOG_TO_EUR: Decimal = Decimal("1.02")

    # Experience
    PURCHASE_XP_REWARD: int = 50
    SALE_XP_REWARD: int = 100
    MAX_LEVEL: int = 50
    BASE_XP_FOR_LEVEL: int = 100
    XP_MULTIPLIER_PER_LEVEL: int = 50

    # Mystery box prices
    BRONZE_BOX_PRICE: Decimal = Decimal("100")
    SILVER_BOX_PRICE: Decimal = Decimal("250")
    GOLD_BOX_PRICE: Decimal = Decimal("500")

    # Activity feed / leaderboard
    ACTIVITY_RETENTION_DAYS: int = 7
    LEADERBOARD_CACHE_SECONDS: int = 60

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def database_url_async(self) -> str:
        """Convert sync database URL to async"""
        if self.DATABASE_URL.startswith("postgresql://"):
            return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")
        elif self.DATABASE_URL.startswith("sqlite://"):
            return self.DATABASE_URL.replace("sqlite://", "sqlite+aiosqlite://")
        return self.DATABASE_URL

@lru_cache()
def get_settings() -> Settings:
    """
    Create cached settings instance
    This ensures settings are loaded only once
    """
    return Settings()

# Global settings instance
settings = get_settings()
