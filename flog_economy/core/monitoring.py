# FLOG Economy Monitoring Configuration
# Prometheus metrics and logging setup

import logging
import logging.handlers
import os
import time
from typing import Optional

from prometheus_client import Counter, Histogram

from .config import settings

# Wallet metrics
flog_credited = Counter('flog_credited_total', 'FLOG credited to wallets', ['kind'])
flog_debited = Counter('flog_debited_total', 'FLOG debited from wallets', ['kind'])
insufficient_funds = Counter('flog_insufficient_funds_total', 'Debits rejected for insufficient balance', ['kind'])

# Progression metrics
level_ups = Counter('player_level_ups_total', 'Level increments awarded')
quest_claims = Counter('quest_rewards_claimed_total', 'Quest rewards claimed', ['quest_key'])
achievements_unlocked = Counter('achievements_unlocked_total', 'Achievements unlocked', ['achievement_id'])

# Mystery box metrics
boxes_opened = Counter('mystery_boxes_opened_total', 'Mystery boxes opened', ['tier'])
loot_rarity = Counter('mystery_box_rewards_total', 'Mystery box rewards by rarity', ['tier', 'rarity'])

# Operation timing
operation_duration = Histogram('economy_operation_duration_seconds', 'Economy operation duration', ['operation'])

def setup_logging(log_level: Optional[str] = None, log_file: Optional[str] = None):
    """Configure structured logging for the application"""

    log_level = log_level or os.getenv("LOG_LEVEL", settings.LOG_LEVEL)
    log_file = log_file if log_file is not None else settings.LOG_FILE

    # Configure logging format
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers = [console_handler]

    # File handler with rotation
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=settings.LOG_MAX_BYTES,
            backupCount=settings.LOG_BACKUP_COUNT
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    # Configure root logger
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        handlers=handlers
    )

    # Silence noisy loggers in production
    if settings.ENVIRONMENT == "production":
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

class OperationTimer:
    """Time an economy operation and record it in the duration histogram"""

    def __init__(self, operation: str):
        self.operation = operation
        self.start_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.perf_counter() - self.start_time
        operation_duration.labels(operation=self.operation).observe(duration)
        if exc_type is not None:
            logger.debug(f"{self.operation} failed after {duration:.3f}s: {exc_type.__name__}")
