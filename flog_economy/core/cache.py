"""
Redis cache configuration and utilities
Used for read-heavy views such as the leaderboard
"""

import redis.asyncio as redis
from typing import Optional, Any, Union
import json
from datetime import timedelta, datetime
import logging

from .config import settings

logger = logging.getLogger(__name__)

class RedisCache:
    """Redis cache manager with in-memory fallback"""

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.REDIS_URL
        self.redis_client: Optional[redis.Redis] = None
        self._fallback_cache: dict = {}  # In-memory fallback for development
        self._use_redis = False

    async def connect(self):
        """Initialize Redis connection"""
        try:
            self.redis_client = redis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=settings.REDIS_DECODE_RESPONSES,
                max_connections=settings.REDIS_MAX_CONNECTIONS
            )
            await self.redis_client.ping()
            logger.info("Redis connection established")
            self._use_redis = True
        except Exception as e:
            logger.warning(f"Failed to connect to Redis, using in-memory fallback: {e}")
            self._use_redis = False

    async def disconnect(self):
        """Close Redis connection"""
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None
            logger.info("Redis connection closed")

    async def get(self, key: str) -> Optional[Any]:
        """Get JSON value from cache"""
        try:
            if self._use_redis and self.redis_client:
                value = await self.redis_client.get(key)
                return json.loads(value) if value else None

            cache_item = self._fallback_cache.get(key)
            if cache_item:
                if cache_item.get('expires_at') and datetime.now() > cache_item['expires_at']:
                    del self._fallback_cache[key]
                    return None
                return cache_item['value']
            return None
        except Exception as e:
            logger.error(f"Cache get error: {e}")
            return None

    async def set(
        self,
        key: str,
        value: Any,
        expire: Optional[Union[int, timedelta]] = None
    ) -> bool:
        """Set JSON value in cache with optional expiration"""
        if isinstance(expire, timedelta):
            expire = int(expire.total_seconds())
        try:
            if self._use_redis and self.redis_client:
                payload = json.dumps(value, default=str)
                if expire:
                    return bool(await self.redis_client.setex(key, expire, payload))
                return bool(await self.redis_client.set(key, payload))

            cache_item = {'value': value}
            if expire:
                cache_item['expires_at'] = datetime.now() + timedelta(seconds=expire)
            self._fallback_cache[key] = cache_item
            return True
        except Exception as e:
            logger.error(f"Cache set error: {e}")
            return False

    async def delete(self, key: str) -> bool:
        """Delete key from cache"""
        try:
            if self._use_redis and self.redis_client:
                return bool(await self.redis_client.delete(key))
            return self._fallback_cache.pop(key, None) is not None
        except Exception as e:
            logger.error(f"Cache delete error: {e}")
            return False

    async def delete_pattern(self, prefix: str) -> int:
        """Delete all keys starting with prefix"""
        try:
            if self._use_redis and self.redis_client:
                keys = [key async for key in self.redis_client.scan_iter(match=f"{prefix}*")]
                if keys:
                    return await self.redis_client.delete(*keys)
                return 0
            keys = [key for key in self._fallback_cache if key.startswith(prefix)]
            for key in keys:
                del self._fallback_cache[key]
            return len(keys)
        except Exception as e:
            logger.error(f"Cache delete pattern error: {e}")
            return 0

# Global cache instance
cache = RedisCache()
