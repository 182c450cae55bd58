# megaflix/redis_client.py
import redis.asyncio as redis
from .config import settings
import json
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


class RedisClient:
    """
    Async Redis client used as a best-effort cache.
    Every operation degrades to a miss when Redis is disabled or unreachable.
    """

    def __init__(self, url: Optional[str] = None, enabled: Optional[bool] = None):
        self.url = url or settings.REDIS_URL
        self.enabled = settings.CACHE_ENABLED if enabled is None else enabled
        self.redis: Optional[redis.Redis] = None
        self.pool: Optional[redis.ConnectionPool] = None

    async def connect(self):
        """Initialize Redis connection with connection pooling"""
        if not self.enabled:
            logger.info("ℹ️ Redis cache disabled")
            return

        try:
            if self.redis:
                logger.warning("⚠️ Redis already connected")
                return

            self.pool = redis.ConnectionPool.from_url(
                self.url,
                decode_responses=True,
                max_connections=20,
                socket_keepalive=True,
                socket_connect_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30,
            )

            self.redis = redis.Redis(connection_pool=self.pool)

            # Test connection
            await self.redis.ping()

            logger.info("✅ Redis connected with connection pooling")

        except Exception as e:
            logger.error(f"❌ Redis connection failed: {e}")
            self.redis = None
            self.pool = None
            raise

    async def disconnect(self):
        """Close Redis connection and pool"""
        try:
            if self.redis:
                await self.redis.close()
                logger.info("✅ Redis connection closed")

            if self.pool:
                await self.pool.disconnect()
                logger.info("✅ Redis pool disconnected")

            self.redis = None
            self.pool = None

        except Exception as e:
            logger.error(f"❌ Redis disconnect error: {e}")

    async def _ensure_connected(self) -> bool:
        """Ensure Redis is connected (auto-reconnect)"""
        if not self.enabled:
            return False
        if not self.redis:
            await self.connect()
        return self.redis is not None

    async def ping(self) -> bool:
        """Check if Redis is alive"""
        try:
            if not await self._ensure_connected():
                return False
            return await self.redis.ping()
        except Exception as e:
            logger.error(f"❌ Redis ping failed: {e}")
            return False

    async def get(self, key: str) -> Optional[Any]:
        """Get value from Redis with JSON deserialization"""
        try:
            if not await self._ensure_connected():
                return None

            value = await self.redis.get(key)
            if value:
                try:
                    return json.loads(value)
                except json.JSONDecodeError:
                    return value
            return None

        except Exception as e:
            logger.error(f"❌ Redis GET error for key '{key}': {e}")
            return None

    async def set(self, key: str, value: Any, expire: Optional[int] = None) -> bool:
        """
        Set value in Redis with JSON serialization

        Args:
            key: Redis key
            value: Value to store (JSON serialized if not a string)
            expire: Expiration time in seconds (default: CATALOG_CACHE_EXPIRATION)

        Returns:
            True if successful, False otherwise
        """
        try:
            if not await self._ensure_connected():
                return False

            if expire is None:
                expire = settings.CATALOG_CACHE_EXPIRATION

            serialized_value = json.dumps(value) if not isinstance(value, str) else value
            result = await self.redis.setex(key, expire, serialized_value)
            return bool(result)

        except Exception as e:
            logger.error(f"❌ Redis SET error for key '{key}': {e}")
            return False

    async def get_stats(self) -> dict:
        """Get Redis statistics"""
        if not self.enabled:
            return {"connected": False, "enabled": False}

        try:
            if not await self._ensure_connected():
                return {"connected": False, "enabled": True}
            info = await self.redis.info()

            return {
                "connected": await self.ping(),
                "enabled": True,
                "version": info.get("redis_version", "unknown"),
                "used_memory": info.get("used_memory_human", "0B"),
                "keyspace": info.get("db0", {}),
            }

        except Exception as e:
            logger.error(f"❌ Redis stats error: {e}")
            return {
                "connected": False,
                "enabled": True,
                "error": str(e)
            }


# Global Redis client instance
redis_client = RedisClient()


async def get_redis_stats() -> dict:
    """Get Redis statistics (convenience function)"""
    return await redis_client.get_stats()
