from typing import Any, Optional
from ..redis_client import RedisClient, redis_client


class CacheService:
    """Catalog response cache keyed by TMDB endpoint and parameters"""

    def __init__(self, client: Optional[RedisClient] = None):
        self.redis = client or redis_client

    @staticmethod
    def catalog_key(endpoint: str, params: Optional[dict] = None) -> str:
        suffix = "&".join(f"{k}={params[k]}" for k in sorted(params or {}))
        return f"catalog:{endpoint}?{suffix}" if suffix else f"catalog:{endpoint}"

    async def get_catalog(self, endpoint: str, params: Optional[dict] = None) -> Optional[Any]:
        """Get cached catalog payload"""
        return await self.redis.get(self.catalog_key(endpoint, params))

    async def set_catalog(self, endpoint: str, params: Optional[dict], payload: Any, expire: Optional[int] = None) -> bool:
        """Cache catalog payload"""
        return await self.redis.set(self.catalog_key(endpoint, params), payload, expire)


cache_service = CacheService()
