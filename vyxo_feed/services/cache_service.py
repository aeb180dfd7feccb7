"""
Trending Cache

Holds the latest trending snapshot. The scorer decides freshness from
the snapshot's computed_at; caches only store and return it.

Backends:
- InMemoryTrendingCache: process-local, one snapshot per worker
- RedisTrendingCache: shared by every instance pointing at the same Redis
"""

from typing import Optional, Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from pydantic import ValidationError

from ..config import Settings, get_settings
from ..core.logging import get_logger
from ..models.video_card import TrendingSnapshot

logger = get_logger(__name__)

# Redis client singleton
_redis_client: Optional[aioredis.Redis] = None


def get_redis_client() -> aioredis.Redis:
    """Get or create the async Redis client (connects lazily)."""
    global _redis_client
    
    if _redis_client is None:
        _redis_client = aioredis.from_url(
            get_settings().redis_url,
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5,
        )
    return _redis_client


class TrendingCache(Protocol):
    """Storage for the trending snapshot."""
    
    ttl: float
    
    async def get(self) -> Optional[TrendingSnapshot]:
        ...
    
    async def set(self, snapshot: TrendingSnapshot) -> None:
        ...


class InMemoryTrendingCache:
    """Process-local snapshot holder."""
    
    def __init__(self, ttl: float = 3600):
        self.ttl = ttl
        self._snapshot: Optional[TrendingSnapshot] = None
    
    async def get(self) -> Optional[TrendingSnapshot]:
        return self._snapshot
    
    async def set(self, snapshot: TrendingSnapshot) -> None:
        self._snapshot = snapshot
    
    def clear(self):
        self._snapshot = None


class RedisTrendingCache:
    """
    Snapshot stored as JSON under a single Redis key.
    
    The key outlives the TTL (2x) so a stale copy stays available when
    serving stale on recompute failure is enabled. The last snapshot this
    instance wrote or read is also kept locally and served while Redis is
    unreachable, so an outage does not force a recompute on every request.
    """
    
    KEY = "trending:snapshot"
    
    def __init__(self, redis_client: aioredis.Redis, ttl: float = 3600):
        self.redis = redis_client
        self.ttl = ttl
        self._local: Optional[TrendingSnapshot] = None
    
    async def get(self) -> Optional[TrendingSnapshot]:
        try:
            raw = await self.redis.get(self.KEY)
        except RedisError as e:
            logger.warning("trending_cache_get_failed", error=str(e), local_fallback=self._local is not None)
            return self._local
        
        if not raw:
            return None
        
        try:
            snapshot = TrendingSnapshot.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("trending_cache_corrupt", error=str(e))
            return None
        
        self._local = snapshot
        return snapshot
    
    async def set(self, snapshot: TrendingSnapshot) -> None:
        self._local = snapshot
        try:
            await self.redis.set(
                self.KEY,
                snapshot.model_dump_json(),
                ex=int(self.ttl * 2),
            )
        except RedisError as e:
            logger.warning("trending_cache_set_failed", error=str(e))


def build_trending_cache(settings: Optional[Settings] = None) -> TrendingCache:
    """Pick the cache backend named in settings."""
    settings = settings or get_settings()
    ttl = settings.trending_cache_ttl_seconds
    
    if settings.trending_cache_backend == "redis":
        logger.info("trending_cache_backend", backend="redis")
        return RedisTrendingCache(get_redis_client(), ttl=ttl)
    
    logger.info("trending_cache_backend", backend="memory")
    return InMemoryTrendingCache(ttl=ttl)
