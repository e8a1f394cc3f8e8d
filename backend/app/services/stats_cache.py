"""
Explicit cache for the home page statistics

The cache is an object built per request (see ``get_stats_cache``) that
carries its own TTL and stores ``{value, cached_at}`` in Redis. Entries older
than the TTL are reloaded; if the reload fails, an entry younger than twice
the TTL is served instead.
"""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional
import json
import logging
import time

from redis.exceptions import RedisError

from app.core.config import settings
from app.core.redis_client import get_redis, RedisKeys, RedisTTL

logger = logging.getLogger(__name__)

STALE_FACTOR = 2


@dataclass(frozen=True)
class CachedValue:
    value: Dict[str, Any]
    cached_at: float


class StatsCache:
    """Timestamped cache entry with a TTL and a stale-on-error window"""

    def __init__(
        self,
        redis=None,
        ttl_seconds: int = RedisTTL.CACHE_SHORT,
        key: str = "portal_stats",
        clock: Callable[[], float] = time.time,
    ):
        self.redis = redis
        self.ttl_seconds = ttl_seconds
        self.key = RedisKeys.cache(key)
        self.clock = clock

    def is_fresh(self, entry: CachedValue, now: float) -> bool:
        return now - entry.cached_at < self.ttl_seconds

    def is_usable_stale(self, entry: CachedValue, now: float) -> bool:
        return now - entry.cached_at < self.ttl_seconds * STALE_FACTOR

    async def read(self) -> Optional[CachedValue]:
        if self.redis is None:
            return None
        try:
            raw = await self.redis.get(self.key)
        except RedisError as e:
            logger.warning(f"Stats cache read failed: {e}")
            return None
        if not raw:
            return None
        data = json.loads(raw)
        return CachedValue(value=data["value"], cached_at=float(data["cached_at"]))

    async def write(self, entry: CachedValue) -> None:
        if self.redis is None:
            return
        payload = json.dumps({"value": entry.value, "cached_at": entry.cached_at})
        try:
            await self.redis.set(self.key, payload, ex=self.ttl_seconds * STALE_FACTOR)
        except RedisError as e:
            logger.warning(f"Stats cache write failed: {e}")

    async def invalidate(self) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.delete(self.key)
        except RedisError as e:
            logger.warning(f"Stats cache invalidation failed: {e}")

    async def get_or_load(self, loader: Callable[[], Awaitable[Dict[str, Any]]]) -> CachedValue:
        now = self.clock()
        entry = await self.read()
        if entry is not None and self.is_fresh(entry, now):
            return entry

        try:
            value = await loader()
        except Exception as e:
            if entry is not None and self.is_usable_stale(entry, now):
                logger.warning(f"Serving stale portal stats after load failure: {e}")
                return entry
            raise

        entry = CachedValue(value=value, cached_at=now)
        await self.write(entry)
        return entry


def get_stats_cache() -> StatsCache:
    """FastAPI dependency: a cache bound to the current Redis client"""
    return StatsCache(redis=get_redis(), ttl_seconds=settings.STATS_CACHE_TTL_SECONDS)
