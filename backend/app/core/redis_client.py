"""
Redis client for the portal statistics cache

Redis is optional: when it cannot be reached the API keeps serving and the
statistics are computed on every request.
"""
import redis.asyncio as redis
from redis.exceptions import RedisError
from typing import Optional
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Redis connection manager"""

    client: Optional[redis.Redis] = None


redis_client = RedisClient()


async def connect_redis():
    """Connect to Redis, leaving the client unset if it is unreachable"""
    logger.info(f"Connecting to Redis at {settings.REDIS_URL}")

    client = redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.warning(f"Redis unavailable, statistics will not be cached: {e}")
        await client.close()
        redis_client.client = None
        return

    redis_client.client = client
    logger.info("Redis connection established")


async def disconnect_redis():
    """Close Redis connection"""
    if redis_client.client:
        await redis_client.client.close()
        redis_client.client = None
        logger.info("Redis connection closed")


def get_redis() -> Optional[redis.Redis]:
    """Get Redis client instance (None when caching is disabled)"""
    return redis_client.client


class RedisKeys:
    """Redis key naming conventions"""

    @staticmethod
    def cache(key: str) -> str:
        return f"cache:{key}"


class RedisTTL:
    """TTL values for cached data"""

    CACHE_SHORT = 300  # 5 minutes
