"""Redis connection backing the shared resolution cache"""

import logging

import redis.asyncio as redis
from core.config import settings

logger = logging.getLogger(__name__)

_redis_client: redis.Redis | None = None


async def get_redis(url: str | None = None) -> redis.Redis:
    """Get the cache's Redis client, connecting on first use"""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            url or settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True
        )
    return _redis_client


async def redis_healthy() -> bool:
    """Ping Redis; False when not connected or unreachable"""
    if _redis_client is None:
        return False
    try:
        return bool(await _redis_client.ping())
    except redis.RedisError as e:
        logger.warning(f"Redis ping failed: {e}")
        return False


async def close_redis():
    """Close Redis connection"""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
