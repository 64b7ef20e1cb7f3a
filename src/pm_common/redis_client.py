"""Shared Redis connection for the balance cache.

Only created when BALANCE_CACHE_BACKEND=redis; nothing else in the service
keeps state in Redis.
"""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings

logger = logging.getLogger(__name__)

_redis: aioredis.Redis | None = None


def get_redis() -> aioredis.Redis:
    """Lazily create the client; the pool connects on first command."""
    global _redis  # noqa: PLW0603
    if _redis is None:
        _redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis


async def ping_redis() -> bool:
    try:
        return bool(await get_redis().ping())
    except RedisError as exc:
        logger.warning("Redis ping failed: %s", exc)
        return False


async def close_redis() -> None:
    global _redis  # noqa: PLW0603
    if _redis is not None:
        await _redis.aclose()
        _redis = None
