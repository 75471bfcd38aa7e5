"""
Redis client wrapper.

Only used when `realtime_backend = "redis"`: every API process publishes
real-time events to one pub/sub channel and relays what it receives to its
own WebSocket connections, so rooms work across processes.
"""
import logging
from typing import Optional

import redis.asyncio as aioredis

from devconnect.config import settings

logger = logging.getLogger(__name__)

_redis: Optional[aioredis.Redis] = None


async def init_redis() -> aioredis.Redis:
    global _redis
    _redis = aioredis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        decode_responses=True,
    )
    await _redis.ping()
    logger.info("Redis connected at %s:%s", settings.redis_host, settings.redis_port)
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
