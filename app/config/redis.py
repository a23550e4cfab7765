# app/config/redis.py
"""Redis connectivity checks for the host that backs the Celery broker"""
import redis.asyncio as redis
from typing import Optional

from app.config.settings import get_settings

settings = get_settings()

_redis_pool: Optional[redis.ConnectionPool] = None


def get_redis_pool() -> redis.ConnectionPool:
    """Get or create the shared connection pool"""
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = redis.ConnectionPool.from_url(
            settings.REDIS_URL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
    return _redis_pool


async def get_redis() -> redis.Redis:
    return redis.Redis(connection_pool=get_redis_pool())


async def ping_broker_host() -> bool:
    """
    True when Redis answers PING.

    Raises:
        RedisError / OSError when the host is unreachable
    """
    client = await get_redis()
    try:
        return bool(await client.ping())
    finally:
        await client.aclose()
