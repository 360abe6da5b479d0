"""Redis connection for the shared cache backend."""

from __future__ import annotations

from redis.asyncio import Redis
from redis.exceptions import RedisError

from marketlens.core.exceptions import CacheUnavailableError
from marketlens.core.logging import get_logger

logger = get_logger(__name__)

# Process-wide client, opened by init_redis and released by close_redis
_redis: Redis | None = None


def get_redis() -> Redis:
    """Get the process-wide Redis client."""
    if _redis is None:
        raise RuntimeError("Redis not initialized, call init_redis() first")
    return _redis


async def init_redis(redis_url: str) -> Redis:
    """Connect to Redis and verify the connection.

    Calling it again while connected returns the existing client.

    Raises:
        CacheUnavailableError: Redis did not answer the ping
    """
    global _redis
    if _redis is not None:
        return _redis

    client = Redis.from_url(redis_url, decode_responses=False)
    try:
        await client.ping()
    except RedisError as e:
        await client.aclose()
        raise CacheUnavailableError(f"Redis cache backend unreachable: {e}") from e

    _redis = client
    logger.info("Redis connected")
    return _redis


async def close_redis() -> None:
    """Close the process-wide Redis client, if any."""
    global _redis
    if _redis is None:
        return
    await _redis.aclose()
    _redis = None
    logger.info("Redis disconnected")
