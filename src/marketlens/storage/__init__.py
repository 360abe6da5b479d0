"""Storage layer: TTL caches (in-process, Redis)."""

from marketlens.storage.cache import Cache, MemoryCache, RedisCache
from marketlens.storage.redis import close_redis, get_redis, init_redis

__all__ = [
    "Cache",
    "MemoryCache",
    "RedisCache",
    "close_redis",
    "get_redis",
    "init_redis",
]
