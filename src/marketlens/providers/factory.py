"""Provider factory for building the aggregation stack from settings.

Every upstream gets its own ResilientFetcher, and therefore its own circuit
breaker, so an outage at one provider never trips calls to the other.

Usage:
    from marketlens.providers import create_aggregator

    aggregator = await create_aggregator()
    company = await aggregator.get_company_profile("AAPL")
    await aggregator.close()
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from marketlens.aggregator import DataAggregator
from marketlens.config import Settings, get_settings
from marketlens.core.logging import get_logger
from marketlens.providers.http import CircuitBreaker, RateLimiter, ResilientFetcher
from marketlens.providers.sec_edgar import SECEdgarClient
from marketlens.providers.yahoo import YahooFinanceClient
from marketlens.storage.cache import Cache, MemoryCache, RedisCache
from marketlens.storage.redis import get_redis

if TYPE_CHECKING:
    import httpx
    from redis.asyncio import Redis

    from marketlens.providers.base import FilingRegistryProvider, MarketDataProvider

logger = get_logger(__name__)

# SEC fair-access policy: at most 10 requests per second
SEC_CALLS_PER_SECOND = 10

YAHOO_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; marketlens)",
    "Accept": "application/json",
}


def _create_fetcher(
    name: str,
    settings: Settings,
    headers: dict[str, str] | None = None,
    rate_limiter: RateLimiter | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ResilientFetcher:
    breaker = CircuitBreaker(
        name,
        failure_threshold=settings.circuit_failure_threshold,
        reset_timeout=settings.circuit_reset_seconds,
    )
    return ResilientFetcher(
        name,
        headers=headers,
        timeout=settings.http_timeout,
        retry_attempts=settings.http_retry_attempts,
        backoff_base=settings.http_backoff_base,
        breaker=breaker,
        rate_limiter=rate_limiter,
        transport=transport,
    )


async def create_cache(redis: Redis | None = None, settings: Settings | None = None) -> Cache:
    """Create the cache backend selected by settings.cache_backend.

    Args:
        redis: Redis client override (uses the global instance if not provided)
        settings: Settings override

    Raises:
        ValueError: If the configured backend is not supported
    """
    settings = settings or get_settings()
    backend = settings.cache_backend

    if backend == "memory":
        logger.debug("Creating MemoryCache")
        return MemoryCache()

    if backend == "redis":
        logger.debug("Creating RedisCache", prefix=settings.cache_prefix)
        return RedisCache(redis or get_redis(), prefix=settings.cache_prefix)

    raise ValueError(f"Unsupported cache backend: {backend}")


async def create_market_data_provider(
    cache: Cache,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> MarketDataProvider:
    """Create the Yahoo Finance market data provider."""
    settings = settings or get_settings()
    fetcher = _create_fetcher("yahoo_finance", settings, YAHOO_HEADERS, transport=transport)

    logger.debug("Creating YahooFinanceClient", base_url=settings.yahoo_base_url)
    return YahooFinanceClient(fetcher=fetcher, cache=cache, base_url=settings.yahoo_base_url)


async def create_filing_registry_provider(
    cache: Cache,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FilingRegistryProvider:
    """Create the SEC EDGAR filing registry provider.

    The fetcher identifies itself with settings.sec_edgar_user_agent and is
    throttled to the SEC's published request rate.
    """
    settings = settings or get_settings()
    headers = {
        "User-Agent": settings.sec_edgar_user_agent,
        "Accept-Encoding": "gzip, deflate",
    }
    fetcher = _create_fetcher(
        "sec_edgar",
        settings,
        headers,
        rate_limiter=RateLimiter(SEC_CALLS_PER_SECOND),
        transport=transport,
    )

    logger.debug("Creating SECEdgarClient", base_url=settings.sec_base_url)
    return SECEdgarClient(
        fetcher=fetcher,
        cache=cache,
        base_url=settings.sec_base_url,
        www_url=settings.sec_www_url,
    )


async def create_aggregator(
    redis: Redis | None = None,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> DataAggregator:
    """Create a DataAggregator with both providers sharing one cache."""
    settings = settings or get_settings()
    cache = await create_cache(redis, settings)
    market_data = await create_market_data_provider(cache, settings, transport)
    filings = await create_filing_registry_provider(cache, settings, transport)
    return DataAggregator(market_data=market_data, filings=filings, cache=cache)
