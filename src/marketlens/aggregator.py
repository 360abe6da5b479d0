"""Aggregation of market data and registry filings into unified entities.

The aggregator is the boundary between callers and the upstream providers:
every failure is logged here exactly once and then re-raised unchanged.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import TYPE_CHECKING, Any

import orjson

from marketlens.config import get_settings
from marketlens.core.concurrency import join_all
from marketlens.core.logging import get_logger
from marketlens.models import (
    Company,
    CompanyPatch,
    FilingType,
    FinancialStatement,
    SecFiling,
    StockPrice,
    TimeInterval,
)

if TYPE_CHECKING:
    from marketlens.providers.base import FilingRegistryProvider, MarketDataProvider
    from marketlens.providers.yahoo.models import AnalystRecommendation
    from marketlens.storage.cache import Cache

logger = get_logger(__name__)


@contextmanager
def _log_failure(operation: str, **context: Any) -> Iterator[None]:
    try:
        yield
    except Exception as e:
        logger.error(
            "Aggregation failed",
            operation=operation,
            error_type=type(e).__name__,
            error=str(e),
            **context,
        )
        raise


class DataAggregator:
    """Combines a market data provider and a filing registry provider.

    Usage:
        aggregator = DataAggregator(market_data=yahoo, filings=sec, cache=cache)
        company = await aggregator.get_company_profile("MSFT")
        filings = await aggregator.get_filings("MSFT", [FilingType.FORM_10K], limit=5)
        await aggregator.close()
    """

    def __init__(
        self,
        market_data: MarketDataProvider,
        filings: FilingRegistryProvider,
        cache: Cache,
    ) -> None:
        self._market_data = market_data
        self._filings = filings
        self._cache = cache

    async def get_company_profile(self, ticker: str) -> Company:
        """Market profile enriched with the registry CIK.

        Both lookups run concurrently and both must succeed.
        """
        with _log_failure("get_company_profile", ticker=ticker):
            company, entity = await join_all(
                self._market_data.get_company_profile(ticker),
                self._filings.resolve_registry_id(ticker),
            )
            company.update(CompanyPatch(cik=entity.cik))
            return company

    async def get_historical_prices(
        self,
        ticker: str,
        from_date: datetime,
        to_date: datetime,
        interval: TimeInterval = TimeInterval.DAILY,
    ) -> list[StockPrice]:
        with _log_failure("get_historical_prices", ticker=ticker, interval=interval.value):
            return await self._market_data.get_historical_prices(
                ticker, from_date, to_date, interval
            )

    async def get_filings(
        self,
        ticker: str,
        filing_types: list[FilingType] | None = None,
        limit: int = 20,
    ) -> list[SecFiling]:
        """Resolve the ticker's CIK, then list its filings."""
        with _log_failure("get_filings", ticker=ticker):
            entity = await self._filings.resolve_registry_id(ticker)
            return await self._filings.list_filings(entity.cik, filing_types, limit)

    async def get_financial_statements(self, filing: SecFiling) -> list[FinancialStatement]:
        """Download a filing's primary content and extract its statements.

        Document URLs are resolved first when the filing has neither an HTML
        nor a text URL. Content comes from the HTML document, else the text
        document, else the filing URL.
        """
        with _log_failure("get_financial_statements", accession=filing.accession_number):
            if filing.html_url is None and filing.text_url is None:
                filing = await self._filings.get_filing_details(
                    filing.accession_number, filing.cik
                )

            content_url = filing.html_url or filing.text_url or filing.filing_url
            content = await self._filings.download_content(content_url)
            return await self._filings.extract_financial_statements(content, filing.filing_type)

    async def get_financial_metrics(self, ticker: str) -> dict[str, str]:
        """Headline metrics, cached here on top of the provider's own cache."""
        cache_key = f"financial_metrics_{ticker.strip().lower()}"

        with _log_failure("get_financial_metrics", ticker=ticker):
            cached = await self._cache.get(cache_key)
            if cached is not None:
                try:
                    data = orjson.loads(cached)
                except orjson.JSONDecodeError as e:
                    logger.warning("Cache deserialization failed", key=cache_key, error=str(e))
                else:
                    if isinstance(data, dict):
                        return {str(k): str(v) for k, v in data.items()}

            metrics = await self._market_data.get_financial_summary(ticker)
            await self._cache.set(
                cache_key, orjson.dumps(metrics), get_settings().cache_ttl_financial_metrics
            )
            return metrics

    async def get_analyst_recommendations(self, ticker: str) -> AnalystRecommendation:
        with _log_failure("get_analyst_recommendations", ticker=ticker):
            return await self._market_data.get_analyst_recommendations(ticker)

    async def close(self) -> None:
        """Clean up resources."""
        await join_all(self._market_data.close(), self._filings.close())
        logger.debug("DataAggregator closed")
