"""Abstract provider protocols for market and filing data.

This module defines the interfaces (Protocols) the aggregator depends on, so
an upstream can be swapped (Yahoo Finance for another quote vendor, SEC EDGAR
for another registry) without touching the aggregator.

Provider Types:
- MarketDataProvider: quotes, profiles, price history, fundamentals summary
- FilingRegistryProvider: registry ids, filings, filing documents
- StatementExtractor: turns raw filing content into financial statements
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from marketlens.models import (
    Company,
    FilingType,
    FinancialStatement,
    SecFiling,
    StockPrice,
    TimeInterval,
)

if TYPE_CHECKING:
    from marketlens.providers.sec_edgar.models import RegistryEntity
    from marketlens.providers.yahoo.models import AnalystRecommendation, Quote


@runtime_checkable
class MarketDataProvider(Protocol):
    """Protocol for market data.

    Every operation is cached by the provider; failures of the live call
    propagate (there is no stale-on-error fallback).
    """

    async def get_quote(self, ticker: str) -> Quote:
        """Get the latest quote for a ticker.

        Raises:
            UpstreamDataInvalidError: upstream returned no quote
        """
        ...

    async def get_company_profile(self, ticker: str) -> Company:
        """Get company attributes (name, exchange, sector, industry, market cap)."""
        ...

    async def get_historical_prices(
        self,
        ticker: str,
        from_date: datetime,
        to_date: datetime,
        interval: TimeInterval = TimeInterval.DAILY,
    ) -> list[StockPrice]:
        """Get OHLCV bars between two dates, in upstream order."""
        ...

    async def get_financial_summary(self, ticker: str) -> dict[str, str]:
        """Get headline financial metrics; missing values are "N/A"."""
        ...

    async def get_analyst_recommendations(self, ticker: str) -> AnalystRecommendation:
        """Get consensus rating, analyst count and mean target price."""
        ...

    async def close(self) -> None:
        """Clean up resources."""
        ...


@runtime_checkable
class FilingRegistryProvider(Protocol):
    """Protocol for a regulatory filing registry."""

    async def resolve_registry_id(self, ticker: str) -> RegistryEntity:
        """Resolve a ticker (case-insensitive) to its registry id and name.

        Raises:
            NotFoundError: ticker is not in the registry directory
        """
        ...

    async def list_filings(
        self,
        cik: str,
        filing_types: list[FilingType] | None = None,
        limit: int = 20,
    ) -> list[SecFiling]:
        """List filings newest first, filtered by type before truncation to ``limit``."""
        ...

    async def get_filing_details(self, accession_number: str, cik: str) -> SecFiling:
        """Get one filing with its HTML/text document URLs resolved.

        Raises:
            NotFoundError: accession number is not among the company's filings
        """
        ...

    async def download_content(self, url: str) -> str:
        """Download raw filing content."""
        ...

    async def extract_financial_statements(
        self, content: str, filing_type: FilingType
    ) -> list[FinancialStatement]:
        """Extract statements from filing content. Empty means nothing was found."""
        ...

    async def close(self) -> None:
        """Clean up resources."""
        ...


@runtime_checkable
class StatementExtractor(Protocol):
    """Protocol for turning filing content into financial statements.

    Implementations return zero or more statements with populated data
    points. Returning an empty list is a valid outcome, not a failure.
    """

    def extract(self, content: str, filing_type: FilingType) -> list[FinancialStatement]: ...
