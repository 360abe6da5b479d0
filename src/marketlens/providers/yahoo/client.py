"""Yahoo Finance API client.

Free API, no key required.
- Quote: {base}/v7/finance/quote?symbols={ticker}
- Chart: {base}/v8/finance/chart/{ticker}?period1=..&period2=..&interval=1d
- Modules: {base}/v10/finance/quoteSummary/{ticker}?modules=assetProfile
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import orjson
from pydantic import ValidationError

from marketlens.config import get_settings
from marketlens.core.concurrency import join_all
from marketlens.core.exceptions import UpstreamDataInvalidError
from marketlens.core.logging import get_logger
from marketlens.models import Company, CompanyPatch, StockPrice, TimeInterval
from marketlens.providers.yahoo.models import AnalystRecommendation, Quote

if TYPE_CHECKING:
    from marketlens.providers.http import ResilientFetcher
    from marketlens.storage.cache import Cache

logger = get_logger(__name__)

UPSTREAM = "yahoo_finance"
QUOTE_PATH = "/v7/finance/quote"
CHART_PATH = "/v8/finance/chart"
MODULES_PATH = "/v10/finance/quoteSummary"

UNKNOWN = "Unknown"
NOT_AVAILABLE = "N/A"

_INTERVAL_CODES: dict[TimeInterval, str] = {
    TimeInterval.DAILY: "1d",
    TimeInterval.WEEKLY: "1wk",
    TimeInterval.MONTHLY: "1mo",
}

# Label -> financialData field, in display order
FINANCIAL_SUMMARY_FIELDS: list[tuple[str, str]] = [
    ("Current Price", "currentPrice"),
    ("ROE", "returnOnEquity"),
    ("ROA", "returnOnAssets"),
    ("Gross Margin", "grossMargins"),
    ("Operating Margin", "operatingMargins"),
    ("Profit Margin", "profitMargins"),
    ("Total Cash", "totalCash"),
    ("Total Debt", "totalDebt"),
    ("Revenue", "totalRevenue"),
    ("EBITDA", "ebitda"),
    ("Free Cash Flow", "freeCashflow"),
    ("Earnings Growth", "earningsGrowth"),
    ("Revenue Growth", "revenueGrowth"),
]

_OHLCV_FIELDS = ("open", "high", "low", "close", "volume")


class YahooFinanceClient:
    """Client for Yahoo Finance market data.

    Every operation checks the cache first, falls through to the live API,
    and caches the live result on success. Live failures propagate.

    Usage:
        client = YahooFinanceClient(fetcher=fetcher, cache=cache)
        quote = await client.get_quote("AAPL")
        company = await client.get_company_profile("AAPL")
        await client.close()
    """

    def __init__(
        self,
        fetcher: ResilientFetcher,
        cache: Cache,
        base_url: str | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._cache = cache
        self._base_url = (base_url or get_settings().yahoo_base_url).rstrip("/")

    async def _get_cached(self, cache_key: str) -> Any | None:
        cached = await self._cache.get(cache_key)
        if cached is None:
            return None
        try:
            return orjson.loads(cached)
        except orjson.JSONDecodeError as e:
            logger.warning("Cache deserialization failed", key=cache_key, error=str(e))
            return None

    async def _set_cached(self, cache_key: str, value: Any, ttl: int) -> None:
        await self._cache.set(cache_key, orjson.dumps(value), ttl)

    # ─────────────────────────────────────────────────────────────
    # Quote
    # ─────────────────────────────────────────────────────────────

    async def get_quote(self, ticker: str) -> Quote:
        """Get the latest quote for a ticker.

        Raises:
            UpstreamDataInvalidError: upstream returned no quote entries
        """
        ticker = ticker.strip().upper()
        cache_key = f"quote_{ticker.lower()}"

        cached = await self._get_cached(cache_key)
        if cached is not None:
            try:
                return Quote.model_validate(cached)
            except ValidationError as e:
                logger.warning("Cache deserialization failed", key=cache_key, error=str(e))

        data = await self._fetcher.fetch_json(
            f"{self._base_url}{QUOTE_PATH}", params={"symbols": ticker}
        )
        results = _dig(data, "quoteResponse", "result")
        if not results or not isinstance(results[0], dict):
            raise UpstreamDataInvalidError(
                f"Could not retrieve quote data for {ticker}", upstream=UPSTREAM
            )

        row = results[0]
        quote = Quote(
            ticker=ticker,
            price=_decimal(row.get("regularMarketPrice")),
            change=_decimal(row.get("regularMarketChange")),
            change_percent=_decimal(row.get("regularMarketChangePercent")),
            volume=_int(row.get("regularMarketVolume")),
            market_cap=_decimal(row.get("marketCap")),
        )

        await self._set_cached(
            cache_key, quote.model_dump(mode="json"), get_settings().cache_ttl_quote
        )
        logger.debug("Fetched quote", ticker=ticker, price=str(quote.price))
        return quote

    # ─────────────────────────────────────────────────────────────
    # Company profile
    # ─────────────────────────────────────────────────────────────

    async def get_company_profile(self, ticker: str) -> Company:
        """Build a Company from the quote and the assetProfile module.

        Both are fetched concurrently and both must succeed. The company name
        is the first sentence of the business summary (or the ticker when
        there is none); missing exchange, sector and industry are "Unknown".
        """
        ticker = ticker.strip().upper()
        cache_key = f"company_profile_{ticker.lower()}"

        cached = await self._get_cached(cache_key)
        if cached is not None:
            try:
                return Company.model_validate(cached)
            except ValidationError as e:
                logger.warning("Cache deserialization failed", key=cache_key, error=str(e))

        quote, profile = await join_all(
            self.get_quote(ticker),
            self._fetch_module(ticker, "assetProfile"),
        )
        if profile is None:
            raise UpstreamDataInvalidError(
                f"Could not retrieve profile data for {ticker}", upstream=UPSTREAM
            )

        summary = profile.get("longBusinessSummary") or None
        name = summary.split(".")[0].strip() if summary else ticker
        company = Company.create(
            ticker=ticker,
            name=name or ticker,
            exchange=profile.get("exchange") or UNKNOWN,
            sector=profile.get("sector") or UNKNOWN,
            industry=profile.get("industry") or UNKNOWN,
        )
        company.update(
            CompanyPatch(
                website=profile.get("website") or None,
                description=summary,
                market_cap=quote.market_cap or None,
            )
        )

        await self._set_cached(
            cache_key, company.model_dump(mode="json"), get_settings().cache_ttl_company_profile
        )
        logger.debug("Fetched company profile", ticker=ticker, name=company.name)
        return company

    # ─────────────────────────────────────────────────────────────
    # Historical prices
    # ─────────────────────────────────────────────────────────────

    async def get_historical_prices(
        self,
        ticker: str,
        from_date: datetime,
        to_date: datetime,
        interval: TimeInterval = TimeInterval.DAILY,
    ) -> list[StockPrice]:
        """Get OHLCV bars for a date range.

        Rows with any missing OHLCV value are dropped. The adjusted close
        falls back to the raw close when the adjusted series is absent or
        null at that row. Bars keep upstream order.

        Args:
            ticker: Stock ticker symbol
            from_date: Range start (naive datetimes are taken as UTC)
            to_date: Range end
            interval: Bar size

        Returns:
            List of StockPrice objects
        """
        ticker = ticker.strip().upper()
        code = _INTERVAL_CODES[interval]
        cache_key = f"history_{ticker.lower()}_{from_date:%Y%m%d}_{to_date:%Y%m%d}_{code}"

        cached = await self._get_cached(cache_key)
        if cached is not None:
            try:
                return [StockPrice.model_validate(p) for p in cached]
            except ValidationError as e:
                logger.warning("Cache deserialization failed", key=cache_key, error=str(e))

        data = await self._fetcher.fetch_json(
            f"{self._base_url}{CHART_PATH}/{ticker}",
            params={
                "period1": _epoch_seconds(from_date),
                "period2": _epoch_seconds(to_date),
                "interval": code,
                "includeAdjustedClose": "true",
            },
        )
        results = _dig(data, "chart", "result")
        if not results or not isinstance(results[0], dict):
            raise UpstreamDataInvalidError(
                f"Could not retrieve historical data for {ticker}", upstream=UPSTREAM
            )

        result = results[0]
        timestamps = result.get("timestamp")
        indicators = result.get("indicators") or {}
        quotes = indicators.get("quote") or []
        if timestamps is None or not quotes or not isinstance(quotes[0], dict):
            raise UpstreamDataInvalidError(
                f"Historical data for {ticker} is incomplete", upstream=UPSTREAM
            )

        bars = quotes[0]
        adj_blocks = indicators.get("adjclose") or []
        adj_series = None
        if adj_blocks and isinstance(adj_blocks[0], dict):
            adj_series = adj_blocks[0].get("adjclose")

        company = await self.get_company_profile(ticker)

        prices: list[StockPrice] = []
        for i, ts in enumerate(timestamps):
            row = [_at(bars.get(f), i) for f in _OHLCV_FIELDS]
            # Null or non-numeric rows are gaps in the series
            if not _is_number(ts) or not all(_is_number(v) for v in row) or row[4] < 0:
                continue
            open_, high, low, close, volume = row
            adj_close = _at(adj_series, i)
            if not _is_number(adj_close):
                adj_close = close
            prices.append(
                StockPrice(
                    company_id=company.id,
                    ticker=ticker,
                    trade_date=datetime.fromtimestamp(ts, tz=UTC),
                    open=_decimal(open_),
                    high=_decimal(high),
                    low=_decimal(low),
                    close=_decimal(close),
                    adjusted_close=_decimal(adj_close),
                    volume=int(volume),
                )
            )

        await self._set_cached(
            cache_key,
            [p.model_dump(mode="json") for p in prices],
            get_settings().cache_ttl_historical_prices,
        )
        logger.debug("Fetched historical prices", ticker=ticker, interval=code, count=len(prices))
        return prices

    # ─────────────────────────────────────────────────────────────
    # Fundamentals
    # ─────────────────────────────────────────────────────────────

    async def get_financial_summary(self, ticker: str) -> dict[str, str]:
        """Get headline metrics from the financialData module, formatted as shown upstream."""
        ticker = ticker.strip().upper()
        cache_key = f"financial_summary_{ticker.lower()}"

        cached = await self._get_cached(cache_key)
        if isinstance(cached, dict):
            return {str(k): str(v) for k, v in cached.items()}

        data = await self._fetch_module(ticker, "financialData")
        if data is None:
            raise UpstreamDataInvalidError(
                f"Could not retrieve financial data for {ticker}", upstream=UPSTREAM
            )

        summary = {label: _formatted(data.get(field)) for label, field in FINANCIAL_SUMMARY_FIELDS}

        await self._set_cached(cache_key, summary, get_settings().cache_ttl_financial_summary)
        logger.debug("Fetched financial summary", ticker=ticker)
        return summary

    async def get_analyst_recommendations(self, ticker: str) -> AnalystRecommendation:
        """Get the consensus rating, number of analysts and mean target price."""
        ticker = ticker.strip().upper()
        cache_key = f"analyst_recommendations_{ticker.lower()}"

        cached = await self._get_cached(cache_key)
        if cached is not None:
            try:
                return AnalystRecommendation.model_validate(cached)
            except ValidationError as e:
                logger.warning("Cache deserialization failed", key=cache_key, error=str(e))

        data = await self._fetch_module(ticker, "financialData")
        if data is None:
            raise UpstreamDataInvalidError(
                f"Could not retrieve financial data for {ticker}", upstream=UPSTREAM
            )

        recommendation = AnalystRecommendation(
            ticker=ticker,
            rating=data.get("recommendationKey") or NOT_AVAILABLE,
            total_analysts=_int(_raw(data.get("numberOfAnalystOpinions"))),
            target_price=_decimal(_raw(data.get("targetMeanPrice"))),
        )

        await self._set_cached(
            cache_key,
            recommendation.model_dump(mode="json"),
            get_settings().cache_ttl_analyst_recommendations,
        )
        return recommendation

    async def _fetch_module(self, ticker: str, module: str) -> dict[str, Any] | None:
        """Fetch one quoteSummary module, or None when the response lacks it.

        Accepts both the bare ``{module: {...}}`` shape and the
        ``{"quoteSummary": {"result": [{module: {...}}]}}`` envelope.
        """
        data = await self._fetcher.fetch_json(
            f"{self._base_url}{MODULES_PATH}/{ticker}", params={"modules": module}
        )
        if isinstance(data, dict) and "quoteSummary" in data:
            results = _dig(data, "quoteSummary", "result")
            data = results[0] if results else {}
        if not isinstance(data, dict):
            return None
        payload = data.get(module)
        return payload if isinstance(payload, dict) else None

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    async def close(self) -> None:
        """Clean up resources."""
        await self._fetcher.close()
        logger.debug("YahooFinanceClient closed")


# ─────────────────────────────────────────────────────────────
# Payload helpers
# ─────────────────────────────────────────────────────────────


def _dig(data: Any, *keys: str) -> list[Any]:
    """Walk nested dicts and return the list at the end, or [] on any gap."""
    for key in keys:
        if not isinstance(data, dict):
            return []
        data = data.get(key)
    return data if isinstance(data, list) else []


def _at(values: list[Any] | None, i: int) -> Any:
    if not isinstance(values, list) or i >= len(values):
        return None
    return values[i]


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal(0)
    if not _is_number(value):
        raise UpstreamDataInvalidError(f"Expected a number, got {value!r}", upstream=UPSTREAM)
    return Decimal(str(value))


def _int(value: Any) -> int:
    if value is None:
        return 0
    if not _is_number(value):
        raise UpstreamDataInvalidError(f"Expected a number, got {value!r}", upstream=UPSTREAM)
    return int(value)


def _raw(value: Any) -> Any:
    """Unwrap Yahoo's ``{"raw": 1.23, "fmt": "1.23"}`` value objects."""
    if isinstance(value, dict):
        return value.get("raw")
    return value


def _formatted(value: Any) -> str:
    if isinstance(value, dict) and value.get("fmt"):
        return str(value["fmt"])
    return NOT_AVAILABLE


def _epoch_seconds(value: datetime) -> int:
    if not isinstance(value, datetime):
        value = datetime.combine(value, datetime.min.time())
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp())
