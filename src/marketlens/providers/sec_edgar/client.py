"""SEC EDGAR API client.

Free API, no key required, just a descriptive User-Agent header (requests
without one are rejected).
- Ticker→CIK mapping: https://www.sec.gov/files/company_tickers.json
- Company submissions: https://data.sec.gov/submissions/CIK{cik}.json
- Filing index: https://www.sec.gov/Archives/edgar/data/{cik}/{accession}/{accession}-index.htm
"""

from __future__ import annotations

import hashlib
from datetime import date
from typing import TYPE_CHECKING, Any

import orjson
from pydantic import ValidationError

from marketlens.config import get_settings
from marketlens.core.exceptions import NotFoundError, UpstreamDataInvalidError
from marketlens.core.logging import get_logger
from marketlens.models import (
    FilingType,
    FilingUrlPatch,
    FinancialStatement,
    SecFiling,
    company_id_for,
)
from marketlens.providers.sec_edgar.documents import (
    FilingDocumentResolver,
    HtmlTableDocumentResolver,
)
from marketlens.providers.sec_edgar.extraction import NullStatementExtractor
from marketlens.providers.sec_edgar.models import RegistryEntity

if TYPE_CHECKING:
    from marketlens.providers.base import StatementExtractor
    from marketlens.providers.http import ResilientFetcher
    from marketlens.storage.cache import Cache

logger = get_logger(__name__)

UPSTREAM = "sec_edgar"
DIRECTORY_CACHE_KEY = "sec_ticker_directory"
DETAILS_LOOKUP_LIMIT = 100


class SECEdgarClient:
    """Client for the SEC EDGAR API.

    Resolves tickers to CIKs, lists filings, resolves filing documents and
    downloads filing content. Every lookup is cached.

    Usage:
        client = SECEdgarClient(fetcher=fetcher, cache=cache)
        entity = await client.resolve_registry_id("AAPL")
        filings = await client.list_filings(entity.cik, [FilingType.FORM_10K], limit=5)
        await client.close()
    """

    def __init__(
        self,
        fetcher: ResilientFetcher,
        cache: Cache,
        resolver: FilingDocumentResolver | None = None,
        extractor: StatementExtractor | None = None,
        base_url: str | None = None,
        www_url: str | None = None,
    ) -> None:
        settings = get_settings()
        self._fetcher = fetcher
        self._cache = cache
        self._resolver = resolver or HtmlTableDocumentResolver()
        self._extractor = extractor or NullStatementExtractor()
        self._base_url = (base_url or settings.sec_base_url).rstrip("/")
        self._www_url = (www_url or settings.sec_www_url).rstrip("/")

    async def _get_cached(self, cache_key: str) -> Any | None:
        cached = await self._cache.get(cache_key)
        if cached is None:
            return None
        try:
            return orjson.loads(cached)
        except orjson.JSONDecodeError as e:
            logger.warning("Cache deserialization failed", key=cache_key, error=str(e))
            return None

    # ─────────────────────────────────────────────────────────────
    # CIK Mapping
    # ─────────────────────────────────────────────────────────────

    async def _load_directory(self) -> dict[str, list[str]]:
        """Load the ticker directory as {TICKER: [cik, title]}, with caching."""
        settings = get_settings()

        cached = await self._get_cached(DIRECTORY_CACHE_KEY)
        if isinstance(cached, dict):
            return cached

        data = await self._fetcher.fetch_json(f"{self._www_url}/files/company_tickers.json")
        if not isinstance(data, dict):
            raise UpstreamDataInvalidError("Failed to retrieve CIK lookup data", upstream=UPSTREAM)

        directory: dict[str, list[str]] = {}
        for entry in data.values():
            if not isinstance(entry, dict):
                continue
            ticker = str(entry.get("ticker") or "").strip().upper()
            cik = entry.get("cik_str")
            if ticker and cik is not None and ticker not in directory:
                directory[ticker] = [str(cik), str(entry.get("title") or "")]

        await self._cache.set(
            DIRECTORY_CACHE_KEY, orjson.dumps(directory), settings.cache_ttl_registry_id
        )
        logger.debug("Loaded SEC ticker directory", count=len(directory))
        return directory

    async def resolve_registry_id(self, ticker: str) -> RegistryEntity:
        """Resolve a ticker to its CIK and registered company name.

        Matching is case-insensitive. The name falls back to the ticker when
        the directory has no title.

        Raises:
            NotFoundError: ticker is not in the SEC directory
        """
        ticker = ticker.strip().upper()
        cache_key = f"sec_company_info_{ticker.lower()}"

        cached = await self._get_cached(cache_key)
        if cached is not None:
            try:
                return RegistryEntity.model_validate(cached)
            except ValidationError as e:
                logger.warning("Cache deserialization failed", key=cache_key, error=str(e))

        directory = await self._load_directory()
        match = directory.get(ticker)
        if not match or not match[0]:
            raise NotFoundError(f"Could not find CIK for ticker {ticker}")

        entity = RegistryEntity(cik=match[0], name=match[1] or ticker)
        await self._cache.set(
            cache_key,
            orjson.dumps(entity.model_dump(mode="json")),
            get_settings().cache_ttl_registry_id,
        )
        logger.debug("Resolved CIK", ticker=ticker, cik=entity.cik)
        return entity

    # ─────────────────────────────────────────────────────────────
    # Filings
    # ─────────────────────────────────────────────────────────────

    async def list_filings(
        self,
        cik: str,
        filing_types: list[FilingType] | None = None,
        limit: int = 20,
    ) -> list[SecFiling]:
        """List a company's recent filings.

        Args:
            cik: SEC CIK, padded or not
            filing_types: Only keep these types (applied before ``limit``)
            limit: Maximum filings to return

        Returns:
            List of SecFiling objects in upstream order (newest first)
        """
        cik = _unpad_cik(cik)
        types_key = "_".join(t.name for t in filing_types) if filing_types is not None else "all"
        cache_key = f"sec_filings_{cik}_{types_key}_{limit}"

        cached = await self._get_cached(cache_key)
        if cached is not None:
            try:
                return [SecFiling.model_validate(f) for f in cached]
            except (ValidationError, TypeError) as e:
                logger.warning("Cache deserialization failed", key=cache_key, error=str(e))

        url = f"{self._base_url}/submissions/CIK{cik.zfill(10)}.json"

        data = await self._fetcher.fetch_json(url)
        if not isinstance(data, dict):
            raise UpstreamDataInvalidError(
                f"Failed to retrieve company data for CIK {cik}", upstream=UPSTREAM
            )

        tickers = data.get("tickers") or []
        ticker = str(tickers[0]).upper() if tickers else ""
        company_name = str(data.get("name") or "")
        company_id = company_id_for(ticker or cik)

        recent = (data.get("filings") or {}).get("recent") or {}
        forms = recent.get("form") or []
        accession_numbers = recent.get("accessionNumber") or []
        filing_dates = recent.get("filingDate") or []
        report_dates = recent.get("reportDate") or []
        primary_documents = recent.get("primaryDocument") or []

        filings: list[SecFiling] = []
        n = min(len(forms), len(accession_numbers), len(filing_dates))
        for i in range(n):
            if len(filings) >= limit:
                break

            form = str(forms[i] or "")
            filing_type = FilingType.from_form(form)
            if filing_types is not None and filing_type not in filing_types:
                continue

            accession = str(accession_numbers[i] or "")
            filed = _parse_date(filing_dates[i])
            if filed is None:
                logger.warning(
                    "Failed to parse filing date, using today",
                    cik=cik,
                    accession=accession,
                    value=filing_dates[i],
                )
                filed = date.today()
            reported = _parse_date(_at(report_dates, i)) or filed
            document = str(_at(primary_documents, i) or "")

            filings.append(
                SecFiling(
                    company_id=company_id,
                    ticker=ticker,
                    company_name=company_name,
                    cik=cik,
                    filing_type=filing_type,
                    form=form,
                    accession_number=accession,
                    filing_date=filed,
                    report_date=reported,
                    filing_url=self._archive_url(cik, accession, document),
                )
            )

        await self._cache.set(
            cache_key,
            orjson.dumps([f.model_dump(mode="json") for f in filings]),
            get_settings().cache_ttl_filings,
        )
        logger.debug("Fetched SEC filings", cik=cik, count=len(filings))
        return filings

    async def get_filing_details(self, accession_number: str, cik: str) -> SecFiling:
        """Get a filing with its HTML and text document URLs resolved.

        Downloads the filing's index page and merges the document links
        found there into the filing.

        Raises:
            NotFoundError: the accession number is not among the latest filings
        """
        cache_key = f"sec_filing_detail_{accession_number}"

        cached = await self._get_cached(cache_key)
        if cached is not None:
            try:
                return SecFiling.model_validate(cached)
            except ValidationError as e:
                logger.warning("Cache deserialization failed", key=cache_key, error=str(e))

        filings = await self.list_filings(cik, None, DETAILS_LOOKUP_LIMIT)
        filing = next((f for f in filings if f.accession_number == accession_number), None)
        if filing is None:
            raise NotFoundError(f"Could not find filing {accession_number} for CIK {cik}")

        index_name = f"{accession_number}-index.htm"

        index_url = self._archive_url(filing.cik, accession_number, index_name)
        index_html = await self._fetcher.fetch_text(index_url)
        documents = self._resolver.resolve(index_html, self._www_url)
        filing.update_urls(
            FilingUrlPatch(
                documents_url=index_url,
                html_url=documents.html_url,
                text_url=documents.text_url,
            )
        )

        await self._cache.set(
            cache_key,
            orjson.dumps(filing.model_dump(mode="json")),
            get_settings().cache_ttl_filing_details,
        )
        logger.debug(
            "Resolved filing documents",
            accession=accession_number,
            html_url=filing.html_url,
            text_url=filing.text_url,
        )
        return filing

    # ─────────────────────────────────────────────────────────────
    # Content
    # ─────────────────────────────────────────────────────────────

    async def download_content(self, url: str) -> str:
        """Download raw filing content (HTML or text). Cached for 30 days."""
        url_hash = hashlib.md5(url.encode()).hexdigest()  # noqa: S324
        cache_key = f"sec_filing_content_{url_hash}"

        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached.decode()

        content = await self._fetcher.fetch_text(url)
        await self._cache.set(cache_key, content, get_settings().cache_ttl_filing_content)
        logger.debug("Downloaded filing content", url=url, length=len(content))
        return content

    async def extract_financial_statements(
        self, content: str, filing_type: FilingType
    ) -> list[FinancialStatement]:
        """Extract financial statements from filing content.

        An empty list means nothing was extracted, which is a valid result.
        """
        statements = self._extractor.extract(content, filing_type)
        logger.debug("Extracted statements", filing_type=filing_type.value, count=len(statements))
        return statements

    def _archive_url(self, cik: str, accession_number: str, document: str) -> str:
        folder = accession_number.replace("-", "")
        return f"{self._www_url}/Archives/edgar/data/{_unpad_cik(cik)}/{folder}/{document}"

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    async def close(self) -> None:
        """Clean up resources."""
        await self._fetcher.close()
        logger.debug("SECEdgarClient closed")


def _unpad_cik(cik: str) -> str:
    return str(cik).strip().lstrip("0") or "0"


def _at(values: list[Any], i: int) -> Any:
    return values[i] if i < len(values) else None


def _parse_date(value: Any) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None
