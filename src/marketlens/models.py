"""Unified entity model shared by every provider and the aggregator.

Companies, prices, filings and statements arrive from different upstreams.
They are joined on ``company_id``, which is derived from the ticker (see
:func:`company_id_for`) so the same company always gets the same id no matter
which upstream or which call produced it.
"""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

_COMPANY_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "marketlens:company")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def company_id_for(ticker: str) -> UUID:
    """Stable company id for a ticker (case-insensitive)."""
    return uuid.uuid5(_COMPANY_NAMESPACE, ticker.strip().upper())


# =============================================================================
# Enums
# =============================================================================


class TimeInterval(str, Enum):
    """Bar size for historical prices."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class FilingType(str, Enum):
    """Closed classification of registry filings."""

    FORM_10K = "10-K"
    FORM_10Q = "10-Q"
    FORM_8K = "8-K"
    FORM_4 = "4"
    FORM_DEF14A = "DEF 14A"
    OTHER = "other"

    @classmethod
    def from_form(cls, form: str) -> FilingType:
        """Classify a raw form-type string. Exact match only; everything else is OTHER."""
        return _FORM_TYPES.get(form, cls.OTHER)


_FORM_TYPES: dict[str, FilingType] = {
    "10-K": FilingType.FORM_10K,
    "10-Q": FilingType.FORM_10Q,
    "8-K": FilingType.FORM_8K,
    "4": FilingType.FORM_4,
    "DEF 14A": FilingType.FORM_DEF14A,
}


class StatementType(str, Enum):
    INCOME_STATEMENT = "income_statement"
    BALANCE_SHEET = "balance_sheet"
    CASH_FLOW_STATEMENT = "cash_flow_statement"


class ReportingPeriod(str, Enum):
    ANNUAL = "annual"
    QUARTERLY = "quarterly"


# =============================================================================
# Company
# =============================================================================


class CompanyPatch(BaseModel):
    """Partial update for a Company. ``None`` means "keep the current value"."""

    name: str | None = None
    exchange: str | None = None
    sector: str | None = None
    industry: str | None = None
    website: str | None = None
    description: str | None = None
    logo_url: str | None = None
    cik: str | None = None
    market_cap: Decimal | None = None


class Company(BaseModel):
    """A listed company, keyed by ticker."""

    id: UUID
    ticker: str
    name: str
    exchange: str
    sector: str
    industry: str
    website: str | None = None
    description: str | None = None
    logo_url: str | None = None
    cik: str | None = None
    market_cap: Decimal | None = None
    last_updated: datetime = Field(default_factory=_utcnow)

    @classmethod
    def create(
        cls,
        ticker: str,
        name: str,
        exchange: str,
        sector: str,
        industry: str,
    ) -> Company:
        return cls(
            id=company_id_for(ticker),
            ticker=ticker,
            name=name,
            exchange=exchange,
            sector=sector,
            industry=industry,
        )

    def update(self, patch: CompanyPatch) -> None:
        """Merge a patch: non-null values replace, null values keep the prior value."""
        for field, value in patch.model_dump(exclude_none=True).items():
            setattr(self, field, value)
        self.last_updated = _utcnow()


# =============================================================================
# Prices
# =============================================================================


class StockPrice(BaseModel):
    """One OHLCV bar. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid.uuid4)
    company_id: UUID
    ticker: str
    trade_date: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    adjusted_close: Decimal
    volume: int = Field(ge=0)
    created_at: datetime = Field(default_factory=_utcnow)


# =============================================================================
# Filings
# =============================================================================


class FilingUrlPatch(BaseModel):
    """Partial update for a filing's document URLs. ``None`` keeps the current value."""

    documents_url: str | None = None
    html_url: str | None = None
    text_url: str | None = None


class SecFiling(BaseModel):
    """A single registry filing, keyed by accession number."""

    id: UUID = Field(default_factory=uuid.uuid4)
    company_id: UUID
    ticker: str
    company_name: str
    cik: str
    filing_type: FilingType
    form: str  # raw form type as filed, e.g. "10-K/A"
    accession_number: str
    filing_date: date
    report_date: date
    filing_url: str
    documents_url: str | None = None
    html_url: str | None = None
    text_url: str | None = None
    is_processed: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    processed_at: datetime | None = None

    def mark_processed(self) -> None:
        """One-way transition; calling it again leaves ``processed_at`` untouched."""
        if self.is_processed:
            return
        self.is_processed = True
        self.processed_at = _utcnow()

    def update_urls(self, patch: FilingUrlPatch) -> None:
        for field, value in patch.model_dump(exclude_none=True).items():
            setattr(self, field, value)


# =============================================================================
# Financial statements
# =============================================================================


class FinancialDataPoint(BaseModel):
    """A single reported figure. Owned by exactly one FinancialStatement."""

    id: UUID = Field(default_factory=uuid.uuid4)
    statement_id: UUID
    name: str
    value: str  # kept as text: units and precision vary by filer
    unit: str
    created_at: datetime = Field(default_factory=_utcnow)


class FinancialStatement(BaseModel):
    """A financial statement extracted from a filing."""

    id: UUID = Field(default_factory=uuid.uuid4)
    company_id: UUID
    ticker: str
    statement_type: StatementType
    period: ReportingPeriod
    filing_date: date
    period_end_date: date
    fiscal_year: str | None = None
    fiscal_quarter: str | None = None
    filing_url: str
    accession_number: str
    created_at: datetime = Field(default_factory=_utcnow)
    data_points: list[FinancialDataPoint] = Field(default_factory=list)

    def add_data_point(self, name: str, value: str, unit: str) -> FinancialDataPoint:
        point = FinancialDataPoint(statement_id=self.id, name=name, value=value, unit=unit)
        self.data_points.append(point)
        return point
