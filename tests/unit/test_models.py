"""Tests for the unified entity model."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from marketlens.models import (
    Company,
    CompanyPatch,
    FilingType,
    FilingUrlPatch,
    FinancialStatement,
    ReportingPeriod,
    SecFiling,
    StatementType,
    StockPrice,
    company_id_for,
)


def _filing(**overrides) -> SecFiling:
    fields = {
        "company_id": company_id_for("MSFT"),
        "ticker": "MSFT",
        "company_name": "MICROSOFT CORP",
        "cik": "789019",
        "filing_type": FilingType.FORM_10K,
        "form": "10-K",
        "accession_number": "0001193125-23-221456",
        "filing_date": date(2023, 7, 27),
        "report_date": date(2023, 6, 30),
        "filing_url": (
            "https://www.sec.gov/Archives/edgar/data/789019/000119312523221456/"
            "msft-10k_20230630.htm"
        ),
    }
    fields.update(overrides)
    return SecFiling(**fields)


class TestCompanyIdentity:
    def test_same_ticker_same_id(self) -> None:
        assert company_id_for("AAPL") == company_id_for("AAPL")

    def test_case_insensitive(self) -> None:
        assert company_id_for("aapl") == company_id_for(" AAPL ")

    def test_different_tickers_differ(self) -> None:
        assert company_id_for("AAPL") != company_id_for("MSFT")

    def test_create_uses_derived_id(self) -> None:
        company = Company.create("MSFT", "Microsoft", "NMS", "Technology", "Software")
        assert company.id == company_id_for("MSFT")


class TestCompanyUpdate:
    def test_non_null_values_replace(self) -> None:
        company = Company.create("MSFT", "Microsoft", "NMS", "Technology", "Software")
        company.update(CompanyPatch(name="Microsoft Corporation", cik="789019"))

        assert company.name == "Microsoft Corporation"
        assert company.cik == "789019"

    def test_null_values_keep_prior(self) -> None:
        company = Company.create("MSFT", "Microsoft", "NMS", "Technology", "Software")
        company.update(CompanyPatch(website="https://microsoft.com"))
        company.update(CompanyPatch(sector=None, website=None))

        assert company.sector == "Technology"
        assert company.website == "https://microsoft.com"

    def test_refreshes_last_updated(self) -> None:
        company = Company.create("MSFT", "Microsoft", "NMS", "Technology", "Software")
        before = company.last_updated
        company.update(CompanyPatch(market_cap=Decimal("2500000000000")))

        assert company.last_updated >= before
        assert company.market_cap == Decimal("2500000000000")


class TestFilingType:
    @pytest.mark.parametrize(
        ("form", "expected"),
        [
            ("10-K", FilingType.FORM_10K),
            ("10-Q", FilingType.FORM_10Q),
            ("8-K", FilingType.FORM_8K),
            ("4", FilingType.FORM_4),
            ("DEF 14A", FilingType.FORM_DEF14A),
        ],
    )
    def test_known_forms(self, form: str, expected: FilingType) -> None:
        assert FilingType.from_form(form) is expected

    @pytest.mark.parametrize("form", ["10-K/A", "S-1", "10-k", "", "SC 13G"])
    def test_everything_else_is_other(self, form: str) -> None:
        assert FilingType.from_form(form) is FilingType.OTHER


class TestSecFiling:
    def test_mark_processed(self) -> None:
        filing = _filing()
        assert filing.is_processed is False
        assert filing.processed_at is None

        filing.mark_processed()

        assert filing.is_processed is True
        assert isinstance(filing.processed_at, datetime)

    def test_mark_processed_is_idempotent(self) -> None:
        filing = _filing()
        filing.mark_processed()
        first = filing.processed_at

        filing.mark_processed()

        assert filing.processed_at == first

    def test_update_urls_merges(self) -> None:
        filing = _filing()
        filing.update_urls(FilingUrlPatch(html_url="https://www.sec.gov/a.htm"))
        filing.update_urls(FilingUrlPatch(text_url="https://www.sec.gov/a.txt"))

        assert filing.html_url == "https://www.sec.gov/a.htm"
        assert filing.text_url == "https://www.sec.gov/a.txt"
        assert filing.documents_url is None


class TestStockPrice:
    def test_frozen(self) -> None:
        price = StockPrice(
            company_id=company_id_for("AAPL"),
            ticker="AAPL",
            trade_date=datetime(2024, 1, 2),
            open=Decimal("187.15"),
            high=Decimal("188.44"),
            low=Decimal("183.89"),
            close=Decimal("185.64"),
            adjusted_close=Decimal("185.10"),
            volume=82488700,
        )
        with pytest.raises(ValidationError):
            price.close = Decimal(0)

    def test_negative_volume_rejected(self) -> None:
        with pytest.raises(ValidationError):
            StockPrice(
                company_id=company_id_for("AAPL"),
                ticker="AAPL",
                trade_date=datetime(2024, 1, 2),
                open=Decimal(1),
                high=Decimal(1),
                low=Decimal(1),
                close=Decimal(1),
                adjusted_close=Decimal(1),
                volume=-1,
            )


class TestFinancialStatement:
    def test_add_data_point_binds_to_statement(self) -> None:
        statement = FinancialStatement(
            company_id=company_id_for("MSFT"),
            ticker="MSFT",
            statement_type=StatementType.INCOME_STATEMENT,
            period=ReportingPeriod.ANNUAL,
            filing_date=date(2023, 7, 27),
            period_end_date=date(2023, 6, 30),
            filing_url="https://www.sec.gov/x.htm",
            accession_number="0001193125-23-221456",
        )

        point = statement.add_data_point("Revenue", "211915000000", "USD")

        assert point.statement_id == statement.id
        assert statement.data_points == [point]
