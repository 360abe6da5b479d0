"""Tests for filing index page document resolution."""

from __future__ import annotations

import pytest

from marketlens.providers.sec_edgar.documents import (
    FilingDocumentResolver,
    HtmlTableDocumentResolver,
    resolve_filing_documents,
)

BASE = "https://www.sec.gov"


def _row(*cells: str) -> str:
    return "<tr>" + "".join(f"<td>{c}</td>" for c in cells) + "</tr>"


def _table(*rows: str) -> str:
    return "<table>" + "".join(rows) + "</table>"


class TestHtmlTableDocumentResolver:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(HtmlTableDocumentResolver(), FilingDocumentResolver)

    def test_finds_html_and_text(self) -> None:
        html = _table(
            _row("1", "10-Q", '<a href="/Archives/edgar/data/1/000001/q.htm">q.htm</a>'),
            _row("", "Complete", '<a href="/Archives/edgar/data/1/000001/full.txt">full.txt</a>'),
        )

        docs = resolve_filing_documents(html, BASE)

        assert docs.html_url == "https://www.sec.gov/Archives/edgar/data/1/000001/q.htm"
        assert docs.text_url == "https://www.sec.gov/Archives/edgar/data/1/000001/full.txt"

    def test_first_match_wins(self) -> None:
        html = _table(
            _row("1", "10-K", '<a href="/a/primary.htm">primary</a>'),
            _row("2", "EX-99", '<a href="/a/exhibit.htm">exhibit</a>'),
            _row("3", "Text", '<a href="/a/first.txt">first</a>'),
            _row("4", "Text", '<a href="/a/second.txt">second</a>'),
        )

        docs = resolve_filing_documents(html, BASE)

        assert docs.html_url == "https://www.sec.gov/a/primary.htm"
        assert docs.text_url == "https://www.sec.gov/a/first.txt"

    def test_ignores_links_in_first_two_columns(self) -> None:
        html = _table(
            _row('<a href="/a/seq.htm">1</a>', '<a href="/a/desc.txt">desc</a>', "none"),
        )

        docs = resolve_filing_documents(html, BASE)

        assert docs.html_url is None
        assert docs.text_url is None

    def test_ignores_links_outside_tables(self) -> None:
        html = '<a href="/a/outside.htm">x</a>' + _table(_row("1", "2", "3"))

        docs = resolve_filing_documents(html, BASE)

        assert docs.html_url is None

    def test_nested_table_keeps_outer_cell_position(self) -> None:
        html = _table(_row("1", _table(_row("x")), '<a href="/Archives/doc.htm">doc</a>'))

        docs = resolve_filing_documents(html, BASE)

        assert docs.html_url == "https://www.sec.gov/Archives/doc.htm"

    def test_unwraps_inline_viewer_links(self) -> None:
        html = _table(_row("1", "10-K", '<a href="/ix?doc=/Archives/edgar/data/1/2/k.htm">k</a>'))

        docs = resolve_filing_documents(html, BASE)

        assert docs.html_url == "https://www.sec.gov/Archives/edgar/data/1/2/k.htm"

    def test_html_suffix_case_insensitive(self) -> None:
        html = _table(_row("1", "10-K", '<a href="/a/REPORT.HTML">r</a>'))

        assert resolve_filing_documents(html, BASE).html_url == "https://www.sec.gov/a/REPORT.HTML"

    def test_other_extensions_ignored(self) -> None:
        html = _table(
            _row("1", "XBRL", '<a href="/a/data.xml">xml</a>'),
            _row("2", "Image", '<a href="/a/logo.jpg">jpg</a>'),
        )

        docs = resolve_filing_documents(html, BASE)

        assert docs.html_url is None
        assert docs.text_url is None

    @pytest.mark.parametrize(
        "html",
        ["", "not html at all", "<table><tr><td>1<td>2<td><a href=", "<<<>>>", "<table>"],
    )
    def test_malformed_html_never_raises(self, html: str) -> None:
        docs = resolve_filing_documents(html, BASE)

        assert docs.html_url is None
        assert docs.text_url is None
