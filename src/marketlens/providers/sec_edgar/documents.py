"""Filing index page parsing.

An EDGAR filing index page lists the submission's documents in a table
(Seq, Description, Document, Type, Size). The links live in the third column
onward. The first ``.htm``/``.html`` link is the primary document and the
first ``.txt`` link is the full text submission; later links of the same kind
are exhibits and are ignored.
"""

from __future__ import annotations

from html.parser import HTMLParser
from typing import Protocol, runtime_checkable
from urllib.parse import parse_qs, urljoin, urlparse

from marketlens.providers.sec_edgar.models import FilingDocuments

HTML_SUFFIXES = (".htm", ".html")
TEXT_SUFFIXES = (".txt",)

# Index pages link the primary document through the inline XBRL viewer
INLINE_VIEWER_PATH = "/ix"


@runtime_checkable
class FilingDocumentResolver(Protocol):
    """Protocol for finding document URLs for a filing."""

    def resolve(self, html: str, base_url: str) -> FilingDocuments: ...


class _DocumentTableParser(HTMLParser):
    """Collect anchor hrefs from the third-or-later cell of every table row."""

    def __init__(self) -> None:
        super().__init__()
        self.hrefs: list[str] = []
        # Current cell index per open table, innermost last
        self._cells: list[int] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag == "table":
            self._cells.append(-1)
        elif not self._cells:
            return
        elif tag == "tr":
            self._cells[-1] = -1
        elif tag == "td":
            self._cells[-1] += 1
        elif tag == "a" and self._cells[-1] >= 2:
            href = dict(attrs).get("href")
            if href and href.strip():
                self.hrefs.append(href.strip())

    def handle_endtag(self, tag: str) -> None:
        if tag == "table" and self._cells:
            self._cells.pop()


class HtmlTableDocumentResolver:
    """Resolve document URLs by scanning the index page's tables. First match per kind wins."""

    def resolve(self, html: str, base_url: str) -> FilingDocuments:
        parser = _DocumentTableParser()
        parser.feed(html)
        parser.close()

        documents = FilingDocuments()
        for href in parser.hrefs:
            url = _absolute_url(href, base_url)
            path = urlparse(url).path.lower()
            if path.endswith(HTML_SUFFIXES):
                if documents.html_url is None:
                    documents.html_url = url
            elif path.endswith(TEXT_SUFFIXES):
                if documents.text_url is None:
                    documents.text_url = url
            if documents.html_url and documents.text_url:
                break
        return documents


def resolve_filing_documents(html: str, base_url: str) -> FilingDocuments:
    """Find the primary HTML and full-text document URLs on an index page."""
    return HtmlTableDocumentResolver().resolve(html, base_url)


def _absolute_url(href: str, base_url: str) -> str:
    url = urljoin(base_url.rstrip("/") + "/", href)
    parsed = urlparse(url)
    if parsed.path == INLINE_VIEWER_PATH:
        doc = parse_qs(parsed.query).get("doc")
        if doc:
            return urljoin(base_url.rstrip("/") + "/", doc[0])
    return url
