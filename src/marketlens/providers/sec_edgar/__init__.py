"""SEC EDGAR provider for registry ids, filings and filing documents.

Uses the free SEC EDGAR API (data.sec.gov), no API key required.
"""

from marketlens.providers.sec_edgar.client import SECEdgarClient
from marketlens.providers.sec_edgar.documents import (
    FilingDocumentResolver,
    HtmlTableDocumentResolver,
    resolve_filing_documents,
)
from marketlens.providers.sec_edgar.extraction import NullStatementExtractor
from marketlens.providers.sec_edgar.models import FilingDocuments, RegistryEntity

__all__ = [
    "SECEdgarClient",
    "FilingDocumentResolver",
    "FilingDocuments",
    "HtmlTableDocumentResolver",
    "NullStatementExtractor",
    "RegistryEntity",
    "resolve_filing_documents",
]
