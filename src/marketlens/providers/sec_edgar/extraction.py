"""Financial statement extraction from filing content."""

from __future__ import annotations

from marketlens.core.logging import get_logger
from marketlens.models import FilingType, FinancialStatement

logger = get_logger(__name__)


class NullStatementExtractor:
    """Extractor that finds nothing.

    Placeholder until XBRL/table extraction exists. An empty result is a
    valid outcome for callers, not a failure.
    """

    def extract(self, content: str, filing_type: FilingType) -> list[FinancialStatement]:
        logger.debug(
            "Statement extraction not available, returning no statements",
            filing_type=filing_type.value,
            content_length=len(content),
        )
        return []
