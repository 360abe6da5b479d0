"""Yahoo Finance provider for quotes, profiles, price history and fundamentals.

Uses the public Yahoo Finance query endpoints, no API key required.
"""

from marketlens.providers.yahoo.client import YahooFinanceClient
from marketlens.providers.yahoo.models import AnalystRecommendation, Quote

__all__ = [
    "YahooFinanceClient",
    "AnalystRecommendation",
    "Quote",
]
