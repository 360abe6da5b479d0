"""Market data and filing registry providers.

## Provider Types

- **MarketDataProvider**: quotes, company profiles, price history, fundamentals
- **FilingRegistryProvider**: registry ids, filings, filing documents and content

## Usage

```python
from marketlens.providers import create_aggregator

aggregator = await create_aggregator()
filings = await aggregator.get_filings("MSFT", [FilingType.FORM_10K], limit=5)
```

Direct use of one implementation:

```python
from marketlens.providers.sec_edgar import SECEdgarClient

client = SECEdgarClient(fetcher=fetcher, cache=cache)
```
"""

# Protocols (abstract interfaces)
from marketlens.providers.base import (
    FilingRegistryProvider,
    MarketDataProvider,
    StatementExtractor,
)

# Factory functions
from marketlens.providers.factory import (
    create_aggregator,
    create_cache,
    create_filing_registry_provider,
    create_market_data_provider,
)

# HTTP resilience
from marketlens.providers.http import CircuitBreaker, RateLimiter, ResilientFetcher

# Implementations
from marketlens.providers.sec_edgar import SECEdgarClient
from marketlens.providers.yahoo import YahooFinanceClient

__all__ = [
    # Protocols
    "MarketDataProvider",
    "FilingRegistryProvider",
    "StatementExtractor",
    # Factory functions
    "create_aggregator",
    "create_cache",
    "create_market_data_provider",
    "create_filing_registry_provider",
    # HTTP resilience
    "CircuitBreaker",
    "RateLimiter",
    "ResilientFetcher",
    # Implementations
    "SECEdgarClient",
    "YahooFinanceClient",
]
