"""Custom exceptions for marketlens."""


class MarketLensError(Exception):
    """Base exception for all marketlens errors."""

    def __init__(self, message: str, *args: object) -> None:
        self.message = message
        super().__init__(message, *args)


class NotFoundError(MarketLensError):
    """A ticker, registry id or filing does not exist upstream."""


# Upstream errors
class UpstreamError(MarketLensError):
    """Base error for calls to an upstream data provider."""

    def __init__(self, message: str, *args: object, upstream: str = "") -> None:
        self.upstream = upstream
        super().__init__(message, *args)


class UpstreamUnavailableError(UpstreamError):
    """Transient failures outlasted every retry."""


class CircuitOpenError(UpstreamUnavailableError):
    """The upstream's circuit breaker is open; no request was sent."""


class UpstreamRequestError(UpstreamError):
    """Upstream rejected the request with a non-transient status."""

    def __init__(
        self, message: str, *args: object, upstream: str = "", status_code: int = 0
    ) -> None:
        self.status_code = status_code
        super().__init__(message, *args, upstream=upstream)


class UpstreamDataInvalidError(UpstreamError):
    """Upstream answered successfully but the payload is missing required data."""


class ParseFailureError(MarketLensError):
    """Filing content could not be interpreted."""


class CacheUnavailableError(MarketLensError):
    """The external cache backend could not be reached."""
