"""Core utilities: logging, exceptions, concurrency helpers."""

from marketlens.core.concurrency import join_all
from marketlens.core.exceptions import MarketLensError
from marketlens.core.logging import get_logger, setup_logging

__all__ = [
    "MarketLensError",
    "get_logger",
    "join_all",
    "setup_logging",
]
