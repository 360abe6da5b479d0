"""Pydantic models for Yahoo Finance market data."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel


class Quote(BaseModel):
    """Latest quote for a ticker. Fields absent upstream are 0."""

    ticker: str
    price: Decimal
    change: Decimal
    change_percent: Decimal
    volume: int
    market_cap: Decimal


class AnalystRecommendation(BaseModel):
    """Analyst consensus for a ticker."""

    ticker: str
    rating: str  # "buy", "hold", ... or "N/A"
    total_analysts: int = 0
    target_price: Decimal = Decimal(0)
