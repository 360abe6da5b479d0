"""CLI entry point for marketlens."""

import argparse
import asyncio
import sys
from datetime import UTC, date, datetime, timedelta
from typing import Any

import orjson
from pydantic import BaseModel

from marketlens.aggregator import DataAggregator
from marketlens.config import get_settings
from marketlens.core.exceptions import MarketLensError
from marketlens.core.logging import setup_logging
from marketlens.models import FilingType, TimeInterval
from marketlens.providers.factory import create_aggregator
from marketlens.storage.redis import close_redis, init_redis


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="marketlens", description="Market data and SEC filings in one place"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    profile = commands.add_parser("profile", help="Company profile with SEC CIK")
    profile.add_argument("ticker")

    prices = commands.add_parser("prices", help="Historical OHLCV bars")
    prices.add_argument("ticker")
    prices.add_argument("--from", dest="from_date", type=date.fromisoformat, help="YYYY-MM-DD")
    prices.add_argument("--to", dest="to_date", type=date.fromisoformat, help="YYYY-MM-DD")
    prices.add_argument(
        "--interval",
        choices=[i.value for i in TimeInterval],
        default=TimeInterval.DAILY.value,
    )

    filings = commands.add_parser("filings", help="Recent SEC filings")
    filings.add_argument("ticker")
    filings.add_argument(
        "--type",
        dest="types",
        action="append",
        choices=[t.value for t in FilingType],
        help="Filing type to keep (repeatable)",
    )
    filings.add_argument("--limit", type=int, default=20)

    metrics = commands.add_parser("metrics", help="Headline financial metrics")
    metrics.add_argument("ticker")

    recommendations = commands.add_parser("recommendations", help="Analyst consensus")
    recommendations.add_argument("ticker")

    return parser


def _to_jsonable(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    if isinstance(result, list):
        return [_to_jsonable(item) for item in result]
    return result


def _utc_midnight(value: date) -> datetime:
    return datetime.combine(value, datetime.min.time(), tzinfo=UTC)


async def _dispatch(aggregator: DataAggregator, args: argparse.Namespace) -> Any:
    if args.command == "profile":
        return await aggregator.get_company_profile(args.ticker)
    if args.command == "prices":
        to_date = args.to_date or datetime.now(UTC).date()
        from_date = args.from_date or to_date - timedelta(days=30)
        return await aggregator.get_historical_prices(
            args.ticker,
            _utc_midnight(from_date),
            _utc_midnight(to_date),
            TimeInterval(args.interval),
        )
    if args.command == "filings":
        types = [FilingType(t) for t in args.types] if args.types else None
        return await aggregator.get_filings(args.ticker, types, args.limit)
    if args.command == "metrics":
        return await aggregator.get_financial_metrics(args.ticker)
    if args.command == "recommendations":
        return await aggregator.get_analyst_recommendations(args.ticker)
    raise ValueError(f"Unknown command: {args.command}")


async def _run(args: argparse.Namespace) -> Any:
    settings = get_settings()
    redis = await init_redis(settings.redis_url) if settings.cache_backend == "redis" else None
    aggregator = await create_aggregator(redis, settings)
    try:
        return await _dispatch(aggregator, args)
    finally:
        await aggregator.close()
        if redis is not None:
            await close_redis()


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    setup_logging(get_settings())

    try:
        result = asyncio.run(_run(args))
    except MarketLensError as e:
        print(f"error: {e.message}", file=sys.stderr)
        raise SystemExit(1) from e

    sys.stdout.write(orjson.dumps(_to_jsonable(result), option=orjson.OPT_INDENT_2).decode())
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
