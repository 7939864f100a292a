"""CLI entry point for the backtesting system.

Syncs the daily series of one index/ETF through the Redis bar cache,
computes indicators and replays the volume crossover strategy. Also shows
the market turnover series (--volume) and stock/bond co-movement regions
(--bond).

Usage:
    python -m backtest
    python -m backtest --secid 1.510300 --trades
    python -m backtest --secid 0.159915 --no-cache --output result.json
    python -m backtest --list-etfs
    python -m backtest --volume
    python -m backtest --bond --regions bull
"""

import argparse
import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

# Add backend to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.clients import EastmoneyRestClient
from app.config import get_settings
from app.services import ETF_OPTIONS, MarketDataService
from app.storage import CacheStore, DataSyncCache, MemoryCacheStore, RedisCacheStore
from core.indicators import RegionMode, enrich_bars, liquidity_regions
from core.indicators.signals import REGION_WINDOW

from backtest.report import ReportFormatter


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Backtest the volume MA10/MA100 crossover strategy",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m backtest --secid 1.510300
  python -m backtest --secid 1.512880 --trades --output securities.json
  python -m backtest --list-etfs
  python -m backtest --bond --regions kill --region-window 20
        """,
    )
    parser.add_argument(
        "--list-etfs",
        action="store_true",
        help="List the predefined backtest targets",
    )
    parser.add_argument(
        "--secid",
        type=str,
        default=settings.default_secid,
        help=f"Eastmoney security id (default: {settings.default_secid})",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Do not use Redis; fetch the full history",
    )
    parser.add_argument(
        "--custom-window",
        type=int,
        default=settings.custom_ma_window,
        help=f"Window of the custom volume average (default: {settings.custom_ma_window})",
    )
    parser.add_argument(
        "--volume",
        action="store_true",
        help="Show combined SH/SZ turnover with its moving averages instead of a backtest",
    )
    parser.add_argument(
        "--bond",
        action="store_true",
        help="Show stock/bond co-movement regions instead of a backtest",
    )
    parser.add_argument(
        "--regions",
        choices=[mode.value for mode in RegionMode],
        default=RegionMode.KILL.value,
        help="Region type for --bond: kill (both down) or bull (both up)",
    )
    parser.add_argument(
        "--region-window",
        type=int,
        default=REGION_WINDOW,
        help=f"Lookback in days for --bond regions (default: {REGION_WINDOW})",
    )
    parser.add_argument(
        "--trades",
        action="store_true",
        help="Print the trade log",
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output file path for JSON results",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging",
    )
    return parser.parse_args(argv)


def cmd_list_etfs() -> None:
    """List the predefined backtest targets."""
    print(f"\n{'Secid':<12} Label")
    print("-" * 50)
    for option in ETF_OPTIONS:
        print(f"{option.secid:<12} {option.label}")
    print()


@asynccontextmanager
async def open_service(args: argparse.Namespace) -> AsyncIterator[MarketDataService]:
    """Wire the cache store, client and service; close them on exit."""
    settings = get_settings()

    redis_store: RedisCacheStore | None = None
    store: CacheStore
    if args.no_cache:
        store = MemoryCacheStore()
    else:
        redis_store = RedisCacheStore(settings.redis_url, ttl=settings.cache_ttl)
        await redis_store.connect()
        store = redis_store

    client = EastmoneyRestClient()
    try:
        yield MarketDataService(
            client=client,
            sync_cache=DataSyncCache(store, fetch_timeout=settings.sync_timeout),
        )
    finally:
        await client.close()
        if redis_store is not None:
            await redis_store.close()


async def cmd_volume(args: argparse.Namespace) -> None:
    """Sync and show the market turnover series."""
    async with open_service(args) as service:
        print("\nSyncing market turnover...")
        bars = await service.fetch_volume_data()

    ReportFormatter.print_volume(enrich_bars(bars, custom_window=args.custom_window))


async def cmd_bond(args: argparse.Namespace) -> None:
    """Sync the stock/bond series and show co-movement regions."""
    async with open_service(args) as service:
        print("\nSyncing stock/bond series...")
        bars = await service.fetch_bond_data()

    mode = RegionMode(args.regions)
    regions = liquidity_regions(bars, mode, window=args.region_window)
    ReportFormatter.print_regions(regions, mode)


async def cmd_run_backtest(args: argparse.Namespace) -> None:
    """Sync data and run a backtest."""
    async with open_service(args) as service:
        print(f"\nSyncing {args.secid}...")
        report = await service.analyze(args.secid, custom_window=args.custom_window)

    if not report.bars:
        print(f"Error: no data for {args.secid}")
        sys.exit(1)

    print(f"Bars: {len(report.bars)} ({report.bars[0].date} → {report.bars[-1].date})")
    latest = report.bars[-1]
    print(f"Latest HDY: {latest.hdy:.2f}")

    ReportFormatter.print_console(report.result, args.secid, show_trades=args.trades)

    if args.output:
        ReportFormatter.save_json(report.result, args.secid, args.output)


async def main() -> None:
    args = parse_args()

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    if args.list_etfs:
        cmd_list_etfs()
    elif args.volume:
        await cmd_volume(args)
    elif args.bond:
        await cmd_bond(args)
    else:
        await cmd_run_backtest(args)


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
