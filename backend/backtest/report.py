"""Report formatting for backtest results.

Outputs backtest results to console (formatted tables) and JSON files,
plus console views of the market turnover and stock/bond region series.
"""

from __future__ import annotations

from pathlib import Path

import orjson

from core.indicators import Region, RegionMode
from core.models import BacktestResult, EnrichedBar

from backtest.stats import round_trips


def _fmt_optional(value: float | None) -> str:
    return "-" if value is None else f"{value:.4f}"


class ReportFormatter:
    """Format backtest results for display and export."""

    @staticmethod
    def print_console(result: BacktestResult, secid: str, show_trades: bool = False) -> None:
        """Print formatted report to console."""
        print("\n" + "=" * 70)
        print(f"  BACKTEST RESULTS — Volume MA10/MA100 crossover ({secid})")
        print("=" * 70)

        if result.is_neutral:
            print("  Not enough history (need more than 100 trading days).")
            print("=" * 70)
            return

        print(f"  Period: {result.capital_curve[0].date} → {result.capital_curve[-1].date}")

        print("\n" + "-" * 70)
        print("  OVERALL")
        print("-" * 70)
        print(f"  Final net value:   {result.final_net_value:.4f}")
        print(f"  Strategy return:   {result.return_rate}%")
        print(f"  Benchmark return:  {result.benchmark_return}%")
        print(f"  Win rate:          {result.win_rate}%")
        print(f"  Trades:            {result.trade_count}")

        trips = round_trips(result.trades)
        if trips:
            best = max(trips, key=lambda t: t.return_pct)
            worst = min(trips, key=lambda t: t.return_pct)
            print(f"  Best round trip:   {best.return_pct:+.2f}% ({best.buy.date} → {best.sell.date})")
            print(f"  Worst round trip:  {worst.return_pct:+.2f}% ({worst.buy.date} → {worst.sell.date})")

        if show_trades and result.trades:
            print("\n" + "-" * 70)
            print("  TRADES")
            print("-" * 70)
            print(f"  {'Date':<12} {'Side':<6} {'Price':>12}  Reason")
            for t in result.trades:
                print(f"  {t.date:<12} {t.side.value:<6} {t.price:>12.4f}  {t.reason}")

        print("\n" + "=" * 70)

    @staticmethod
    def print_volume(bars: list[EnrichedBar], recent: int = 10) -> None:
        """Print the latest combined turnover with its moving averages."""
        print("\n" + "=" * 70)
        print("  MARKET TURNOVER — SH + SZ (trillion yuan)")
        print("=" * 70)

        if not bars:
            print("  No data.")
            print("=" * 70)
            return

        print(f"  Period: {bars[0].date} → {bars[-1].date} ({len(bars)} days)")
        print(f"\n  {'Date':<12} {'Close':>10} {'Turnover':>10} {'MA10':>10} {'MA100':>10}  Signal")
        for bar in bars[-recent:]:
            signal = bar.signal.value if bar.signal else ""
            print(
                f"  {bar.date:<12} {bar.close:>10.2f} {bar.volume:>10.4f} "
                f"{_fmt_optional(bar.ma_short):>10} {_fmt_optional(bar.ma_long):>10}  {signal}"
            )
        print("\n" + "=" * 70)

    @staticmethod
    def print_regions(regions: list[Region], mode: RegionMode) -> None:
        """Print stock/bond co-movement regions."""
        if mode is RegionMode.KILL:
            title = "LIQUIDITY CRUNCH (stocks and bonds down)"
        else:
            title = "LIQUIDITY FLOOD (stocks and bonds up)"
        print("\n" + "=" * 70)
        print(f"  {title}")
        print("=" * 70)

        if not regions:
            print("  No regions found.")
        for region in regions:
            print(f"  {region.start} → {region.end}")

        print("=" * 70)

    @staticmethod
    def to_dict(result: BacktestResult, secid: str) -> dict:
        """Convert results to JSON-serializable dict."""
        return {"secid": secid, **result.model_dump(mode="json")}

    @staticmethod
    def save_json(result: BacktestResult, secid: str, path: str) -> None:
        """Save results to JSON file."""
        data = ReportFormatter.to_dict(result, secid)
        Path(path).write_bytes(orjson.dumps(data, option=orjson.OPT_INDENT_2))
        print(f"\nResults saved to {path}")
