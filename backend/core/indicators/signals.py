"""Crossover signals and stock/bond co-movement regions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from core.models.bar import MarketBar, Signal


def cross_signal(
    prev_short: float | None,
    prev_long: float | None,
    curr_short: float | None,
    curr_long: float | None,
) -> Signal | None:
    """Classify one step of two moving averages.

    Golden cross (short moves above long) -> BUY,
    death cross (short moves below long) -> SELL.
    Returns None when any value is unavailable.
    """
    if None in (prev_short, prev_long, curr_short, curr_long):
        return None
    if prev_short <= prev_long and curr_short > curr_long:
        return Signal.BUY
    if prev_short >= prev_long and curr_short < curr_long:
        return Signal.SELL
    return None


def crossover_signals(
    short: Sequence[float | None],
    long: Sequence[float | None],
) -> list[Signal | None]:
    """Crossover signal at every index of two aligned averages."""
    if len(short) != len(long):
        raise ValueError(f"series length mismatch: {len(short)} != {len(long)}")

    result: list[Signal | None] = [None] * min(1, len(short))
    for i in range(1, len(short)):
        result.append(cross_signal(short[i - 1], long[i - 1], short[i], long[i]))
    return result


# =============================================================================
# Stock/bond liquidity regions
# =============================================================================

REGION_WINDOW = 20
STOCK_MOVE_THRESHOLD = 0.01   # 1% index move over the window
BOND_MOVE_THRESHOLD = 0.001   # 0.1% bond ETF move over the window


class RegionMode(str, Enum):
    """Which co-movement of stocks and bonds to highlight."""

    KILL = "kill"  # both falling: liquidity crunch
    BULL = "bull"  # both rising: liquidity flood


@dataclass(frozen=True)
class Region:
    """Inclusive date range where the co-movement held."""

    start: str
    end: str
    mode: RegionMode


def _matches(mode: RegionMode, stock_change: float, bond_change: float) -> bool:
    if mode is RegionMode.KILL:
        return stock_change < -STOCK_MOVE_THRESHOLD and bond_change < -BOND_MOVE_THRESHOLD
    return stock_change > STOCK_MOVE_THRESHOLD and bond_change > BOND_MOVE_THRESHOLD


def liquidity_regions(
    bars: Sequence[MarketBar],
    mode: RegionMode,
    window: int = REGION_WINDOW,
) -> list[Region]:
    """
    Find date ranges where stocks and bonds moved together over a window.

    Each bar is compared with the bar ``window`` positions earlier. Bars
    without a companion price on either end are skipped and do not break
    a running region.

    Args:
        bars: Index bars with ``secondary_price`` holding the bond ETF close
        mode: KILL (both down) or BULL (both up)
        window: Lookback in bars

    Returns:
        Regions in ascending date order
    """
    if len(bars) < window:
        return []

    regions: list[Region] = []
    start: str | None = None

    for i in range(window, len(bars)):
        curr = bars[i]
        prev = bars[i - window]
        if not curr.secondary_price or not prev.secondary_price or not prev.close:
            continue

        stock_change = (curr.close - prev.close) / prev.close
        bond_change = (curr.secondary_price - prev.secondary_price) / prev.secondary_price

        if _matches(mode, stock_change, bond_change):
            if start is None:
                start = curr.date
        elif start is not None:
            regions.append(Region(start=start, end=bars[i - 1].date, mode=mode))
            start = None

    if start is not None:
        regions.append(Region(start=start, end=bars[-1].date, mode=mode))

    return regions
