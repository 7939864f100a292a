"""Daily market bar data models."""

import math
from enum import Enum

from pydantic import BaseModel, ConfigDict


class PriceField(str, Enum):
    """Numeric bar field an indicator is computed over."""

    CLOSE = "close"
    OPEN = "open"
    HIGH = "high"
    LOW = "low"
    VOLUME = "volume"
    SECONDARY_PRICE = "secondary_price"

    def value_of(self, bar: "MarketBar") -> float:
        """Read this field from a bar; missing optional fields read as 0."""
        value = getattr(bar, self.value)
        return 0.0 if value is None else value


class Signal(str, Enum):
    """Moving-average crossover signal."""

    BUY = "buy"
    SELL = "sell"


class MarketBar(BaseModel):
    """One trading day of a symbol.

    ``date`` is a ``YYYY-MM-DD`` string, so lexicographic order is
    chronological order. ``volume`` carries turnover for index series.
    ``secondary_price`` is the close of a companion instrument (bond ETF).
    """

    model_config = ConfigDict(frozen=True)

    date: str
    close: float
    volume: float
    open: float | None = None
    high: float | None = None
    low: float | None = None
    secondary_price: float | None = None

    @property
    def has_ohlc(self) -> bool:
        """Check if open/high/low are all present."""
        return None not in (self.open, self.high, self.low)

    @property
    def has_valid_close(self) -> bool:
        """Check if close is a finite, positive price."""
        return math.isfinite(self.close) and self.close > 0


class EnrichedBar(MarketBar):
    """Market bar carrying every indicator computed for its index."""

    ma_short: float | None = None
    ma_long: float | None = None
    ma_custom: float | None = None
    hdy: float = 50.0
    signal: Signal | None = None


def is_strictly_ascending(bars: list[MarketBar]) -> bool:
    """Check that dates are unique and strictly increasing."""
    return all(prev.date < curr.date for prev, curr in zip(bars, bars[1:]))


def normalize_bars(bars: list[MarketBar]) -> list[MarketBar]:
    """Sort bars by date and drop repeated dates (first occurrence wins)."""
    if is_strictly_ascending(bars):
        return list(bars)

    seen: set[str] = set()
    result = []
    for bar in sorted(bars, key=lambda b: b.date):
        if bar.date in seen:
            continue
        seen.add(bar.date)
        result.append(bar)
    return result
