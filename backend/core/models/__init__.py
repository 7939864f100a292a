"""Data models shared by the data layer, indicators and backtests."""

from core.models.bar import (
    EnrichedBar,
    MarketBar,
    PriceField,
    Signal,
    is_strictly_ascending,
    normalize_bars,
)
from core.models.backtest import BacktestResult, CurvePoint, Trade, TradeSide

__all__ = [
    "MarketBar",
    "EnrichedBar",
    "PriceField",
    "Signal",
    "is_strictly_ascending",
    "normalize_bars",
    "Trade",
    "TradeSide",
    "CurvePoint",
    "BacktestResult",
]
