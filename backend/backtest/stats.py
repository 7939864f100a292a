"""Statistics for volume-crossover backtest results.

Net values are ratios to the starting value (1.0 = breakeven); the
percentage fields of BacktestResult are derived from the last point of
each curve.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from core.exceptions import TradeSequenceError
from core.indicators import format_fixed
from core.models import CurvePoint, Trade, TradeSide

logger = logging.getLogger(__name__)


@dataclass
class RoundTrip:
    """A buy followed by the sell that closed it."""

    buy: Trade
    sell: Trade

    @property
    def is_win(self) -> bool:
        return self.sell.price > self.buy.price

    @property
    def return_pct(self) -> float:
        return (self.sell.price / self.buy.price - 1) * 100


def final_value(curve: list[CurvePoint]) -> float:
    """Last net value of a curve, 1.0 when empty."""
    return curve[-1].value if curve else 1.0


def percent_return(net_value: float) -> str:
    """Format a net value as a percentage return with 2 decimals."""
    return format_fixed((net_value - 1) * 100, 2)


def round_trips(trades: list[Trade]) -> list[RoundTrip]:
    """
    Pair every sell with the trade immediately before it.

    Args:
        trades: Trade log in execution order

    Returns:
        Closed round trips; a trailing open buy is ignored

    Raises:
        TradeSequenceError: If the log does not alternate buy, sell, buy, ...
    """
    trips = []
    expected = TradeSide.BUY
    for i, trade in enumerate(trades):
        if trade.side is not expected:
            raise TradeSequenceError(
                f"trade #{i} on {trade.date} is a {trade.side.value}, "
                f"expected a {expected.value}"
            )
        if trade.side is TradeSide.SELL:
            trips.append(RoundTrip(buy=trades[i - 1], sell=trade))
            expected = TradeSide.BUY
        else:
            expected = TradeSide.SELL
    return trips


def win_rate(trades: list[Trade]) -> str:
    """Share of sells priced above their buy, as a whole percentage."""
    trips = round_trips(trades)
    if not trips:
        return "0"
    wins = sum(1 for trip in trips if trip.is_win)
    return format_fixed(wins / len(trips) * 100, 0)
