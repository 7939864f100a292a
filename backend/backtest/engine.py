"""Volume moving-average crossover backtest.

Replays a daily bar series through a two-state machine:

- FLAT -> LONG on a golden cross of the 10-day over the 100-day average
  volume (all cash converted to holdings at the close)
- LONG -> FLAT on a death cross (all holdings converted back to cash)

Every other signal/state combination is ignored: no pyramiding, no shorting.
The benchmark is buy-and-hold from the first tradable bar.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Sequence

from core.indicators import (
    LONG_WINDOW,
    SHORT_WINDOW,
    cross_signal,
    moving_average,
    round_half_up,
)
from core.models import (
    BacktestResult,
    CurvePoint,
    MarketBar,
    PriceField,
    Signal,
    Trade,
    TradeSide,
)

from backtest.stats import final_value, percent_return, win_rate

logger = logging.getLogger(__name__)

INITIAL_CAPITAL = 100000.0

BUY_REASON = "golden cross buy"
SELL_REASON = "death cross sell"


class PositionState(str, Enum):
    """Position held by the strategy."""

    FLAT = "flat"
    LONG = "long"


class BacktestSimulator:
    """Deterministic simulator for the volume crossover strategy.

    The simulator holds no state between runs; ``run`` can be called any
    number of times with the same or different series.
    """

    def __init__(
        self,
        short_window: int = SHORT_WINDOW,
        long_window: int = LONG_WINDOW,
        initial_capital: float = INITIAL_CAPITAL,
    ):
        if short_window >= long_window:
            raise ValueError(
                f"short_window ({short_window}) must be below long_window ({long_window})"
            )
        self.short_window = short_window
        self.long_window = long_window
        self.initial_capital = initial_capital

    def find_start_index(
        self,
        bars: Sequence[MarketBar],
        ma_long: list[float | None],
    ) -> int | None:
        """First index >= long_window with a positive finite close and long average."""
        for i in range(self.long_window, len(bars)):
            if bars[i].has_valid_close and ma_long[i] is not None:
                return i
        return None

    def run(self, bars: Sequence[MarketBar]) -> BacktestResult:
        """
        Replay the strategy over a bar series.

        Args:
            bars: Daily bars in strictly ascending date order

        Returns:
            BacktestResult snapshot; the neutral result when the series is
            too short for the long average
        """
        ma_short = moving_average(self.short_window, bars, PriceField.VOLUME)
        ma_long = moving_average(self.long_window, bars, PriceField.VOLUME)

        start_index = self.find_start_index(bars, ma_long)
        if start_index is None:
            logger.debug(
                f"Not enough history for a backtest: {len(bars)} bars, "
                f"need more than {self.long_window}"
            )
            return BacktestResult.neutral()

        # Pad the warmup so curves stay aligned with the bars
        capital_curve = [CurvePoint(date=bar.date, value=1.0) for bar in bars[:start_index]]
        benchmark_curve = list(capital_curve)
        trades: list[Trade] = []

        initial_price = bars[start_index].close
        mark_price = initial_price
        cash = self.initial_capital
        holdings = 0.0
        state = PositionState.FLAT

        for i in range(start_index, len(bars)):
            bar = bars[i]
            price = bar.close
            tradable = bar.has_valid_close
            # Bars without a usable close are valued at the last usable one
            if tradable:
                mark_price = price

            benchmark_curve.append(
                CurvePoint(date=bar.date, value=round_half_up(mark_price / initial_price, 4))
            )

            signal = cross_signal(ma_short[i - 1], ma_long[i - 1], ma_short[i], ma_long[i])

            if signal is Signal.BUY and state is PositionState.FLAT and tradable:
                holdings = cash / price
                cash = 0.0
                state = PositionState.LONG
                trades.append(Trade(date=bar.date, side=TradeSide.BUY, price=price, reason=BUY_REASON))
            elif signal is Signal.SELL and state is PositionState.LONG and tradable:
                cash = holdings * price
                holdings = 0.0
                state = PositionState.FLAT
                trades.append(Trade(date=bar.date, side=TradeSide.SELL, price=price, reason=SELL_REASON))
            elif signal is not None and not tradable:
                logger.debug(f"Skipping {signal.value} on {bar.date}: unusable close {price!r}")

            total_asset = cash + holdings * mark_price
            capital_curve.append(
                CurvePoint(date=bar.date, value=round_half_up(total_asset / self.initial_capital, 4))
            )

        final_net_value = final_value(capital_curve)

        result = BacktestResult(
            trades=trades,
            capital_curve=capital_curve,
            benchmark_curve=benchmark_curve,
            final_net_value=final_net_value,
            return_rate=percent_return(final_net_value),
            benchmark_return=percent_return(final_value(benchmark_curve)),
            win_rate=win_rate(trades),
            trade_count=len(trades),
        )

        logger.info(
            f"Backtest {bars[start_index].date} -> {bars[-1].date}: "
            f"{result.trade_count} trades, strategy {result.return_rate}%, "
            f"benchmark {result.benchmark_return}%"
        )
        return result


def run_strategy(bars: Sequence[MarketBar]) -> BacktestResult:
    """Run the default 10/100-day volume crossover backtest."""
    return BacktestSimulator().run(bars)
