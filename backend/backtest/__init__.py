"""Backtesting system for the volume moving-average crossover strategy.

Only depends on core/ for business logic; the CLI wires in app/ for data.

Usage:
    python -m backtest --secid 1.510300
    python -m backtest --list-etfs
"""

from backtest.engine import BacktestSimulator, PositionState, run_strategy
from backtest.stats import RoundTrip, round_trips, win_rate

__all__ = [
    "BacktestSimulator",
    "PositionState",
    "run_strategy",
    "RoundTrip",
    "round_trips",
    "win_rate",
]
