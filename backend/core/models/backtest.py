"""Backtest trade and result models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TradeSide(str, Enum):
    """Trade direction. The strategy is long-only."""

    BUY = "buy"
    SELL = "sell"


class Trade(BaseModel):
    """Executed trade in the backtest log."""

    model_config = ConfigDict(frozen=True)

    date: str
    side: TradeSide
    price: float
    reason: str


class CurvePoint(BaseModel):
    """Net value of a curve at one date (1.0 = breakeven)."""

    model_config = ConfigDict(frozen=True)

    date: str
    value: float


class BacktestResult(BaseModel):
    """Snapshot of a single backtest run.

    Percentages are pre-formatted strings: ``return_rate`` and
    ``benchmark_return`` with 2 decimals, ``win_rate`` with none.
    """

    model_config = ConfigDict(frozen=True)

    trades: list[Trade] = Field(default_factory=list)
    capital_curve: list[CurvePoint] = Field(default_factory=list)
    benchmark_curve: list[CurvePoint] = Field(default_factory=list)
    final_net_value: float = 1.0
    return_rate: str = "0.00"
    benchmark_return: str = "0.00"
    win_rate: str = "0"
    trade_count: int = 0

    @classmethod
    def neutral(cls) -> "BacktestResult":
        """Result for a history too short to trade."""
        return cls()

    @property
    def is_neutral(self) -> bool:
        """Check if the backtest never started."""
        return not self.capital_curve and not self.trades
