"""Tests for the volume crossover backtest simulator."""

import math

import pytest

from backtest import BacktestSimulator, run_strategy
from backtest.engine import BUY_REASON, INITIAL_CAPITAL, SELL_REASON
from core.models import MarketBar, TradeSide


def make_series(volumes: list[float], closes: list[float] | None = None) -> list[MarketBar]:
    """Daily bars with close = 10 + index unless given."""
    bars = []
    for i, volume in enumerate(volumes):
        month, day = divmod(i, 28)
        bars.append(
            MarketBar(
                date=f"2023-{month + 1:02d}-{day + 1:02d}",
                close=closes[i] if closes else 10.0 + i,
                volume=volume,
            )
        )
    return bars


def crossover_volumes() -> list[float]:
    """110 days: a volume spike at 102 crosses up, a dry day at 108 crosses down."""
    volumes = [100.0] * 92 + [99.0] * 10  # 0..101
    volumes += [119.0]                    # 102: golden cross
    volumes += [99.0] * 5                 # 103..107
    volumes += [0.0]                      # 108: death cross
    volumes += [99.0]                     # 109
    return volumes


class TestConfiguration:
    """Tests for simulator construction."""

    def test_defaults(self):
        sim = BacktestSimulator()
        assert sim.short_window == 10
        assert sim.long_window == 100
        assert sim.initial_capital == INITIAL_CAPITAL

    def test_short_window_must_be_below_long(self):
        with pytest.raises(ValueError):
            BacktestSimulator(short_window=100, long_window=100)


class TestInsufficientHistory:
    """Series too short for the long average."""

    @pytest.mark.parametrize("length", [0, 1, 50, 100])
    def test_neutral_result(self, length):
        result = run_strategy(make_series([100.0] * length))

        assert result.is_neutral
        assert result.trades == []
        assert result.capital_curve == []
        assert result.benchmark_curve == []
        assert result.final_net_value == 1.0
        assert result.return_rate == "0.00"
        assert result.benchmark_return == "0.00"
        assert result.win_rate == "0"
        assert result.trade_count == 0

    def test_minimal_tradable_series(self):
        result = run_strategy(make_series([100.0] * 101))

        assert not result.is_neutral
        assert len(result.capital_curve) == 101
        assert result.trades == []
        assert result.final_net_value == 1.0


class TestCrossoverRun:
    """End-to-end run over a series with one golden and one death cross."""

    @pytest.fixture
    def bars(self):
        return make_series(crossover_volumes())

    @pytest.fixture
    def result(self, bars):
        return run_strategy(bars)

    def test_trades(self, result):
        assert [(t.date, t.side, t.price) for t in result.trades] == [
            ("2023-04-19", TradeSide.BUY, 112.0),
            ("2023-04-25", TradeSide.SELL, 118.0),
        ]
        assert result.trades[0].reason == BUY_REASON
        assert result.trades[1].reason == SELL_REASON
        assert result.trade_count == 2

    def test_returns(self, result):
        assert result.final_net_value == 1.0536
        assert result.return_rate == "5.36"
        assert result.benchmark_return == "8.18"
        assert result.win_rate == "100"

    def test_curves_aligned_with_bars(self, bars, result):
        assert len(result.capital_curve) == len(bars)
        assert len(result.benchmark_curve) == len(bars)
        assert [p.date for p in result.capital_curve] == [b.date for b in bars]
        assert all(p.value == 1.0 for p in result.capital_curve[:100])
        assert all(p.value == 1.0 for p in result.benchmark_curve[:100])

    def test_curve_values(self, result):
        capital = [p.value for p in result.capital_curve]
        benchmark = [p.value for p in result.benchmark_curve]

        assert capital[101] == 1.0  # still flat
        assert capital[102] == 1.0  # bought at the close
        assert capital[103] == 1.0089  # 113 / 112
        assert capital[109] == 1.0536  # cash after the sell
        assert benchmark[100] == 1.0
        assert benchmark[101] == 1.0091  # 111 / 110

    def test_rerun_is_identical(self, bars, result):
        sim = BacktestSimulator()
        assert sim.run(bars) == result
        assert sim.run(bars) == result


class TestEdgeCases:
    """Unusual bars."""

    def test_invalid_close_delays_start(self):
        closes = [10.0 + i for i in range(110)]
        closes[100] = math.nan
        result = run_strategy(make_series([100.0] * 110, closes))

        assert all(p.value == 1.0 for p in result.capital_curve[:101])
        assert result.benchmark_curve[102].value == 1.009  # 112 / 111
        assert len(result.capital_curve) == 110

    def test_losing_round_trip(self):
        closes = [10.0 + i for i in range(110)]
        closes[108] = 100.0
        closes[109] = 100.0
        result = run_strategy(make_series(crossover_volumes(), closes))

        assert result.win_rate == "0"
        assert result.final_net_value < 1.0
        assert result.return_rate.startswith("-")

    def test_open_position_at_end(self):
        volumes = crossover_volumes()[:105]
        result = run_strategy(make_series(volumes))

        assert [t.side for t in result.trades] == [TradeSide.BUY]
        assert result.win_rate == "0"
        # 114 / 112, marked to market
        assert result.final_net_value == 1.0179

    def test_zero_close_delays_start(self):
        closes = [10.0 + i for i in range(110)]
        closes[100] = 0.0
        result = run_strategy(make_series([100.0] * 110, closes))

        assert all(p.value == 1.0 for p in result.capital_curve[:101])
        assert result.benchmark_curve[102].value == 1.009  # 112 / 111
        assert result.benchmark_return == "7.21"  # 119 / 111

    def test_zero_close_skips_trade(self):
        closes = [10.0 + i for i in range(110)]
        closes[102] = 0.0
        result = run_strategy(make_series(crossover_volumes(), closes))

        # The golden cross bar has no usable price, so the strategy stays flat
        assert result.trades == []
        assert all(p.value == 1.0 for p in result.capital_curve)
        # Benchmark holds the last usable close (111) on that bar
        assert result.benchmark_curve[102].value == 1.0091

    def test_infinite_close_valued_at_last_usable_price(self):
        closes = [10.0 + i for i in range(110)]
        closes[109] = math.inf
        result = run_strategy(make_series(crossover_volumes(), closes))

        assert result.final_net_value == 1.0536
        assert result.return_rate == "5.36"
        assert result.benchmark_curve[-1].value == 1.0727  # 118 / 110
        assert result.benchmark_return == "7.27"
