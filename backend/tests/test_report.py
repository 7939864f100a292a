"""Tests for backtest report output."""

import orjson

from backtest.report import ReportFormatter
from core.indicators import Region, RegionMode
from core.models import BacktestResult, CurvePoint, EnrichedBar, Signal, Trade, TradeSide


def sample_result() -> BacktestResult:
    trades = [
        Trade(date="2024-05-02", side=TradeSide.BUY, price=3.5, reason="golden cross buy"),
        Trade(date="2024-05-20", side=TradeSide.SELL, price=3.8, reason="death cross sell"),
    ]
    curve = [
        CurvePoint(date="2024-05-01", value=1.0),
        CurvePoint(date="2024-05-20", value=1.0857),
    ]
    return BacktestResult(
        trades=trades,
        capital_curve=curve,
        benchmark_curve=curve,
        final_net_value=1.0857,
        return_rate="8.57",
        benchmark_return="8.57",
        win_rate="100",
        trade_count=2,
    )


class TestConsole:
    """Tests for console output."""

    def test_summary(self, capsys):
        ReportFormatter.print_console(sample_result(), "1.510300")
        out = capsys.readouterr().out

        assert "1.510300" in out
        assert "8.57%" in out
        assert "Win rate:          100%" in out
        assert "TRADES" not in out

    def test_trade_log(self, capsys):
        ReportFormatter.print_console(sample_result(), "1.510300", show_trades=True)
        out = capsys.readouterr().out

        assert "TRADES" in out
        assert "death cross sell" in out

    def test_neutral(self, capsys):
        ReportFormatter.print_console(BacktestResult.neutral(), "1.510300")
        out = capsys.readouterr().out

        assert "Not enough history" in out


class TestJson:
    """Tests for JSON export."""

    def test_to_dict(self):
        data = ReportFormatter.to_dict(sample_result(), "1.510300")

        assert data["secid"] == "1.510300"
        assert data["return_rate"] == "8.57"
        assert data["trades"][0]["side"] == "buy"
        assert data["capital_curve"][1] == {"date": "2024-05-20", "value": 1.0857}

    def test_save_json(self, tmp_path):
        path = tmp_path / "result.json"
        ReportFormatter.save_json(sample_result(), "1.510300", str(path))

        data = orjson.loads(path.read_bytes())
        assert data["trade_count"] == 2
        assert data["win_rate"] == "100"


class TestMarketViews:
    """Tests for the turnover and region views."""

    def test_volume_table(self, capsys):
        bars = [
            EnrichedBar(date="2024-05-06", close=3140.0, volume=1.0512),
            EnrichedBar(date="2024-05-07", close=3147.7, volume=0.9831, ma_short=1.0123, signal=Signal.SELL),
        ]
        ReportFormatter.print_volume(bars)
        out = capsys.readouterr().out

        assert "2024-05-06 → 2024-05-07 (2 days)" in out
        assert "1.0123" in out
        assert "sell" in out

    def test_volume_table_empty(self, capsys):
        ReportFormatter.print_volume([])
        assert "No data." in capsys.readouterr().out

    def test_regions(self, capsys):
        regions = [Region(start="2024-01-22", end="2024-02-05", mode=RegionMode.KILL)]
        ReportFormatter.print_regions(regions, RegionMode.KILL)
        out = capsys.readouterr().out

        assert "LIQUIDITY CRUNCH" in out
        assert "2024-01-22 → 2024-02-05" in out

    def test_no_regions(self, capsys):
        ReportFormatter.print_regions([], RegionMode.BULL)
        out = capsys.readouterr().out

        assert "LIQUIDITY FLOOD" in out
        assert "No regions found." in out
