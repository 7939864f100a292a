"""Tests for the market data service."""

import math

import pytest

from app.clients import RawKline
from app.services import (
    BOND_ETF,
    SHANGHAI_COMPOSITE,
    SHENZHEN_COMPONENT,
    MarketDataService,
    build_bond_bars,
    build_ohlc_bars,
    build_volume_bars,
)
from app.storage import DataSyncCache, MemoryCacheStore
from core.models import MarketBar


def kline(date: str, close: float, amount: float = 1e11, high=None, low=None) -> RawKline:
    return RawKline(
        date=date,
        open=close,
        close=close,
        high=close + 1 if high is None else high,
        low=close - 1 if low is None else low,
        amount=amount,
    )


class FakeClient:
    """Stand-in for EastmoneyRestClient serving fixed records per secid."""

    def __init__(self, data: dict[str, list[RawKline]]):
        self.data = data
        self.calls: list[tuple[str, str | None]] = []

    async def get_klines(self, secid: str, start_date: str | None = None) -> list[RawKline]:
        self.calls.append((secid, start_date))
        records = self.data.get(secid, [])
        if start_date is None:
            return list(records)
        return [k for k in records if k.date >= start_date]


class TestBuildBars:
    """Tests for record -> bar conversion."""

    def test_volume_bars_sum_turnover_in_trillions(self):
        shanghai = [kline("2024-01-02", 2960.0, 4e11), kline("2024-01-03", 2970.0, 5e11)]
        shenzhen = [kline("2024-01-02", 9000.0, 5e11)]

        bars = build_volume_bars(shanghai, shenzhen)

        assert bars == [
            MarketBar(date="2024-01-02", close=2960.0, volume=0.9),
            MarketBar(date="2024-01-03", close=2970.0, volume=0.5),
        ]

    def test_volume_bars_empty_shanghai(self):
        assert build_volume_bars([], [kline("2024-01-02", 1.0)]) == []

    def test_volume_bars_skip_bad_records(self):
        shanghai = [kline("2024-01-02", math.nan), kline("2024-01-03", 1.0)]
        assert [b.date for b in build_volume_bars(shanghai, [])] == ["2024-01-03"]

    def test_bond_bars(self):
        stock = [kline("2024-01-02", 2960.0), kline("2024-01-03", 2970.0)]
        bond = [kline("2024-01-02", 101.5)]

        bars = build_bond_bars(stock, bond)

        assert bars[0].secondary_price == 101.5
        assert bars[1].secondary_price == 0.0
        assert bars[0].volume == 0.0

    def test_ohlc_bars(self):
        records = [
            kline("2024-01-02", 1.0, amount=2000.0, high=1.2, low=0.9),
            kline("2024-01-03", math.nan),
            kline("2024-01-04", 1.1, amount=math.nan),
        ]

        bars = build_ohlc_bars(records)

        assert bars == [
            MarketBar(date="2024-01-02", open=1.0, close=1.0, high=1.2, low=0.9, volume=2000.0),
        ]


@pytest.fixture
def client():
    return FakeClient({
        SHANGHAI_COMPOSITE: [kline("2024-01-02", 2960.0), kline("2024-01-03", 2970.0)],
        SHENZHEN_COMPONENT: [kline("2024-01-02", 9000.0), kline("2024-01-03", 9100.0)],
        BOND_ETF: [kline("2024-01-02", 101.5), kline("2024-01-03", 101.6)],
        "1.510300": [kline(f"2024-01-{d:02d}", 3.0 + d / 100) for d in range(2, 12)],
    })


@pytest.fixture
def store():
    return MemoryCacheStore()


@pytest.fixture
def service(client, store):
    return MarketDataService(client=client, sync_cache=DataSyncCache(store), cache_version="v2")


class TestMarketDataService:
    """Tests for MarketDataService."""

    @pytest.mark.asyncio
    async def test_volume_data_key_and_values(self, service, store):
        bars = await service.fetch_volume_data()

        assert store.keys() == ["volume_data_v2"]
        assert [b.volume for b in bars] == [0.2, 0.2]

    @pytest.mark.asyncio
    async def test_bond_data_key(self, service, store):
        bars = await service.fetch_bond_data()

        assert store.keys() == ["bond_data_v2"]
        assert [b.secondary_price for b in bars] == [101.5, 101.6]

    @pytest.mark.asyncio
    async def test_backtest_data_key(self, service, store):
        bars = await service.fetch_backtest_data("1.510300")

        assert store.keys() == ["backtest_1.510300_v2"]
        assert len(bars) == 10
        assert bars[0].has_ohlc

    @pytest.mark.asyncio
    async def test_second_fetch_is_incremental(self, service, client):
        await service.fetch_backtest_data("1.510300")
        await service.fetch_backtest_data("1.510300")

        assert client.calls == [("1.510300", None), ("1.510300", "2024-01-11")]

    @pytest.mark.asyncio
    async def test_analyze_short_series_is_neutral(self, service):
        report = await service.analyze("1.510300", custom_window=5)

        assert report.secid == "1.510300"
        assert len(report.bars) == 10
        assert report.bars[4].ma_custom is not None
        assert report.bars[3].ma_custom is None
        assert report.result.is_neutral

    @pytest.mark.asyncio
    async def test_analyze_unknown_secid(self, service):
        report = await service.analyze("9.999999")

        assert report.bars == []
        assert report.result.is_neutral
