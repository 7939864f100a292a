"""Market data products built on the bar cache.

Three cached series, each under a versioned key:
- volume data: Shanghai composite close + combined SH/SZ turnover
- bond data: Shanghai composite close + bond ETF close
- backtest data: full OHLC + turnover of one index or ETF

Plus ``analyze``, which runs indicators and the backtest on a series.
"""

from __future__ import annotations

import asyncio
import logging
import math

from pydantic import BaseModel, ConfigDict

from app.clients.eastmoney_rest import EastmoneyRestClient, RawKline
from app.config import get_settings
from app.storage.bar_cache import DataSyncCache
from backtest.engine import BacktestSimulator
from core.indicators import enrich_bars, round_half_up
from core.models import BacktestResult, EnrichedBar, MarketBar

logger = logging.getLogger(__name__)

SHANGHAI_COMPOSITE = "1.000001"
SHENZHEN_COMPONENT = "0.399001"
BOND_ETF = "1.511090"

# Turnover is reported in yuan; volume series are in trillions
TURNOVER_SCALE = 1e12


class EtfOption(BaseModel):
    """Selectable backtest target."""

    model_config = ConfigDict(frozen=True)

    label: str
    secid: str


ETF_OPTIONS = [
    EtfOption(label="SSE Composite (market benchmark)", secid="1.000001"),
    EtfOption(label="CSI 300 ETF (core blue chips)", secid="1.510300"),
    EtfOption(label="ChiNext ETF (growth)", secid="0.159915"),
    EtfOption(label="STAR 50 ETF (hard tech)", secid="1.588000"),
    EtfOption(label="Securities ETF (bull market bellwether)", secid="1.512880"),
    EtfOption(label="Semiconductor ETF", secid="1.512480"),
    EtfOption(label="SSE 50 ETF (mega caps)", secid="1.510050"),
    EtfOption(label="CSI 500 ETF (mid/small caps)", secid="1.510500"),
]


class AnalysisReport(BaseModel):
    """Enriched series plus backtest snapshot for the display layer."""

    model_config = ConfigDict(frozen=True)

    secid: str
    bars: list[EnrichedBar]
    result: BacktestResult


# =============================================================================
# Record -> bar conversion
# =============================================================================

def build_volume_bars(shanghai: list[RawKline], shenzhen: list[RawKline]) -> list[MarketBar]:
    """Combine SH and SZ turnover per Shanghai trading day."""
    if not shanghai:
        return []

    sz_amount = {k.date: k.amount for k in shenzhen if not math.isnan(k.amount)}

    bars = []
    for k in shanghai:
        if math.isnan(k.close) or math.isnan(k.amount):
            continue
        total = k.amount + sz_amount.get(k.date, 0.0)
        bars.append(
            MarketBar(
                date=k.date,
                close=k.close,
                volume=round_half_up(total / TURNOVER_SCALE, 4),
            )
        )
    return bars


def build_bond_bars(stock: list[RawKline], bond: list[RawKline]) -> list[MarketBar]:
    """Attach the bond ETF close to each index trading day."""
    bond_close = {k.date: k.close for k in bond if not math.isnan(k.close)}

    return [
        MarketBar(
            date=k.date,
            close=k.close,
            volume=0.0,
            secondary_price=bond_close.get(k.date, 0.0),
        )
        for k in stock
        if not math.isnan(k.close)
    ]


def build_ohlc_bars(klines: list[RawKline]) -> list[MarketBar]:
    """Full OHLC bars; records with a missing price or turnover are dropped."""
    return [
        MarketBar(
            date=k.date,
            open=k.open,
            close=k.close,
            high=k.high,
            low=k.low,
            volume=k.amount,
        )
        for k in klines
        if not any(math.isnan(v) for v in (k.close, k.high, k.low, k.amount))
    ]


# =============================================================================
# Service
# =============================================================================

class MarketDataService:
    """Cached access to the market data products."""

    def __init__(
        self,
        client: EastmoneyRestClient,
        sync_cache: DataSyncCache,
        cache_version: str | None = None,
    ):
        self.client = client
        self.sync_cache = sync_cache
        self.cache_version = cache_version or get_settings().cache_version

    def _key(self, name: str) -> str:
        return f"{name}_{self.cache_version}"

    async def fetch_volume_data(self) -> list[MarketBar]:
        """Shanghai close with combined SH+SZ turnover (trillions)."""

        async def fetch(start_date: str | None) -> list[MarketBar]:
            shanghai, shenzhen = await asyncio.gather(
                self.client.get_klines(SHANGHAI_COMPOSITE, start_date),
                self.client.get_klines(SHENZHEN_COMPONENT, start_date),
            )
            return build_volume_bars(shanghai, shenzhen)

        return await self.sync_cache.sync(self._key("volume_data"), fetch)

    async def fetch_bond_data(self) -> list[MarketBar]:
        """Shanghai close with the bond ETF close as secondary price."""

        async def fetch(start_date: str | None) -> list[MarketBar]:
            stock, bond = await asyncio.gather(
                self.client.get_klines(SHANGHAI_COMPOSITE, start_date),
                self.client.get_klines(BOND_ETF, start_date),
            )
            return build_bond_bars(stock, bond)

        return await self.sync_cache.sync(self._key("bond_data"), fetch)

    async def fetch_backtest_data(self, secid: str) -> list[MarketBar]:
        """OHLC bars of one index or ETF."""

        async def fetch(start_date: str | None) -> list[MarketBar]:
            return build_ohlc_bars(await self.client.get_klines(secid, start_date))

        return await self.sync_cache.sync(self._key(f"backtest_{secid}"), fetch)

    async def analyze(
        self,
        secid: str,
        custom_window: int | None = None,
        simulator: BacktestSimulator | None = None,
    ) -> AnalysisReport:
        """
        Sync a series, enrich it with indicators and backtest it.

        Args:
            secid: Security id of the backtest target
            custom_window: Window of the custom volume average
            simulator: Simulator to use (default 10/100-day crossover)

        Returns:
            AnalysisReport snapshot
        """
        bars = await self.fetch_backtest_data(secid)
        window = custom_window or get_settings().custom_ma_window
        simulator = simulator or BacktestSimulator()

        report = AnalysisReport(
            secid=secid,
            bars=enrich_bars(bars, custom_window=window),
            result=simulator.run(bars),
        )
        if not bars:
            logger.warning(f"No data for {secid}; returning empty analysis")
        return report
