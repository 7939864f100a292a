"""Business services."""

from app.services.market_data import (
    BOND_ETF,
    ETF_OPTIONS,
    SHANGHAI_COMPOSITE,
    SHENZHEN_COMPONENT,
    AnalysisReport,
    EtfOption,
    MarketDataService,
    build_bond_bars,
    build_ohlc_bars,
    build_volume_bars,
)

__all__ = [
    "MarketDataService",
    "AnalysisReport",
    "EtfOption",
    "ETF_OPTIONS",
    "SHANGHAI_COMPOSITE",
    "SHENZHEN_COMPONENT",
    "BOND_ETF",
    "build_volume_bars",
    "build_bond_bars",
    "build_ohlc_bars",
]
