"""Exception hierarchy for market data, caching and backtests.

All exceptions derive from :class:`MarketDataError` so callers can catch
every failure of the pipeline uniformly.
"""

from __future__ import annotations


class MarketDataError(Exception):
    """Base class for market data pipeline errors."""


class DataSourceError(MarketDataError):
    """Raised when the remote market data source fails or returns garbage."""


class CacheStoreError(MarketDataError):
    """Raised when reading from or writing to the bar cache fails."""


class TradeSequenceError(MarketDataError, ValueError):
    """Raised when a trade log does not alternate buy and sell."""


__all__ = [
    "MarketDataError",
    "DataSourceError",
    "CacheStoreError",
    "TradeSequenceError",
]
