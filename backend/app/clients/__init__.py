"""Market data clients."""

from app.clients.eastmoney_rest import (
    EastmoneyRestClient,
    RateLimiter,
    RawKline,
    parse_kline,
)

__all__ = [
    "EastmoneyRestClient",
    "RateLimiter",
    "RawKline",
    "parse_kline",
]
