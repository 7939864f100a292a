"""Data storage layer."""

from app.storage.cache import (
    CacheStore,
    MemoryCacheStore,
    RedisCacheStore,
    decode_bars,
    encode_bars,
)
from app.storage.bar_cache import DataSyncCache, FetchSince

__all__ = [
    "CacheStore",
    "MemoryCacheStore",
    "RedisCacheStore",
    "encode_bars",
    "decode_bars",
    "DataSyncCache",
    "FetchSince",
]
