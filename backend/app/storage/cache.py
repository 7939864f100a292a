"""Bar cache stores.

A cache store maps a key to an ordered bar sequence. Two implementations:
- RedisCacheStore: persistent, shared between processes
- MemoryCacheStore: in-process dict, for tests and cache-less runs

Both raise CacheStoreError when the backend fails, so callers can tell a
missing key (None) apart from an unreadable cache.

Bars are serialized with orjson as a JSON array of field dicts.
"""

from __future__ import annotations

import logging
from typing import Protocol

import orjson
import redis.asyncio as redis
from pydantic import ValidationError
from redis.asyncio.connection import ConnectionPool

from core.exceptions import CacheStoreError
from core.models import MarketBar

logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    """Protocol for key -> ordered bar sequence storage."""

    async def get(self, key: str) -> list[MarketBar] | None: ...

    async def set(self, key: str, bars: list[MarketBar]) -> None: ...


# =============================================================================
# Serialization
# =============================================================================

def encode_bars(bars: list[MarketBar]) -> bytes:
    """Serialize bars, omitting absent optional fields."""
    return orjson.dumps([bar.model_dump(exclude_none=True) for bar in bars])


def decode_bars(data: bytes) -> list[MarketBar]:
    """Deserialize bars written by encode_bars.

    Raises:
        CacheStoreError: If the payload is not a valid bar list
    """
    try:
        items = orjson.loads(data)
        if not isinstance(items, list):
            raise CacheStoreError(f"Cached payload is a {type(items).__name__}, not a list")
        return [MarketBar.model_validate(item) for item in items]
    except orjson.JSONDecodeError as e:
        raise CacheStoreError(f"JSON decode error: {e}") from e
    except ValidationError as e:
        raise CacheStoreError(f"Invalid cached bar: {e}") from e


# =============================================================================
# Redis
# =============================================================================

class RedisCacheStore:
    """Bar cache backed by Redis.

    Call ``connect()`` before use. If Redis is unreachable the store stays
    disabled and every operation raises CacheStoreError.
    """

    def __init__(
        self,
        url: str,
        ttl: int | None = None,
        max_connections: int = 20,
    ):
        self.url = url
        self.ttl = ttl
        self.max_connections = max_connections
        self._pool: ConnectionPool | None = None
        self._client: redis.Redis | None = None

    async def connect(self) -> bool:
        """Initialize the connection pool and check the server.

        Returns:
            True if Redis answered PING
        """
        if self._client is not None:
            return True

        self._pool = ConnectionPool.from_url(
            self.url,
            max_connections=self.max_connections,
            decode_responses=False,  # We handle encoding ourselves with orjson
        )
        self._client = redis.Redis(connection_pool=self._pool)

        try:
            await self._client.ping()
            logger.info(f"Redis connected: {self.url}")
            return True
        except redis.RedisError as e:
            logger.warning(f"Redis connection failed: {e}. Cache will be disabled.")
            await self.close()
            return False

    async def close(self) -> None:
        """Close the connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None

    @property
    def is_available(self) -> bool:
        """Check if the store is connected."""
        return self._client is not None

    def _require_client(self) -> redis.Redis:
        if self._client is None:
            raise CacheStoreError("Redis cache is not available")
        return self._client

    async def get(self, key: str) -> list[MarketBar] | None:
        """Load the bar sequence for a key, None if absent."""
        client = self._require_client()
        try:
            data = await client.get(key)
        except redis.RedisError as e:
            raise CacheStoreError(f"Redis GET error for {key}: {e}") from e

        if data is None:
            return None
        return decode_bars(data)

    async def set(self, key: str, bars: list[MarketBar]) -> None:
        """Replace the bar sequence stored under a key."""
        client = self._require_client()
        data = encode_bars(bars)
        try:
            if self.ttl:
                await client.setex(key, self.ttl, data)
            else:
                await client.set(key, data)
        except redis.RedisError as e:
            raise CacheStoreError(f"Redis SET error for {key}: {e}") from e

    async def delete(self, key: str) -> bool:
        """Delete a key. Returns True if it existed."""
        client = self._require_client()
        try:
            return await client.delete(key) > 0
        except redis.RedisError as e:
            raise CacheStoreError(f"Redis DELETE error for {key}: {e}") from e


# =============================================================================
# In-memory
# =============================================================================

class MemoryCacheStore:
    """Bar cache held in a dict.

    ``reads`` and ``writes`` count calls; ``fail_reads``/``fail_writes``
    make the next calls raise CacheStoreError.
    """

    def __init__(self, initial: dict[str, list[MarketBar]] | None = None):
        self._data: dict[str, tuple[MarketBar, ...]] = {
            key: tuple(bars) for key, bars in (initial or {}).items()
        }
        self.reads = 0
        self.writes = 0
        self.fail_reads = False
        self.fail_writes = False

    async def get(self, key: str) -> list[MarketBar] | None:
        self.reads += 1
        if self.fail_reads:
            raise CacheStoreError(f"Simulated read failure for {key}")
        bars = self._data.get(key)
        return list(bars) if bars is not None else None

    async def set(self, key: str, bars: list[MarketBar]) -> None:
        self.writes += 1
        if self.fail_writes:
            raise CacheStoreError(f"Simulated write failure for {key}")
        self._data[key] = tuple(bars)

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        return sorted(self._data)
