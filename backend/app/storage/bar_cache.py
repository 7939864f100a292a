"""Incremental bar cache synchronization.

Keeps the cached bar sequence of each key in step with the market data
source: load cache -> fetch bars since the last cached date -> merge ->
save. The source treats the start date as inclusive, so the last cached
date comes back in every incremental fetch and is filtered out here.

Invariant: every sequence returned or persisted has unique, strictly
ascending dates.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Awaitable, Callable

from core.exceptions import CacheStoreError, DataSourceError
from core.models import MarketBar, normalize_bars

from app.storage.cache import CacheStore

logger = logging.getLogger(__name__)

# fetch_since(start_date_inclusive | None) -> bars in ascending date order
FetchSince = Callable[[str | None], Awaitable[list[MarketBar]]]

# Failures that send a sync down the uncached path
SYNC_FAILURES = (CacheStoreError, DataSourceError, asyncio.TimeoutError)


class DataSyncCache:
    """Merge freshly fetched bars into a CacheStore, one key at a time.

    Read-merge-write runs under a per-key lock so concurrent syncs of the
    same key cannot drop each other's bars; different keys sync in parallel.
    """

    def __init__(self, store: CacheStore, fetch_timeout: float | None = None):
        self.store = store
        self.fetch_timeout = fetch_timeout
        # Entries vanish once no sync holds or waits on the lock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def _fetch(self, fetch_since: FetchSince, start_date: str | None) -> list[MarketBar]:
        if self.fetch_timeout is None:
            return await fetch_since(start_date)
        return await asyncio.wait_for(fetch_since(start_date), timeout=self.fetch_timeout)

    async def sync(self, key: str, fetch_since: FetchSince) -> list[MarketBar]:
        """
        Bring the cached sequence for a key up to date.

        Never raises for cache or source failures: they fall back to an
        uncached full fetch (empty list if that fails too). Cancellation
        propagates; nothing is persisted before the merge is complete.

        Args:
            key: Versioned cache key (e.g., "backtest_1.510300_v2")
            fetch_since: Coroutine function returning bars on or after a date

        Returns:
            Merged bars with unique, strictly ascending dates
        """
        async with self._lock_for(key):
            try:
                return await self._sync_locked(key, fetch_since)
            except SYNC_FAILURES as e:
                logger.warning(f"Cache sync failed for {key}: {e!r}. Fetching without cache.")

        return await self.fetch_uncached(key, fetch_since)

    async def _sync_locked(self, key: str, fetch_since: FetchSince) -> list[MarketBar]:
        cached = normalize_bars(await self.store.get(key) or [])
        last_date = cached[-1].date if cached else None

        fetched = await self._fetch(fetch_since, last_date)
        if not fetched:
            logger.debug(f"{key}: no bars since {last_date}, {len(cached)} cached")
            return cached

        if last_date is None:
            merged = normalize_bars(fetched)
            await self.store.set(key, merged)
            logger.info(f"{key}: cached initial history of {len(merged)} bars")
            return merged

        fresh = normalize_bars([bar for bar in fetched if bar.date > last_date])
        if not fresh:
            logger.debug(f"{key}: up to date at {last_date}")
            return cached

        merged = cached + fresh
        await self.store.set(key, merged)
        logger.info(f"{key}: appended {len(fresh)} bars after {last_date}")
        return merged

    async def fetch_uncached(self, key: str, fetch_since: FetchSince) -> list[MarketBar]:
        """Fetch the full history without touching the cache."""
        try:
            bars = await self._fetch(fetch_since, None)
        except (DataSourceError, asyncio.TimeoutError) as e:
            logger.error(f"Uncached fetch failed for {key}: {e!r}")
            return []
        return normalize_bars(bars)
