"""Eastmoney REST API client for daily K-line history."""

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any

import httpx

from app.config import get_settings
from core.exceptions import DataSourceError

logger = logging.getLogger(__name__)

# f51..f55, f57 -> date, open, close, high, low, amount (turnover)
KLINE_FIELDS1 = "f1,f2,f3,f4,f5,f6"
KLINE_FIELDS2 = "f51,f52,f53,f54,f55,f57"
KLINE_DAILY = 101
ADJUST_FORWARD = 1


@dataclass(frozen=True)
class RawKline:
    """One parsed daily record; unparseable or infinite numbers are NaN."""

    date: str
    open: float
    close: float
    high: float
    low: float
    amount: float


def _to_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        return math.nan
    return value if math.isfinite(value) else math.nan


def parse_kline(line: str) -> RawKline | None:
    """
    Parse a ``date,open,close,high,low,amount`` record.

    Args:
        line: Comma-separated record from ``data.klines``

    Returns:
        RawKline, or None if the record has too few columns
    """
    parts = line.split(",")
    if len(parts) < 6:
        return None
    return RawKline(
        date=parts[0],
        open=_to_float(parts[1]),
        close=_to_float(parts[2]),
        high=_to_float(parts[3]),
        low=_to_float(parts[4]),
        amount=_to_float(parts[5]),
    )


class RateLimiter:
    """Simple rate limiter for API calls."""

    def __init__(self, calls_per_minute: int = 120):
        self.calls_per_minute = calls_per_minute
        self.interval = 60.0 / calls_per_minute
        self.last_call = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait if necessary to respect rate limit."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            wait_time = self.last_call + self.interval - loop.time()
            if wait_time > 0:
                await asyncio.sleep(wait_time)
            self.last_call = loop.time()


class EastmoneyRestClient:
    """Eastmoney quote history API client.

    Securities are addressed by ``secid`` = ``{market}.{code}``,
    e.g. ``1.000001`` (Shanghai composite) or ``0.399001`` (Shenzhen component).
    """

    KLINE_ENDPOINT = "/api/qt/stock/kline/get"

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        settings = get_settings()
        self.base_url = base_url or settings.eastmoney_base_url
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.history_begin = settings.history_begin
        self.history_end = settings.history_end
        self.history_limit = settings.history_limit
        self.rate_limiter = rate_limiter or RateLimiter()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "EastmoneyRestClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(self, endpoint: str, params: dict[str, Any]) -> Any:
        """Make a GET request with rate limiting."""
        await self.rate_limiter.acquire()
        client = await self._get_client()
        try:
            response = await client.get(endpoint, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise DataSourceError(f"Eastmoney request failed: {e}") from e
        except ValueError as e:
            raise DataSourceError(f"Eastmoney returned invalid JSON: {e}") from e

    async def get_klines(
        self,
        secid: str,
        start_date: str | None = None,
    ) -> list[RawKline]:
        """
        Fetch daily forward-adjusted K-lines.

        Args:
            secid: Security id (e.g., "1.510300")
            start_date: First date to include, YYYY-MM-DD (inclusive);
                None fetches the full history

        Returns:
            Parsed records in ascending date order (empty for unknown secid)

        Raises:
            DataSourceError: On transport errors or a malformed payload
        """
        beg = start_date.replace("-", "") if start_date else self.history_begin
        params = {
            "fields1": KLINE_FIELDS1,
            "fields2": KLINE_FIELDS2,
            "klt": KLINE_DAILY,
            "fqt": ADJUST_FORWARD,
            "secid": secid,
            "beg": beg,
            "end": self.history_end,
            "lmt": self.history_limit,
        }

        payload = await self._request(self.KLINE_ENDPOINT, params)
        if not isinstance(payload, dict):
            raise DataSourceError(f"Unexpected Eastmoney payload for {secid}: {payload!r}")

        data = payload.get("data")
        if not data:
            logger.debug(f"No klines for {secid} since {start_date}")
            return []
        if not isinstance(data, dict):
            raise DataSourceError(f"Unexpected Eastmoney data for {secid}: {data!r}")

        lines = data.get("klines")
        if not lines:
            logger.debug(f"No klines for {secid} since {start_date}")
            return []
        if not isinstance(lines, list):
            raise DataSourceError(f"Unexpected klines for {secid}: {lines!r}")

        klines = []
        for line in lines:
            if not isinstance(line, str):
                raise DataSourceError(f"Unexpected kline record for {secid}: {line!r}")
            kline = parse_kline(line)
            if kline is not None:
                klines.append(kline)

        logger.debug(f"Fetched {len(klines)} klines for {secid} since {start_date}")
        return klines
