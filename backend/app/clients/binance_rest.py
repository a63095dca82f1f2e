"""Binance REST API client for fetching historical klines."""

import asyncio
import time
from typing import Any

import httpx

from core.models import Candle

# Candle interval in seconds -> Binance interval string
BINANCE_INTERVALS = {
    60: "1m",
    180: "3m",
    300: "5m",
    900: "15m",
    1800: "30m",
    3600: "1h",
    14400: "4h",
    86400: "1d",
}


def binance_interval(interval_seconds: int) -> str:
    """Map an interval in seconds to Binance's interval string."""
    try:
        return BINANCE_INTERVALS[interval_seconds]
    except KeyError:
        raise ValueError(f"Unsupported Binance interval: {interval_seconds}s") from None


class RateLimiter:
    """Simple rate limiter for API calls."""

    def __init__(self, calls_per_minute: int = 1200):
        self.calls_per_minute = calls_per_minute
        self.interval = 60.0 / calls_per_minute
        self.last_call = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait if necessary to respect rate limit."""
        async with self._lock:
            now = asyncio.get_running_loop().time()
            wait_time = self.last_call + self.interval - now
            if wait_time > 0:
                await asyncio.sleep(wait_time)
            self.last_call = asyncio.get_running_loop().time()


class BinanceRestClient:
    """Binance spot REST API client (public market data only)."""

    BASE_URL = "https://api.binance.com"

    def __init__(
        self,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or self.BASE_URL
        self.rate_limiter = RateLimiter()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=30.0,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self, method: str, endpoint: str, params: dict[str, Any] | None = None
    ) -> Any:
        """Make an API request with rate limiting."""
        await self.rate_limiter.acquire()
        client = await self._get_client()
        response = await client.request(method, endpoint, params=params)
        response.raise_for_status()
        return response.json()

    async def get_klines(
        self,
        symbol: str,
        interval_seconds: int,
        limit: int = 250,
    ) -> list[Candle]:
        """
        Fetch the most recent closed klines.

        The final row Binance returns is usually the still-open kline; any
        row whose close time is in the future is dropped.

        Args:
            symbol: Trading pair (e.g., "BTCUSDT")
            interval_seconds: Candle interval in seconds
            limit: Maximum number of klines (max 1000)

        Returns:
            Closed candles, oldest first
        """
        params: dict[str, Any] = {
            "symbol": symbol.upper(),
            "interval": binance_interval(interval_seconds),
            "limit": min(limit, 1000),
        }

        data = await self._request("GET", "/api/v3/klines", params)

        now_ms = time.time() * 1000
        candles = []
        for item in data:
            if int(item[6]) >= now_ms:
                continue
            candles.append(
                Candle(
                    open_time=int(item[0]) // 1000,
                    open=float(item[1]),
                    high=float(item[2]),
                    low=float(item[3]),
                    close=float(item[4]),
                )
            )

        return candles
