"""OANDA v20 REST client for fetching historical candles."""

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from app.errors import AdapterAuthError
from core.models import Candle, bucket_start

logger = logging.getLogger(__name__)

# Candle interval in seconds -> OANDA granularity
OANDA_GRANULARITIES = {
    5: "S5",
    60: "M1",
    300: "M5",
    900: "M15",
    1800: "M30",
    3600: "H1",
    14400: "H4",
    86400: "D",
}


def oanda_granularity(interval_seconds: int) -> str:
    """Map an interval in seconds to OANDA's granularity code."""
    try:
        return OANDA_GRANULARITIES[interval_seconds]
    except KeyError:
        raise ValueError(f"Unsupported OANDA interval: {interval_seconds}s") from None


def parse_oanda_time(value: str | float) -> float:
    """Parse an OANDA timestamp into unix seconds.

    Accepts the UNIX format ("1700000000.000000000") and RFC3339 with
    nanosecond precision ("2023-11-14T22:13:20.123456789Z").
    """
    if isinstance(value, (int, float)):
        return float(value)

    text = value.strip()
    try:
        return float(text)
    except ValueError:
        pass

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    # Python handles at most microseconds; trim nanoseconds
    if "." in text:
        head, rest = text.split(".", 1)
        digits = ""
        while rest and rest[0].isdigit():
            digits += rest[0]
            rest = rest[1:]
        text = f"{head}.{digits[:6]}{rest}"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def auth_headers(api_key: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {api_key}",
        "Accept-Datetime-Format": "UNIX",
    }


class OandaRestClient:
    """OANDA v20 REST client (market data only)."""

    def __init__(
        self,
        api_key: str,
        host: str = "api-fxpractice.oanda.com",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = f"https://{host}"
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=auth_headers(self.api_key),
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
        client = await self._get_client()
        response = await client.request(method, endpoint, params=params)
        if response.status_code in (401, 403):
            raise AdapterAuthError(f"OANDA rejected credentials ({response.status_code})")
        response.raise_for_status()
        return response.json()

    async def get_candles(
        self,
        instrument: str,
        interval_seconds: int,
        count: int = 250,
    ) -> list[Candle]:
        """
        Fetch the most recent complete mid-price candles.

        Args:
            instrument: OANDA instrument (e.g., "EUR_USD")
            interval_seconds: Candle interval in seconds
            count: Number of candles to request (max 5000)

        Returns:
            Complete candles, oldest first
        """
        params = {
            "count": min(count, 5000),
            "granularity": oanda_granularity(interval_seconds),
            "price": "M",
        }
        data = await self._request("GET", f"/v3/instruments/{instrument}/candles", params)

        candles = []
        for item in data.get("candles", []):
            if not item.get("complete"):
                continue
            mid = item["mid"]
            candles.append(
                Candle(
                    open_time=bucket_start(parse_oanda_time(item["time"]), interval_seconds),
                    open=float(mid["o"]),
                    high=float(mid["h"]),
                    low=float(mid["l"]),
                    close=float(mid["c"]),
                )
            )

        return candles
