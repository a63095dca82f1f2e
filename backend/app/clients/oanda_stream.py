"""OANDA v20 pricing stream client.

The stream is a long-lived chunked HTTP response carrying one JSON object
per line: ``PRICE`` messages with bid/ask ladders and a ``HEARTBEAT`` every
five seconds. A read that stays idle longer than ``idle_timeout`` means the
connection is dead and triggers a reconnect.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

import httpx
import orjson

from app.clients.oanda_rest import auth_headers, parse_oanda_time
from app.errors import AdapterAuthError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PriceTick:
    """Midpoint price observation."""

    symbol: str
    price: float
    timestamp: float  # Unix seconds


# Type alias for tick callback
TickCallback = Callable[[PriceTick], Awaitable[None]]


def _midpoint(msg: dict) -> float | None:
    bids = msg.get("bids") or []
    asks = msg.get("asks") or []
    if bids and asks:
        return (float(bids[0]["price"]) + float(asks[0]["price"])) / 2
    if msg.get("closeoutBid") and msg.get("closeoutAsk"):
        return (float(msg["closeoutBid"]) + float(msg["closeoutAsk"])) / 2
    return None


def parse_price_line(line: str | bytes) -> PriceTick | None:
    """Parse one stream line into a tick.

    Returns None for heartbeats, other control messages and prices without
    any bid/ask. Raises on malformed JSON or malformed price fields.
    """
    msg = orjson.loads(line)
    if not isinstance(msg, dict) or msg.get("type") != "PRICE":
        return None

    price = _midpoint(msg)
    if price is None:
        return None

    return PriceTick(
        symbol=msg["instrument"],
        price=price,
        timestamp=parse_oanda_time(msg["time"]),
    )


class OandaPriceStream:
    """Streaming client for OANDA prices with reconnection."""

    def __init__(
        self,
        account_id: str,
        api_key: str,
        instruments: list[str],
        callback: TickCallback,
        host: str = "stream-fxpractice.oanda.com",
        transport: httpx.AsyncBaseTransport | None = None,
        reconnect_delay: float = 1.0,
        max_reconnect_delay: float = 5.0,
        idle_timeout: float = 20.0,
    ):
        self.account_id = account_id
        self.api_key = api_key
        self.instruments = instruments
        self._callback = callback
        self.base_url = f"https://{host}"
        self._transport = transport
        self._initial_delay = reconnect_delay
        self._reconnect_delay = reconnect_delay
        self._max_reconnect_delay = max_reconnect_delay
        self._idle_timeout = idle_timeout
        self._running = False
        self.connections = 0

    async def run(self) -> None:
        """Stream until ``stop()``; reconnects after errors or stream end.

        Raises:
            AdapterAuthError: credentials rejected, retrying is pointless
        """
        self._running = True
        async with httpx.AsyncClient(
            base_url=self.base_url,
            headers=auth_headers(self.api_key),
            timeout=httpx.Timeout(10.0, read=self._idle_timeout),
            transport=self._transport,
        ) as client:
            while self._running:
                try:
                    await self._connect_and_process(client)
                except AdapterAuthError:
                    self._running = False
                    raise
                except httpx.HTTPError as e:
                    logger.error(f"OANDA stream error: {type(e).__name__}: {e}")

                if self._running:
                    logger.info(
                        f"Reconnecting OANDA stream in {self._reconnect_delay} seconds..."
                    )
                    await asyncio.sleep(self._reconnect_delay)
                    self._reconnect_delay = min(
                        self._reconnect_delay * 2, self._max_reconnect_delay
                    )

    def stop(self) -> None:
        """Ask the stream loop to exit after the current line."""
        self._running = False

    async def _connect_and_process(self, client: httpx.AsyncClient) -> None:
        path = f"/v3/accounts/{self.account_id}/pricing/stream"
        params = {"instruments": ",".join(self.instruments)}

        logger.info(f"Connecting to OANDA stream for {', '.join(self.instruments)}")
        async with client.stream("GET", path, params=params) as response:
            if response.status_code in (401, 403):
                raise AdapterAuthError(
                    f"OANDA stream rejected credentials ({response.status_code})"
                )
            if response.status_code != 200:
                logger.error(f"OANDA stream connection failed with status {response.status_code}")
                return

            self.connections += 1
            self._reconnect_delay = self._initial_delay
            logger.info("Connected to OANDA stream")

            async for line in response.aiter_lines():
                if not self._running:
                    break
                if line.strip():
                    await self._handle_line(line)

        if self._running:
            logger.info("OANDA stream ended by server")

    async def _handle_line(self, line: str) -> None:
        try:
            tick = parse_price_line(line)
        except orjson.JSONDecodeError as e:
            logger.warning(f"Skipping malformed OANDA line: {e}")
            return
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed OANDA price: {e}")
            return

        if tick is None:
            return

        try:
            await self._callback(tick)
        except Exception as e:
            logger.error(f"Tick callback error for {tick.symbol}: {e}")
