"""Binance WebSocket client for real-time K-line data using picows.

Connects to the combined-stream endpoint, where every message is wrapped as
``{"stream": "btcusdt@kline_5m", "data": {"e": "kline", "k": {...}}}``.
Each kline carries ``x``: true once its bucket has closed.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

import orjson
from picows import WSCloseCode, WSFrame, WSListener, WSMsgType, WSTransport, ws_connect

from app.clients.binance_rest import binance_interval
from core.models import Candle

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class KlineEvent:
    """One kline update from the stream."""

    symbol: str
    candle: Candle
    is_closed: bool


# Type alias for kline callback
KlineCallback = Callable[[KlineEvent], Awaitable[None]]


def parse_kline_message(message: str | bytes) -> KlineEvent | None:
    """Parse a raw stream message into a kline event.

    Returns None for anything that is not a kline (subscription replies,
    error frames). Raises on malformed JSON or a malformed kline body.
    """
    data = orjson.loads(message)
    if not isinstance(data, dict):
        return None

    # Combined streams wrap the payload
    if "stream" in data and "data" in data:
        data = data["data"]

    if not isinstance(data, dict) or data.get("e") != "kline":
        return None

    k = data["k"]
    candle = Candle(
        open_time=int(k["t"]) // 1000,
        open=float(k["o"]),
        high=float(k["h"]),
        low=float(k["l"]),
        close=float(k["c"]),
    )
    return KlineEvent(symbol=str(k["s"]).upper(), candle=candle, is_closed=bool(k["x"]))


class BinanceKlineListener(WSListener):
    """picows listener for Binance K-line WebSocket stream."""

    def __init__(
        self,
        callback: KlineCallback,
        on_connected: Callable[[], None],
        on_disconnected: Callable[[], None],
        loop: asyncio.AbstractEventLoop,
    ):
        self._callback = callback
        self._on_connected = on_connected
        self._on_disconnected = on_disconnected
        self._transport: WSTransport | None = None
        self._loop = loop

    def on_ws_connected(self, transport: WSTransport):
        """Called when WebSocket connection is established."""
        self._transport = transport
        logger.info("picows: K-line WebSocket connected")
        self._on_connected()

    def on_ws_disconnected(self, transport: WSTransport):
        """Called when WebSocket is disconnected."""
        logger.info("picows: K-line WebSocket disconnected")
        self._transport = None
        self._on_disconnected()

    def on_ws_frame(self, transport: WSTransport, frame: WSFrame):
        """Called when a new frame is received."""
        if frame.msg_type == WSMsgType.TEXT:
            self.handle_message(frame.get_payload_as_bytes())
        elif frame.msg_type == WSMsgType.PING:
            transport.send_pong(frame.get_payload_as_bytes())
        elif frame.msg_type == WSMsgType.CLOSE:
            transport.disconnect()

    def handle_message(self, message: str | bytes) -> None:
        """Parse one message and hand kline events to the callback."""
        try:
            event = parse_kline_message(message)
        except orjson.JSONDecodeError as e:
            logger.error(f"Failed to parse kline message: {e}")
            return
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Malformed kline message: {e}")
            return

        if event is None:
            return

        asyncio.run_coroutine_threadsafe(self._safe_callback(event), self._loop)

    async def _safe_callback(self, event: KlineEvent) -> None:
        """Safely execute async callback."""
        try:
            await self._callback(event)
        except Exception as e:
            logger.error(f"Kline callback error for {event.symbol}: {e}")

    def disconnect(self) -> None:
        """Disconnect the WebSocket."""
        if self._transport:
            self._transport.send_close(WSCloseCode.OK)
            self._transport.disconnect()


class BinanceKlineWebSocket:
    """WebSocket client for Binance combined K-line streams using picows."""

    WS_URL = "wss://stream.binance.com:9443/stream"

    def __init__(
        self,
        symbols: list[str],
        interval_seconds: int,
        callback: KlineCallback,
        url: str | None = None,
        reconnect_delay: float = 1.0,
        max_reconnect_delay: float = 5.0,
        idle_timeout: float = 20.0,
    ):
        self.symbols = [s.upper() for s in symbols]
        self.interval = binance_interval(interval_seconds)
        self._callback = callback
        self._base_url = url or self.WS_URL
        self._initial_delay = reconnect_delay
        self._reconnect_delay = reconnect_delay
        self._max_reconnect_delay = max_reconnect_delay
        self._idle_timeout = idle_timeout
        self._running = False
        self._listener: BinanceKlineListener | None = None
        self._disconnected = asyncio.Event()

    @property
    def url(self) -> str:
        streams = "/".join(f"{s.lower()}@kline_{self.interval}" for s in self.symbols)
        return f"{self._base_url}?streams={streams}"

    async def run(self) -> None:
        """Main WebSocket loop with reconnection. Returns after ``stop()``."""
        self._running = True
        while self._running:
            try:
                await self._connect_and_process()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"picows kline error: {e}")

            if self._running:
                logger.info(
                    f"Reconnecting kline WS in {self._reconnect_delay} seconds..."
                )
                await asyncio.sleep(self._reconnect_delay)
                self._reconnect_delay = min(
                    self._reconnect_delay * 2, self._max_reconnect_delay
                )

    async def stop(self) -> None:
        """Stop the WebSocket connection."""
        self._running = False
        if self._listener:
            self._listener.disconnect()
        self._disconnected.set()

    def _on_connected(self) -> None:
        """Called when connection is established."""
        self._disconnected.clear()
        self._reconnect_delay = self._initial_delay

    def _on_disconnected(self) -> None:
        """Called when connection is lost."""
        self._disconnected.set()

    async def _connect_and_process(self) -> None:
        """Connect to WebSocket and wait for disconnection."""
        self._disconnected.clear()

        # Capture event loop here (in async context) to pass to listener
        loop = asyncio.get_running_loop()

        def listener_factory():
            self._listener = BinanceKlineListener(
                callback=self._callback,
                on_connected=self._on_connected,
                on_disconnected=self._on_disconnected,
                loop=loop,
            )
            return self._listener

        logger.info(f"Connecting to {self.url}")
        await ws_connect(
            listener_factory,
            self.url,
            enable_auto_ping=True,
            auto_ping_idle_timeout=self._idle_timeout,
            auto_ping_reply_timeout=10,
        )

        # Wait until disconnected
        await self._disconnected.wait()
