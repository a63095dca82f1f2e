"""Binance adapter: crypto klines over the combined websocket stream."""

import logging

import httpx

from app.adapters.base import MarketSink, Source
from app.clients.binance_rest import BinanceRestClient
from app.clients.binance_ws_kline import BinanceKlineWebSocket, KlineEvent
from app.config import Settings
from core.models import Candle

logger = logging.getLogger(__name__)


class BinanceAdapter:
    """Warm-up from REST klines, live native klines from the websocket.

    Klines arrive already bucketed by the exchange, so they bypass the
    tick aggregator: closed ones go straight into history.
    """

    def __init__(
        self,
        symbols: list[str],
        interval_seconds: int = 300,
        warmup_count: int = 250,
        rest_url: str | None = None,
        ws_url: str | None = None,
        reconnect_delay: float = 1.0,
        max_reconnect_delay: float = 5.0,
        idle_timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._symbols = [s.upper() for s in symbols]
        self.interval_seconds = interval_seconds
        self.warmup_count = warmup_count
        self._ws_url = ws_url
        self._reconnect_delay = reconnect_delay
        self._max_reconnect_delay = max_reconnect_delay
        self._idle_timeout = idle_timeout
        self.rest_client = BinanceRestClient(base_url=rest_url, transport=transport)
        self._ws: BinanceKlineWebSocket | None = None

    @classmethod
    def from_settings(cls, symbols: list[str], settings: Settings) -> "BinanceAdapter":
        return cls(
            symbols,
            interval_seconds=settings.interval_seconds,
            warmup_count=settings.warmup_count,
            rest_url=settings.binance_rest_url,
            ws_url=settings.binance_ws_url,
            reconnect_delay=settings.reconnect_delay,
            max_reconnect_delay=settings.max_reconnect_delay,
            idle_timeout=settings.stream_idle_timeout,
        )

    @property
    def source(self) -> Source:
        return Source.BINANCE

    @property
    def symbols(self) -> list[str]:
        return list(self._symbols)

    async def warmup(self, symbol: str) -> list[Candle]:
        candles = await self.rest_client.get_klines(
            symbol, self.interval_seconds, limit=self.warmup_count
        )
        logger.info(f"Loaded {len(candles)} candles for {symbol} from Binance")
        return candles

    async def stream(self, sink: MarketSink) -> None:
        async def on_kline(event: KlineEvent) -> None:
            await sink.feed_native_candle(event.symbol, event.candle, event.is_closed)

        self._ws = BinanceKlineWebSocket(
            symbols=self._symbols,
            interval_seconds=self.interval_seconds,
            callback=on_kline,
            url=self._ws_url,
            reconnect_delay=self._reconnect_delay,
            max_reconnect_delay=self._max_reconnect_delay,
            idle_timeout=self._idle_timeout,
        )
        await self._ws.run()

    async def stop(self) -> None:
        if self._ws:
            await self._ws.stop()
        await self.rest_client.close()
