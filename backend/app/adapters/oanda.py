"""OANDA adapter: forex and metals ticks over a chunked HTTP stream."""

import logging

import httpx

from app.adapters.base import MarketSink, Source
from app.clients.oanda_rest import OandaRestClient
from app.clients.oanda_stream import OandaPriceStream, PriceTick
from app.config import Settings
from app.errors import AdapterConfigError
from core.models import Candle

logger = logging.getLogger(__name__)


class OandaAdapter:
    """Warm-up from the candles endpoint, live midpoint ticks from the pricing stream."""

    def __init__(
        self,
        symbols: list[str],
        api_key: str,
        account_id: str,
        practice: bool = True,
        interval_seconds: int = 300,
        warmup_count: int = 250,
        reconnect_delay: float = 1.0,
        max_reconnect_delay: float = 5.0,
        idle_timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key or not account_id:
            raise AdapterConfigError(
                "Missing OANDA_API_KEY or OANDA_ACCOUNT_ID for symbols: " + ", ".join(symbols)
            )

        self._symbols = list(symbols)
        self.api_key = api_key
        self.account_id = account_id
        self.interval_seconds = interval_seconds
        self.warmup_count = warmup_count
        self._api_host = "api-fxpractice.oanda.com" if practice else "api-fxtrade.oanda.com"
        self._stream_host = (
            "stream-fxpractice.oanda.com" if practice else "stream-fxtrade.oanda.com"
        )
        self._reconnect_delay = reconnect_delay
        self._max_reconnect_delay = max_reconnect_delay
        self._idle_timeout = idle_timeout
        self._transport = transport
        self.rest_client = OandaRestClient(api_key, host=self._api_host, transport=transport)
        self._stream: OandaPriceStream | None = None

    @classmethod
    def from_settings(cls, symbols: list[str], settings: Settings) -> "OandaAdapter":
        return cls(
            symbols,
            api_key=settings.oanda_api_key,
            account_id=settings.oanda_account_id,
            practice=settings.oanda_practice,
            interval_seconds=settings.interval_seconds,
            warmup_count=settings.warmup_count,
            reconnect_delay=settings.reconnect_delay,
            max_reconnect_delay=settings.max_reconnect_delay,
            idle_timeout=settings.stream_idle_timeout,
        )

    @property
    def source(self) -> Source:
        return Source.OANDA

    @property
    def symbols(self) -> list[str]:
        return list(self._symbols)

    async def warmup(self, symbol: str) -> list[Candle]:
        candles = await self.rest_client.get_candles(
            symbol, self.interval_seconds, count=self.warmup_count
        )
        logger.info(f"Loaded {len(candles)} candles for {symbol} from OANDA")
        return candles

    async def stream(self, sink: MarketSink) -> None:
        async def on_tick(tick: PriceTick) -> None:
            await sink.feed_tick(tick.symbol, tick.price, tick.timestamp)

        self._stream = OandaPriceStream(
            account_id=self.account_id,
            api_key=self.api_key,
            instruments=self._symbols,
            callback=on_tick,
            host=self._stream_host,
            transport=self._transport,
            reconnect_delay=self._reconnect_delay,
            max_reconnect_delay=self._max_reconnect_delay,
            idle_timeout=self._idle_timeout,
        )
        await self._stream.run()

    async def stop(self) -> None:
        if self._stream:
            self._stream.stop()
        await self.rest_client.close()
