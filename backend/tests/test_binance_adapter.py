"""Tests for the Binance REST client, kline stream parsing and adapter."""

import asyncio
import time

import httpx
import orjson
import pytest

from app.adapters import BinanceAdapter
from app.clients.binance_rest import BinanceRestClient, binance_interval
from app.clients.binance_ws_kline import (
    BinanceKlineListener,
    BinanceKlineWebSocket,
    parse_kline_message,
)
from app.services.signal_engine import SignalEngine


def kline_message(symbol="BTCUSDT", open_time=1700000100, closed=True, combined=True,
                  o="37000.0", h="37100.0", l="36950.0", c="37050.0"):
    data = {
        "e": "kline",
        "E": (open_time + 300) * 1000,
        "s": symbol,
        "k": {
            "t": open_time * 1000,
            "T": (open_time + 300) * 1000 - 1,
            "s": symbol,
            "i": "5m",
            "o": o,
            "h": h,
            "l": l,
            "c": c,
            "v": "12.5",
            "x": closed,
        },
    }
    if combined:
        data = {"stream": f"{symbol.lower()}@kline_5m", "data": data}
    return orjson.dumps(data)


class TestParseKlineMessage:
    """Tests for parse_kline_message."""

    def test_combined_stream_message(self):
        event = parse_kline_message(kline_message())

        assert event.symbol == "BTCUSDT"
        assert event.is_closed is True
        assert event.candle.open_time == 1700000100
        assert event.candle.open == 37000.0
        assert event.candle.high == 37100.0
        assert event.candle.low == 36950.0
        assert event.candle.close == 37050.0

    def test_raw_stream_message(self):
        event = parse_kline_message(kline_message(combined=False, closed=False))

        assert event.is_closed is False

    def test_non_kline_ignored(self):
        assert parse_kline_message(b'{"result":null,"id":1}') is None

    def test_malformed_kline_raises(self):
        with pytest.raises(KeyError):
            parse_kline_message(b'{"e":"kline","k":{"t":0}}')


class TestBinanceRestClient:
    """Tests for kline warm-up over REST."""

    def test_interval(self):
        assert binance_interval(300) == "5m"
        with pytest.raises(ValueError):
            binance_interval(7)

    @pytest.mark.asyncio
    async def test_get_klines_drops_open_kline(self):
        """The still-open final row is not part of the warm-up."""
        now = int(time.time()) // 300 * 300
        seen = {}

        def row(open_time, price):
            return [
                open_time * 1000, str(price), str(price + 1), str(price - 1), str(price + 0.5),
                "10.0", (open_time + 300) * 1000 - 1, "0", 5, "0", "0", "0",
            ]

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[
                row(now - 600, 100.0),
                row(now - 300, 101.0),
                row(now, 102.0),
            ])

        client = BinanceRestClient(transport=httpx.MockTransport(handler))
        candles = await client.get_klines("btcusdt", 300, limit=3)
        await client.close()

        assert seen["path"] == "/api/v3/klines"
        assert seen["params"] == {"symbol": "BTCUSDT", "interval": "5m", "limit": "3"}
        assert [c.open_time for c in candles] == [now - 600, now - 300]
        assert candles[0].close == 100.5


class TestKlineWebSocket:
    """Tests for the websocket client that do not need a network."""

    def test_combined_stream_url(self):
        async def callback(event):
            pass

        ws = BinanceKlineWebSocket(["BTCUSDT", "ethusdt"], 300, callback)

        assert ws.url == (
            "wss://stream.binance.com:9443/stream?streams=btcusdt@kline_5m/ethusdt@kline_5m"
        )

    @pytest.mark.asyncio
    async def test_redelivered_kline_after_reconnect(self):
        """A closed kline seen again on a new connection lands in history once."""
        engine = SignalEngine(interval_seconds=300)
        signals = []

        async def on_signal(signal):
            signals.append(signal)

        engine.on_signal(on_signal)

        async def callback(event):
            await engine.feed_native_candle(event.symbol, event.candle, event.is_closed)

        loop = asyncio.get_running_loop()
        for _ in range(2):  # two connections
            listener = BinanceKlineListener(callback, lambda: None, lambda: None, loop)
            listener.handle_message(kline_message(closed=False, c="37020.0"))
            listener.handle_message(kline_message(closed=True))
            await asyncio.sleep(0.05)

        assert len(engine.get_history("BTCUSDT")) == 1
        assert len(signals) == 1

    @pytest.mark.asyncio
    async def test_malformed_message_does_not_reach_callback(self):
        events = []

        async def callback(event):
            events.append(event)

        listener = BinanceKlineListener(callback, lambda: None, lambda: None, asyncio.get_running_loop())
        listener.handle_message(b"not json")
        listener.handle_message(b'{"e":"kline","k":{}}')
        listener.handle_message(kline_message())
        await asyncio.sleep(0.05)

        assert len(events) == 1


class TestBinanceAdapter:
    """Tests for the Binance adapter."""

    def test_symbols_upper_cased(self):
        adapter = BinanceAdapter(["btcusdt", "ETHUSDT"])

        assert adapter.symbols == ["BTCUSDT", "ETHUSDT"]

    @pytest.mark.asyncio
    async def test_warmup_uses_configured_count(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["limit"] = request.url.params["limit"]
            return httpx.Response(200, json=[])

        adapter = BinanceAdapter(
            ["BTCUSDT"], warmup_count=250, transport=httpx.MockTransport(handler)
        )
        assert await adapter.warmup("BTCUSDT") == []
        await adapter.stop()

        assert seen["limit"] == "250"
