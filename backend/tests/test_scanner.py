"""Tests for scanner wiring: routing, warm-up and streaming."""

import asyncio
import io

import orjson
import pytest

from app.adapters import BinanceAdapter, Source
from app.config import Settings
from app.errors import AdapterAuthError
from app.services import Scanner, SignalWriter
from tests.helpers import rising_candles


class FakeAdapter:
    """In-memory adapter: canned warm-up, then a fixed list of ticks."""

    def __init__(self, source, symbols, history=None, ticks=(), warmup_error=None,
                 stream_error=None, tick_delay=0.0):
        self._source = source
        self._symbols = list(symbols)
        self.history = history or []
        self.ticks = list(ticks)
        self.warmup_error = warmup_error
        self.stream_error = stream_error
        self.tick_delay = tick_delay
        self.stopped = False

    @property
    def source(self):
        return self._source

    @property
    def symbols(self):
        return list(self._symbols)

    async def warmup(self, symbol):
        if self.warmup_error:
            raise self.warmup_error
        return list(self.history)

    async def stream(self, sink):
        if self.stream_error:
            raise self.stream_error
        for symbol, price, ts in self.ticks:
            if self.tick_delay:
                await asyncio.sleep(self.tick_delay)
            await sink.feed_tick(symbol, price, ts)

    async def stop(self):
        self.stopped = True


def settings(**kwargs):
    kwargs.setdefault("oanda_api_key", "")
    kwargs.setdefault("oanda_account_id", "")
    return Settings(_env_file=None, **kwargs)


class TestBuildAdapters:
    """Tests for adapter construction from settings."""

    def test_missing_credentials_disable_only_oanda(self):
        scanner = Scanner(settings(symbols=["EUR_USD", "BTCUSDT"]), writer=SignalWriter(io.StringIO()))

        assert len(scanner.adapters) == 1
        assert isinstance(scanner.adapters[0], BinanceAdapter)
        assert scanner.adapters[0].symbols == ["BTCUSDT"]

    def test_both_sources(self):
        scanner = Scanner(
            settings(symbols=["EURUSD", "ethusdt"], oanda_api_key="k", oanda_account_id="1"),
            writer=SignalWriter(io.StringIO()),
        )

        by_source = {a.source: a.symbols for a in scanner.adapters}
        assert by_source == {Source.OANDA: ["EUR_USD"], Source.BINANCE: ["ETHUSDT"]}


class TestWarmup:
    """Tests for parallel warm-up."""

    @pytest.mark.asyncio
    async def test_failed_warmup_is_skipped(self):
        """One failing symbol does not block the others."""
        good = FakeAdapter(Source.BINANCE, ["BTCUSDT"], history=rising_candles(250))
        bad = FakeAdapter(Source.OANDA, ["EUR_USD"], warmup_error=RuntimeError("timeout"))
        scanner = Scanner(settings(), writer=SignalWriter(io.StringIO()), adapters=[good, bad])

        merged = await scanner.warmup()

        assert merged == {"BTCUSDT": 250}
        assert len(scanner.engine.get_history("BTCUSDT")) == 250
        assert scanner.engine.get_history("EUR_USD") == ()


class TestRun:
    """Tests for the full run loop with fake adapters."""

    @pytest.mark.asyncio
    async def test_warm_then_stream_writes_decision(self):
        """A candle closed after warm-up yields one NDJSON decision line."""
        ticks = [
            ("BTCUSDT", 125.0, 250 * 300 + 1),
            ("BTCUSDT", 125.2, 250 * 300 + 100),
            ("BTCUSDT", 125.3, 251 * 300 + 1),
        ]
        adapter = FakeAdapter(Source.BINANCE, ["BTCUSDT"], history=rising_candles(250), ticks=ticks)
        out = io.StringIO()
        scanner = Scanner(settings(), writer=SignalWriter(out), adapters=[adapter])

        await asyncio.wait_for(scanner.run(), timeout=5)

        lines = out.getvalue().splitlines()
        assert len(lines) == 1
        record = orjson.loads(lines[0])
        assert record["symbol"] == "BTCUSDT"
        assert record["status"] in ("ACTIVE", "WAIT")
        assert adapter.stopped

    @pytest.mark.asyncio
    async def test_candles_emitted_when_enabled(self):
        ticks = [("EUR_USD", 1.1, 1), ("EUR_USD", 1.2, 301)]
        adapter = FakeAdapter(Source.OANDA, ["EUR_USD"], ticks=ticks)
        out = io.StringIO()
        scanner = Scanner(
            settings(emit_candles=True),
            writer=SignalWriter(out, emit_candles=True),
            adapters=[adapter],
        )

        await asyncio.wait_for(scanner.run(), timeout=5)

        records = [orjson.loads(line) for line in out.getvalue().splitlines()]
        assert records[0] == {
            "symbol": "EUR_USD",
            "time": "1970-01-01T00:05:00+00:00",
            "open": 1.1,
            "high": 1.1,
            "low": 1.1,
            "close": 1.1,
        }
        assert records[1]["status"] == "WAIT"
        assert "Insufficient history" in records[1]["reason"]

    @pytest.mark.asyncio
    async def test_auth_failure_stops_one_adapter(self):
        """Rejected credentials end that adapter; the others keep going."""
        broken = FakeAdapter(Source.OANDA, ["EUR_USD"], stream_error=AdapterAuthError("401"))
        ticks = [("BTCUSDT", 1.0, 1), ("BTCUSDT", 1.1, 301)]
        working = FakeAdapter(Source.BINANCE, ["BTCUSDT"], ticks=ticks)
        out = io.StringIO()
        scanner = Scanner(settings(), writer=SignalWriter(out), adapters=[broken, working])

        await asyncio.wait_for(scanner.run(), timeout=5)

        assert len(out.getvalue().splitlines()) == 1
        assert broken.stopped and working.stopped

    @pytest.mark.asyncio
    async def test_crashing_adapter_leaves_others_running(self):
        """An unexpected error in one stream does not cancel the other adapters."""
        crashing = FakeAdapter(Source.BINANCE, ["BTCUSDT"], stream_error=ValueError("bad interval"))
        ticks = [("EUR_USD", 1.1, 1), ("EUR_USD", 1.2, 301)]
        working = FakeAdapter(Source.OANDA, ["EUR_USD"], ticks=ticks, tick_delay=0.02)
        out = io.StringIO()
        scanner = Scanner(settings(), writer=SignalWriter(out), adapters=[crashing, working])

        await asyncio.wait_for(scanner.run(), timeout=5)

        lines = out.getvalue().splitlines()
        assert len(lines) == 1
        assert orjson.loads(lines[0])["symbol"] == "EUR_USD"

    @pytest.mark.asyncio
    async def test_no_adapters(self):
        scanner = Scanner(settings(), writer=SignalWriter(io.StringIO()), adapters=[])

        await asyncio.wait_for(scanner.run(), timeout=5)

        assert scanner.adapters == []
