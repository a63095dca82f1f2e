"""Scanner: routes symbols to adapters, warms up history, runs the streams.

Startup flow:
1. Route every configured symbol to exactly one source
2. Build one adapter per source (a source with missing credentials is
   disabled; the others still run)
3. Warm up all symbols in parallel, one ``merge_history`` per symbol
4. Run every adapter's stream as its own task until shutdown
"""

import asyncio
import logging

from app.adapters import (
    BinanceAdapter,
    ExchangeAdapter,
    OandaAdapter,
    Source,
    route_symbols,
)
from app.config import Settings
from app.errors import AdapterAuthError, AdapterConfigError
from app.services.signal_engine import SignalEngine
from app.services.signal_writer import SignalWriter

logger = logging.getLogger(__name__)

_ADAPTER_TYPES = {
    Source.OANDA: OandaAdapter,
    Source.BINANCE: BinanceAdapter,
}


class Scanner:
    """Wires adapters, the signal engine, and the NDJSON writer together."""

    def __init__(
        self,
        settings: Settings,
        engine: SignalEngine | None = None,
        writer: SignalWriter | None = None,
        adapters: list[ExchangeAdapter] | None = None,
    ):
        self.settings = settings
        self.engine = engine or SignalEngine(
            interval_seconds=settings.interval_seconds,
            capacity=settings.history_capacity,
        )
        self.writer = writer or SignalWriter(
            interval_seconds=settings.interval_seconds,
            emit_candles=settings.emit_candles,
        )
        self.engine.on_candle_closed(self.writer.write_candle)
        self.engine.on_signal(self.writer.write_signal)

        self.adapters: list[ExchangeAdapter] = (
            adapters if adapters is not None else self.build_adapters()
        )
        self._tasks: list[asyncio.Task] = []

    def build_adapters(self) -> list[ExchangeAdapter]:
        """Create one adapter per routed source."""
        adapters: list[ExchangeAdapter] = []
        for source, symbols in route_symbols(self.settings.symbols).items():
            try:
                adapter = _ADAPTER_TYPES[source].from_settings(list(symbols), self.settings)
            except AdapterConfigError as e:
                logger.error(f"{source.value} adapter disabled: {e}")
                continue
            logger.info(f"{source.value} adapter serving: {', '.join(symbols)}")
            adapters.append(adapter)
        return adapters

    async def warmup(self) -> dict[str, int]:
        """Fetch history for every symbol in parallel.

        A failed fetch is logged and skipped; that symbol warms up from live
        data instead.

        Returns:
            Candles merged per symbol
        """
        jobs = [
            (adapter, symbol)
            for adapter in self.adapters
            for symbol in adapter.symbols
        ]
        results = await asyncio.gather(
            *(adapter.warmup(symbol) for adapter, symbol in jobs),
            return_exceptions=True,
        )

        merged: dict[str, int] = {}
        for (adapter, symbol), result in zip(jobs, results):
            if isinstance(result, BaseException):
                logger.error(
                    f"Failed to load history for {symbol} from {adapter.source.value}: {result}"
                )
                continue
            merged[symbol] = await self.engine.merge_history(symbol, result)
        return merged

    async def _run_adapter(self, adapter: ExchangeAdapter) -> None:
        try:
            await adapter.stream(self.engine)
        except AdapterAuthError as e:
            logger.error(f"{adapter.source.value} adapter stopped: {e}")
        except Exception as e:
            logger.error(
                f"{adapter.source.value} adapter crashed: {type(e).__name__}: {e}",
                exc_info=True,
            )

    async def run(self) -> None:
        """Warm up, then stream until every adapter stops or we are cancelled."""
        if not self.adapters:
            logger.error("No adapters available; nothing to scan")
            return

        await self.warmup()

        self._tasks = [
            asyncio.create_task(self._run_adapter(adapter), name=f"stream-{adapter.source.value}")
            for adapter in self.adapters
        ]
        try:
            await asyncio.gather(*self._tasks)
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop all adapters and cancel their tasks."""
        for adapter in self.adapters:
            try:
                await adapter.stop()
            except Exception as e:
                logger.warning(f"Error stopping {adapter.source.value} adapter: {e}")

        for task in self._tasks:
            if not task.done():
                task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
