"""Signal engine: the single entry point from adapters to decisions.

Input surface:  ``feed_tick``, ``feed_native_candle``, ``merge_history``
Output surface: ``on_candle_closed`` and ``on_signal`` callbacks

Every mutation of a symbol's state, and the indicator/decision step that
follows a candle close, runs under that symbol's ``asyncio.Lock``. Adapters
may deliver concurrently; one symbol never has two writers at once, and
symbols never wait on each other.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable

from core.aggregator import CandleAggregator
from core.decision import DecisionEngine
from core.history import DEFAULT_CAPACITY
from core.models import DEFAULT_INTERVAL_SECONDS, Candle, Signal, StrategyConfig

logger = logging.getLogger(__name__)

# Type aliases for callbacks
SignalCallback = Callable[[Signal], Awaitable[None]]
CandleClosedCallback = Callable[[str, Candle], Awaitable[None]]


class SignalEngine:
    """Owns per-symbol state and runs aggregate -> indicators -> decision."""

    def __init__(
        self,
        interval_seconds: int = DEFAULT_INTERVAL_SECONDS,
        capacity: int = DEFAULT_CAPACITY,
        config: StrategyConfig | None = None,
    ):
        self.interval_seconds = interval_seconds
        self.aggregator = CandleAggregator(interval_seconds=interval_seconds, capacity=capacity)
        self.decision_engine = DecisionEngine(config=config, interval_seconds=interval_seconds)
        self._locks: dict[str, asyncio.Lock] = {}
        self._signal_callbacks: list[SignalCallback] = []
        self._candle_callbacks: list[CandleClosedCallback] = []

    def on_signal(self, callback: SignalCallback) -> None:
        """Register a callback for every decision (signal or WAIT)."""
        self._signal_callbacks.append(callback)

    def on_candle_closed(self, callback: CandleClosedCallback) -> None:
        """Register a callback for every candle appended to history."""
        self._candle_callbacks.append(callback)

    def _lock(self, symbol: str) -> asyncio.Lock:
        lock = self._locks.get(symbol)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[symbol] = lock
        return lock

    async def feed_tick(self, symbol: str, price: float, timestamp: float) -> Signal | None:
        """Feed one price tick.

        Returns:
            The decision for the candle this tick closed, if any
        """
        async with self._lock(symbol):
            closed = self.aggregator.on_tick(symbol, price, timestamp)
            if closed is None:
                return None
            return await self._handle_close(symbol, closed)

    async def feed_native_candle(
        self,
        symbol: str,
        candle: Candle,
        is_closed: bool = True,
    ) -> Signal | None:
        """Feed a candle built by the exchange.

        Returns:
            The decision if the candle was closed and new
        """
        async with self._lock(symbol):
            appended = self.aggregator.on_native_candle(symbol, candle, is_closed)
            if appended is None:
                return None
            return await self._handle_close(symbol, appended)

    async def merge_history(self, symbol: str, candles: Iterable[Candle]) -> int:
        """Merge warm-up candles; emits no decisions."""
        async with self._lock(symbol):
            inserted = self.aggregator.merge_history(symbol, candles)
            state = self.aggregator.state(symbol)
            logger.info(
                f"Warm-up merged {inserted} candles for {symbol} "
                f"(history {len(state.history)}/{state.history.capacity})"
            )
            return inserted

    def get_history(self, symbol: str) -> tuple[Candle, ...]:
        state = self.aggregator.get_state(symbol)
        return state.history.snapshot() if state else ()

    def current_candle(self, symbol: str) -> Candle | None:
        """In-progress candle for display purposes."""
        return self.aggregator.current_candle(symbol)

    async def _handle_close(self, symbol: str, candle: Candle) -> Signal:
        """Recompute and decide for one symbol after a candle close.

        Runs inside the symbol's lock so the history read cannot race an append.
        """
        for callback in self._candle_callbacks:
            try:
                await callback(symbol, candle)
            except Exception as e:
                logger.error(f"Candle callback error for {symbol}: {e}")

        snapshot = self.aggregator.state(symbol).history.snapshot()
        signal = self.decision_engine.evaluate(symbol, snapshot)

        for callback in self._signal_callbacks:
            try:
                await callback(signal)
            except Exception as e:
                logger.error(f"Signal callback error for {symbol}: {e}")

        return signal
