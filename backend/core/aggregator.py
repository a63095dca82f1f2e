"""Per-symbol candle aggregation from ticks or exchange-native candles.

Ticks are bucketed by ``timestamp - timestamp % interval_seconds``. A tick in
a later bucket closes the active candle (it is appended to history) before a
new bucket is opened. Ticks for buckets earlier than the active candle are
late and dropped: a closed or in-progress bucket is never rewritten backward.

Sources that deliver their own candles skip bucketing entirely. Closed native
candles go straight into history; open ones only update a display-only shadow
candle that is never persisted.

This module holds no locks. Callers own the single-writer discipline per
symbol (see ``app.services.signal_engine``).
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable

from core.history import DEFAULT_CAPACITY, HistoryBuffer
from core.models import DEFAULT_INTERVAL_SECONDS, ActiveCandle, Candle, bucket_start

logger = logging.getLogger(__name__)


@dataclass
class SymbolState:
    """Everything the pipeline tracks for one symbol."""

    symbol: str
    history: HistoryBuffer
    active: ActiveCandle | None = None
    shadow: ActiveCandle | None = None  # Open native candle, display only
    dropped_ticks: int = field(default=0)

    @property
    def latest_closed_time(self) -> int | None:
        return self.history.last_open_time


class CandleAggregator:
    """Converts tick streams into closed candles at fixed-width buckets.

    Usage:
        aggregator = CandleAggregator(interval_seconds=300)
        closed = aggregator.on_tick("EUR_USD", 1.0842, 1700000123.5)
        if closed is not None:
            ...  # recompute indicators for EUR_USD
    """

    def __init__(
        self,
        interval_seconds: int = DEFAULT_INTERVAL_SECONDS,
        capacity: int = DEFAULT_CAPACITY,
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.interval_seconds = interval_seconds
        self.capacity = capacity
        self._states: dict[str, SymbolState] = {}

    @property
    def symbols(self) -> list[str]:
        return list(self._states)

    def state(self, symbol: str) -> SymbolState:
        """Get the state for a symbol, creating it on first use."""
        state = self._states.get(symbol)
        if state is None:
            state = SymbolState(symbol=symbol, history=HistoryBuffer(self.capacity))
            self._states[symbol] = state
        return state

    def get_state(self, symbol: str) -> SymbolState | None:
        return self._states.get(symbol)

    def on_tick(self, symbol: str, price: float, timestamp: float) -> Candle | None:
        """Fold one tick into the symbol's active candle.

        Args:
            symbol: Instrument name
            price: Observed price
            timestamp: Unix seconds

        Returns:
            The candle that this tick closed and appended to history, if any
        """
        if not math.isfinite(price) or not math.isfinite(timestamp):
            logger.warning(f"Dropping malformed tick for {symbol}: {price} @ {timestamp}")
            return None

        state = self.state(symbol)
        bucket = bucket_start(timestamp, self.interval_seconds)
        active = state.active

        if active is None:
            latest = state.latest_closed_time
            if latest is not None and bucket <= latest:
                state.dropped_ticks += 1
                logger.debug(f"Dropping late tick for {symbol}: bucket {bucket} <= closed {latest}")
                return None
            state.active = ActiveCandle.from_price(bucket, price)
            return None

        if bucket == active.open_time:
            active.update(price)
            return None

        if bucket < active.open_time:
            state.dropped_ticks += 1
            logger.debug(
                f"Dropping out-of-order tick for {symbol}: "
                f"bucket {bucket} < active {active.open_time}"
            )
            return None

        # Later bucket: close the active candle, then open the new one
        closed = active.to_candle()
        state.active = ActiveCandle.from_price(bucket, price)
        if not state.history.append(closed):
            logger.debug(f"Closed candle {closed.open_time} for {symbol} already in history")
            return None
        return closed

    def on_native_candle(
        self,
        symbol: str,
        candle: Candle,
        is_closed: bool = True,
    ) -> Candle | None:
        """Accept a candle built by the exchange.

        Returns:
            The candle if it was closed and newly appended to history
        """
        state = self.state(symbol)

        if not is_closed:
            latest = state.latest_closed_time
            if latest is not None and candle.open_time <= latest:
                return None
            state.shadow = ActiveCandle.from_candle(candle)
            return None

        if not state.history.append(candle):
            return None

        if state.shadow is not None and state.shadow.open_time <= candle.open_time:
            state.shadow = None
        if state.active is not None and state.active.open_time <= candle.open_time:
            state.active = None
        return candle

    def merge_history(self, symbol: str, candles: Iterable[Candle]) -> int:
        """Merge a warm-up batch into the symbol's history.

        Returns:
            Number of new candles inserted
        """
        state = self.state(symbol)
        inserted = state.history.merge(candles)

        # Keep the active candle ahead of history
        latest = state.latest_closed_time
        if state.active is not None and latest is not None and state.active.open_time <= latest:
            logger.info(
                f"Discarding active candle {state.active.open_time} for {symbol}: "
                f"covered by warm-up history"
            )
            state.active = None
        return inserted

    def current_candle(self, symbol: str) -> Candle | None:
        """In-progress candle for display: the tick-built one, else the shadow."""
        state = self._states.get(symbol)
        if state is None:
            return None
        live = state.active or state.shadow
        return live.to_candle() if live is not None else None
