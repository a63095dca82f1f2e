"""Bounded, time-ordered history of closed candles for one symbol."""

import logging
from typing import Iterable

from core.models import Candle

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 300


class HistoryBuffer:
    """Closed candles ordered by strictly increasing ``open_time``.

    Invariants:
    - No two entries share an ``open_time``
    - ``len(buffer) <= capacity``; the oldest entries are evicted first
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._candles: list[Candle] = []
        self._times: set[int] = set()

    def __len__(self) -> int:
        return len(self._candles)

    def __contains__(self, open_time: object) -> bool:
        return open_time in self._times

    @property
    def last(self) -> Candle | None:
        """Most recent closed candle."""
        return self._candles[-1] if self._candles else None

    @property
    def last_open_time(self) -> int | None:
        return self._candles[-1].open_time if self._candles else None

    def append(self, candle: Candle) -> bool:
        """Append a newly closed candle.

        Candles whose bucket is already stored, or that are older than the
        newest stored bucket, are rejected.

        Returns:
            True if the candle was stored
        """
        if candle.open_time in self._times:
            return False

        if self._candles and candle.open_time < self._candles[-1].open_time:
            logger.debug(
                f"Rejecting late candle {candle.open_time} "
                f"(latest {self._candles[-1].open_time})"
            )
            return False

        self._candles.append(candle)
        self._times.add(candle.open_time)
        self._evict()
        return True

    def merge(self, candles: Iterable[Candle]) -> int:
        """Merge a warm-up batch that may overlap or precede stored candles.

        Returns:
            Number of candles inserted (before eviction)
        """
        inserted = 0
        for candle in candles:
            if candle.open_time in self._times:
                continue
            self._candles.append(candle)
            self._times.add(candle.open_time)
            inserted += 1

        self._candles.sort(key=lambda c: c.open_time)
        self._evict()
        return inserted

    def snapshot(self) -> tuple[Candle, ...]:
        """Ordered read-only view for indicator calculation."""
        return tuple(self._candles)

    def get_closes(self) -> list[float]:
        """Get list of close prices."""
        return [c.close for c in self._candles]

    def _evict(self) -> None:
        overflow = len(self._candles) - self.capacity
        if overflow <= 0:
            return
        for candle in self._candles[:overflow]:
            self._times.discard(candle.open_time)
        self._candles = self._candles[overflow:]
