"""Candle (OHLC) data models.

Closed candles are immutable Pydantic models. The in-progress candle of a
bucket is a slotted dataclass because it is mutated on every tick.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict

# Default bucket width: 5 minutes
DEFAULT_INTERVAL_SECONDS = 300


def bucket_start(timestamp: float, interval_seconds: int = DEFAULT_INTERVAL_SECONDS) -> int:
    """Get the bucket start (unix seconds) that a timestamp falls into."""
    ts = int(timestamp)
    return ts - (ts % interval_seconds)


def timeframe_label(interval_seconds: int) -> str:
    """Human label for an interval, e.g. 300 -> "M5", 3600 -> "H1"."""
    if interval_seconds % 86400 == 0:
        return f"D{interval_seconds // 86400}"
    if interval_seconds % 3600 == 0:
        return f"H{interval_seconds // 3600}"
    if interval_seconds % 60 == 0:
        return f"M{interval_seconds // 60}"
    return f"S{interval_seconds}"


class Candle(BaseModel):
    """Closed candle for one bucket."""

    model_config = ConfigDict(frozen=True)

    open_time: int  # Bucket start, unix seconds
    open: float
    high: float
    low: float
    close: float

    @property
    def is_bullish(self) -> bool:
        """Check if this is a bullish (green) candle."""
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        """Check if this is a bearish (red) candle."""
        return self.close < self.open

    @property
    def body_size(self) -> float:
        """Get the absolute size of the candle body."""
        return abs(self.close - self.open)

    @property
    def upper_wick(self) -> float:
        return self.high - max(self.open, self.close)

    @property
    def lower_wick(self) -> float:
        return min(self.open, self.close) - self.low

    def close_datetime(self, interval_seconds: int = DEFAULT_INTERVAL_SECONDS) -> datetime:
        """Get the time at which this candle's bucket ends."""
        return datetime.fromtimestamp(self.open_time + interval_seconds, tz=timezone.utc)


@dataclass(slots=True)
class ActiveCandle:
    """In-progress candle for the current bucket of a symbol."""

    open_time: int
    open: float
    high: float
    low: float
    close: float

    @classmethod
    def from_price(cls, open_time: int, price: float) -> "ActiveCandle":
        """Open a new bucket with a single observed price."""
        return cls(open_time=open_time, open=price, high=price, low=price, close=price)

    @classmethod
    def from_candle(cls, candle: Candle) -> "ActiveCandle":
        return cls(
            open_time=candle.open_time,
            open=candle.open,
            high=candle.high,
            low=candle.low,
            close=candle.close,
        )

    def update(self, price: float) -> None:
        """Fold one tick into the bucket."""
        if price > self.high:
            self.high = price
        if price < self.low:
            self.low = price
        self.close = price

    def to_candle(self) -> Candle:
        """Freeze into an immutable closed candle."""
        return Candle(
            open_time=self.open_time,
            open=self.open,
            high=self.high,
            low=self.low,
            close=self.close,
        )
