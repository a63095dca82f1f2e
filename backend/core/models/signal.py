"""Signal and classification models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class Direction(str, Enum):
    """Trade direction."""

    BUY = "BUY"
    SELL = "SELL"
    NONE = "NONE"


class Trend(str, Enum):
    """Trend classification from the moving-average filter."""

    UPTREND = "UPTREND"
    DOWNTREND = "DOWNTREND"
    FLAT = "FLAT"


class Pattern(str, Enum):
    """Candlestick pattern classification of the last two candles."""

    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class Sweep(str, Enum):
    """Liquidity sweep classification of the last candle."""

    BULLISH_SWEEP = "BULLISH_SWEEP"
    BEARISH_SWEEP = "BEARISH_SWEEP"
    NONE = "NONE"


class SignalStatus(str, Enum):
    """Decision outcome for one closed candle."""

    ACTIVE = "ACTIVE"  # Actionable BUY/SELL
    WAIT = "WAIT"


class Signal(BaseModel):
    """Decision emitted once per closed candle per symbol.

    WAIT decisions carry only ``trend`` and ``reason``; price fields stay None.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    timeframe: str
    signal_time: datetime  # Close time of the candle that produced the decision
    status: SignalStatus
    trend: Trend = Trend.FLAT
    direction: Direction = Direction.NONE
    entry_price: float | None = None
    stop_loss: float | None = None
    tp1: float | None = None
    tp2: float | None = None
    tp3: float | None = None
    strength_score: int = 0
    reason: str = ""

    @classmethod
    def wait(
        cls,
        symbol: str,
        timeframe: str,
        signal_time: datetime,
        reason: str,
        trend: Trend = Trend.FLAT,
    ) -> "Signal":
        """Build a WAIT decision."""
        return cls(
            symbol=symbol,
            timeframe=timeframe,
            signal_time=signal_time,
            status=SignalStatus.WAIT,
            trend=trend,
            reason=reason,
        )

    def to_record(self) -> dict[str, Any]:
        """Flat output record (one NDJSON line)."""
        if self.status == SignalStatus.WAIT:
            return {
                "symbol": self.symbol,
                "status": self.status.value,
                "trend": self.trend.value,
                "reason": self.reason,
            }
        return {
            "symbol": self.symbol,
            "timeframe": self.timeframe,
            "time": self.signal_time.isoformat(),
            "status": self.status.value,
            "trend": self.trend.value,
            "direction": self.direction.value,
            "entry_price": self.entry_price,
            "stop_loss": self.stop_loss,
            "tp1": self.tp1,
            "tp2": self.tp2,
            "tp3": self.tp3,
            "strength_score": self.strength_score,
            "reason": self.reason,
        }
