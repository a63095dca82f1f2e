"""Data models."""

from core.models.candle import (
    DEFAULT_INTERVAL_SECONDS,
    ActiveCandle,
    Candle,
    bucket_start,
    timeframe_label,
)
from core.models.config import StrategyConfig
from core.models.signal import (
    Direction,
    Pattern,
    Signal,
    SignalStatus,
    Sweep,
    Trend,
)

__all__ = [
    "DEFAULT_INTERVAL_SECONDS",
    "ActiveCandle",
    "Candle",
    "bucket_start",
    "timeframe_label",
    "StrategyConfig",
    "Direction",
    "Pattern",
    "Signal",
    "SignalStatus",
    "Sweep",
    "Trend",
]
