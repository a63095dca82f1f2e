"""Technical indicators (pure math, no I/O)."""

from core.indicators.indicators import (
    sma,
    atr,
    true_range,
    classify_pattern,
    detect_sweep,
    compute_snapshot,
    IndicatorSnapshot,
)

__all__ = [
    "sma",
    "atr",
    "true_range",
    "classify_pattern",
    "detect_sweep",
    "compute_snapshot",
    "IndicatorSnapshot",
]
