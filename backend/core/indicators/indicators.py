"""Technical indicators for signal generation.

All functions are pure: they read a sequence of closes or candles and never
mutate it, so calling them twice on the same history yields identical
results. Functions return ``None`` when there is not enough data instead of
raising.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from core.models import Candle, Pattern, StrategyConfig, Sweep


# =============================================================================
# Moving averages and volatility
# =============================================================================

def sma(values: Sequence[float], period: int) -> float | None:
    """Arithmetic mean of the last ``period`` values.

    Args:
        values: Price series, oldest first
        period: Window length

    Returns:
        Mean value, or None if fewer than ``period`` values exist
    """
    if period <= 0 or len(values) < period:
        return None

    window = np.asarray(values[-period:], dtype=np.float64)
    return float(np.mean(window))


def true_range(candles: Sequence[Candle]) -> list[float]:
    """True range of every candle that has a predecessor.

    TR[i] = max(high - low, |high - prev_close|, |low - prev_close|)

    The first candle has no previous close and is skipped, so the result is
    one element shorter than the input.
    """
    result = []
    for i in range(1, len(candles)):
        high = candles[i].high
        low = candles[i].low
        prev_close = candles[i - 1].close
        result.append(max(high - low, abs(high - prev_close), abs(low - prev_close)))
    return result


def atr(candles: Sequence[Candle], period: int = 14) -> float | None:
    """Average True Range as the simple mean of the last ``period`` true ranges.

    Args:
        candles: Closed candles, oldest first
        period: Number of true ranges to average

    Returns:
        ATR value, or None if fewer than ``period + 1`` candles exist
    """
    if period <= 0 or len(candles) < period + 1:
        return None

    tr = np.asarray(true_range(candles[-(period + 1):]), dtype=np.float64)
    return float(np.mean(tr))


# =============================================================================
# Price action
# =============================================================================

def _is_bullish_pin_bar(candle: Candle) -> bool:
    body = candle.body_size
    return candle.lower_wick > body * 2 and candle.upper_wick < body


def _is_bearish_pin_bar(candle: Candle) -> bool:
    body = candle.body_size
    return candle.upper_wick > body * 2 and candle.lower_wick < body


def _is_bullish_engulfing(current: Candle, prev: Candle) -> bool:
    return (
        current.is_bullish
        and prev.is_bearish
        and current.close > prev.open
        and current.open < prev.close
    )


def _is_bearish_engulfing(current: Candle, prev: Candle) -> bool:
    return (
        current.is_bearish
        and prev.is_bullish
        and current.close < prev.open
        and current.open > prev.close
    )


def classify_pattern(candles: Sequence[Candle]) -> Pattern:
    """Classify the last two candles as a reversal pattern.

    Bullish: pin bar with long lower wick, or bullish engulfing.
    Bearish: pin bar with long upper wick, or bearish engulfing.
    Bullish wins when both match.
    """
    if len(candles) < 2:
        return Pattern.NEUTRAL

    current = candles[-1]
    prev = candles[-2]

    if _is_bullish_pin_bar(current) or _is_bullish_engulfing(current, prev):
        return Pattern.BULLISH
    if _is_bearish_pin_bar(current) or _is_bearish_engulfing(current, prev):
        return Pattern.BEARISH
    return Pattern.NEUTRAL


def detect_sweep(candles: Sequence[Candle], lookback: int = 10) -> Sweep:
    """Detect a liquidity grab on the last candle.

    The last candle is compared against the preceding ``lookback - 1``
    candles. A bearish sweep trades above the prior high and closes back
    below it; a bullish sweep is the mirror image on the lows.
    """
    if lookback < 2 or len(candles) < 2:
        return Sweep.NONE

    current = candles[-1]
    window = candles[-lookback:-1]
    prior_high = max(c.high for c in window)
    prior_low = min(c.low for c in window)

    if current.high > prior_high and current.close < prior_high:
        return Sweep.BEARISH_SWEEP
    if current.low < prior_low and current.close > prior_low:
        return Sweep.BULLISH_SWEEP
    return Sweep.NONE


# =============================================================================
# Snapshot
# =============================================================================

@dataclass(frozen=True, slots=True)
class IndicatorSnapshot:
    """Indicator values derived from one history snapshot."""

    close: float
    sma_fast: float | None
    sma_slow: float | None
    atr: float | None
    pattern: Pattern
    sweep: Sweep


def compute_snapshot(
    candles: Sequence[Candle],
    config: StrategyConfig | None = None,
) -> IndicatorSnapshot | None:
    """Compute every indicator the decision engine needs.

    Returns None for an empty history.
    """
    if not candles:
        return None

    config = config or StrategyConfig()
    closes = [c.close for c in candles]

    return IndicatorSnapshot(
        close=closes[-1],
        sma_fast=sma(closes, config.fast_sma_period),
        sma_slow=sma(closes, config.slow_sma_period),
        atr=atr(candles, config.atr_period),
        pattern=classify_pattern(candles),
        sweep=detect_sweep(candles, config.sweep_lookback),
    )
