"""Trend + reversal decision engine.

One decision per closed candle per symbol:
1. Trend filter: close and SMA20 both above SMA200 (UPTREND) or both below
   (DOWNTREND); anything else abstains.
2. Confirmation: a matching candlestick pattern or liquidity sweep.
3. Risk: stop at ATR * 1.5 from entry, targets at 1.5R / 2R / 3R.

The engine keeps no state between calls; everything it needs is in the
history snapshot it is given.
"""

import logging
from typing import Sequence

from core.indicators import IndicatorSnapshot, compute_snapshot
from core.models import (
    DEFAULT_INTERVAL_SECONDS,
    Candle,
    Direction,
    Pattern,
    Signal,
    SignalStatus,
    StrategyConfig,
    Sweep,
    Trend,
    timeframe_label,
)

logger = logging.getLogger(__name__)


class DecisionEngine:
    """Turns a history snapshot into a BUY/SELL signal or a WAIT."""

    def __init__(
        self,
        config: StrategyConfig | None = None,
        interval_seconds: int = DEFAULT_INTERVAL_SECONDS,
    ):
        self.config = config or StrategyConfig()
        self.interval_seconds = interval_seconds
        self.timeframe = timeframe_label(interval_seconds)

    def classify_trend(self, snapshot: IndicatorSnapshot) -> Trend:
        """Classify trend from close, fast SMA and slow SMA."""
        if snapshot.sma_fast is None or snapshot.sma_slow is None:
            return Trend.FLAT
        if snapshot.close > snapshot.sma_slow and snapshot.sma_fast > snapshot.sma_slow:
            return Trend.UPTREND
        if snapshot.close < snapshot.sma_slow and snapshot.sma_fast < snapshot.sma_slow:
            return Trend.DOWNTREND
        return Trend.FLAT

    def confirm(self, trend: Trend, snapshot: IndicatorSnapshot) -> tuple[str, int] | None:
        """Find a confirmation matching the trend.

        Returns:
            (label, strength_score) or None when nothing confirms
        """
        if trend == Trend.UPTREND:
            if snapshot.pattern == Pattern.BULLISH:
                return "Bullish Pattern", self.config.pattern_score
            if snapshot.sweep == Sweep.BULLISH_SWEEP:
                return "Liquidity Sweep", self.config.sweep_score
        elif trend == Trend.DOWNTREND:
            if snapshot.pattern == Pattern.BEARISH:
                return "Bearish Pattern", self.config.pattern_score
            if snapshot.sweep == Sweep.BEARISH_SWEEP:
                return "Liquidity Sweep", self.config.sweep_score
        return None

    def risk_levels(
        self,
        direction: Direction,
        entry: float,
        atr_value: float,
    ) -> tuple[float, float, float, float]:
        """Compute stop loss and the three targets.

        Risk at or below ``min_risk`` is raised to at least
        ``entry * min_risk_ratio`` and the stop is moved to match. The floor never
        lowers the ATR-based risk.

        Returns:
            (stop_loss, tp1, tp2, tp3), unrounded
        """
        sign = 1 if direction == Direction.BUY else -1
        stop_loss = entry - sign * atr_value * self.config.sl_atr_mult
        risk = abs(entry - stop_loss)

        if risk <= self.config.min_risk:
            risk = max(risk, abs(entry) * self.config.min_risk_ratio)
            stop_loss = entry - sign * risk

        tp1, tp2, tp3 = (entry + sign * risk * mult for mult in self.config.tp_multiples)
        return stop_loss, tp1, tp2, tp3

    def evaluate(self, symbol: str, candles: Sequence[Candle]) -> Signal:
        """Decide on the latest closed candle of ``candles``.

        Args:
            symbol: Instrument name
            candles: Closed candles, oldest first; the last one just closed

        Returns:
            Signal with status ACTIVE (BUY/SELL) or WAIT
        """
        if not candles:
            raise ValueError(f"No candles to evaluate for {symbol}")

        signal_time = candles[-1].close_datetime(self.interval_seconds)
        required = self.config.min_history

        if len(candles) < required:
            return Signal.wait(
                symbol,
                self.timeframe,
                signal_time,
                reason=f"Insufficient history ({len(candles)}/{required})",
            )

        snapshot = compute_snapshot(candles, self.config)
        trend = self.classify_trend(snapshot)

        if trend == Trend.FLAT:
            return Signal.wait(
                symbol,
                self.timeframe,
                signal_time,
                reason="No trend (Price/SMA alignment not met)",
            )

        confirmation = self.confirm(trend, snapshot)
        if confirmation is None:
            return Signal.wait(
                symbol,
                self.timeframe,
                signal_time,
                reason="No valid reversal setup",
                trend=trend,
            )

        if snapshot.atr is None:
            return Signal.wait(
                symbol,
                self.timeframe,
                signal_time,
                reason=f"Insufficient history for ATR({self.config.atr_period})",
                trend=trend,
            )

        label, score = confirmation
        direction = Direction.BUY if trend == Trend.UPTREND else Direction.SELL
        entry = snapshot.close
        stop_loss, tp1, tp2, tp3 = self.risk_levels(direction, entry, snapshot.atr)

        if trend == Trend.UPTREND:
            reason = f"Uptrend (Price > SMA{self.config.slow_sma_period}) + {label}"
        else:
            reason = f"Downtrend (Price < SMA{self.config.slow_sma_period}) + {label}"

        digits = self.config.price_precision
        signal = Signal(
            symbol=symbol,
            timeframe=self.timeframe,
            signal_time=signal_time,
            status=SignalStatus.ACTIVE,
            trend=trend,
            direction=direction,
            entry_price=round(entry, digits),
            stop_loss=round(stop_loss, digits),
            tp1=round(tp1, digits),
            tp2=round(tp2, digits),
            tp3=round(tp3, digits),
            strength_score=score,
            reason=reason,
        )
        logger.info(
            f"{direction.value} signal {symbol} {self.timeframe} @ {signal.entry_price} "
            f"SL={signal.stop_loss} TP={signal.tp1}/{signal.tp2}/{signal.tp3}"
        )
        return signal
