"""Strategy configuration models."""

from __future__ import annotations

from pydantic import BaseModel


class StrategyConfig(BaseModel):
    """Trend + reversal strategy parameters."""

    # Indicator periods
    fast_sma_period: int = 20
    slow_sma_period: int = 200
    atr_period: int = 14
    sweep_lookback: int = 10

    # Closed candles required before any signal (SMA200 is undefined below)
    min_history: int = 200

    # Stop distance = ATR * sl_atr_mult
    sl_atr_mult: float = 1.5

    # Targets as multiples of risk (R)
    tp_multiples: tuple[float, float, float] = (1.5, 2.0, 3.0)

    # Risk at or below min_risk is raised to at least entry * min_risk_ratio
    min_risk: float = 0.00001
    min_risk_ratio: float = 0.0005

    # Flat strength score per confirmation source
    pattern_score: int = 85
    sweep_score: int = 85

    # Decimal places for all emitted prices
    price_precision: int = 5
