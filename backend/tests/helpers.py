"""Shared candle builders for tests."""

from core.models import Candle

INTERVAL = 300


def make_candle(
    index: int,
    open_price: float = 100.0,
    high: float | None = None,
    low: float | None = None,
    close: float | None = None,
    interval: int = INTERVAL,
) -> Candle:
    """Helper to create a candle in bucket ``index``."""
    close = open_price if close is None else close
    return Candle(
        open_time=index * interval,
        open=open_price,
        high=max(open_price, close) + 0.5 if high is None else high,
        low=min(open_price, close) - 0.5 if low is None else low,
        close=close,
    )


def rising_candles(count: int, start: float = 100.0, step: float = 0.1) -> list[Candle]:
    """Steady uptrend: each candle opens at the prior close and closes higher."""
    candles = []
    price = start
    for i in range(count):
        candles.append(make_candle(i, open_price=price, close=price + step))
        price += step
    return candles


def falling_candles(count: int, start: float = 200.0, step: float = 0.1) -> list[Candle]:
    """Steady downtrend: each candle opens at the prior close and closes lower."""
    candles = []
    price = start
    for i in range(count):
        candles.append(make_candle(i, open_price=price, close=price - step))
        price -= step
    return candles
