"""Exchange adapters (one per market data source)."""

from app.adapters.base import (
    ExchangeAdapter,
    MarketSink,
    Source,
    classify_symbol,
    normalize_symbol,
    route_symbols,
)
from app.adapters.binance import BinanceAdapter
from app.adapters.oanda import OandaAdapter

__all__ = [
    "ExchangeAdapter",
    "MarketSink",
    "Source",
    "classify_symbol",
    "normalize_symbol",
    "route_symbols",
    "BinanceAdapter",
    "OandaAdapter",
]
