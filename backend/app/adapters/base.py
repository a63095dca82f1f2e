"""Adapter protocol and symbol routing.

Every data source implements ``ExchangeAdapter``: a one-shot historical
``warmup`` and a long-lived ``stream`` that pushes ticks or native candles
into a ``MarketSink`` (the signal engine).
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Protocol, runtime_checkable

from core.models import Candle

# Quote tokens that mark an exchange-listed crypto pair (BTCUSDT, ETHBTC, ...)
CRYPTO_QUOTES = ("USDT", "USDC", "FDUSD", "BUSD", "TUSD", "BTC", "ETH", "BNB")

# Currencies and metals quoted by the forex broker
FOREX_CODES = frozenset({
    "EUR", "USD", "GBP", "JPY", "CHF", "CAD", "AUD", "NZD",
    "SEK", "NOK", "DKK", "SGD", "HKD", "MXN", "ZAR", "TRY", "PLN",
    "XAU", "XAG", "XPT", "XPD",
})

_PAIR_DELIMITERS = re.compile(r"[_/\-]")


class Source(str, Enum):
    """Market data source."""

    OANDA = "oanda"
    BINANCE = "binance"


@runtime_checkable
class MarketSink(Protocol):
    """Receiver for normalized market data (implemented by SignalEngine)."""

    async def feed_tick(self, symbol: str, price: float, timestamp: float) -> None:
        ...

    async def feed_native_candle(
        self, symbol: str, candle: Candle, is_closed: bool = True
    ) -> None:
        ...


@runtime_checkable
class ExchangeAdapter(Protocol):
    """Capability interface every data source implements."""

    @property
    def source(self) -> Source:
        ...

    @property
    def symbols(self) -> list[str]:
        """Normalized symbols this adapter serves."""
        ...

    async def warmup(self, symbol: str) -> list[Candle]:
        """Fetch recent closed candles to prime the history."""
        ...

    async def stream(self, sink: MarketSink) -> None:
        """Push live data into ``sink`` until stopped, reconnecting as needed."""
        ...

    async def stop(self) -> None:
        ...


def classify_symbol(symbol: str) -> Source:
    """Decide which source serves a symbol, by naming convention.

    - Two known currency/metal codes, delimited or not (EUR_USD, EUR/USD,
      EURUSD, XAUUSD), mean the forex broker
    - A crypto quote suffix (BTCUSDT, BTC/USDT, ETHBTC) means the crypto exchange
    - Anything else goes to the crypto exchange
    """
    name = symbol.strip().upper()

    parts = [p for p in _PAIR_DELIMITERS.split(name) if p]
    if len(parts) == 2 and parts[0] in FOREX_CODES and parts[1] in FOREX_CODES:
        return Source.OANDA
    name = "".join(parts)

    if any(name.endswith(quote) and len(name) > len(quote) for quote in CRYPTO_QUOTES):
        return Source.BINANCE

    if len(name) == 6 and name[:3] in FOREX_CODES and name[3:] in FOREX_CODES:
        return Source.OANDA

    return Source.BINANCE


def normalize_symbol(symbol: str, source: Source) -> str:
    """Normalize a symbol into the naming the source expects.

    OANDA uses BASE_QUOTE ("EUR_USD"); Binance uses upper-case tickers.
    """
    name = symbol.strip().upper()
    if source == Source.OANDA:
        parts = [p for p in _PAIR_DELIMITERS.split(name) if p]
        if len(parts) == 2:
            return f"{parts[0]}_{parts[1]}"
        if len(name) == 6:
            return f"{name[:3]}_{name[3:]}"
        return name
    return _PAIR_DELIMITERS.sub("", name)


def route_symbols(symbols: list[str]) -> dict[Source, tuple[str, ...]]:
    """Assign every symbol to exactly one source.

    The mapping is computed once at startup and never changes for the run.
    Duplicates (after normalization) are collapsed, keeping first-seen order.
    """
    routes: dict[Source, list[str]] = {source: [] for source in Source}
    for symbol in symbols:
        if not symbol.strip():
            continue
        source = classify_symbol(symbol)
        normalized = normalize_symbol(symbol, source)
        if normalized not in routes[source]:
            routes[source].append(normalized)
    return {source: tuple(names) for source, names in routes.items() if names}
