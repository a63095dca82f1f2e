"""Newline-delimited JSON output of decisions and closed candles."""

import sys
from typing import Any, TextIO

import orjson

from core.models import DEFAULT_INTERVAL_SECONDS, Candle, Signal


def _orjson_dumps(obj: Any) -> str:
    """Serialize object to JSON string using orjson."""
    return orjson.dumps(obj, default=str).decode("utf-8")


class SignalWriter:
    """Writes one JSON object per line to a text stream (stdout by default)."""

    def __init__(
        self,
        stream: TextIO | None = None,
        interval_seconds: int = DEFAULT_INTERVAL_SECONDS,
        emit_candles: bool = False,
    ):
        self._stream = stream if stream is not None else sys.stdout
        self.interval_seconds = interval_seconds
        self.emit_candles = emit_candles

    def write(self, record: dict[str, Any]) -> None:
        self._stream.write(_orjson_dumps(record) + "\n")
        self._stream.flush()

    async def write_signal(self, signal: Signal) -> None:
        self.write(signal.to_record())

    async def write_candle(self, symbol: str, candle: Candle) -> None:
        if not self.emit_candles:
            return
        self.write({
            "symbol": symbol,
            "time": candle.close_datetime(self.interval_seconds).isoformat(),
            "open": candle.open,
            "high": candle.high,
            "low": candle.low,
            "close": candle.close,
        })
