"""Application configuration."""

from functools import lru_cache
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from core.models import StrategyConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Symbols to scan, comma separated in the environment (SYMBOLS=EUR_USD,BTCUSDT)
    symbols: Annotated[list[str], NoDecode] = ["BTCUSDT"]

    # Candle interval and rolling history
    interval_seconds: int = 300
    history_capacity: int = 300
    warmup_count: int = 250

    # OANDA (forex / metals)
    oanda_api_key: str = ""
    oanda_account_id: str = ""
    oanda_practice: bool = True

    # Binance (crypto, public endpoints)
    binance_rest_url: str = "https://api.binance.com"
    binance_ws_url: str = "wss://stream.binance.com:9443/stream"

    # Streaming
    reconnect_delay: float = 1.0
    max_reconnect_delay: float = 5.0
    stream_idle_timeout: float = 20.0  # OANDA heartbeats every 5s

    # Output
    emit_candles: bool = False
    log_level: str = "INFO"

    @field_validator("symbols", mode="before")
    @classmethod
    def _split_symbols(cls, value):
        if isinstance(value, str):
            return [s.strip() for s in value.split(",") if s.strip()]
        return value

    @field_validator("history_capacity")
    @classmethod
    def _capacity_covers_min_history(cls, value: int) -> int:
        required = StrategyConfig().min_history
        if value < required:
            raise ValueError(
                f"history_capacity must be at least {required} (the slow SMA window), got {value}"
            )
        return value


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
