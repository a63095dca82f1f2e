"""Main application entry point.

Streams prices for the configured symbols, aggregates candles, and prints
one JSON object per closed-candle decision on stdout. Logs go to stderr.
"""

import argparse
import asyncio
import logging
import signal
import sys

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)

# Reduce noise from third-party libraries (must be set before importing them)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)
logging.getLogger("picows").setLevel(logging.WARNING)

# Use uvloop for better performance where it is installed (Unix only)
try:
    import uvloop
    _UVLOOP_ENABLED = True
except ImportError:
    _UVLOOP_ENABLED = False

from app.config import Settings, get_settings
from app.services import Scanner

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Live candle signal scanner (OANDA forex/metals + Binance crypto)",
    )
    parser.add_argument(
        "--symbols",
        help="Comma-separated symbols, overrides SYMBOLS (e.g. EUR_USD,XAU_USD,BTCUSDT)",
    )
    parser.add_argument(
        "--emit-candles",
        action="store_true",
        help="Also print every closed candle",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level, overrides LOG_LEVEL",
    )
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    """Apply command-line overrides on top of environment settings."""
    settings = get_settings()
    overrides = {}
    if args.symbols:
        overrides["symbols"] = [s.strip() for s in args.symbols.split(",") if s.strip()]
    if args.emit_candles:
        overrides["emit_candles"] = True
    if args.log_level:
        overrides["log_level"] = args.log_level
    return settings.model_copy(update=overrides) if overrides else settings


async def run(settings: Settings) -> None:
    """Run the scanner until SIGINT/SIGTERM."""
    scanner = Scanner(settings)
    task = asyncio.create_task(scanner.run(), name="scanner")

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, task.cancel)
        except NotImplementedError:
            # Windows: fall back to KeyboardInterrupt
            pass

    try:
        await task
    except asyncio.CancelledError:
        logger.info("Shutdown requested")
    finally:
        await scanner.stop()


def main(argv: list[str] | None = None) -> None:
    """Run the application."""
    args = parse_args(argv)
    settings = build_settings(args)
    logging.getLogger().setLevel(settings.log_level.upper())

    logger.info(f"Starting scanner for: {', '.join(settings.symbols)}")
    logger.info(f"Event loop: {'uvloop' if _UVLOOP_ENABLED else 'asyncio'}")

    try:
        if _UVLOOP_ENABLED:
            uvloop.run(run(settings))
        else:
            asyncio.run(run(settings))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
