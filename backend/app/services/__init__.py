"""Business services."""

from app.services.signal_engine import SignalEngine
from app.services.signal_writer import SignalWriter
from app.services.scanner import Scanner

__all__ = [
    "SignalEngine",
    "SignalWriter",
    "Scanner",
]
