"""Core logic for candle aggregation, indicators, and signal decisions.

This package contains pure business logic with no I/O dependencies
(no network, no output streams). The live scanner (app/) feeds it ticks
and native candles and publishes what it decides.
"""
