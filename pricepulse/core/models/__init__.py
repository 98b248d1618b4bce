"""Data models module."""

from pricepulse.core.models.candle import Candle, ProcessedCandle
from pricepulse.core.models.market import ConnectionState, Interval
from pricepulse.core.models.price import (
    PriceRecord,
    PriceSnapshot,
    TickerSnapshot,
    normalize_symbols,
)

__all__ = [
    "Candle",
    "ProcessedCandle",
    "ConnectionState",
    "Interval",
    "PriceRecord",
    "PriceSnapshot",
    "TickerSnapshot",
    "normalize_symbols",
]
