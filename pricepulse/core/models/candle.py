"""OHLCV bars and their derived analytics."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass


@dataclass(frozen=True, slots=True)
class Candle:
    """One raw OHLCV bar as returned by the provider."""

    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    close_time: int | None = None

    def as_mapping(self) -> Mapping[str, object]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class ProcessedCandle:
    """A :class:`Candle` enriched with body/shadow geometry and a momentum score."""

    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    close_time: int | None
    momentum: float
    body_size: float
    upper_shadow: float
    lower_shadow: float
    is_bullish: bool

    def as_mapping(self) -> Mapping[str, object]:
        return asdict(self)
