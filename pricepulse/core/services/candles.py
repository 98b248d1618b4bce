"""K线处理服务.

Turns the provider's raw kline arrays into :class:`Candle` objects and enriches
each bar with body/shadow geometry and a custom momentum score::

    body_size     = |close - open|
    total_range   = high - low
    upper_shadow  = high - max(open, close)
    lower_shadow  = min(open, close) - low
    is_bullish    = close >= open
    body_ratio    = body_size / total_range        (0 when total_range <= 0)
    volume_weight = ln(volume + 1) / 20
    price_impact  = body_size / max(open, close)   (0 when max(open, close) <= 0)
    momentum      = min(body_ratio * volume_weight * price_impact * 100, 100)

A NaN range or top fails the positivity guard, so its ratio falls to 0 like any
other degenerate bar. Only a NaN volume reaches momentum as NaN.

Momentum is a heuristic intensity measure, not a standard indicator. Each bar is
processed on its own; no state is carried between bars or between calls.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from typing import Any

import pandas as pd
from loguru import logger

from pricepulse.core.config import CandleConfig
from pricepulse.core.exceptions import DataValidationError, MalformedResponseError
from pricepulse.core.models import Candle, Interval, ProcessedCandle
from pricepulse.core.providers import MarketDataProvider

MOMENTUM_CEILING = 100.0
KLINE_MIN_FIELDS = 7


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _to_time(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _max(a: float, b: float) -> float:
    # NaN in either operand poisons the result
    if math.isnan(a) or math.isnan(b):
        return math.nan
    return a if a >= b else b


def _min(a: float, b: float) -> float:
    if math.isnan(a) or math.isnan(b):
        return math.nan
    return a if a <= b else b


def _ln(x: float) -> float:
    if x > 0:
        return math.log(x)
    if x == 0:
        return -math.inf
    return math.nan


def parse_klines(raw: Any, provider_name: str = "unknown") -> list[Candle]:
    """Parse ``[[openTime, open, high, low, close, volume, closeTime, ...], ...]``.

    Numeric fields may arrive as strings; anything non-numeric becomes NaN.
    Rows that are not sequences of at least seven fields are rejected.
    """
    if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)):
        raise MalformedResponseError("Klines payload is not a list", provider_name)

    candles: list[Candle] = []
    for index, row in enumerate(raw):
        if not isinstance(row, Sequence) or isinstance(row, (str, bytes)) or len(row) < KLINE_MIN_FIELDS:
            raise MalformedResponseError(
                f"Kline row {index} is not an array of at least {KLINE_MIN_FIELDS} fields",
                provider_name,
                details={"row": index},
            )
        open_time = _to_time(row[0])
        if open_time is None:
            raise MalformedResponseError(f"Kline row {index} has no open time", provider_name, details={"row": index})
        candles.append(
            Candle(
                open_time=open_time,
                open=_to_float(row[1]),
                high=_to_float(row[2]),
                low=_to_float(row[3]),
                close=_to_float(row[4]),
                volume=_to_float(row[5]),
                close_time=_to_time(row[6]),
            )
        )
    return candles


class CandleProcessor:
    """Stateless candle analytics."""

    def process_one(self, bar: Candle) -> ProcessedCandle:
        top = _max(bar.open, bar.close)
        bottom = _min(bar.open, bar.close)
        body_size = abs(bar.close - bar.open)
        total_range = bar.high - bar.low

        body_ratio = body_size / total_range if total_range > 0 else 0.0
        volume_weight = _ln(bar.volume + 1) / 20
        price_impact = body_size / top if top > 0 else 0.0

        raw_momentum = body_ratio * volume_weight * price_impact * 100
        momentum = raw_momentum if math.isnan(raw_momentum) else min(raw_momentum, MOMENTUM_CEILING)

        return ProcessedCandle(
            open_time=bar.open_time,
            open=bar.open,
            high=bar.high,
            low=bar.low,
            close=bar.close,
            volume=bar.volume,
            close_time=bar.close_time,
            momentum=momentum,
            body_size=body_size,
            upper_shadow=bar.high - top,
            lower_shadow=bottom - bar.low,
            is_bullish=bar.close >= bar.open,
        )

    def process(self, bars: Iterable[Candle]) -> list[ProcessedCandle]:
        """Order- and length-preserving; never raises for numeric input."""
        return [self.process_one(bar) for bar in bars]


def to_frame(candles: Sequence[ProcessedCandle]) -> pd.DataFrame:
    """Render processed candles as a DataFrame indexed by open time (UTC)."""
    columns = [
        "open_time",
        "open",
        "high",
        "low",
        "close",
        "volume",
        "close_time",
        "momentum",
        "body_size",
        "upper_shadow",
        "lower_shadow",
        "is_bullish",
    ]
    df = pd.DataFrame([candle.as_mapping() for candle in candles], columns=columns)
    df["open_time"] = pd.to_datetime(df["open_time"], unit="ms", utc=True)
    return df.set_index("open_time")


class CandleService:
    """Fetches klines from a provider and processes them on every call."""

    def __init__(
        self,
        provider: MarketDataProvider,
        config: CandleConfig | None = None,
        processor: CandleProcessor | None = None,
    ):
        self.provider = provider
        self.config = config or CandleConfig()
        self.processor = processor or CandleProcessor()

    def _validate(self, symbol: str, interval: str | Interval | None, limit: int | None) -> tuple[str, Interval, int]:
        errors: dict[str, str] = {}
        normalized = symbol.strip().upper() if isinstance(symbol, str) else ""
        if not normalized:
            errors["symbol"] = "symbol cannot be empty"

        raw_interval = interval or self.config.default_interval
        try:
            resolved_interval = Interval(raw_interval)
        except ValueError:
            resolved_interval = Interval(self.config.default_interval)
            allowed = " ".join(item.value for item in Interval)
            errors["interval"] = f"unsupported interval '{raw_interval}', expected one of: {allowed}"

        resolved_limit = self.config.default_limit if limit is None else limit
        if not 1 <= resolved_limit <= self.config.max_limit:
            errors["limit"] = f"limit must be between 1 and {self.config.max_limit}"

        if errors:
            raise DataValidationError("Invalid candle request", errors)
        return normalized, resolved_interval, resolved_limit

    async def get_candles(
        self,
        symbol: str,
        interval: str | Interval | None = None,
        limit: int | None = None,
    ) -> list[ProcessedCandle]:
        """获取并处理K线.

        Raises:
            DataValidationError: 参数无效
            ProviderError: 提供商调用失败
        """
        symbol, resolved_interval, resolved_limit = self._validate(symbol, interval, limit)
        raw = await self.provider.klines(symbol, resolved_interval.value, resolved_limit)
        candles = parse_klines(raw, self.provider.name)
        logger.bind(source=self.provider.name).debug(
            f"Fetched {len(candles)} {resolved_interval.value} candles for {symbol}"
        )
        return self.processor.process(candles)
