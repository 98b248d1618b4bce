"""In-memory market data provider for offline mode, demos and tests."""

from __future__ import annotations

import asyncio
import math
from collections.abc import Mapping, Sequence
from typing import Any

from pricepulse.core.exceptions import DataValidationError, RequestRejectedError
from pricepulse.core.models import Interval, TickerSnapshot

from .base import MarketDataProvider

# USD reference prices used to seed offline tickers
BASE_PRICES: dict[str, float] = {
    "BTC": 95000.0,
    "ETH": 3500.0,
    "BNB": 650.0,
    "ADA": 0.45,
    "SOL": 180.0,
    "USDT": 1.0,
    "XRP": 0.62,
    "DOT": 7.8,
    "LINK": 15.2,
    "LTC": 105.0,
    "DOGE": 0.08,
    "TRX": 0.11,
    "TON": 5.4,
    "MATIC": 0.95,
    "BCH": 320.0,
    "AVAX": 42.0,
}

_INTERVAL_MS = {
    "1m": 60_000,
    "3m": 180_000,
    "5m": 300_000,
    "15m": 900_000,
    "30m": 1_800_000,
    "1h": 3_600_000,
    "2h": 7_200_000,
    "4h": 14_400_000,
    "6h": 21_600_000,
    "8h": 28_800_000,
    "12h": 43_200_000,
    "1d": 86_400_000,
    "3d": 259_200_000,
    "1w": 604_800_000,
    "1M": 2_592_000_000,
}

# 2024-01-01T00:00:00Z, anchors synthetic bars so output is reproducible
_EPOCH_MS = 1_704_067_200_000


class StaticMarketDataProvider(MarketDataProvider):
    """Provider backed by a price table held in memory.

    Every call is appended to :attr:`calls` as ``(operation, args)``. Setting
    :attr:`fail_with` makes the next calls raise that error until it is cleared,
    and :attr:`latency` adds an ``asyncio.sleep`` before each response.
    """

    def __init__(
        self,
        prices: Mapping[str, float] | None = None,
        *,
        changes: Mapping[str, float] | None = None,
        klines: Mapping[str, list[list[Any]]] | None = None,
        name: str = "static",
        latency: float = 0.0,
    ):
        super().__init__(name)
        source = BASE_PRICES if prices is None else prices
        self.prices: dict[str, float] = {symbol.upper(): float(price) for symbol, price in source.items()}
        self.changes: dict[str, float] = {symbol.upper(): float(pct) for symbol, pct in (changes or {}).items()}
        self._klines = {symbol.upper(): rows for symbol, rows in (klines or {}).items()}
        self.latency = latency
        self.fail_with: Exception | None = None
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.closed = False

    def set_price(self, symbol: str, price: float, change_percent: float | None = None) -> None:
        key = symbol.upper()
        self.prices[key] = float(price)
        if change_percent is not None:
            self.changes[key] = float(change_percent)

    def remove_price(self, symbol: str) -> None:
        self.prices.pop(symbol.upper(), None)

    def set_klines(self, symbol: str, rows: list[list[Any]]) -> None:
        self._klines[symbol.upper()] = rows

    async def _respond(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, args))
        if self.latency:
            await asyncio.sleep(self.latency)
        if self.fail_with is not None:
            raise self.fail_with

    def _snapshot(self, symbol: str) -> TickerSnapshot | None:
        key = symbol.upper()
        if key not in self.prices:
            return None
        price = self.prices[key]
        change_percent = self.changes.get(key, 0.0)
        previous = price / (1 + change_percent / 100) if change_percent > -100 else 0.0
        return TickerSnapshot(
            symbol=key,
            last_price=price,
            price_change=price - previous,
            price_change_percent=change_percent,
        )

    async def ticker(self, symbol: str) -> TickerSnapshot:
        await self._respond("ticker", symbol)
        snapshot = self._snapshot(symbol)
        if snapshot is None:
            raise RequestRejectedError(f"Unknown symbol {symbol}", self.name, 400)
        return snapshot

    async def tickers_multi(self, symbols: Sequence[str]) -> list[TickerSnapshot]:
        await self._respond("tickers_multi", tuple(symbols))
        snapshots = (self._snapshot(symbol) for symbol in symbols)
        return [snapshot for snapshot in snapshots if snapshot is not None]

    async def klines(self, symbol: str, interval: str, limit: int) -> list[list[Any]]:
        await self._respond("klines", symbol, interval, limit)
        key = symbol.upper()
        if key in self._klines:
            return self._klines[key][-limit:]
        if interval not in _INTERVAL_MS:
            raise DataValidationError(f"Unsupported interval: {interval}", {"interval": interval})
        if key not in self.prices:
            return []
        return synthetic_klines(self.prices[key], Interval(interval), limit)

    async def close(self) -> None:
        self.closed = True


def synthetic_klines(last_close: float, interval: Interval, limit: int) -> list[list[Any]]:
    """Build ``limit`` reproducible bars ending at ``last_close``.

    Rows follow the exchange layout with numeric fields encoded as strings.
    """
    step = _INTERVAL_MS[interval.value]
    rows: list[list[Any]] = []
    for index in range(limit):
        offset = limit - 1 - index
        close = last_close * (1 + 0.01 * math.sin(offset / 3))
        open_ = last_close * (1 + 0.01 * math.sin((offset + 1) / 3))
        high = max(open_, close) * 1.004
        low = min(open_, close) * 0.996
        volume = 1000 + 250 * (1 + math.cos(offset / 5))
        open_time = _EPOCH_MS + index * step
        rows.append(
            [
                open_time,
                f"{open_:.8f}",
                f"{high:.8f}",
                f"{low:.8f}",
                f"{close:.8f}",
                f"{volume:.4f}",
                open_time + step - 1,
            ]
        )
    return rows
