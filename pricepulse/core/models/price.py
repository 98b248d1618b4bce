"""Price records and store snapshots."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, field_serializer

from .market import ConnectionState

_SYMBOL_PATTERN = re.compile(r"^[A-Z0-9]{1,20}$")


def normalize_symbols(symbols: Iterable[str | None]) -> frozenset[str]:
    """Uppercase, strip and de-duplicate symbols, dropping anything invalid."""

    normalized: set[str] = set()
    for raw in symbols:
        if not isinstance(raw, str):
            continue
        candidate = raw.strip().upper()
        if _SYMBOL_PATTERN.match(candidate):
            normalized.add(candidate)
    return frozenset(normalized)


class TickerSnapshot(BaseModel):
    """单个交易对的行情快照(已按基础资产符号归一化)."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    last_price: float
    price_change: float | None = None
    price_change_percent: float = 0.0


class PriceRecord(BaseModel):
    """共享价格表中的一条记录."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    price_usd: float
    price_local: float
    change_24h_percent: float
    last_update: datetime

    @field_serializer("last_update", when_used="json")
    def serialize_datetime(self, value: datetime) -> str:
        """Serialize datetime to isoformat string."""
        return value.isoformat()


@dataclass(frozen=True, slots=True)
class PriceSnapshot:
    """Immutable view of a store's state at one instant."""

    source: str
    prices: Mapping[str, PriceRecord] = field(default_factory=lambda: MappingProxyType({}))
    connection_state: ConnectionState = ConnectionState.CONNECTING
    error_message: str | None = None
    update_count: int = 0
    tracked_symbols: frozenset[str] = frozenset()

    def get(self, symbol: str) -> PriceRecord | None:
        return self.prices.get(symbol.strip().upper())

    @property
    def is_live(self) -> bool:
        return self.connection_state is ConnectionState.LIVE

    @property
    def last_update(self) -> datetime | None:
        if not self.prices:
            return None
        return max(record.last_update for record in self.prices.values())

    def to_dict(self) -> dict[str, Any]:
        last_update = self.last_update
        return {
            "source": self.source,
            "connection_state": self.connection_state.value,
            "error_message": self.error_message,
            "update_count": self.update_count,
            "last_update": last_update.isoformat() if last_update else None,
            "tracked_symbols": sorted(self.tracked_symbols),
            "prices": {symbol: record.model_dump(mode="json") for symbol, record in sorted(self.prices.items())},
        }
