"""市场数据提供商抽象基类."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from pricepulse.core.models import TickerSnapshot


class MarketDataProvider(ABC):
    """市场数据提供商抽象基类.

    Implementations accept *base* asset symbols (``BTC``) and return
    :class:`TickerSnapshot` objects keyed by the same base symbol. Failures are
    raised as :class:`~pricepulse.core.exceptions.ProviderError` subclasses.
    """

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    async def ticker(self, symbol: str) -> TickerSnapshot:
        """获取单个交易对的行情快照."""

    @abstractmethod
    async def tickers_multi(self, symbols: Sequence[str]) -> list[TickerSnapshot]:
        """批量获取行情快照.

        Symbols the provider does not know are absent from the result rather
        than raising.
        """

    @abstractmethod
    async def klines(self, symbol: str, interval: str, limit: int) -> list[list[Any]]:
        """获取历史K线, 原样返回提供商的二维数组."""

    async def close(self) -> None:
        """释放底层资源."""

    async def __aenter__(self) -> "MarketDataProvider":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        """字符串表示."""
        return f"{self.__class__.__name__}(name='{self.name}')"
