"""LiveCoinWatch provider used as the slower secondary price source."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import httpx
from loguru import logger

from pricepulse.core.exceptions import ConfigurationError, MalformedResponseError, UnsupportedOperationError
from pricepulse.core.models import TickerSnapshot

from .http import HttpMarketDataProvider

LIVECOINWATCH_API_URL = "https://api.livecoinwatch.com"


class LiveCoinWatchProvider(HttpMarketDataProvider):
    """Ticker snapshots from the LiveCoinWatch ``/coins`` API.

    LiveCoinWatch reports ``delta.day`` as a ratio (``1.025`` for +2.5%), which
    is converted to a percentage. Historical bars are not offered.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = LIVECOINWATCH_API_URL,
        *,
        currency: str = "USD",
        name: str = "livecoinwatch",
        timeout: float = 10.0,
        max_retries: int = 2,
        backoff_factor: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ConfigurationError("LiveCoinWatch requires an API key", setting="livecoinwatch.api_key")
        super().__init__(
            name,
            base_url,
            timeout=timeout,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
            headers={"x-api-key": api_key, "content-type": "application/json"},
            transport=transport,
        )
        self.currency = currency

    def _parse_coin(self, symbol: str, coin: Any) -> TickerSnapshot | None:
        if not isinstance(coin, Mapping):
            raise MalformedResponseError("Coin payload is not an object", self.name)
        rate = coin.get("rate")
        if rate is None:
            # LiveCoinWatch reports null rates for delisted coins
            return None
        try:
            last_price = float(rate)
        except (TypeError, ValueError) as exc:
            raise MalformedResponseError(f"Rate for {symbol} is not numeric", self.name) from exc

        delta = coin.get("delta") or {}
        raw_ratio = delta.get("day") if isinstance(delta, Mapping) else None
        if raw_ratio is None:
            return TickerSnapshot(symbol=symbol.upper(), last_price=last_price, price_change_percent=0.0)
        try:
            day_ratio = float(raw_ratio)
        except (TypeError, ValueError) as exc:
            raise MalformedResponseError(f"Day delta for {symbol} is not numeric", self.name) from exc

        return TickerSnapshot(
            symbol=symbol.upper(),
            last_price=last_price,
            price_change=last_price - last_price / day_ratio if day_ratio else None,
            price_change_percent=(day_ratio - 1) * 100,
        )

    async def ticker(self, symbol: str) -> TickerSnapshot:
        payload = await self._request_json(
            "POST",
            "/coins/single",
            json={"code": symbol.upper(), "currency": self.currency, "meta": False},
        )
        snapshot = self._parse_coin(symbol, payload)
        if snapshot is None:
            raise MalformedResponseError(f"No rate available for {symbol}", self.name)
        return snapshot

    async def tickers_multi(self, symbols: Sequence[str]) -> list[TickerSnapshot]:
        if not symbols:
            return []
        codes = [symbol.upper() for symbol in symbols]
        payload = await self._request_json(
            "POST",
            "/coins/map",
            json={
                "codes": codes,
                "currency": self.currency,
                "sort": "rank",
                "order": "ascending",
                "offset": 0,
                "limit": len(codes),
                "meta": False,
            },
        )
        if not isinstance(payload, list):
            raise MalformedResponseError("Coin map payload is not a list", self.name)

        tickers: list[TickerSnapshot] = []
        for coin in payload:
            code = coin.get("code") if isinstance(coin, Mapping) else None
            if not code:
                raise MalformedResponseError("Coin entry without a code", self.name)
            snapshot = self._parse_coin(str(code), coin)
            if snapshot is None:
                logger.bind(source=self.name).debug(f"Skipping {code}: no rate")
                continue
            tickers.append(snapshot)
        return tickers

    async def klines(self, symbol: str, interval: str, limit: int) -> list[list[Any]]:
        raise UnsupportedOperationError("LiveCoinWatch does not provide klines", self.name, operation="klines")
