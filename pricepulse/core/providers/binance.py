"""Binance market data providers (direct REST and backend proxy)."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping, Sequence
from typing import Any

import httpx
from loguru import logger

from pricepulse.core.exceptions import MalformedResponseError, ProviderError, RequestRejectedError
from pricepulse.core.models import TickerSnapshot

from .http import HttpMarketDataProvider

BINANCE_API_URL = "https://api.binance.com/api/v3"


def _to_float(payload: Mapping[str, Any], key: str, provider: str) -> float:
    try:
        return float(payload[key])
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedResponseError(
            f"Ticker field '{key}' missing or not numeric", provider, details={"field": key}
        ) from exc


def _optional_float(payload: Mapping[str, Any], key: str) -> float | None:
    value = payload.get(key)
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class BinanceProvider(HttpMarketDataProvider):
    """Binance REST v3 provider.

    Base symbols are mapped to trading pairs by appending ``quote_asset``
    (``BTC`` -> ``BTCUSDT``) and mapped back when parsing responses.
    """

    def __init__(
        self,
        base_url: str = BINANCE_API_URL,
        *,
        quote_asset: str = "USDT",
        name: str = "binance",
        timeout: float = 10.0,
        max_retries: int = 2,
        backoff_factor: float = 0.5,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(
            name,
            base_url,
            timeout=timeout,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
            headers=headers,
            transport=transport,
        )
        self.quote_asset = quote_asset.upper()

    def pair_symbol(self, symbol: str) -> str:
        candidate = symbol.strip().upper()
        if candidate.endswith(self.quote_asset) and len(candidate) > len(self.quote_asset):
            return candidate
        return f"{candidate}{self.quote_asset}"

    def base_symbol(self, pair: str) -> str:
        candidate = pair.strip().upper()
        if candidate.endswith(self.quote_asset) and len(candidate) > len(self.quote_asset):
            return candidate[: -len(self.quote_asset)]
        return candidate

    def parse_ticker(self, payload: Any) -> TickerSnapshot:
        """Normalize a ``/ticker/24hr`` payload into a :class:`TickerSnapshot`."""
        if not isinstance(payload, Mapping) or "symbol" not in payload:
            raise MalformedResponseError("Ticker payload is not an object with a symbol", self.name)

        price_key = "lastPrice" if "lastPrice" in payload else "price"
        last_price = _to_float(payload, price_key, self.name)
        change_percent = _optional_float(payload, "priceChangePercent")
        if change_percent is None:
            open_price = _optional_float(payload, "openPrice")
            if open_price:
                change_percent = (last_price - open_price) / open_price * 100
            else:
                change_percent = 0.0

        return TickerSnapshot(
            symbol=self.base_symbol(str(payload["symbol"])),
            last_price=last_price,
            price_change=_optional_float(payload, "priceChange"),
            price_change_percent=change_percent,
        )

    async def ticker(self, symbol: str) -> TickerSnapshot:
        payload = await self._request_json("GET", "/ticker/24hr", params={"symbol": self.pair_symbol(symbol)})
        return self.parse_ticker(payload)

    async def tickers_multi(self, symbols: Sequence[str]) -> list[TickerSnapshot]:
        if not symbols:
            return []
        pairs = [self.pair_symbol(symbol) for symbol in symbols]
        try:
            payload = await self._request_json(
                "GET",
                "/ticker/24hr",
                params={"symbols": json.dumps(pairs, separators=(",", ":"))},
            )
        except RequestRejectedError as exc:
            # Binance rejects the whole batch when one pair is unknown
            if exc.status_code != 400 or len(pairs) == 1:
                raise
            logger.bind(source=self.name).warning(
                f"Batched ticker request rejected ({exc.message}); falling back to per-symbol requests"
            )
            return await fetch_individually(self, symbols)

        if not isinstance(payload, list):
            raise MalformedResponseError("Batched ticker payload is not a list", self.name)
        return [self.parse_ticker(item) for item in payload]

    async def klines(self, symbol: str, interval: str, limit: int) -> list[list[Any]]:
        payload = await self._request_json(
            "GET",
            "/klines",
            params={"symbol": self.pair_symbol(symbol), "interval": interval, "limit": limit},
        )
        if not isinstance(payload, list):
            raise MalformedResponseError("Klines payload is not a list", self.name)
        return payload

    async def exchange_info(self) -> dict[str, Any]:
        payload = await self._request_json("GET", "/exchangeInfo")
        if not isinstance(payload, dict):
            raise MalformedResponseError("Exchange info payload is not an object", self.name)
        return payload


class BinanceProxyProvider(BinanceProvider):
    """Binance data reached through the backend proxy function.

    Every call is a ``POST`` to the function URL with a JSON body naming the
    ``endpoint`` plus its parameters. A body carrying ``error`` is a failure.
    """

    def __init__(
        self,
        proxy_url: str,
        *,
        quote_asset: str = "USDT",
        name: str = "binance-proxy",
        timeout: float = 10.0,
        max_retries: int = 2,
        backoff_factor: float = 0.5,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(
            proxy_url,
            quote_asset=quote_asset,
            name=name,
            timeout=timeout,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
            headers=headers,
            transport=transport,
        )

    async def _invoke(self, endpoint: str, **params: Any) -> Any:
        payload = await self._request_json("POST", self.base_url, json={"endpoint": endpoint, **params})
        if isinstance(payload, dict) and payload.get("error"):
            raise ProviderError(str(payload["error"]), self.name, details={"endpoint": endpoint})
        return payload

    async def ticker(self, symbol: str) -> TickerSnapshot:
        return self.parse_ticker(await self._invoke("ticker", symbol=self.pair_symbol(symbol)))

    async def tickers_multi(self, symbols: Sequence[str]) -> list[TickerSnapshot]:
        # the proxy exposes no batched ticker endpoint
        return await fetch_individually(self, symbols)

    async def klines(self, symbol: str, interval: str, limit: int) -> list[list[Any]]:
        payload = await self._invoke("klines", symbol=self.pair_symbol(symbol), interval=interval, limit=limit)
        if not isinstance(payload, list):
            raise MalformedResponseError("Klines payload is not a list", self.name)
        return payload

    async def exchange_info(self) -> dict[str, Any]:
        payload = await self._invoke("exchangeInfo")
        if not isinstance(payload, dict):
            raise MalformedResponseError("Exchange info payload is not an object", self.name)
        return payload


async def fetch_individually(provider: BinanceProvider, symbols: Sequence[str]) -> list[TickerSnapshot]:
    """Fetch tickers one by one, dropping symbols whose request failed.

    Raises the first error only when every symbol failed.
    """
    if not symbols:
        return []
    results = await asyncio.gather(*(provider.ticker(symbol) for symbol in symbols), return_exceptions=True)
    tickers: list[TickerSnapshot] = []
    errors: list[ProviderError] = []
    for symbol, result in zip(symbols, results):
        if isinstance(result, TickerSnapshot):
            tickers.append(result)
        elif isinstance(result, ProviderError):
            logger.bind(source=provider.name).debug(f"Ticker for {symbol} unavailable: {result.message}")
            errors.append(result)
        else:
            raise result
    if not tickers and errors:
        raise errors[0]
    return tickers
