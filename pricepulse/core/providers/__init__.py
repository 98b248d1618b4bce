"""Market data providers."""

from pricepulse.core.providers.base import MarketDataProvider
from pricepulse.core.providers.binance import (
    BINANCE_API_URL,
    BinanceProvider,
    BinanceProxyProvider,
    fetch_individually,
)
from pricepulse.core.providers.http import HttpMarketDataProvider
from pricepulse.core.providers.livecoinwatch import LIVECOINWATCH_API_URL, LiveCoinWatchProvider
from pricepulse.core.providers.static import BASE_PRICES, StaticMarketDataProvider, synthetic_klines

__all__ = [
    "MarketDataProvider",
    "HttpMarketDataProvider",
    "BinanceProvider",
    "BinanceProxyProvider",
    "LiveCoinWatchProvider",
    "StaticMarketDataProvider",
    "fetch_individually",
    "synthetic_klines",
    "BASE_PRICES",
    "BINANCE_API_URL",
    "LIVECOINWATCH_API_URL",
]
