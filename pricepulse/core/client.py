"""pricepulse主客户端 - 组装提供商、价格存储与K线服务"""

from collections.abc import Callable, Iterable
from typing import Any

from loguru import logger

from pricepulse.core.config import ConfigManager, PricePulseConfig
from pricepulse.core.health import HealthChecker, HealthStatus
from pricepulse.core.models import ConnectionState, PriceSnapshot, ProcessedCandle
from pricepulse.core.monitoring import MetricsCollector, get_metrics_collector
from pricepulse.core.providers import (
    BinanceProvider,
    BinanceProxyProvider,
    LiveCoinWatchProvider,
    MarketDataProvider,
)
from pricepulse.core.services import CandleService, PriceAggregationStore, PriceConsumer

_HEALTH_BY_STATE = {
    ConnectionState.LIVE: "healthy",
    ConnectionState.CONNECTING: "degraded",
    ConnectionState.DEGRADED: "unhealthy",
}


def create_provider(config: PricePulseConfig) -> MarketDataProvider:
    """根据配置创建主行情提供商"""
    provider_config = config.provider
    options = {
        "quote_asset": provider_config.quote_asset,
        "timeout": provider_config.timeout,
        "max_retries": provider_config.max_retries,
        "backoff_factor": provider_config.backoff_factor,
    }
    if provider_config.proxy_url:
        return BinanceProxyProvider(provider_config.proxy_url, **options)
    return BinanceProvider(provider_config.base_url, **options)


def create_secondary_provider(config: PricePulseConfig) -> MarketDataProvider | None:
    """创建次级价格源; 未启用时返回None"""
    lcw = config.livecoinwatch
    if not lcw.enabled:
        return None
    return LiveCoinWatchProvider(
        lcw.api_key,
        lcw.base_url,
        currency=lcw.currency,
        timeout=config.provider.timeout,
        max_retries=config.provider.max_retries,
        backoff_factor=config.provider.backoff_factor,
    )


class PricePulseClient:
    """pricepulse主客户端

    Owns one :class:`PriceAggregationStore` per price source for the lifetime
    of the application; consumers are handed out with :meth:`consumer` instead
    of reaching the stores through module globals.
    """

    def __init__(
        self,
        config: PricePulseConfig | dict[str, Any] | None = None,
        provider: MarketDataProvider | None = None,
        secondary_provider: MarketDataProvider | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """初始化客户端

        Args:
            config: 配置对象或嵌套配置字典(叠加在配置文件与环境变量之上)
            provider: 主行情提供商, 默认按配置创建Binance提供商
            secondary_provider: 次级价格源, 默认在启用LiveCoinWatch时创建
            metrics: 指标收集器, 默认使用全局收集器
        """
        if isinstance(config, PricePulseConfig):
            self.config = config
        else:
            manager = ConfigManager()
            if config:
                manager.update_config(**config)
            self.config = manager.get_config()

        self.metrics = metrics or get_metrics_collector()
        self.provider = provider or create_provider(self.config)
        self.store = PriceAggregationStore(
            self.provider,
            source=self.provider.name,
            config=self.config.store,
            currency=self.config.currency,
            metrics=self.metrics,
        )

        self.secondary_provider = secondary_provider or create_secondary_provider(self.config)
        self.secondary_store: PriceAggregationStore | None = None
        if self.secondary_provider is not None:
            self.secondary_store = PriceAggregationStore(
                self.secondary_provider,
                source=self.secondary_provider.name,
                config=self.config.secondary,
                currency=self.config.currency,
                metrics=self.metrics,
            )

        self.candles = CandleService(self.provider, self.config.candles)
        self.health_checker = HealthChecker("pricepulse")
        for store in self.stores:
            self.health_checker.register_check(store.source, _store_check(store))
        self._closed = False

    @property
    def stores(self) -> list[PriceAggregationStore]:
        stores = [self.store]
        if self.secondary_store is not None:
            stores.append(self.secondary_store)
        return stores

    def consumer(
        self,
        symbols: Iterable[str] | None = None,
        callback: Callable[[PriceSnapshot], None] | None = None,
        *,
        secondary: bool = False,
    ) -> PriceConsumer:
        """Create a (detached) consumer for the primary or the secondary store."""
        store = self.store
        if secondary:
            if self.secondary_store is None:
                raise ValueError("No secondary price source is configured")
            store = self.secondary_store
        if symbols is None:
            symbols = store.config.default_symbols
        return PriceConsumer(store, symbols, callback)

    async def fetch_prices(self, symbols: Iterable[str] | None = None) -> PriceSnapshot:
        """Run a single fetch cycle for ``symbols`` and return the snapshot."""
        self.store.request_symbols(symbols if symbols is not None else self.config.store.default_symbols)
        await self.store.refresh()
        return self.store.get_snapshot()

    async def get_candles(
        self,
        symbol: str,
        interval: str | None = None,
        limit: int | None = None,
    ) -> list[ProcessedCandle]:
        return await self.candles.get_candles(symbol, interval, limit)

    async def health(self) -> HealthStatus:
        return await self.health_checker.check_health()

    async def aclose(self) -> None:
        """Stop every store and close the providers."""
        if self._closed:
            return
        self._closed = True
        for store in self.stores:
            await store.aclose()
        await self.provider.close()
        if self.secondary_provider is not None:
            await self.secondary_provider.close()
        logger.debug("pricepulse client closed")

    async def __aenter__(self) -> "PricePulseClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


def _store_check(store: PriceAggregationStore) -> Callable[[], dict[str, Any]]:
    def check() -> dict[str, Any]:
        snapshot = store.get_snapshot()
        last_update = snapshot.last_update
        return {
            "status": _HEALTH_BY_STATE[snapshot.connection_state],
            "connection_state": snapshot.connection_state.value,
            "message": snapshot.error_message,
            "update_count": snapshot.update_count,
            "subscribers": store.subscriber_count,
            "last_update": last_update.isoformat() if last_update else None,
        }

    return check
