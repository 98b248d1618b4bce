"""Tests for the pricepulse client wiring."""

import pytest

from pricepulse.core.client import PricePulseClient, create_provider, create_secondary_provider
from pricepulse.core.config import PricePulseConfig
from pricepulse.core.exceptions import ConfigurationError
from pricepulse.core.models import ConnectionState
from pricepulse.core.providers import (
    BinanceProvider,
    BinanceProxyProvider,
    LiveCoinWatchProvider,
    StaticMarketDataProvider,
)


@pytest.fixture
def client(fast_config, provider, metrics):
    return PricePulseClient(fast_config, provider=provider, metrics=metrics)


class TestProviderFactory:
    """Provider selection from configuration."""

    @pytest.mark.asyncio
    async def test_direct_binance_by_default(self):
        provider = create_provider(PricePulseConfig())

        assert isinstance(provider, BinanceProvider)
        assert not isinstance(provider, BinanceProxyProvider)
        await provider.close()

    @pytest.mark.asyncio
    async def test_proxy_when_configured(self):
        config = PricePulseConfig()
        config.provider.proxy_url = "https://proxy.example.com/binance"

        provider = create_provider(config)

        assert isinstance(provider, BinanceProxyProvider)
        await provider.close()

    def test_secondary_disabled_by_default(self):
        assert create_secondary_provider(PricePulseConfig()) is None

    @pytest.mark.asyncio
    async def test_secondary_livecoinwatch(self):
        config = PricePulseConfig()
        config.livecoinwatch.enabled = True
        config.livecoinwatch.api_key = "key"

        provider = create_secondary_provider(config)

        assert isinstance(provider, LiveCoinWatchProvider)
        await provider.close()

    def test_secondary_without_key_is_a_configuration_error(self):
        config = PricePulseConfig()
        config.livecoinwatch.enabled = True

        with pytest.raises(ConfigurationError):
            create_secondary_provider(config)


class TestPricePulseClient:
    """Client lifecycle and delegation."""

    @pytest.mark.asyncio
    async def test_fetch_prices_runs_one_cycle(self, client, provider):
        snapshot = await client.fetch_prices(["btc", "sol"])

        assert snapshot.is_live
        assert snapshot.get("SOL").price_usd == 180.0
        assert snapshot.get("BTC").change_24h_percent == 2.5
        assert not client.store.is_running
        await client.aclose()

    @pytest.mark.asyncio
    async def test_fetch_prices_defaults_to_configured_symbols(self, client):
        snapshot = await client.fetch_prices()

        assert snapshot.tracked_symbols == frozenset({"BTC", "ETH"})
        await client.aclose()

    @pytest.mark.asyncio
    async def test_consumer_uses_default_symbols(self, client):
        consumer = client.consumer()

        assert consumer.symbols == frozenset({"BTC", "ETH"})
        async with consumer:
            await client.store.wait_for_cycle(timeout=1)
            assert consumer.snapshot.is_live

        await client.aclose()

    def test_consumer_for_missing_secondary(self, client):
        with pytest.raises(ValueError):
            client.consumer(secondary=True)

    @pytest.mark.asyncio
    async def test_secondary_store(self, fast_config, provider, metrics):
        secondary = StaticMarketDataProvider({"BTC": 95100.0}, name="livecoinwatch")
        client = PricePulseClient(fast_config, provider=provider, secondary_provider=secondary, metrics=metrics)

        assert [store.source for store in client.stores] == ["static", "livecoinwatch"]
        consumer = client.consumer(["BTC"], secondary=True).attach()
        await client.secondary_store.wait_for_cycle(timeout=1)

        assert consumer.price("BTC").price_usd == 95100.0
        assert client.store.get_snapshot().prices == {}
        await client.aclose()
        assert secondary.closed

    @pytest.mark.asyncio
    async def test_get_candles_delegates(self, client):
        candles = await client.get_candles("BTC", "1h", 3)

        assert len(candles) == 3
        await client.aclose()

    @pytest.mark.asyncio
    async def test_health_follows_connection_state(self, client, provider):
        health = await client.health()
        assert health.status == "degraded"
        assert health.checks["static"]["connection_state"] == ConnectionState.CONNECTING.value

        await client.fetch_prices(["BTC"])
        health = await client.health()
        assert health.status == "healthy"
        assert health.checks["static"]["update_count"] == 1
        assert health.checks["static"]["last_update"] is not None

        provider.fail_with = RuntimeError("boom")
        client.store.reconnect()
        await client.store.refresh()
        health = await client.health()
        assert health.status == "unhealthy"
        assert "boom" in health.checks["static"]["message"]
        await client.aclose()

    @pytest.mark.asyncio
    async def test_context_manager_closes_everything(self, fast_config, provider, metrics):
        async with PricePulseClient(fast_config, provider=provider, metrics=metrics) as client:
            client.consumer(["BTC"]).attach()
            await client.store.wait_for_cycle(timeout=1)

        assert not client.store.is_running
        assert client.store.subscriber_count == 0
        assert provider.closed
        await client.aclose()
