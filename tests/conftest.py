"""Pytest configuration for the pricepulse test suite."""

from __future__ import annotations

import pytest
from prometheus_client import CollectorRegistry

from pricepulse.core.config import CurrencyConfig, PricePulseConfig, StoreConfig
from pricepulse.core.logging import configure_logging
from pricepulse.core.monitoring import MetricsCollector
from pricepulse.core.providers import StaticMarketDataProvider


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line options for controlling integration tests."""

    parser.addoption(
        "--pricepulse-run-integration",
        action="store_true",
        default=False,
        help="Run pricepulse integration tests that call live market data APIs.",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register the integration marker for pricepulse tests."""

    config.addinivalue_line(
        "markers",
        "integration: marks pricepulse tests requiring network access",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless explicitly requested."""

    if config.getoption("--pricepulse-run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="integration tests require --pricepulse-run-integration")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


class FakeClock:
    """Manually advanced monotonic clock for debounce tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _reset_logging():
    """CLI runs re-point the log sink at captured streams; restore stderr afterwards."""

    yield
    configure_logging("WARNING")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> MetricsCollector:
    return MetricsCollector(registry=registry)


@pytest.fixture
def provider() -> StaticMarketDataProvider:
    return StaticMarketDataProvider({"BTC": 95000.0, "ETH": 3500.0, "SOL": 180.0}, changes={"BTC": 2.5})


@pytest.fixture
def store_config() -> StoreConfig:
    return StoreConfig(poll_interval=60.0, min_fetch_interval=1.0, default_symbols=["BTC", "ETH"])


@pytest.fixture
def currency() -> CurrencyConfig:
    return CurrencyConfig(code="INR", usd_rate=84.0)


@pytest.fixture
def fast_config() -> PricePulseConfig:
    """Client configuration with no debounce and a short poll cadence."""

    config = PricePulseConfig()
    config.store = StoreConfig(poll_interval=0.05, min_fetch_interval=0.0, default_symbols=["BTC", "ETH"], startup_timeout=2.0)
    return config
