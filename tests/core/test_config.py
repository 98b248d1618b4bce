"""
Tests for configuration management.

Covers defaults, dict round-trips, TOML loading and saving, and the
``PRICEPULSE_*`` environment overrides.
"""

from pathlib import Path

import pytest

from pricepulse.core.config import (
    MIN_FETCH_INTERVAL_SECONDS,
    ConfigManager,
    CurrencyConfig,
    PricePulseConfig,
    StoreConfig,
    get_default_config,
    load_config_from_env,
)

_ENV_VARS = [
    "PRICEPULSE_POLL_INTERVAL",
    "PRICEPULSE_MIN_FETCH_INTERVAL",
    "PRICEPULSE_SYMBOLS",
    "PRICEPULSE_PROVIDER_BASE_URL",
    "PRICEPULSE_PROVIDER_PROXY_URL",
    "PRICEPULSE_PROVIDER_TIMEOUT",
    "PRICEPULSE_LCW_API_KEY",
    "PRICEPULSE_CURRENCY_CODE",
    "PRICEPULSE_CURRENCY_RATE",
    "PRICEPULSE_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    """Test default configuration values."""

    def test_store_defaults(self):
        config = get_default_config()

        assert config.store.poll_interval == 5.0
        assert config.store.min_fetch_interval == MIN_FETCH_INTERVAL_SECONDS == 1.0
        assert "BTC" in config.store.default_symbols
        assert config.secondary.poll_interval == 120.0
        assert config.secondary.default_symbols == []

    def test_provider_and_currency_defaults(self):
        config = PricePulseConfig()

        assert config.provider.base_url == "https://api.binance.com/api/v3"
        assert config.provider.proxy_url is None
        assert config.livecoinwatch.enabled is False
        assert config.currency.usd_rate == 84.0
        assert config.candles.max_limit == 1000

    def test_currency_conversion_is_configurable(self):
        assert CurrencyConfig().to_local(2.0) == 168.0
        assert CurrencyConfig(code="EUR", usd_rate=0.9).to_local(10.0) == pytest.approx(9.0)

    def test_store_configs_do_not_share_symbol_lists(self):
        first, second = StoreConfig(), StoreConfig()
        first.default_symbols.append("NEW")

        assert "NEW" not in second.default_symbols


class TestRoundTrip:
    """Test dict conversion."""

    def test_to_dict_from_dict(self):
        config = PricePulseConfig()
        config.store.poll_interval = 7.5
        config.currency.code = "EUR"

        restored = PricePulseConfig.from_dict(config.to_dict())

        assert restored == config

    def test_partial_secondary_keeps_secondary_defaults(self):
        config = PricePulseConfig.from_dict({"secondary": {"default_symbols": ["BTC"]}})

        assert config.secondary.poll_interval == 120.0
        assert config.secondary.default_symbols == ["BTC"]


class TestConfigManager:
    """Test ConfigManager file handling."""

    def test_missing_file_uses_defaults(self, tmp_path: Path):
        manager = ConfigManager(tmp_path / "missing.toml", use_env=False)

        assert manager.get_config() == PricePulseConfig()

    def test_loads_toml(self, tmp_path: Path):
        path = tmp_path / "config.toml"
        path.write_text('[store]\npoll_interval = 2.0\n\n[currency]\ncode = "EUR"\nusd_rate = 0.92\n')

        config = ConfigManager(path, use_env=False).get_config()

        assert config.store.poll_interval == 2.0
        assert config.currency.code == "EUR"
        assert config.currency.usd_rate == 0.92

    def test_broken_file_falls_back_to_defaults(self, tmp_path: Path):
        path = tmp_path / "config.toml"
        path.write_text("[store\npoll_interval = ")

        assert ConfigManager(path, use_env=False).get_config() == PricePulseConfig()

    def test_unknown_keys_fall_back_to_defaults(self, tmp_path: Path):
        path = tmp_path / "config.toml"
        path.write_text("[store]\nnot_a_setting = 1\n")

        assert ConfigManager(path, use_env=False).get_config() == PricePulseConfig()

    def test_update_and_save(self, tmp_path: Path):
        path = tmp_path / "nested" / "config.toml"
        manager = ConfigManager(path, use_env=False)

        manager.update_config(store={"poll_interval": 3.0}, provider={"proxy_url": "https://proxy.example.com/fn"})
        manager.save_config()
        reloaded = ConfigManager(path, use_env=False).get_config()

        assert reloaded.store.poll_interval == 3.0
        assert reloaded.provider.proxy_url == "https://proxy.example.com/fn"
        assert reloaded.livecoinwatch.api_key is None

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch):
        path = tmp_path / "config.toml"
        path.write_text("[store]\npoll_interval = 2.0\n")
        monkeypatch.setenv("PRICEPULSE_POLL_INTERVAL", "9")

        config = ConfigManager(path).get_config()

        assert config.store.poll_interval == 9.0


class TestEnvironment:
    """Test environment variable loading."""

    def test_empty_environment(self):
        assert load_config_from_env() == {}

    def test_all_variables(self, monkeypatch):
        monkeypatch.setenv("PRICEPULSE_POLL_INTERVAL", "4")
        monkeypatch.setenv("PRICEPULSE_MIN_FETCH_INTERVAL", "0.5")
        monkeypatch.setenv("PRICEPULSE_SYMBOLS", "btc, eth,,sol")
        monkeypatch.setenv("PRICEPULSE_PROVIDER_BASE_URL", "https://api.binance.us/api/v3")
        monkeypatch.setenv("PRICEPULSE_PROVIDER_PROXY_URL", "https://proxy.example.com/fn")
        monkeypatch.setenv("PRICEPULSE_PROVIDER_TIMEOUT", "3")
        monkeypatch.setenv("PRICEPULSE_LCW_API_KEY", "key")
        monkeypatch.setenv("PRICEPULSE_CURRENCY_CODE", "eur")
        monkeypatch.setenv("PRICEPULSE_CURRENCY_RATE", "0.9")
        monkeypatch.setenv("PRICEPULSE_LOG_LEVEL", "DEBUG")

        config = PricePulseConfig.from_dict(load_config_from_env())

        assert config.store.poll_interval == 4.0
        assert config.store.min_fetch_interval == 0.5
        assert config.store.default_symbols == ["BTC", "ETH", "SOL"]
        assert config.provider.base_url == "https://api.binance.us/api/v3"
        assert config.provider.proxy_url == "https://proxy.example.com/fn"
        assert config.provider.timeout == 3.0
        assert config.livecoinwatch.enabled is True
        assert config.livecoinwatch.api_key == "key"
        assert config.currency.code == "EUR"
        assert config.currency.usd_rate == 0.9
        assert config.logging.level == "DEBUG"
