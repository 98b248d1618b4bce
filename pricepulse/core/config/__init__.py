"""Configuration management module."""

from pricepulse.core.config.settings import (
    MIN_FETCH_INTERVAL_SECONDS,
    CandleConfig,
    ConfigManager,
    CurrencyConfig,
    LiveCoinWatchConfig,
    LoggingConfig,
    PricePulseConfig,
    ProviderConfig,
    StoreConfig,
    get_default_config,
    load_config_from_env,
)

__all__ = [
    "ConfigManager",
    "PricePulseConfig",
    "StoreConfig",
    "ProviderConfig",
    "LiveCoinWatchConfig",
    "CurrencyConfig",
    "CandleConfig",
    "LoggingConfig",
    "MIN_FETCH_INTERVAL_SECONDS",
    "get_default_config",
    "load_config_from_env",
]
