"""配置管理模块 - 处理pricepulse客户端的配置"""

import os
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

DEFAULT_SYMBOLS = ("BTC", "ETH", "BNB", "ADA", "SOL", "XRP", "DOT", "LINK", "LTC", "DOGE", "TRX", "AVAX")

# 同一数据源两次请求之间的最小间隔(秒)
MIN_FETCH_INTERVAL_SECONDS = 1.0


@dataclass
class StoreConfig:
    """价格聚合存储配置"""

    poll_interval: float = 5.0
    min_fetch_interval: float = MIN_FETCH_INTERVAL_SECONDS
    default_symbols: list[str] = field(default_factory=lambda: list(DEFAULT_SYMBOLS))
    startup_timeout: float = 10.0


@dataclass
class ProviderConfig:
    """提供商配置"""

    base_url: str = "https://api.binance.com/api/v3"
    proxy_url: str | None = None
    quote_asset: str = "USDT"
    timeout: float = 10.0
    max_retries: int = 2
    backoff_factor: float = 0.5


@dataclass
class LiveCoinWatchConfig:
    """LiveCoinWatch 次级价格源配置"""

    enabled: bool = False
    base_url: str = "https://api.livecoinwatch.com"
    api_key: str | None = None
    currency: str = "USD"


@dataclass
class CurrencyConfig:
    """本地货币换算配置"""

    code: str = "INR"
    usd_rate: float = 84.0

    def to_local(self, usd_price: float) -> float:
        return usd_price * self.usd_rate


@dataclass
class CandleConfig:
    """K线配置"""

    default_interval: str = "1h"
    default_limit: int = 500
    max_limit: int = 1000


@dataclass
class LoggingConfig:
    """日志配置"""

    level: str = "INFO"
    file: str | None = None


def _secondary_store_config() -> StoreConfig:
    return StoreConfig(poll_interval=120.0, default_symbols=[])


@dataclass
class PricePulseConfig:
    """pricepulse主配置"""

    store: StoreConfig = field(default_factory=StoreConfig)
    secondary: StoreConfig = field(default_factory=_secondary_store_config)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    livecoinwatch: LiveCoinWatchConfig = field(default_factory=LiveCoinWatchConfig)
    currency: CurrencyConfig = field(default_factory=CurrencyConfig)
    candles: CandleConfig = field(default_factory=CandleConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "PricePulseConfig":
        """从字典创建配置"""
        secondary = {"poll_interval": 120.0, "default_symbols": [], **config_dict.get("secondary", {})}
        return cls(
            store=StoreConfig(**config_dict.get("store", {})),
            secondary=StoreConfig(**secondary),
            provider=ProviderConfig(**config_dict.get("provider", {})),
            livecoinwatch=LiveCoinWatchConfig(**config_dict.get("livecoinwatch", {})),
            currency=CurrencyConfig(**config_dict.get("currency", {})),
            candles=CandleConfig(**config_dict.get("candles", {})),
            logging=LoggingConfig(**config_dict.get("logging", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        """转换为字典"""
        return {
            "store": asdict(self.store),
            "secondary": asdict(self.secondary),
            "provider": asdict(self.provider),
            "livecoinwatch": asdict(self.livecoinwatch),
            "currency": asdict(self.currency),
            "candles": asdict(self.candles),
            "logging": asdict(self.logging),
        }


def _deep_update(d: dict[str, Any], u: dict[str, Any]) -> dict[str, Any]:
    """深度更新字典"""
    for k, v in u.items():
        if isinstance(v, dict):
            d[k] = _deep_update(d.get(k, {}), v)
        else:
            d[k] = v
    return d


def _drop_none(d: dict[str, Any]) -> dict[str, Any]:
    # TOML has no null, so unset optional settings are omitted on save
    return {k: _drop_none(v) if isinstance(v, dict) else v for k, v in d.items() if v is not None}


class ConfigManager:
    """配置管理器"""

    def __init__(self, config_path: Path | None = None, *, use_env: bool = True):
        """初始化配置管理器

        Args:
            config_path: 配置文件路径，如果为None则使用默认路径
            use_env: 是否叠加 PRICEPULSE_* 环境变量
        """
        self.config_path = config_path or Path.home() / ".pricepulse" / "config.toml"
        self.use_env = use_env
        self.config = self._load_config()

    def _load_config(self) -> PricePulseConfig:
        """加载配置"""
        config_dict: dict[str, Any] = {}
        if self.config_path.exists():
            try:
                with open(self.config_path, "rb") as f:
                    config_dict = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                # 如果配置文件有问题，使用默认配置
                logger.warning(f"Failed to load config from {self.config_path}: {e}")
                config_dict = {}

        if self.use_env:
            _deep_update(config_dict, load_config_from_env())

        try:
            return PricePulseConfig.from_dict(config_dict)
        except TypeError as e:
            logger.warning(f"Ignoring invalid config in {self.config_path}: {e}")
            return PricePulseConfig()

    def get_config(self) -> PricePulseConfig:
        """获取当前配置"""
        return self.config

    def update_config(self, **updates: Any) -> None:
        """更新配置"""
        config_dict = self.config.to_dict()
        _deep_update(config_dict, updates)
        self.config = PricePulseConfig.from_dict(config_dict)

    def save_config(self) -> None:
        """保存配置到文件"""
        import tomli_w

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "wb") as f:
            tomli_w.dump(_drop_none(self.config.to_dict()), f)


def get_default_config() -> PricePulseConfig:
    """获取默认配置"""
    return PricePulseConfig()


def load_config_from_env() -> dict[str, Any]:
    """从环境变量加载配置"""
    config: dict[str, Any] = {}

    # 存储配置
    store_config: dict[str, Any] = {}
    poll_interval = os.getenv("PRICEPULSE_POLL_INTERVAL")
    if poll_interval is not None:
        store_config["poll_interval"] = float(poll_interval)
    min_fetch_interval = os.getenv("PRICEPULSE_MIN_FETCH_INTERVAL")
    if min_fetch_interval is not None:
        store_config["min_fetch_interval"] = float(min_fetch_interval)
    symbols = os.getenv("PRICEPULSE_SYMBOLS")
    if symbols is not None:
        store_config["default_symbols"] = [s.strip().upper() for s in symbols.split(",") if s.strip()]

    if store_config:
        config["store"] = store_config

    # 提供商配置
    provider_config: dict[str, Any] = {}
    base_url = os.getenv("PRICEPULSE_PROVIDER_BASE_URL")
    if base_url is not None:
        provider_config["base_url"] = base_url
    proxy_url = os.getenv("PRICEPULSE_PROVIDER_PROXY_URL")
    if proxy_url is not None:
        provider_config["proxy_url"] = proxy_url
    provider_timeout = os.getenv("PRICEPULSE_PROVIDER_TIMEOUT")
    if provider_timeout is not None:
        provider_config["timeout"] = float(provider_timeout)

    if provider_config:
        config["provider"] = provider_config

    lcw_api_key = os.getenv("PRICEPULSE_LCW_API_KEY")
    if lcw_api_key is not None:
        config["livecoinwatch"] = {"api_key": lcw_api_key, "enabled": True}

    # 货币配置
    currency_config: dict[str, Any] = {}
    currency_code = os.getenv("PRICEPULSE_CURRENCY_CODE")
    if currency_code is not None:
        currency_config["code"] = currency_code.upper()
    currency_rate = os.getenv("PRICEPULSE_CURRENCY_RATE")
    if currency_rate is not None:
        currency_config["usd_rate"] = float(currency_rate)

    if currency_config:
        config["currency"] = currency_config

    # 日志配置
    log_level = os.getenv("PRICEPULSE_LOG_LEVEL")
    if log_level is not None:
        config["logging"] = {"level": log_level}

    return config
