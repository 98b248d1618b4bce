"""pricepulse 核心模块"""

from pricepulse.core.client import PricePulseClient, create_provider, create_secondary_provider
from pricepulse.core.config.settings import ConfigManager, PricePulseConfig
from pricepulse.core.models import ConnectionState, Interval, PriceRecord, PriceSnapshot

__all__ = [
    "PricePulseClient",
    "create_provider",
    "create_secondary_provider",
    "ConfigManager",
    "PricePulseConfig",
    "ConnectionState",
    "Interval",
    "PriceRecord",
    "PriceSnapshot",
]
