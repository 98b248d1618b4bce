"""pricepulse - 加密货币实时价格聚合库

Multiplexes any number of price consumers onto one rate-limited polling loop
per market data source, and turns raw exchange klines into candle analytics.
"""

__version__ = "0.1.0"

from pricepulse.core.client import PricePulseClient  # noqa: E402
from pricepulse.core.config import PricePulseConfig  # noqa: E402
from pricepulse.core.models import (  # noqa: E402
    Candle,
    ConnectionState,
    Interval,
    PriceRecord,
    PriceSnapshot,
    ProcessedCandle,
)
from pricepulse.core.services import (  # noqa: E402
    CandleProcessor,
    CandleService,
    PriceAggregationStore,
    PriceConsumer,
)

__all__ = [
    "__version__",
    "PricePulseClient",
    "PricePulseConfig",
    "PriceAggregationStore",
    "PriceConsumer",
    "CandleProcessor",
    "CandleService",
    "Candle",
    "ProcessedCandle",
    "PriceRecord",
    "PriceSnapshot",
    "ConnectionState",
    "Interval",
]
