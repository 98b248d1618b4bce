"""Price aggregation, candle processing and consumer services."""

from pricepulse.core.services.aggregation import PriceAggregationStore, PriceObserver, Unsubscribe
from pricepulse.core.services.candles import CandleProcessor, CandleService, parse_klines, to_frame
from pricepulse.core.services.consumer import PriceConsumer

__all__ = [
    "PriceAggregationStore",
    "PriceObserver",
    "Unsubscribe",
    "CandleProcessor",
    "CandleService",
    "parse_klines",
    "to_frame",
    "PriceConsumer",
]
