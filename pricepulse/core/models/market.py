"""Market-related enums and types."""

from enum import Enum


class ConnectionState(str, Enum):
    """价格存储对提供商健康状态的视图."""

    CONNECTING = "connecting"
    LIVE = "live"
    DEGRADED = "degraded"


class Interval(str, Enum):
    """K线时间间隔枚举."""

    MINUTE_1 = "1m"
    MINUTE_3 = "3m"
    MINUTE_5 = "5m"
    MINUTE_15 = "15m"
    MINUTE_30 = "30m"
    HOUR_1 = "1h"
    HOUR_2 = "2h"
    HOUR_4 = "4h"
    HOUR_6 = "6h"
    HOUR_8 = "8h"
    HOUR_12 = "12h"
    DAY_1 = "1d"
    DAY_3 = "3d"
    WEEK_1 = "1w"
    MONTH_1 = "1M"
