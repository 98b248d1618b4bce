"""Exception handling module."""

from pricepulse.core.exceptions.base import (
    ConfigurationError,
    DataValidationError,
    MalformedResponseError,
    PricePulseError,
    ProviderError,
    ProviderUnavailableError,
    RateLimitError,
    RequestRejectedError,
    UnsupportedOperationError,
)
from pricepulse.core.exceptions.codes import ErrorCode

__all__ = [
    "PricePulseError",
    "ProviderError",
    "ProviderUnavailableError",
    "RateLimitError",
    "RequestRejectedError",
    "MalformedResponseError",
    "UnsupportedOperationError",
    "DataValidationError",
    "ConfigurationError",
    "ErrorCode",
]
