"""Resilience patterns module."""

from pricepulse.core.patterns.retry import ExponentialBackoffRetry, RetryConfig

__all__ = [
    "ExponentialBackoffRetry",
    "RetryConfig",
]
