"""Health monitoring and status checking."""

from pricepulse.core.health.checker import HealthChecker, HealthStatus

__all__ = ["HealthChecker", "HealthStatus"]
