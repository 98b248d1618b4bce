"""Health checking utilities."""

import asyncio
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from pricepulse import __version__


class HealthStatus:
    """Aggregated health status returned by :class:`HealthChecker`."""

    def __init__(
        self,
        status: str,
        timestamp: datetime | None = None,
        checks: dict[str, Any] | None = None,
        uptime_seconds: float = 0.0,
    ):
        self.status = status
        self.timestamp = timestamp or datetime.now(UTC)
        self.checks = checks or {}
        self.uptime_seconds = uptime_seconds
        self.version = __version__

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "timestamp": self.timestamp.isoformat(),
            "uptime_seconds": self.uptime_seconds,
            "version": self.version,
            "checks": self.checks,
        }


class HealthChecker:
    """Health checker for monitoring system status."""

    def __init__(self, name: str = "default"):
        """Initialize health checker.

        Args:
            name: Name of the health checker
        """
        self.name = name
        self.start_time = time.time()
        self.checks: dict[str, Callable[[], Any]] = {}

    def register_check(self, name: str, check_func: Callable[[], Any]) -> None:
        """Register a health check function.

        Args:
            name: Name of the check
            check_func: Sync or async callable returning ``{"status": ..., ...}``
        """
        self.checks[name] = check_func

    def unregister_check(self, name: str) -> None:
        self.checks.pop(name, None)

    async def check_health(self) -> HealthStatus:
        """Run every registered check and fold the results into one status.

        ``unhealthy`` wins over ``degraded``, which wins over ``healthy``.
        """
        uptime = time.time() - self.start_time
        checks: dict[str, Any] = {}

        for check_name, check_func in self.checks.items():
            try:
                if asyncio.iscoroutinefunction(check_func):
                    result = await check_func()
                else:
                    result = check_func()
                checks[check_name] = result
            except Exception as e:
                logger.warning(f"Health check {check_name} raised {type(e).__name__}: {e}")
                checks[check_name] = {"status": "unhealthy", "message": str(e)}

        statuses = [check.get("status", "unknown") for check in checks.values()]
        if any(status == "unhealthy" for status in statuses):
            status = "unhealthy"
        elif any(status == "degraded" for status in statuses):
            status = "degraded"
        else:
            status = "healthy"

        return HealthStatus(
            status=status,
            timestamp=datetime.now(UTC),
            checks=checks,
            uptime_seconds=uptime,
        )
