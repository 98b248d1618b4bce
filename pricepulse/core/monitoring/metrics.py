"""Prometheus metrics helpers for pricepulse stores and providers."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import DefaultDict

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest


@dataclass
class _SourceStats:
    """Internal container tracking per-source success and failure counts."""

    total: int = 0
    failures: int = 0


class MetricsCollector:
    """Collects and exposes Prometheus metrics for price fetch cycles."""

    def __init__(self, *, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.fetch_latency_seconds = Histogram(
            "pricepulse_fetch_latency_seconds",
            "Latency distribution for market data provider fetches.",
            ("source",),
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float("inf")),
            registry=self.registry,
        )
        self.fetch_requests_total = Counter(
            "pricepulse_fetch_requests_total",
            "Total count of provider fetches issued by a store.",
            ("source",),
            registry=self.registry,
        )
        self.fetch_failures_total = Counter(
            "pricepulse_fetch_failures_total",
            "Total count of failed provider fetches.",
            ("source",),
            registry=self.registry,
        )
        self.fetch_skipped_total = Counter(
            "pricepulse_fetch_skipped_total",
            "Fetch attempts skipped because they fell inside the debounce window.",
            ("source",),
            registry=self.registry,
        )
        self.stale_responses_total = Counter(
            "pricepulse_stale_responses_total",
            "Provider responses discarded because a reconnect superseded them.",
            ("source",),
            registry=self.registry,
        )
        self.subscribers = Gauge(
            "pricepulse_subscribers",
            "Active observers attached to a price store.",
            ("source",),
            registry=self.registry,
        )
        self.provider_error_rate = Gauge(
            "pricepulse_provider_error_rate",
            "Error rate of provider fetches since process start (0-1 range).",
            ("source",),
            registry=self.registry,
        )
        self._source_stats: DefaultDict[str, _SourceStats] = defaultdict(_SourceStats)

    def observe_fetch(self, source: str, latency_seconds: float, *, success: bool = True) -> None:
        """Record a completed provider fetch."""

        self.fetch_latency_seconds.labels(source=source).observe(latency_seconds)
        stats = self._source_stats[source]
        stats.total += 1
        self.fetch_requests_total.labels(source=source).inc()
        if not success:
            stats.failures += 1
            self.fetch_failures_total.labels(source=source).inc()
        self.provider_error_rate.labels(source=source).set(stats.failures / stats.total)

    def record_skipped(self, source: str) -> None:
        self.fetch_skipped_total.labels(source=source).inc()

    def record_stale_response(self, source: str) -> None:
        self.stale_responses_total.labels(source=source).inc()

    def set_subscribers(self, source: str, count: int) -> None:
        self.subscribers.labels(source=source).set(count)

    def render(self) -> bytes:
        """Render metrics in Prometheus exposition format."""

        return generate_latest(self.registry)


_DEFAULT_COLLECTOR: MetricsCollector | None = None


def get_metrics_collector() -> MetricsCollector:
    """Return the global metrics collector instance."""

    global _DEFAULT_COLLECTOR
    if _DEFAULT_COLLECTOR is None:
        _DEFAULT_COLLECTOR = MetricsCollector()
    return _DEFAULT_COLLECTOR


def configure_metrics_collector(collector: MetricsCollector | None) -> None:
    """Override the global metrics collector for application wiring or tests."""

    global _DEFAULT_COLLECTOR
    _DEFAULT_COLLECTOR = collector
