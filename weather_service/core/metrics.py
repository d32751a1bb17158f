"""Prometheus-backed metrics sink injected into the engine and the loops.

Components only see the narrow :class:`MetricsSink` surface; the registry is
created explicitly so tests and processes never share hidden global state.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Dict, Mapping, Optional, Tuple, Union

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Gauge, Histogram, generate_latest


HTTP_REQUESTS = "http_requests"
HTTP_REQUEST_DURATION = "http_request_duration"
CACHE_HITS = "cache_hits"
CACHE_MISSES = "cache_misses"
JOBS_PROCESSED = "jobs_processed"
QUEUE_LENGTH = "queue_length"

Metric = Union[Counter, Gauge, Histogram]


class PrometheusMetrics:
    """Holds the service metric families on one ``CollectorRegistry``."""

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry or CollectorRegistry()
        self._metrics: Dict[str, Metric] = {
            HTTP_REQUESTS: Counter(
                "weather_service_http_requests",
                "Total number of HTTP requests by path, method, status code, and status text.",
                ["path", "method", "code", "status_text"],
                registry=self.registry,
            ),
            HTTP_REQUEST_DURATION: Histogram(
                "weather_service_http_request_duration_seconds",
                "Duration of HTTP requests in seconds.",
                ["path", "method"],
                registry=self.registry,
            ),
            CACHE_HITS: Counter(
                "weather_service_cache_hits",
                "Total number of successful cache lookups.",
                registry=self.registry,
            ),
            CACHE_MISSES: Counter(
                "weather_service_cache_misses",
                "Total number of cache misses requiring upstream fetch.",
                registry=self.registry,
            ),
            JOBS_PROCESSED: Counter(
                "weather_jobs_processed",
                "Total jobs processed from the queue by outcome.",
                ["outcome"],
                registry=self.registry,
            ),
            QUEUE_LENGTH: Gauge(
                "weather_queue_length",
                "Current number of jobs in the Redis queue (-1 when it cannot be read).",
                registry=self.registry,
            ),
        }

    def _resolve(self, name: str, labels: Optional[Mapping[str, str]]) -> Metric:
        metric = self._metrics[name]
        if labels:
            return metric.labels(**labels)
        return metric

    def increment_counter(self, name: str, labels: Optional[Mapping[str, str]] = None) -> None:
        self._resolve(name, labels).inc()

    def observe_histogram(self, name: str, labels: Optional[Mapping[str, str]], value: float) -> None:
        self._resolve(name, labels).observe(value)

    def set_gauge(self, name: str, value: float) -> None:
        self._metrics[name].set(value)

    def render(self) -> Tuple[bytes, str]:
        return generate_latest(self.registry), CONTENT_TYPE_LATEST


class NullMetrics:
    """Sink that discards every observation."""

    def increment_counter(self, name: str, labels: Optional[Mapping[str, str]] = None) -> None:
        return None

    def observe_histogram(self, name: str, labels: Optional[Mapping[str, str]], value: float) -> None:
        return None

    def set_gauge(self, name: str, value: float) -> None:
        return None


@lru_cache(maxsize=1)
def get_metrics() -> PrometheusMetrics:
    """Process-wide sink used by the HTTP layer and the background loops."""
    return PrometheusMetrics()


__all__ = [
    "CACHE_HITS",
    "CACHE_MISSES",
    "HTTP_REQUESTS",
    "HTTP_REQUEST_DURATION",
    "JOBS_PROCESSED",
    "NullMetrics",
    "PrometheusMetrics",
    "QUEUE_LENGTH",
    "get_metrics",
]
