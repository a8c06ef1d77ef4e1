from __future__ import annotations

from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest


@dataclass(frozen=True)
class RequestMetric:
    method: str
    route: str
    status_code: int
    duration_ms: float


class PrometheusRequestMetrics:
    def __init__(self) -> None:
        self._registry = CollectorRegistry()
        self._request_counter = Counter(
            "seminar_http_requests_total",
            "Total seminar service HTTP requests",
            labelnames=("method", "route", "status_code"),
            registry=self._registry,
        )
        self._latency_histogram = Histogram(
            "seminar_http_request_duration_ms",
            "Seminar service HTTP request latency in milliseconds",
            labelnames=("method", "route"),
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 3000, 10000),
            registry=self._registry,
        )

    def observe(self, metric: RequestMetric) -> None:
        self._request_counter.labels(metric.method, metric.route, str(metric.status_code)).inc()
        self._latency_histogram.labels(metric.method, metric.route).observe(metric.duration_ms)

    def render(self) -> str:
        return generate_latest(self._registry).decode("utf-8")
