from __future__ import annotations

from collections import deque
from contextvars import ContextVar
from dataclasses import asdict, dataclass
from typing import Protocol

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

_trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="")


def set_trace_id(trace_id: str) -> None:
    _trace_id_ctx.set(trace_id)


def get_trace_id() -> str:
    return _trace_id_ctx.get()


@dataclass(frozen=True)
class RequestMetric:
    method: str
    path: str
    status_code: int
    duration_ms: float
    trace_id: str


class RequestMetricCollector(Protocol):
    def observe(self, metric: RequestMetric) -> None: ...


class DispatchMetricsRecorder(Protocol):
    def record_dispatch(self, candidates: int, broadcasts: int) -> None: ...

    def record_delivery_failures(self, count: int) -> None: ...


class InMemoryRequestMetricsCollector(RequestMetricCollector):
    """Keeps the most recent ``max_items`` request metrics."""

    def __init__(self, max_items: int = 1000) -> None:
        self._metrics: deque[RequestMetric] = deque(maxlen=max_items)

    def observe(self, metric: RequestMetric) -> None:
        self._metrics.append(metric)

    def snapshot(self) -> list[dict]:
        return [asdict(item) for item in self._metrics]


class PrometheusMetrics(RequestMetricCollector):
    def __init__(self) -> None:
        self._registry = CollectorRegistry()
        self._request_counter = Counter(
            "dispatch_http_requests_total",
            "Total dispatch API HTTP requests",
            labelnames=("method", "path", "status_code"),
            registry=self._registry,
        )
        self._latency_histogram = Histogram(
            "dispatch_http_request_duration_ms",
            "Dispatch API HTTP request latency in milliseconds",
            labelnames=("method", "path"),
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 3000),
            registry=self._registry,
        )
        self._emergencies = Counter(
            "dispatch_emergencies_total",
            "Emergency requests dispatched",
            registry=self._registry,
        )
        self._candidates = Counter(
            "dispatch_candidates_evaluated_total",
            "Online providers evaluated for emergency broadcasts",
            registry=self._registry,
        )
        self._broadcasts = Counter(
            "dispatch_broadcasts_total",
            "Emergency notices sent to eligible providers",
            registry=self._registry,
        )
        self._delivery_failures = Counter(
            "dispatch_notification_failures_total",
            "Notification deliveries that failed",
            registry=self._registry,
        )

    def observe(self, metric: RequestMetric) -> None:
        status = str(metric.status_code)
        self._request_counter.labels(metric.method, metric.path, status).inc()
        self._latency_histogram.labels(metric.method, metric.path).observe(metric.duration_ms)

    def record_dispatch(self, candidates: int, broadcasts: int) -> None:
        self._emergencies.inc()
        self._candidates.inc(candidates)
        self._broadcasts.inc(broadcasts)

    def record_delivery_failures(self, count: int) -> None:
        if count > 0:
            self._delivery_failures.inc(count)

    def render(self) -> str:
        return generate_latest(self._registry).decode("utf-8")


class CompositeRequestMetricsCollector(RequestMetricCollector):
    def __init__(self, collectors: list[RequestMetricCollector]) -> None:
        self._collectors = collectors

    def observe(self, metric: RequestMetric) -> None:
        for collector in self._collectors:
            collector.observe(metric)
