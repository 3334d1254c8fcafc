from __future__ import annotations

from contextvars import ContextVar
from dataclasses import asdict, dataclass
from typing import Protocol

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

_trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="")

LATENCY_BUCKETS_MS = (5, 10, 25, 50, 100, 250, 500, 1000, 3000, 5000, 15000)


def set_trace_id(trace_id: str) -> None:
    _trace_id_ctx.set(trace_id)


def get_trace_id() -> str:
    return _trace_id_ctx.get()


@dataclass(frozen=True)
class ApiRequestMetric:
    method: str
    path: str
    status_code: int
    duration_ms: float
    trace_id: str


class ApiMetricCollector(Protocol):
    def observe(self, metric: ApiRequestMetric) -> None: ...


class UpstreamMetricCollector(Protocol):
    def observe_provider(self, provider_id: str, outcome: str, latency_ms: float) -> None: ...

    def observe_map_outcome(self, outcome: str) -> None: ...


class InMemoryApiMetricsCollector(ApiMetricCollector):
    def __init__(self) -> None:
        self._metrics: list[ApiRequestMetric] = []

    def observe(self, metric: ApiRequestMetric) -> None:
        self._metrics.append(metric)

    def snapshot(self) -> list[dict]:
        return [asdict(item) for item in self._metrics]


class PrometheusApiMetricsCollector(ApiMetricCollector):
    def __init__(self) -> None:
        self._registry = CollectorRegistry()
        self._request_counter = Counter(
            "locator_http_requests_total",
            "Total locator API HTTP requests",
            labelnames=("method", "path", "status_code"),
            registry=self._registry,
        )
        self._latency_histogram = Histogram(
            "locator_http_request_duration_ms",
            "Locator API HTTP request latency in milliseconds",
            labelnames=("method", "path"),
            buckets=LATENCY_BUCKETS_MS,
            registry=self._registry,
        )

    def observe(self, metric: ApiRequestMetric) -> None:
        status = str(metric.status_code)
        self._request_counter.labels(metric.method, metric.path, status).inc()
        self._latency_histogram.labels(metric.method, metric.path).observe(metric.duration_ms)

    def render(self) -> str:
        return generate_latest(self._registry).decode("utf-8")


class PrometheusUpstreamMetricsCollector(UpstreamMetricCollector):
    def __init__(self) -> None:
        self._registry = CollectorRegistry()
        self._provider_latency = Histogram(
            "locator_reverse_provider_latency_ms",
            "Reverse-geocode provider latency in milliseconds",
            labelnames=("provider", "outcome"),
            buckets=LATENCY_BUCKETS_MS,
            registry=self._registry,
        )
        self._map_outcomes = Counter(
            "locator_map_upstream_outcomes_total",
            "Map upstream fetch outcomes",
            labelnames=("outcome",),
            registry=self._registry,
        )

    def observe_provider(self, provider_id: str, outcome: str, latency_ms: float) -> None:
        self._provider_latency.labels(provider_id, outcome).observe(latency_ms)

    def observe_map_outcome(self, outcome: str) -> None:
        self._map_outcomes.labels(outcome).inc()

    def render(self) -> str:
        return generate_latest(self._registry).decode("utf-8")


class CompositeApiMetricsCollector(ApiMetricCollector):
    def __init__(self, collectors: list[ApiMetricCollector]) -> None:
        self._collectors = collectors

    def observe(self, metric: ApiRequestMetric) -> None:
        for collector in self._collectors:
            collector.observe(metric)
