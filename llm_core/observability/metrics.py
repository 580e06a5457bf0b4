from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)
from fastapi import Response

from llm_core.contracts.events import MetricsUpdated


provider_requests = Gauge(
    "llm_provider_requests",
    "Requests recorded for a provider (successes + errors)",
    ["provider"],
)

provider_errors = Gauge(
    "llm_provider_errors",
    "Failed requests recorded for a provider",
    ["provider"],
)

provider_tokens = Gauge(
    "llm_provider_tokens",
    "Tokens consumed by a provider",
    ["provider"],
)

provider_avg_response_ms = Gauge(
    "llm_provider_average_response_ms",
    "Mean response time over the rolling window, in milliseconds",
    ["provider"],
)

completion_latency = Histogram(
    "llm_completion_latency_seconds",
    "Wall-clock time of a single backend completion attempt",
    ["model"],
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

cache_lookups = Counter(
    "llm_cache_lookups_total",
    "Response cache lookups by result",
    ["result"],
)

llm_tokens = Counter(
    "llm_tokens_total",
    "Total LLM tokens consumed",
    ["model", "direction"],
)


class PrometheusMetricsSink:
    """MetricsTracker listener that mirrors snapshots into gauges."""

    def __call__(self, event: MetricsUpdated) -> None:
        provider = event.provider_id
        snapshot = event.snapshot
        if snapshot is None:
            for gauge in (
                provider_requests,
                provider_errors,
                provider_tokens,
                provider_avg_response_ms,
            ):
                try:
                    gauge.remove(provider)
                except KeyError:
                    pass
            return

        provider_requests.labels(provider=provider).set(snapshot.request_count)
        provider_errors.labels(provider=provider).set(snapshot.error_count)
        provider_tokens.labels(provider=provider).set(snapshot.token_usage)
        provider_avg_response_ms.labels(provider=provider).set(
            snapshot.average_response_time
        )


def metrics_response() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
