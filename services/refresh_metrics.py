"""Prometheus metrics for refresh activity.

The metrics are kept in-process; ``get_metrics_text`` renders them for the
console adapter.
"""

from prometheus_client import REGISTRY, Counter, Gauge, Histogram, generate_latest

refresh_attempts = Counter(
    "quota_refresh_attempts_total",
    "Total number of refresh pipeline runs started",
    ["trigger"]
)

refresh_outcomes = Counter(
    "quota_refresh_outcomes_total",
    "Total number of refresh pipeline runs by outcome",
    ["result"]
)

probe_attempts = Counter(
    "quota_probe_attempts_total",
    "Total number of quota probes by result",
    ["result"]
)

records_cached = Gauge(
    "quota_records_cached",
    "Number of quota records currently cached"
)

refresh_duration = Histogram(
    "quota_refresh_duration_seconds",
    "Wall time of one refresh pipeline run",
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)


def get_metrics_text() -> str:
    """Render all registered metrics in the Prometheus text format."""
    return generate_latest(REGISTRY).decode("utf-8")
