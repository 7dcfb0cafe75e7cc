"""
Prometheus metrics for the weather proxy.
"""
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Histogram,
    Info,
    generate_latest,
)

# Application info metric
app_info = Info(
    "weatherproxy_app_info",
    "Application information for the weather proxy",
)

# Request metrics
request_counter = Counter(
    "weatherproxy_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"],
)

# Latency metrics
request_duration = Histogram(
    "weatherproxy_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Weather-specific metrics
weather_lookup_counter = Counter(
    "weatherproxy_weather_lookups_total",
    "Total number of weather lookups by resulting reading status",
    ["status"],
)

upstream_fetch_counter = Counter(
    "weatherproxy_upstream_fetches_total",
    "Total number of upstream weather API fetches",
    ["outcome"],
)

upstream_fetch_duration = Histogram(
    "weatherproxy_upstream_fetch_duration_seconds",
    "Upstream weather API fetch duration in seconds",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)

# Cache metrics
cache_lookup_counter = Counter(
    "weatherproxy_cache_lookups_total",
    "Total number of cache lookups",
    ["result"],
)

cache_swept_counter = Counter(
    "weatherproxy_cache_swept_entries_total",
    "Total number of expired cache entries removed by the sweeper",
)

# Health metrics
health_check_counter = Counter(
    "weatherproxy_health_checks_total",
    "Total number of health check requests",
    ["status"],
)


def set_app_info(version: str, environment: str = "production"):
    """Set application information."""
    app_info.info(
        {"version": version, "environment": environment, "application": "weatherproxy"}
    )


def get_metrics() -> bytes:
    """Get all metrics in Prometheus format."""
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
