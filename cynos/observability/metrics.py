"""Prometheus-compatible HTTP metrics for the Cynos Nexus backend.

The request logging middleware records one observation per completed
request-response cycle. Metrics live in a private registry so that tests
and multiple application instances never clash with the process-wide
default registry.

Usage:
    from cynos.observability.metrics import record_request

    record_request(method="GET", status_code=200, duration_seconds=0.012)
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


_registry = CollectorRegistry()

http_requests_total = Counter(
    "cynos_http_requests_total",
    "Total number of completed HTTP requests",
    ["method", "status"],
    registry=_registry,
)

http_request_duration_seconds = Histogram(
    "cynos_http_request_duration_seconds",
    "Duration of HTTP request handling in seconds",
    ["method"],
    registry=_registry,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float("inf")),
)


def record_request(method: str, status_code: int, duration_seconds: float) -> None:
    """Record a completed request.

    Args:
        method: HTTP method of the request
        status_code: Status code sent to the client
        duration_seconds: Elapsed handling time in seconds
    """
    http_requests_total.labels(method=method, status=str(status_code)).inc()
    http_request_duration_seconds.labels(method=method).observe(duration_seconds)


def get_metrics_registry() -> CollectorRegistry:
    """Get the backend metrics registry."""
    return _registry


def get_metrics_output() -> bytes:
    """Get Prometheus-formatted metrics output.

    Returns:
        Bytes containing Prometheus-formatted metrics
    """
    return generate_latest(_registry)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST


__all__ = [
    "record_request",
    "get_metrics_registry",
    "get_metrics_output",
    "get_metrics_content_type",
    "http_requests_total",
    "http_request_duration_seconds",
]
