"""Observability helpers for the Cynos Nexus backend.

Components:
    - logging: Structured logging with structlog
    - metrics: Prometheus HTTP metrics

Usage:
    from cynos.observability import get_logger

    logger = get_logger(__name__, context="Bootstrap")
    logger.info("application_running", url="https://localhost:8000")
"""

from cynos.observability.logging import (
    clear_correlation_id,
    configure_logging,
    get_correlation_id,
    get_logger,
    set_correlation_id,
)
from cynos.observability.metrics import (
    get_metrics_content_type,
    get_metrics_output,
    get_metrics_registry,
    record_request,
)

__all__ = [
    "get_logger",
    "configure_logging",
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
    "record_request",
    "get_metrics_registry",
    "get_metrics_output",
    "get_metrics_content_type",
]
