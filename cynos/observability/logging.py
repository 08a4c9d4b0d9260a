"""Structured logging with correlation IDs for the Cynos Nexus backend.

This module wires structlog on top of the standard library so that both
our own log calls and uvicorn's records end up on the same handlers:
- JSON-formatted output in production for log aggregation
- Colored console output in development
- Correlation IDs for request tracing
- Context labels (``Bootstrap``, ``HTTP``) on every logger
- Optional rotating log file

Usage:
    from cynos.observability import configure_logging, get_logger

    # Configure logging once at startup
    configure_logging(level="DEBUG", format="console")

    # Get a logger tagged with a context label
    logger = get_logger(__name__, context="Bootstrap")
    logger.info("transport_selected", scheme="https")
"""

import logging
import logging.handlers
import sys
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor


LOG_FORMATS = ("json", "console")

# Context variable for correlation ID tracking
correlation_id_var: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add the current request's correlation ID to log entries."""
    correlation_id = correlation_id_var.get()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def add_log_level(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add log level to event dictionary.

    Args:
        logger: Logger instance
        method_name: Name of the logging method
        event_dict: Event dictionary to modify

    Returns:
        Modified event dictionary with level
    """
    if method_name == "warn":
        method_name = "warning"
    event_dict["level"] = method_name
    return event_dict


def configure_logging(
    level: str = "INFO",
    format: str = "json",
    log_file: Optional[Path] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> None:
    """Configure structured logging for the backend.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Output format ("json" or "console")
        log_file: Optional path for file logging with rotation
        max_bytes: Maximum size of log file before rotation
        backup_count: Number of backup files to keep

    Example:
        >>> configure_logging(level="DEBUG", format="console")
        >>> configure_logging(level="INFO", format="json", log_file=Path("logs/cynos.log"))
    """
    logging_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging_level)
    handlers.append(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=str(log_file),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(logging_level)
        handlers.append(file_handler)

    # Clear existing handlers to allow reconfiguration
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging_level)
    for handler in handlers:
        handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(handler)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_correlation_id,
        add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [renderer],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, context: Optional[str] = None, **initial: Any) -> Any:
    """Get a structured logger instance, optionally tagged with a context label.

    Args:
        name: Logger name (typically __name__)
        context: Label identifying the emitting stage (e.g. "Bootstrap", "HTTP")
        **initial: Extra key-value pairs bound to every entry

    Returns:
        structlog bound logger

    Example:
        >>> logger = get_logger(__name__, context="HTTP")
        >>> logger.debug("http_request_received", method="GET", url="/")
    """
    logger = structlog.get_logger(name)
    if context is not None:
        initial["context"] = context
    if initial:
        logger = logger.bind(**initial)
    return logger


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Set correlation ID for request tracing.

    Args:
        correlation_id: Correlation ID (auto-generated if None)

    Returns:
        The correlation ID that was set
    """
    if correlation_id is None:
        correlation_id = f"req-{uuid.uuid4().hex[:12]}"
    correlation_id_var.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    """Clear correlation ID from context."""
    correlation_id_var.set(None)


def get_correlation_id() -> Optional[str]:
    """Get current correlation ID."""
    return correlation_id_var.get()


# Default console configuration so modules that log before bootstrap
# still produce readable output
try:
    configure_logging(level="INFO", format="console")
except Exception:
    logging.basicConfig(level=logging.INFO)


__all__ = [
    "LOG_FORMATS",
    "configure_logging",
    "get_logger",
    "set_correlation_id",
    "clear_correlation_id",
    "get_correlation_id",
]
