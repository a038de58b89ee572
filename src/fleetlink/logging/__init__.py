"""
Logging setup for FleetLink.

Modules log through ``logging.getLogger(__name__)``; ``setup_logging`` attaches
one handler to the ``fleetlink`` logger that injects the service name and the
current OpenTelemetry trace context, in plain text or JSON.
"""

import json
import logging
import sys
from datetime import datetime
from typing import Any, TextIO

from opentelemetry import trace

ROOT_LOGGER_NAME = "fleetlink"

DEFAULT_LOG_FORMAT = (
    "%(asctime)s - %(levelname)s - [%(service_name)s] - [%(trace_id)s:%(span_id)s] - "
    "[%(name)s] - %(message)s"
)

LOG_OFF_LEVEL = "OFF"

# LogRecord attributes that are not copied into JSON output as extras
_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "exc_info",
    "exc_text",
    "stack_info",
    "service_name",
    "trace_id",
    "span_id",
    "message",
    "asctime",
}


class ServiceNameFilter(logging.Filter):
    """Filter to inject service name into log records."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = self.service_name  # type: ignore[attr-defined]
        return True


class TraceContextFilter(logging.Filter):
    """Filter to inject trace context into log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            record.trace_id = format(span_context.trace_id, "032x")  # type: ignore[attr-defined]
            record.span_id = format(span_context.span_id, "016x")  # type: ignore[attr-defined]
        else:
            record.trace_id = "0" * 32  # type: ignore[attr-defined]
            record.span_id = "0" * 16  # type: ignore[attr-defined]
        return True


class UnifiedJSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, include_trace: bool = True):
        super().__init__()
        self.include_trace = include_trace

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service_name", "unknown"),
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if self.include_trace:
            trace_id = getattr(record, "trace_id", None)
            span_id = getattr(record, "span_id", None)
            if trace_id and span_id:
                log_entry["trace_id"] = trace_id
                log_entry["span_id"] = span_id

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str, ensure_ascii=False)


def setup_logging(
    service_name: str = ROOT_LOGGER_NAME,
    log_level: str = "INFO",
    enable_json: bool = False,
    stream: TextIO | None = None,
) -> logging.Logger:
    """
    Configure the ``fleetlink`` logger.

    Calling it again replaces the previously installed handler, so the CLI and
    tests can reconfigure freely.

    Args:
        service_name: Injected into every record as ``service_name``.
        log_level: Standard level name, or ``OFF`` to silence the package.
        enable_json: Emit one JSON object per line instead of text.
        stream: Output stream, defaults to stderr.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_fleetlink_handler", False):
            logger.removeHandler(handler)

    if log_level.upper() == LOG_OFF_LEVEL:
        logger.setLevel(logging.CRITICAL + 1)
    else:
        logger.setLevel(logging.getLevelName(log_level.upper()))

    handler = logging.StreamHandler(stream or sys.stderr)
    handler._fleetlink_handler = True  # type: ignore[attr-defined]
    if enable_json:
        handler.setFormatter(UnifiedJSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
    handler.addFilter(ServiceNameFilter(service_name))
    handler.addFilter(TraceContextFilter())

    logger.addHandler(handler)
    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Return a package logger. Use after setup_logging has been called."""
    return logging.getLogger(name)


__all__ = [
    "DEFAULT_LOG_FORMAT",
    "ROOT_LOGGER_NAME",
    "ServiceNameFilter",
    "TraceContextFilter",
    "UnifiedJSONFormatter",
    "get_logger",
    "setup_logging",
]
