"""
Structured logging module with JSON formatting and request context support.

This module provides:
- JSON log formatting for structured logging
- Correlation ID and tenant tracking via context variables
- Logger factory for consistent logger creation
"""
import logging
import json
import sys
from datetime import datetime
from typing import Any
from contextvars import ContextVar

# Correlation ID of the request or sync cycle being processed
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# Display prefix of the API key that authenticated the current request
tenant_var: ContextVar[str] = ContextVar("tenant", default="")

_STANDARD_RECORD_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "asctime",
    "taskName",
}


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Outputs logs as JSON objects with the following fields:
    - timestamp: ISO 8601 formatted timestamp
    - level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - logger: Logger name
    - message: Log message
    - correlation_id: Request or sync cycle correlation ID (if available)
    - tenant: API key prefix of the authenticated caller (if available)
    - exception: Exception details (if an exception occurred)
    - extra: Any additional context from extra dict
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": correlation_id_var.get(),
        }

        tenant = tenant_var.get()
        if tenant:
            log_data["tenant"] = tenant

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_keys = {
            k: v
            for k, v in record.__dict__.items()
            if k not in _STANDARD_RECORD_ATTRS
        }
        if extra_keys:
            log_data["extra"] = extra_keys

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
    """
    Colored console formatter for development.

    Provides human-readable colored output for console logging
    while still including correlation IDs.
    """

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        level_color = self.COLORS.get(record.levelname, "")
        correlation_id = correlation_id_var.get()
        tenant = tenant_var.get()

        base_msg = f"{level_color}[{record.levelname}]{self.RESET} {record.name}: {record.getMessage()}"

        if correlation_id:
            base_msg += f" | correlation_id={correlation_id}"
        if tenant:
            base_msg += f" | tenant={tenant}"

        if record.exc_info:
            base_msg += "\n" + self.formatException(record.exc_info)

        return base_msg


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    handler: logging.Handler | None = None,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, use JSON formatter. If False, use colored console formatter.
        handler: Optional custom handler. If None, creates StreamHandler to stdout.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)

    if json_output:
        formatter = JSONFormatter()
    else:
        formatter = ColoredFormatter()

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Reduce noise from third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__ from the calling module)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def set_correlation_id(correlation_id: str) -> Any:
    """
    Set the correlation ID in the context.

    Args:
        correlation_id: The correlation ID to set

    Returns:
        Token that can be used to reset the context variable
    """
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    """Get the current correlation ID, or an empty string if not set."""
    return correlation_id_var.get()


def clear_correlation_id(token: Any) -> None:
    """
    Clear the correlation ID from the context.

    Args:
        token: The token returned by set_correlation_id
    """
    correlation_id_var.reset(token)


def set_tenant(key_prefix: str) -> Any:
    """Attach the authenticated API key prefix to subsequent log lines."""
    return tenant_var.set(key_prefix)
