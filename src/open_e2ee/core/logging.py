# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Open E2EE Contributors

"""Structured logging configuration for Open E2EE.

Provides:
- JSON formatter for production (machine-parseable)
- Standard formatter for development (human-readable)
- Correlation IDs tying together the sub-steps of one operation
- Operation logging that never leaks key material or plaintext
"""

from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

# Context variable for correlation ID (thread/async-safe)
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Get the current correlation ID."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID for the current context."""
    _correlation_id.set(correlation_id)


def generate_correlation_id() -> str:
    """Generate a new unique correlation ID."""
    return str(uuid.uuid4())


@contextmanager
def correlation_context(
    correlation_id: str | None = None,
) -> Generator[str, None, None]:
    """Context manager for correlation ID scope.

    Reuses the enclosing correlation ID when one is already set and none is
    passed, so nested operations (``share_new`` calling ``encrypt``) log
    under a single ID.

    Args:
        correlation_id: Optional correlation ID to use.

    Yields:
        The correlation ID being used.
    """
    cid = correlation_id or get_correlation_id() or generate_correlation_id()
    token = _correlation_id.set(cid)
    try:
        yield cid
    finally:
        _correlation_id.reset(token)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for production environments."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        if record.levelno >= logging.WARNING:
            log_data["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_data"):
            log_data["extra"] = record.extra_data

        return json.dumps(log_data)


class StandardFormatter(logging.Formatter):
    """Standard log formatter for development.

    Human-readable format with colors for terminal output.
    """

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"
    CORRELATION_COLOR = "\033[90m"  # Gray

    def __init__(self, use_colors: bool = True):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        # Copy so other handlers see the original record
        record = logging.makeLogRecord(record.__dict__)

        correlation_id = get_correlation_id()
        if correlation_id:
            short_cid = correlation_id[:8]
            if self.use_colors:
                cid_str = f"{self.CORRELATION_COLOR}[{short_cid}]{self.RESET} "
            else:
                cid_str = f"[{short_cid}] "
            record.msg = cid_str + str(record.msg)

        if self.use_colors:
            color = self.COLORS.get(record.levelname, "")
            record.levelname = f"{color}{record.levelname}{self.RESET}"

        return super().format(record)


def configure_logging(
    level: str | int | None = None,
    json_format: bool | None = None,
    log_file: str | None = None,
) -> None:
    """Configure root logging for Open E2EE tools.

    Args:
        level: Log level; defaults to OPEN_E2EE_LOG_LEVEL.
        json_format: Use JSON format (auto-detect if None).
        log_file: Optional file to write logs to (always JSON).
    """
    from .config import get_config

    config = get_config()

    level = config.log_level if level is None else level
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if json_format is None:
        format_env = config.log_format.lower()
        if format_env == "json":
            json_format = True
        elif format_env == "text":
            json_format = False
        else:
            json_format = not sys.stderr.isatty()

    log_file = config.log_file if log_file is None else log_file

    formatter: logging.Formatter
    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = StandardFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)


class OperationLogger:
    """Logger for public E2EE operations.

    Logs operation starts and outcomes with sanitized parameters so that
    passphrases, session keys and plaintext never reach log sinks.
    """

    SENSITIVE_PARAMS = {
        "passphrase",
        "password",
        "secret",
        "key",
        "data",
        "plaintext",
        "private",
    }

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("open_e2ee.operations")

    def log_call(
        self,
        operation: str,
        arguments: dict[str, Any] | None = None,
        level: int = logging.DEBUG,
    ) -> None:
        """Log the start of an operation with sanitized arguments."""
        self.logger.log(
            level,
            "Operation start: %s",
            operation,
            extra={
                "extra_data": {
                    "operation": operation,
                    "arguments": sanitize(arguments or {}, self.SENSITIVE_PARAMS),
                }
            },
        )

    def log_result(
        self,
        operation: str,
        success: bool,
        duration_ms: float | None = None,
        error: str | None = None,
    ) -> None:
        """Log an operation outcome. Failures are logged at WARNING."""
        status = "success" if success else "failure"
        msg = f"Operation result: {operation} -> {status}"
        if duration_ms is not None:
            msg += f" ({duration_ms:.1f}ms)"
        if error:
            msg += f": {error}"

        self.logger.log(
            logging.DEBUG if success else logging.WARNING,
            msg,
            extra={
                "extra_data": {
                    "operation": operation,
                    "success": success,
                    "duration_ms": duration_ms,
                }
            },
        )


def sanitize(data: Any, sensitive: set[str] | None = None) -> Any:
    """Recursively redact sensitive fields and truncate long strings.

    Keys ending in ``fingerprint`` are kept: they identify keys without
    revealing them.
    """
    sensitive = OperationLogger.SENSITIVE_PARAMS if sensitive is None else sensitive
    if isinstance(data, dict):
        result = {}
        for key, value in data.items():
            lowered = key.lower()
            if lowered.endswith("fingerprint") or lowered.endswith("_count"):
                result[key] = sanitize(value, sensitive)
            elif any(s in lowered for s in sensitive):
                result[key] = "[REDACTED]"
            else:
                result[key] = sanitize(value, sensitive)
        return result
    elif isinstance(data, list):
        return [sanitize(item, sensitive) for item in data]
    elif isinstance(data, str) and len(data) > 200:
        return data[:200] + "..."
    else:
        return data


# Default operation logger
operation_logger = OperationLogger()


@contextmanager
def log_operation(operation: str, **arguments: Any) -> Generator[str, None, None]:
    """Log start, outcome and duration of one public operation.

    Opens a correlation scope so provider calls made inside the block share
    one correlation ID. Exceptions are logged and re-raised unchanged.

    Yields:
        The correlation ID for the operation.
    """
    with correlation_context() as cid:
        operation_logger.log_call(operation, arguments)
        start = time.perf_counter()
        try:
            yield cid
        except Exception as exc:
            operation_logger.log_result(
                operation,
                success=False,
                duration_ms=(time.perf_counter() - start) * 1000,
                error=str(exc),
            )
            raise
        operation_logger.log_result(
            operation,
            success=True,
            duration_ms=(time.perf_counter() - start) * 1000,
        )
