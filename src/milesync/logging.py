"""Structured logging for milesync.

``StructuredLogger`` wraps a stdlib logger and can emit either plain text or
one JSON object per line. There is no process-wide logger instance: the CLI
builds one with :func:`configure_logging` and hands it to every component.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, TextIO

from .errors import redact

DEFAULT_LOGGER_NAME = "milesync"
TEXT_FORMAT = "%(asctime)s %(levelname)s %(message)s"

_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "exc_info",
        "exc_text",
        "stack_info",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
        "asctime",
    }
)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Extra attributes passed through ``extra=`` land on the record
        for k, v in record.__dict__.items():
            if k in _RESERVED_ATTRS or k.startswith("_") or k in entry:
                continue
            entry[k] = v
        return json.dumps(entry, default=str)


class StructuredLogger:
    def __init__(
        self,
        name: str = DEFAULT_LOGGER_NAME,
        json_logging: bool = False,
        level: str = "INFO",
        *,
        stream: TextIO | None = None,
        configure: bool = True,
    ) -> None:
        self._logger = logging.getLogger(name)
        self.json_logging = json_logging
        if not configure:
            return
        self._logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        for h in list(self._logger.handlers):
            self._logger.removeHandler(h)
        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(JSONFormatter() if json_logging else logging.Formatter(TEXT_FORMAT))
        self._logger.addHandler(handler)
        self._logger.propagate = False

    @property
    def name(self) -> str:
        return self._logger.name

    def log_operation(self, operation: str, **kw: Any) -> None:
        extra = {"operation": operation, **kw}
        self._logger.info(f"Operation: {operation}", extra=extra)

    def log_milestone_action(
        self,
        action: str,
        title: str,
        due_date: str | None = None,
        dry_run: bool = False,
        **kw: Any,
    ) -> None:
        extra: dict[str, Any] = {
            "operation": f"milestone_{action}",
            "title": title,
            "dry_run": dry_run,
            **kw,
        }
        if due_date:
            extra["due_date"] = due_date
        msg = (
            f"milestone {action} {title}"
            + (f" (due {due_date})" if due_date else "")
            + (" [DRY]" if dry_run else "")
        )
        self._logger.info(msg, extra=extra)

    def log_performance(self, operation: str, duration_ms: float, **kw: Any) -> None:
        extra = {"operation": operation, "duration_ms": round(duration_ms, 2), **kw}
        self._logger.info(f"Performance: {operation} completed in {duration_ms:.2f}ms", extra=extra)

    def log_error(self, message: str, error: str | None = None, **kw: Any) -> None:
        extra = dict(kw)
        if error:
            extra["error"] = redact(error)
        text = redact(message)
        if error and not self.json_logging:
            text = f"{text}: {extra['error']}"
        self._logger.error(text, extra=extra)

    def debug(self, message: str, **kw: Any) -> None:
        self._logger.debug(message, extra=kw)

    def info(self, message: str, **kw: Any) -> None:
        self._logger.info(message, extra=kw)

    def warning(self, message: str, **kw: Any) -> None:
        self._logger.warning(message, extra=kw)

    def error(self, message: str, **kw: Any) -> None:  # noqa: D401
        self._logger.error(redact(message), extra=kw)

    @contextmanager
    def timed_operation(self, operation: str, **kw: Any) -> Iterator[None]:  # noqa: D401
        start = time.perf_counter()
        self.log_operation(f"{operation}_start", **kw)
        try:
            yield
            self.log_performance(operation, (time.perf_counter() - start) * 1000, **kw)
        except Exception as exc:
            self.log_error(f"operation {operation} failed", error=str(exc), **kw)
            raise


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> StructuredLogger:
    """Wrap the named logger without touching its handlers or level."""
    return StructuredLogger(name, configure=False)


def configure_logging(
    json_logging: bool = False,
    level: str = "INFO",
    *,
    name: str = DEFAULT_LOGGER_NAME,
    stream: TextIO | None = None,
) -> StructuredLogger:
    return StructuredLogger(name=name, json_logging=json_logging, level=level, stream=stream)


__all__ = ["JSONFormatter", "StructuredLogger", "configure_logging", "get_logger"]
