"""Logging configuration for course-progress-service.

Logs answer "what happened to THIS request / THIS learner".  Aggregate
questions (how many completions per hour, how often rendering fails)
belong to the Prometheus counters in app/core/metrics.py.

TWO FORMATTERS
---------------
  _ContainerFormatter  one human-readable line per record, for dev.
  _JsonFormatter       one JSON object per line (LOG_JSON=true), for log
                       aggregators that filter on fields such as
                       user_id or request_id without regexes.

CONTEXT FIELDS
---------------
request_id and user_id live in ContextVars (set by the request-context
middleware and the auth dependency).  A filter installed on the HANDLER
copies them onto every record.  It must sit on the handler: filters on
the root logger never see records propagated up from child loggers.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = request_id_var.get()  # type: ignore[attr-defined]
        if getattr(record, "user_id", None) is None:
            record.user_id = user_id_var.get()  # type: ignore[attr-defined]
        return True


class _ContainerFormatter(logging.Formatter):
    """Single-line formatter for container stdout.

    WARNING and above get a ``[file:line]`` suffix; tracebacks are
    appended when exc_info is present.
    """

    _BASE_FMT = "%(asctime)s %(levelname)-8s [%(request_id)s] %(name)s  %(message)s"
    _LOC_SUFFIX = "  [%(filename)s:%(lineno)d]"

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        base = super().formatTime(record, datefmt)
        # Milliseconds go before the +0000 offset.
        return f"{base[:-5]}.{int(record.msecs):03d}{base[-5:]}"

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "request_id"):
            record.request_id = "-"  # type: ignore[attr-defined]
        if record.levelno >= logging.WARNING:
            self._style._fmt = self._BASE_FMT + self._LOC_SUFFIX
        else:
            self._style._fmt = self._BASE_FMT
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """JSON Lines formatter; context fields become top-level keys."""

    _CONTEXT_FIELDS = (
        "request_id",
        "user_id",
        "method",
        "path",
        "status_code",
        "duration_ms",
        "task_id",
        "queue",
    )

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in self._CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None and value != "-":
                log_entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Send everything to stdout with the chosen formatter.

    Args:
        level_name: debug/info/warning/error (LOG_LEVEL)
        json_format: emit JSON lines instead of text (LOG_JSON)
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # SQL echo and HTTP client chatter stay at WARNING unless asked otherwise.
    for name in ("uvicorn.access", "httpcore", "httpx", "sqlalchemy.engine", "asyncio"):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
