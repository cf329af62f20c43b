"""Process-wide logging setup for the tracker.

`configure_logging` is called once by the composition root. It splits records
between stdout (DEBUG/INFO) and stderr (WARNING and up) and stamps each one
with a correlation id. Everything else only emits, through `LoggingPort` or a
module logger. Uvicorn keeps this setup because `main` passes `log_config=None`.

The correlation id is the request id inside the web adapter and the job id
inside a supervisor task, so every poll of one job can be grepped together.
"""

from __future__ import annotations

import contextvars
import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Optional, TextIO

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default="-"
)

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s %(name)s %(correlation_id)s: %(message)s"

# Third-party loggers that are too chatty at one request every two seconds
QUIET_LOGGERS = ("aiohttp.client", "aiohttp.access")


def coerce_level(level: int | str | None) -> int:
    """Turn 'debug', 'INFO', 10 or None into a logging level; unknown names mean INFO."""
    if level is None:
        return logging.INFO
    if isinstance(level, int):
        return level
    return logging.getLevelNamesMapping().get(str(level).upper().strip(), logging.INFO)


@contextmanager
def bind_correlation_id(correlation_id: str) -> Iterator[str]:
    """Set the correlation id for the current context and restore the previous one on exit."""
    token = correlation_id_var.set(correlation_id)
    try:
        yield correlation_id
    finally:
        correlation_id_var.reset(token)


class _CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - simple
        record.correlation_id = correlation_id_var.get()
        return True


class _LevelRangeFilter(logging.Filter):
    def __init__(self, low: int, high: int):
        super().__init__()
        self.low = low
        self.high = high

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover
        return self.low <= record.levelno <= self.high


def _stream_handler(stream: TextIO, low: int, high: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(stream=stream)
    handler.setLevel(low)
    handler.addFilter(_LevelRangeFilter(low, high))
    handler.addFilter(_CorrelationIdFilter())
    handler.setFormatter(formatter)
    return handler


def configure_logging(
    level: int | str | None = None,
    fmt: Optional[str] = None,
    disable_uvicorn_access: bool = False,
) -> None:
    """Install the stdout/stderr sinks on the root logger.

    Safe to call again (e.g. on reload): existing root handlers are replaced.
    """
    numeric_level = coerce_level(level)
    formatter = logging.Formatter(fmt or DEFAULT_FORMAT)

    root = logging.getLogger()
    root.setLevel(numeric_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    root.addHandler(_stream_handler(sys.stdout, logging.DEBUG, logging.INFO, formatter))
    root.addHandler(_stream_handler(sys.stderr, logging.WARNING, logging.CRITICAL, formatter))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if disable_uvicorn_access:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logging.getLogger("webdash").debug(
        "Logging configured level=%s disable_uvicorn_access=%s", numeric_level, disable_uvicorn_access
    )
