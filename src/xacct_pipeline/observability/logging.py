"""Structured logging setup: JSON lines or console rendering over ``structlog``."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Final, Literal, TextIO

import structlog

LogFormat = Literal["json", "console"]

_LEVELS: Final[dict[str, int]] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def configure_logging(
    level: int | str = "INFO",
    fmt: LogFormat = "json",
    *,
    stream: TextIO | None = None,
) -> None:
    """Install process-wide structlog configuration.

    Log lines go to ``stream`` (stderr by default) so graph output on stdout stays clean.
    """
    numeric_level = _parse_log_level(level)
    if fmt == "json":
        renderer: structlog.typing.Processor = structlog.processors.JSONRenderer(sort_keys=True)
    elif fmt == "console":
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    else:
        raise ValueError(f"unsupported log format {fmt!r}; expected 'json' or 'console'")

    target = stream if stream is not None else sys.stderr
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(file=target),
        cache_logger_on_first_use=False,
    )


@contextmanager
def bind_run_context(**fields: str) -> Iterator[None]:
    """Bind correlation fields (e.g. ``run_id``) to every log line inside the block."""
    tokens = structlog.contextvars.bind_contextvars(**fields)
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)


def _parse_log_level(value: int | str) -> int:
    if isinstance(value, bool):
        raise ValueError("log level must be a level name or integer")
    if isinstance(value, int):
        if value < 0:
            raise ValueError("log level must be >= 0")
        return value
    normalized = value.strip().upper()
    if normalized not in _LEVELS:
        raise ValueError(f"unknown log level {value!r}; expected one of {', '.join(_LEVELS)}")
    return _LEVELS[normalized]


__all__ = ["LogFormat", "bind_run_context", "configure_logging"]
