"""Logging for the ``ledger_import`` package.

Every log line the package emits is an *event*: a ``area:name`` tag followed
by ``key=value`` pairs, e.g. ``classify:page_done page_index=0 results=12``.
Modules build these lines with :func:`log_event` rather than hand-formatting
them, so values are rendered the same way everywhere and the tag and fields
stay available on the record (``record.event`` / ``record.event_fields``)
for handlers that want structure instead of text.

Library code only ever calls :func:`get_logger`. Handlers are attached once,
by an entrypoint, through :func:`configure_logging`.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from typing import IO, Any

ROOT_LOGGER = "ledger_import"
LEVEL_ENV = "LEDGER_IMPORT_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s %(message)s"

_handler: logging.Handler | None = None


def resolve_level(level: int | str | None = None) -> int:
    """Turn ``level`` (or ``$LEDGER_IMPORT_LOG_LEVEL``) into a logging level.

    Unknown names fall back to ``INFO``.
    """

    if level is None:
        level = os.getenv(LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def _render_value(value: Any) -> str:
    if isinstance(value, bool) or value is None:
        return str(value).lower()
    if isinstance(value, float):
        return f"{value:.2f}"
    if isinstance(value, BaseException):
        return value.__class__.__name__
    text = str(value)
    if not text or any(ch.isspace() or ch in "=\"'" for ch in text):
        return repr(text)
    return text


def format_event(event: str, fields: Mapping[str, Any]) -> str:
    """Render ``event`` and its fields as ``event k1=v1 k2=v2``.

    Strings that are empty or contain whitespace, quotes or ``=`` are quoted
    with :func:`repr`; floats get two decimals; exceptions render as their
    class name.
    """

    if not fields:
        return event
    pairs = " ".join(f"{key}={_render_value(value)}" for key, value in fields.items())
    return f"{event} {pairs}"


def log_event(
    logger: logging.Logger, event: str, /, *, level: int = logging.INFO, **fields: Any
) -> None:
    """Emit one ``event`` line on ``logger`` at ``level``."""

    if not logger.isEnabledFor(level):
        return
    logger.log(
        level,
        format_event(event, fields),
        extra={"event": event, "event_fields": dict(fields)},
    )


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str = DEFAULT_FORMAT,
    stream: IO[str] = sys.stderr,
) -> logging.Handler:
    """Attach one stream handler to the package logger and return it.

    Calling this again keeps the existing handler and only updates its level.
    """

    global _handler
    resolved = resolve_level(level)
    root = logging.getLogger(ROOT_LOGGER)
    if _handler is None:
        for existing in list(root.handlers):
            if isinstance(existing, logging.NullHandler):
                root.removeHandler(existing)
        _handler = logging.StreamHandler(stream)
        _handler.setFormatter(logging.Formatter(fmt))
        root.addHandler(_handler)
        root.propagate = False
    _handler.setLevel(resolved)
    root.setLevel(resolved)
    return _handler


def get_logger(name: str) -> logging.Logger:
    """Return ``name``'s logger; the package logger stays silent until configured."""

    root = logging.getLogger(ROOT_LOGGER)
    if _handler is None and not root.handlers:
        root.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = [
    "DEFAULT_FORMAT",
    "configure_logging",
    "format_event",
    "get_logger",
    "log_event",
    "resolve_level",
]
