"""Structured call events for the request pipeline."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

EVENT_LOGGER = "tfe_client.observability"

# LogRecord attributes an ``extra`` dict must not overwrite.
_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}


def elapsed_ms(start: float) -> int:
    """Milliseconds since ``start`` (a ``time.perf_counter()`` reading)."""
    return int((time.perf_counter() - start) * 1000)


def _level_for(status: Any) -> int:
    if status == "exception":
        return logging.WARNING
    if isinstance(status, int) and status >= 500:
        return logging.WARNING
    return logging.INFO


def log_event(
    event: str,
    logger: Optional[logging.Logger] = None,
    *,
    level: Optional[int] = None,
    **fields: Any,
) -> None:
    """
    Emit one event with ``fields`` attached as LogRecord attributes.
    - Reserved LogRecord names are dropped instead of clobbering the record
    - Transport failures and 5xx statuses log at WARNING unless ``level`` is set
    """
    log = logger or logging.getLogger(EVENT_LOGGER)
    extra = {k: v for k, v in fields.items() if k not in _RESERVED}
    extra["event"] = event
    if level is None:
        level = _level_for(fields.get("status"))
    log.log(level, event, extra=extra)


__all__ = ["EVENT_LOGGER", "elapsed_ms", "log_event"]
