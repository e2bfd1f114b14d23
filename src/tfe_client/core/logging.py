import logging
import os
from typing import Any, List, Optional, Tuple

LOG_EXTRA_FIELDS = (
    "method",
    "endpoint",
    "status",
    "attempt",
    "duration_ms",
    "error_type",
)
LOG_LEVEL_ENV = "TFE_LOG_LEVEL"
_BEARER_PREFIX = "Bearer "


class LogfmtFormatter(logging.Formatter):
    """
    Render pipeline events as logfmt, for example
    ``level=info logger=tfe_client.client event=tfe_call method=GET status=200``.
    Missing extras are skipped and bearer credentials are masked.
    """

    def format(self, record: logging.LogRecord) -> str:
        pairs: List[Tuple[str, Any]] = [
            ("level", record.levelname.lower()),
            ("logger", record.name),
        ]

        message = record.getMessage()
        if message:
            pairs.append(("event", message))

        for key in LOG_EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                pairs.append((key, value))

        if record.exc_info and record.exc_info[0] is not None:
            pairs.append(("exc_type", record.exc_info[0].__name__))

        return " ".join(f"{key}={_render(value)}" for key, value in pairs)


def _render(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    text = str(value)
    if text.startswith(_BEARER_PREFIX):
        text = _BEARER_PREFIX + "***"
    if not text or any(c in text for c in ' ="'):
        text = '"' + text.replace('"', '\\"') + '"'
    return text


def setup_logging(
    level: Optional[str] = None, *, logger_name: str = "tfe_client"
) -> logging.Logger:
    """
    Attach a logfmt handler to the package logger and return it.
    ``level`` defaults to $TFE_LOG_LEVEL, then INFO. Repeated calls replace
    the handler rather than stacking another one.
    """
    log = logging.getLogger(logger_name)
    for handler in list(log.handlers):
        if isinstance(handler.formatter, LogfmtFormatter):
            log.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(LogfmtFormatter())
    log.addHandler(handler)

    name = (level or os.getenv(LOG_LEVEL_ENV) or "INFO").upper()
    log.setLevel(getattr(logging, name, logging.INFO))
    return log


__all__ = ["setup_logging", "LogfmtFormatter", "LOG_EXTRA_FIELDS", "LOG_LEVEL_ENV"]
