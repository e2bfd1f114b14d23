"""Closed error taxonomy for the tfe_client pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    UNAUTHORIZED = "unauthorized"
    CONFLICT = "conflict"
    SERVER_ERROR = "server_error"
    TRANSPORT = "transport"


class TFEClientError(Exception):
    """
    Base error for client failures.

    Callers branch on ``kind`` rather than on the concrete class so that
    wrappers in resource modules can add context without losing the category.
    """

    kind: ErrorKind = ErrorKind.TRANSPORT

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        method: Optional[str] = None,
        url: Optional[str] = None,
        field: Optional[str] = None,
        response_json: Optional[Dict[str, Any]] = None,
        response_text: Optional[str] = None,
    ):
        if status_code is not None and method and url:
            full = f"{status_code} {method} {url}: {message}"
        else:
            full = message
        super().__init__(full)
        self.message = message
        self.status_code = status_code
        self.method = method
        self.url = url
        self.field = field
        self.response_json = response_json
        self.response_text = response_text


class TFEInvalidInputError(TFEClientError):
    """Malformed identifiers or options (local), or a remote 400/422."""

    kind = ErrorKind.INVALID_INPUT


class TFENotFoundError(TFEClientError):
    kind = ErrorKind.NOT_FOUND


class TFEUnauthorizedError(TFEClientError):
    kind = ErrorKind.UNAUTHORIZED


class TFEConflictError(TFEClientError):
    kind = ErrorKind.CONFLICT


class TFEServerError(TFEClientError):
    kind = ErrorKind.SERVER_ERROR


class TFERateLimitError(TFEServerError):
    """HTTP 429 once the retry budget is spent."""


class TFEParseError(TFEServerError):
    """A 2xx response whose body could not be decoded.

    ``response_text`` keeps the raw body.
    """


class TFETransportError(TFEClientError):
    kind = ErrorKind.TRANSPORT


class TFETimeoutError(TFETransportError):
    pass


class TFECancelledError(TFETransportError):
    pass


_STATUS_ERRORS = {
    401: TFEUnauthorizedError,
    403: TFEUnauthorizedError,
    404: TFENotFoundError,
    409: TFEConflictError,
    429: TFERateLimitError,
}


def error_class_for_status(status_code: int) -> type[TFEClientError]:
    """Map a non-2xx HTTP status onto the taxonomy."""
    if status_code in _STATUS_ERRORS:
        return _STATUS_ERRORS[status_code]
    if 400 <= status_code < 500:
        return TFEInvalidInputError
    return TFEServerError


__all__ = [
    "ErrorKind",
    "TFEClientError",
    "TFEInvalidInputError",
    "TFENotFoundError",
    "TFEUnauthorizedError",
    "TFEConflictError",
    "TFEServerError",
    "TFERateLimitError",
    "TFEParseError",
    "TFETransportError",
    "TFETimeoutError",
    "TFECancelledError",
    "error_class_for_status",
]
