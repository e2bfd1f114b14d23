import re
from typing import Optional

from .errors import TFEInvalidInputError

# Typical string identifier: organization names, workspace names, resource IDs.
_STRING_ID_RE = re.compile(r"^[a-zA-Z0-9\-._]+$")


def valid_string(value: Optional[str]) -> bool:
    """True when the value is present and non-empty."""
    return value is not None and value != ""


def valid_string_id(value: Optional[str]) -> bool:
    """True when the value is present and looks like a string identifier."""
    return value is not None and bool(_STRING_ID_RE.match(value))


def ensure_string_id(value: Optional[str], field: str) -> str:
    """
    Return ``value`` unchanged or raise TFEInvalidInputError naming ``field``.
    Example: ensure_string_id("my org", "organization") -> raises
    """
    if not valid_string(value):
        raise TFEInvalidInputError(f"{field} is required", field=field)
    if not valid_string_id(value):
        raise TFEInvalidInputError(f"invalid value for {field}: {value!r}", field=field)
    return value  # type: ignore[return-value]


def ensure_string(value: Optional[str], field: str) -> str:
    if not valid_string(value):
        raise TFEInvalidInputError(f"{field} is required", field=field)
    return value  # type: ignore[return-value]


__all__ = ["valid_string", "valid_string_id", "ensure_string_id", "ensure_string"]
