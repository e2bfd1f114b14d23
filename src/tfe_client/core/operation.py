"""Operation descriptor plus URL, path and query helpers for the pipeline."""

from __future__ import annotations

import string
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Type, Union
from urllib.parse import quote

from pydantic import BaseModel

from .errors import TFEInvalidInputError
from .validation import ensure_string_id

QueryValue = Union[str, int, bool, Sequence[str]]

METHODS = frozenset({"GET", "POST", "PATCH", "PUT", "DELETE"})
_BODYLESS = frozenset({"GET", "DELETE"})
INCLUDE_PARAM = "include"
PAGE_PARAMS = ("page[number]", "page[size]")


@dataclass(frozen=True)
class ListOptions:
    """Pagination request. Zero means unspecified and is never sent."""

    page_number: int = 0
    page_size: int = 0

    def __post_init__(self) -> None:
        if self.page_number < 0:
            raise TFEInvalidInputError(
                "page_number must not be negative", field="page_number"
            )
        if self.page_size < 0:
            raise TFEInvalidInputError(
                "page_size must not be negative", field="page_size"
            )

    def query(self) -> List[Tuple[str, str]]:
        params: List[Tuple[str, str]] = []
        if self.page_number:
            params.append(("page[number]", str(self.page_number)))
        if self.page_size:
            params.append(("page[size]", str(self.page_size)))
        return params


@dataclass(frozen=True)
class Operation:
    """
    One logical remote call.

    - ``path`` is relative to the configured API base (``"workspaces/{id}"``)
      or an absolute URL taken from a response's links.
    - ``path_params`` are validated as identifiers and percent-escaped into
      the template.
    - ``input`` is JSON:API-encoded when it is a JSONAPIModel (or list of
      them), plain JSON for any other pydantic model.
    - ``body`` is sent verbatim; it excludes ``input``.
    - ``registry`` resolves a relative ``path`` against the registry base path
      instead of the API base path.
    """

    method: str
    path: str
    path_params: Mapping[str, Optional[str]] = field(default_factory=dict)
    query: Mapping[str, QueryValue] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    input: Any = None
    output: Optional[Type[BaseModel]] = None
    many: bool = False
    list_options: Optional[ListOptions] = None
    include: Sequence[str] = ()
    body: Any = None
    raw_response: bool = False
    retry_unsafe: bool = False
    registry: bool = False

    def __post_init__(self) -> None:
        method = self.method.upper()
        if method not in METHODS:
            raise TFEInvalidInputError(
                f"unsupported method {self.method!r}", field="method"
            )
        object.__setattr__(self, "method", method)

        if not self.path:
            raise TFEInvalidInputError("path must not be empty", field="path")
        if self.input is not None and method in _BODYLESS:
            raise TFEInvalidInputError(
                f"{method} requests do not carry an input payload", field="input"
            )
        if self.input is not None and self.body is not None:
            raise TFEInvalidInputError(
                "input and body are mutually exclusive", field="body"
            )

    @property
    def idempotent(self) -> bool:
        return self.method == "GET"

    def render_path(self) -> str:
        """Substitute validated, percent-escaped identifiers into ``path``."""
        values = {}
        for name, value in self.path_params.items():
            values[name] = quote(ensure_string_id(value, name), safe="")

        try:
            rendered = self.path.format_map(values)
        except KeyError as exc:
            missing = exc.args[0]
            raise TFEInvalidInputError(
                f"missing path parameter {missing!r}", field=str(missing)
            ) from exc

        if not rendered.strip("/"):
            raise TFEInvalidInputError("path must not be empty", field="path")
        return rendered

    def query_params(self) -> List[Tuple[str, str]]:
        merged = dict(self.query)
        if self.include:
            merged[INCLUDE_PARAM] = list(self.include)

        # Zero means unspecified wherever the page keys come from; a non-zero
        # list_options value replaces one given in ``query``.
        pages = {}
        for key in PAGE_PARAMS:
            value = merged.pop(key, None)
            if value not in (None, 0, "0", ""):
                pages[key] = str(value)
        if self.list_options is not None:
            pages.update(self.list_options.query())

        params = encode_query(merged)
        params.extend(pages.items())
        params.sort(key=lambda kv: kv[0])
        return params


def _comma_joined(key: str) -> bool:
    return key == INCLUDE_PARAM or key.startswith("filter[")


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_query(query: Mapping[str, Any]) -> List[Tuple[str, str]]:
    """
    Flatten a query mapping into sorted key/value pairs.

    Lists repeat the key, except ``include`` and ``filter[...]`` keys whose
    values are joined with commas. ``None`` values are dropped.
    Example: {"include": ["a", "b"], "q": "x"} -> [("include", "a,b"), ("q", "x")]
    """
    pairs: List[Tuple[str, str]] = []
    for key in sorted(query):
        value = query[key]
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            values = [_stringify(v) for v in value if v is not None]
            if not values:
                continue
            if len(values) > 1 and _comma_joined(key):
                values = [",".join(values)]
            pairs.extend((key, v) for v in values)
        else:
            pairs.append((key, _stringify(value)))
    return pairs


_HTTP_SCHEMES = ("http://", "https://")
_SAFE_PATH_CHARS = set(string.ascii_letters + string.digits + "-._~/%:@!$&'()*+,;=")


def is_absolute(path: str) -> bool:
    return path.startswith(_HTTP_SCHEMES)


def resolve_url(address: str, base_path: str, path: str) -> str:
    """
    Resolve ``path`` to a full URL.

    - "https://..." is used as-is (pre-signed upload/download links)
    - "/api/v2/..." is resolved against the address (links returned by the API)
    - anything else is relative to the API base path
    """
    if is_absolute(path):
        return path
    if any(c not in _SAFE_PATH_CHARS for c in path):
        raise TFEInvalidInputError(
            f"path contains unsafe characters: {path!r}", field="path"
        )
    address = address.rstrip("/")
    if path.startswith("/"):
        return address + path
    prefix = base_path.strip("/")
    if not prefix:
        return f"{address}/{path}"
    return f"{address}/{prefix}/{path}"


__all__ = [
    "ListOptions",
    "Operation",
    "QueryValue",
    "METHODS",
    "INCLUDE_PARAM",
    "PAGE_PARAMS",
    "encode_query",
    "resolve_url",
    "is_absolute",
]
