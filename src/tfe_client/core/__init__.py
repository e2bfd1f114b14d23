"""Core request pipeline for tfe_client (resource-agnostic)."""

from .client import (
    DEFAULT_ADDRESS,
    DEFAULT_BASE_PATH,
    DEFAULT_REGISTRY_BASE_PATH,
    APIMetadata,
    CancelSignal,
    RetryConfig,
    TFEClient,
)
from .config import EnvConfig, create_client_from_env, load_env_config
from .errors import (
    ErrorKind,
    TFECancelledError,
    TFEClientError,
    TFEConflictError,
    TFEInvalidInputError,
    TFENotFoundError,
    TFEParseError,
    TFERateLimitError,
    TFEServerError,
    TFETimeoutError,
    TFETransportError,
    TFEUnauthorizedError,
)
from .jsonapi import (
    MEDIA_TYPE,
    ErrorObject,
    JSONAPIModel,
    Pagination,
    ResourceList,
    WireModel,
    deserialize_many,
    deserialize_one,
    serialize,
)
from .logging import setup_logging
from .operation import ListOptions, Operation
from .ratelimit import RateLimiter
from .validation import valid_string, valid_string_id

__all__ = [
    # Client
    "TFEClient",
    "RetryConfig",
    "CancelSignal",
    "APIMetadata",
    "RateLimiter",
    "DEFAULT_ADDRESS",
    "DEFAULT_BASE_PATH",
    "DEFAULT_REGISTRY_BASE_PATH",
    # Operation
    "Operation",
    "ListOptions",
    # Errors
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
    # JSON:API
    "MEDIA_TYPE",
    "JSONAPIModel",
    "WireModel",
    "Pagination",
    "ResourceList",
    "ErrorObject",
    "serialize",
    "deserialize_one",
    "deserialize_many",
    # Config / logging
    "EnvConfig",
    "load_env_config",
    "create_client_from_env",
    "setup_logging",
    # Validation
    "valid_string",
    "valid_string_id",
]
