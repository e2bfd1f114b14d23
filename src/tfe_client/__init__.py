"""tfe_client package exports."""

from .core import (
    APIMetadata,
    DEFAULT_ADDRESS,
    DEFAULT_BASE_PATH,
    ErrorKind,
    ListOptions,
    Operation,
    Pagination,
    RateLimiter,
    ResourceList,
    RetryConfig,
    TFECancelledError,
    TFEClient,
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
    create_client_from_env,
    load_env_config,
    setup_logging,
)
from .resources import (
    configuration_versions,
    meta,
    organizations,
    runs,
    state_versions,
    workspaces,
)

__all__ = [
    # Client
    "TFEClient",
    "RetryConfig",
    "RateLimiter",
    "APIMetadata",
    "Operation",
    "ListOptions",
    "Pagination",
    "ResourceList",
    "DEFAULT_ADDRESS",
    "DEFAULT_BASE_PATH",
    # Exceptions
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
    # Config / logging
    "create_client_from_env",
    "load_env_config",
    "setup_logging",
    # Resources
    "organizations",
    "workspaces",
    "runs",
    "configuration_versions",
    "state_versions",
    "meta",
]
