from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .client import (
    DEFAULT_ADDRESS,
    DEFAULT_BASE_PATH,
    DEFAULT_REGISTRY_BASE_PATH,
    TFEClient,
)

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class EnvConfig:
    address: str
    token: str
    base_path: str
    retry_server_errors: bool
    registry_base_path: str = DEFAULT_REGISTRY_BASE_PATH


def load_env_config(*, use_dotenv: bool = True) -> EnvConfig:
    """Load client settings from TFE_* environment variables (optional .env)."""
    if use_dotenv:
        load_dotenv()
    return EnvConfig(
        address=os.getenv("TFE_ADDRESS", "").strip() or DEFAULT_ADDRESS,
        token=os.getenv("TFE_TOKEN", "").strip(),
        base_path=os.getenv("TFE_BASE_PATH", "").strip() or DEFAULT_BASE_PATH,
        retry_server_errors=(
            os.getenv("TFE_RETRY_SERVER_ERRORS", "").strip().lower() in _TRUTHY
        ),
        registry_base_path=(
            os.getenv("TFE_REGISTRY_BASE_PATH", "").strip()
            or DEFAULT_REGISTRY_BASE_PATH
        ),
    )


def create_client_from_env(**kwargs) -> TFEClient:
    """Create a TFEClient from environment variables."""
    env = load_env_config()
    if not env.token:
        raise ValueError("Missing TFE_TOKEN in environment.")
    return TFEClient.from_env(**kwargs)


__all__ = ["EnvConfig", "load_env_config", "create_client_from_env"]
