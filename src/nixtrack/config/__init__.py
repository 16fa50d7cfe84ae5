"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_var, optional_int_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging
from .reconcile import ReconcileConfig, get_reconcile_config
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_storage_config,
)

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "ReconcileConfig",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_database_uri",
    "get_reconcile_config",
    "get_storage_config",
    "optional_env_var",
    "optional_int_env_var",
    "require_env_vars",
]
