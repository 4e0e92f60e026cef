"""Core module exports."""

from vaultgraph.core.errors import (
    ConfigError,
    EmbeddingError,
    ErrorCode,
    InternalError,
    QueryError,
    ScanError,
    StoreError,
    VaultGraphError,
)
from vaultgraph.core.logging import configure_logging, get_logger
from vaultgraph.core.progress import file_progress, spinner, status

__all__ = [
    # Errors
    "VaultGraphError",
    "ErrorCode",
    "ConfigError",
    "QueryError",
    "ScanError",
    "StoreError",
    "EmbeddingError",
    "InternalError",
    # Logging
    "configure_logging",
    "get_logger",
    # Progress
    "file_progress",
    "spinner",
    "status",
]
