"""Config module exports."""

from vaultgraph.config.loader import get_index_paths, load_config
from vaultgraph.config.models import (
    EmbeddingConfig,
    IndexConfig,
    LimitsConfig,
    LoggingConfig,
    VaultGraphConfig,
    WatcherConfig,
)

__all__ = [
    "load_config",
    "get_index_paths",
    "VaultGraphConfig",
    "EmbeddingConfig",
    "IndexConfig",
    "LimitsConfig",
    "LoggingConfig",
    "WatcherConfig",
]
