"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (VAULTGRAPH__SECTION__KEY)
3. Vault YAML (<vault>/.vaultgraph/config.yaml)
4. Global YAML (~/.config/vaultgraph/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    VAULTGRAPH__<SECTION>__<KEY>=<VALUE>

Examples:
    VAULTGRAPH__LOGGING__LEVEL=DEBUG
    VAULTGRAPH__EMBEDDING__URL=http://gpu-box:11434
    VAULTGRAPH__EMBEDDING__BATCH_SIZE=64
    VAULTGRAPH__WATCHER__DEBOUNCE_SEC=1.0
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from vaultgraph.config.constants import (
    DEFAULT_EXCLUDED_DIRS,
    DEFAULT_EXTENSIONS,
    GRAPH_DEPTH_MAX,
    GRAPH_MAX_PER_LEVEL_MAX,
    SIMILAR_LIMIT_MAX,
)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        VAULTGRAPH__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        VAULTGRAPH__LOGGING__VAULT_LOG: Write the per-vault log file (true/false)
        VAULTGRAPH__LOGGING__VAULT_LOG_LEVEL: Level for the per-vault log file
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every embedded file.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])
    vault_log: bool = Field(
        default=True,
        description="Also write JSON logs to vaultgraph.log in the vault state directory.",
    )
    vault_log_level: LogLevel = Field(
        default="INFO",
        description="Level for the per-vault log file, independent of the root level.",
    )


class EmbeddingConfig(BaseModel):
    """Embedding-model service configuration.

    Env vars:
        VAULTGRAPH__EMBEDDING__URL: Base URL of the embedding service
        VAULTGRAPH__EMBEDDING__MODEL: Model identifier stored with every vector
        VAULTGRAPH__EMBEDDING__BATCH_SIZE: Max texts per embedding call
        VAULTGRAPH__EMBEDDING__TIMEOUT_SEC: Per-call timeout
    """

    url: str = Field(
        default="http://localhost:11434",
        description="Base URL of the embedding service (POST <url>/api/embed).",
    )
    model: str = Field(
        default="nomic-embed-text",
        description="Embedding model identifier. Changing it requires a full re-index.",
    )
    batch_size: int = Field(
        default=32,
        ge=1,
        description="Maximum number of texts per embedding call. "
        "TRADEOFF: Larger batches are faster but one failure fails more files.",
    )
    timeout_sec: float = Field(
        default=60.0,
        gt=0,
        description="Per-call timeout. A timed-out call fails its batch, never the run.",
    )

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class IndexConfig(BaseModel):
    """Index configuration.

    Env vars:
        VAULTGRAPH__INDEX__INDEX_PATH: Override index storage location
    """

    index_path: str | None = Field(
        default=None,
        description="Directory holding embeddings.db. Default: <vault>/.vaultgraph",
    )
    extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXTENSIONS),
        description="File extensions eligible for indexing.",
    )
    excluded_dirs: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_DIRS),
        description="Directory names never descended into. Hidden entries are always skipped.",
    )

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        normalized = [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]
        if not normalized:
            raise ValueError("At least one extension is required")
        return normalized


class WatcherConfig(BaseModel):
    """Live watcher configuration.

    Env vars:
        VAULTGRAPH__WATCHER__ENABLED: Start the watcher on initialize
        VAULTGRAPH__WATCHER__DEBOUNCE_SEC: Quiet period before processing changes
    """

    enabled: bool = Field(default=True, description="Watch the vault for live updates.")
    debounce_sec: float = Field(
        default=0.5,
        gt=0,
        description="Debounce window. Every event restarts the timer.",
    )


class LimitsConfig(BaseModel):
    """Query defaults.

    These are DEFAULT values; callers may override per request up to the
    hard maximums in constants.py.
    """

    similar_limit: int = Field(default=10, ge=1, le=SIMILAR_LIMIT_MAX)
    similar_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    search_limit: int = Field(default=10, ge=1, le=SIMILAR_LIMIT_MAX)
    search_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    graph_depth: int = Field(default=2, ge=1, le=GRAPH_DEPTH_MAX)
    graph_max_per_level: int = Field(default=5, ge=1, le=GRAPH_MAX_PER_LEVEL_MAX)
    graph_threshold: float = Field(default=0.6, ge=0.0, le=1.0)


class DatabaseConfig(BaseModel):
    """Database connection configuration.

    Env vars:
        VAULTGRAPH__DATABASE__BUSY_TIMEOUT_MS: SQLite busy timeout
        VAULTGRAPH__DATABASE__MAX_RETRIES: Max retry attempts for locked DB
    """

    busy_timeout_ms: int = Field(
        default=30000,
        description="SQLite busy timeout (ms). The watcher and a bulk run share the file.",
    )
    max_retries: int = Field(default=3, ge=0)
    retry_base_delay_sec: float = Field(default=0.1, gt=0)


class VaultGraphConfig(BaseModel):
    """Root configuration for vaultgraph."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    watcher: WatcherConfig = Field(default_factory=WatcherConfig)
    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
