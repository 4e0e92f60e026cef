"""vaultgraph error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 30xx: Query (in-memory index preconditions)
- 31xx: Scan
- 32xx: Store
- 4xxx: Embedding service
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Query (30xx)
    INDEX_NOT_LOADED = 3001
    NOTE_NOT_FOUND = 3002
    DIMENSION_MISMATCH = 3003

    # Scan (31xx)
    SCAN_FAILED = 3101

    # Store (32xx)
    STORE_CORRUPT_VECTOR = 3201

    # Embedding service (4xxx)
    EMBED_REQUEST_FAILED = 4001
    EMBED_INVALID_RESPONSE = 4002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class VaultGraphError(Exception):
    """Base error with structured context for callers and CLI output."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'NOTE_NOT_FOUND')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(VaultGraphError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )



class QueryError(VaultGraphError):
    """Precondition failures when querying the in-memory index."""

    @classmethod
    def index_not_loaded(cls) -> "QueryError":
        return cls(
            code=ErrorCode.INDEX_NOT_LOADED,
            message="Embedding index not loaded. Call load() first.",
        )

    @classmethod
    def note_not_found(cls, path: str) -> "QueryError":
        return cls(
            code=ErrorCode.NOTE_NOT_FOUND,
            message=f"Note not found or has no embedding: {path}",
            details={"path": path},
        )

    @classmethod
    def dimension_mismatch(cls, expected: int, actual: int) -> "QueryError":
        return cls(
            code=ErrorCode.DIMENSION_MISMATCH,
            message=f"Vector dimension mismatch: {expected} vs {actual}",
            details={"expected": expected, "actual": actual},
        )


class ScanError(VaultGraphError):
    """Document tree could not be fully enumerated."""

    @classmethod
    def scan_failed(cls, directory: str, reason: str) -> "ScanError":
        return cls(
            code=ErrorCode.SCAN_FAILED,
            message=f"Failed to scan directory {directory}: {reason}",
            details={"directory": directory, "reason": reason},
        )


class StoreError(VaultGraphError):
    """Persistent vector store errors."""

    @classmethod
    def corrupt_vector(cls, length: int) -> "StoreError":
        return cls(
            code=ErrorCode.STORE_CORRUPT_VECTOR,
            message=f"Vector buffer length {length} is not a multiple of 4",
            details={"length": length},
        )


class EmbeddingError(VaultGraphError):
    """Embedding-model service failures."""

    @classmethod
    def request_failed(cls, url: str, reason: str, status: int | None = None) -> "EmbeddingError":
        return cls(
            code=ErrorCode.EMBED_REQUEST_FAILED,
            message=f"Embedding request to {url} failed: {reason}",
            retryable=True,
            details={"url": url, "status": status, "reason": reason},
        )

    @classmethod
    def invalid_response(cls, reason: str, **details: Any) -> "EmbeddingError":
        return cls(
            code=ErrorCode.EMBED_INVALID_RESPONSE,
            message=f"Invalid embedding response: {reason}",
            details=details,
        )


class InternalError(VaultGraphError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
