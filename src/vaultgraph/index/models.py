"""SQLModel table definitions and result types for the semantic index.

Single source of truth for the store schema:

- ``documents``: one row per indexed file, keyed by POSIX relative path.
- ``blocks``: heading-delimited sections of a document, unique per
  ``(source_path, block_key)``; deleted with their document (ON DELETE CASCADE).
- ``empty_files``: files with no text after frontmatter, tracked by mtime only
  so a rescan classifies them as unchanged. A path is never in both
  ``documents`` and ``empty_files``.

Vector columns hold the fixed-width little-endian float32 encoding from
``vaultgraph.index._internal.db.codec``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np
import numpy.typing as npt
from sqlalchemy import Column, ForeignKey, LargeBinary, String, UniqueConstraint
from sqlmodel import Field, SQLModel

Vector = npt.NDArray[np.float32]


# ============================================================================
# TABLES
# ============================================================================


class Document(SQLModel, table=True):
    """Indexed document with its full-text embedding."""

    __tablename__ = "documents"

    path: str = Field(primary_key=True)
    content_hash: str
    mtime: int = Field(index=True)  # integer milliseconds
    embedding: bytes = Field(sa_column=Column(LargeBinary, nullable=False))
    model: str
    updated_at: int  # epoch milliseconds


class Block(SQLModel, table=True):
    """Heading-delimited section of a document."""

    __tablename__ = "blocks"
    __table_args__ = (UniqueConstraint("source_path", "block_key"),)

    id: int | None = Field(default=None, primary_key=True)
    source_path: str = Field(
        sa_column=Column(
            String,
            ForeignKey("documents.path", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    block_key: str
    embedding: bytes = Field(sa_column=Column(LargeBinary, nullable=False))
    line_start: int
    line_end: int


class EmptyFile(SQLModel, table=True):
    """Vault file seen with no content; carries no vectors."""

    __tablename__ = "empty_files"

    path: str = Field(primary_key=True)
    mtime: int  # integer milliseconds


# ============================================================================
# DECODED RECORDS
# ============================================================================


@dataclass(frozen=True)
class DocumentRecord:
    """A document row with its vector decoded."""

    path: str
    content_hash: str
    mtime: int
    embedding: Vector
    model: str
    updated_at: int


@dataclass(frozen=True)
class BlockRecord:
    """A block row with its vector decoded. Line numbers are 1-indexed, inclusive."""

    block_key: str
    embedding: Vector
    line_start: int
    line_end: int


# ============================================================================
# PARSING
# ============================================================================


@dataclass(frozen=True)
class ParsedBlock:
    key: str
    text: str
    line_start: int
    line_end: int


@dataclass(frozen=True)
class ParsedDocument:
    """Canonical full text (frontmatter stripped), its hash, and its blocks."""

    full_text: str
    content_hash: str
    blocks: tuple[ParsedBlock, ...]


# ============================================================================
# SCANNING / PIPELINE
# ============================================================================


@dataclass
class ChangeSet:
    """Classification of every known path relative to persisted state."""

    new_files: list[str] = field(default_factory=list)
    modified_files: list[str] = field(default_factory=list)
    deleted_files: list[str] = field(default_factory=list)
    unchanged_files: list[str] = field(default_factory=list)

    @property
    def unchanged_count(self) -> int:
        return len(self.unchanged_files)

    @property
    def to_process(self) -> list[str]:
        """New then modified paths, in that order."""
        return [*self.new_files, *self.modified_files]

    @property
    def has_changes(self) -> bool:
        return bool(self.new_files or self.modified_files or self.deleted_files)


@dataclass
class PipelineStats:
    """Aggregate counts from one pipeline run."""

    processed: int = 0
    failed: int = 0
    deleted: int = 0
    skipped: int = 0
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "failed": self.failed,
            "deleted": self.deleted,
            "skipped": self.skipped,
            "duration_seconds": round(self.duration_seconds, 3),
        }


# ============================================================================
# QUERY RESULTS
# ============================================================================


@dataclass(frozen=True)
class NoteResult:
    """Nearest-neighbour hit: a document path, its score, and its block keys."""

    path: str
    similarity: float
    blocks: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "similarity": self.similarity, "blocks": list(self.blocks)}


@dataclass(frozen=True)
class ConnectionNode:
    """Node of a connection graph.

    ``similarity`` is measured from the parent (1.0 for the root).
    ``connections`` is None for a leaf, never an empty tuple.
    """

    path: str
    similarity: float
    level: int
    connections: tuple["ConnectionNode", ...] | None = None

    def iter_paths(self) -> list[str]:
        """All paths in the subtree, depth-first, root first."""
        paths = [self.path]
        for child in self.connections or ():
            paths.extend(child.iter_paths())
        return paths

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "path": self.path,
            "similarity": self.similarity,
            "level": self.level,
        }
        if self.connections:
            data["connections"] = [c.to_dict() for c in self.connections]
        return data


# ============================================================================
# WATCHER
# ============================================================================


class WatchEventKind(str, Enum):
    ADD = "add"
    CHANGE = "change"
    DELETE = "delete"


@dataclass(frozen=True)
class WatchEvent:
    kind: WatchEventKind
    path: str
