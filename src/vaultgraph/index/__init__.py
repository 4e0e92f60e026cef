"""Index module - semantic vector index over a markdown vault.

This module provides:
- Content parsing into canonical text and heading blocks
- A SQLite vector store for document and block embeddings
- Change scanning and a batched embedding pipeline
- An in-memory index with cosine similarity search and connection graphs

Public API is in `vaultgraph.index.ops`:
- IndexCoordinator: High-level orchestration
- InitResult, IndexStatus: Result types

Internal implementations are in `vaultgraph.index._internal/`.
"""

from vaultgraph.index._internal.db import VectorStore
from vaultgraph.index._internal.indexing import (
    EmbeddingClient,
    MemoryIndex,
    build_graph,
    cosine_similarity,
    find_similar,
    run_pipeline,
)
from vaultgraph.index.models import (
    Block,
    BlockRecord,
    ChangeSet,
    ConnectionNode,
    Document,
    DocumentRecord,
    NoteResult,
    PipelineStats,
    WatchEvent,
    WatchEventKind,
)
from vaultgraph.index.ops import IndexCoordinator, IndexStatus, InitResult

__all__ = [
    # Public API (ops.py)
    "IndexCoordinator",
    "IndexStatus",
    "InitResult",
    # Components
    "VectorStore",
    "EmbeddingClient",
    "MemoryIndex",
    "run_pipeline",
    "find_similar",
    "build_graph",
    "cosine_similarity",
    # Models
    "Document",
    "Block",
    "DocumentRecord",
    "BlockRecord",
    "ChangeSet",
    "PipelineStats",
    "NoteResult",
    "ConnectionNode",
    "WatchEvent",
    "WatchEventKind",
]
