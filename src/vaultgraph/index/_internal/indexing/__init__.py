"""Indexing layers: embedding client, pipeline, in-memory index, graph."""

from vaultgraph.index._internal.indexing.embedding import Embedder, EmbeddingClient, EmbedResponse
from vaultgraph.index._internal.indexing.graph import build_graph
from vaultgraph.index._internal.indexing.memory import (
    BlockEntry,
    MemoryIndex,
    SourceEntry,
    block_id,
    cosine_similarity,
    find_similar,
)
from vaultgraph.index._internal.indexing.pipeline import (
    DEFAULT_BATCH_SIZE,
    ProgressCallback,
    index_file,
    process_changes,
    read_and_parse,
    run_pipeline,
)

__all__ = [
    # Embedding service
    "Embedder",
    "EmbeddingClient",
    "EmbedResponse",
    # Pipeline
    "run_pipeline",
    "process_changes",
    "index_file",
    "read_and_parse",
    "ProgressCallback",
    "DEFAULT_BATCH_SIZE",
    # In-memory index
    "MemoryIndex",
    "SourceEntry",
    "BlockEntry",
    "block_id",
    "cosine_similarity",
    "find_similar",
    # Graph
    "build_graph",
]
