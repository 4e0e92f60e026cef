"""High-level orchestration of the semantic index.

This module implements the IndexCoordinator, the entry point for all index
operations on one vault. It owns the store, the in-memory index, the
embedding client and the optional live watcher.

SERIALIZATION:
- _pipeline_lock: only ONE bulk pipeline run at a time
- watcher processing runs on its own single-worker executor; both paths go
  through the store's per-path transactions
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from pydantic import BaseModel, Field, ValidationError

from vaultgraph.config.constants import (
    GRAPH_DEPTH_MAX,
    GRAPH_MAX_PER_LEVEL_MAX,
    SIMILAR_LIMIT_MAX,
)
from vaultgraph.config.loader import get_index_paths, load_config
from vaultgraph.config.models import VaultGraphConfig
from vaultgraph.core.errors import ConfigError
from vaultgraph.index._internal.db import VectorStore
from vaultgraph.index._internal.indexing import (
    Embedder,
    EmbeddingClient,
    MemoryIndex,
    ProgressCallback,
    build_graph,
    find_similar,
    run_pipeline,
)
from vaultgraph.index.models import ConnectionNode, NoteResult, PipelineStats

if TYPE_CHECKING:
    from vaultgraph.daemon.watcher import LiveWatcher, UpdateCallback

log = structlog.get_logger(__name__)


# ============================================================================
# Request validation
# ============================================================================


class SimilarRequest(BaseModel):
    path: str = Field(min_length=1)
    limit: int = Field(ge=1, le=SIMILAR_LIMIT_MAX)
    threshold: float = Field(ge=0.0, le=1.0)


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    limit: int = Field(ge=1, le=SIMILAR_LIMIT_MAX)
    threshold: float = Field(ge=0.0, le=1.0)


class GraphRequest(BaseModel):
    path: str = Field(min_length=1)
    depth: int = Field(ge=1, le=GRAPH_DEPTH_MAX)
    max_per_level: int = Field(ge=1, le=GRAPH_MAX_PER_LEVEL_MAX)
    threshold: float = Field(ge=0.0, le=1.0)


_RequestT = TypeVar("_RequestT", bound=BaseModel)


def _validate_request(model: type[_RequestT], **values: Any) -> _RequestT:
    try:
        return model(**values)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e


# ============================================================================
# Results
# ============================================================================


@dataclass
class InitResult:
    """Result of coordinator initialization."""

    documents: int
    blocks: int
    pipeline: PipelineStats
    watching: bool


@dataclass
class IndexStatus:
    """Snapshot of store, index, watcher and embedding-service state."""

    vault_root: str
    db_path: str
    documents: int
    blocks: int
    index_loaded: bool
    indexed_in_memory: int
    watching: bool
    model: str
    embedding_url: str
    embedding_reachable: bool | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "vault_root": self.vault_root,
            "db_path": self.db_path,
            "documents": self.documents,
            "blocks": self.blocks,
            "index_loaded": self.index_loaded,
            "indexed_in_memory": self.indexed_in_memory,
            "watching": self.watching,
            "model": self.model,
            "embedding_url": self.embedding_url,
            "embedding_reachable": self.embedding_reachable,
        }


# ============================================================================
# Coordinator
# ============================================================================


class IndexCoordinator:
    """
    Owns every component for one vault.

    Usage::

        coordinator = IndexCoordinator(vault_root)
        await coordinator.initialize()

        results = coordinator.find_similar("notes/a.md")
        graph = coordinator.build_graph("notes/a.md", depth=2)

        await coordinator.close()
    """

    def __init__(
        self,
        vault_root: Path,
        config: VaultGraphConfig | None = None,
        *,
        embedder: Embedder | None = None,
    ) -> None:
        self.vault_root = vault_root.resolve()
        self.config = config or load_config(self.vault_root)
        _, self.db_path = get_index_paths(self.vault_root, self.config)

        self.index = MemoryIndex()
        self._embedder = embedder
        self._owns_embedder = embedder is None
        self._store: VectorStore | None = None
        self._watcher: LiveWatcher | None = None
        self._pipeline_lock = threading.Lock()

    # =========================================================================
    # Components
    # =========================================================================

    @property
    def store(self) -> VectorStore:
        if self._store is None:
            self._store = VectorStore(self.db_path, self.config.database)
        return self._store

    @property
    def embedder(self) -> Embedder:
        if self._embedder is None:
            self._embedder = EmbeddingClient.from_config(self.config.embedding)
        return self._embedder

    @property
    def watcher(self) -> LiveWatcher | None:
        return self._watcher

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def initialize(
        self,
        *,
        force_reindex: bool = False,
        watch: bool | None = None,
        on_progress: ProgressCallback | None = None,
        on_update: UpdateCallback | None = None,
    ) -> InitResult:
        """
        Bring the vault to a queryable state.

        Flow:
        1. Open the store (creates the directory and schema)
        2. Run the pipeline: an incremental scan picks up edits made while no
           watcher was running; force_reindex re-embeds every file
        3. Load the in-memory index
        4. Start the live watcher (config.watcher.enabled unless ``watch`` is given)
        """
        store = self.store
        if store.count_documents() == 0:
            log.info("store_empty", db_path=str(self.db_path))

        stats = await asyncio.to_thread(self.reindex, full=force_reindex, on_progress=on_progress)

        if watch is None:
            watch = self.config.watcher.enabled
        if watch and self._watcher is None:
            from vaultgraph.daemon.watcher import start_watcher

            self._watcher = await start_watcher(
                self.vault_root,
                store,
                self.embedder,
                self.config,
                on_update=on_update,
                index=self.index,
            )

        result = InitResult(
            documents=store.count_documents(),
            blocks=store.count_blocks(),
            pipeline=stats,
            watching=self._watcher is not None,
        )
        log.info(
            "coordinator_initialized",
            vault_root=str(self.vault_root),
            documents=result.documents,
            watching=result.watching,
        )
        return result

    async def close(self) -> None:
        """Stop the watcher and release the store and embedding client."""
        if self._watcher is not None:
            await self._watcher.stop()
            self._watcher = None
        if self._store is not None:
            self._store.close()
            self._store = None
        if self._owns_embedder and isinstance(self._embedder, EmbeddingClient):
            self._embedder.close()
            self._embedder = None

    # =========================================================================
    # Indexing
    # =========================================================================

    def reindex(
        self, *, full: bool = False, on_progress: ProgressCallback | None = None
    ) -> PipelineStats:
        """Run the pipeline and reload the in-memory index.

        Raises:
            ScanError: If the vault cannot be fully scanned.
        """
        with self._pipeline_lock:
            stats = run_pipeline(
                self.vault_root,
                self.store,
                self.embedder,
                batch_size=self.config.embedding.batch_size,
                extensions=self.config.index.extensions,
                excluded_dirs=self.config.index.excluded_dirs,
                on_progress=on_progress,
                full=full,
            )
            self.index.load(self.store)
        return stats

    def _ensure_loaded(self) -> MemoryIndex:
        if not self.index.is_loaded:
            self.index.load(self.store)
        return self.index

    # =========================================================================
    # Queries
    # =========================================================================

    def find_similar(
        self, path: str, limit: int | None = None, threshold: float | None = None
    ) -> list[NoteResult]:
        """Documents most similar to an indexed document.

        Raises:
            ConfigError: If a parameter is out of range.
            QueryError: If ``path`` has no stored vector.
        """
        limits = self.config.limits
        req = _validate_request(
            SimilarRequest,
            path=path,
            limit=limits.similar_limit if limit is None else limit,
            threshold=limits.similar_threshold if threshold is None else threshold,
        )
        return find_similar(self._ensure_loaded(), req.path, req.limit, req.threshold)

    def build_graph(
        self,
        path: str,
        depth: int | None = None,
        max_per_level: int | None = None,
        threshold: float | None = None,
    ) -> ConnectionNode | None:
        """Connection graph rooted at ``path``; None if it has no stored vector."""
        limits = self.config.limits
        req = _validate_request(
            GraphRequest,
            path=path,
            depth=limits.graph_depth if depth is None else depth,
            max_per_level=limits.graph_max_per_level if max_per_level is None else max_per_level,
            threshold=limits.graph_threshold if threshold is None else threshold,
        )
        return build_graph(
            self._ensure_loaded(), req.path, req.depth, req.max_per_level, req.threshold
        )

    def search(
        self, query: str, limit: int | None = None, threshold: float | None = None
    ) -> list[NoteResult]:
        """Documents most similar to a free-text query.

        Raises:
            EmbeddingError: If the query cannot be embedded.
        """
        limits = self.config.limits
        req = _validate_request(
            SearchRequest,
            query=query,
            limit=limits.search_limit if limit is None else limit,
            threshold=limits.search_threshold if threshold is None else threshold,
        )
        index = self._ensure_loaded()
        vector = self.embedder.embed([req.query])[0]
        return index.find_nearest(vector, limit=req.limit, threshold=req.threshold)

    def status(self, *, check_embedding: bool = True) -> IndexStatus:
        reachable: bool | None = None
        if check_embedding:
            check = getattr(self.embedder, "check_health", None)
            if callable(check):
                reachable = bool(check())

        return IndexStatus(
            vault_root=str(self.vault_root),
            db_path=str(self.db_path),
            documents=self.store.count_documents(),
            blocks=self.store.count_blocks(),
            index_loaded=self.index.is_loaded,
            indexed_in_memory=len(self.index),
            watching=self._watcher is not None and self._watcher.is_running,
            model=self.embedder.model,
            embedding_url=self.config.embedding.url,
            embedding_reachable=reachable,
        )
