"""In-memory vector index and cosine similarity search.

The index is an immutable snapshot derived from the store:

- ``sources``: path -> document vector and ordered block keys
- ``blocks``: ``"<path>#<block key>"`` -> block vector and owning path

Writers build a complete new snapshot and swap it in with one attribute
assignment, so readers never observe a partially updated index. Document
vectors are also stacked into a matrix so a nearest-neighbour query is one
matrix-vector product.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Protocol

import numpy as np
import structlog

from vaultgraph.core.errors import QueryError
from vaultgraph.index.models import BlockRecord, DocumentRecord, NoteResult, Vector

log = structlog.get_logger(__name__)


class _Loadable(Protocol):
    def load_all(self) -> Iterable[tuple[DocumentRecord, list[BlockRecord]]]: ...

    def load_paths(
        self, paths: Iterable[str]
    ) -> Mapping[str, tuple[DocumentRecord, list[BlockRecord]] | None]: ...


def cosine_similarity(a: Vector, b: Vector) -> float:
    """Dot product over the product of magnitudes; 0.0 if either magnitude is 0.

    Raises:
        QueryError: If the vectors differ in length.
    """
    if len(a) != len(b):
        raise QueryError.dimension_mismatch(len(a), len(b))
    a64 = np.asarray(a, dtype=np.float64)
    b64 = np.asarray(b, dtype=np.float64)
    denom = float(np.linalg.norm(a64) * np.linalg.norm(b64))
    if denom == 0.0:
        return 0.0
    return float(np.dot(a64, b64) / denom)


def block_id(path: str, block_key: str) -> str:
    return f"{path}#{block_key}"


@dataclass(frozen=True)
class SourceEntry:
    vector: Vector
    block_keys: tuple[str, ...]


@dataclass(frozen=True)
class BlockEntry:
    vector: Vector
    source_path: str


@dataclass(frozen=True)
class _Snapshot:
    sources: Mapping[str, SourceEntry]
    blocks: Mapping[str, BlockEntry]
    paths: tuple[str, ...] = ()
    matrix: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))
    norms: np.ndarray = field(default_factory=lambda: np.zeros(0))

    @property
    def dim(self) -> int | None:
        return self.matrix.shape[1] if self.paths else None


def _build_snapshot(entries: Mapping[str, tuple[DocumentRecord, list[BlockRecord]]]) -> _Snapshot:
    sources: dict[str, SourceEntry] = {}
    blocks: dict[str, BlockEntry] = {}
    dim: int | None = None

    # Sorted insertion gives a deterministic tie order for equal scores
    for path in sorted(entries):
        doc, doc_blocks = entries[path]
        if dim is None:
            dim = len(doc.embedding)
        elif len(doc.embedding) != dim:
            raise QueryError.dimension_mismatch(dim, len(doc.embedding))

        sources[path] = SourceEntry(
            vector=doc.embedding,
            block_keys=tuple(b.block_key for b in doc_blocks),
        )
        for b in doc_blocks:
            blocks[block_id(path, b.block_key)] = BlockEntry(vector=b.embedding, source_path=path)

    paths = tuple(sources)
    if paths:
        matrix = np.vstack([sources[p].vector for p in paths]).astype(np.float64)
        norms = np.linalg.norm(matrix, axis=1)
    else:
        matrix = np.zeros((0, 0))
        norms = np.zeros(0)

    return _Snapshot(
        sources=MappingProxyType(sources),
        blocks=MappingProxyType(blocks),
        paths=paths,
        matrix=matrix,
        norms=norms,
    )


class MemoryIndex:
    """Owned, swappable snapshot of every stored vector.

    Construct one per store; query functions take it as an argument.
    """

    def __init__(self) -> None:
        self._snapshot: _Snapshot | None = None
        self._entries: dict[str, tuple[DocumentRecord, list[BlockRecord]]] = {}
        self._write_lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    def _require(self) -> _Snapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise QueryError.index_not_loaded()
        return snapshot

    @property
    def sources(self) -> Mapping[str, SourceEntry]:
        return self._require().sources

    @property
    def blocks(self) -> Mapping[str, BlockEntry]:
        return self._require().blocks

    def __len__(self) -> int:
        return len(self._snapshot.paths) if self._snapshot else 0

    def load(self, store: _Loadable) -> None:
        """Rebuild the whole index from the store."""
        with self._write_lock:
            entries = {doc.path: (doc, blocks) for doc, blocks in store.load_all()}
            snapshot = _build_snapshot(entries)
            self._entries = entries
            self._snapshot = snapshot
        log.info("index_loaded", documents=len(snapshot.paths), blocks=len(snapshot.blocks))

    def refresh_paths(self, store: _Loadable, paths: Iterable[str]) -> None:
        """Re-read selected paths from the store and swap in a new snapshot.

        The result is identical to a full ``load()``.
        """
        with self._write_lock:
            if self._snapshot is None:
                raise QueryError.index_not_loaded()
            entries = dict(self._entries)
            for path, current in store.load_paths(paths).items():
                if current is None:
                    entries.pop(path, None)
                else:
                    entries[path] = current
            snapshot = _build_snapshot(entries)
            self._entries = entries
            self._snapshot = snapshot
        log.debug("index_refreshed", documents=len(snapshot.paths))

    def get_source_vector(self, path: str) -> Vector | None:
        entry = self._require().sources.get(path)
        return entry.vector if entry else None

    def find_nearest(
        self,
        query: Vector,
        *,
        exclude: str | None = None,
        limit: int = 10,
        threshold: float = 0.5,
    ) -> list[NoteResult]:
        """Documents with similarity >= threshold, best first, at most ``limit``.

        Raises:
            QueryError: If the index is not loaded or the query dimension
                differs from the indexed vectors.
        """
        snapshot = self._require()
        if not snapshot.paths or limit <= 0:
            return []
        if len(query) != snapshot.dim:
            raise QueryError.dimension_mismatch(snapshot.dim or 0, len(query))

        q = np.asarray(query, dtype=np.float64)
        denom = snapshot.norms * float(np.linalg.norm(q))
        dots = snapshot.matrix @ q
        sims = np.divide(dots, denom, out=np.zeros_like(dots), where=denom > 0)

        results: list[NoteResult] = []
        for i in np.argsort(-sims, kind="stable"):
            score = float(sims[i])
            if score < threshold:
                break
            path = snapshot.paths[i]
            if path == exclude:
                continue
            results.append(
                NoteResult(path=path, similarity=score, blocks=snapshot.sources[path].block_keys)
            )
            if len(results) >= limit:
                break
        return results


def find_similar(
    index: MemoryIndex, path: str, limit: int = 10, threshold: float = 0.5
) -> list[NoteResult]:
    """Nearest documents to an indexed document, excluding itself.

    Raises:
        QueryError: If the index is not loaded or ``path`` has no vector.
    """
    vector = index.get_source_vector(path)
    if vector is None:
        raise QueryError.note_not_found(path)
    return index.find_nearest(vector, exclude=path, limit=limit, threshold=threshold)
