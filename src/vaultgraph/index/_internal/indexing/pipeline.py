"""Embedding pipeline: change set -> parser -> batched embedding -> store.

Files are read and parsed one at a time and their texts (the document text
followed by each block text) accumulate into a batch of at most
``batch_size`` texts. A file is never split across batches; a single file
with more texts than the cap forms its own oversized batch.

Failure handling:
- read/parse failure: that file counts as failed
- embedding call failure: every file in the batch counts as failed
- save failure: that file counts as failed, the rest of the batch is saved
"""

from __future__ import annotations

import time
from collections.abc import Callable, Collection
from dataclasses import dataclass
from pathlib import Path

import structlog

from vaultgraph.config.constants import DEFAULT_EXCLUDED_DIRS, DEFAULT_EXTENSIONS
from vaultgraph.index._internal.db.store import VectorStore
from vaultgraph.index._internal.discovery.scanner import mtime_ms, scan_vault
from vaultgraph.index._internal.indexing.embedding import Embedder
from vaultgraph.index._internal.parsing.markdown import parse_markdown
from vaultgraph.index.models import (
    BlockRecord,
    ChangeSet,
    DocumentRecord,
    ParsedDocument,
    PipelineStats,
    Vector,
)

log = structlog.get_logger(__name__)

ProgressCallback = Callable[[int, int, str], None]
"""Called as (current, total, path) once per file considered."""

DEFAULT_BATCH_SIZE = 32


@dataclass(frozen=True)
class _PendingFile:
    path: str
    mtime: int
    parsed: ParsedDocument

    @property
    def texts(self) -> list[str]:
        return [self.parsed.full_text, *(b.text for b in self.parsed.blocks)]


def read_and_parse(root: Path, rel_path: str) -> tuple[int, ParsedDocument]:
    """Stat then read a vault file. The mtime is taken before the read."""
    full = root / rel_path
    mtime = mtime_ms(full)
    content = full.read_text(encoding="utf-8")
    return mtime, parse_markdown(content)


def build_records(
    pending: _PendingFile, vectors: list[Vector], model: str
) -> tuple[DocumentRecord, list[BlockRecord]]:
    """Pair one file's vectors with its document and blocks (document first)."""
    record = DocumentRecord(
        path=pending.path,
        content_hash=pending.parsed.content_hash,
        mtime=pending.mtime,
        embedding=vectors[0],
        model=model,
        updated_at=time.time_ns() // 1_000_000,
    )
    blocks = [
        BlockRecord(
            block_key=block.key,
            embedding=vec,
            line_start=block.line_start,
            line_end=block.line_end,
        )
        for block, vec in zip(pending.parsed.blocks, vectors[1:], strict=True)
    ]
    return record, blocks


def index_file(root: Path, rel_path: str, store: VectorStore, embedder: Embedder) -> bool:
    """Embed and save a single file in one embedding call.

    Returns:
        False if the file has no content after frontmatter removal, in which
        case it is recorded as empty and any stored document for it is
        removed. True once it is saved.

    Raises:
        OSError, VaultGraphError, SQLAlchemyError: Propagated to the caller.
    """
    mtime, parsed = read_and_parse(root, rel_path)
    if not parsed.full_text.strip():
        store.mark_empty(rel_path, mtime)
        return False

    pending = _PendingFile(rel_path, mtime, parsed)
    vectors = embedder.embed(pending.texts)
    record, blocks = build_records(pending, vectors, embedder.model)
    store.save(record, blocks)
    return True


class _Batcher:
    """Accumulates files until the text cap, then embeds and saves them."""

    def __init__(
        self, store: VectorStore, embedder: Embedder, batch_size: int, stats: PipelineStats
    ) -> None:
        self._store = store
        self._embedder = embedder
        self._batch_size = batch_size
        self._stats = stats
        self._files: list[_PendingFile] = []
        self._text_count = 0

    def add(self, pending: _PendingFile) -> None:
        n = len(pending.texts)
        if self._files and self._text_count + n > self._batch_size:
            self.flush()
        self._files.append(pending)
        self._text_count += n
        if self._text_count >= self._batch_size:
            self.flush()

    def flush(self) -> None:
        if not self._files:
            return

        files, self._files, self._text_count = self._files, [], 0
        texts = [text for f in files for text in f.texts]

        try:
            vectors = self._embedder.embed(texts)
            if len(vectors) != len(texts):
                raise ValueError(f"expected {len(texts)} vectors, got {len(vectors)}")
        except Exception as e:
            self._stats.failed += len(files)
            log.error(
                "embed_batch_failed",
                files=len(files),
                texts=len(texts),
                error=str(e),
            )
            return

        offset = 0
        for f in files:
            n = len(f.texts)
            try:
                record, blocks = build_records(f, vectors[offset : offset + n], self._embedder.model)
                self._store.save(record, blocks)
                self._stats.processed += 1
            except Exception as e:
                self._stats.failed += 1
                log.error("save_failed", path=f.path, error=str(e))
            offset += n

        log.debug("embed_batch_saved", files=len(files), texts=len(texts))


def process_changes(
    root: Path,
    changes: ChangeSet,
    store: VectorStore,
    embedder: Embedder,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    on_progress: ProgressCallback | None = None,
) -> PipelineStats:
    """Apply a change set to the store. Never raises for per-file or batch failures."""
    start = time.monotonic()
    stats = PipelineStats()

    for path in changes.deleted_files:
        try:
            store.delete_document(path)
            stats.deleted += 1
        except Exception as e:
            stats.failed += 1
            log.error("delete_failed", path=path, error=str(e))

    batcher = _Batcher(store, embedder, batch_size, stats)
    to_process = changes.to_process
    total = len(to_process)

    for i, path in enumerate(to_process):
        if on_progress is not None:
            on_progress(i + 1, total, path)

        try:
            mtime, parsed = read_and_parse(root, path)
        except (OSError, UnicodeDecodeError) as e:
            stats.failed += 1
            log.error("read_failed", path=path, error=str(e))
            continue

        if not parsed.full_text.strip():
            stats.skipped += 1
            try:
                removed = store.mark_empty(path, mtime)
            except Exception as e:
                log.error("mark_empty_failed", path=path, error=str(e))
                continue
            log.debug("file_skipped_empty", path=path, removed_document=removed)
            continue

        batcher.add(_PendingFile(path, mtime, parsed))

    batcher.flush()

    stats.duration_seconds = time.monotonic() - start
    return stats


def run_pipeline(
    root: Path,
    store: VectorStore,
    embedder: Embedder,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    extensions: Collection[str] = DEFAULT_EXTENSIONS,
    excluded_dirs: Collection[str] = DEFAULT_EXCLUDED_DIRS,
    on_progress: ProgressCallback | None = None,
    full: bool = False,
) -> PipelineStats:
    """Scan the vault and bring the store up to date.

    With ``full``, unchanged files are re-embedded too.

    Raises:
        ScanError: If the tree cannot be fully enumerated. Nothing is written.
    """
    start = time.monotonic()
    changes = scan_vault(root, store, extensions, excluded_dirs)
    if full:
        changes.modified_files.extend(changes.unchanged_files)
        changes.unchanged_files = []
    log.info(
        "pipeline_started",
        root=str(root),
        new=len(changes.new_files),
        modified=len(changes.modified_files),
        deleted=len(changes.deleted_files),
        unchanged=changes.unchanged_count,
    )

    stats = process_changes(
        root, changes, store, embedder, batch_size=batch_size, on_progress=on_progress
    )
    stats.duration_seconds = time.monotonic() - start

    log.info("pipeline_complete", **stats.to_dict())
    return stats
