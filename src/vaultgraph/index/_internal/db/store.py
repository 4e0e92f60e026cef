"""Persistent vector store over the documents and blocks tables.

Every mutating operation runs in its own immediate transaction and is
committed before it returns. Block sets are always replaced as a whole
inside one transaction, so a reader sees either the old set or the new one.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Sequence
from pathlib import Path

import structlog
from sqlalchemy import delete, func
from sqlmodel import Session, col, select

from vaultgraph.config.models import DatabaseConfig
from vaultgraph.index._internal.db.codec import decode_vector, encode_vector
from vaultgraph.index._internal.db.database import Database
from vaultgraph.index.models import Block, BlockRecord, Document, DocumentRecord, EmptyFile

log = structlog.get_logger(__name__)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _to_document_record(row: Document) -> DocumentRecord:
    return DocumentRecord(
        path=row.path,
        content_hash=row.content_hash,
        mtime=row.mtime,
        embedding=decode_vector(row.embedding),
        model=row.model,
        updated_at=row.updated_at,
    )


def _to_block_record(row: Block) -> BlockRecord:
    return BlockRecord(
        block_key=row.block_key,
        embedding=decode_vector(row.embedding),
        line_start=row.line_start,
        line_end=row.line_end,
    )


class VectorStore:
    """Durable per-document and per-block vector records.

    The store is the single source of truth; the in-memory index is derived
    from it and never written back.
    """

    def __init__(self, db_path: Path, config: DatabaseConfig | None = None) -> None:
        self.db = Database(db_path, config)
        self.db.create_all()
        log.debug("store_opened", db_path=str(db_path))

    @property
    def db_path(self) -> Path:
        return self.db.db_path

    def close(self) -> None:
        self.db.dispose()

    # =========================================================================
    # Documents
    # =========================================================================

    def upsert_document(self, record: DocumentRecord) -> None:
        """Insert or fully replace the record for ``record.path``."""
        with self.db.immediate_transaction() as session:
            self._upsert_document(session, record)

    def get_document(self, path: str) -> DocumentRecord | None:
        with self.db.session() as session:
            row = session.get(Document, path)
            return _to_document_record(row) if row else None

    def list_documents(self) -> list[DocumentRecord]:
        """All documents, ordered by path."""
        with self.db.session() as session:
            rows = session.exec(select(Document).order_by(col(Document.path))).all()
            return [_to_document_record(row) for row in rows]

    def get_mtimes(self) -> dict[str, int]:
        """Map of every known path to its stored mtime, without decoding vectors.

        Includes files recorded as empty.
        """
        with self.db.session() as session:
            rows = session.exec(select(Document.path, Document.mtime)).all()
            empty = session.exec(select(EmptyFile.path, EmptyFile.mtime)).all()
            return {path: mtime for path, mtime in [*rows, *empty]}

    def delete_document(self, path: str) -> bool:
        """Delete a document and, by cascade, all of its blocks.

        Any empty-file marker for the path is dropped as well.

        Returns:
            True if a document was deleted.
        """
        with self.db.immediate_transaction() as session:
            session.execute(delete(EmptyFile).where(col(EmptyFile.path) == path))
            result = session.execute(delete(Document).where(col(Document.path) == path))
            return bool(result.rowcount)

    def mark_empty(self, path: str, mtime: int) -> bool:
        """Record a file with no content, replacing any document stored for it.

        Returns:
            True if a previously indexed document was removed.
        """
        with self.db.immediate_transaction() as session:
            result = session.execute(delete(Document).where(col(Document.path) == path))
            session.merge(EmptyFile(path=path, mtime=mtime))
            session.flush()
            return bool(result.rowcount)

    def is_empty_marked(self, path: str) -> bool:
        with self.db.session() as session:
            return session.get(EmptyFile, path) is not None

    def count_documents(self) -> int:
        with self.db.session() as session:
            return session.exec(select(func.count()).select_from(Document)).one()

    # =========================================================================
    # Blocks
    # =========================================================================

    def replace_blocks(self, source_path: str, blocks: Sequence[BlockRecord]) -> None:
        """Atomically replace the full block set for a document."""
        with self.db.immediate_transaction() as session:
            self._replace_blocks(session, source_path, blocks)

    def get_blocks(self, source_path: str) -> list[BlockRecord]:
        """Blocks of one document, ordered by line_start."""
        with self.db.session() as session:
            rows = session.exec(
                select(Block)
                .where(col(Block.source_path) == source_path)
                .order_by(col(Block.line_start))
            ).all()
            return [_to_block_record(row) for row in rows]

    def count_blocks(self) -> int:
        with self.db.session() as session:
            return session.exec(select(func.count()).select_from(Block)).one()

    # =========================================================================
    # Combined
    # =========================================================================

    def save(self, record: DocumentRecord, blocks: Sequence[BlockRecord]) -> None:
        """Upsert a document and replace its blocks in a single transaction.

        On failure the store still holds the prior document and block set.
        """
        with self.db.immediate_transaction() as session:
            session.execute(delete(EmptyFile).where(col(EmptyFile.path) == record.path))
            self._upsert_document(session, record)
            self._replace_blocks(session, record.path, blocks)

    def load_all(self) -> Iterable[tuple[DocumentRecord, list[BlockRecord]]]:
        """Every document with its ordered blocks, read in one snapshot."""
        with self.db.session() as session:
            docs = session.exec(select(Document).order_by(col(Document.path))).all()
            rows = session.exec(
                select(Block).order_by(col(Block.source_path), col(Block.line_start))
            ).all()

            by_path: dict[str, list[BlockRecord]] = {}
            for row in rows:
                by_path.setdefault(row.source_path, []).append(_to_block_record(row))

            return [(_to_document_record(doc), by_path.get(doc.path, [])) for doc in docs]

    def load_paths(
        self, paths: Iterable[str]
    ) -> dict[str, tuple[DocumentRecord, list[BlockRecord]] | None]:
        """Current records for selected paths; None for paths no longer stored."""
        wanted = sorted(set(paths))
        result: dict[str, tuple[DocumentRecord, list[BlockRecord]] | None] = {}
        if not wanted:
            return result

        with self.db.session() as session:
            for path in wanted:
                doc = session.get(Document, path)
                if doc is None:
                    result[path] = None
                    continue
                rows = session.exec(
                    select(Block)
                    .where(col(Block.source_path) == path)
                    .order_by(col(Block.line_start))
                ).all()
                result[path] = (_to_document_record(doc), [_to_block_record(r) for r in rows])
        return result

    # =========================================================================
    # Internal
    # =========================================================================

    @staticmethod
    def _upsert_document(session: Session, record: DocumentRecord) -> None:
        row = session.get(Document, record.path)
        if row is None:
            row = Document(path=record.path)
        row.content_hash = record.content_hash
        row.mtime = record.mtime
        row.embedding = encode_vector(record.embedding)
        row.model = record.model
        row.updated_at = record.updated_at or _now_ms()
        session.add(row)
        session.flush()

    @staticmethod
    def _replace_blocks(session: Session, source_path: str, blocks: Sequence[BlockRecord]) -> None:
        session.execute(delete(Block).where(col(Block.source_path) == source_path))
        session.add_all(
            Block(
                source_path=source_path,
                block_key=block.block_key,
                embedding=encode_vector(block.embedding),
                line_start=block.line_start,
                line_end=block.line_end,
            )
            for block in blocks
        )
        session.flush()
