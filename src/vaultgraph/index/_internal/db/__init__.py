"""Persistent storage for document and block vectors."""

from vaultgraph.index._internal.db.codec import decode_vector, encode_vector
from vaultgraph.index._internal.db.database import Database
from vaultgraph.index._internal.db.store import VectorStore

__all__ = [
    "Database",
    "VectorStore",
    "encode_vector",
    "decode_vector",
]
