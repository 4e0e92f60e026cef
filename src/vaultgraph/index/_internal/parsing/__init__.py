"""Markdown parsing into canonical text and heading blocks."""

from vaultgraph.index._internal.parsing.markdown import (
    compute_content_hash,
    is_heading,
    parse_markdown,
)

__all__ = ["parse_markdown", "compute_content_hash", "is_heading"]
