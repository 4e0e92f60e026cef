"""Markdown content parser.

Splits raw document text into:

- canonical full text: the document with a leading ``---`` frontmatter
  block removed, lines joined with ``\\n``
- a SHA-256 hex digest of that text
- heading-delimited blocks with 1-indexed, inclusive line ranges expressed in
  the coordinates of the original file (the frontmatter offset is added back)

A document without headings is a single block keyed ``"document"``.
Repeated headings within one document get a ``" [n]"`` suffix from the
second occurrence on, so block keys stay unique per document.
"""

from __future__ import annotations

import hashlib
import re

from vaultgraph.config.constants import DOCUMENT_BLOCK_KEY, FRONTMATTER_DELIMITER
from vaultgraph.index.models import ParsedBlock, ParsedDocument

_HEADING_RE = re.compile(r"^#{1,6}\s+")


def compute_content_hash(text: str) -> str:
    """SHA-256 hex digest of UTF-8 text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def parse_markdown(content: str) -> ParsedDocument:
    """Parse raw markdown into canonical text, hash, and blocks."""
    lines = content.split("\n")
    body, offset = _strip_frontmatter(lines)

    full_text = "\n".join(body)
    return ParsedDocument(
        full_text=full_text,
        content_hash=compute_content_hash(full_text),
        blocks=tuple(_extract_blocks(body, offset)),
    )


def is_heading(line: str) -> bool:
    return _HEADING_RE.match(line.lstrip()) is not None


def _strip_frontmatter(lines: list[str]) -> tuple[list[str], int]:
    """Return (lines after frontmatter, number of lines consumed).

    An opening delimiter without a closing one means there is no frontmatter.
    """
    if not lines or lines[0].strip() != FRONTMATTER_DELIMITER:
        return lines, 0

    for i in range(1, len(lines)):
        if lines[i].strip() == FRONTMATTER_DELIMITER:
            return lines[i + 1 :], i + 1

    return lines, 0


def _extract_blocks(lines: list[str], offset: int) -> list[ParsedBlock]:
    # "".split("\n") yields [""]; an empty body has no blocks
    if not lines or lines == [""]:
        return []

    heading_idx = [i for i, line in enumerate(lines) if is_heading(line)]

    if not heading_idx:
        return [
            ParsedBlock(
                key=DOCUMENT_BLOCK_KEY,
                text="\n".join(lines),
                line_start=offset + 1,
                line_end=offset + len(lines),
            )
        ]

    blocks: list[ParsedBlock] = []
    seen: dict[str, int] = {}
    for n, start in enumerate(heading_idx):
        end = heading_idx[n + 1] if n + 1 < len(heading_idx) else len(lines)
        key = lines[start].strip()

        seen[key] = seen.get(key, 0) + 1
        if seen[key] > 1:
            key = f"{key} [{seen[key]}]"

        blocks.append(
            ParsedBlock(
                key=key,
                text="\n".join(lines[start:end]),
                line_start=offset + start + 1,
                line_end=offset + end,
            )
        )

    return blocks
