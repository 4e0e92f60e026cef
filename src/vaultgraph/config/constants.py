"""Configuration constants.

Values here are NOT user-configurable: storage layout, parser sentinels and
hard caps on query parameters. For configurable values, see models.py.
"""

# =============================================================================
# Storage layout
# =============================================================================

STATE_DIR_NAME = ".vaultgraph"
"""Per-vault directory for config and the store. Hidden, so never scanned."""

DB_FILE_NAME = "embeddings.db"
"""Single store file holding the documents and blocks tables."""

VAULT_LOG_FILE_NAME = "vaultgraph.log"
"""JSON log kept beside the store, one per vault."""


# =============================================================================
# Parsing
# =============================================================================

DOCUMENT_BLOCK_KEY = "document"
"""Block key for a document without headings."""

FRONTMATTER_DELIMITER = "---"

# =============================================================================
# Discovery defaults
# =============================================================================

DEFAULT_EXTENSIONS: tuple[str, ...] = (".md",)

DEFAULT_EXCLUDED_DIRS: tuple[str, ...] = ("node_modules", "dist", "__pycache__")

# =============================================================================
# Query maximums
# =============================================================================

SIMILAR_LIMIT_MAX = 100
"""Maximum results for similar/search queries."""

GRAPH_DEPTH_MAX = 5
"""Maximum connection graph depth."""

GRAPH_MAX_PER_LEVEL_MAX = 20
"""Maximum children per connection graph node."""

GRAPH_OVERFETCH_FACTOR = 2
"""Neighbours fetched per node relative to the per-level cap, before visited filtering."""
