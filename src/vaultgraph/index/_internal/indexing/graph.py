"""Connection graph: recursive nearest-neighbour expansion from one document.

One visited set is shared by the whole traversal. Children chosen at a node
are all claimed before any of them is expanded, so no path appears twice in
the tree, across siblings or across levels.
"""

from __future__ import annotations

import structlog

from vaultgraph.config.constants import GRAPH_OVERFETCH_FACTOR
from vaultgraph.index._internal.indexing.memory import MemoryIndex
from vaultgraph.index.models import ConnectionNode

log = structlog.get_logger(__name__)


def build_graph(
    index: MemoryIndex,
    path: str,
    depth: int = 2,
    max_per_level: int = 5,
    threshold: float = 0.6,
) -> ConnectionNode | None:
    """Expand connections from ``path`` up to ``depth`` levels below it.

    Returns:
        The root node (similarity 1.0), or None if ``path`` has no vector.

    Raises:
        QueryError: If the index is not loaded.
    """
    visited = {path}
    root = _expand(index, path, 1.0, 0, depth, max_per_level, threshold, visited)
    if root is not None:
        log.debug("graph_built", path=path, depth=depth, nodes=len(visited))
    return root


def _expand(
    index: MemoryIndex,
    path: str,
    similarity: float,
    level: int,
    max_depth: int,
    max_per_level: int,
    threshold: float,
    visited: set[str],
) -> ConnectionNode | None:
    vector = index.get_source_vector(path)
    if vector is None:
        return None

    if level >= max_depth:
        return ConnectionNode(path=path, similarity=similarity, level=level)

    candidates = index.find_nearest(
        vector,
        exclude=path,
        limit=max_per_level * GRAPH_OVERFETCH_FACTOR,
        threshold=threshold,
    )
    chosen = [c for c in candidates if c.path not in visited][:max_per_level]
    visited.update(c.path for c in chosen)

    children: list[ConnectionNode] = []
    for c in chosen:
        child = _expand(
            index, c.path, c.similarity, level + 1, max_depth, max_per_level, threshold, visited
        )
        if child is not None:
            children.append(child)

    return ConnectionNode(
        path=path,
        similarity=similarity,
        level=level,
        connections=tuple(children) or None,
    )
