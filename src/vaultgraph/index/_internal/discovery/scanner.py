"""Change scanner: classify vault files against the store.

Paths are POSIX-style and relative to the vault root. Hidden entries (names
starting with ".") and excluded directory names are never descended into.
Modification times are integer milliseconds and compared for exact equality.
"""

from __future__ import annotations

import os
from collections.abc import Collection, Mapping
from pathlib import Path, PurePosixPath
from typing import Protocol

import structlog

from vaultgraph.config.constants import DEFAULT_EXCLUDED_DIRS, DEFAULT_EXTENSIONS
from vaultgraph.core.errors import ScanError
from vaultgraph.index.models import ChangeSet

log = structlog.get_logger(__name__)


class _KnownPaths(Protocol):
    def get_mtimes(self) -> dict[str, int]: ...


def mtime_ms(path: Path) -> int:
    """Integer-millisecond modification time (floor)."""
    return path.stat().st_mtime_ns // 1_000_000


def to_relative_posix(root: Path, path: Path) -> str:
    return path.relative_to(root).as_posix()


def is_eligible(
    rel_path: str,
    extensions: Collection[str] = DEFAULT_EXTENSIONS,
    excluded_dirs: Collection[str] = DEFAULT_EXCLUDED_DIRS,
) -> bool:
    """Whether a relative path would be picked up by a scan."""
    parts = PurePosixPath(rel_path).parts
    if not parts:
        return False
    if any(part.startswith(".") for part in parts):
        return False
    if any(part in excluded_dirs for part in parts[:-1]):
        return False
    return PurePosixPath(parts[-1]).suffix.lower() in extensions


def discover_files(
    root: Path,
    extensions: Collection[str] = DEFAULT_EXTENSIONS,
    excluded_dirs: Collection[str] = DEFAULT_EXCLUDED_DIRS,
) -> dict[str, int]:
    """Map every eligible file under root to its mtime.

    Raises:
        ScanError: If any directory cannot be listed. A partial listing
            cannot be used to decide deletions.
    """

    def _raise(err: OSError) -> None:
        raise ScanError.scan_failed(str(err.filename or root), err.strerror or str(err)) from err

    found: dict[str, int] = {}
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        dirnames[:] = sorted(
            d for d in dirnames if not d.startswith(".") and d not in excluded_dirs
        )
        base = Path(dirpath)
        for filename in filenames:
            if filename.startswith(".") or Path(filename).suffix.lower() not in extensions:
                continue
            full = base / filename
            try:
                found[to_relative_posix(root, full)] = mtime_ms(full)
            except FileNotFoundError:
                # removed between listing and stat
                continue
    return found


def scan_vault(
    root: Path,
    store: _KnownPaths | Mapping[str, int],
    extensions: Collection[str] = DEFAULT_EXTENSIONS,
    excluded_dirs: Collection[str] = DEFAULT_EXCLUDED_DIRS,
) -> ChangeSet:
    """Classify every path on disk or in the store as new, modified, unchanged, or deleted."""
    known = dict(store) if isinstance(store, Mapping) else store.get_mtimes()
    on_disk = discover_files(root, extensions, excluded_dirs)

    changes = ChangeSet()
    for path in sorted(on_disk):
        stored = known.get(path)
        if stored is None:
            changes.new_files.append(path)
        elif stored != on_disk[path]:
            changes.modified_files.append(path)
        else:
            changes.unchanged_files.append(path)

    changes.deleted_files = sorted(set(known) - set(on_disk))

    log.debug(
        "scan_complete",
        new=len(changes.new_files),
        modified=len(changes.modified_files),
        deleted=len(changes.deleted_files),
        unchanged=changes.unchanged_count,
    )
    return changes
