"""Vault file discovery and change classification."""

from vaultgraph.index._internal.discovery.scanner import (
    discover_files,
    is_eligible,
    mtime_ms,
    scan_vault,
    to_relative_posix,
)

__all__ = [
    "scan_vault",
    "discover_files",
    "is_eligible",
    "mtime_ms",
    "to_relative_posix",
]
