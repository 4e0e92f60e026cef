"""Live watching of a vault for incremental re-indexing."""

from vaultgraph.daemon.watcher import Debouncer, LiveWatcher, UpdateCallback, start_watcher

__all__ = ["Debouncer", "LiveWatcher", "UpdateCallback", "start_watcher"]
