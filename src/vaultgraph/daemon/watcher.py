"""Live watcher: filesystem events -> debounce -> single-file re-index.

Design:
- watchfiles ``awatch`` over the vault root, filtered to eligible files
- every event adds its relative path to a pending set and restarts a timer
- when the timer fires the pending set is snapshotted and cleared first, so
  events arriving during processing start a fresh debounce cycle
- existence is re-checked at fire time: present means embed and save,
  missing means delete; an emptied note is reported as a delete
- processing runs on a single-worker executor, one batch at a time
"""

from __future__ import annotations

import asyncio
import contextlib
from collections import Counter
from collections.abc import Awaitable, Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

import structlog
from watchfiles import Change, awatch

from vaultgraph.config.models import VaultGraphConfig
from vaultgraph.index._internal.db.store import VectorStore
from vaultgraph.index._internal.discovery.scanner import is_eligible
from vaultgraph.index._internal.indexing.embedding import Embedder
from vaultgraph.index._internal.indexing.memory import MemoryIndex
from vaultgraph.index._internal.indexing.pipeline import index_file
from vaultgraph.index.models import WatchEvent, WatchEventKind

logger = structlog.get_logger()

UpdateCallback = Callable[[WatchEvent], None]


def _summarize_events(events: Iterable[WatchEvent]) -> str:
    """Human-readable summary like "2 added, 1 deleted"."""
    counts = Counter(e.kind for e in events)
    labels = {
        WatchEventKind.ADD: "added",
        WatchEventKind.CHANGE: "changed",
        WatchEventKind.DELETE: "deleted",
    }
    return ", ".join(f"{counts[k]} {label}" for k, label in labels.items() if counts[k])


@dataclass
class Debouncer:
    """Pending-path set with a restartable timer.

    ``on_fire`` receives the sorted pending paths once ``delay`` seconds pass
    without a new ``add``. Each firing runs as its own task; ``stop`` cancels
    the timer but lets firings already in progress finish.
    """

    delay: float
    on_fire: Callable[[list[str]], Awaitable[None]]

    _pending: set[str] = field(default_factory=set, init=False)
    _timer: asyncio.Task[None] | None = field(default=None, init=False)
    _inflight: set[asyncio.Task[None]] = field(default_factory=set, init=False)
    _stopped: bool = field(default=False, init=False)

    @property
    def pending(self) -> frozenset[str]:
        return frozenset(self._pending)

    def add(self, path: str) -> None:
        if self._stopped:
            return
        self._pending.add(path)
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._wait_then_fire())

    async def _wait_then_fire(self) -> None:
        await asyncio.sleep(self.delay)
        self._timer = None
        paths = sorted(self._pending)
        self._pending.clear()
        if not paths:
            return
        task = asyncio.get_running_loop().create_task(self.on_fire(paths))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def drain(self) -> None:
        """Wait for firings already in progress."""
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    def stop(self) -> None:
        self._stopped = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending.clear()


@dataclass
class LiveWatcher:
    """Async vault watcher feeding the single-file indexing path.

    Never raises out of its event loop: read, embed and save failures are
    logged per path, and permission errors from the filesystem are logged
    and ignored.
    """

    root: Path
    store: VectorStore
    embedder: Embedder
    config: VaultGraphConfig = field(default_factory=VaultGraphConfig)
    on_update: UpdateCallback | None = None
    index: MemoryIndex | None = None

    _debouncer: Debouncer = field(init=False)
    _executor: ThreadPoolExecutor = field(init=False)
    _watch_task: asyncio.Task[None] | None = field(default=None, init=False)
    _stop_event: asyncio.Event = field(default_factory=asyncio.Event, init=False)

    def __post_init__(self) -> None:
        self.root = self.root.resolve()
        self._reset_workers()

    def _reset_workers(self) -> None:
        self._debouncer = Debouncer(self.config.watcher.debounce_sec, self._process_async)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="vaultgraph-watch")

    @property
    def is_running(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    async def start(self) -> None:
        """Subscribe to filesystem events. A stopped watcher can be started again."""
        if self._watch_task is not None:
            return
        if self._stop_event.is_set():
            self._reset_workers()
            self._stop_event.clear()
        self._watch_task = asyncio.create_task(self._watch_loop())
        logger.info(
            "watcher_started",
            root=str(self.root),
            debounce_sec=self.config.watcher.debounce_sec,
        )

    async def stop(self) -> None:
        """Cancel the debounce timer and release the filesystem subscription.

        Processing already in progress is allowed to complete.
        """
        self._stop_event.set()
        self._debouncer.stop()

        if self._watch_task is not None:
            self._watch_task.cancel()
            with contextlib.suppress(asyncio.CancelledError, asyncio.TimeoutError):
                await asyncio.wait_for(self._watch_task, timeout=2.0)
            self._watch_task = None

        self._executor.shutdown(wait=False)
        logger.info("watcher_stopped")

    def notify(self, path: str) -> None:
        """Queue a vault-relative path for debounced processing."""
        self._debouncer.add(path)

    async def flush(self) -> None:
        """Wait for in-progress processing to finish."""
        await self._debouncer.drain()

    # =========================================================================
    # Event intake
    # =========================================================================

    def _relative(self, raw_path: str) -> str | None:
        try:
            return Path(raw_path).relative_to(self.root).as_posix()
        except ValueError:
            return None

    def _accepts(self, _change: Change, raw_path: str) -> bool:
        rel = self._relative(raw_path)
        return rel is not None and is_eligible(
            rel, self.config.index.extensions, self.config.index.excluded_dirs
        )

    async def _watch_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                async for changes in awatch(
                    self.root,
                    watch_filter=self._accepts,
                    recursive=True,
                    stop_event=self._stop_event,
                    ignore_permission_denied=True,
                ):
                    for _change, raw_path in changes:
                        rel = self._relative(raw_path)
                        if rel is not None:
                            self.notify(rel)
            except asyncio.CancelledError:
                raise
            except PermissionError as e:
                logger.warning("watch_permission_denied", path=e.filename, error=str(e))
            except Exception as e:
                if self._stop_event.is_set():
                    return
                logger.error("watcher_error", error=str(e))
                await asyncio.sleep(1.0)

    # =========================================================================
    # Processing
    # =========================================================================

    async def _process_async(self, paths: list[str]) -> None:
        if self._stop_event.is_set():
            logger.debug("watch_batch_dropped", count=len(paths))
            return
        loop = asyncio.get_running_loop()
        events = await loop.run_in_executor(self._executor, self.process_paths, paths)
        if events:
            logger.info("changes_indexed", count=len(events), summary=_summarize_events(events))
        if self.on_update is not None:
            for event in events:
                try:
                    self.on_update(event)
                except Exception as e:
                    logger.error("update_callback_failed", path=event.path, error=str(e))

    def process_paths(self, paths: Iterable[str]) -> list[WatchEvent]:
        """Apply pending paths to the store, then refresh the in-memory index.

        Runs synchronously; the async path calls it on the worker thread.
        """
        events: list[WatchEvent] = []
        for path in paths:
            event = self._process_one(path)
            if event is not None:
                events.append(event)

        if events and self.index is not None and self.index.is_loaded:
            try:
                self.index.refresh_paths(self.store, [e.path for e in events])
            except Exception as e:
                logger.error("index_refresh_failed", error=str(e))
        return events

    def _process_one(self, path: str) -> WatchEvent | None:
        full = self.root / path
        try:
            if not full.is_file():
                if self.store.delete_document(path):
                    logger.debug("watch_deleted", path=path)
                    return WatchEvent(WatchEventKind.DELETE, path)
                return None

            known = self.store.get_document(path) is not None
            if not index_file(self.root, path, self.store, self.embedder):
                logger.debug("watch_skipped_empty", path=path)
                # An emptied note no longer has vectors
                return WatchEvent(WatchEventKind.DELETE, path) if known else None
            kind = WatchEventKind.CHANGE if known else WatchEventKind.ADD
            logger.debug("watch_indexed", path=path, kind=kind.value)
            return WatchEvent(kind, path)
        except PermissionError as e:
            logger.warning("watch_permission_denied", path=path, error=str(e))
        except Exception as e:
            logger.error("watch_process_failed", path=path, error=str(e))
        return None


async def start_watcher(
    root: Path,
    store: VectorStore,
    embedder: Embedder,
    config: VaultGraphConfig | None = None,
    on_update: UpdateCallback | None = None,
    index: MemoryIndex | None = None,
) -> LiveWatcher:
    """Create and start a watcher. Call ``await watcher.stop()`` to release it."""
    watcher = LiveWatcher(
        root=root,
        store=store,
        embedder=embedder,
        config=config or VaultGraphConfig(),
        on_update=on_update,
        index=index,
    )
    await watcher.start()
    return watcher
