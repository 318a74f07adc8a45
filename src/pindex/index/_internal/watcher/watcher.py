"""File watcher for continuous incremental indexing.

Watches the project root with watchfiles, keeps only paths that index_all
would pick up, and applies each debounced batch through the coordinator:
created or modified files are re-indexed (their AST diff is handed to the
session observer), deleted files are dropped from the index, and edges are
re-resolved once per batch. A failure on one path is logged and never stops
the watcher.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from watchfiles import Change, awatch

from pindex.config.models import WatcherConfig

if TYPE_CHECKING:
    from pindex.index._internal.indexing import IndexFileResult
    from pindex.index.ops import IndexCoordinator
    from pindex.memory.observer import SessionObserver

logger = structlog.get_logger()


class FileChangeKind(Enum):
    """Kind of file change detected."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True)
class FileChangeEvent:
    """A debounced change to one project-relative path."""

    path: str
    kind: FileChangeKind
    timestamp: float


class FileWatcher:
    """Watches the project and keeps the index current.

    Usage::

        watcher = FileWatcher(coordinator, observer)
        task = asyncio.create_task(watcher.run())
        ...
        watcher.stop()
        await task
    """

    def __init__(
        self,
        coordinator: IndexCoordinator,
        observer: SessionObserver | None = None,
        config: WatcherConfig | None = None,
    ) -> None:
        self._coordinator = coordinator
        self._observer = observer
        self._config = config or coordinator.config.watcher
        self._stop_event: asyncio.Event | None = None
        self._running = False

    @property
    def root(self) -> Path:
        return self._coordinator.repo_root

    @property
    def is_running(self) -> bool:
        return self._running

    def stop(self) -> None:
        """Signal the watcher to stop."""
        if self._stop_event is not None:
            self._stop_event.set()

    # -------------------------------------------------------------------------
    # Change detection
    # -------------------------------------------------------------------------

    def accepts(self, change: Change, path: str) -> bool:
        """watchfiles filter: only paths the index tracks."""
        try:
            rel_path = Path(path).relative_to(self.root).as_posix()
        except ValueError:
            return False
        return self._coordinator.is_tracked_path(rel_path)

    def to_events(self, changes: set[tuple[Change, str]]) -> list[FileChangeEvent]:
        """Collapse a raw change set into one event per path, sorted by path.

        The state on disk decides deletion: a path reported as added then
        deleted in one batch is a deletion, and the reverse is a creation.
        """
        added: dict[str, bool] = {}
        for change, raw_path in changes:
            try:
                rel_path = Path(raw_path).relative_to(self.root).as_posix()
            except ValueError:
                continue
            added[rel_path] = added.get(rel_path, False) or change == Change.added

        now = time.time()
        events: list[FileChangeEvent] = []
        for rel_path in sorted(added):
            if not (self.root / rel_path).is_file():
                kind = FileChangeKind.DELETED
            elif added[rel_path]:
                kind = FileChangeKind.CREATED
            else:
                kind = FileChangeKind.MODIFIED
            events.append(FileChangeEvent(rel_path, kind, now))
        return events

    async def watch(self) -> AsyncIterator[list[FileChangeEvent]]:
        """Yield debounced batches of change events until stop() is called."""
        self._running = True
        self._stop_event = asyncio.Event()
        logger.info(
            "file_watcher_started",
            repo_root=str(self.root),
            debounce_ms=self._config.debounce_ms,
        )
        try:
            async for changes in awatch(
                self.root,
                watch_filter=self.accepts,
                debounce=self._config.debounce_ms,
                step=self._config.step_ms,
                stop_event=self._stop_event,
                ignore_permission_denied=True,
            ):
                events = self.to_events(changes)
                if events:
                    yield events
        finally:
            self._running = False
            self._stop_event = None
            logger.info("file_watcher_stopped")

    async def run(self) -> None:
        """Watch and apply every batch until stopped."""
        async for events in self.watch():
            logger.info("changes_detected", count=len(events))
            await asyncio.to_thread(self.dispatch, events)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def dispatch(self, events: list[FileChangeEvent]) -> list[IndexFileResult]:
        """Apply a batch of events synchronously. Returns per-file index results."""
        results: list[IndexFileResult] = []
        for event in events:
            try:
                if event.kind == FileChangeKind.DELETED:
                    self._coordinator.remove_file(event.path)
                    continue
                result = self._coordinator.index_path(event.path)
                results.append(result)
                if self._observer is not None and result.diff is not None:
                    self._observer.on_file_diff(result.diff)
            except Exception:
                logger.exception("watch_callback_failed", path=event.path, kind=event.kind.value)

        if events:
            try:
                self._coordinator.resolve_dependencies()
            except Exception:
                logger.exception("watch_callback_failed", stage="resolve_dependencies")
        return results
