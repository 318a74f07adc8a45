"""High-level orchestration of the indexing engine.

This module implements the IndexCoordinator, the entry point for all index
operations. It enforces the serialization invariants:

- _batch_lock: only ONE index_all() or resolve_dependencies() pass at a time
- per-path locks: single-file writes to the same path never interleave

Single-file writes do not take the batch lock. Each completed write bumps a
generation counter, and a resolve pass that observed the generation move
while it ran is repeated (bounded) so edges reflect the latest files.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import structlog

from pindex.config.constants import RESOLVE_MAX_PASSES
from pindex.config.loader import get_index_path
from pindex.config.models import PindexConfig
from pindex.core.logging import set_session_id
from pindex.index._internal.db import Database
from pindex.index._internal.diff import AstDiffEngine
from pindex.index._internal.ignore import matches_glob
from pindex.index._internal.indexing import (
    DependencyResolver,
    Indexer,
    IndexFileResult,
    IndexResult,
    IndexStatus,
    ResolveResult,
)
from pindex.index._internal.parsing import ParserAdapter, detect_language, is_document_language
from pindex.index.models import SessionMode
from pindex.index.queries import MemoryQueries
from pindex.memory.observer import SessionObserver

logger = structlog.get_logger()

T = TypeVar("T")


class IndexCoordinator:
    """
    High-level orchestration with serialization guarantees.

    Usage::

        coordinator = IndexCoordinator(repo_root)
        coordinator.index_all()
        coordinator.resolve_dependencies()

        observer = coordinator.start_session()
        result = coordinator.index_file("src/a.ts")
        observer.on_file_diff(result.diff)
    """

    def __init__(
        self,
        repo_root: Path,
        config: PindexConfig | None = None,
        *,
        db: Database | None = None,
    ) -> None:
        self.repo_root = repo_root.resolve()
        self.config = config or PindexConfig()

        if db is None:
            db_cfg = self.config.database
            db = Database(
                get_index_path(self.repo_root, self.config),
                max_retries=db_cfg.max_retries,
                retry_base_delay=db_cfg.retry_base_delay_sec,
                busy_timeout_ms=db_cfg.busy_timeout_ms,
            )
        self.db = db
        self.db.create_all()

        self._parser = ParserAdapter()
        self.diff_engine = AstDiffEngine(self.db)
        self.indexer = Indexer(
            self.db,
            self.repo_root,
            self.config.index,
            parser=self._parser,
            track_diffs=True,
        )
        self.resolver = DependencyResolver(self.db, self.repo_root, self._parser)

        self._batch_lock = threading.RLock()
        self._path_locks: dict[str, threading.Lock] = {}
        self._path_locks_guard = threading.Lock()
        self._generation = 0
        self._generation_guard = threading.Lock()

    @property
    def generation(self) -> int:
        with self._generation_guard:
            return self._generation

    def close(self) -> None:
        """Release database handles."""
        self.db.dispose()

    # -------------------------------------------------------------------------
    # Batch operations
    # -------------------------------------------------------------------------

    def index_all(self, *, force: bool = False) -> IndexResult:
        """Index every discovered file. Does not resolve dependencies."""
        with self._batch_lock:
            return self.indexer.index_all(force=force)

    def resolve_dependencies(self) -> ResolveResult:
        """Rebuild dependency edges, repeating while single-file writes race it."""
        with self._batch_lock:
            result = ResolveResult()
            for attempt in range(1, RESOLVE_MAX_PASSES + 1):
                before = self.generation
                result = self.resolver.resolve()
                if self.generation == before:
                    break
                logger.debug("resolve_raced", attempt=attempt, max_passes=RESOLVE_MAX_PASSES)

        for failure in result.failures:
            logger.debug(
                "resolve_failure",
                path=failure.path,
                kind=failure.kind.value,
                detail=failure.detail,
            )
        return result

    def reindex(self, target: str | None = None) -> IndexResult:
        """Forced re-index of one target, or of the whole tree plus edges."""
        if target is not None:
            result = IndexResult()
            result.add(self.index_path(target, force=True))
            return result

        result = self.index_all(force=True)
        self.resolve_dependencies()
        return result

    # -------------------------------------------------------------------------
    # Single-file operations
    # -------------------------------------------------------------------------

    def index_file(self, path: str, *, force: bool = False) -> IndexFileResult:
        return self._with_path_lock(path, lambda: self.indexer.index_file(path, force=force))

    def index_document(self, path: str, *, force: bool = False) -> IndexFileResult:
        return self._with_path_lock(path, lambda: self.indexer.index_document(path, force=force))

    def index_path(self, path: str, *, force: bool = False) -> IndexFileResult:
        """Index a path as a document or as source, by its language."""
        if is_document_language(detect_language(path)):
            return self.index_document(path, force=force)
        return self.index_file(path, force=force)

    def remove_file(self, path: str) -> bool:
        removed = self._with_path_lock(path, lambda: self.indexer.remove_file(path))
        if removed:
            self._bump_generation()
        return removed

    def is_tracked_path(self, rel_path: str) -> bool:
        """Whether a relative path is one index_all would pick up."""
        if self.indexer.ignore_checker.is_excluded_rel(rel_path):
            return False
        patterns = self.indexer.code_patterns + self.indexer.document_patterns
        return any(matches_glob(rel_path, p) for p in patterns)

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    def start_session(
        self, *, mode: SessionMode | None = None, label: str | None = None
    ) -> SessionObserver:
        """Create a session row and return an observer bound to it."""
        session_cfg = self.config.session
        session_id = uuid.uuid4().hex
        with self.db.immediate_transaction() as session:
            MemoryQueries(session).create_session(
                session_id,
                mode=mode or SessionMode(session_cfg.mode),
                label=label if label is not None else session_cfg.label,
            )
        set_session_id(session_id)
        logger.info("session_started", session=session_id)
        return SessionObserver(self.db, session_id, self.repo_root)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _path_lock(self, path: str) -> threading.Lock:
        key = self.indexer.relative_path(path) or path
        with self._path_locks_guard:
            lock = self._path_locks.get(key)
            if lock is None:
                lock = self._path_locks[key] = threading.Lock()
            return lock

    def _with_path_lock(self, path: str, fn: Callable[[], T]) -> T:
        with self._path_lock(path):
            result = fn()
        if isinstance(result, IndexFileResult) and result.status in (
            IndexStatus.INDEXED,
            IndexStatus.UPDATED,
        ):
            self._bump_generation()
        return result

    def _bump_generation(self) -> None:
        with self._generation_guard:
            self._generation += 1
