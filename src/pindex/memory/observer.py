"""Passive session observer.

Hooks into tool calls and per-file AST diffs, writes raw session events,
derives observations and drives the anti-pattern detector. The hooks never
raise: a failure is logged and the caller carries on.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from pindex.index._internal.diff import AstDiffResult, ChangeType
from pindex.index.models import ObservationType, SessionEventType
from pindex.index.queries import MemoryQueries
from pindex.memory.anti_patterns import AntiPatternDetector
from pindex.memory.state import SessionState

if TYPE_CHECKING:
    from pindex.index._internal.db import Database

logger = structlog.get_logger()

_CHANGE_EVENTS = {
    ChangeType.ADDED: SessionEventType.SYMBOL_ADDED,
    ChangeType.REMOVED: SessionEventType.SYMBOL_REMOVED,
    ChangeType.SIG_CHANGED: SessionEventType.SIG_CHANGED,
}

_CHANGE_OBSERVATIONS = {
    ChangeType.ADDED: ObservationType.SYMBOL_ADDED,
    ChangeType.REMOVED: ObservationType.SYMBOL_REMOVED,
    ChangeType.SIG_CHANGED: ObservationType.SIG_CHANGED,
}


def _result_file(result: Any) -> str | None:
    if isinstance(result, Mapping):
        return result.get("file")
    return getattr(result, "file", None)


class SessionObserver:
    """Records what an agent touched and what changed underneath it."""

    def __init__(
        self,
        db: Database,
        session_id: str,
        project_root: Path,
        *,
        state: SessionState | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db = db
        self._session_id = session_id
        self._root = project_root
        self._state = state or SessionState()
        self._clock = clock
        self._detector = AntiPatternDetector(db, session_id, clock=clock)
        self._handlers: dict[str, Callable[[Mapping[str, Any], Any], None]] = {
            "get_symbol": self._handle_get_symbol,
            "get_file_summary": self._handle_get_file_summary,
            "get_context": self._handle_get_context,
            "find_usages": self._handle_find_usages,
            "search_symbols": self._handle_search_symbols,
        }

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def state(self) -> SessionState:
        return self._state

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------

    def on_tool_call(
        self, tool_name: str, args: Mapping[str, Any], result: Any, is_error: bool
    ) -> None:
        """Called after every tool invocation. Unknown tools are ignored."""
        try:
            if is_error:
                self._record_tool_error(tool_name, args)
                return
            handler = self._handlers.get(tool_name)
            if handler is not None:
                handler(args, result)
        except Exception:
            logger.exception("observer_hook_failed", hook="on_tool_call", tool=tool_name)

    def on_file_diff(self, diff: AstDiffResult | None) -> None:
        """Called after a file was re-indexed with its AST diff."""
        if diff is None or not diff.has_changes:
            return
        try:
            self._apply_diff(diff)
        except Exception:
            logger.exception("observer_hook_failed", hook="on_file_diff", path=diff.file_path)

    # -------------------------------------------------------------------------
    # Diff handling
    # -------------------------------------------------------------------------

    def _apply_diff(self, diff: AstDiffResult) -> None:
        for change in diff.changes:
            now = self._clock()
            with self._db.immediate_transaction() as session:
                queries = MemoryQueries(session)
                queries.insert_event(
                    self._session_id,
                    _CHANGE_EVENTS[change.type],
                    file_path=diff.file_path,
                    symbol_name=change.name,
                    extra={"description": change.description},
                    timestamp=now,
                )
                if change.type in (ChangeType.SIG_CHANGED, ChangeType.REMOVED):
                    queries.mark_observations_stale(
                        diff.file_path, change.name, change.description
                    )
                if self._state.was_accessed(diff.file_path, change.name):
                    queries.insert_observation(
                        self._session_id,
                        _CHANGE_OBSERVATIONS[change.type].value,
                        change.description,
                        file_path=diff.file_path,
                        symbol_name=change.name,
                        created_at=now,
                    )

            if change.type == ChangeType.REMOVED:
                self._detector.check_dead_end(diff.file_path, change.name)

        self._detector.check_thrash(diff.file_path)

    # -------------------------------------------------------------------------
    # Tool handlers
    # -------------------------------------------------------------------------

    def _handle_get_symbol(self, args: Mapping[str, Any], result: Any) -> None:
        name = args.get("name")
        found_in = _result_file(result) if result else None
        if found_in is None:
            file_path = args.get("file")
            if file_path and self._exists(file_path):
                self._insert_event(
                    SessionEventType.INDEX_BLIND_SPOT,
                    file_path=file_path,
                    symbol_name=name,
                    extra={"tool": "get_symbol"},
                )
            return
        self._record_access(found_in, name)

    def _handle_get_file_summary(self, args: Mapping[str, Any], result: Any) -> None:
        file_path = args.get("file")
        if not file_path:
            return
        if not result:
            if not self._exists(file_path):
                return
            now = self._clock()
            with self._db.immediate_transaction() as session:
                queries = MemoryQueries(session)
                queries.insert_event(
                    self._session_id,
                    SessionEventType.INDEX_BLIND_SPOT,
                    file_path=file_path,
                    extra={"tool": "get_file_summary"},
                    timestamp=now,
                )
                queries.insert_observation(
                    self._session_id,
                    ObservationType.ENVIRONMENT.value,
                    f"`{file_path}` exists on disk but is not indexed, consider running reindex",
                    file_path=file_path,
                    created_at=now,
                )
            return
        self._record_access(file_path)

    def _handle_get_context(self, args: Mapping[str, Any], result: Any) -> None:
        file_path = args.get("file")
        if file_path:
            self._record_access(file_path)

    def _handle_find_usages(self, args: Mapping[str, Any], result: Any) -> None:
        self._insert_event(SessionEventType.ACCESSED, symbol_name=args.get("symbol"))

    def _handle_search_symbols(self, args: Mapping[str, Any], result: Any) -> None:
        if result:
            return
        query = str(args.get("query", ""))
        attempt = self._state.record_failed_search(query)
        self._insert_event(
            SessionEventType.FAILED_SEARCH, extra={"query": query, "attempt": attempt}
        )
        self._detector.check_repeated_failed_search(query, attempt)

    def _record_tool_error(self, tool_name: str, args: Mapping[str, Any]) -> None:
        file_path = args.get("file") or args.get("target")
        count = self._state.record_tool_error(tool_name, file_path)
        self._insert_event(
            SessionEventType.TOOL_ERROR, file_path=file_path, extra={"tool": tool_name}
        )
        self._detector.check_tool_error_loop(tool_name, file_path, count)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _record_access(self, file_path: str, symbol_name: str | None = None) -> None:
        count = self._state.record_access(file_path, symbol_name)
        self._insert_event(SessionEventType.ACCESSED, file_path=file_path, symbol_name=symbol_name)
        self._detector.check_redundant_access(count, file_path, symbol_name)

    def _insert_event(
        self,
        event_type: SessionEventType,
        *,
        file_path: str | None = None,
        symbol_name: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        with self._db.immediate_transaction() as session:
            MemoryQueries(session).insert_event(
                self._session_id,
                event_type,
                file_path=file_path,
                symbol_name=symbol_name,
                extra=extra,
                timestamp=self._clock(),
            )

    def _exists(self, file_path: str) -> bool:
        return (self._root / file_path).exists()
