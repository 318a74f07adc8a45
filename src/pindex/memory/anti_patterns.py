"""Anti-pattern detection over a session's event history.

Each check writes its session event (when the pattern has one) and an
Observation row, and returns the Observation, or None when nothing fired.
Count-based checks fire at an exact count so a hot file produces a single
notification however long the session runs; history-based checks query
prior events of the same type and subject before emitting.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog

from pindex.config.constants import (
    FAILED_SEARCH_THRESHOLD,
    REDUNDANT_ACCESS_THRESHOLD,
    THRASH_MIN_CHANGES,
    THRASH_WINDOW_SEC,
    TOOL_ERROR_THRESHOLD,
)
from pindex.index.models import Observation, ObservationType, SessionEventType
from pindex.index.queries import MemoryQueries

if TYPE_CHECKING:
    from pindex.index._internal.db import Database

logger = structlog.get_logger()

_WINDOW_MINUTES = THRASH_WINDOW_SEC // 60
_DEAD_END_TYPES = frozenset(
    {SessionEventType.SYMBOL_ADDED.value, SessionEventType.SYMBOL_REMOVED.value}
)


class AntiPatternDetector:
    """Detects dead-ends, thrashing, redundant access, repeated failed
    searches and tool error loops for one session."""

    def __init__(
        self,
        db: Database,
        session_id: str,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db = db
        self._session_id = session_id
        self._clock = clock

    @property
    def session_id(self) -> str:
        return self._session_id

    def check_dead_end(self, file_path: str, symbol_name: str) -> Observation | None:
        """Symbol added and later removed in this session. Once per (file, symbol)."""
        with self._db.immediate_transaction() as session:
            queries = MemoryQueries(session)
            events = queries.get_session_events(
                self._session_id,
                [SessionEventType.SYMBOL_ADDED, SessionEventType.SYMBOL_REMOVED],
                file_path=file_path,
                symbol_name=symbol_name,
            )
            if not _DEAD_END_TYPES <= {e.event_type for e in events}:
                return None

            if queries.get_session_events(
                self._session_id,
                [SessionEventType.DEAD_END],
                file_path=file_path,
                symbol_name=symbol_name,
            ):
                return None

            now = self._clock()
            queries.insert_event(
                self._session_id,
                SessionEventType.DEAD_END,
                file_path=file_path,
                symbol_name=symbol_name,
                extra={"description": f"Added then removed `{symbol_name}`"},
                timestamp=now,
            )
            obs = queries.insert_observation(
                self._session_id,
                ObservationType.ANTI_PATTERN.value,
                f"Dead-end: `{symbol_name}` was added then removed in this session, "
                "possible false start",
                file_path=file_path,
                symbol_name=symbol_name,
                created_at=now,
            )
        logger.info("anti_pattern_detected", pattern="dead_end", path=file_path, symbol=symbol_name)
        return obs

    def check_thrash(self, file_path: str) -> Observation | None:
        """At least THRASH_MIN_CHANGES change events on a file inside the window.

        The window is inclusive: an event exactly THRASH_WINDOW_SEC old counts.
        A file re-arms once its last thrash emission is THRASH_WINDOW_SEC old.
        """
        now = self._clock()
        with self._db.immediate_transaction() as session:
            queries = MemoryQueries(session)
            recent = queries.get_recent_file_change_events(
                self._session_id, file_path, now - THRASH_WINDOW_SEC
            )
            if len(recent) < THRASH_MIN_CHANGES:
                return None

            previous = queries.get_session_events(
                self._session_id, [SessionEventType.THRASH_DETECTED], file_path=file_path
            )
            if previous and now - previous[-1].timestamp < THRASH_WINDOW_SEC:
                return None

            queries.insert_event(
                self._session_id,
                SessionEventType.THRASH_DETECTED,
                file_path=file_path,
                extra={"change_count": len(recent), "window_minutes": _WINDOW_MINUTES},
                timestamp=now,
            )
            obs = queries.insert_observation(
                self._session_id,
                ObservationType.ANTI_PATTERN.value,
                f"File thrashing: `{file_path}` changed {len(recent)}x "
                f"in {_WINDOW_MINUTES} minutes",
                file_path=file_path,
                created_at=now,
            )
        logger.info("anti_pattern_detected", pattern="thrash", path=file_path, changes=len(recent))
        return obs

    def check_redundant_access(
        self, count: int, file_path: str | None = None, symbol_name: str | None = None
    ) -> Observation | None:
        """Fires only when count is exactly REDUNDANT_ACCESS_THRESHOLD."""
        if count != REDUNDANT_ACCESS_THRESHOLD:
            return None

        what = f"`{symbol_name}` in `{file_path}`" if symbol_name else f"`{file_path}`"
        now = self._clock()
        with self._db.immediate_transaction() as session:
            queries = MemoryQueries(session)
            queries.insert_event(
                self._session_id,
                SessionEventType.REDUNDANT_ACCESS,
                file_path=file_path,
                symbol_name=symbol_name,
                extra={"count": count},
                timestamp=now,
            )
            obs = queries.insert_observation(
                self._session_id,
                ObservationType.ANTI_PATTERN.value,
                f"Redundant access: {what} accessed {count}+ times, "
                "context may not be retained between calls",
                file_path=file_path,
                symbol_name=symbol_name,
                created_at=now,
            )
        logger.info(
            "anti_pattern_detected", pattern="redundant_access", path=file_path, symbol=symbol_name
        )
        return obs

    def check_repeated_failed_search(self, query: str, attempt: int) -> Observation | None:
        """Fires only on the FAILED_SEARCH_THRESHOLD-th zero-result attempt."""
        if attempt != FAILED_SEARCH_THRESHOLD:
            return None

        with self._db.immediate_transaction() as session:
            obs = MemoryQueries(session).insert_observation(
                self._session_id,
                ObservationType.ANTI_PATTERN.value,
                f"Repeated failed search: `{query}` returned no results {attempt} times, "
                "symbol may be renamed or in an unindexed file",
                created_at=self._clock(),
            )
        logger.info("anti_pattern_detected", pattern="repeated_failed_search", query=query)
        return obs

    def check_tool_error_loop(
        self, tool_name: str, file_path: str | None, error_count: int
    ) -> Observation | None:
        """Fires only on the TOOL_ERROR_THRESHOLD-th failure; an environment observation."""
        if error_count != TOOL_ERROR_THRESHOLD:
            return None

        where = f" on `{file_path}`" if file_path else ""
        with self._db.immediate_transaction() as session:
            obs = MemoryQueries(session).insert_observation(
                self._session_id,
                ObservationType.ENVIRONMENT.value,
                f"Tool error loop: `{tool_name}` failed {error_count} times{where}, "
                "file may be unindexed, deleted or unreadable",
                file_path=file_path,
                created_at=self._clock(),
            )
        logger.info(
            "anti_pattern_detected", pattern="tool_error_loop", tool=tool_name, path=file_path
        )
        return obs
