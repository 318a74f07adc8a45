"""Session memory report: observations and anti-patterns for a session."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from pindex.index.models import Observation, SessionEvent, SessionEventType
from pindex.index.queries import MemoryQueries

if TYPE_CHECKING:
    from pindex.index._internal.db import Database

FILE_OBSERVATION_LIMIT = 20


class SessionHeader(BaseModel):
    id: str
    started_at: float
    mode: str | None = None
    label: str | None = None


class ObservationEntry(BaseModel):
    type: str
    file: str | None = None
    symbol: str | None = None
    text: str
    stale: bool = False
    stale_reason: str | None = None
    created_at: float

    @classmethod
    def from_row(cls, row: Observation) -> ObservationEntry:
        return cls(
            type=row.type,
            file=row.file_path,
            symbol=row.symbol_name,
            text=row.observation,
            stale=row.stale,
            stale_reason=row.stale_reason,
            created_at=row.created_at,
        )


class AntiPatternEntry(BaseModel):
    type: str
    file: str | None = None
    symbol: str | None = None
    text: str
    timestamp: float

    @classmethod
    def from_row(cls, row: SessionEvent) -> AntiPatternEntry:
        description = row.get_extra().get("description")
        return cls(
            type=row.event_type,
            file=row.file_path,
            symbol=row.symbol_name,
            text=description if isinstance(description, str) else row.event_type,
            timestamp=row.timestamp,
        )


class SessionMemoryReport(BaseModel):
    current_session: SessionHeader
    observations: list[ObservationEntry] = Field(default_factory=list)
    anti_patterns: list[AntiPatternEntry] = Field(default_factory=list)
    stale_count: int = 0
    stale_warning: str | None = None


def _stale_warning(count: int) -> str | None:
    if count == 0:
        return None
    plural = "s" if count > 1 else ""
    return (
        f"{count} observation{plural} linked to code that has since changed, "
        "re-evaluate before relying on them"
    )


def get_session_memory(
    db: Database,
    current_session_id: str,
    session_id: str | None = None,
    file: str | None = None,
    symbol: str | None = None,
    include_stale: bool = False,
) -> SessionMemoryReport:
    """Build the memory report for a session (the current one by default).

    A file filter looks across sessions and keeps the newest
    FILE_OBSERVATION_LIMIT observations; without one, the target session's
    observations are returned. A symbol filter only applies with a file.
    stale_count always counts stale observations in scope, whether or not
    they are included in the listing.
    """
    target = session_id or current_session_id

    with db.session() as session:
        queries = MemoryQueries(session)
        row = queries.get_session(target)
        if file:
            observations = queries.get_observations(
                file_path=file, symbol_name=symbol, limit=FILE_OBSERVATION_LIMIT
            )
        else:
            observations = queries.get_observations(session_id=target)
        events = queries.get_session_events(target, sorted(SessionEventType.anti_pattern_types()))

    stale_count = sum(1 for o in observations if o.stale)
    if not include_stale:
        observations = [o for o in observations if not o.stale]

    header = (
        SessionHeader(id=row.id, started_at=row.started_at, mode=row.mode, label=row.label)
        if row is not None
        else SessionHeader(id=target, started_at=time.time())
    )
    return SessionMemoryReport(
        current_session=header,
        observations=[ObservationEntry.from_row(o) for o in observations],
        anti_patterns=[AntiPatternEntry.from_row(e) for e in events],
        stale_count=stale_count,
        stale_warning=_stale_warning(stale_count),
    )
