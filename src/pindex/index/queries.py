"""Query helpers over the index and session-memory tables.

Both classes wrap a sqlmodel Session; the caller owns the transaction
(Database.session() for reads, Database.immediate_transaction() for writes).
"""

from __future__ import annotations

import json
import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete, insert, text, update
from sqlalchemy.exc import OperationalError
from sqlmodel import col, select

from pindex.config.constants import SEARCH_DEFAULT_LIMIT, SEARCH_MAX_LIMIT
from pindex.index.models import (
    AstSnapshot,
    Dependency,
    DocumentChunk,
    File,
    Observation,
    Session,
    SessionEvent,
    SessionEventType,
    SessionMode,
    Symbol,
)

if TYPE_CHECKING:
    from sqlmodel import Session as DbSession

logger = structlog.get_logger()


@dataclass(frozen=True)
class SymbolHit:
    """Ranked full-text hit on a symbol."""

    symbol_id: int
    name: str
    kind: str
    signature: str | None
    file_path: str
    start_line: int
    end_line: int
    rank: float


@dataclass(frozen=True)
class DocumentHit:
    """Ranked full-text hit on a document chunk."""

    chunk_id: int
    file_path: str
    chunk_index: int
    heading: str | None
    start_line: int
    end_line: int
    rank: float


def _clamp_limit(limit: int) -> int:
    return max(1, min(limit, SEARCH_MAX_LIMIT))


class IndexQueries:
    """Files, symbols, dependency edges, document chunks and full-text search."""

    def __init__(self, session: DbSession) -> None:
        self._session = session

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------

    def get_file_by_path(self, path: str) -> File | None:
        return self._session.exec(select(File).where(File.path == path)).first()

    def get_all_files(self, *, language: str | None = None) -> list[File]:
        stmt = select(File).order_by(col(File.path))
        if language is not None:
            stmt = stmt.where(File.language == language)
        return list(self._session.exec(stmt).all())

    def get_existing_file_ids(self, file_ids: Iterable[int]) -> set[int]:
        """The subset of file_ids that still have a File row."""
        ids = set(file_ids)
        if not ids:
            return set()
        stmt = select(File.id).where(col(File.id).in_(ids))
        return {file_id for file_id in self._session.exec(stmt).all() if file_id is not None}

    def upsert_file(
        self,
        path: str,
        *,
        language: str,
        content_hash: str,
        raw_token_estimate: int,
        indexed_at: float | None = None,
    ) -> tuple[File, bool]:
        """Insert or update the File row for path. Returns (file, created)."""
        file = self.get_file_by_path(path)
        created = file is None
        if file is None:
            file = File(path=path, language=language, content_hash=content_hash)
        file.language = language
        file.content_hash = content_hash
        file.raw_token_estimate = raw_token_estimate
        file.indexed_at = indexed_at if indexed_at is not None else time.time()
        self._session.add(file)
        self._session.flush()
        return file, created

    def delete_file(self, path: str) -> bool:
        """Delete a File row; symbols, edges and chunks go with it by cascade."""
        result = self._session.execute(delete(File).where(col(File.path) == path))
        return bool(result.rowcount)

    # -------------------------------------------------------------------------
    # Symbols
    # -------------------------------------------------------------------------

    def get_symbols_by_file(self, file_id: int) -> list[Symbol]:
        stmt = (
            select(Symbol)
            .where(Symbol.file_id == file_id)
            .order_by(col(Symbol.start_line), col(Symbol.id))
        )
        return list(self._session.exec(stmt).all())

    def get_symbol_by_name(self, name: str, *, file_path: str | None = None) -> Symbol | None:
        stmt = select(Symbol).where(Symbol.name == name)
        if file_path is not None:
            stmt = stmt.join(File, col(File.id) == col(Symbol.file_id)).where(
                File.path == file_path
            )
        return self._session.exec(stmt.order_by(col(Symbol.id))).first()

    def replace_symbols(self, file_id: int, symbols: Iterable[Symbol]) -> int:
        """Delete all symbols of a file and insert the given set."""
        self._session.execute(delete(Symbol).where(col(Symbol.file_id) == file_id))
        count = 0
        for sym in symbols:
            sym.file_id = file_id
            self._session.add(sym)
            count += 1
        self._session.flush()
        return count

    # -------------------------------------------------------------------------
    # Dependencies
    # -------------------------------------------------------------------------

    def delete_dependencies_from(self, file_id: int) -> None:
        self._session.execute(delete(Dependency).where(col(Dependency.from_file) == file_id))

    def insert_dependency(self, from_file: int, to_file: int, symbol_name: str | None) -> None:
        """Insert an edge; duplicates collapse on the unique expression index."""
        stmt = (
            insert(Dependency)
            .prefix_with("OR IGNORE")
            .values(from_file=from_file, to_file=to_file, symbol_name=symbol_name)
        )
        self._session.execute(stmt)

    def get_dependency_rows(self, file_id: int) -> list[Dependency]:
        stmt = (
            select(Dependency)
            .where(Dependency.from_file == file_id)
            .order_by(col(Dependency.to_file), col(Dependency.symbol_name))
        )
        return list(self._session.exec(stmt).all())

    def get_dependencies_by_file(self, file_id: int) -> list[str]:
        """Paths of the files that file_id imports from."""
        stmt = (
            select(File.path)
            .join(Dependency, col(Dependency.to_file) == col(File.id))
            .where(Dependency.from_file == file_id)
            .distinct()
            .order_by(col(File.path))
        )
        return list(self._session.exec(stmt).all())

    def get_imported_by_file(self, file_id: int) -> list[str]:
        """Paths of the files that import from file_id."""
        stmt = (
            select(File.path)
            .join(Dependency, col(Dependency.from_file) == col(File.id))
            .where(Dependency.to_file == file_id)
            .distinct()
            .order_by(col(File.path))
        )
        return list(self._session.exec(stmt).all())

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    def replace_document_chunks(self, file_id: int, chunks: Iterable[DocumentChunk]) -> int:
        self._session.execute(delete(DocumentChunk).where(col(DocumentChunk.file_id) == file_id))
        count = 0
        for chunk in chunks:
            chunk.file_id = file_id
            self._session.add(chunk)
            count += 1
        self._session.flush()
        return count

    def get_document_chunks(self, file_id: int) -> list[DocumentChunk]:
        stmt = (
            select(DocumentChunk)
            .where(DocumentChunk.file_id == file_id)
            .order_by(col(DocumentChunk.chunk_index))
        )
        return list(self._session.exec(stmt).all())

    # -------------------------------------------------------------------------
    # Full-text search
    # -------------------------------------------------------------------------

    def search_symbols(self, query: str, limit: int = SEARCH_DEFAULT_LIMIT) -> list[SymbolHit]:
        """Rank symbols by FTS5 bm25. Malformed query syntax yields []."""
        sql = text(
            """
            SELECT s.id, s.name, s.kind, s.signature, f.path, s.start_line, s.end_line,
                   symbols_fts.rank
            FROM symbols_fts
            JOIN symbols s ON s.id = symbols_fts.rowid
            JOIN files f ON f.id = s.file_id
            WHERE symbols_fts MATCH :query
            ORDER BY symbols_fts.rank
            LIMIT :limit
            """
        )
        rows = self._fts(sql, query, limit)
        return [SymbolHit(*row) for row in rows]

    def search_documents(self, query: str, limit: int = SEARCH_DEFAULT_LIMIT) -> list[DocumentHit]:
        """Rank document chunks by FTS5 bm25. Malformed query syntax yields []."""
        sql = text(
            """
            SELECT d.id, f.path, d.chunk_index, d.heading, d.start_line, d.end_line,
                   documents_fts.rank
            FROM documents_fts
            JOIN documents d ON d.id = documents_fts.rowid
            JOIN files f ON f.id = d.file_id
            WHERE documents_fts MATCH :query
            ORDER BY documents_fts.rank
            LIMIT :limit
            """
        )
        rows = self._fts(sql, query, limit)
        return [DocumentHit(*row) for row in rows]

    def _fts(self, sql: Any, query: str, limit: int) -> list[Any]:
        if not query.strip():
            return []
        try:
            return list(self._session.execute(sql, {"query": query, "limit": _clamp_limit(limit)}))
        except OperationalError as e:
            logger.debug("fts_query_rejected", query=query, error=str(e.orig))
            return []


class MemoryQueries:
    """Sessions, AST snapshots, session events and observations."""

    def __init__(self, session: DbSession) -> None:
        self._session = session

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    def create_session(
        self,
        session_id: str,
        *,
        mode: SessionMode = SessionMode.INDEXED,
        label: str | None = None,
        started_at: float | None = None,
    ) -> Session:
        row = Session(
            id=session_id,
            started_at=started_at if started_at is not None else time.time(),
            mode=mode.value,
            label=label,
        )
        self._session.add(row)
        self._session.flush()
        return row

    def get_session(self, session_id: str) -> Session | None:
        return self._session.get(Session, session_id)

    def get_latest_session(self) -> Session | None:
        stmt = select(Session).order_by(col(Session.started_at).desc())
        return self._session.exec(stmt).first()

    def add_session_tokens(self, session_id: str, tokens: int, savings: int = 0) -> None:
        self._session.execute(
            update(Session)
            .where(col(Session.id) == session_id)
            .values(
                total_tokens=col(Session.total_tokens) + tokens,
                total_savings=col(Session.total_savings) + savings,
            )
        )

    # -------------------------------------------------------------------------
    # AST snapshots
    # -------------------------------------------------------------------------

    def get_snapshots_by_file(self, file_path: str) -> list[AstSnapshot]:
        stmt = (
            select(AstSnapshot)
            .where(AstSnapshot.file_path == file_path)
            .order_by(col(AstSnapshot.symbol_name))
        )
        return list(self._session.exec(stmt).all())

    def replace_snapshots(self, file_path: str, snapshots: Iterable[AstSnapshot]) -> None:
        self._session.execute(delete(AstSnapshot).where(col(AstSnapshot.file_path) == file_path))
        for snap in snapshots:
            self._session.add(snap)
        self._session.flush()

    # -------------------------------------------------------------------------
    # Session events (append-only)
    # -------------------------------------------------------------------------

    def insert_event(
        self,
        session_id: str,
        event_type: SessionEventType,
        *,
        file_path: str | None = None,
        symbol_name: str | None = None,
        extra: dict[str, Any] | None = None,
        timestamp: float | None = None,
    ) -> SessionEvent:
        row = SessionEvent(
            session_id=session_id,
            event_type=event_type.value,
            file_path=file_path,
            symbol_name=symbol_name,
            extra_json=json.dumps(extra) if extra is not None else None,
            timestamp=timestamp if timestamp is not None else time.time(),
        )
        self._session.add(row)
        self._session.flush()
        return row

    def get_session_events(
        self,
        session_id: str,
        event_types: Iterable[SessionEventType] | None = None,
        *,
        file_path: str | None = None,
        symbol_name: str | None = None,
    ) -> list[SessionEvent]:
        """Events of a session in insertion order, optionally filtered."""
        stmt = select(SessionEvent).where(SessionEvent.session_id == session_id)
        if event_types is not None:
            stmt = stmt.where(col(SessionEvent.event_type).in_([t.value for t in event_types]))
        if file_path is not None:
            stmt = stmt.where(SessionEvent.file_path == file_path)
        if symbol_name is not None:
            stmt = stmt.where(SessionEvent.symbol_name == symbol_name)
        return list(self._session.exec(stmt.order_by(col(SessionEvent.id))).all())

    def get_recent_file_change_events(
        self, session_id: str, file_path: str, since: float
    ) -> list[SessionEvent]:
        """Change events on a file with timestamp >= since (inclusive window)."""
        stmt = (
            select(SessionEvent)
            .where(SessionEvent.session_id == session_id)
            .where(SessionEvent.file_path == file_path)
            .where(
                col(SessionEvent.event_type).in_(
                    [t.value for t in SessionEventType.change_types()]
                )
            )
            .where(SessionEvent.timestamp >= since)
            .order_by(col(SessionEvent.id))
        )
        return list(self._session.exec(stmt).all())

    # -------------------------------------------------------------------------
    # Observations
    # -------------------------------------------------------------------------

    def insert_observation(
        self,
        session_id: str,
        obs_type: str,
        observation: str,
        *,
        file_path: str | None = None,
        symbol_name: str | None = None,
        created_at: float | None = None,
    ) -> Observation:
        row = Observation(
            session_id=session_id,
            type=obs_type,
            file_path=file_path,
            symbol_name=symbol_name,
            observation=observation,
            created_at=created_at if created_at is not None else time.time(),
        )
        self._session.add(row)
        self._session.flush()
        return row

    def mark_observations_stale(self, file_path: str, symbol_name: str, reason: str) -> int:
        """Flag every live observation about (file, symbol) as stale. One-way."""
        result = self._session.execute(
            update(Observation)
            .where(col(Observation.file_path) == file_path)
            .where(col(Observation.symbol_name) == symbol_name)
            .where(col(Observation.stale) == False)  # noqa: E712
            .values(stale=True, stale_reason=reason)
        )
        return int(result.rowcount)

    def get_observations(
        self,
        *,
        session_id: str | None = None,
        file_path: str | None = None,
        symbol_name: str | None = None,
        include_stale: bool = True,
        limit: int | None = None,
    ) -> list[Observation]:
        """Observations in insertion order. With a limit, the newest N are kept."""
        stmt = select(Observation)
        if session_id is not None:
            stmt = stmt.where(Observation.session_id == session_id)
        if file_path is not None:
            stmt = stmt.where(Observation.file_path == file_path)
        if symbol_name is not None:
            stmt = stmt.where(Observation.symbol_name == symbol_name)
        if not include_stale:
            stmt = stmt.where(col(Observation.stale) == False)  # noqa: E712
        if limit is None:
            return list(self._session.exec(stmt.order_by(col(Observation.id))).all())
        newest = self._session.exec(stmt.order_by(col(Observation.id).desc()).limit(limit)).all()
        return list(reversed(newest))
