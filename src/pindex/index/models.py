"""SQLModel definitions for the structural index and the session memory.

Single source of truth for all table schemas.

Architecture:
- Structural index: files, symbols, import edges and document chunks, rebuilt
  incrementally from tree-sitter parses.
- Session memory: AST snapshots, append-only session events and observations
  about how an agent session used the index.

Snapshots are keyed by path, not by file id, so they survive file row
deletion. Symbols and snapshots are separate sets; only the AST diff engine
reconciles them.
"""

import json
from enum import Enum
from typing import Any

from sqlalchemy import Column, ForeignKey, Integer, UniqueConstraint
from sqlmodel import Field, SQLModel

# ============================================================================
# ENUMS
# ============================================================================


class SymbolKind(str, Enum):
    """Kind of an extracted symbol."""

    FUNCTION = "function"
    CLASS = "class"
    METHOD = "method"
    CONST = "const"
    TYPE = "type"
    INTERFACE = "interface"
    ENUM = "enum"
    VARIABLE = "variable"


class SessionMode(str, Enum):
    INDEXED = "indexed"
    BASELINE = "baseline"


class SessionEventType(str, Enum):
    """Raw, append-only session event types."""

    ACCESSED = "accessed"
    SYMBOL_ADDED = "symbol_added"
    SYMBOL_REMOVED = "symbol_removed"
    SIG_CHANGED = "sig_changed"
    FAILED_SEARCH = "failed_search"
    TOOL_ERROR = "tool_error"
    DEAD_END = "dead_end"
    THRASH_DETECTED = "thrash_detected"
    REDUNDANT_ACCESS = "redundant_access"
    INDEX_BLIND_SPOT = "index_blind_spot"

    @classmethod
    def change_types(cls) -> "frozenset[SessionEventType]":
        """Event types that count as a file change for thrash detection."""
        return frozenset({cls.SYMBOL_ADDED, cls.SYMBOL_REMOVED, cls.SIG_CHANGED})

    @classmethod
    def anti_pattern_types(cls) -> "frozenset[SessionEventType]":
        """Event types written by anti-pattern detection."""
        return frozenset({cls.DEAD_END, cls.THRASH_DETECTED, cls.REDUNDANT_ACCESS})


class ObservationType(str, Enum):
    SYMBOL_ADDED = "symbol_added"
    SYMBOL_REMOVED = "symbol_removed"
    SIG_CHANGED = "sig_changed"
    ANTI_PATTERN = "anti_pattern"
    ENVIRONMENT = "environment"


# ============================================================================
# STRUCTURAL INDEX TABLES
# ============================================================================


class File(SQLModel, table=True):
    """Tracked file in the project. Path is project-relative, POSIX separators."""

    __tablename__ = "files"

    id: int | None = Field(default=None, primary_key=True)
    path: str = Field(unique=True, index=True)
    language: str
    content_hash: str
    raw_token_estimate: int = 0
    indexed_at: float | None = None
    summary: str | None = None


class Symbol(SQLModel, table=True):
    """Named declaration extracted from a file. Replaced wholesale on re-index."""

    __tablename__ = "symbols"

    id: int | None = Field(default=None, primary_key=True)
    file_id: int = Field(
        sa_column=Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), index=True)
    )
    name: str = Field(index=True)
    kind: str
    signature: str | None = None
    summary: str | None = None
    start_line: int
    end_line: int
    is_exported: bool = False


class Dependency(SQLModel, table=True):
    """Import edge between two indexed files.

    Uniqueness of (from_file, to_file, symbol_name) with NULL treated as a
    value is enforced by an expression index, see create_additional_indexes().
    """

    __tablename__ = "dependencies"

    id: int | None = Field(default=None, primary_key=True)
    from_file: int = Field(
        sa_column=Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), index=True)
    )
    to_file: int = Field(
        sa_column=Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), index=True)
    )
    symbol_name: str | None = None


class DocumentChunk(SQLModel, table=True):
    """Contiguous chunk of a documentation file."""

    __tablename__ = "documents"

    id: int | None = Field(default=None, primary_key=True)
    file_id: int = Field(
        sa_column=Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), index=True)
    )
    chunk_index: int
    heading: str | None = None
    start_line: int
    end_line: int
    content: str


# ============================================================================
# SESSION MEMORY TABLES
# ============================================================================


class AstSnapshot(SQLModel, table=True):
    """Last-seen signature of a symbol, the baseline for AST diffs."""

    __tablename__ = "ast_snapshots"
    __table_args__ = (UniqueConstraint("file_path", "symbol_name"),)

    id: int | None = Field(default=None, primary_key=True)
    file_path: str = Field(index=True)
    symbol_name: str
    kind: str
    signature: str | None = None
    signature_hash: str
    captured_at: float


class Session(SQLModel, table=True):
    """One agent session."""

    __tablename__ = "sessions"

    id: str = Field(primary_key=True)
    started_at: float
    mode: str = Field(default=SessionMode.INDEXED.value)
    label: str | None = None
    total_tokens: int = 0
    total_savings: int = 0


class SessionEvent(SQLModel, table=True):
    """Append-only raw session event. Never updated or deleted."""

    __tablename__ = "session_events"

    id: int | None = Field(default=None, primary_key=True)
    session_id: str = Field(index=True)
    event_type: str = Field(index=True)
    file_path: str | None = Field(default=None, index=True)
    symbol_name: str | None = None
    extra_json: str | None = None
    timestamp: float = Field(index=True)

    def get_extra(self) -> dict[str, Any]:
        """Parse extra_json to dict."""
        if self.extra_json is None:
            return {}
        result: dict[str, Any] = json.loads(self.extra_json)
        return result


class Observation(SQLModel, table=True):
    """Interpreted, human-readable note about a session.

    Stale is a one-way transition set when a later diff changes or removes
    the symbol the observation is about.
    """

    __tablename__ = "session_observations"

    id: int | None = Field(default=None, primary_key=True)
    session_id: str = Field(index=True)
    type: str
    file_path: str | None = Field(default=None, index=True)
    symbol_name: str | None = None
    observation: str
    stale: bool = False
    stale_reason: str | None = None
    created_at: float
