"""Index module - incremental structural index and session-memory store.

This module provides:
- Structural layer: files, symbols, import edges and document chunks
- Memory layer: AST snapshots, session events and observations

Public API is in `pindex.index.ops`:
- IndexCoordinator: High-level orchestration

Internal implementations are in `pindex.index._internal/`.
"""

from pindex.index.models import (
    AstSnapshot,
    Dependency,
    DocumentChunk,
    File,
    Observation,
    ObservationType,
    Session,
    SessionEvent,
    SessionEventType,
    SessionMode,
    Symbol,
    SymbolKind,
)
from pindex.index.queries import DocumentHit, IndexQueries, MemoryQueries, SymbolHit

__all__ = [
    "AstSnapshot",
    "Dependency",
    "DocumentChunk",
    "DocumentHit",
    "File",
    "IndexQueries",
    "MemoryQueries",
    "Observation",
    "ObservationType",
    "Session",
    "SessionEvent",
    "SessionEventType",
    "SessionMode",
    "Symbol",
    "SymbolHit",
    "SymbolKind",
]
