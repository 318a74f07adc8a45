"""AST diff engine: classify symbol changes against the stored snapshot.

The snapshot for a file is a rolling baseline. The first observation of a
file seeds it and reports nothing; every later call reports changes relative
to the previous call and then replaces the snapshot with the new symbol set.

Output order is deterministic: removed and signature changes in snapshot
name order, then additions in the order the parser produced them.
"""

from __future__ import annotations

import hashlib
import re
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING

import structlog

from pindex.index._internal.diff.models import AstDiffResult, ChangeType, SymbolChange
from pindex.index.models import AstSnapshot
from pindex.index.queries import MemoryQueries

if TYPE_CHECKING:
    from sqlmodel import Session

    from pindex.index._internal.db import Database
    from pindex.index._internal.parsing import ParsedSymbol

logger = structlog.get_logger()

_WS_RE = re.compile(r"\s+")


def normalize_signature(signature: str) -> str:
    """Trim and collapse whitespace runs so reformatting is not a change."""
    return _WS_RE.sub(" ", signature.strip())


def hash_signature(signature: str) -> str:
    return hashlib.sha256(normalize_signature(signature).encode("utf-8")).hexdigest()[:16]


def compute_ast_diff(
    session: Session, file_path: str, new_symbols: Sequence[ParsedSymbol]
) -> AstDiffResult:
    """Diff new_symbols against the snapshot of file_path, then replace it.

    Runs in the caller's transaction.
    """
    queries = MemoryQueries(session)
    snapshots = queries.get_snapshots_by_file(file_path)

    # Name-indexed; a repeated name keeps its last declaration
    new_by_name: dict[str, ParsedSymbol] = {}
    for sym in new_symbols:
        new_by_name[sym.name] = sym

    changes: list[SymbolChange] = []
    if snapshots:
        old_names = set()
        for snap in snapshots:
            old_names.add(snap.symbol_name)
            sym = new_by_name.get(snap.symbol_name)
            if sym is None:
                changes.append(
                    SymbolChange(
                        ChangeType.REMOVED,
                        snap.symbol_name,
                        snap.kind,
                        old_signature=snap.signature,
                    )
                )
            elif hash_signature(sym.signature) != snap.signature_hash:
                changes.append(
                    SymbolChange(
                        ChangeType.SIG_CHANGED,
                        sym.name,
                        sym.kind.value,
                        old_signature=snap.signature,
                        new_signature=sym.signature,
                    )
                )
        for name, sym in new_by_name.items():
            if name not in old_names:
                changes.append(
                    SymbolChange(
                        ChangeType.ADDED, name, sym.kind.value, new_signature=sym.signature
                    )
                )

    now = time.time()
    queries.replace_snapshots(
        file_path,
        (
            AstSnapshot(
                file_path=file_path,
                symbol_name=sym.name,
                kind=sym.kind.value,
                signature=sym.signature,
                signature_hash=hash_signature(sym.signature),
                captured_at=now,
            )
            for sym in new_by_name.values()
        ),
    )

    if changes:
        logger.debug("ast_diff", path=file_path, changes=len(changes))
    return AstDiffResult(
        file_path=file_path,
        changes=tuple(changes),
        first_observation=not snapshots,
    )


class AstDiffEngine:
    """compute_ast_diff bound to a Database, for callers outside a transaction."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def compute_diff(self, file_path: str, new_symbols: Sequence[ParsedSymbol]) -> AstDiffResult:
        with self._db.immediate_transaction() as session:
            return compute_ast_diff(session, file_path, new_symbols)
