"""AST diffing against rolling per-file symbol snapshots."""

from pindex.index._internal.diff.engine import (
    AstDiffEngine,
    compute_ast_diff,
    hash_signature,
    normalize_signature,
)
from pindex.index._internal.diff.models import AstDiffResult, ChangeType, SymbolChange

__all__ = [
    "AstDiffEngine",
    "AstDiffResult",
    "ChangeType",
    "SymbolChange",
    "compute_ast_diff",
    "hash_signature",
    "normalize_signature",
]
