"""Indexing pipeline: first-pass indexer and second-pass dependency resolver."""

from pindex.index._internal.indexing.indexer import (
    Indexer,
    IndexFileResult,
    IndexResult,
    IndexStatus,
)
from pindex.index._internal.indexing.resolver import (
    DependencyResolver,
    FailureKind,
    ResolveFailure,
    ResolveResult,
    candidate_paths,
)

__all__ = [
    "DependencyResolver",
    "FailureKind",
    "Indexer",
    "IndexFileResult",
    "IndexResult",
    "IndexStatus",
    "ResolveFailure",
    "ResolveResult",
    "candidate_paths",
]
