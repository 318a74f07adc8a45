"""Second-pass dependency resolution.

Import resolution needs the complete path -> file id map, which only exists
after every file has been indexed. The resolver therefore re-reads and
re-parses each indexed source file and links its relative imports to files
that exist both on disk and in the index. Package imports are never modelled.

Per-file problems are returned as ResolveFailure records; the caller decides
whether to log them. Edges are best-effort: a target removed while the pass
runs is reported as not indexed and its edge is dropped.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.exc import IntegrityError

from pindex.index._internal.parsing import ParsedImport, ParserAdapter, is_document_language
from pindex.index.queries import IndexQueries

if TYPE_CHECKING:
    from pindex.index._internal.db import Database

logger = structlog.get_logger()

JS_CANDIDATE_SUFFIXES: tuple[str, ...] = (
    "",
    ".ts",
    ".tsx",
    ".js",
    ".jsx",
    ".mjs",
    ".cjs",
    "/index.ts",
    "/index.tsx",
    "/index.js",
)


class FailureKind(str, Enum):
    READ = "read"
    PARSE = "parse"
    UNRESOLVED = "unresolved"
    NOT_INDEXED = "not_indexed"


@dataclass(frozen=True)
class ResolveFailure:
    path: str
    kind: FailureKind
    detail: str


@dataclass
class ResolveResult:
    files: int = 0
    edges: int = 0
    failures: list[ResolveFailure] = field(default_factory=list)


def candidate_paths(from_path: str, source: str, language: str) -> list[str]:
    """Project-relative candidates for a relative import, in priority order."""
    from_dir = posixpath.dirname(from_path)

    if language == "python":
        stripped = source.lstrip(".")
        base = from_dir
        for _ in range(len(source) - len(stripped) - 1):
            base = posixpath.dirname(base)
        if not stripped:
            bases = [posixpath.join(base, "__init__.py")]
        else:
            module = posixpath.join(base, *stripped.split("."))
            bases = [f"{module}.py", posixpath.join(module, "__init__.py")]
        candidates = bases
    else:
        target = posixpath.join(from_dir, source)
        candidates = [target + suffix for suffix in JS_CANDIDATE_SUFFIXES]

    normalized = []
    for candidate in candidates:
        norm = posixpath.normpath(candidate)
        if norm == ".." or norm.startswith("../") or norm.startswith("/"):
            continue
        normalized.append(norm)
    return normalized


class DependencyResolver:
    """Rebuilds Dependency rows from relative imports.

    Usage after Indexer.index_all()::

        result = DependencyResolver(db, root).resolve()
        for failure in result.failures:
            logger.debug("resolve_failure", path=failure.path, kind=failure.kind)
    """

    def __init__(self, db: Database, root: Path, parser: ParserAdapter | None = None) -> None:
        self._db = db
        self._root = root.resolve()
        self._parser = parser or ParserAdapter()

    def resolve(self) -> ResolveResult:
        result = ResolveResult()

        with self._db.session() as session:
            files = IndexQueries(session).get_all_files()
        path_index = {f.path: f.id for f in files if f.id is not None}

        for file in files:
            if file.id is None or is_document_language(file.language):
                continue
            if not self._parser.supports(file.language):
                continue
            edges = self._resolve_file(file.path, path_index, result)
            if edges is None:
                continue
            try:
                written = self._write_edges(file.id, file.path, edges, result)
            except IntegrityError as e:
                result.failures.append(
                    ResolveFailure(file.path, FailureKind.NOT_INDEXED, str(e.orig))
                )
                continue
            if written is None:
                continue
            result.files += 1
            result.edges += written

        logger.info(
            "dependencies_resolved",
            files=result.files,
            edges=result.edges,
            failures=len(result.failures),
        )
        return result

    def _write_edges(
        self,
        file_id: int,
        rel_path: str,
        edges: list[tuple[int, str | None]],
        result: ResolveResult,
    ) -> int | None:
        """Replace a file's outgoing edges. Targets removed since the scan are skipped.

        Returns None when the importing file itself is gone.
        """
        with self._db.immediate_transaction() as session:
            queries = IndexQueries(session)
            live = queries.get_existing_file_ids([file_id, *(to for to, _ in edges)])
            if file_id not in live:
                return None
            queries.delete_dependencies_from(file_id)
            written = 0
            for to_file, symbol_name in edges:
                if to_file not in live:
                    result.failures.append(
                        ResolveFailure(rel_path, FailureKind.NOT_INDEXED, f"file id {to_file}")
                    )
                    continue
                queries.insert_dependency(file_id, to_file, symbol_name)
                written += 1
            return written

    def _resolve_file(
        self, rel_path: str, path_index: dict[str, int], result: ResolveResult
    ) -> list[tuple[int, str | None]] | None:
        abs_path = self._root / rel_path
        try:
            content = abs_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            result.failures.append(ResolveFailure(rel_path, FailureKind.READ, str(e)))
            return None

        try:
            parsed = self._parser.parse(rel_path, content)
        except Exception as e:
            result.failures.append(ResolveFailure(rel_path, FailureKind.PARSE, str(e)))
            return None

        edges: list[tuple[int, str | None]] = []
        for imp in parsed.imports:
            if not imp.is_relative:
                continue
            if parsed.language == "python" and not imp.source.strip(".") and imp.symbols:
                edges.extend(self._resolve_package_names(rel_path, imp, path_index, result))
                continue
            target = self._resolve_import(rel_path, imp.source, parsed.language, path_index, result)
            if target is None:
                continue
            for name in imp.symbols or [None]:
                edges.append((target, name))
        return edges

    def _resolve_package_names(
        self,
        rel_path: str,
        imp: ParsedImport,
        path_index: dict[str, int],
        result: ResolveResult,
    ) -> list[tuple[int, str | None]]:
        """`from . import a, b`: each name is a sibling module or a package attribute."""
        edges: list[tuple[int, str | None]] = []
        for name in imp.symbols:
            module = f"{imp.source}{name}"
            if self._on_disk(candidate_paths(rel_path, module, "python")):
                target = self._resolve_import(rel_path, module, "python", path_index, result)
                if target is not None:
                    edges.append((target, None))
                continue
            target = self._resolve_import(rel_path, imp.source, "python", path_index, result)
            if target is not None:
                edges.append((target, name))
        return edges

    def _on_disk(self, candidates: list[str]) -> bool:
        return any((self._root / candidate).is_file() for candidate in candidates)

    def _resolve_import(
        self,
        rel_path: str,
        source: str,
        language: str,
        path_index: dict[str, int],
        result: ResolveResult,
    ) -> int | None:
        for candidate in candidate_paths(rel_path, source, language):
            if not (self._root / candidate).is_file():
                continue
            file_id = path_index.get(candidate)
            if file_id is None:
                result.failures.append(
                    ResolveFailure(rel_path, FailureKind.NOT_INDEXED, f"{source} -> {candidate}")
                )
                return None
            return file_id
        result.failures.append(ResolveFailure(rel_path, FailureKind.UNRESOLVED, source))
        return None
