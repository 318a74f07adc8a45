"""Incremental indexer: files, symbols and document chunks.

Per-file work happens in two steps. A read session checks the stored
content hash so an unchanged file is skipped without parsing. Otherwise the
file is parsed outside any transaction, and a single BEGIN IMMEDIATE
transaction re-checks the hash, upserts the File row, replaces its symbols,
clears its outgoing dependency edges and (when diff tracking is on)
diffs and replaces the AST snapshot. A crash can never leave symbols from
two versions of a file.

Dependency edges are rebuilt by the DependencyResolver once every file is
known.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

import structlog

from pindex.config.models import IndexConfig
from pindex.core.errors import IndexingError
from pindex.index._internal.diff import compute_ast_diff
from pindex.index._internal.discovery import FileScanner
from pindex.index._internal.ignore import IgnoreChecker
from pindex.index._internal.parsing import (
    ParsedFile,
    ParserAdapter,
    build_code_patterns,
    hash_content,
    parse_document,
)
from pindex.index.models import DocumentChunk, Symbol
from pindex.index.queries import IndexQueries

if TYPE_CHECKING:
    from pindex.index._internal.db import Database
    from pindex.index._internal.diff import AstDiffResult

logger = structlog.get_logger()


class IndexStatus(str, Enum):
    INDEXED = "indexed"
    UPDATED = "updated"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass
class IndexFileResult:
    """Outcome of indexing one file."""

    path: str
    status: IndexStatus
    errors: list[str] = field(default_factory=list)
    diff: AstDiffResult | None = None


@dataclass
class IndexResult:
    """Aggregate outcome of index_all. Errors never abort the batch."""

    indexed: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    def add(self, file_result: IndexFileResult) -> None:
        if file_result.status == IndexStatus.INDEXED:
            self.indexed += 1
        elif file_result.status == IndexStatus.UPDATED:
            self.updated += 1
        elif file_result.status == IndexStatus.SKIPPED:
            self.skipped += 1
        self.errors.extend(file_result.errors)


class Indexer:
    """Maintains File, Symbol and DocumentChunk rows for one project root.

    Usage::

        indexer = Indexer(db, Path("/repo"))
        result = indexer.index_all()
        DependencyResolver(db, Path("/repo")).resolve()
    """

    def __init__(
        self,
        db: Database,
        root: Path,
        config: IndexConfig | None = None,
        *,
        parser: ParserAdapter | None = None,
        track_diffs: bool = False,
    ) -> None:
        self._db = db
        self._root = root.resolve()
        self._config = config or IndexConfig()
        self._parser = parser or ParserAdapter()
        self._track_diffs = track_diffs
        self._ignore = IgnoreChecker(self._root, self._config.ignore_patterns)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def ignore_checker(self) -> IgnoreChecker:
        return self._ignore

    @property
    def parser(self) -> ParserAdapter:
        return self._parser

    @property
    def code_patterns(self) -> list[str]:
        return build_code_patterns(list(self._config.languages))

    @property
    def document_patterns(self) -> list[str]:
        return list(self._config.document_patterns) if self._config.index_documents else []

    # -------------------------------------------------------------------------
    # Batch
    # -------------------------------------------------------------------------

    def index_all(
        self, *, force: bool = False, additional_paths: list[str] | None = None
    ) -> IndexResult:
        """Discover and index every code and document file under the root.

        Raises:
            IndexingError: The project root cannot be enumerated.
        """
        discovered = FileScanner(self._root, self._ignore).scan(
            self.code_patterns, self.document_patterns
        )
        result = IndexResult(errors=list(discovered.errors))

        code_paths = list(discovered.code_paths)
        for extra in additional_paths or []:
            rel = self.relative_path(extra)
            if rel is not None and rel not in code_paths:
                code_paths.append(rel)

        for rel_path in code_paths:
            result.add(self.index_file(rel_path, force=force))
        for rel_path in discovered.document_paths:
            result.add(self.index_document(rel_path, force=force))

        logger.info(
            "index_all_complete",
            indexed=result.indexed,
            updated=result.updated,
            skipped=result.skipped,
            errors=len(result.errors),
        )
        return result

    # -------------------------------------------------------------------------
    # Single file
    # -------------------------------------------------------------------------

    def index_file(self, path: str, *, force: bool = False) -> IndexFileResult:
        """Index one source file given a project-relative (or absolute) path."""
        rel_path = self.relative_path(path)
        if rel_path is None:
            return _error(path, IndexingError.outside_root(str(path), str(self._root)).message)

        content, err = self._read(rel_path)
        if content is None:
            return _error(rel_path, err)

        content_hash = hash_content(content)
        if not force and self._stored_hash(rel_path) == content_hash:
            return IndexFileResult(rel_path, IndexStatus.SKIPPED)

        try:
            parsed = self._parser.parse(rel_path, content)
        except Exception as e:
            logger.warning("parse_failed", path=rel_path, error=str(e), exc_info=True)
            return _error(rel_path, f"Failed to index {rel_path}: {e}")

        with self._db.immediate_transaction() as session:
            queries = IndexQueries(session)
            existing = queries.get_file_by_path(rel_path)
            if not force and existing is not None and existing.content_hash == content_hash:
                return IndexFileResult(rel_path, IndexStatus.SKIPPED)

            file, created = queries.upsert_file(
                rel_path,
                language=parsed.language,
                content_hash=content_hash,
                raw_token_estimate=parsed.raw_token_estimate,
            )
            assert file.id is not None
            queries.replace_symbols(file.id, _symbol_rows(parsed))
            queries.delete_dependencies_from(file.id)

            diff = None
            if self._track_diffs:
                diff = compute_ast_diff(session, rel_path, parsed.symbols)

        status = IndexStatus.INDEXED if created else IndexStatus.UPDATED
        logger.debug(
            "file_indexed",
            path=rel_path,
            status=status.value,
            symbols=len(parsed.symbols),
            parse_errors=parsed.error_count,
        )
        return IndexFileResult(rel_path, status, diff=diff)

    def index_document(self, path: str, *, force: bool = False) -> IndexFileResult:
        """Index one documentation file as text chunks."""
        rel_path = self.relative_path(path)
        if rel_path is None:
            return _error(path, IndexingError.outside_root(str(path), str(self._root)).message)

        content, err = self._read(rel_path)
        if content is None:
            return _error(rel_path, err)

        content_hash = hash_content(content)
        if not force and self._stored_hash(rel_path) == content_hash:
            return IndexFileResult(rel_path, IndexStatus.SKIPPED)

        parsed = parse_document(rel_path, content)

        with self._db.immediate_transaction() as session:
            queries = IndexQueries(session)
            existing = queries.get_file_by_path(rel_path)
            if not force and existing is not None and existing.content_hash == content_hash:
                return IndexFileResult(rel_path, IndexStatus.SKIPPED)

            file, created = queries.upsert_file(
                rel_path,
                language=parsed.language,
                content_hash=content_hash,
                raw_token_estimate=parsed.raw_token_estimate,
            )
            assert file.id is not None
            queries.replace_document_chunks(
                file.id,
                (
                    DocumentChunk(
                        file_id=file.id,
                        chunk_index=c.chunk_index,
                        heading=c.heading,
                        start_line=c.start_line,
                        end_line=c.end_line,
                        content=c.content,
                    )
                    for c in parsed.chunks
                ),
            )

        status = IndexStatus.INDEXED if created else IndexStatus.UPDATED
        logger.debug(
            "document_indexed", path=rel_path, status=status.value, chunks=len(parsed.chunks)
        )
        return IndexFileResult(rel_path, status)

    def remove_file(self, path: str) -> bool:
        """Drop a file and everything that cascades from it. Snapshots are kept."""
        rel_path = self.relative_path(path)
        if rel_path is None:
            return False
        with self._db.immediate_transaction() as session:
            removed = IndexQueries(session).delete_file(rel_path)
        if removed:
            logger.debug("file_removed", path=rel_path)
        return removed

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def relative_path(self, path: str | Path) -> str | None:
        """Project-relative POSIX path, or None when path escapes the root."""
        candidate = Path(path)
        if candidate.is_absolute():
            try:
                candidate = candidate.resolve().relative_to(self._root)
            except ValueError:
                return None
        rel = PurePosixPath(candidate.as_posix())
        if ".." in rel.parts:
            return None
        return rel.as_posix()

    def _read(self, rel_path: str) -> tuple[str | None, str]:
        abs_path = self._root / rel_path
        if not abs_path.is_file():
            return None, f"File not found: {rel_path}"
        try:
            limit_mb = self._config.max_file_size_mb
            if abs_path.stat().st_size > limit_mb * 1024 * 1024:
                return None, f"File too large: {rel_path} exceeds {limit_mb} MB"
            return abs_path.read_text(encoding="utf-8"), ""
        except (OSError, UnicodeDecodeError) as e:
            return None, f"Failed to read {rel_path}: {e}"

    def _stored_hash(self, rel_path: str) -> str | None:
        with self._db.session() as session:
            existing = IndexQueries(session).get_file_by_path(rel_path)
            return existing.content_hash if existing is not None else None


def _error(path: str, message: str) -> IndexFileResult:
    logger.debug("index_file_error", path=path, error=message)
    return IndexFileResult(path, IndexStatus.ERROR, errors=[message])


def _symbol_rows(parsed: ParsedFile) -> list[Symbol]:
    return [
        Symbol(
            file_id=0,
            name=sym.name,
            kind=sym.kind.value,
            signature=sym.signature,
            start_line=sym.start_line,
            end_line=sym.end_line,
            is_exported=sym.is_exported,
        )
        for sym in parsed.symbols
    ]
