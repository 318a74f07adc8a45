"""File discovery for full index passes."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from pindex.core.errors import IndexingError
from pindex.index._internal.ignore import IgnoreChecker, matches_glob

logger = structlog.get_logger()


@dataclass
class DiscoveryResult:
    """Project-relative POSIX paths, sorted, plus non-fatal walk errors."""

    code_paths: list[str] = field(default_factory=list)
    document_paths: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class FileScanner:
    """Walks the project root once, pruning ignored directories."""

    def __init__(self, root: Path, ignore: IgnoreChecker) -> None:
        self._root = root
        self._ignore = ignore

    def scan(self, code_patterns: list[str], document_patterns: list[str]) -> DiscoveryResult:
        """Classify every non-ignored file as code, document or neither.

        Raises:
            IndexingError: The root does not exist or cannot be listed.
        """
        if not self._root.is_dir():
            raise IndexingError.root_not_found(str(self._root))

        result = DiscoveryResult()

        def on_error(err: OSError) -> None:
            if Path(err.filename or "") == self._root:
                raise IndexingError.root_unreadable(str(self._root), err.strerror or str(err))
            result.errors.append(f"Failed to list {err.filename}: {err.strerror or err}")

        for dirpath, dirnames, filenames in os.walk(self._root, onerror=on_error):
            dirnames[:] = sorted(d for d in dirnames if not self._ignore.should_prune_dir(d))
            rel_dir = Path(dirpath).relative_to(self._root).as_posix()
            for filename in sorted(filenames):
                rel_path = filename if rel_dir == "." else f"{rel_dir}/{filename}"
                if self._ignore.is_excluded_rel(rel_path):
                    continue
                if any(matches_glob(rel_path, p) for p in code_patterns):
                    result.code_paths.append(rel_path)
                elif any(matches_glob(rel_path, p) for p in document_patterns):
                    result.document_paths.append(rel_path)

        result.code_paths.sort()
        result.document_paths.sort()
        logger.debug(
            "discovery_complete",
            code_files=len(result.code_paths),
            document_files=len(result.document_paths),
            errors=len(result.errors),
        )
        return result
