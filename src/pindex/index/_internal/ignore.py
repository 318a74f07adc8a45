"""Shared ignore/exclude pattern matching with tiered architecture.

Used by discovery (full scans) and the file watcher (runtime filtering), so
both agree on what is part of the index.

Tiered Architecture:
- HARDCODED_DIRS: Always excluded, cannot be overridden (VCS, .pindex)
- DEFAULT_PRUNABLE_DIRS: Excluded by default, user can opt-in via !pattern
- DEFAULT_IGNORE_FILES: generated files (minified bundles, .d.ts, bytecode)
- .pindexignore and configured patterns: user file/directory patterns
"""

from __future__ import annotations

import fnmatch
from pathlib import Path, PurePosixPath

import structlog

from pindex.core.excludes import (
    DEFAULT_IGNORE_FILES,
    DEFAULT_PRUNABLE_DIRS,
    HARDCODED_DIRS,
    PRUNABLE_DIRS,
    is_default_prunable,
    is_hardcoded_dir,
)

__all__ = [
    "PRUNABLE_DIRS",
    "HARDCODED_DIRS",
    "DEFAULT_PRUNABLE_DIRS",
    "IgnoreChecker",
    "matches_glob",
]

logger = structlog.get_logger()


class IgnoreChecker:
    """Checks if paths should be ignored based on tiered patterns.

    Pattern syntax:
    - Standard glob patterns (fnmatch)
    - Directory patterns ending in / match contents
    - Negation with ! prefix (e.g., !vendor/ to opt-in the vendor directory)
    """

    IGNORE_FILE_NAME = ".pindexignore"

    def __init__(self, root: Path, extra_patterns: list[str] | None = None) -> None:
        self._root = root
        self._patterns: list[str] = [f"**/{d}/**" for d in sorted(DEFAULT_PRUNABLE_DIRS)]
        self._patterns.extend(DEFAULT_IGNORE_FILES)
        self._negated_dirs: set[str] = set()
        ignore_file = root / self.IGNORE_FILE_NAME
        if ignore_file.is_file():
            self._load_ignore_file(ignore_file)
        if extra_patterns:
            for pattern in extra_patterns:
                self._add_pattern(pattern)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def negated_dirs(self) -> frozenset[str]:
        """Directory names opted back in with !name in .pindexignore."""
        return frozenset(self._negated_dirs)

    def should_prune_dir(self, dirname: str) -> bool:
        """Check if a directory (by name) should be skipped during traversal."""
        if is_hardcoded_dir(dirname):
            return True
        if is_default_prunable(dirname):
            return dirname not in self._negated_dirs
        return False

    def _load_ignore_file(self, path: Path) -> None:
        try:
            content = path.read_text()
        except OSError as e:
            logger.warning("ignore_file_unreadable", path=str(path), error=str(e))
            return
        for line in content.splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                self._add_pattern(line)

    def _add_pattern(self, line: str) -> None:
        is_negation = line.startswith("!")
        if is_negation:
            line = line[1:]
            dir_name = line.rstrip("/")
            if dir_name and "/" not in dir_name and "*" not in dir_name:
                self._negated_dirs.add(dir_name)

        # Directory patterns (ending in /) match all contents
        pattern = f"{line}**" if line.endswith("/") else line
        # Bare patterns without a slash match at any depth, like .gitignore
        if "/" not in line.rstrip("/") and not pattern.startswith("**/"):
            pattern = f"**/{pattern}"
        self._patterns.append(f"!{pattern}" if is_negation else pattern)

    def is_excluded_rel(self, rel_path: str) -> bool:
        """Check a project-relative POSIX path against all patterns."""
        rel_posix = rel_path.replace("\\", "/")
        parts = PurePosixPath(rel_posix).parts
        if any(is_hardcoded_dir(p) for p in parts[:-1]):
            return True

        excluded = False
        for pattern in self._patterns:
            if pattern.startswith("!"):
                if _matches_path_or_parent(rel_posix, pattern[1:]):
                    excluded = False
                continue
            if _matches_path_or_parent(rel_posix, pattern):
                excluded = True
        return excluded

    def should_ignore(self, path: Path) -> bool:
        """Check an absolute path; paths outside the root are always ignored."""
        try:
            rel_path = path.relative_to(self._root)
        except ValueError:
            return True
        return self.is_excluded_rel(rel_path.as_posix())


def _matches_path_or_parent(rel_posix: str, pattern: str) -> bool:
    if matches_glob(rel_posix, pattern):
        return True
    return any(
        matches_glob(parent.as_posix(), pattern)
        for parent in PurePosixPath(rel_posix).parents
        if parent != PurePosixPath(".")
    )


def matches_glob(rel_path: str, pattern: str) -> bool:
    """Check if a path matches a glob pattern, with ** support."""
    if fnmatch.fnmatch(rel_path, pattern):
        return True
    # Handle **/pattern for any-depth matching
    if pattern.startswith("**/"):
        return fnmatch.fnmatch(rel_path, pattern[3:])
    return False
