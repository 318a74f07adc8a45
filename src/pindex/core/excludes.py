"""Canonical exclude patterns with tiered architecture.

Tier 0 (HARDCODED_DIRS): Never traversed, not user-configurable.
    - VCS internals and the pindex data directory

Tier 1 (DEFAULT_PRUNABLE_DIRS): Excluded by default, user can override with !pattern.
    - Dependencies, caches, build outputs
    - Users can opt-in by adding "!dirname" to .pindexignore

DEFAULT_IGNORE_FILES are file globs that never carry indexable source
(minified bundles, generated declaration files, bytecode).
"""

from __future__ import annotations

# =============================================================================
# Tier 0: HARDCODED - Never traverse, not user-configurable
# =============================================================================

HARDCODED_DIRS: frozenset[str] = frozenset(
    (
        ".git",
        ".svn",
        ".hg",
        ".bzr",
        ".pindex",
    )
)

# =============================================================================
# Tier 1: DEFAULT_PRUNABLE - Excluded by default, user can override
# =============================================================================

DEFAULT_PRUNABLE_DIRS: frozenset[str] = frozenset(
    (
        # JavaScript/Node.js
        "node_modules",
        ".npm",
        ".yarn",
        ".pnpm-store",
        "bower_components",
        ".next",
        ".nuxt",
        ".turbo",
        # Python
        "venv",
        ".venv",
        ".virtualenv",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
        ".ruff_cache",
        ".tox",
        ".nox",
        ".eggs",
        "site-packages",
        # JVM
        ".gradle",
        ".m2",
        # Rust
        "target",
        # Generic build/output directories
        "dist",
        "build",
        "out",
        "coverage",
        ".nyc_output",
        # IDE
        ".idea",
        ".vscode",
        # Misc
        ".cache",
        "vendor",
    )
)

PRUNABLE_DIRS: frozenset[str] = HARDCODED_DIRS | DEFAULT_PRUNABLE_DIRS

DEFAULT_IGNORE_FILES: tuple[str, ...] = (
    "*.min.js",
    "*.d.ts",
    "*.pyc",
    "*.map",
)


def is_hardcoded_dir(dirname: str) -> bool:
    """Check if directory is hardcoded (never traversable, not overridable)."""
    return dirname in HARDCODED_DIRS


def is_default_prunable(dirname: str) -> bool:
    return dirname in DEFAULT_PRUNABLE_DIRS
