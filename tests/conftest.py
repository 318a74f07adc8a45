"""Shared fixtures.

project_root builds a small TypeScript project on disk; temp_db is an empty
schema in a throwaway directory.
"""

from __future__ import annotations

import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from pindex.index._internal.db import Database


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory(ignore_cleanup_errors=True) as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def temp_db(temp_dir: Path) -> Generator[Database, None, None]:
    """Create a temporary database with schema."""
    from pindex.index._internal.db import Database

    db = Database(temp_dir / "db" / "test.db")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def project_root(temp_dir: Path) -> Path:
    """A small TypeScript project with one import edge and one document."""
    root = temp_dir / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "a.ts").write_text(
        "export function foo(x: number): number {\n  return x + 1;\n}\n"
        "\n"
        "export class Greeter {\n  greet(name: string): string {\n    return name;\n  }\n}\n"
    )
    (root / "src" / "b.ts").write_text(
        "import { foo } from './a';\n"
        "\n"
        "export const answer = foo(41);\n"
    )
    (root / "README.md").write_text("# Project\n\nIntro text.\n\n## Usage\n\nRun it.\n")
    return root
