"""Tests for second-pass dependency resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from pindex.config.models import IndexConfig
from pindex.index._internal.db import Database
from pindex.index._internal.indexing import (
    DependencyResolver,
    FailureKind,
    Indexer,
    ResolveResult,
    candidate_paths,
)
from pindex.index.queries import IndexQueries


def _file_id(db: Database, path: str) -> int:
    with db.session() as session:
        file = IndexQueries(session).get_file_by_path(path)
    assert file is not None and file.id is not None
    return file.id


class TestCandidatePaths:
    def test_js_relative_import(self) -> None:
        candidates = candidate_paths("src/b.ts", "./a", "typescript")

        assert candidates[:3] == ["src/a", "src/a.ts", "src/a.tsx"]
        assert "src/a/index.ts" in candidates

    def test_js_parent_directory(self) -> None:
        assert candidate_paths("src/ui/view.ts", "../util", "typescript")[1] == "src/util.ts"

    def test_escaping_root_is_dropped(self) -> None:
        assert candidate_paths("src/b.ts", "../../x", "typescript") == []

    @pytest.mark.parametrize(
        ("source", "expected"),
        [
            (".util", ["pkg/sub/util.py", "pkg/sub/util/__init__.py"]),
            ("..core.x", ["pkg/core/x.py", "pkg/core/x/__init__.py"]),
            (".", ["pkg/sub/__init__.py"]),
            (".helpers", ["pkg/sub/helpers.py", "pkg/sub/helpers/__init__.py"]),
        ],
    )
    def test_python_relative_import(self, source: str, expected: list[str]) -> None:
        assert candidate_paths("pkg/sub/mod.py", source, "python") == expected


class TestDependencyResolver:
    def test_links_relative_imports(self, temp_db: Database, project_root: Path) -> None:
        Indexer(temp_db, project_root).index_all()

        result = DependencyResolver(temp_db, project_root).resolve()

        assert result.files == 2
        assert result.edges == 1
        assert result.failures == []
        with temp_db.session() as session:
            q = IndexQueries(session)
            assert q.get_dependencies_by_file(_file_id(temp_db, "src/b.ts")) == ["src/a.ts"]
            assert q.get_imported_by_file(_file_id(temp_db, "src/a.ts")) == ["src/b.ts"]
            (row,) = q.get_dependency_rows(_file_id(temp_db, "src/b.ts"))
            assert row.symbol_name == "foo"

    def test_resolve_is_idempotent(self, temp_db: Database, project_root: Path) -> None:
        Indexer(temp_db, project_root).index_all()
        resolver = DependencyResolver(temp_db, project_root)

        resolver.resolve()
        resolver.resolve()

        with temp_db.session() as session:
            rows = IndexQueries(session).get_dependency_rows(_file_id(temp_db, "src/b.ts"))
        assert len(rows) == 1

    def test_package_imports_are_ignored(self, temp_db: Database, project_root: Path) -> None:
        (project_root / "src" / "c.ts").write_text("import { join } from 'path';\n")
        Indexer(temp_db, project_root).index_all()

        result = DependencyResolver(temp_db, project_root).resolve()

        assert result.failures == []

    def test_side_effect_import_has_null_symbol(
        self, temp_db: Database, project_root: Path
    ) -> None:
        (project_root / "src" / "c.ts").write_text("import './a';\n")
        Indexer(temp_db, project_root).index_all()

        DependencyResolver(temp_db, project_root).resolve()

        with temp_db.session() as session:
            (row,) = IndexQueries(session).get_dependency_rows(_file_id(temp_db, "src/c.ts"))
        assert row.symbol_name is None

    def test_failures_are_reported(self, temp_db: Database, project_root: Path) -> None:
        (project_root / "src" / "c.ts").write_text(
            "import { x } from './missing';\nimport { y } from './late';\n"
        )
        Indexer(temp_db, project_root).index_all()
        (project_root / "src" / "late.ts").write_text("export const y = 1;\n")

        result = DependencyResolver(temp_db, project_root).resolve()

        kinds = {(f.path, f.kind) for f in result.failures}
        assert kinds == {
            ("src/c.ts", FailureKind.UNRESOLVED),
            ("src/c.ts", FailureKind.NOT_INDEXED),
        }

    def test_deleted_file_is_read_failure(self, temp_db: Database, project_root: Path) -> None:
        Indexer(temp_db, project_root).index_all()
        (project_root / "src" / "b.ts").unlink()

        result = DependencyResolver(temp_db, project_root).resolve()

        assert [(f.path, f.kind) for f in result.failures] == [("src/b.ts", FailureKind.READ)]

    def test_target_removed_during_pass(
        self, temp_db: Database, project_root: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        indexer = Indexer(temp_db, project_root)
        indexer.index_all()
        resolver = DependencyResolver(temp_db, project_root)
        original = resolver._resolve_file

        def remove_target_after_scan(
            rel_path: str, path_index: dict[str, int], result: ResolveResult
        ) -> list[tuple[int, str | None]] | None:
            edges = original(rel_path, path_index, result)
            if rel_path == "src/b.ts":
                indexer.remove_file("src/a.ts")
            return edges

        monkeypatch.setattr(resolver, "_resolve_file", remove_target_after_scan)

        result = resolver.resolve()

        assert result.edges == 0
        assert [(f.path, f.kind) for f in result.failures] == [
            ("src/b.ts", FailureKind.NOT_INDEXED)
        ]
        with temp_db.session() as session:
            rows = IndexQueries(session).get_dependency_rows(_file_id(temp_db, "src/b.ts"))
        assert rows == []

    def test_importer_removed_during_pass(
        self, temp_db: Database, project_root: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        indexer = Indexer(temp_db, project_root)
        indexer.index_all()
        resolver = DependencyResolver(temp_db, project_root)
        original = resolver._resolve_file

        def remove_importer_after_scan(
            rel_path: str, path_index: dict[str, int], result: ResolveResult
        ) -> list[tuple[int, str | None]] | None:
            edges = original(rel_path, path_index, result)
            if rel_path == "src/b.ts":
                indexer.remove_file("src/b.ts")
            return edges

        monkeypatch.setattr(resolver, "_resolve_file", remove_importer_after_scan)

        result = resolver.resolve()

        assert (result.files, result.edges, result.failures) == (1, 0, [])


class TestPythonPackageImports:
    @pytest.fixture
    def py_root(self, temp_dir: Path) -> Path:
        root = temp_dir / "pyproj"
        (root / "pkg").mkdir(parents=True)
        (root / "pkg" / "__init__.py").write_text("VERSION = '1'\n")
        (root / "pkg" / "helpers.py").write_text("def helper():\n    return 1\n")
        (root / "pkg" / "main.py").write_text(
            "from . import helpers\nfrom . import VERSION\nfrom .helpers import helper\n"
        )
        return root

    def test_from_dot_import_links_sibling_modules(
        self, temp_db: Database, py_root: Path
    ) -> None:
        Indexer(temp_db, py_root, IndexConfig(languages=["python"])).index_all()

        result = DependencyResolver(temp_db, py_root).resolve()

        assert result.failures == []
        with temp_db.session() as session:
            q = IndexQueries(session)
            main_id = _file_id(temp_db, "pkg/main.py")
            assert q.get_dependencies_by_file(main_id) == ["pkg/__init__.py", "pkg/helpers.py"]
            edges = {
                (row.to_file, row.symbol_name) for row in q.get_dependency_rows(main_id)
            }
        helpers_id = _file_id(temp_db, "pkg/helpers.py")
        init_id = _file_id(temp_db, "pkg/__init__.py")
        assert edges == {(helpers_id, None), (helpers_id, "helper"), (init_id, "VERSION")}

    def test_missing_sibling_module_is_unresolved(
        self, temp_db: Database, py_root: Path
    ) -> None:
        (py_root / "pkg" / "__init__.py").unlink()
        (py_root / "pkg" / "main.py").write_text("from . import nowhere\n")
        Indexer(temp_db, py_root, IndexConfig(languages=["python"])).index_all()

        result = DependencyResolver(temp_db, py_root).resolve()

        assert [(f.path, f.kind, f.detail) for f in result.failures] == [
            ("pkg/main.py", FailureKind.UNRESOLVED, ".")
        ]
