"""Tests for the Indexer against a real database and real parses."""

from __future__ import annotations

from pathlib import Path

import pytest

from pindex.config.models import IndexConfig
from pindex.index._internal.db import Database
from pindex.index._internal.diff import ChangeType
from pindex.index._internal.indexing import DependencyResolver, Indexer, IndexStatus
from pindex.index.queries import IndexQueries


@pytest.fixture
def indexer(temp_db: Database, project_root: Path) -> Indexer:
    return Indexer(temp_db, project_root)


def _symbol_names(db: Database, path: str) -> list[str]:
    with db.session() as session:
        q = IndexQueries(session)
        file = q.get_file_by_path(path)
        assert file is not None and file.id is not None
        return sorted(s.name for s in q.get_symbols_by_file(file.id))


Rows = list[dict[str, object]]


def _row_snapshot(db: Database) -> list[tuple[str, Rows, Rows]]:
    with db.session() as session:
        q = IndexQueries(session)
        return [
            (
                f.path,
                [s.model_dump() for s in q.get_symbols_by_file(f.id)],
                [d.model_dump() for d in q.get_dependency_rows(f.id)],
            )
            for f in q.get_all_files()
            if f.id is not None
        ]


class TestIndexAll:
    def test_indexes_code_and_documents(self, indexer: Indexer, temp_db: Database) -> None:
        result = indexer.index_all()

        assert (result.indexed, result.updated, result.skipped) == (3, 0, 0)
        assert result.errors == []
        with temp_db.session() as session:
            paths = [f.path for f in IndexQueries(session).get_all_files()]
        assert paths == ["README.md", "src/a.ts", "src/b.ts"]
        assert _symbol_names(temp_db, "src/a.ts") == ["Greeter", "foo", "greet"]

    def test_second_run_skips_unchanged(
        self, indexer: Indexer, temp_db: Database, project_root: Path
    ) -> None:
        indexer.index_all()
        DependencyResolver(temp_db, project_root).resolve()
        before = _row_snapshot(temp_db)

        result = indexer.index_all()

        assert (result.indexed, result.updated, result.skipped) == (0, 0, 3)
        assert _row_snapshot(temp_db) == before
        assert any(deps for _, _, deps in before)

    def test_force_reindexes_everything(self, indexer: Indexer) -> None:
        indexer.index_all()
        result = indexer.index_all(force=True)

        assert result.updated == 3

    def test_document_chunks_stored(self, indexer: Indexer, temp_db: Database) -> None:
        indexer.index_all()

        with temp_db.session() as session:
            q = IndexQueries(session)
            readme = q.get_file_by_path("README.md")
            assert readme is not None and readme.id is not None
            chunks = q.get_document_chunks(readme.id)
        assert [c.heading for c in chunks] == ["Project", "Usage"]

    def test_documents_can_be_disabled(self, temp_db: Database, project_root: Path) -> None:
        indexer = Indexer(temp_db, project_root, IndexConfig(index_documents=False))
        result = indexer.index_all()
        assert result.indexed == 2


class TestIndexFile:
    def test_content_change_updates_symbols(
        self, indexer: Indexer, temp_db: Database, project_root: Path
    ) -> None:
        indexer.index_file("src/a.ts")
        (project_root / "src" / "a.ts").write_text("export function bar() {}\n")

        result = indexer.index_file("src/a.ts")

        assert result.status == IndexStatus.UPDATED
        assert _symbol_names(temp_db, "src/a.ts") == ["bar"]

    def test_whitespace_change_is_still_a_content_change(
        self, indexer: Indexer, project_root: Path
    ) -> None:
        indexer.index_file("src/b.ts")
        path = project_root / "src" / "b.ts"
        path.write_text(path.read_text() + "\n")

        assert indexer.index_file("src/b.ts").status == IndexStatus.UPDATED

    def test_absolute_path_inside_root(self, indexer: Indexer, project_root: Path) -> None:
        result = indexer.index_file(str(project_root / "src" / "a.ts"))
        assert result.path == "src/a.ts"
        assert result.status == IndexStatus.INDEXED

    def test_missing_file_is_error(self, indexer: Indexer) -> None:
        result = indexer.index_file("src/missing.ts")

        assert result.status == IndexStatus.ERROR
        assert result.errors == ["File not found: src/missing.ts"]

    def test_outside_root_is_error(self, indexer: Indexer) -> None:
        result = indexer.index_file("../outside.ts")

        assert result.status == IndexStatus.ERROR
        assert "outside project root" in result.errors[0]

    def test_oversized_file_is_error(self, temp_db: Database, project_root: Path) -> None:
        (project_root / "big.ts").write_text("x" * (1024 * 1024 + 1))
        indexer = Indexer(temp_db, project_root, IndexConfig(max_file_size_mb=1))

        result = indexer.index_file("big.ts")

        assert result.status == IndexStatus.ERROR
        assert result.errors == ["File too large: big.ts exceeds 1 MB"]

    def test_edges_from_file_cleared_on_reindex(
        self, indexer: Indexer, temp_db: Database
    ) -> None:
        indexer.index_file("src/a.ts")
        indexer.index_file("src/b.ts")
        with temp_db.immediate_transaction() as session:
            q = IndexQueries(session)
            a = q.get_file_by_path("src/a.ts")
            b = q.get_file_by_path("src/b.ts")
            assert a is not None and b is not None and a.id is not None and b.id is not None
            q.insert_dependency(b.id, a.id, "foo")
            b_id = b.id

        indexer.index_file("src/b.ts", force=True)

        with temp_db.session() as session:
            assert IndexQueries(session).get_dependencies_by_file(b_id) == []


class TestRemoveFile:
    def test_remove_cascades(self, indexer: Indexer, temp_db: Database) -> None:
        indexer.index_all()

        assert indexer.remove_file("src/a.ts") is True
        assert indexer.remove_file("src/a.ts") is False
        with temp_db.session() as session:
            q = IndexQueries(session)
            assert q.get_file_by_path("src/a.ts") is None
            assert q.search_symbols("foo") == []


class TestDiffIntegration:
    def test_diff_attached_when_engine_configured(
        self, temp_db: Database, project_root: Path
    ) -> None:
        indexer = Indexer(temp_db, project_root, track_diffs=True)

        first = indexer.index_file("src/a.ts")
        assert first.diff is not None
        assert first.diff.first_observation is True
        assert first.diff.has_changes is False

        (project_root / "src" / "a.ts").write_text(
            "export function foo(x: number, y: number): number {\n  return x + y;\n}\n"
        )
        second = indexer.index_file("src/a.ts")

        assert second.diff is not None
        assert [(c.type, c.name) for c in second.diff.changes] == [
            (ChangeType.REMOVED, "Greeter"),
            (ChangeType.SIG_CHANGED, "foo"),
            (ChangeType.REMOVED, "greet"),
        ]

    def test_no_diff_without_engine(self, indexer: Indexer) -> None:
        assert indexer.index_file("src/a.ts").diff is None
