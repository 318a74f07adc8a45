"""Tests for FileWatcher batching and dispatch."""

from __future__ import annotations

import asyncio
from collections.abc import Generator
from pathlib import Path

import pytest
from watchfiles import Change

from pindex.index._internal.indexing import IndexFileResult, IndexStatus
from pindex.index._internal.watcher import FileChangeEvent, FileChangeKind, FileWatcher
from pindex.index.models import SessionEventType
from pindex.index.ops import IndexCoordinator
from pindex.index.queries import IndexQueries, MemoryQueries


@pytest.fixture
def coordinator(project_root: Path) -> Generator[IndexCoordinator, None, None]:
    coord = IndexCoordinator(project_root)
    coord.index_all()
    coord.resolve_dependencies()
    yield coord
    coord.close()


def _is_indexed(coord: IndexCoordinator, path: str) -> bool:
    with coord.db.session() as session:
        return IndexQueries(session).get_file_by_path(path) is not None


class TestFilter:
    def test_accepts_tracked_paths_only(
        self, coordinator: IndexCoordinator, project_root: Path
    ) -> None:
        watcher = FileWatcher(coordinator)

        assert watcher.accepts(Change.modified, str(project_root / "src" / "a.ts")) is True
        assert watcher.accepts(Change.added, str(project_root / "notes.md")) is True
        assert watcher.accepts(Change.added, str(project_root / "logo.png")) is False
        assert watcher.accepts(Change.added, str(project_root / ".pindex" / "index.db")) is False
        assert watcher.accepts(Change.added, "/somewhere/else.ts") is False


class TestToEvents:
    def test_one_event_per_path_sorted(
        self, coordinator: IndexCoordinator, project_root: Path
    ) -> None:
        (project_root / "src" / "c.ts").write_text("export const c = 1;\n")
        watcher = FileWatcher(coordinator)

        events = watcher.to_events(
            {
                (Change.modified, str(project_root / "src" / "b.ts")),
                (Change.added, str(project_root / "src" / "c.ts")),
                (Change.modified, str(project_root / "src" / "c.ts")),
                (Change.deleted, str(project_root / "src" / "gone.ts")),
            }
        )

        assert [(e.path, e.kind) for e in events] == [
            ("src/b.ts", FileChangeKind.MODIFIED),
            ("src/c.ts", FileChangeKind.CREATED),
            ("src/gone.ts", FileChangeKind.DELETED),
        ]

    def test_disk_state_decides_deletion(
        self, coordinator: IndexCoordinator, project_root: Path
    ) -> None:
        watcher = FileWatcher(coordinator)

        (event,) = watcher.to_events({(Change.added, str(project_root / "src" / "tmp.ts"))})

        assert event.kind == FileChangeKind.DELETED


class TestDispatch:
    def test_modified_file_reindexed_and_diffed(
        self, coordinator: IndexCoordinator, project_root: Path
    ) -> None:
        observer = coordinator.start_session()
        (project_root / "src" / "b.ts").write_text("export const renamed = 1;\n")
        watcher = FileWatcher(coordinator, observer)

        results = watcher.dispatch([FileChangeEvent("src/b.ts", FileChangeKind.MODIFIED, 0.0)])

        assert [r.status for r in results] == [IndexStatus.UPDATED]
        with coordinator.db.session() as session:
            events = MemoryQueries(session).get_session_events(
                observer.session_id,
                [SessionEventType.SYMBOL_ADDED, SessionEventType.SYMBOL_REMOVED],
            )
        assert sorted((e.event_type, e.symbol_name) for e in events) == [
            ("symbol_added", "renamed"),
            ("symbol_removed", "answer"),
        ]

    def test_unchanged_save_is_skipped(self, coordinator: IndexCoordinator) -> None:
        watcher = FileWatcher(coordinator)

        results = watcher.dispatch([FileChangeEvent("src/a.ts", FileChangeKind.MODIFIED, 0.0)])

        assert [r.status for r in results] == [IndexStatus.SKIPPED]

    def test_deleted_file_removed(
        self, coordinator: IndexCoordinator, project_root: Path
    ) -> None:
        (project_root / "src" / "b.ts").unlink()
        watcher = FileWatcher(coordinator)

        results = watcher.dispatch([FileChangeEvent("src/b.ts", FileChangeKind.DELETED, 0.0)])

        assert results == []
        assert _is_indexed(coordinator, "src/b.ts") is False

    def test_document_change_indexed(
        self, coordinator: IndexCoordinator, project_root: Path
    ) -> None:
        (project_root / "README.md").write_text("# Project\n\nNew intro.\n")
        watcher = FileWatcher(coordinator)

        (result,) = watcher.dispatch([FileChangeEvent("README.md", FileChangeKind.MODIFIED, 0.0)])

        assert result.status == IndexStatus.UPDATED

    def test_created_file_gets_edges(
        self, coordinator: IndexCoordinator, project_root: Path
    ) -> None:
        (project_root / "src" / "c.ts").write_text("import { answer } from './b';\n")
        watcher = FileWatcher(coordinator)

        watcher.dispatch([FileChangeEvent("src/c.ts", FileChangeKind.CREATED, 0.0)])

        with coordinator.db.session() as session:
            q = IndexQueries(session)
            c = q.get_file_by_path("src/c.ts")
            assert c is not None and c.id is not None
            assert q.get_dependencies_by_file(c.id) == ["src/b.ts"]

    def test_one_failure_does_not_stop_batch(
        self, coordinator: IndexCoordinator, project_root: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        original = coordinator.index_path

        def flaky(path: str, *, force: bool = False) -> IndexFileResult:
            if path == "src/a.ts":
                raise RuntimeError("disk on fire")
            return original(path, force=force)

        monkeypatch.setattr(coordinator, "index_path", flaky)
        (project_root / "src" / "b.ts").write_text("export const other = 2;\n")
        watcher = FileWatcher(coordinator)

        results = watcher.dispatch(
            [
                FileChangeEvent("src/a.ts", FileChangeKind.MODIFIED, 0.0),
                FileChangeEvent("src/b.ts", FileChangeKind.MODIFIED, 0.0),
            ]
        )

        assert [r.path for r in results] == ["src/b.ts"]


class TestRun:
    @pytest.mark.asyncio
    async def test_picks_up_new_file(
        self, coordinator: IndexCoordinator, project_root: Path
    ) -> None:
        watcher = FileWatcher(coordinator)
        task = asyncio.create_task(watcher.run())
        try:
            for _ in range(50):
                if watcher.is_running:
                    break
                await asyncio.sleep(0.05)
            await asyncio.sleep(0.3)

            (project_root / "src" / "late.ts").write_text("export function late() {}\n")

            for _ in range(200):
                if _is_indexed(coordinator, "src/late.ts"):
                    break
                await asyncio.sleep(0.05)
            assert _is_indexed(coordinator, "src/late.ts")
        finally:
            watcher.stop()
            await asyncio.wait_for(task, timeout=10)

        assert watcher.is_running is False
