"""Tests for the pindex CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from pindex import __version__
from pindex.cli.main import cli
from pindex.config import loader
from pindex.index.ops import IndexCoordinator


@pytest.fixture(autouse=True)
def isolated_global_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(loader, "GLOBAL_CONFIG_PATH", tmp_path / "global" / "config.yaml")


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestMain:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("index", "watch", "memory"):
            assert command in result.output


class TestIndexCommand:
    def test_json_output(self, runner: CliRunner, project_root: Path) -> None:
        result = runner.invoke(cli, ["index", str(project_root), "--json"])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload == {"indexed": 3, "updated": 0, "skipped": 0, "edges": 1, "errors": []}

    def test_second_run_skips(self, runner: CliRunner, project_root: Path) -> None:
        runner.invoke(cli, ["index", str(project_root), "--json"])

        result = runner.invoke(cli, ["index", str(project_root), "--json"])

        assert json.loads(result.stdout)["skipped"] == 3

    def test_force(self, runner: CliRunner, project_root: Path) -> None:
        runner.invoke(cli, ["index", str(project_root), "--json"])

        result = runner.invoke(cli, ["index", str(project_root), "--json", "--force"])

        assert json.loads(result.stdout)["updated"] == 3

    def test_table_output(self, runner: CliRunner, project_root: Path) -> None:
        result = runner.invoke(cli, ["index", str(project_root)])

        assert result.exit_code == 0
        assert "Index up to date" in result.output

    def test_invalid_config_is_reported(self, runner: CliRunner, project_root: Path) -> None:
        (project_root / ".pindex").mkdir()
        (project_root / ".pindex" / "config.yaml").write_text("index:\n  max_file_size_mb: -1\n")

        result = runner.invoke(cli, ["index", str(project_root)])

        assert result.exit_code != 0
        assert "CONFIG_INVALID_VALUE" in result.output


class TestMemoryCommand:
    def test_no_sessions(self, runner: CliRunner, project_root: Path) -> None:
        result = runner.invoke(cli, ["memory", str(project_root)])

        assert result.exit_code != 0
        assert "No sessions recorded yet" in result.output

    def test_latest_session_report(self, runner: CliRunner, project_root: Path) -> None:
        coord = IndexCoordinator(project_root)
        try:
            observer = coord.start_session(label="cli")
            for _ in range(3):
                observer.on_tool_call("search_symbols", {"query": "missing"}, [], False)
        finally:
            coord.close()

        result = runner.invoke(cli, ["memory", str(project_root)])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["current_session"]["id"] == observer.session_id
        assert payload["current_session"]["label"] == "cli"
        assert len(payload["observations"]) == 1
        assert payload["stale_count"] == 0

    def test_explicit_session(self, runner: CliRunner, project_root: Path) -> None:
        result = runner.invoke(cli, ["memory", str(project_root), "--session", "abc"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["current_session"]["id"] == "abc"
