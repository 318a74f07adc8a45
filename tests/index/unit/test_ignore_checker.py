"""Tests for IgnoreChecker and glob matching."""

from __future__ import annotations

from pathlib import Path

import pytest

from pindex.index._internal.ignore import IgnoreChecker, matches_glob


class TestMatchesGlob:
    @pytest.mark.parametrize(
        ("path", "pattern", "expected"),
        [
            ("src/a.ts", "**/*.ts", True),
            ("a.ts", "**/*.ts", True),
            ("src/a.tsx", "**/*.ts", False),
            ("docs/guide.md", "docs/*.md", True),
            ("node_modules/x.js", "**/node_modules/**", True),
        ],
    )
    def test_patterns(self, path: str, pattern: str, expected: bool) -> None:
        assert matches_glob(path, pattern) is expected


class TestIgnoreChecker:
    """Tiered exclusion: hardcoded, default prunable, user patterns."""

    def test_hardcoded_dirs_always_excluded(self, tmp_path: Path) -> None:
        (tmp_path / ".pindexignore").write_text("!.git/\n")
        checker = IgnoreChecker(tmp_path)

        assert checker.is_excluded_rel(".git/config") is True
        assert checker.should_prune_dir(".git") is True
        assert checker.is_excluded_rel(".pindex/index.db") is True

    def test_default_prunable_dirs(self, tmp_path: Path) -> None:
        checker = IgnoreChecker(tmp_path)

        assert checker.is_excluded_rel("node_modules/lib/index.js") is True
        assert checker.is_excluded_rel("packages/web/node_modules/x.js") is True
        assert checker.should_prune_dir("node_modules") is True
        assert checker.is_excluded_rel("src/index.ts") is False

    def test_generated_files_ignored(self, tmp_path: Path) -> None:
        checker = IgnoreChecker(tmp_path)

        assert checker.is_excluded_rel("dist-free/app.min.js") is True
        assert checker.is_excluded_rel("types/global.d.ts") is True

    def test_negation_opts_dir_back_in(self, tmp_path: Path) -> None:
        (tmp_path / ".pindexignore").write_text("# vendored code is ours\n!vendor/\n")
        checker = IgnoreChecker(tmp_path)

        assert checker.negated_dirs == frozenset({"vendor"})
        assert checker.should_prune_dir("vendor") is False
        assert checker.is_excluded_rel("vendor/lib.ts") is False

    def test_ignore_file_patterns(self, tmp_path: Path) -> None:
        (tmp_path / ".pindexignore").write_text("generated/\n*.snap.ts\nsrc/legacy/*.js\n")
        checker = IgnoreChecker(tmp_path)

        assert checker.is_excluded_rel("generated/api.ts") is True
        assert checker.is_excluded_rel("pkg/generated/api.ts") is True
        assert checker.is_excluded_rel("src/deep/view.snap.ts") is True
        assert checker.is_excluded_rel("src/legacy/old.js") is True
        assert checker.is_excluded_rel("lib/legacy/old.js") is False

    def test_extra_patterns_from_config(self, tmp_path: Path) -> None:
        checker = IgnoreChecker(tmp_path, ["fixtures/"])
        assert checker.is_excluded_rel("tests/fixtures/a.ts") is True

    def test_should_ignore_absolute_paths(self, tmp_path: Path) -> None:
        checker = IgnoreChecker(tmp_path)

        assert checker.should_ignore(tmp_path / "src" / "a.ts") is False
        assert checker.should_ignore(tmp_path / "node_modules" / "a.js") is True
        assert checker.should_ignore(tmp_path.parent / "elsewhere.ts") is True
