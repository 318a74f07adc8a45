"""Tests for document chunking."""

from __future__ import annotations

from pindex.index._internal.parsing import parse_document
from pindex.index._internal.parsing.documents import split_lines, split_markdown


class TestSplitMarkdown:
    def test_headings_open_chunks(self) -> None:
        lines = "# Project\n\nIntro text.\n\n## Usage\n\nRun it.\n".split("\n")
        chunks = split_markdown(lines)

        assert [(c.heading, c.start_line, c.end_line) for c in chunks] == [
            ("Project", 1, 4),
            ("Usage", 5, 8),
        ]
        assert chunks[1].content.startswith("## Usage")

    def test_preamble_before_first_heading(self) -> None:
        chunks = split_markdown(["preamble", "# Title", "body"])

        assert [(c.heading, c.start_line, c.end_line) for c in chunks] == [
            (None, 1, 1),
            ("Title", 2, 3),
        ]

    def test_level_four_heading_does_not_split(self) -> None:
        chunks = split_markdown(["# Top", "#### Deep", "text"])
        assert len(chunks) == 1
        assert chunks[0].heading == "Top"

    def test_first_line_heading_is_not_lost(self) -> None:
        chunks = split_markdown(["# Only"])
        assert [(c.heading, c.content) for c in chunks] == [("Only", "# Only")]


class TestSplitLines:
    def test_fixed_windows(self) -> None:
        lines = [f"line {i}" for i in range(120)]
        chunks = split_lines(lines)

        assert [(c.start_line, c.end_line) for c in chunks] == [(1, 50), (51, 100), (101, 120)]
        assert all(c.heading is None for c in chunks)

    def test_custom_size(self) -> None:
        assert len(split_lines(["a", "b", "c"], size=2)) == 2


class TestParseDocument:
    def test_markdown_document(self) -> None:
        doc = parse_document("docs/guide.md", "# Guide\n\nHello.\n")

        assert doc.language == "markdown"
        assert [c.heading for c in doc.chunks] == ["Guide"]
        assert doc.raw_token_estimate > 0

    def test_whitespace_chunks_dropped_and_renumbered(self) -> None:
        content = "\n".join(["   "] * 50 + ["real content"])
        doc = parse_document("notes.txt", content)

        assert len(doc.chunks) == 1
        assert doc.chunks[0].chunk_index == 0
        assert doc.chunks[0].start_line == 51

    def test_yaml_uses_line_windows(self) -> None:
        doc = parse_document("config.yml", "# not a heading\nkey: value\n")

        assert doc.language == "yaml"
        assert doc.chunks[0].heading is None

    def test_empty_document(self) -> None:
        assert parse_document("empty.md", "").chunks == []
