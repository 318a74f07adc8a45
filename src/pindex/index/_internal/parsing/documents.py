"""Document chunking for markdown, YAML and plain text files."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from pindex.config.constants import DOC_CHUNK_LINES, MARKDOWN_HEADING_MAX_LEVEL
from pindex.index._internal.parsing.languages import detect_language, estimate_tokens

_HEADING_RE = re.compile(rf"^#{{1,{MARKDOWN_HEADING_MAX_LEVEL}}}\s+(.+)$")


@dataclass
class TextChunk:
    chunk_index: int
    heading: str | None
    start_line: int  # 1-indexed, inclusive
    end_line: int  # 1-indexed, inclusive
    content: str


@dataclass
class ParsedDocument:
    language: str
    chunks: list[TextChunk] = field(default_factory=list)
    raw_token_estimate: int = 0


def split_markdown(lines: list[str]) -> list[TextChunk]:
    """Split at level 1-3 headings; each heading opens the chunk it names."""
    chunks: list[TextChunk] = []
    heading: str | None = None
    start = 0
    buf: list[str] = []

    def flush(end: int) -> None:
        if buf:
            chunks.append(TextChunk(len(chunks), heading, start + 1, end, "\n".join(buf)))

    for i, line in enumerate(lines):
        match = _HEADING_RE.match(line)
        if match:
            if i > start:
                flush(i)
                buf = []
                start = i
            heading = match.group(1).strip()
        buf.append(line)
    flush(len(lines))
    return chunks


def split_lines(lines: list[str], size: int = DOC_CHUNK_LINES) -> list[TextChunk]:
    """Fixed windows of size lines."""
    chunks = []
    for i in range(0, len(lines), size):
        window = lines[i : i + size]
        chunks.append(
            TextChunk(len(chunks), None, i + 1, min(i + size, len(lines)), "\n".join(window))
        )
    return chunks


def parse_document(path: str, content: str) -> ParsedDocument:
    """Chunk a document; whitespace-only chunks are dropped and indices renumbered."""
    language = detect_language(path)
    lines = content.split("\n")
    raw = split_markdown(lines) if language == "markdown" else split_lines(lines)

    chunks = [c for c in raw if c.content.strip()]
    for i, chunk in enumerate(chunks):
        chunk.chunk_index = i

    return ParsedDocument(
        language=language,
        chunks=chunks,
        raw_token_estimate=estimate_tokens(content),
    )
