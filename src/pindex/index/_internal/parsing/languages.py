"""Language detection, content hashing and token estimation."""

from __future__ import annotations

import hashlib
import math
from pathlib import PurePosixPath

from pindex.config.constants import CHARS_PER_TOKEN

EXTENSION_MAP: dict[str, str] = {
    "ts": "typescript",
    "tsx": "tsx",
    "js": "javascript",
    "mjs": "javascript",
    "cjs": "javascript",
    "jsx": "jsx",
    "py": "python",
    "go": "go",
    "rs": "rust",
    "java": "java",
    "kt": "kotlin",
    "kts": "kotlin",
    "vue": "vue",
    "svelte": "svelte",
    "php": "php",
    "rb": "ruby",
    "cs": "csharp",
    "md": "markdown",
    "markdown": "markdown",
    "yaml": "yaml",
    "yml": "yaml",
    "txt": "text",
}

DOCUMENT_LANGUAGES: frozenset[str] = frozenset({"markdown", "yaml", "text"})

# Discovery globs per configured language name.
LANGUAGE_PATTERNS: dict[str, tuple[str, ...]] = {
    "typescript": ("**/*.ts", "**/*.tsx"),
    "javascript": ("**/*.js", "**/*.mjs", "**/*.cjs", "**/*.jsx"),
    "java": ("**/*.java",),
    "kotlin": ("**/*.kt", "**/*.kts"),
    "python": ("**/*.py",),
    "vue": ("**/*.vue",),
    "svelte": ("**/*.svelte",),
    "php": ("**/*.php",),
    "ruby": ("**/*.rb",),
    "csharp": ("**/*.cs",),
}


def detect_language(path: str) -> str:
    """Language name for a path by extension, or 'unknown'."""
    suffix = PurePosixPath(path).suffix.lower().lstrip(".")
    return EXTENSION_MAP.get(suffix, "unknown")


def is_document_language(language: str) -> bool:
    return language in DOCUMENT_LANGUAGES


def build_code_patterns(languages: list[str]) -> list[str]:
    """Union of discovery globs for the given languages, first-seen order."""
    patterns: list[str] = []
    for lang in languages:
        for pattern in LANGUAGE_PATTERNS.get(lang, ()):
            if pattern not in patterns:
                patterns.append(pattern)
    return patterns


def hash_content(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def estimate_tokens(content: str) -> int:
    """Rough token count at ~4 characters per token."""
    if not content:
        return 0
    return math.ceil(len(content) / CHARS_PER_TOKEN)
