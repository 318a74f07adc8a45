"""Per-session in-memory counters used by the observer."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field


def access_key(file_path: str, symbol_name: str | None = None) -> str:
    return f"{file_path}::{symbol_name}" if symbol_name else file_path


@dataclass
class SessionState:
    """Everything the observer remembers between hook calls.

    One instance per session; nothing here is shared across observers.
    """

    access_counts: Counter[str] = field(default_factory=Counter)
    accessed_files: set[str] = field(default_factory=set)
    accessed_symbols: dict[str, set[str]] = field(default_factory=dict)
    failed_search_counts: Counter[str] = field(default_factory=Counter)
    tool_error_counts: Counter[str] = field(default_factory=Counter)

    def record_access(self, file_path: str, symbol_name: str | None = None) -> int:
        """Track an access and return the post-increment count for its key."""
        self.accessed_files.add(file_path)
        if symbol_name:
            self.accessed_symbols.setdefault(file_path, set()).add(symbol_name)
        key = access_key(file_path, symbol_name)
        self.access_counts[key] += 1
        return self.access_counts[key]

    def record_failed_search(self, query: str) -> int:
        self.failed_search_counts[query] += 1
        return self.failed_search_counts[query]

    def record_tool_error(self, tool_name: str, file_path: str | None) -> int:
        key = f"{tool_name}::{file_path or ''}"
        self.tool_error_counts[key] += 1
        return self.tool_error_counts[key]

    def was_accessed(self, file_path: str, symbol_name: str) -> bool:
        """Accessing a file counts as accessing every symbol in it."""
        if file_path in self.accessed_files:
            return True
        return symbol_name in self.accessed_symbols.get(file_path, ())
