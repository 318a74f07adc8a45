"""Data models for AST diffs.

Plain frozen dataclasses, no DB coupling.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ChangeType(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    SIG_CHANGED = "sig_changed"


_VERBS = {
    ChangeType.ADDED: "added",
    ChangeType.REMOVED: "removed",
    ChangeType.SIG_CHANGED: "signature changed",
}


@dataclass(frozen=True, slots=True)
class SymbolChange:
    """One classified change of a named symbol."""

    type: ChangeType
    name: str
    kind: str
    old_signature: str | None = None
    new_signature: str | None = None

    @property
    def description(self) -> str:
        """Human-readable form, e.g. "function `foo` signature changed"."""
        return f"{self.kind} `{self.name}` {_VERBS[self.type]}"


@dataclass(frozen=True, slots=True)
class AstDiffResult:
    """Changes for one file since its previous snapshot."""

    file_path: str
    changes: tuple[SymbolChange, ...] = field(default_factory=tuple)
    first_observation: bool = False

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)
