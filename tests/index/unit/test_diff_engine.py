"""Tests for the AST diff engine."""

from __future__ import annotations

from pindex.index._internal.db import Database
from pindex.index._internal.diff import (
    AstDiffEngine,
    ChangeType,
    SymbolChange,
    hash_signature,
    normalize_signature,
)
from pindex.index._internal.parsing import ParsedSymbol
from pindex.index.models import SymbolKind
from pindex.index.queries import MemoryQueries


def _fn(name: str, signature: str | None = None) -> ParsedSymbol:
    return ParsedSymbol(name, SymbolKind.FUNCTION, signature or f"{name}()", 1, 1, True)


class TestSignatureHashing:
    def test_normalize_collapses_whitespace(self) -> None:
        assert normalize_signature("  foo( a,\n\t b )  ") == "foo( a, b )"

    def test_hash_ignores_formatting(self) -> None:
        assert hash_signature("foo(a,  b)") == hash_signature(" foo(a, b)\n")
        assert hash_signature("foo(a, b)") != hash_signature("foo(a,b)")

    def test_hash_length(self) -> None:
        assert len(hash_signature("foo()")) == 16


class TestSymbolChange:
    def test_descriptions(self) -> None:
        assert SymbolChange(ChangeType.ADDED, "foo", "function").description == (
            "function `foo` added"
        )
        assert SymbolChange(ChangeType.REMOVED, "Bar", "class").description == (
            "class `Bar` removed"
        )
        assert SymbolChange(ChangeType.SIG_CHANGED, "foo", "function").description == (
            "function `foo` signature changed"
        )


class TestAstDiffEngine:
    def test_first_observation_seeds_snapshot(self, temp_db: Database) -> None:
        engine = AstDiffEngine(temp_db)

        result = engine.compute_diff("a.ts", [_fn("foo"), _fn("bar")])

        assert result.first_observation is True
        assert result.has_changes is False
        with temp_db.session() as session:
            snaps = MemoryQueries(session).get_snapshots_by_file("a.ts")
        assert [s.symbol_name for s in snaps] == ["bar", "foo"]

    def test_unchanged_symbols_report_nothing(self, temp_db: Database) -> None:
        engine = AstDiffEngine(temp_db)
        engine.compute_diff("a.ts", [_fn("foo", "foo(a, b)")])

        result = engine.compute_diff("a.ts", [_fn("foo", "foo(a,\n    b)")])

        assert result.first_observation is False
        assert result.changes == ()

    def test_classifies_and_orders_changes(self, temp_db: Database) -> None:
        engine = AstDiffEngine(temp_db)
        engine.compute_diff("a.ts", [_fn("zeta"), _fn("alpha"), _fn("mid", "mid(x)")])

        result = engine.compute_diff(
            "a.ts", [_fn("mid", "mid(x, y)"), _fn("new2"), _fn("new1")]
        )

        assert [(c.type, c.name) for c in result.changes] == [
            (ChangeType.REMOVED, "alpha"),
            (ChangeType.SIG_CHANGED, "mid"),
            (ChangeType.REMOVED, "zeta"),
            (ChangeType.ADDED, "new2"),
            (ChangeType.ADDED, "new1"),
        ]
        sig = result.changes[1]
        assert (sig.old_signature, sig.new_signature) == ("mid(x)", "mid(x, y)")

    def test_rename_is_remove_plus_add(self, temp_db: Database) -> None:
        engine = AstDiffEngine(temp_db)
        engine.compute_diff("a.ts", [_fn("oldName")])

        result = engine.compute_diff("a.ts", [_fn("newName")])

        assert [(c.type, c.name) for c in result.changes] == [
            (ChangeType.REMOVED, "oldName"),
            (ChangeType.ADDED, "newName"),
        ]

    def test_snapshot_rolls_forward(self, temp_db: Database) -> None:
        engine = AstDiffEngine(temp_db)
        engine.compute_diff("a.ts", [_fn("foo")])
        engine.compute_diff("a.ts", [_fn("foo"), _fn("bar")])

        result = engine.compute_diff("a.ts", [_fn("foo"), _fn("bar")])

        assert result.changes == ()

    def test_duplicate_names_keep_last(self, temp_db: Database) -> None:
        engine = AstDiffEngine(temp_db)
        engine.compute_diff("a.ts", [_fn("foo", "foo(a)"), _fn("foo", "foo(b)")])

        with temp_db.session() as session:
            (snap,) = MemoryQueries(session).get_snapshots_by_file("a.ts")
        assert snap.signature == "foo(b)"

    def test_emptied_file_is_reseeded(self, temp_db: Database) -> None:
        engine = AstDiffEngine(temp_db)
        engine.compute_diff("a.ts", [_fn("foo")])
        removed = engine.compute_diff("a.ts", [])

        reseeded = engine.compute_diff("a.ts", [_fn("bar")])

        assert [c.type for c in removed.changes] == [ChangeType.REMOVED]
        assert reseeded.first_observation is True
        assert reseeded.changes == ()

    def test_files_are_independent(self, temp_db: Database) -> None:
        engine = AstDiffEngine(temp_db)
        engine.compute_diff("a.ts", [_fn("foo")])

        assert engine.compute_diff("b.ts", [_fn("bar")]).first_observation is True
