"""Tree-sitter parser adapter.

parse(path, content) returns symbols, imports and a token estimate. Languages
without a grammar here return an empty but valid ParsedFile; syntax errors in
supported languages still yield whatever tree-sitter could recover.
"""

from __future__ import annotations

import importlib
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import tree_sitter

from pindex.core.errors import InternalError
from pindex.index._internal.parsing.extract import (
    ParsedImport,
    ParsedSymbol,
    extract_js_imports,
    extract_js_symbols,
    extract_py_imports,
    extract_py_symbols,
)
from pindex.index._internal.parsing.languages import detect_language, estimate_tokens


@dataclass(frozen=True)
class _Grammar:
    module: str
    language_func: str
    symbols: Callable[[Any], list[ParsedSymbol]]
    imports: Callable[[Any], list[ParsedImport]]


# Language name (see EXTENSION_MAP) -> grammar package and extraction family
GRAMMARS: dict[str, _Grammar] = {
    "typescript": _Grammar(
        "tree_sitter_typescript", "language_typescript", extract_js_symbols, extract_js_imports
    ),
    "tsx": _Grammar(
        "tree_sitter_typescript", "language_tsx", extract_js_symbols, extract_js_imports
    ),
    "javascript": _Grammar(
        "tree_sitter_javascript", "language", extract_js_symbols, extract_js_imports
    ),
    "jsx": _Grammar(
        "tree_sitter_javascript", "language", extract_js_symbols, extract_js_imports
    ),
    "python": _Grammar("tree_sitter_python", "language", extract_py_symbols, extract_py_imports),
}


@dataclass
class ParsedFile:
    """Result of parsing one source file."""

    language: str
    symbols: list[ParsedSymbol] = field(default_factory=list)
    imports: list[ParsedImport] = field(default_factory=list)
    raw_token_estimate: int = 0
    error_count: int = 0


class ParserAdapter:
    """Parses source files with tree-sitter, one cached Language per grammar.

    tree_sitter.Parser is not thread-safe; each thread gets its own parser.
    """

    def __init__(self) -> None:
        self._languages: dict[str, tree_sitter.Language] = {}
        self._lock = threading.Lock()
        self._local = threading.local()

    def supports(self, language: str) -> bool:
        return language in GRAMMARS

    def parse(self, path: str, content: str) -> ParsedFile:
        language = detect_language(path)
        tokens = estimate_tokens(content)
        grammar = GRAMMARS.get(language)
        if grammar is None:
            return ParsedFile(language=language, raw_token_estimate=tokens)

        parser = self._parser_for(language, grammar)
        tree = parser.parse(content.encode("utf-8"))
        root = tree.root_node
        return ParsedFile(
            language=language,
            symbols=grammar.symbols(root),
            imports=grammar.imports(root),
            raw_token_estimate=tokens,
            error_count=_count_errors(root),
        )

    def _parser_for(self, language: str, grammar: _Grammar) -> tree_sitter.Parser:
        parsers: dict[str, tree_sitter.Parser] | None = getattr(self._local, "parsers", None)
        if parsers is None:
            parsers = {}
            self._local.parsers = parsers
        parser = parsers.get(language)
        if parser is None:
            parser = tree_sitter.Parser(self._language(language, grammar))
            parsers[language] = parser
        return parser

    def _language(self, language: str, grammar: _Grammar) -> tree_sitter.Language:
        with self._lock:
            lang = self._languages.get(language)
            if lang is None:
                try:
                    module = importlib.import_module(grammar.module)
                except ImportError as e:
                    raise InternalError.unexpected(
                        "grammar package unavailable", language=language, module=grammar.module
                    ) from e
                lang = tree_sitter.Language(getattr(module, grammar.language_func)())
                self._languages[language] = lang
            return lang


def _count_errors(root: Any) -> int:
    count = 0
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            count += 1
        stack.extend(node.children)
    return count
