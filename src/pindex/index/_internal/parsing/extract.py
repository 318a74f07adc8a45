"""Symbol and import extraction from tree-sitter syntax trees.

Top-level declarations are classified into a closed set of
DeclarationKind values. Each kind has exactly one extractor function;
_EXTRACTORS is checked for exhaustiveness at import time, so adding a kind
without an extractor fails loudly instead of silently dropping symbols.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from pindex.index.models import SymbolKind

_WS_RE = re.compile(r"\s+")
_QUOTES = "'\"`"
_TYPE_VALUE_MAX = 50


@dataclass(frozen=True)
class ParsedSymbol:
    """A declaration extracted from one parse."""

    name: str
    kind: SymbolKind
    signature: str
    start_line: int  # 1-indexed, inclusive
    end_line: int  # 1-indexed, inclusive
    is_exported: bool = False


@dataclass(frozen=True)
class ParsedImport:
    """An import statement: module specifier plus the names it brings in."""

    source: str
    symbols: list[str] = field(default_factory=list)

    @property
    def is_relative(self) -> bool:
        return self.source.startswith(".")


class DeclarationKind(Enum):
    """Closed set of top-level declaration shapes the extractor understands."""

    # JavaScript / TypeScript
    FUNCTION = "function"
    CLASS = "class"
    INTERFACE = "interface"
    TYPE_ALIAS = "type_alias"
    ENUM = "enum"
    LEXICAL = "lexical"
    # Python
    PY_FUNCTION = "py_function"
    PY_CLASS = "py_class"
    PY_ASSIGNMENT = "py_assignment"


JS_DECLARATION_TYPES: dict[str, DeclarationKind] = {
    "function_declaration": DeclarationKind.FUNCTION,
    "generator_function_declaration": DeclarationKind.FUNCTION,
    "class_declaration": DeclarationKind.CLASS,
    "abstract_class_declaration": DeclarationKind.CLASS,
    "interface_declaration": DeclarationKind.INTERFACE,
    "type_alias_declaration": DeclarationKind.TYPE_ALIAS,
    "enum_declaration": DeclarationKind.ENUM,
}

# Only reachable through `export`; plain top-level consts are not symbols.
JS_EXPORTED_ONLY_TYPES: dict[str, DeclarationKind] = {
    "lexical_declaration": DeclarationKind.LEXICAL,
    "variable_declaration": DeclarationKind.LEXICAL,
}

PY_DECLARATION_TYPES: dict[str, DeclarationKind] = {
    "function_definition": DeclarationKind.PY_FUNCTION,
    "class_definition": DeclarationKind.PY_CLASS,
    "expression_statement": DeclarationKind.PY_ASSIGNMENT,
}


# =============================================================================
# Node helpers
# =============================================================================


def _text(node: Any | None) -> str:
    if node is None or node.text is None:
        return ""
    text: str = node.text.decode("utf-8", errors="replace")
    return text


def _one_line(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def _lines(node: Any) -> tuple[int, int]:
    return node.start_point[0] + 1, node.end_point[0] + 1


def _child_of_type(node: Any, *types: str) -> Any | None:
    for child in node.children:
        if child.type in types:
            return child
    return None


def _descendants(node: Any, *node_types: str) -> Iterator[Any]:
    """Pre-order walk yielding nodes of the given types."""
    stack = list(reversed(node.children))
    while stack:
        current = stack.pop()
        if current.type in node_types:
            yield current
        stack.extend(reversed(current.children))


def _callable_signature(node: Any, name: str) -> str:
    params = _text(node.child_by_field_name("parameters")) or "()"
    ret = _text(node.child_by_field_name("return_type"))
    return _one_line(f"{name}{params}{ret}")


# =============================================================================
# JavaScript / TypeScript extractors
# =============================================================================


def _extract_function(node: Any, exported: bool) -> list[ParsedSymbol]:
    name = _text(node.child_by_field_name("name"))
    if not name:
        return []
    start, end = _lines(node)
    signature = _callable_signature(node, name)
    return [ParsedSymbol(name, SymbolKind.FUNCTION, signature, start, end, exported)]


def _extract_class(node: Any, exported: bool) -> list[ParsedSymbol]:
    name = _text(node.child_by_field_name("name"))
    if not name:
        return []
    heritage = _child_of_type(node, "class_heritage")
    signature = f"class {name} {_one_line(_text(heritage))}" if heritage else f"class {name}"
    start, end = _lines(node)
    symbols = [ParsedSymbol(name, SymbolKind.CLASS, signature, start, end, exported)]

    body = node.child_by_field_name("body")
    if body is not None:
        for member in body.named_children:
            if member.type != "method_definition":
                continue
            method_name = _text(member.child_by_field_name("name"))
            if not method_name or method_name == "constructor":
                continue
            m_start, m_end = _lines(member)
            symbols.append(
                ParsedSymbol(
                    method_name,
                    SymbolKind.METHOD,
                    _callable_signature(member, method_name),
                    m_start,
                    m_end,
                    False,
                )
            )
    return symbols


def _extract_interface(node: Any, exported: bool) -> list[ParsedSymbol]:
    name = _text(node.child_by_field_name("name"))
    if not name:
        return []
    extends = _child_of_type(node, "extends_type_clause", "extends_clause")
    signature = f"interface {name} {_one_line(_text(extends))}" if extends else f"interface {name}"
    start, end = _lines(node)
    return [ParsedSymbol(name, SymbolKind.INTERFACE, signature, start, end, exported)]


def _extract_type_alias(node: Any, exported: bool) -> list[ParsedSymbol]:
    name = _text(node.child_by_field_name("name"))
    if not name:
        return []
    value = _one_line(_text(node.child_by_field_name("value"))) or "..."
    if len(value) > _TYPE_VALUE_MAX:
        value = value[: _TYPE_VALUE_MAX - 3] + "..."
    start, end = _lines(node)
    return [ParsedSymbol(name, SymbolKind.TYPE, f"type {name} = {value}", start, end, exported)]


def _extract_enum(node: Any, exported: bool) -> list[ParsedSymbol]:
    name = _text(node.child_by_field_name("name"))
    if not name:
        return []
    start, end = _lines(node)
    return [ParsedSymbol(name, SymbolKind.ENUM, f"enum {name}", start, end, exported)]


def _extract_lexical(node: Any, exported: bool) -> list[ParsedSymbol]:
    start, end = _lines(node)
    symbols = []
    for declarator in node.named_children:
        if declarator.type != "variable_declarator":
            continue
        name_node = declarator.child_by_field_name("name")
        # Destructuring patterns have no single name
        if name_node is None or name_node.type != "identifier":
            continue
        name = _text(name_node)
        symbols.append(ParsedSymbol(name, SymbolKind.CONST, name, start, end, exported))
    return symbols


# =============================================================================
# Python extractors
# =============================================================================


def _py_exported(name: str) -> bool:
    return not name.startswith("_")


def _py_function_signature(node: Any, name: str) -> str:
    params = _text(node.child_by_field_name("parameters")) or "()"
    ret = _text(node.child_by_field_name("return_type"))
    prefix = "async def" if _child_of_type(node, "async") is not None else "def"
    suffix = f" -> {ret}" if ret else ""
    return _one_line(f"{prefix} {name}{params}{suffix}")


def _extract_py_function(node: Any, exported: bool) -> list[ParsedSymbol]:
    name = _text(node.child_by_field_name("name"))
    if not name:
        return []
    start, end = _lines(node)
    return [
        ParsedSymbol(
            name,
            SymbolKind.FUNCTION,
            _py_function_signature(node, name),
            start,
            end,
            exported and _py_exported(name),
        )
    ]


def _extract_py_class(node: Any, exported: bool) -> list[ParsedSymbol]:
    name = _text(node.child_by_field_name("name"))
    if not name:
        return []
    bases = _text(node.child_by_field_name("superclasses"))
    signature = _one_line(f"class {name}{bases}")
    start, end = _lines(node)
    symbols = [
        ParsedSymbol(name, SymbolKind.CLASS, signature, start, end, exported and _py_exported(name))
    ]

    body = node.child_by_field_name("body")
    if body is not None:
        for member in body.named_children:
            method = _unwrap_decorated(member)
            if method.type != "function_definition":
                continue
            method_name = _text(method.child_by_field_name("name"))
            if not method_name or method_name == "__init__":
                continue
            m_start, m_end = _lines(member)
            symbols.append(
                ParsedSymbol(
                    method_name,
                    SymbolKind.METHOD,
                    _py_function_signature(method, method_name),
                    m_start,
                    m_end,
                    False,
                )
            )
    return symbols


def _extract_py_assignment(node: Any, exported: bool) -> list[ParsedSymbol]:
    assignment = node.named_children[0] if node.named_children else None
    if assignment is None or assignment.type != "assignment":
        return []
    left = assignment.child_by_field_name("left")
    if left is None or left.type != "identifier":
        return []
    name = _text(left)
    kind = SymbolKind.CONST if name.isupper() else SymbolKind.VARIABLE
    annotation = _text(assignment.child_by_field_name("type"))
    signature = f"{name}: {_one_line(annotation)}" if annotation else name
    start, end = _lines(node)
    return [ParsedSymbol(name, kind, signature, start, end, exported and _py_exported(name))]


def _unwrap_decorated(node: Any) -> Any:
    if node.type == "decorated_definition":
        definition = node.child_by_field_name("definition")
        if definition is not None:
            return definition
    return node


_EXTRACTORS: dict[DeclarationKind, Callable[[Any, bool], list[ParsedSymbol]]] = {
    DeclarationKind.FUNCTION: _extract_function,
    DeclarationKind.CLASS: _extract_class,
    DeclarationKind.INTERFACE: _extract_interface,
    DeclarationKind.TYPE_ALIAS: _extract_type_alias,
    DeclarationKind.ENUM: _extract_enum,
    DeclarationKind.LEXICAL: _extract_lexical,
    DeclarationKind.PY_FUNCTION: _extract_py_function,
    DeclarationKind.PY_CLASS: _extract_py_class,
    DeclarationKind.PY_ASSIGNMENT: _extract_py_assignment,
}

_missing = set(DeclarationKind) - set(_EXTRACTORS)
if _missing:
    raise RuntimeError(f"No extractor for declaration kinds: {sorted(k.value for k in _missing)}")


def extract(kind: DeclarationKind, node: Any, exported: bool) -> list[ParsedSymbol]:
    """Run the extractor registered for kind."""
    return _EXTRACTORS[kind](node, exported)


# =============================================================================
# Per-language entry points
# =============================================================================


def extract_js_symbols(root: Any) -> list[ParsedSymbol]:
    """Top-level declarations of a JavaScript/TypeScript module."""
    symbols: list[ParsedSymbol] = []
    for child in root.named_children:
        if child.type == "export_statement":
            declaration = child.child_by_field_name("declaration")
            if declaration is None:
                continue
            kind = JS_DECLARATION_TYPES.get(declaration.type) or JS_EXPORTED_ONLY_TYPES.get(
                declaration.type
            )
            if kind is not None:
                symbols.extend(extract(kind, declaration, True))
            continue

        kind = JS_DECLARATION_TYPES.get(child.type)
        if kind is not None:
            symbols.extend(extract(kind, child, False))
    return symbols


def extract_js_imports(root: Any) -> list[ParsedImport]:
    imports: list[ParsedImport] = []
    for node in _descendants(root, "import_statement"):
        source = _text(node.child_by_field_name("source")).strip(_QUOTES)
        if not source:
            continue
        names = []
        for spec in _descendants(node, "import_specifier"):
            name = _text(spec.child_by_field_name("name")) or _text(spec)
            if name:
                names.append(name)
        imports.append(ParsedImport(source=source, symbols=names))
    return imports


def extract_py_symbols(root: Any) -> list[ParsedSymbol]:
    """Top-level declarations of a Python module. Exported means no leading underscore."""
    symbols: list[ParsedSymbol] = []
    for child in root.named_children:
        node = _unwrap_decorated(child)
        kind = PY_DECLARATION_TYPES.get(node.type)
        if kind is None:
            continue
        found = extract(kind, node, True)
        if child.type == "decorated_definition" and found:
            # Decorators belong to the declaration's line range
            found[0] = replace(found[0], start_line=child.start_point[0] + 1)
        symbols.extend(found)
    return symbols


def extract_py_imports(root: Any) -> list[ParsedImport]:
    imports: list[ParsedImport] = []
    for node in _descendants(root, "import_statement", "import_from_statement"):
        if node.type == "import_statement":
            for name_node in node.children_by_field_name("name"):
                target = name_node.child_by_field_name("name") or name_node
                imports.append(ParsedImport(source=_text(target)))
            continue
        source = _text(node.child_by_field_name("module_name"))
        if not source:
            continue
        names = []
        for name_node in node.children_by_field_name("name"):
            target = name_node.child_by_field_name("name") or name_node
            names.append(_text(target))
        imports.append(ParsedImport(source=source, symbols=names))
    return imports
