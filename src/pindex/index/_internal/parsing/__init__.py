"""Source parsing: language detection, tree-sitter extraction, document chunking."""

from pindex.index._internal.parsing.documents import ParsedDocument, TextChunk, parse_document
from pindex.index._internal.parsing.extract import (
    DeclarationKind,
    ParsedImport,
    ParsedSymbol,
)
from pindex.index._internal.parsing.languages import (
    build_code_patterns,
    detect_language,
    estimate_tokens,
    hash_content,
    is_document_language,
)
from pindex.index._internal.parsing.parser import ParsedFile, ParserAdapter

__all__ = [
    "DeclarationKind",
    "ParsedDocument",
    "ParsedFile",
    "ParsedImport",
    "ParsedSymbol",
    "ParserAdapter",
    "TextChunk",
    "build_code_patterns",
    "detect_language",
    "estimate_tokens",
    "hash_content",
    "is_document_language",
    "parse_document",
]
