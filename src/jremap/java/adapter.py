"""Java language adapter using tree-sitter-java.

This module wires the scanner and binder together: phase 1 builds the symbol
table from every unit, phase 2 binds one unit at a time.
"""

from __future__ import annotations

import tree_sitter_java as tsjava
from tree_sitter import Language, Parser

from jremap.java.binder import JavaBinder, ResolvedUnit
from jremap.java.scanner import JavaScanner
from jremap.java.symbols import SymbolTable

JAVA_LANGUAGE = Language(tsjava.language())


def create_parser() -> Parser:
    """Create a Java parser. Parsers are not thread-safe; use one per thread."""
    return Parser(JAVA_LANGUAGE)


class JavaAdapter:
    """Java binding provider using tree-sitter.

    Implements two-phase processing:
    - Phase 1: Scan all files to build the symbol table (types and members)
    - Phase 2: Bind the identifiers of a unit using the symbol table
    """

    def __init__(self) -> None:
        self._scanner = JavaScanner(create_parser())

    def build_symbol_table(self, sources: list[tuple[str, bytes]]) -> SymbolTable:
        """Phase 1: Scan (name, content) pairs and build the symbol table.

        Args:
            sources: Every unit of the source tree

        Returns:
            SymbolTable containing all definitions
        """
        return self._scanner.scan_sources(sources)

    @staticmethod
    def bind(path: str, content: bytes, symbol_table: SymbolTable) -> ResolvedUnit:
        """Phase 2: Parse and bind one unit.

        Safe to call concurrently; each call uses its own parser and binder.
        """
        return JavaBinder(create_parser(), symbol_table).bind(path, content)
