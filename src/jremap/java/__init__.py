"""Java language submodule.

This module provides the scanner and binder that turn Java source code into
resolved units whose identifiers carry bindings.
"""

from jremap.java.adapter import JavaAdapter, create_parser
from jremap.java.binder import JavaBinder, ResolvedUnit
from jremap.java.local_scope import LocalScope
from jremap.java.scanner import JavaScanner
from jremap.java.symbols import SymbolTable

__all__ = [
    "JavaAdapter",
    "JavaBinder",
    "JavaScanner",
    "LocalScope",
    "ResolvedUnit",
    "SymbolTable",
    "create_parser",
]
