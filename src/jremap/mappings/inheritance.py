"""Inheritance information used to complete class mappings."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from jremap.java.symbols import MethodInfo, SymbolTable


@runtime_checkable
class InheritanceProvider(Protocol):
    """Supplies supertypes and method modifiers for `ClassMapping.complete`."""

    def get_supertypes(self, binary_name: str) -> list[str]:
        """Direct superclass and interfaces of a type, superclass first."""
        ...

    def get_method(self, binary_name: str, name: str, descriptor: str) -> MethodInfo | None:
        """A method declared by a type, or None if the type or method is unknown."""
        ...


class SymbolTableInheritanceProvider:
    """Inheritance provider backed by the scanned source tree."""

    def __init__(self, symbol_table: SymbolTable) -> None:
        self._symbol_table = symbol_table

    def get_supertypes(self, binary_name: str) -> list[str]:
        return self._symbol_table.get_supertypes(binary_name)

    def get_method(self, binary_name: str, name: str, descriptor: str) -> MethodInfo | None:
        type_info = self._symbol_table.get_type(binary_name)
        if type_info is None:
            return None
        return type_info.get_method(name, descriptor)


class StaticInheritanceProvider:
    """Inheritance provider over an explicit supertype table.

    Useful when no sources are scanned, e.g. for mapping-only tooling.
    Methods are unknown, so every method mapping is treated as inheritable.
    """

    def __init__(self, supertypes: dict[str, list[str]] | None = None) -> None:
        self._supertypes = dict(supertypes or {})

    def get_supertypes(self, binary_name: str) -> list[str]:
        return list(self._supertypes.get(binary_name, []))

    def get_method(self, binary_name: str, name: str, descriptor: str) -> MethodInfo | None:
        return None
