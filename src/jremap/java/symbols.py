"""Symbol table for two-phase Java processing.

Phase 1 (scanning) records every member type declared in the source tree
with its supertypes, methods and fields. Phase 2 (binding) uses the table to
resolve type names, method invocations and field accesses to bindings.

All type names stored here are erased binary names (`com.example.Outer$Inner`)
or primitive/array names (`int`, `long[]`).
"""

from __future__ import annotations

from collections.abc import Iterator

from pydantic import BaseModel, Field

from jremap.java.descriptors import (
    OBJECT_TYPE,
    PRIMITIVE_DESCRIPTORS,
    method_descriptor,
    type_descriptor,
)

# Commonly used java.lang types resolvable without an import.
JAVA_LANG_TYPES = frozenset({
    "AbstractMethodError", "Appendable", "ArithmeticException",
    "ArrayIndexOutOfBoundsException", "AssertionError", "AutoCloseable",
    "Boolean", "Byte", "CharSequence", "Character", "Class", "ClassCastException",
    "ClassLoader", "ClassNotFoundException", "CloneNotSupportedException",
    "Cloneable", "Comparable", "Deprecated", "Double", "Enum", "Error",
    "Exception", "Float", "FunctionalInterface", "IllegalAccessException",
    "IllegalArgumentException", "IllegalStateException",
    "IndexOutOfBoundsException", "Integer", "InterruptedException", "Iterable",
    "Long", "Math", "NegativeArraySizeException", "NoSuchFieldException",
    "NoSuchMethodException", "NullPointerException", "Number",
    "NumberFormatException", "Object", "OutOfMemoryError", "Override",
    "Process", "Record", "ReflectiveOperationException", "Runnable", "Runtime",
    "RuntimeException", "SafeVarargs", "SecurityException", "Short",
    "StackOverflowError", "StrictMath", "String", "StringBuffer",
    "StringBuilder", "SuppressWarnings", "System", "Thread", "ThreadLocal",
    "Throwable", "UnsupportedOperationException", "Void",
})


class FileContext(BaseModel):
    """File-level context for symbol resolution.

    Contains information about the current file being processed,
    used to resolve short names to binary names.
    """

    package: str = Field(..., description="Current package name")
    imports: list[str] = Field(default_factory=list, description="Import statements")
    static_imports: list[str] = Field(
        default_factory=list, description="Static imports (`a.B.member` or `a.B.*`)"
    )
    local_types: dict[str, str] = Field(
        default_factory=dict, description="Types declared in this file (simple -> binary)"
    )


class MethodInfo(BaseModel):
    """A method or constructor declared in a scanned type."""

    name: str
    parameter_types: list[str] = Field(default_factory=list)
    return_type: str = "void"
    is_static: bool = False
    is_constructor: bool = False
    is_varargs: bool = False
    visibility: str = Field(default="package", description="public/protected/private/package")

    @property
    def descriptor(self) -> str:
        return method_descriptor(self.parameter_types, self.return_type)


class FieldInfo(BaseModel):
    """A field (or enum constant, or record component) of a scanned type."""

    name: str
    type_name: str
    is_static: bool = False

    @property
    def descriptor(self) -> str:
        return type_descriptor(self.type_name)


class TypeInfo(BaseModel):
    """A member type declared in the source tree."""

    binary_name: str = Field(..., description="Binary name, e.g. com.example.Outer$Inner")
    canonical_name: str = Field(..., description="Source name, e.g. com.example.Outer.Inner")
    package: str = ""
    simple_name: str
    is_interface: bool = False
    super_class: str | None = None
    interfaces: list[str] = Field(default_factory=list)
    methods: list[MethodInfo] = Field(default_factory=list)
    fields: list[FieldInfo] = Field(default_factory=list)

    def methods_named(self, name: str) -> list[MethodInfo]:
        return [m for m in self.methods if m.name == name and not m.is_constructor]

    def constructors(self) -> list[MethodInfo]:
        return [m for m in self.methods if m.is_constructor]

    def get_method(self, name: str, descriptor: str) -> MethodInfo | None:
        for method in self.methods:
            if method.name == name and method.descriptor == descriptor:
                return method
        return None

    def get_field(self, name: str) -> FieldInfo | None:
        for field_info in self.fields:
            if field_info.name == name:
                return field_info
        return None


class SymbolTable(BaseModel):
    """Symbol table for two-phase processing.

    Stores definition information collected during Phase 1 (scanning)
    for use in Phase 2 (binding and remapping).
    """

    types: dict[str, TypeInfo] = Field(
        default_factory=dict, description="binary_name -> TypeInfo"
    )
    type_map: dict[str, list[str]] = Field(
        default_factory=dict, description="simple_name -> [binary_names]"
    )
    canonical_map: dict[str, str] = Field(
        default_factory=dict, description="canonical_name -> binary_name"
    )

    def add_type(self, type_info: TypeInfo) -> None:
        """Register a type in the symbol table."""
        self.types[type_info.binary_name] = type_info
        names = self.type_map.setdefault(type_info.simple_name, [])
        if type_info.binary_name not in names:
            names.append(type_info.binary_name)
        self.canonical_map[type_info.canonical_name] = type_info.binary_name

    def get_type(self, binary_name: str | None) -> TypeInfo | None:
        if binary_name is None:
            return None
        return self.types.get(binary_name)

    def get_supertypes(self, binary_name: str) -> list[str]:
        """Get the direct supertypes (superclass first, then interfaces).

        Args:
            binary_name: The binary name of the type.

        Returns:
            Binary names of direct supertypes, or empty list if unknown.
        """
        info = self.types.get(binary_name)
        if info is None:
            return []
        supertypes = [info.super_class] if info.super_class else []
        return supertypes + list(info.interfaces)

    def iter_hierarchy(self, binary_name: str) -> Iterator[TypeInfo]:
        """Yield the type and its known supertypes, nearest first, each once."""
        seen: set[str] = set()
        queue = [binary_name]
        while queue:
            current = queue.pop(0)
            if current in seen:
                continue
            seen.add(current)
            info = self.types.get(current)
            if info is None:
                continue
            yield info
            queue.extend(self.get_supertypes(current))

    def find_methods(self, binary_name: str, name: str) -> list[tuple[str, MethodInfo]]:
        """Find methods visible on a type by simple name.

        Overridden methods are reported once, at their most derived
        declaration.

        Returns:
            List of (declaring binary name, MethodInfo) pairs.
        """
        found: list[tuple[str, MethodInfo]] = []
        descriptors: set[str] = set()
        for info in self.iter_hierarchy(binary_name):
            for method in info.methods_named(name):
                if method.descriptor in descriptors:
                    continue
                descriptors.add(method.descriptor)
                found.append((info.binary_name, method))
        return found

    def find_field(self, binary_name: str, name: str) -> tuple[str, FieldInfo] | None:
        """Find a field visible on a type, searching supertypes nearest first."""
        for info in self.iter_hierarchy(binary_name):
            field_info = info.get_field(name)
            if field_info is not None:
                return info.binary_name, field_info
        return None

    def static_import_owners(self, name: str, context: FileContext) -> list[str]:
        """Source types whose static member `name` a file imports.

        Single-static imports come before on-demand ones, following Java's
        shadowing order.
        """
        single: list[str] = []
        on_demand: list[str] = []
        for imp in context.static_imports:
            if imp.endswith(".*"):
                owner = imp[:-2]
                target = on_demand
            elif imp.endswith(f".{name}"):
                owner = imp[: -len(name) - 1]
                target = single
            else:
                continue
            binary = self.canonical_map.get(owner)
            if binary is not None and binary not in target:
                target.append(binary)
        return single + on_demand

    def find_member_type(self, binary_name: str, name: str) -> str | None:
        """Find a member type `name` declared in a type or one of its supertypes."""
        for info in self.iter_hierarchy(binary_name):
            candidate = f"{info.binary_name}${name}"
            if candidate in self.types:
                return candidate
        return None

    def resolve_type(
        self,
        name: str,
        context: FileContext,
        enclosing: list[str] | None = None,
        type_variables: dict[str, str] | None = None,
    ) -> str:
        """Resolve a source-level type name to its erased binary name.

        Resolution order for simple names:
        1. Type variables in scope (erased to their bound)
        2. Member types of enclosing types and their supertypes
        3. Types declared in this file
        4. Explicit imports
        5. Same-package types
        6. Wildcard imports
        7. java.lang types
        8. Assume same package

        Args:
            name: Source type name (`String`, `Map.Entry`, `int[]`)
            context: The file context containing package and imports
            enclosing: Binary names of enclosing types, innermost first
            type_variables: Type variables in scope mapped to their erasure

        Returns:
            The erased binary name
        """
        dimensions = 0
        while name.endswith("[]"):
            name = name[:-2]
            dimensions += 1
        if name.endswith("..."):
            name = name[:-3]
            dimensions += 1

        return self._resolve_element(name, context, enclosing or [], type_variables or {}) + (
            "[]" * dimensions
        )

    def lookup_type(
        self,
        name: str,
        context: FileContext,
        enclosing: list[str] | None = None,
        type_variables: dict[str, str] | None = None,
    ) -> str | None:
        """Resolve a simple name only if it certainly denotes a type.

        Unlike `resolve_type`, no same-package guess is made, so an
        unresolvable expression name stays unresolved.
        """
        if type_variables and name in type_variables:
            return None
        resolved = self._resolve_simple(name, context, enclosing or [], {})
        if resolved is not None:
            return resolved
        if name in JAVA_LANG_TYPES:
            return f"java.lang.{name}"
        return None

    def _resolve_element(
        self,
        name: str,
        context: FileContext,
        enclosing: list[str],
        type_variables: dict[str, str],
    ) -> str:
        if name in PRIMITIVE_DESCRIPTORS:
            return name

        if "." in name:
            head, _, rest = name.partition(".")
            head_resolved = self._resolve_simple(head, context, enclosing, type_variables)
            if head_resolved is not None and head_resolved in self.types:
                resolved = head_resolved
                for segment in rest.split("."):
                    resolved = self.find_member_type(resolved, segment) or f"{resolved}${segment}"
                return resolved
            # Fully qualified name
            return self.canonical_map.get(name, name)

        resolved = self._resolve_simple(name, context, enclosing, type_variables)
        if resolved is not None:
            return resolved
        if name in JAVA_LANG_TYPES:
            return f"java.lang.{name}"
        return f"{context.package}.{name}" if context.package else name

    def _resolve_simple(
        self,
        name: str,
        context: FileContext,
        enclosing: list[str],
        type_variables: dict[str, str],
    ) -> str | None:
        if name in type_variables:
            return type_variables[name]

        for outer in enclosing:
            member = self.find_member_type(outer, name)
            if member is not None:
                return member
            if outer.rsplit(".", 1)[-1].rsplit("$", 1)[-1] == name:
                return outer

        if name in context.local_types:
            return context.local_types[name]

        for imp in context.imports:
            if imp.endswith(f".{name}"):
                return self.canonical_map.get(imp, imp)

        same_package = f"{context.package}.{name}" if context.package else name
        if same_package in self.types:
            return same_package

        # Sort candidates for deterministic iteration order
        candidates = sorted(self.type_map.get(name, []))
        for imp in context.imports:
            if imp.endswith(".*"):
                prefix = imp[:-2]
                for candidate in candidates:
                    info = self.types[candidate]
                    if info.canonical_name == f"{prefix}.{name}":
                        return candidate

        return None


def erase_type_variables(
    type_variables: dict[str, str], names: list[tuple[str, str | None]]
) -> dict[str, str]:
    """Extend a type variable scope with newly declared variables.

    Args:
        type_variables: Enclosing type variables mapped to their erasure.
        names: (name, resolved first bound or None) pairs.

    Returns:
        A new mapping; the enclosing mapping is left unchanged.
    """
    scope = dict(type_variables)
    for name, bound in names:
        scope[name] = bound or OBJECT_TYPE
    return scope
