"""Java scanner for Phase 1 symbol table construction.

This module scans Java source files to build a symbol table containing
every member type with its supertypes, methods and fields.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tree_sitter import Node, Parser

from jremap.java._resolution import TypeScope, _JavaTypeResolutionMixin
from jremap.java.ast_utils import (
    CALLABLE_DECLARATIONS,
    TYPE_BODIES,
    TYPE_DECLARATIONS,
    TYPE_NODES,
    JavaAstUtils,
)
from jremap.java.symbols import FieldInfo, FileContext, MethodInfo, SymbolTable, TypeInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TypeDeclaration:
    """A member type declaration found in a unit."""

    node: Node
    binary_name: str
    canonical_name: str
    simple_name: str
    outer: str | None


def collect_type_declarations(root: Node, content: bytes, package: str) -> list[TypeDeclaration]:
    """Collect top-level and member type declarations of a unit, outer first.

    Local and anonymous classes are not member types and are not collected.
    """
    found: list[TypeDeclaration] = []

    def visit(node: Node, outer: TypeDeclaration | None) -> None:
        for child in node.children:
            if child.type in TYPE_DECLARATIONS:
                name_node = child.child_by_field_name("name")
                if name_node is None:
                    continue
                simple = JavaAstUtils.get_node_text(name_node, content)
                if outer is not None:
                    binary = f"{outer.binary_name}${simple}"
                    canonical = f"{outer.canonical_name}.{simple}"
                elif package:
                    binary = canonical = f"{package}.{simple}"
                else:
                    binary = canonical = simple
                declaration = TypeDeclaration(
                    child, binary, canonical, simple, outer.binary_name if outer else None
                )
                found.append(declaration)
                body = child.child_by_field_name("body")
                if body is not None:
                    visit(body, declaration)
            elif child.type in TYPE_BODIES:
                visit(child, outer)

    visit(root, None)
    return found


@dataclass(frozen=True)
class AnonymousClass:
    """An anonymous class body with the binary name javac gives it."""

    body: Node
    binary_name: str
    outer: str
    # `T` of `new T() {...}`; None for enum constant bodies, which extend the enum
    super_type: Node | None


def collect_anonymous_classes(root: Node, content: bytes, package: str) -> list[AnonymousClass]:
    """Collect anonymous classes of a unit, enclosing classes first.

    Anonymous classes are numbered per innermost enclosing member or
    anonymous class in source order (`Outer$1`, `Outer$1$1`), those in
    constructor arguments before the class being created. Bodies inside
    local classes get no binary name and are not collected.
    """
    members = {
        JavaAstUtils.node_key(declaration.node): declaration.binary_name
        for declaration in collect_type_declarations(root, content, package)
    }
    counters: dict[str, int] = {}
    found: list[AnonymousClass] = []

    def visit(node: Node, outer: str | None) -> None:
        if node.type in TYPE_DECLARATIONS:
            outer = members.get(JavaAstUtils.node_key(node))
        elif node.type in ("object_creation_expression", "enum_constant"):
            body = next((c for c in node.children if c.type == "class_body"), None)
            if body is not None:
                for child in node.children:
                    if child != body:
                        visit(child, outer)
                if outer is not None:
                    counters[outer] = counters.get(outer, 0) + 1
                    anonymous = AnonymousClass(
                        body=body,
                        binary_name=f"{outer}${counters[outer]}",
                        outer=outer,
                        super_type=node.child_by_field_name("type"),
                    )
                    found.append(anonymous)
                    outer = anonymous.binary_name
                visit(body, outer)
                return
        for child in node.children:
            visit(child, outer)

    visit(root, None)
    return found


def build_file_context(root: Node, content: bytes) -> FileContext:
    """Build the package/import context of a unit."""
    package = JavaAstUtils.extract_package(root, content)
    local_types: dict[str, str] = {}
    for declaration in collect_type_declarations(root, content, package):
        local_types.setdefault(declaration.simple_name, declaration.binary_name)
    return FileContext(
        package=package,
        imports=JavaAstUtils.extract_imports(root, content),
        static_imports=JavaAstUtils.extract_imports(root, content, static=True),
        local_types=local_types,
    )


class JavaScanner(_JavaTypeResolutionMixin):
    """Phase 1: Scan Java files to build the symbol table.

    Types are registered first across all units so that member signatures
    can refer to types declared in any file.
    """

    def __init__(self, parser: Parser) -> None:
        """Initialize the scanner.

        Args:
            parser: Configured tree-sitter parser for Java
        """
        self._parser = parser
        self._symbol_table = SymbolTable()

    def scan_sources(self, sources: list[tuple[str, bytes]]) -> SymbolTable:
        """Scan in-memory sources given as (name, content) pairs."""
        self._symbol_table = SymbolTable()
        units: list[tuple[str, bytes, Node, FileContext, list[AnonymousClass]]] = []

        for name, content in sources:
            try:
                root = self._parser.parse(content).root_node
                context = build_file_context(root, content)
                for declaration in collect_type_declarations(root, content, context.package):
                    self._symbol_table.add_type(TypeInfo(
                        binary_name=declaration.binary_name,
                        canonical_name=declaration.canonical_name,
                        package=context.package,
                        simple_name=declaration.simple_name,
                        is_interface=declaration.node.type in (
                            "interface_declaration", "annotation_type_declaration"
                        ),
                    ))
                anonymous_classes = collect_anonymous_classes(root, content, context.package)
                for anonymous in anonymous_classes:
                    self._symbol_table.add_type(TypeInfo(
                        binary_name=anonymous.binary_name,
                        canonical_name=anonymous.binary_name,
                        package=context.package,
                        simple_name=anonymous.binary_name.rsplit("$", 1)[-1],
                    ))
                units.append((name, content, root, context, anonymous_classes))
            except Exception as e:
                logger.warning(f"Failed to scan {name}: {e}")

        for name, content, root, context, anonymous_classes in units:
            try:
                scopes = self._scan_members(root, content, context)
                self._scan_anonymous_classes(anonymous_classes, content, scopes)
            except Exception as e:
                logger.warning(f"Failed to scan members of {name}: {e}")

        logger.debug(f"Scanned {len(self._symbol_table.types)} types from {len(units)} units")
        return self._symbol_table

    def _scan_members(
        self, root: Node, content: bytes, context: FileContext
    ) -> dict[str, TypeScope]:
        """Record supertypes, methods and fields of every member type in a unit.

        Returns:
            The resolution scope of each member type, by binary name.
        """
        scopes: dict[str, TypeScope] = {}
        for declaration in collect_type_declarations(root, content, context.package):
            if declaration.outer is not None:
                outer_scope = scopes[declaration.outer]
            else:
                outer_scope = TypeScope(file_context=context)
            scope = self._declare_type_variables(
                declaration.node, content, outer_scope.nested(declaration.binary_name)
            )
            scopes[declaration.binary_name] = scope

            type_info = self._symbol_table.types[declaration.binary_name]
            self._scan_supertypes(declaration.node, content, scope, type_info)

            if declaration.node.type == "record_declaration":
                self._scan_record_components(declaration.node, content, scope, type_info)

            body = declaration.node.child_by_field_name("body")
            if body is not None:
                self._scan_body(body, content, scope, type_info)
        return scopes

    def _scan_anonymous_classes(
        self, anonymous_classes: list[AnonymousClass], content: bytes, scopes: dict[str, TypeScope]
    ) -> None:
        """Record the supertype and members of every anonymous class in a unit.

        The created type is the superclass, or the only interface when it is a
        known interface.
        """
        for anonymous in anonymous_classes:
            outer_scope = scopes.get(anonymous.outer)
            if outer_scope is None:
                continue
            scope = outer_scope.nested(anonymous.binary_name)
            scopes[anonymous.binary_name] = scope
            type_info = self._symbol_table.types[anonymous.binary_name]

            if anonymous.super_type is None:
                super_type = anonymous.outer
            else:
                super_type = self._resolve_type_node(anonymous.super_type, content, outer_scope)
            super_info = self._symbol_table.get_type(super_type)
            if super_info is not None and super_info.is_interface:
                type_info.interfaces.append(super_type)
            else:
                type_info.super_class = super_type

            self._scan_body(anonymous.body, content, scope, type_info)

    def _scan_supertypes(
        self, type_node: Node, content: bytes, scope: TypeScope, type_info: TypeInfo
    ) -> None:
        """Resolve extends and implements relations for a type."""
        # Supertype clauses are resolved outside the type's own member scope
        outer = TypeScope(scope.file_context, scope.enclosing[1:], scope.type_variables)

        if type_node.type == "enum_declaration":
            type_info.super_class = "java.lang.Enum"
        elif type_node.type == "record_declaration":
            type_info.super_class = "java.lang.Record"

        for child in type_node.children:
            if child.type == "superclass":
                for type_ref in child.children:
                    if type_ref.type in TYPE_NODES:
                        type_info.super_class = self._resolve_type_node(type_ref, content, outer)
            elif child.type in ("super_interfaces", "extends_interfaces"):
                for type_list in child.children:
                    if type_list.type != "type_list":
                        continue
                    for type_ref in type_list.children:
                        if type_ref.type in TYPE_NODES:
                            type_info.interfaces.append(
                                self._resolve_type_node(type_ref, content, outer)
                            )

    def _scan_record_components(
        self, type_node: Node, content: bytes, scope: TypeScope, type_info: TypeInfo
    ) -> None:
        """Record components become fields plus the canonical constructor."""
        params = list(
            JavaAstUtils.iter_parameters(type_node.child_by_field_name("parameters"), content)
        )
        types = [self._resolve_parameter(p, content, scope) for p in params]
        for param, type_name in zip(params, types):
            type_info.fields.append(FieldInfo(
                name=JavaAstUtils.get_node_text(param.name_node, content),
                type_name=type_name,
            ))
        type_info.methods.append(MethodInfo(
            name="<init>",
            parameter_types=types,
            is_constructor=True,
            visibility="public",
        ))

    def _scan_body(
        self, body_node: Node, content: bytes, scope: TypeScope, type_info: TypeInfo
    ) -> None:
        """Scan for methods, constructors, fields and enum constants in a type body."""
        for child in body_node.children:
            if child.type == "enum_body_declarations":
                self._scan_body(child, content, scope, type_info)
            elif child.type == "enum_constant":
                name_node = child.child_by_field_name("name")
                if name_node is not None:
                    type_info.fields.append(FieldInfo(
                        name=JavaAstUtils.get_node_text(name_node, content),
                        type_name=type_info.binary_name,
                        is_static=True,
                    ))
            elif child.type in ("field_declaration", "constant_declaration"):
                self._scan_field(child, content, scope, type_info)
            elif child.type in CALLABLE_DECLARATIONS:
                self._scan_callable(child, content, scope, type_info)

    def _scan_field(
        self, decl_node: Node, content: bytes, scope: TypeScope, type_info: TypeInfo
    ) -> None:
        modifiers = JavaAstUtils.extract_modifiers(decl_node, content)
        is_static = "static" in modifiers or type_info.is_interface
        type_node = decl_node.child_by_field_name("type")
        for declarator in JavaAstUtils.iter_declarators(decl_node):
            name_node = declarator.child_by_field_name("name")
            if name_node is None:
                continue
            dims = JavaAstUtils.count_dimensions(
                declarator.child_by_field_name("dimensions"), content
            )
            type_info.fields.append(FieldInfo(
                name=JavaAstUtils.get_node_text(name_node, content),
                type_name=self._resolve_type_node(type_node, content, scope, dims),
                is_static=is_static,
            ))

    def _scan_callable(
        self, callable_node: Node, content: bytes, scope: TypeScope, type_info: TypeInfo
    ) -> None:
        is_constructor = callable_node.type == "constructor_declaration"
        if is_constructor:
            name = "<init>"
        else:
            name_node = callable_node.child_by_field_name("name")
            if name_node is None:
                return
            name = JavaAstUtils.get_node_text(name_node, content)

        modifiers = JavaAstUtils.extract_modifiers(callable_node, content)
        parameter_types, return_type, is_varargs = self._callable_signature(
            callable_node, content, scope
        )
        type_info.methods.append(MethodInfo(
            name=name,
            parameter_types=parameter_types,
            return_type=return_type,
            is_static="static" in modifiers,
            is_constructor=is_constructor,
            is_varargs=is_varargs,
            visibility=_visibility(modifiers, type_info.is_interface),
        ))


def _visibility(modifiers: list[str], in_interface: bool) -> str:
    """Determine visibility from modifiers."""
    for candidate in ("public", "private", "protected"):
        if candidate in modifiers:
            return candidate
    return "public" if in_interface else "package"
