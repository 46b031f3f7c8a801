"""Java type-name resolution mixin shared by the scanner and the binder."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from tree_sitter import Node

from jremap.java.ast_utils import JavaAstUtils, ParameterNode
from jremap.java.descriptors import OBJECT_TYPE
from jremap.java.symbols import FileContext, SymbolTable, erase_type_variables


@dataclass(frozen=True)
class TypeScope:
    """Where a type name is being resolved.

    `enclosing` lists binary names of enclosing member types, innermost
    first. It is empty inside local and anonymous classes only when no
    enclosing member type exists.
    """

    file_context: FileContext
    enclosing: tuple[str, ...] = ()
    type_variables: dict[str, str] = field(default_factory=dict)

    @property
    def current_type(self) -> str | None:
        return self.enclosing[0] if self.enclosing else None

    def nested(self, binary_name: str) -> TypeScope:
        return replace(self, enclosing=(binary_name, *self.enclosing))


class _JavaTypeResolutionMixin:
    """Resolves type nodes to erased binary names.

    Subclasses provide `self._symbol_table`.
    """

    _symbol_table: SymbolTable

    def _resolve_type_node(
        self, type_node: Node | None, content: bytes, scope: TypeScope, dimensions: int = 0
    ) -> str:
        """Resolve a type node (plus extra declarator dimensions) to an erased name.

        Args:
            type_node: Any Java type node, or None for untyped lambda parameters.
            content: Source file content as bytes.
            scope: The resolution scope.
            dimensions: Extra `[]` from C-style declarators (`int a[]`).

        Returns:
            Erased type name such as `int[]` or `java.lang.String`.
        """
        if type_node is None:
            return OBJECT_TYPE + "[]" * dimensions
        type_name = JavaAstUtils.get_type_name(type_node, content)
        if type_name == "var":
            # Local variable type inference; callers infer from the initializer
            return OBJECT_TYPE
        resolved = self._symbol_table.resolve_type(
            type_name,
            scope.file_context,
            list(scope.enclosing),
            scope.type_variables,
        )
        return resolved + "[]" * dimensions

    def _resolve_parameter(
        self, param: ParameterNode, content: bytes, scope: TypeScope
    ) -> str:
        dimensions = param.dimensions + (1 if param.is_varargs else 0)
        return self._resolve_type_node(param.type_node, content, scope, dimensions)

    def _declare_type_variables(
        self, node: Node, content: bytes, scope: TypeScope
    ) -> TypeScope:
        """Return a scope extended with the type parameters declared on `node`."""
        names = JavaAstUtils.type_parameter_names(node, content)
        if not names:
            return scope
        # Bounds may refer to the variables being declared (T extends Comparable<T>)
        provisional = replace(
            scope,
            type_variables=erase_type_variables(
                scope.type_variables, [(name, None) for name, _ in names]
            ),
        )
        erased: list[tuple[str, str | None]] = []
        for name, bound in names:
            erased.append(
                (name, self._resolve_type_node(bound, content, provisional) if bound else None)
            )
        return replace(
            scope, type_variables=erase_type_variables(scope.type_variables, erased)
        )

    def _callable_signature(
        self, callable_node: Node, content: bytes, scope: TypeScope
    ) -> tuple[list[str], str, bool]:
        """Resolve the erased parameter types and return type of a declaration.

        Args:
            callable_node: A method or constructor declaration.
            content: Source file content as bytes.
            scope: Scope of the declaring type.

        Returns:
            Tuple of (parameter types, return type, is_varargs).
        """
        scope = self._declare_type_variables(callable_node, content, scope)
        params = list(
            JavaAstUtils.iter_parameters(
                callable_node.child_by_field_name("parameters"), content
            )
        )
        parameter_types = [self._resolve_parameter(p, content, scope) for p in params]

        return_type = "void"
        if callable_node.type == "method_declaration":
            type_node = callable_node.child_by_field_name("type")
            dims = JavaAstUtils.count_dimensions(
                callable_node.child_by_field_name("dimensions"), content
            )
            if type_node is not None:
                return_type = self._resolve_type_node(type_node, content, scope, dims)

        is_varargs = bool(params) and params[-1].is_varargs
        return parameter_types, return_type, is_varargs
