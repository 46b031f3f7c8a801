"""Java type inference for receiver and overload resolution.

This module provides the mixin that infers erased static types of Java
expression nodes, so the binder can find the type a method is invoked on
and pick among overloads by argument types.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tree_sitter import Node

from jremap.core.models import Binding, MethodBinding, TypeBinding, VariableBinding
from jremap.java.ast_utils import JavaAstUtils
from jremap.java.descriptors import is_primitive

if TYPE_CHECKING:
    from jremap.java._resolution import TypeScope

logger = logging.getLogger(__name__)

STRING_TYPE = "java.lang.String"

_NUMERIC_RANK = {"byte": 1, "short": 2, "char": 2, "int": 3, "long": 4, "float": 5, "double": 6}

_BOXES = {
    "boolean": "java.lang.Boolean",
    "byte": "java.lang.Byte",
    "char": "java.lang.Character",
    "short": "java.lang.Short",
    "int": "java.lang.Integer",
    "long": "java.lang.Long",
    "float": "java.lang.Float",
    "double": "java.lang.Double",
}

_COMPARISON_OPERATORS = ("==", "!=", "<", ">", "<=", ">=", "&&", "||", "instanceof")


class _JavaTypeInferenceMixin:
    """Infers erased types from Java AST expression nodes.

    Relies on the binder having already bound the sub-expressions of the
    node being inferred (identifiers, fields, invocations). Subclasses
    provide `self._bindings`, `self._content` and `self._resolve_type_node`.
    """

    _bindings: dict[tuple[int, int, str], Binding]
    _content: bytes

    def _binding_of(self, node: Node | None) -> Binding | None:
        if node is None:
            return None
        return self._bindings.get(JavaAstUtils.node_key(node))

    def _infer_type(self, node: Node, scope: TypeScope, this_type: str | None) -> str | None:
        """Infer the erased type of an expression node.

        Args:
            node: The AST expression node.
            scope: Type resolution scope at the expression.
            this_type: Binary name of `this`, if known.

        Returns:
            Erased type name, `null` for the null literal, or None if the
            type cannot be determined.
        """
        node_type = node.type
        content = self._content

        if node_type == "string_literal" or node_type == "text_block":
            return STRING_TYPE
        if node_type in (
            "decimal_integer_literal",
            "hex_integer_literal",
            "octal_integer_literal",
            "binary_integer_literal",
        ):
            text = JavaAstUtils.get_node_text(node, content)
            return "long" if text.endswith(("L", "l")) else "int"
        if node_type in ("decimal_floating_point_literal", "hex_floating_point_literal"):
            text = JavaAstUtils.get_node_text(node, content)
            return "float" if text.endswith(("f", "F")) else "double"
        if node_type in ("true", "false"):
            return "boolean"
        if node_type == "character_literal":
            return "char"
        if node_type == "null_literal":
            return "null"

        if node_type == "this":
            return this_type

        if node_type == "field_access":
            field_node = node.child_by_field_name("field")
            if field_node is not None and field_node.type == "this":
                # Qualified `Outer.this`
                binding = self._binding_of(node.child_by_field_name("object"))
                return binding.binary_name if isinstance(binding, TypeBinding) else None

        if node_type in ("identifier", "field_access"):
            target = node if node_type == "identifier" else node.child_by_field_name("field")
            binding = self._binding_of(target)
            if isinstance(binding, VariableBinding):
                return binding.type_name
            if isinstance(binding, TypeBinding):
                return binding.binary_name
            return None

        if node_type == "method_invocation":
            binding = self._binding_of(node.child_by_field_name("name"))
            if isinstance(binding, MethodBinding):
                return binding.return_type
            return None

        if node_type == "object_creation_expression":
            type_node = node.child_by_field_name("type")
            return self._resolve_type_node(type_node, content, scope) if type_node else None

        if node_type == "array_creation_expression":
            type_node = node.child_by_field_name("type")
            if type_node is None:
                return None
            dims = 0
            for child in node.children:
                if child.type == "dimensions_expr":
                    dims += 1
                elif child.type == "dimensions":
                    dims += JavaAstUtils.count_dimensions(child, content)
            return self._resolve_type_node(type_node, content, scope, dims)

        if node_type == "cast_expression":
            type_node = node.child_by_field_name("type")
            return self._resolve_type_node(type_node, content, scope) if type_node else None

        if node_type == "parenthesized_expression":
            for child in node.named_children:
                return self._infer_type(child, scope, this_type)
            return None

        if node_type == "array_access":
            array = node.child_by_field_name("array")
            array_type = self._infer_type(array, scope, this_type) if array else None
            if array_type and array_type.endswith("[]"):
                return array_type[:-2]
            return None

        if node_type == "ternary_expression":
            consequence = node.child_by_field_name("consequence")
            return self._infer_type(consequence, scope, this_type) if consequence else None

        if node_type == "assignment_expression":
            left = node.child_by_field_name("left")
            return self._infer_type(left, scope, this_type) if left else None

        if node_type == "unary_expression":
            operator = node.child_by_field_name("operator")
            operand = node.child_by_field_name("operand")
            if operator is not None and operator.type == "!":
                return "boolean"
            return self._infer_type(operand, scope, this_type) if operand else None

        if node_type in ("update_expression",):
            for child in node.named_children:
                return self._infer_type(child, scope, this_type)
            return None

        if node_type == "binary_expression":
            return self._infer_binary(node, scope, this_type)

        if node_type == "instanceof_expression":
            return "boolean"

        logger.debug(f"Unknown expression type for inference: {node_type}")
        return None

    def _infer_binary(self, node: Node, scope: TypeScope, this_type: str | None) -> str | None:
        """Infer the type of a binary expression using numeric promotion."""
        operator = node.child_by_field_name("operator")
        if operator is not None and operator.type in _COMPARISON_OPERATORS:
            return "boolean"

        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        left_type = self._infer_type(left, scope, this_type) if left else None
        right_type = self._infer_type(right, scope, this_type) if right else None

        if operator is not None and operator.type == "+" and STRING_TYPE in (left_type, right_type):
            return STRING_TYPE
        if operator is not None and operator.type in ("<<", ">>", ">>>"):
            return _promote(left_type, "int")
        if left_type in _NUMERIC_RANK and right_type in _NUMERIC_RANK:
            return _promote(left_type, right_type)
        if left_type == right_type:
            return left_type
        return None


def _promote(left: str | None, right: str | None) -> str | None:
    """Binary numeric promotion of two primitive types."""
    if left not in _NUMERIC_RANK or right not in _NUMERIC_RANK:
        return None
    winner = max(left, right, key=lambda t: _NUMERIC_RANK[t])
    return winner if _NUMERIC_RANK[winner] > _NUMERIC_RANK["int"] else "int"


def is_assignable(argument: str | None, parameter: str) -> bool:
    """Check whether an argument of an inferred type may be passed to a parameter.

    Unknown argument types are compatible with anything. Reference types are
    assumed compatible with each other because the hierarchy of library
    types is unknown.
    """
    if argument is None or argument == parameter:
        return True
    if argument == "null":
        return not is_primitive(parameter)
    if is_primitive(argument) and is_primitive(parameter):
        if argument == "boolean" or parameter == "boolean":
            return False
        if parameter == "char":
            return False
        if argument == "char":
            return _NUMERIC_RANK[parameter] >= _NUMERIC_RANK["int"]
        return _NUMERIC_RANK[argument] <= _NUMERIC_RANK[parameter]
    if is_primitive(argument):
        return parameter in (_BOXES.get(argument), "java.lang.Object", "java.lang.Number")
    if is_primitive(parameter):
        return _BOXES.get(parameter) == argument
    if argument.endswith("[]") != parameter.endswith("[]"):
        return parameter == "java.lang.Object"
    return True
