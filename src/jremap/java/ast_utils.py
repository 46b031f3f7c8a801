"""Tree-sitter helpers for Java declarations.

Node text, erased type names, package and import extraction, modifiers,
and iteration over formal, lambda and variable declarators. Byte offsets
are kept so the remapper can address identifiers in the original buffer.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from tree_sitter import Node

TYPE_DECLARATIONS = (
    "class_declaration",
    "interface_declaration",
    "enum_declaration",
    "record_declaration",
    "annotation_type_declaration",
)

TYPE_BODIES = (
    "class_body",
    "interface_body",
    "enum_body",
    "enum_body_declarations",
    "annotation_type_body",
)

CALLABLE_DECLARATIONS = (
    "method_declaration",
    "constructor_declaration",
)

TYPE_NODES = (
    "integral_type",
    "floating_point_type",
    "boolean_type",
    "void_type",
    "type_identifier",
    "scoped_type_identifier",
    "generic_type",
    "array_type",
)


@dataclass(frozen=True)
class ParameterNode:
    """A declared parameter of a method, constructor or lambda."""

    node: Node
    name_node: Node
    type_node: Node | None
    dimensions: int = 0
    is_varargs: bool = False


class JavaAstUtils:
    """Java AST utility functions for tree-sitter nodes."""

    @staticmethod
    def get_node_text(node: Node, content: bytes) -> str:
        """Get the text content of a node.

        Args:
            node: The AST node
            content: Source file content

        Returns:
            The text content of the node
        """
        return content[node.start_byte:node.end_byte].decode("utf-8")

    @staticmethod
    def node_key(node: Node) -> tuple[int, int, str]:
        """Byte span and type identifying a node within its unit."""
        return (node.start_byte, node.end_byte, node.type)

    @staticmethod
    def get_type_name(type_node: Node, content: bytes) -> str:
        """Extract a source-level type name from a type node.

        Generic arguments and annotations are dropped, array dimensions are
        kept as `[]` suffixes and qualified names keep their dots.

        Args:
            type_node: The type AST node
            content: Source file content

        Returns:
            Type name such as `int`, `Map.Entry` or `String[]`
        """
        if type_node.type == "type_identifier":
            return JavaAstUtils.get_node_text(type_node, content)
        elif type_node.type == "generic_type":
            # Get base type without generics
            for child in type_node.children:
                if child.type in ("type_identifier", "scoped_type_identifier"):
                    return JavaAstUtils.get_type_name(child, content)
        elif type_node.type == "scoped_type_identifier":
            parts = [
                JavaAstUtils.get_type_name(child, content)
                for child in type_node.children
                if child.type in ("type_identifier", "scoped_type_identifier", "generic_type")
            ]
            return ".".join(parts)
        elif type_node.type == "array_type":
            element_type = type_node.child_by_field_name("element")
            dimensions = type_node.child_by_field_name("dimensions")
            if element_type:
                return JavaAstUtils.get_type_name(element_type, content) + "[]" * (
                    JavaAstUtils.count_dimensions(dimensions, content)
                )
        elif type_node.type in ("integral_type", "floating_point_type", "boolean_type"):
            return JavaAstUtils.get_node_text(type_node, content)
        elif type_node.type == "void_type":
            return "void"

        return JavaAstUtils.get_node_text(type_node, content)

    @staticmethod
    def count_dimensions(dimensions_node: Node | None, content: bytes) -> int:
        """Count `[]` pairs in a dimensions node (annotations are ignored)."""
        if dimensions_node is None:
            return 0
        return JavaAstUtils.get_node_text(dimensions_node, content).count("[")

    @staticmethod
    def extract_package(root: Node, content: bytes) -> str:
        """Extract package name from the AST.

        Args:
            root: Root node of the AST
            content: Source file content

        Returns:
            Package name or empty string if no package declaration
        """
        for child in root.children:
            if child.type == "package_declaration":
                for node in child.children:
                    if node.type in ("scoped_identifier", "identifier"):
                        return JavaAstUtils.get_node_text(node, content)
        return ""

    @staticmethod
    def extract_imports(root: Node, content: bytes, static: bool = False) -> list[str]:
        """Extract import statements from the AST.

        Args:
            root: Root node of the AST
            content: Source file content
            static: Extract `import static` declarations instead of type imports

        Returns:
            List of imported names, wildcard imports end in `.*`
        """
        imports: list[str] = []
        for child in root.children:
            if child.type != "import_declaration":
                continue
            if any(c.type == "static" for c in child.children) != static:
                continue
            for node in child.children:
                if node.type in ("scoped_identifier", "identifier"):
                    import_text = JavaAstUtils.get_node_text(node, content)
                    if any(c.type == "asterisk" for c in child.children):
                        import_text += ".*"
                    imports.append(import_text)
                    break
        return imports

    @staticmethod
    def extract_modifiers(node: Node, content: bytes) -> list[str]:
        """Extract modifiers from a declaration node.

        Args:
            node: The declaration AST node
            content: Source file content (unused but kept for consistency)

        Returns:
            List of modifier strings
        """
        modifiers: list[str] = []
        for child in node.children:
            if child.type == "modifiers":
                for mod in child.children:
                    if mod.type in (
                        "public", "private", "protected", "static",
                        "final", "abstract", "synchronized", "native", "default",
                    ):
                        modifiers.append(mod.type)
        return modifiers

    @staticmethod
    def iter_parameters(params_node: Node | None, content: bytes) -> Iterator[ParameterNode]:
        """Yield declared parameters of a `formal_parameters` node in order.

        Receiver parameters (`Foo this`) are not real parameters and are skipped.
        """
        if params_node is None:
            return
        for child in params_node.children:
            if child.type == "formal_parameter":
                name_node = child.child_by_field_name("name")
                if name_node is None:
                    continue
                yield ParameterNode(
                    node=child,
                    name_node=name_node,
                    type_node=child.child_by_field_name("type"),
                    dimensions=JavaAstUtils.count_dimensions(
                        child.child_by_field_name("dimensions"), content
                    ),
                )
            elif child.type == "spread_parameter":
                # spread_parameter doesn't have a 'type' field - type is a direct child
                type_node = None
                name_node = None
                dimensions = 0
                for subchild in child.children:
                    if subchild.type in TYPE_NODES and type_node is None:
                        type_node = subchild
                    elif subchild.type == "variable_declarator":
                        name_node = subchild.child_by_field_name("name")
                        dimensions = JavaAstUtils.count_dimensions(
                            subchild.child_by_field_name("dimensions"), content
                        )
                if name_node is not None:
                    yield ParameterNode(
                        node=child,
                        name_node=name_node,
                        type_node=type_node,
                        dimensions=dimensions,
                        is_varargs=True,
                    )

    @staticmethod
    def iter_lambda_parameters(lambda_node: Node, content: bytes) -> Iterator[ParameterNode]:
        """Yield the parameters of a lambda expression in order.

        Untyped parameters (`x -> ...`, `(a, b) -> ...`) have no type node.
        """
        params = lambda_node.child_by_field_name("parameters")
        if params is None:
            return
        if params.type == "identifier":
            yield ParameterNode(node=params, name_node=params, type_node=None)
        elif params.type == "inferred_parameters":
            for child in params.children:
                if child.type == "identifier":
                    yield ParameterNode(node=child, name_node=child, type_node=None)
        elif params.type == "formal_parameters":
            yield from JavaAstUtils.iter_parameters(params, content)

    @staticmethod
    def iter_declarators(decl_node: Node) -> Iterator[Node]:
        """Yield the `variable_declarator` children of a field/local declaration."""
        for child in decl_node.children:
            if child.type == "variable_declarator":
                yield child

    @staticmethod
    def type_parameter_names(node: Node, content: bytes) -> list[tuple[str, Node | None]]:
        """List each type parameter name with its first bound type node."""
        result: list[tuple[str, Node | None]] = []
        params = node.child_by_field_name("type_parameters")
        if params is None:
            for child in node.children:
                if child.type == "type_parameters":
                    params = child
                    break
        if params is None:
            return result
        for param in params.children:
            if param.type != "type_parameter":
                continue
            name_node = None
            bound = None
            for child in param.children:
                if child.type in ("type_identifier", "identifier") and name_node is None:
                    name_node = child
                elif child.type == "type_bound":
                    for bound_child in child.children:
                        if bound_child.type in TYPE_NODES:
                            bound = bound_child
                            break
            if name_node is not None:
                result.append((JavaAstUtils.get_node_text(name_node, content), bound))
        return result
