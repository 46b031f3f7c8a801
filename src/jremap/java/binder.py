"""Java binding provider.

Resolves every identifier of a compilation unit to the binding of the symbol
it denotes: types, methods, constructors, fields, parameters and local
variables. The result is a `ResolvedUnit`, a parsed tree whose nodes answer
`resolve_binding(node)` in constant time.

Resolution uses the phase 1 `SymbolTable` for members of source types.
Symbols that cannot be resolved with certainty (library members, ambiguous
overloads, unknown receiver types) are left unbound.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from tree_sitter import Node, Parser, Tree

from jremap.core.models import (
    Binding,
    BindingKind,
    MethodBinding,
    TypeBinding,
    VariableBinding,
)
from jremap.java._resolution import TypeScope, _JavaTypeResolutionMixin
from jremap.java.ast_utils import (
    CALLABLE_DECLARATIONS,
    TYPE_BODIES,
    TYPE_DECLARATIONS,
    TYPE_NODES,
    JavaAstUtils,
    ParameterNode,
)
from jremap.java.descriptors import OBJECT_TYPE, method_descriptor
from jremap.java.local_scope import LocalScope
from jremap.java.scanner import build_file_context, collect_anonymous_classes
from jremap.java.symbols import FieldInfo, FileContext, MethodInfo, SymbolTable
from jremap.java.type_inferrer import _JavaTypeInferenceMixin, is_assignable

logger = logging.getLogger(__name__)

NodeKey = tuple[int, int, str]


@dataclass
class ResolvedUnit:
    """A parsed compilation unit with its identifiers bound."""

    path: str
    content: bytes
    tree: Tree
    file_context: FileContext
    bindings: dict[NodeKey, Binding] = field(default_factory=dict)

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def resolve_binding(self, node: Node) -> Binding | None:
        """Return the binding of a node, or None if it is not resolvable."""
        return self.bindings.get(JavaAstUtils.node_key(node))

    def text(self, node: Node) -> str:
        return JavaAstUtils.get_node_text(node, self.content)


@dataclass(frozen=True)
class _Context:
    """Binder state at a point in the tree."""

    scope: TypeScope
    locals: LocalScope
    type_binary: str | None = None
    this_type: str | None = None
    lookup_types: tuple[str, ...] = ()
    super_types: tuple[str, ...] = ()
    method: MethodBinding | None = None
    is_static: bool = False
    # Name used by javac for lambdas declared here (`main`, `new`, `static`)
    lambda_owner: str = "new"
    hidden_fields: frozenset[str] = frozenset()
    hidden_methods: frozenset[str] = frozenset()
    # Selector type of the innermost switch, for enum constant case labels
    switch_type: str | None = None


class JavaBinder(_JavaTypeResolutionMixin, _JavaTypeInferenceMixin):
    """Binds the identifiers of one compilation unit.

    A binder instance is single-use: create one per unit. Units may be bound
    in parallel with separate binders sharing a read-only `SymbolTable`.
    """

    def __init__(self, parser: Parser, symbol_table: SymbolTable) -> None:
        """Initialize the binder.

        Args:
            parser: Configured tree-sitter parser for Java (not shared across threads)
            symbol_table: Symbol table from phase 1
        """
        self._parser = parser
        self._symbol_table = symbol_table
        self._bindings: dict[NodeKey, Binding] = {}
        self._content = b""
        self._lambda_counters: dict[str | None, int] = {}
        self._method_cache: dict[str, MethodBinding] = {}
        self._anonymous: dict[NodeKey, str] = {}

    def bind(self, path: str, content: bytes) -> ResolvedUnit:
        """Parse and bind a compilation unit.

        Args:
            path: Path or name of the unit (for reporting)
            content: Source file content as bytes

        Returns:
            The resolved unit.
        """
        self._bindings = {}
        self._content = content
        self._lambda_counters = {}
        self._method_cache = {}

        tree = self._parser.parse(content)
        file_context = build_file_context(tree.root_node, content)
        self._anonymous = {
            JavaAstUtils.node_key(anonymous.body): anonymous.binary_name
            for anonymous in collect_anonymous_classes(tree.root_node, content, file_context.package)
            if anonymous.binary_name in self._symbol_table.types
        }
        context = _Context(scope=TypeScope(file_context=file_context), locals=LocalScope())

        self._visit_children(tree.root_node, context)

        logger.debug(f"Bound {len(self._bindings)} nodes in {path}")
        return ResolvedUnit(path, content, tree, file_context, self._bindings)

    # Traversal

    def _visit_children(self, node: Node, ctx: _Context) -> None:
        for child in node.children:
            self._visit(child, ctx)

    def _visit(self, node: Node, ctx: _Context) -> None:
        node_type = node.type

        if node_type in ("package_declaration", "line_comment", "block_comment"):
            return
        if node_type == "import_declaration":
            self._bind_import(node)
        elif node_type in TYPE_DECLARATIONS:
            self._visit_type_declaration(node, ctx)
        elif node_type in CALLABLE_DECLARATIONS:
            self._visit_callable(node, ctx)
        elif node_type == "compact_constructor_declaration":
            self._visit_compact_constructor(node, ctx)
        elif node_type == "lambda_expression":
            self._visit_lambda(node, ctx)
        elif node_type in ("field_declaration", "constant_declaration"):
            self._visit_field_declaration(node, ctx)
        elif node_type == "enum_constant":
            self._visit_enum_constant(node, ctx)
        elif node_type == "static_initializer":
            self._visit_children(node, replace(ctx, is_static=True, lambda_owner="static"))
        elif node_type == "local_variable_declaration":
            self._visit_local_declaration(node, ctx)
        elif node_type in ("block", "switch_block", "constructor_body", "for_statement"):
            self._visit_children(node, replace(ctx, locals=ctx.locals.child()))
        elif node_type == "enhanced_for_statement":
            self._visit_enhanced_for(node, ctx)
        elif node_type == "catch_clause":
            self._visit_catch(node, ctx)
        elif node_type == "resource":
            self._visit_resource(node, ctx)
        elif node_type == "try_with_resources_statement":
            self._visit_children(node, replace(ctx, locals=ctx.locals.child()))
        elif node_type == "instanceof_expression":
            self._visit_instanceof(node, ctx)
        elif node_type == "type_pattern":
            self._visit_type_pattern(node, ctx)
        elif node_type == "annotation_type_element_declaration":
            for child in node.children:
                if child.type != "identifier":
                    self._visit(child, ctx)
        elif node_type == "method_invocation":
            self._visit_method_invocation(node, ctx)
        elif node_type == "field_access":
            self._visit_field_access(node, ctx)
        elif node_type == "object_creation_expression":
            self._visit_object_creation(node, ctx)
        elif node_type == "method_reference":
            self._visit_method_reference(node, ctx)
        elif node_type in ("switch_expression", "switch_statement"):
            self._visit_switch(node, ctx)
        elif node_type == "switch_label":
            self._visit_switch_label(node, ctx)
        elif node_type in ("marker_annotation", "annotation"):
            self._visit_annotation(node, ctx)
        elif node_type == "labeled_statement":
            for child in node.children:
                if child.type != "identifier":
                    self._visit(child, ctx)
        elif node_type in ("break_statement", "continue_statement"):
            return
        elif node_type == "scoped_type_identifier":
            self._bind_scoped_type(node, ctx)
        elif node_type == "type_identifier":
            self._bind_type_identifier(node, ctx)
        elif node_type == "identifier":
            self._bind_expression_identifier(node, ctx)
        else:
            self._visit_children(node, ctx)

    # Declarations

    def _visit_type_declaration(self, node: Node, ctx: _Context) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        simple = JavaAstUtils.get_node_text(name_node, self._content)

        parent_type = node.parent.type if node.parent is not None else "program"
        # Members of anonymous classes are bound like local classes
        is_member = parent_type == "program" or (
            parent_type in TYPE_BODIES
            and ctx.type_binary is not None
            and ctx.type_binary not in self._anonymous.values()
        )
        binary: str | None = None
        if is_member:
            if ctx.type_binary is not None:
                binary = f"{ctx.type_binary}${simple}"
            elif ctx.scope.file_context.package:
                binary = f"{ctx.scope.file_context.package}.{simple}"
            else:
                binary = simple

        key = binary or f"local:{node.start_byte}:{node.end_byte}"
        self._store(name_node, TypeBinding(key=key, name=simple, binary_name=binary))

        # Header clauses see the type parameters but not the type's own members
        header_ctx = replace(
            ctx, scope=self._declare_type_variables(node, self._content, ctx.scope)
        )
        for child in node.children:
            if child.type in ("superclass", "super_interfaces", "extends_interfaces",
                              "permits", "type_parameters", "modifiers"):
                self._visit(child, header_ctx)

        if binary is not None:
            type_scope = self._declare_type_variables(node, self._content, ctx.scope.nested(binary))
            info = self._symbol_table.get_type(binary)
            supers = tuple(self._symbol_table.get_supertypes(binary)) if info else ()
            body_ctx = _Context(
                scope=type_scope,
                locals=LocalScope(),
                type_binary=binary,
                this_type=binary,
                lookup_types=(binary, *ctx.lookup_types),
                super_types=supers,
            )
        else:
            type_scope = self._declare_type_variables(node, self._content, ctx.scope)
            supers = self._local_supertypes(node, ctx)
            body_ctx = _Context(
                scope=type_scope,
                locals=ctx.locals.child(),
                type_binary=None,
                this_type=supers[0] if supers else None,
                lookup_types=(*supers, *ctx.lookup_types),
                super_types=supers,
            )

        if node.type == "record_declaration":
            self._bind_record_components(node, body_ctx)

        body = node.child_by_field_name("body")
        if body is not None:
            if binary is None:
                body_ctx = self._hide_local_members(body, body_ctx)
            self._visit_children(body, body_ctx)

    def _local_supertypes(self, node: Node, ctx: _Context) -> tuple[str, ...]:
        supers: list[str] = []
        for child in node.children:
            if child.type == "superclass":
                for type_ref in child.named_children:
                    supers.append(self._resolve_type_node(type_ref, self._content, ctx.scope))
            elif child.type in ("super_interfaces", "extends_interfaces"):
                for type_list in child.named_children:
                    for type_ref in type_list.named_children:
                        supers.append(self._resolve_type_node(type_ref, self._content, ctx.scope))
        return tuple(supers)

    def _hide_local_members(self, body: Node, ctx: _Context) -> _Context:
        """Members of local/anonymous classes shadow inherited and outer members."""
        fields: set[str] = set()
        methods: set[str] = set()
        for child in body.children:
            if child.type == "field_declaration":
                for declarator in JavaAstUtils.iter_declarators(child):
                    name_node = declarator.child_by_field_name("name")
                    if name_node is not None:
                        fields.add(JavaAstUtils.get_node_text(name_node, self._content))
            elif child.type == "method_declaration":
                name_node = child.child_by_field_name("name")
                if name_node is not None:
                    methods.add(JavaAstUtils.get_node_text(name_node, self._content))
        return replace(
            ctx,
            hidden_fields=ctx.hidden_fields | fields,
            hidden_methods=ctx.hidden_methods | methods,
        )

    def _bind_record_components(self, node: Node, ctx: _Context) -> None:
        params = node.child_by_field_name("parameters")
        for param in JavaAstUtils.iter_parameters(params, self._content):
            if param.type_node is not None:
                self._visit(param.type_node, ctx)
            type_name = self._resolve_parameter(param, self._content, ctx.scope)
            self._store(param.name_node, self._field_binding(param.name_node, type_name, ctx))

    def _visit_callable(self, node: Node, ctx: _Context) -> None:
        binding, method_scope = self._callable_binding(node, ctx)
        self._store(node, binding)

        name_node = node.child_by_field_name("name")
        if name_node is not None:
            self._store(name_node, binding)

        body_ctx = replace(
            ctx,
            scope=method_scope,
            locals=ctx.locals.child(),
            method=binding,
            is_static=binding.is_static,
            lambda_owner="new" if binding.is_constructor else binding.name,
        )
        params_node = node.child_by_field_name("parameters")
        params = list(JavaAstUtils.iter_parameters(params_node, self._content))
        self._declare_parameters(params, binding, body_ctx)

        body = node.child_by_field_name("body")
        for child in node.children:
            if child.type == "identifier" or child == params_node or child == body:
                continue
            self._visit(child, body_ctx)

        if body is not None:
            self._visit_children(body, body_ctx)

    def _callable_binding(self, node: Node, ctx: _Context) -> tuple[MethodBinding, TypeScope]:
        """Build the binding of a method or constructor declaration."""
        is_constructor = node.type == "constructor_declaration"
        name_node = node.child_by_field_name("name")
        name = "<init>" if is_constructor or name_node is None else (
            JavaAstUtils.get_node_text(name_node, self._content)
        )
        modifiers = JavaAstUtils.extract_modifiers(node, self._content)
        method_scope = self._declare_type_variables(node, self._content, ctx.scope)
        parameter_types, return_type, _ = self._callable_signature(node, self._content, ctx.scope)

        declaring = ctx.type_binary
        if declaring is not None:
            key = f"{declaring}#{name}{method_descriptor(parameter_types, return_type)}"
        else:
            key = f"local:{node.start_byte}:{node.end_byte}"
        binding = MethodBinding(
            key=key,
            name=name,
            declaring_type=declaring,
            parameter_types=tuple(parameter_types),
            return_type=return_type,
            is_static="static" in modifiers,
            is_constructor=is_constructor,
        )
        return binding, method_scope

    def _visit_compact_constructor(self, node: Node, ctx: _Context) -> None:
        """Compact canonical constructors of records declare no parameters."""
        info = self._symbol_table.get_type(ctx.type_binary)
        constructors = info.constructors() if info else []
        binding = None
        if ctx.type_binary is not None and constructors:
            binding = self._member_method_binding(ctx.type_binary, constructors[0])
        if binding is None:
            binding = MethodBinding(
                key=f"local:{node.start_byte}:{node.end_byte}", name="<init>",
                declaring_type=ctx.type_binary, is_constructor=True,
            )
        self._store(node, binding)
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            self._store(name_node, binding)
        body = node.child_by_field_name("body")
        if body is not None:
            self._visit_children(body, replace(
                ctx, locals=ctx.locals.child(), method=binding, lambda_owner="new"
            ))

    def _visit_lambda(self, node: Node, ctx: _Context) -> None:
        params = list(JavaAstUtils.iter_lambda_parameters(node, self._content))
        parameter_types = tuple(
            self._resolve_parameter(p, self._content, ctx.scope) for p in params
        )
        index = self._lambda_counters.get(ctx.type_binary, 0)
        self._lambda_counters[ctx.type_binary] = index + 1

        binding = MethodBinding(
            key=f"lambda:{node.start_byte}:{node.end_byte}",
            name=f"lambda${ctx.lambda_owner}${index}",
            declaring_type=ctx.type_binary,
            parameter_types=parameter_types,
            return_type=OBJECT_TYPE,
            is_static=ctx.is_static,
            is_lambda=True,
        )
        self._store(node, binding)

        body_ctx = replace(ctx, locals=ctx.locals.child(), method=binding)
        self._declare_parameters(params, binding, body_ctx)

        body = node.child_by_field_name("body")
        if body is not None:
            self._visit(body, body_ctx)

    def _declare_parameters(
        self, params: list[ParameterNode], method: MethodBinding, ctx: _Context
    ) -> None:
        """Bind parameter names, record them on the method and put them in scope."""
        for position, (param, type_name) in enumerate(zip(params, method.parameter_types)):
            binding = VariableBinding(
                key=f"{method.key}@{position}",
                name=JavaAstUtils.get_node_text(param.name_node, self._content),
                variable_kind=BindingKind.PARAMETER,
                declaring_type=method.declaring_type,
                type_name=type_name,
                declaring_method=method,
                position=position,
            )
            method.parameters.append(binding)
            ctx.locals.add_parameter(binding)
            self._store(param.name_node, binding)
            if param.type_node is not None:
                self._visit(param.type_node, ctx)
            for child in param.node.children:
                if child.type == "modifiers":
                    self._visit(child, ctx)

    def _visit_field_declaration(self, node: Node, ctx: _Context) -> None:
        modifiers = JavaAstUtils.extract_modifiers(node, self._content)
        is_static = "static" in modifiers or node.type == "constant_declaration"
        init_ctx = replace(
            ctx, is_static=is_static, method=None, lambda_owner="static" if is_static else "new"
        )

        type_node = node.child_by_field_name("type")
        for child in node.children:
            if child.type == "modifiers" or child == type_node:
                self._visit(child, ctx)

        for declarator in JavaAstUtils.iter_declarators(node):
            name_node = declarator.child_by_field_name("name")
            if name_node is None:
                continue
            dims = JavaAstUtils.count_dimensions(
                declarator.child_by_field_name("dimensions"), self._content
            )
            type_name = self._resolve_type_node(type_node, self._content, ctx.scope, dims)
            self._store(name_node, self._field_binding(name_node, type_name, ctx))
            value = declarator.child_by_field_name("value")
            if value is not None:
                self._visit(value, init_ctx)

    def _visit_enum_constant(self, node: Node, ctx: _Context) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is not None and ctx.type_binary is not None:
            self._store(name_node, self._field_binding(name_node, ctx.type_binary, ctx))

        init_ctx = replace(ctx, is_static=True, method=None, lambda_owner="static")
        for child in node.children:
            if child.type == "argument_list":
                self._visit(child, init_ctx)
            elif child.type == "class_body" and ctx.type_binary is not None:
                self._visit_anonymous_body(child, ctx.type_binary, ctx)

    def _field_binding(self, name_node: Node, type_name: str, ctx: _Context) -> VariableBinding:
        name = JavaAstUtils.get_node_text(name_node, self._content)
        if ctx.type_binary is not None:
            key = f"{ctx.type_binary}.{name}"
        else:
            key = f"local:{name_node.start_byte}:{name_node.end_byte}"
        return VariableBinding(
            key=key,
            name=name,
            variable_kind=BindingKind.FIELD,
            declaring_type=ctx.type_binary,
            type_name=type_name,
        )

    def _local_binding(self, name_node: Node, type_name: str) -> VariableBinding:
        return VariableBinding(
            key=f"local:{name_node.start_byte}:{name_node.end_byte}",
            name=JavaAstUtils.get_node_text(name_node, self._content),
            variable_kind=BindingKind.LOCAL_VARIABLE,
            type_name=type_name,
        )

    def _visit_local_declaration(self, node: Node, ctx: _Context) -> None:
        type_node = node.child_by_field_name("type")
        for child in node.children:
            if child.type == "modifiers" or child == type_node:
                self._visit(child, ctx)

        is_var = type_node is not None and (
            JavaAstUtils.get_node_text(type_node, self._content) == "var"
        )
        for declarator in JavaAstUtils.iter_declarators(node):
            name_node = declarator.child_by_field_name("name")
            value = declarator.child_by_field_name("value")
            if value is not None:
                self._visit(value, ctx)
            if name_node is None:
                continue
            if is_var:
                type_name = (
                    self._infer_type(value, ctx.scope, ctx.this_type) if value else None
                ) or OBJECT_TYPE
            else:
                dims = JavaAstUtils.count_dimensions(
                    declarator.child_by_field_name("dimensions"), self._content
                )
                type_name = self._resolve_type_node(type_node, self._content, ctx.scope, dims)
            binding = self._local_binding(name_node, type_name)
            ctx.locals.add_variable(binding)
            self._store(name_node, binding)

    def _visit_enhanced_for(self, node: Node, ctx: _Context) -> None:
        loop_ctx = replace(ctx, locals=ctx.locals.child())
        type_node = node.child_by_field_name("type")
        name_node = node.child_by_field_name("name")
        value = node.child_by_field_name("value")
        if value is not None:
            self._visit(value, ctx)
        for child in node.children:
            if child.type == "modifiers" or child == type_node:
                self._visit(child, ctx)
        if name_node is not None:
            if type_node is not None and JavaAstUtils.get_node_text(type_node, self._content) == "var":
                iterable = self._infer_type(value, ctx.scope, ctx.this_type) if value else None
                type_name = iterable[:-2] if iterable and iterable.endswith("[]") else OBJECT_TYPE
            else:
                dims = JavaAstUtils.count_dimensions(
                    node.child_by_field_name("dimensions"), self._content
                )
                type_name = self._resolve_type_node(type_node, self._content, ctx.scope, dims)
            binding = self._local_binding(name_node, type_name)
            loop_ctx.locals.add_variable(binding)
            self._store(name_node, binding)
        body = node.child_by_field_name("body")
        if body is not None:
            self._visit(body, loop_ctx)

    def _visit_catch(self, node: Node, ctx: _Context) -> None:
        catch_ctx = replace(ctx, locals=ctx.locals.child())
        for child in node.children:
            if child.type == "catch_formal_parameter":
                name_node = child.child_by_field_name("name")
                type_name = OBJECT_TYPE
                for sub in child.children:
                    if sub.type == "catch_type":
                        self._visit(sub, ctx)
                        first = next(iter(sub.named_children), None)
                        if first is not None:
                            type_name = self._resolve_type_node(first, self._content, ctx.scope)
                    elif sub.type == "modifiers":
                        self._visit(sub, ctx)
                if name_node is not None:
                    binding = self._local_binding(name_node, type_name)
                    catch_ctx.locals.add_variable(binding)
                    self._store(name_node, binding)
            elif child.type == "block":
                self._visit(child, catch_ctx)

    def _visit_resource(self, node: Node, ctx: _Context) -> None:
        name_node = node.child_by_field_name("name")
        type_node = node.child_by_field_name("type")
        value = node.child_by_field_name("value")
        if name_node is None:
            # `try (existing)` refers to a variable in scope
            self._visit_children(node, ctx)
            return
        if type_node is not None:
            self._visit(type_node, ctx)
        if value is not None:
            self._visit(value, ctx)
        binding = self._local_binding(
            name_node, self._resolve_type_node(type_node, self._content, ctx.scope)
        )
        ctx.locals.add_variable(binding)
        self._store(name_node, binding)

    def _visit_instanceof(self, node: Node, ctx: _Context) -> None:
        name_node = node.child_by_field_name("name")
        for child in node.children:
            if child != name_node:
                self._visit(child, ctx)
        if name_node is not None:
            type_node = node.child_by_field_name("right")
            binding = self._local_binding(
                name_node, self._resolve_type_node(type_node, self._content, ctx.scope)
            )
            ctx.locals.add_variable(binding)
            self._store(name_node, binding)

    def _visit_type_pattern(self, node: Node, ctx: _Context) -> None:
        """`case Shape s ->` style patterns declare a local variable."""
        named = node.named_children
        if len(named) < 2 or named[-1].type != "identifier":
            self._visit_children(node, ctx)
            return
        name_node = named[-1]
        type_node = next((c for c in named if c.type in TYPE_NODES), None)
        for child in named[:-1]:
            self._visit(child, ctx)
        binding = self._local_binding(
            name_node, self._resolve_type_node(type_node, self._content, ctx.scope)
        )
        ctx.locals.add_variable(binding)
        self._store(name_node, binding)

    def _visit_anonymous_body(self, body: Node, created_type: str, ctx: _Context) -> None:
        binary = self._anonymous.get(JavaAstUtils.node_key(body))
        if binary is not None:
            # Scanned anonymous classes (`Outer$1`) resolve members like member types
            self._visit_children(body, _Context(
                scope=ctx.scope.nested(binary),
                locals=ctx.locals.child(),
                type_binary=binary,
                this_type=binary,
                lookup_types=(binary, *ctx.lookup_types),
                super_types=tuple(self._symbol_table.get_supertypes(binary)),
            ))
            return

        body_ctx = _Context(
            scope=ctx.scope,
            locals=ctx.locals.child(),
            type_binary=None,
            this_type=created_type,
            lookup_types=(created_type, *ctx.lookup_types),
            super_types=(created_type,),
        )
        self._visit_children(body, self._hide_local_members(body, body_ctx))

    # References

    def _bind_import(self, node: Node) -> None:
        is_static = any(c.type == "static" for c in node.children)
        on_demand = any(c.type == "asterisk" for c in node.children)
        for child in node.children:
            if child.type != "scoped_identifier":
                continue
            full = JavaAstUtils.get_node_text(child, self._content)
            if not is_static:
                if not on_demand:
                    self._bind_qualified_type(
                        child, self._symbol_table.canonical_map.get(full, full)
                    )
            elif on_demand:
                owner = self._symbol_table.canonical_map.get(full)
                if owner is not None:
                    self._bind_qualified_type(child, owner)
            else:
                self._bind_static_import(child)

    def _bind_static_import(self, node: Node) -> None:
        """Bind `import static a.B.member;`: the owner type and the member name."""
        qualifier = node.child_by_field_name("scope")
        name_node = node.child_by_field_name("name")
        if qualifier is None or name_node is None:
            return
        owner = self._symbol_table.canonical_map.get(
            JavaAstUtils.get_node_text(qualifier, self._content)
        )
        if owner is None:
            return
        if qualifier.type == "scoped_identifier":
            self._bind_qualified_type(qualifier, owner)
        else:
            simple = JavaAstUtils.get_node_text(qualifier, self._content)
            self._store(qualifier, TypeBinding(key=owner, name=simple, binary_name=owner))

        name = JavaAstUtils.get_node_text(name_node, self._content)
        found = self._symbol_table.find_field(owner, name)
        if found is not None and found[1].is_static:
            self._store(name_node, self._field_reference(*found))
            return
        methods = [c for c in self._symbol_table.find_methods(owner, name) if c[1].is_static]
        if methods:
            # An import names every overload; the first declared one stands for all
            if len(methods) > 1:
                logger.debug(f"Static import of overloaded {owner}.{name} follows the first overload")
            self._store(name_node, self._member_method_binding(*methods[0]))

    def _bind_qualified_type(self, node: Node, binary: str) -> None:
        """Bind the last segment of a qualified type name and any outer types."""
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        simple = JavaAstUtils.get_node_text(name_node, self._content)
        self._store(name_node, TypeBinding(key=binary, name=simple, binary_name=binary))

        qualifier = node.child_by_field_name("scope")
        if qualifier is not None and qualifier.type == "scoped_identifier":
            outer_text = JavaAstUtils.get_node_text(qualifier, self._content)
            outer = self._symbol_table.canonical_map.get(outer_text)
            if outer is not None:
                self._bind_qualified_type(qualifier, outer)

    def _bind_scoped_type(self, node: Node, ctx: _Context, known_only: bool = False) -> None:
        """Bind `Outer.Inner` and `pkg.Type` style type references.

        The last segment always denotes a type. Qualifier segments are bound
        only when they name a source type, since they may be package names.
        """
        parts = [c for c in node.children if c.type in (
            "type_identifier", "scoped_type_identifier", "generic_type"
        )]
        if len(parts) < 2:
            self._visit_children(node, ctx)
            return
        qualifier, last = parts[0], parts[-1]

        binary = self._resolve_type_node(node, self._content, ctx.scope)
        if last.type == "type_identifier" and (
            not known_only or binary in self._symbol_table.types
        ):
            simple = JavaAstUtils.get_node_text(last, self._content)
            self._store(last, TypeBinding(key=binary, name=simple, binary_name=binary))

        if qualifier.type == "scoped_type_identifier":
            self._bind_scoped_type(qualifier, ctx, known_only=True)
        elif qualifier.type == "type_identifier":
            outer_name = JavaAstUtils.get_node_text(qualifier, self._content)
            outer = self._symbol_table.lookup_type(
                outer_name, ctx.scope.file_context, list(ctx.scope.enclosing),
                ctx.scope.type_variables,
            )
            if outer is not None:
                self._store(qualifier, TypeBinding(key=outer, name=outer_name, binary_name=outer))
        else:
            self._visit(qualifier, ctx)

    def _bind_type_identifier(self, node: Node, ctx: _Context) -> None:
        name = JavaAstUtils.get_node_text(node, self._content)
        if name == "var" or name in ctx.scope.type_variables:
            return
        binary = self._symbol_table.resolve_type(
            name, ctx.scope.file_context, list(ctx.scope.enclosing), ctx.scope.type_variables
        )
        self._store(node, TypeBinding(key=binary, name=name, binary_name=binary))

    def _bind_expression_identifier(self, node: Node, ctx: _Context) -> None:
        binding = self._lookup_name(JavaAstUtils.get_node_text(node, self._content), ctx)
        if binding is not None:
            self._store(node, binding)

    def _lookup_name(self, name: str, ctx: _Context) -> Binding | None:
        """Resolve a simple expression name: locals, then fields, then types."""
        variable = ctx.locals.lookup(name)
        if variable is not None:
            return variable
        if name in ctx.hidden_fields:
            return None

        for type_name in ctx.lookup_types:
            found = self._symbol_table.find_field(type_name, name)
            if found is not None:
                return self._field_reference(*found)

        for owner_type in self._symbol_table.static_import_owners(name, ctx.scope.file_context):
            found = self._symbol_table.find_field(owner_type, name)
            if found is not None and found[1].is_static:
                return self._field_reference(*found)

        binary = self._symbol_table.lookup_type(
            name, ctx.scope.file_context, list(ctx.scope.enclosing), ctx.scope.type_variables
        )
        if binary is not None:
            return TypeBinding(key=binary, name=name, binary_name=binary)
        return None

    def _visit_field_access(self, node: Node, ctx: _Context) -> None:
        object_node = node.child_by_field_name("object")
        field_node = node.child_by_field_name("field")
        if object_node is not None:
            self._visit(object_node, ctx)
        if field_node is None or field_node.type != "identifier":
            return

        name = JavaAstUtils.get_node_text(field_node, self._content)
        if object_node is not None and object_node.type == "super":
            owners = ctx.super_types
        else:
            receiver = self._infer_type(object_node, ctx.scope, ctx.this_type) if object_node else None
            if object_node is not None and object_node.type == "this" and name in ctx.hidden_fields:
                return
            owners = (receiver,) if receiver else ()

        for owner_type in owners:
            found = self._symbol_table.find_field(owner_type, name)
            if found is not None:
                self._store(field_node, self._field_reference(*found))
                return

    def _field_reference(self, owner: str, field_info: FieldInfo) -> VariableBinding:
        """Binding of a use of a field declared by a scanned type."""
        return VariableBinding(
            key=f"{owner}.{field_info.name}",
            name=field_info.name,
            variable_kind=BindingKind.FIELD,
            declaring_type=owner,
            type_name=field_info.type_name,
        )

    def _visit_method_invocation(self, node: Node, ctx: _Context) -> None:
        object_node = node.child_by_field_name("object")
        name_node = node.child_by_field_name("name")
        arguments = node.child_by_field_name("arguments")

        for child in node.children:
            if child != name_node and child != arguments:
                self._visit(child, ctx)
        if arguments is not None:
            self._visit(arguments, ctx)
        if name_node is None:
            return

        name = JavaAstUtils.get_node_text(name_node, self._content)
        arg_nodes = [c for c in arguments.named_children] if arguments is not None else []
        arg_nodes = [c for c in arg_nodes if c.type not in ("line_comment", "block_comment")]
        arg_types = [self._infer_type(arg, ctx.scope, ctx.this_type) for arg in arg_nodes]

        if object_node is None:
            if name in ctx.hidden_methods:
                return
            owners = ctx.lookup_types
        elif object_node.type == "super":
            owners = ctx.super_types
        elif object_node.type == "this":
            if name in ctx.hidden_methods:
                return
            owners = (ctx.this_type,) if ctx.this_type else ()
        else:
            receiver = self._infer_type(object_node, ctx.scope, ctx.this_type)
            owners = (receiver,) if receiver and not receiver.endswith("[]") else ()

        for owner_type in owners:
            candidates = self._symbol_table.find_methods(owner_type, name)
            if candidates:
                self._bind_call(name_node, owner_type, candidates, arg_types)
                return

        if object_node is None:
            for owner_type in self._symbol_table.static_import_owners(name, ctx.scope.file_context):
                candidates = [
                    c for c in self._symbol_table.find_methods(owner_type, name) if c[1].is_static
                ]
                if candidates:
                    self._bind_call(name_node, owner_type, candidates, arg_types)
                    return

    def _bind_call(
        self,
        name_node: Node,
        owner_type: str,
        candidates: list[tuple[str, MethodInfo]],
        arg_types: list[str | None],
    ) -> None:
        selected = self._select_overload(candidates, arg_types)
        if selected is None:
            name = JavaAstUtils.get_node_text(name_node, self._content)
            logger.debug(f"Ambiguous or inapplicable call to {owner_type}.{name}")
            return
        self._store(name_node, self._member_method_binding(*selected))

    def _visit_method_reference(self, node: Node, ctx: _Context) -> None:
        """Bind `Type::name` and `expr::name` when the name has one candidate.

        Without the functional interface type the overload cannot be chosen,
        so overloaded names stay unbound. `::new` needs no binding.
        """
        if not node.children:
            return
        qualifier = node.children[0]
        self._visit(qualifier, ctx)
        name_node = node.children[-1]
        if name_node.type != "identifier":
            return

        name = JavaAstUtils.get_node_text(name_node, self._content)
        if qualifier.type == "super":
            owners = ctx.super_types
        elif qualifier.type == "this":
            if name in ctx.hidden_methods:
                return
            owners = (ctx.this_type,) if ctx.this_type else ()
        elif qualifier.type in ("type_identifier", "scoped_type_identifier", "generic_type"):
            owners = (self._resolve_type_node(qualifier, self._content, ctx.scope),)
        else:
            receiver = self._infer_type(qualifier, ctx.scope, ctx.this_type)
            owners = (receiver,) if receiver and not receiver.endswith("[]") else ()

        for owner_type in owners:
            candidates = self._symbol_table.find_methods(owner_type, name)
            if not candidates:
                continue
            if len(candidates) == 1:
                self._store(name_node, self._member_method_binding(*candidates[0]))
            else:
                logger.debug(f"Method reference to overloaded {owner_type}::{name} left unbound")
            return

    def _visit_switch(self, node: Node, ctx: _Context) -> None:
        condition = node.child_by_field_name("condition")
        body = node.child_by_field_name("body")
        selector = None
        if condition is not None:
            self._visit(condition, ctx)
            selector = self._infer_type(condition, ctx.scope, ctx.this_type)
        if body is not None:
            self._visit(body, replace(ctx, switch_type=selector))

    def _visit_switch_label(self, node: Node, ctx: _Context) -> None:
        """Unqualified `case X` labels name constants of the selector's enum type."""
        for child in node.named_children:
            if child.type == "identifier" and ctx.switch_type is not None:
                name = JavaAstUtils.get_node_text(child, self._content)
                found = self._symbol_table.find_field(ctx.switch_type, name)
                if found is not None:
                    self._store(child, self._field_reference(*found))
                    continue
            self._visit(child, ctx)

    def _select_overload(
        self, candidates: list[tuple[str, MethodInfo]], arg_types: list[str | None]
    ) -> tuple[str, MethodInfo] | None:
        """Pick the overload matching the inferred argument types.

        Candidates are narrowed by arity, then assignability, then exact type
        equality. Returns None if the choice stays ambiguous.
        """
        arity = len(arg_types)
        applicable = [
            (owner, info) for owner, info in candidates
            if len(info.parameter_types) == arity
            or (info.is_varargs and arity >= len(info.parameter_types) - 1)
        ]
        if len(applicable) <= 1:
            return applicable[0] if applicable else None

        compatible = [
            (owner, info) for owner, info in applicable
            if len(info.parameter_types) == arity
            and all(is_assignable(a, p) for a, p in zip(arg_types, info.parameter_types))
        ]
        if len(compatible) == 1:
            return compatible[0]

        exact = [
            (owner, info) for owner, info in compatible
            if all(a is None or a == p for a, p in zip(arg_types, info.parameter_types))
        ]
        if len(exact) == 1:
            return exact[0]
        return None

    def _member_method_binding(self, owner: str, info: MethodInfo) -> MethodBinding:
        key = f"{owner}#{info.name}{info.descriptor}"
        binding = self._method_cache.get(key)
        if binding is None:
            binding = MethodBinding(
                key=key,
                name=info.name,
                declaring_type=owner,
                parameter_types=tuple(info.parameter_types),
                return_type=info.return_type,
                is_static=info.is_static,
                is_constructor=info.is_constructor,
            )
            self._method_cache[key] = binding
        return binding

    def _visit_object_creation(self, node: Node, ctx: _Context) -> None:
        type_node = node.child_by_field_name("type")
        body = None
        for child in node.children:
            if child.type == "class_body":
                body = child
            else:
                self._visit(child, ctx)
        if body is not None:
            created = (
                self._resolve_type_node(type_node, self._content, ctx.scope)
                if type_node is not None else OBJECT_TYPE
            )
            self._visit_anonymous_body(body, created, ctx)

    def _visit_annotation(self, node: Node, ctx: _Context) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            if name_node.type == "identifier":
                name = JavaAstUtils.get_node_text(name_node, self._content)
                binary = self._symbol_table.lookup_type(
                    name, ctx.scope.file_context, list(ctx.scope.enclosing)
                )
                if binary is not None:
                    self._store(name_node, TypeBinding(key=binary, name=name, binary_name=binary))
            elif name_node.type == "scoped_identifier":
                full = JavaAstUtils.get_node_text(name_node, self._content)
                self._bind_qualified_type(name_node, self._symbol_table.canonical_map.get(full, full))

        arguments = node.child_by_field_name("arguments")
        if arguments is None:
            return
        for child in arguments.named_children:
            if child.type == "element_value_pair":
                value = child.child_by_field_name("value")
                if value is not None:
                    self._visit(value, ctx)
            else:
                self._visit(child, ctx)

    def _store(self, node: Node, binding: Binding) -> None:
        self._bindings[JavaAstUtils.node_key(node)] = binding
