"""Remap engine.

Walks a resolved unit depth-first, classifies every identifier by the kind
of its binding and looks the symbol up in the mapping set. Each identifier
yields at most one rename edit, and only when the mapped name differs from
the current text.
"""

from __future__ import annotations

import logging

from tree_sitter import Node

from jremap.core.models import (
    Binding,
    BindingKind,
    MethodBinding,
    RenameEdit,
    TypeBinding,
    VariableBinding,
)
from jremap.java.ast_utils import CALLABLE_DECLARATIONS
from jremap.java.binder import ResolvedUnit
from jremap.java.descriptors import type_descriptor
from jremap.mappings.inheritance import InheritanceProvider
from jremap.mappings.model import FieldSignature, MappingSet, MethodSignature
from jremap.remap.edits import EditSink
from jremap.remap.slots import FrameStack, RemapInvariantError

logger = logging.getLogger(__name__)

FRAME_NODES = (*CALLABLE_DECLARATIONS, "compact_constructor_declaration", "lambda_expression")

IDENTIFIER_NODES = ("identifier", "type_identifier")

__all__ = ["RemapInvariantError", "RemapperVisitor", "remap_unit"]


class RemapperVisitor:
    """Depth-first visitor producing rename edits for one unit.

    `enter` returns False to skip a node's children; `exit` runs after the
    children of every entered node. Frames are pushed on entering a method,
    constructor or lambda and popped on exit.
    """

    def __init__(
        self,
        unit: ResolvedUnit,
        mappings: MappingSet,
        inheritance: InheritanceProvider,
        sink: EditSink | None = None,
    ) -> None:
        self._unit = unit
        self._mappings = mappings
        self._inheritance = inheritance
        self._frames = FrameStack()
        self._sink = sink if sink is not None else EditSink()

    @property
    def sink(self) -> EditSink:
        return self._sink

    def run(self) -> list[RenameEdit]:
        """Traverse the unit and return its edits sorted by offset.

        Uses an explicit stack so deeply nested trees do not hit the
        recursion limit.

        Raises:
            RemapInvariantError: On an internal defect in this unit.
            EditConflictError: If two occurrences demand different text at one span.
        """
        stack: list[tuple[Node, bool]] = [(self._unit.root, False)]
        while stack:
            node, exiting = stack.pop()
            if exiting:
                self.exit(node)
                continue
            if not self.enter(node):
                continue
            stack.append((node, True))
            stack.extend((child, False) for child in reversed(node.children))

        if len(self._frames):
            raise RemapInvariantError(f"{len(self._frames)} frames left open in {self._unit.path}")
        return self._sink.edits

    # Hooks

    def enter(self, node: Node) -> bool:
        if node.type in FRAME_NODES:
            return self.enter_callable(node)
        if node.type in IDENTIFIER_NODES:
            self.visit_identifier(node)
            return False
        return True

    def exit(self, node: Node) -> None:
        if node.type in FRAME_NODES:
            self.exit_callable(node)

    def enter_callable(self, node: Node) -> bool:
        binding = self._unit.resolve_binding(node)
        if isinstance(binding, MethodBinding):
            self._frames.push(binding)
        return True

    def exit_callable(self, node: Node) -> None:
        binding = self._unit.resolve_binding(node)
        if isinstance(binding, MethodBinding):
            self._frames.pop(binding)

    def visit_identifier(self, node: Node) -> None:
        binding = self._unit.resolve_binding(node)
        if binding is None:
            return
        new_name = self.target_name(binding)
        if new_name is None:
            return
        old_name = self._unit.text(node)
        if new_name == old_name:
            return
        self._sink.add(RenameEdit(
            start_byte=node.start_byte,
            end_byte=node.end_byte,
            old_name=old_name,
            new_name=new_name,
            kind=binding.kind,
        ))

    # Classification

    def target_name(self, binding: Binding) -> str | None:
        """Mapped name of the symbol a binding denotes, or None if unmapped."""
        kind = binding.kind
        if isinstance(binding, MethodBinding):
            if binding.is_lambda:
                return None
            if kind == BindingKind.CONSTRUCTOR:
                return self._constructor_name(binding)
            return self._method_name(binding)
        if isinstance(binding, VariableBinding):
            if kind == BindingKind.FIELD:
                return self._field_name(binding)
            if kind == BindingKind.PARAMETER:
                return self._parameter_name(binding)
            return None
        if isinstance(binding, TypeBinding):
            return self._class_name(binding)
        return None

    def _method_name(self, binding: MethodBinding) -> str | None:
        declaring = binding.declaring_type
        if declaring is None:
            return None
        class_mapping = self._mappings.get_or_create_class_mapping(declaring)
        class_mapping.complete(self._inheritance, declaring)
        method_mapping = class_mapping.get_method_mapping(
            MethodSignature(binding.name, binding.descriptor)
        )
        return method_mapping.deobfuscated_name if method_mapping else None

    def _constructor_name(self, binding: MethodBinding) -> str | None:
        # Constructors are named after their class, whatever the overload
        declaring = binding.declaring_type
        if declaring is None:
            return None
        return self._mappings.get_or_create_class_mapping(declaring).simple_deobfuscated_name

    def _field_name(self, binding: VariableBinding) -> str | None:
        declaring = binding.declaring_type
        if declaring is None:
            return None
        class_mapping = self._mappings.get_class_mapping(declaring)
        if class_mapping is None:
            return None
        field_mapping = class_mapping.compute_field_mapping(
            FieldSignature(binding.name, type_descriptor(binding.type_name))
        )
        return field_mapping.deobfuscated_name if field_mapping else None

    def _parameter_name(self, binding: VariableBinding) -> str | None:
        method = binding.declaring_method
        if method is None:
            raise RemapInvariantError(f"Parameter {binding.name!r} has no declaring method")
        declaring = method.declaring_type
        if declaring is None:
            return None
        class_mapping = self._mappings.get_class_mapping(declaring)
        if class_mapping is None:
            return None
        if not method.is_constructor:
            class_mapping.complete(self._inheritance, declaring)

        slot = self._frames.slot_of(binding)
        if slot is None:
            return None
        method_mapping = class_mapping.get_method_mapping(
            MethodSignature(method.name, method.descriptor)
        )
        if method_mapping is None:
            return None
        parameter_mapping = method_mapping.get_parameter_mapping(slot)
        return parameter_mapping.deobfuscated_name if parameter_mapping else None

    def _class_name(self, binding: TypeBinding) -> str | None:
        if binding.binary_name is None:
            return None
        class_mapping = self._mappings.get_class_mapping(binding.binary_name)
        if class_mapping is None:
            return None
        if class_mapping.deobfuscated_package != class_mapping.package:
            logger.debug(
                f"Ignoring package move of {class_mapping.obfuscated_name} to "
                f"{class_mapping.deobfuscated_package}"
            )
        return class_mapping.simple_deobfuscated_name


def remap_unit(
    unit: ResolvedUnit,
    mappings: MappingSet,
    inheritance: InheritanceProvider,
    sink: EditSink | None = None,
) -> list[RenameEdit]:
    """Compute the rename edits of one resolved unit.

    Args:
        unit: The bound compilation unit.
        mappings: Shared mapping set; only class creation and completion mutate it.
        inheritance: Supertype source for method mapping completion.
        sink: Edit accumulator; a fresh one is used if omitted.

    Returns:
        Edits sorted by start offset.
    """
    return RemapperVisitor(unit, mappings, inheritance, sink).run()
