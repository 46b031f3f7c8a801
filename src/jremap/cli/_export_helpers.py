"""Helpers for CLI reporting commands.

Separated to keep `jremap.cli.main` focused on CLI wiring and user interaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from jremap.remap.service import RemapResult


@dataclass
class SlotRow:
    """One parameter of a declared callable and its local variable slot."""

    callable: str
    is_static: bool
    parameter: str
    type_name: str
    slot: int


def collect_slot_rows(name: str, content: bytes) -> list[SlotRow]:
    """Bind a single unit and list the slot of every declared parameter."""
    from jremap.core.models import MethodBinding
    from jremap.java.adapter import JavaAdapter
    from jremap.remap.engine import FRAME_NODES
    from jremap.remap.slots import Frame

    adapter = JavaAdapter()
    unit = adapter.bind(name, content, adapter.build_symbol_table([(name, content)]))

    rows: list[SlotRow] = []
    stack = [unit.root]
    while stack:
        node = stack.pop()
        stack.extend(reversed(node.children))
        if node.type not in FRAME_NODES:
            continue
        binding = unit.resolve_binding(node)
        if not isinstance(binding, MethodBinding):
            continue
        label = f"{binding.declaring_type or '<local>'}#{binding.name}{binding.descriptor}"
        frame = Frame.for_method(binding)
        for parameter in binding.parameters:
            rows.append(SlotRow(
                callable=label,
                is_static=binding.is_static,
                parameter=parameter.name,
                type_name=parameter.type_name,
                slot=frame.slots[parameter.key],
            ))
    return rows


def result_to_dict(result: RemapResult) -> dict[str, Any]:
    """Convert a remap result to a JSON-serializable dictionary."""
    return {
        "source": str(result.source_path),
        "output": str(result.output_path),
        "dry_run": result.dry_run,
        "success": result.success,
        "types_scanned": result.types_scanned,
        "units": len(result.units),
        "units_changed": result.units_changed,
        "files_renamed": result.files_renamed,
        "edits": result.edits_count,
        "edits_by_kind": {kind.value: count for kind, count in result.edits_by_kind().items()},
        "resources_copied": result.resources_copied,
        "errors": list(result.errors),
        "files": [
            {
                "path": str(unit.path),
                "output_path": str(unit.output_path) if unit.output_path else None,
                "edits": [edit.model_dump(mode="json") for edit in unit.edits],
                "error": unit.error,
            }
            for unit in result.units
        ],
    }
