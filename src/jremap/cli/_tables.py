"""Rich table builders used by the CLI.

Kept separate to reduce duplication and keep the command module smaller.
"""

from __future__ import annotations

from rich.table import Table


def build_slots_table(rows) -> Table:
    """Build the (Callable, Static, Parameter, Type, Slot) table for `slots`."""
    table = Table(show_header=True)
    table.add_column("Callable", style="cyan")
    table.add_column("Static")
    table.add_column("Parameter")
    table.add_column("Type")
    table.add_column("Slot", justify="right")
    for row in rows:
        table.add_row(
            row.callable,
            "yes" if row.is_static else "no",
            row.parameter,
            row.type_name,
            str(row.slot),
        )
    return table


def build_edits_table(edits_by_kind) -> Table:
    """Build the per-kind edit count table for `remap`."""
    table = Table(show_header=True, title="Edits")
    table.add_column("Kind")
    table.add_column("Count", justify="right")
    for kind, count in sorted(edits_by_kind.items(), key=lambda item: item[0].value):
        table.add_row(kind.value, str(count))
    return table


def build_units_table(units) -> Table:
    """Build the changed-files listing for `remap`."""
    table = Table(show_header=True, title="Changed Files")
    table.add_column("File")
    table.add_column("Output")
    table.add_column("Edits", justify="right")
    for unit in units:
        if not unit.changed:
            continue
        output = str(unit.output_path) if unit.renamed else ""
        table.add_row(str(unit.path), output, str(len(unit.edits)))
    return table
