"""jremap CLI - Java identifier remapper.

This module provides the command-line interface for jremap, enabling
remapping of source trees, inspection of parameter slots and validation of
mapping files.
"""

from __future__ import annotations

import json
import logging
import traceback
from pathlib import Path
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="jremap",
    help="Rename Java identifiers from a mapping table",
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console()
err_console = Console(stderr=True)

# Global verbose flag
_verbose: bool = False


def set_verbose(verbose: bool) -> None:
    """Set global verbose mode and the matching log level."""
    global _verbose
    _verbose = verbose
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


def is_verbose() -> bool:
    """Check if verbose mode is enabled."""
    return _verbose


def print_exception(e: Exception) -> None:
    """Print exception details in verbose mode."""
    if _verbose:
        err_console.print("\n[dim]--- Traceback (verbose mode) ---[/dim]")
        err_console.print(f"[dim]{traceback.format_exc()}[/dim]")


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging and full tracebacks"),
    ] = False,
) -> None:
    """jremap CLI - Java identifier remapper."""
    set_verbose(verbose)


def load_mappings(path: Path):
    """Load a mapping file, exiting with an error message if it is invalid."""
    from jremap.mappings.serializer import MappingFormatError, load

    try:
        return load(path)
    except MappingFormatError as e:
        err_console.print(f"[red]Error:[/red] {e.message}")
        if e.details:
            err_console.print(f"  {e.details}")
        print_exception(e)
        raise typer.Exit(1)


@app.command()
def remap(
    source: Annotated[
        Path,
        typer.Argument(help="Root directory of the Java sources", exists=True, file_okay=False),
    ],
    mappings: Annotated[
        Path,
        typer.Option("--mappings", "-m", help="JSON mapping file", exists=True, dir_okay=False),
    ],
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Directory to write remapped sources to"),
    ],
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Compute edits without writing files"),
    ] = False,
    workers: Annotated[
        Optional[int],
        typer.Option("--workers", "-w", help="Units remapped in parallel", min=1, max=64),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output machine-readable JSON"),
    ] = False,
) -> None:
    """Remap a Java source tree.

    Example:
        jremap remap src/main/java --mappings mappings.json --output out/
    """
    from jremap.cli._export_helpers import result_to_dict
    from jremap.cli._tables import build_edits_table, build_units_table
    from jremap.core.config import get_config
    from jremap.remap.service import Remapper

    if source.resolve() == output.resolve() and not dry_run:
        err_console.print("[red]Error:[/red] Output directory must differ from the source directory")
        raise typer.Exit(1)

    mapping_set = load_mappings(mappings)
    config = get_config()
    if workers is not None:
        config = config.model_copy(update={"workers": workers})

    remapper = Remapper(mapping_set, config)
    try:
        if json_output:
            result = remapper.remap_directory(source, output, dry_run=dry_run)
        else:
            with console.status("[bold blue]Remapping..."):
                result = remapper.remap_directory(source, output, dry_run=dry_run)
    except OSError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        print_exception(e)
        raise typer.Exit(1)

    if json_output:
        typer.echo(json.dumps(result_to_dict(result), ensure_ascii=False, indent=2))
        if not result.success:
            raise typer.Exit(1)
        return

    if result.success:
        verb = "Would remap" if dry_run else "Remapped"
        console.print(f"[green]✓[/green] {verb} {len(result.units)} files")
    else:
        err_console.print("[red]Error:[/red] Remap finished with errors")
        for error in result.errors:
            err_console.print(f"  - {error}")

    console.print(f"  Types scanned: {result.types_scanned}")
    console.print(f"  Files changed: {result.units_changed}")
    console.print(f"  Files renamed: {result.files_renamed}")
    console.print(f"  Edits: {result.edits_count}")
    if result.resources_copied:
        console.print(f"  Resources copied: {result.resources_copied}")
    if result.edits_count:
        console.print(build_edits_table(result.edits_by_kind()))
        console.print(build_units_table(result.units))
    if not dry_run:
        console.print(f"  Output: {output}")

    if not result.success:
        raise typer.Exit(1)


@app.command()
def slots(
    file: Annotated[
        Path,
        typer.Argument(help="Java source file", exists=True, dir_okay=False),
    ],
) -> None:
    """Show the local variable slot of every declared parameter.

    Example:
        jremap slots src/main/java/com/example/Foo.java
    """
    from jremap.cli._export_helpers import collect_slot_rows
    from jremap.cli._tables import build_slots_table

    try:
        rows = collect_slot_rows(str(file), file.read_bytes())
    except OSError as e:
        err_console.print(f"[red]Error:[/red] Cannot read {file}: {e}")
        print_exception(e)
        raise typer.Exit(1)

    if not rows:
        console.print("[yellow]No parameters found[/yellow]")
        return
    console.print(build_slots_table(rows))


@app.command("check-mappings")
def check_mappings(
    file: Annotated[
        Path,
        typer.Argument(help="JSON mapping file", exists=True, dir_okay=False),
    ],
) -> None:
    """Validate a mapping file and print its size.

    Example:
        jremap check-mappings mappings.json
    """
    mapping_set = load_mappings(file)

    methods = [m for c in mapping_set for m in c.method_mappings]
    console.print(f"[green]✓[/green] Valid mapping file: {file}")
    console.print(f"  Classes: {mapping_set.class_count}")
    console.print(f"  Fields: {sum(len(c.field_mappings) for c in mapping_set)}")
    console.print(f"  Methods: {len(methods)}")
    console.print(f"  Parameters: {sum(len(m.parameter_mappings) for m in methods)}")


if __name__ == "__main__":
    app()
