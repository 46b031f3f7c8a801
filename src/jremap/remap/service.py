"""Remap service for whole source trees.

This module provides the Remapper, which scans a source tree, binds and
remaps every compilation unit in parallel and writes the result to an output
tree.
"""

from __future__ import annotations

import logging
import shutil
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from jremap.core.config import RemapperConfig, get_config
from jremap.core.models import BindingKind, RenameEdit
from jremap.java.adapter import JavaAdapter
from jremap.java.ast_utils import TYPE_DECLARATIONS
from jremap.java.binder import ResolvedUnit
from jremap.java.symbols import SymbolTable
from jremap.mappings.inheritance import InheritanceProvider, SymbolTableInheritanceProvider
from jremap.mappings.model import MappingSet
from jremap.remap.edits import EditSink
from jremap.remap.engine import remap_unit

logger = logging.getLogger(__name__)


@dataclass
class UnitResult:
    """Outcome of remapping one compilation unit."""

    path: Path
    output_path: Path | None = None
    edits: list[RenameEdit] = field(default_factory=list)
    error: str | None = None

    @property
    def changed(self) -> bool:
        return bool(self.edits)

    @property
    def renamed(self) -> bool:
        return self.output_path is not None and self.output_path.name != self.path.name


@dataclass
class RemapResult:
    """Result of remapping a source tree."""

    source_path: Path
    output_path: Path
    dry_run: bool = False
    types_scanned: int = 0
    units: list[UnitResult] = field(default_factory=list)
    resources_copied: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Check if every unit was remapped."""
        return len(self.errors) == 0

    @property
    def units_changed(self) -> int:
        return sum(1 for unit in self.units if unit.changed)

    @property
    def files_renamed(self) -> int:
        return sum(1 for unit in self.units if unit.renamed)

    @property
    def edits_count(self) -> int:
        return sum(len(unit.edits) for unit in self.units)

    def edits_by_kind(self) -> dict[BindingKind, int]:
        counts: Counter[BindingKind] = Counter()
        for unit in self.units:
            counts.update(edit.kind for edit in unit.edits)
        return dict(counts)


class Remapper:
    """Renames identifiers of a Java source tree from a mapping set.

    The mapping set is shared by all units; each unit gets its own binder,
    frame stack and edit sink.
    """

    def __init__(self, mappings: MappingSet, config: RemapperConfig | None = None) -> None:
        """Initialize the remapper.

        Args:
            mappings: Mappings to apply.
            config: Settings; the global configuration if omitted.
        """
        self._mappings = mappings
        self._config = config or get_config()
        self._adapter = JavaAdapter()

    @property
    def mappings(self) -> MappingSet:
        return self._mappings

    def remap_directory(
        self, source_path: Path, output_path: Path, dry_run: bool = False
    ) -> RemapResult:
        """Remap every source file under `source_path` into `output_path`.

        Args:
            source_path: Root of the Java source tree.
            output_path: Root of the output tree, mirroring the source layout.
            dry_run: Compute edits without writing anything.

        Returns:
            RemapResult with per-unit edits and any errors.
        """
        result = RemapResult(source_path=source_path, output_path=output_path, dry_run=dry_run)

        if not source_path.is_dir():
            result.errors.append(f"Source path is not a directory: {source_path}")
            return result

        files = sorted(p for p in source_path.rglob(self._config.file_glob) if p.is_file())
        if not files:
            result.errors.append(f"No files matching {self._config.file_glob} found")
            return result

        sources: dict[Path, bytes] = {}
        for path in files:
            try:
                sources[path] = self._read_source(path)
            except (OSError, UnicodeDecodeError) as e:
                result.errors.append(f"Error reading {path}: {e}")

        # Phase 1: symbol table over all readable units
        symbol_table = self._adapter.build_symbol_table(
            [(str(path), content) for path, content in sources.items()]
        )
        result.types_scanned = len(symbol_table.types)
        inheritance = SymbolTableInheritanceProvider(symbol_table)

        # Phase 2: bind and remap units in parallel
        with ThreadPoolExecutor(max_workers=self._config.workers) as executor:
            futures = [
                executor.submit(
                    self._remap_file, path, content, source_path, output_path,
                    symbol_table, inheritance, dry_run,
                )
                for path, content in sources.items()
            ]
            for future in futures:
                unit_result = future.result()
                result.units.append(unit_result)
                if unit_result.error is not None:
                    result.errors.append(f"Error remapping {unit_result.path}: {unit_result.error}")

        if self._config.copy_resources and not dry_run:
            result.resources_copied = self._copy_resources(source_path, output_path, set(files))

        logger.info(
            f"Remapped {len(result.units)} units: {result.edits_count} edits, "
            f"{len(result.errors)} errors"
        )
        return result

    def remap_sources(self, sources: dict[str, str]) -> dict[str, str]:
        """Remap in-memory sources given as {name: text}.

        Units are processed sequentially and errors propagate.

        Returns:
            {name: remapped text} for every unit.
        """
        encoded = {name: text.encode("utf-8") for name, text in sources.items()}
        symbol_table = self._adapter.build_symbol_table(list(encoded.items()))
        inheritance = SymbolTableInheritanceProvider(symbol_table)

        remapped: dict[str, str] = {}
        for name, content in encoded.items():
            _, new_content, _ = self.remap_content(name, content, symbol_table, inheritance)
            remapped[name] = new_content.decode("utf-8")
        return remapped

    def remap_content(
        self,
        name: str,
        content: bytes,
        symbol_table: SymbolTable,
        inheritance: InheritanceProvider,
    ) -> tuple[ResolvedUnit, bytes, list[RenameEdit]]:
        """Bind and remap one UTF-8 unit.

        Raises:
            RemapInvariantError: On an internal defect in this unit.
            EditConflictError: If two occurrences demand different text at one span.
        """
        unit = self._adapter.bind(name, content, symbol_table)
        sink = EditSink()
        edits = remap_unit(unit, self._mappings, inheritance, sink)
        return unit, sink.apply(content), edits

    def _remap_file(
        self,
        path: Path,
        content: bytes,
        source_root: Path,
        output_root: Path,
        symbol_table: SymbolTable,
        inheritance: InheritanceProvider,
        dry_run: bool,
    ) -> UnitResult:
        relative = path.relative_to(source_root)
        unit_result = UnitResult(path=relative)
        try:
            unit, new_content, edits = self.remap_content(
                str(path), content, symbol_table, inheritance
            )
            unit_result.edits = edits

            target_name = relative.name
            if self._config.rename_files:
                new_stem = renamed_file_stem(unit, edits, path.stem)
                if new_stem is not None:
                    target_name = f"{new_stem}{path.suffix}"
            unit_result.output_path = relative.with_name(target_name)

            if not dry_run:
                target = output_root / unit_result.output_path
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(self._encode_output(new_content))
        except Exception as e:
            logger.warning(f"Failed to remap {path}: {e}")
            unit_result.error = str(e)
        return unit_result

    def _read_source(self, path: Path) -> bytes:
        """Read a source file as UTF-8 bytes, the encoding tree-sitter parses."""
        raw = path.read_bytes()
        encoding = self._config.source_encoding
        if encoding.lower().replace("-", "") == "utf8":
            # Fail early on undecodable input
            raw.decode("utf-8")
            return raw
        return raw.decode(encoding).encode("utf-8")

    def _encode_output(self, content: bytes) -> bytes:
        encoding = self._config.source_encoding
        if encoding.lower().replace("-", "") == "utf8":
            return content
        return content.decode("utf-8").encode(encoding)

    def _copy_resources(self, source_root: Path, output_root: Path, sources: set[Path]) -> int:
        copied = 0
        for path in sorted(source_root.rglob("*")):
            if not path.is_file() or path in sources:
                continue
            target = output_root / path.relative_to(source_root)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, target)
            copied += 1
        return copied


def renamed_file_stem(unit: ResolvedUnit, edits: list[RenameEdit], stem: str) -> str | None:
    """New file name stem if the top-level type named after the file was renamed."""
    spans = {
        (edit.start_byte, edit.end_byte): edit.new_name
        for edit in edits
        if edit.kind == BindingKind.CLASS
    }
    for child in unit.root.children:
        if child.type not in TYPE_DECLARATIONS:
            continue
        name_node = child.child_by_field_name("name")
        if name_node is None or unit.text(name_node) != stem:
            continue
        return spans.get((name_node.start_byte, name_node.end_byte))
    return None
