"""Integration tests for remapping source trees on disk."""

from collections.abc import Callable
from pathlib import Path

import pytest

from jremap.core.config import RemapperConfig
from jremap.core.models import BindingKind
from jremap.mappings.model import MappingSet
from jremap.remap import service
from jremap.remap.service import Remapper
from jremap.remap.slots import RemapInvariantError

SOURCES = {
    "a/b.java": """package a;
public class b {
    public static void c(long d, int e) {}
}
""",
    "a/e.java": """package a;
public class e {
    void f() { b.c(1L, 2); }
}
""",
}

CLASSES = [{
    "obfuscated": "a.b",
    "deobfuscated": "com.x.Util",
    "methods": [{
        "obfuscated": "c",
        "descriptor": "(JI)V",
        "deobfuscated": "run",
        "parameters": [{"index": 2, "deobfuscated": "count"}],
    }],
}]


@pytest.fixture
def source_tree(tmp_path: Path, write_tree: Callable) -> Path:
    """A small source tree with one resource file."""
    root = write_tree(tmp_path / "src", SOURCES)
    (root / "a" / "notes.txt").write_text("not java", encoding="utf-8")
    return root


class TestRemapDirectory:
    """Tests for Remapper.remap_directory."""

    def test_writes_remapped_tree(
        self,
        source_tree: Path,
        tmp_path: Path,
        build_mappings: Callable,
        test_config: RemapperConfig,
    ) -> None:
        """Test remapped units land at mirrored paths with renamed files."""
        output = tmp_path / "out"
        result = Remapper(build_mappings(CLASSES), test_config).remap_directory(source_tree, output)

        assert result.success
        assert result.types_scanned == 2
        assert result.units_changed == 2
        assert result.files_renamed == 1
        assert (output / "a" / "Util.java").read_text(encoding="utf-8") == """package a;
public class Util {
    public static void run(long d, int count) {}
}
"""
        assert not (output / "a" / "b.java").exists()
        assert "b.run(1L, 2)" not in (output / "a" / "e.java").read_text(encoding="utf-8")
        assert "Util.run(1L, 2)" in (output / "a" / "e.java").read_text(encoding="utf-8")

    def test_edit_counts_by_kind(
        self,
        source_tree: Path,
        tmp_path: Path,
        build_mappings: Callable,
        test_config: RemapperConfig,
    ) -> None:
        """Test the result reports edits per symbol kind."""
        result = Remapper(build_mappings(CLASSES), test_config).remap_directory(
            source_tree, tmp_path / "out"
        )

        assert result.edits_by_kind() == {
            BindingKind.CLASS: 2,
            BindingKind.METHOD: 2,
            BindingKind.PARAMETER: 1,
        }
        assert result.edits_count == 5

    def test_dry_run_writes_nothing(
        self,
        source_tree: Path,
        tmp_path: Path,
        build_mappings: Callable,
        test_config: RemapperConfig,
    ) -> None:
        """Test a dry run computes edits without creating the output tree."""
        output = tmp_path / "out"
        result = Remapper(build_mappings(CLASSES), test_config).remap_directory(
            source_tree, output, dry_run=True
        )

        assert result.success
        assert result.dry_run
        assert result.edits_count > 0
        assert not output.exists()

    def test_rename_files_disabled(
        self, source_tree: Path, tmp_path: Path, build_mappings: Callable
    ) -> None:
        """Test files keep their names when renaming is disabled."""
        config = RemapperConfig(_env_file=None, workers=1, rename_files=False)
        output = tmp_path / "out"
        result = Remapper(build_mappings(CLASSES), config).remap_directory(source_tree, output)

        assert result.files_renamed == 0
        assert "public class Util" in (output / "a" / "b.java").read_text(encoding="utf-8")

    def test_copy_resources(self, source_tree: Path, tmp_path: Path) -> None:
        """Test non-source files are copied when enabled."""
        config = RemapperConfig(_env_file=None, workers=1, copy_resources=True)
        output = tmp_path / "out"
        result = Remapper(MappingSet(), config).remap_directory(source_tree, output)

        assert result.resources_copied == 1
        assert (output / "a" / "notes.txt").read_text(encoding="utf-8") == "not java"

    def test_unmapped_tree_copied_verbatim(
        self, source_tree: Path, tmp_path: Path, test_config: RemapperConfig
    ) -> None:
        """Test an empty mapping set reproduces every unit byte for byte."""
        output = tmp_path / "out"
        result = Remapper(MappingSet(), test_config).remap_directory(source_tree, output)

        assert result.success
        assert result.edits_count == 0
        for relative, text in SOURCES.items():
            assert (output / relative).read_text(encoding="utf-8") == text

    def test_source_encoding(self, tmp_path: Path, build_mappings: Callable) -> None:
        """Test non-UTF-8 sources are decoded and written back in their encoding."""
        root = tmp_path / "src"
        (root / "a").mkdir(parents=True)
        text = 'package a;\npublic class b { String s = "café"; public static void c(long d, int e) {} }\n'
        (root / "a" / "b.java").write_bytes(text.encode("latin-1"))
        config = RemapperConfig(_env_file=None, workers=1, source_encoding="latin-1")

        output = tmp_path / "out"
        result = Remapper(build_mappings(CLASSES), config).remap_directory(root, output)

        assert result.success
        written = (output / "a" / "Util.java").read_bytes().decode("latin-1")
        assert 'String s = "café";' in written
        assert "public static void run(long d, int count)" in written

    def test_missing_source_directory(self, tmp_path: Path, test_config: RemapperConfig) -> None:
        """Test a missing source root is reported as an error."""
        result = Remapper(MappingSet(), test_config).remap_directory(
            tmp_path / "missing", tmp_path / "out"
        )

        assert not result.success
        assert "not a directory" in result.errors[0]

    def test_no_sources(self, tmp_path: Path, test_config: RemapperConfig) -> None:
        """Test an empty source root is reported as an error."""
        (tmp_path / "src").mkdir()
        result = Remapper(MappingSet(), test_config).remap_directory(
            tmp_path / "src", tmp_path / "out"
        )

        assert not result.success
        assert "No files matching" in result.errors[0]


class TestUnitIsolation:
    """A failing unit does not abort the rest of the tree."""

    def test_failing_unit_recorded(
        self,
        source_tree: Path,
        tmp_path: Path,
        build_mappings: Callable,
        test_config: RemapperConfig,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test an invariant violation in one unit is reported while others complete."""
        real_remap_unit = service.remap_unit

        def failing_remap_unit(unit, mappings, inheritance, sink=None):
            if unit.path.endswith("e.java"):
                raise RemapInvariantError("frames left open")
            return real_remap_unit(unit, mappings, inheritance, sink)

        monkeypatch.setattr(service, "remap_unit", failing_remap_unit)
        output = tmp_path / "out"

        result = Remapper(build_mappings(CLASSES), test_config).remap_directory(source_tree, output)

        assert not result.success
        assert len(result.errors) == 1
        assert "frames left open" in result.errors[0]
        failed = [u for u in result.units if u.error is not None]
        assert [u.path for u in failed] == [Path("a/e.java")]
        assert (output / "a" / "Util.java").exists()
        assert not (output / "a" / "e.java").exists()


class TestRemapSources:
    """Tests for in-memory remapping."""

    def test_remap_sources(self, build_mappings: Callable, test_config: RemapperConfig) -> None:
        """Test in-memory sources are remapped by name."""
        result = Remapper(build_mappings(CLASSES), test_config).remap_sources(SOURCES)

        assert set(result) == set(SOURCES)
        assert "Util.run(1L, 2)" in result["a/e.java"]
