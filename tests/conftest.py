"""Shared pytest fixtures for jremap tests."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
from dotenv import load_dotenv
from hypothesis import settings

from jremap.core.config import RemapperConfig
from jremap.java.adapter import JavaAdapter
from jremap.java.binder import ResolvedUnit
from jremap.mappings.model import MappingSet
from jremap.mappings.serializer import loads_dict
from jremap.remap.service import Remapper

# Load environment variables from .env file
load_dotenv()

# Configure hypothesis for property-based testing
settings.register_profile("ci", max_examples=100, deadline=None)
settings.register_profile("dev", max_examples=20, deadline=None)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))


@pytest.fixture
def test_config() -> RemapperConfig:
    """Configuration independent of the environment and any .env file."""
    with patch.dict(os.environ, {}, clear=True):
        return RemapperConfig(_env_file=None, workers=2)


@pytest.fixture
def build_mappings() -> Callable[[list[dict[str, Any]]], MappingSet]:
    """Build a mapping set from a list of class entries in mapping file form."""

    def build(classes: list[dict[str, Any]]) -> MappingSet:
        return loads_dict({"version": "1", "classes": classes})

    return build


@pytest.fixture
def remap_sources(
    test_config: RemapperConfig,
) -> Callable[[dict[str, str], MappingSet], dict[str, str]]:
    """Remap in-memory sources with a mapping set."""

    def remap(sources: dict[str, str], mappings: MappingSet) -> dict[str, str]:
        return Remapper(mappings, test_config).remap_sources(sources)

    return remap


@pytest.fixture
def bind_sources() -> Callable[[dict[str, str]], dict[str, ResolvedUnit]]:
    """Scan and bind in-memory sources without remapping."""

    def bind(sources: dict[str, str]) -> dict[str, ResolvedUnit]:
        adapter = JavaAdapter()
        encoded = [(name, text.encode("utf-8")) for name, text in sources.items()]
        table = adapter.build_symbol_table(encoded)
        return {name: adapter.bind(name, content, table) for name, content in encoded}

    return bind


@pytest.fixture
def write_tree() -> Callable[[Path, dict[str, str]], Path]:
    """Write {relative path: text} files under a root directory."""

    def write(root: Path, files: dict[str, str]) -> Path:
        for relative, text in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        return root

    return write
