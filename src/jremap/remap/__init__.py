"""Remap engine, parameter slot tracking, edits and the tree remapping service."""

from jremap.remap.edits import EditConflictError, EditSink
from jremap.remap.engine import RemapperVisitor, remap_unit
from jremap.remap.service import Remapper, RemapResult, UnitResult
from jremap.remap.slots import Frame, FrameStack, RemapInvariantError, compute_slots

__all__ = [
    "EditConflictError",
    "EditSink",
    "Frame",
    "FrameStack",
    "RemapInvariantError",
    "RemapResult",
    "Remapper",
    "RemapperVisitor",
    "UnitResult",
    "compute_slots",
    "remap_unit",
]
