"""Accumulates rename edits for one unit and applies them to its source."""

from __future__ import annotations

import bisect
import logging

from jremap.core.models import RenameEdit

logger = logging.getLogger(__name__)


class EditConflictError(Exception):
    """Two edits target overlapping spans with different replacements."""

    def __init__(self, first: RenameEdit, second: RenameEdit) -> None:
        super().__init__(
            f"Conflicting edits at bytes {first.start_byte}-{first.end_byte}: "
            f"{first.old_name!r} -> {first.new_name!r} vs {second.old_name!r} -> {second.new_name!r}"
        )
        self.first = first
        self.second = second


class EditSink:
    """Ordered, conflict-free set of rename edits over one source buffer."""

    def __init__(self) -> None:
        self._starts: list[int] = []
        self._edits: list[RenameEdit] = []

    def __len__(self) -> int:
        return len(self._edits)

    @property
    def edits(self) -> list[RenameEdit]:
        """Edits sorted by start offset."""
        return list(self._edits)

    def add(self, edit: RenameEdit) -> bool:
        """Record an edit.

        Returns:
            False if an identical edit was already recorded.

        Raises:
            EditConflictError: If the edit overlaps a different recorded edit.
        """
        index = bisect.bisect_left(self._starts, edit.start_byte)
        for neighbour in self._edits[max(index - 1, 0):index + 1]:
            if neighbour == edit:
                return False
            if edit.start_byte < neighbour.end_byte and neighbour.start_byte < edit.end_byte:
                raise EditConflictError(neighbour, edit)
        self._starts.insert(index, edit.start_byte)
        self._edits.insert(index, edit)
        return True

    def apply(self, content: bytes, encoding: str = "utf-8") -> bytes:
        """Apply all edits to `content`, last offset first so earlier spans stay valid."""
        out = bytearray(content)
        for edit in reversed(self._edits):
            current = bytes(out[edit.start_byte:edit.end_byte]).decode(encoding)
            if current != edit.old_name:
                logger.warning(
                    f"Source text {current!r} at {edit.start_byte} does not match "
                    f"{edit.old_name!r}; applying anyway"
                )
            out[edit.start_byte:edit.end_byte] = edit.new_name.encode(encoding)
        return bytes(out)
