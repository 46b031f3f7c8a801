"""Parameter slot tracking.

The JVM stores a method's parameters in local variable slots. Instance
methods, constructors and non-static lambda bodies reserve slot 0 for the
receiver; `long` and `double` take two slots; everything else takes one.
Parameter mappings are keyed by these slot indices, so the remapper keeps a
stack of frames, one per enclosing method, constructor or lambda, each
holding the slot of every parameter the callable declares.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from jremap.core.models import MethodBinding, VariableBinding
from jremap.java.descriptors import slot_width


class RemapInvariantError(RuntimeError):
    """Internal defect detected while remapping one unit."""


def compute_slots(parameter_types: Iterable[str], is_static: bool) -> list[int]:
    """Slot index of each parameter, in declaration order.

    >>> compute_slots(["long", "int"], is_static=True)
    [0, 2]
    >>> compute_slots(["int", "double", "int"], is_static=False)
    [1, 2, 4]
    """
    slots: list[int] = []
    slot = 0 if is_static else 1
    for type_name in parameter_types:
        slots.append(slot)
        slot += slot_width(type_name)
    return slots


@dataclass
class Frame:
    """Slot table for the parameters of one callable.

    Keyed by parameter binding key, never by name, since inner scopes may
    declare parameters of the same name.
    """

    method: MethodBinding
    slots: dict[str, int] = field(default_factory=dict)

    @classmethod
    def for_method(cls, method: MethodBinding) -> Frame:
        parameters: Sequence[VariableBinding] = method.parameters
        types = [p.type_name for p in parameters]
        slots = compute_slots(types, method.is_static)
        return cls(method, {p.key: slot for p, slot in zip(parameters, slots)})

    def slot_of(self, parameter: VariableBinding) -> int | None:
        return self.slots.get(parameter.key)


class FrameStack:
    """Frames of the callables enclosing the current traversal position.

    Private to one traversal of one unit.
    """

    def __init__(self) -> None:
        self._frames: list[Frame] = []

    def __len__(self) -> int:
        return len(self._frames)

    def push(self, method: MethodBinding) -> Frame:
        frame = Frame.for_method(method)
        self._frames.append(frame)
        return frame

    def pop(self, method: MethodBinding) -> Frame:
        """Pop the innermost frame, which must belong to `method`.

        Raises:
            RemapInvariantError: If the stack is empty or the frame belongs
                to a different callable.
        """
        if not self._frames:
            raise RemapInvariantError(f"No frame to pop for {method.key}")
        frame = self._frames.pop()
        if frame.method.key != method.key:
            raise RemapInvariantError(
                f"Frame mismatch: popped {frame.method.key}, expected {method.key}"
            )
        return frame

    def find(self, method: MethodBinding) -> Frame | None:
        """Find the frame of a callable, innermost first."""
        for frame in reversed(self._frames):
            if frame.method.key == method.key:
                return frame
        return None

    def slot_of(self, parameter: VariableBinding) -> int | None:
        """Slot of a parameter within the frame of its declaring callable.

        Returns None when no frame of that callable is active.
        """
        method = parameter.declaring_method
        if method is None:
            return None
        frame = self.find(method)
        return frame.slot_of(parameter) if frame is not None else None
