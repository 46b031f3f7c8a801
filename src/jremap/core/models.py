"""Binding and edit models for the jremap remapping pipeline.

Bindings describe the resolved semantic identity of a symbol occurrence
(what it is, where it is declared, its erased signature). They are produced
by the binding provider and treated as read-only by the remap engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class BindingKind(str, Enum):
    """Kind of resolved symbol."""

    CLASS = "CLASS"
    METHOD = "METHOD"
    CONSTRUCTOR = "CONSTRUCTOR"
    FIELD = "FIELD"
    PARAMETER = "PARAMETER"
    LOCAL_VARIABLE = "LOCAL_VARIABLE"


@dataclass(eq=False)
class Binding:
    """Base class for all bindings.

    `key` is the stable identity of the declaration. Two bindings describe
    the same symbol exactly when their keys are equal.
    """

    key: str
    name: str

    @property
    def kind(self) -> BindingKind:
        raise NotImplementedError

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Binding):
            return NotImplemented
        return self.key == other.key and self.kind == other.kind

    def __hash__(self) -> int:
        return hash((self.key, self.kind))


@dataclass(eq=False)
class TypeBinding(Binding):
    """A class, interface, enum or record.

    `binary_name` is None for local and anonymous classes.
    """

    binary_name: str | None = None

    @property
    def kind(self) -> BindingKind:
        return BindingKind.CLASS


@dataclass(eq=False)
class MethodBinding(Binding):
    """A method, constructor or lambda body.

    Parameter and return types are erased type names (`int`, `long[]`,
    `java.lang.String`, `com.example.Outer$Inner`).
    """

    declaring_type: str | None = None
    parameter_types: tuple[str, ...] = ()
    return_type: str = "void"
    is_static: bool = False
    is_constructor: bool = False
    is_lambda: bool = False
    parameters: list[VariableBinding] = field(default_factory=list, repr=False)

    @property
    def kind(self) -> BindingKind:
        return BindingKind.CONSTRUCTOR if self.is_constructor else BindingKind.METHOD

    @property
    def descriptor(self) -> str:
        """Erased JVM method descriptor, e.g. `(JI)V`."""
        # Import here to avoid circular dependency
        from jremap.java.descriptors import method_descriptor

        return method_descriptor(self.parameter_types, self.return_type)


@dataclass(eq=False)
class VariableBinding(Binding):
    """A field, parameter or local variable."""

    variable_kind: BindingKind = BindingKind.LOCAL_VARIABLE
    declaring_type: str | None = None
    type_name: str = "java.lang.Object"
    declaring_method: MethodBinding | None = field(default=None, repr=False)
    position: int = -1

    @property
    def kind(self) -> BindingKind:
        return self.variable_kind


class RenameEdit(BaseModel):
    """A proposed identifier replacement at a byte span of one unit."""

    start_byte: int = Field(..., ge=0, description="Start offset of the identifier")
    end_byte: int = Field(..., ge=0, description="End offset of the identifier")
    old_name: str = Field(..., description="Identifier text currently in the source")
    new_name: str = Field(..., description="Replacement identifier text")
    kind: BindingKind = Field(..., description="Kind of the renamed symbol")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_edit(self) -> RenameEdit:
        if self.end_byte < self.start_byte:
            raise ValueError("end_byte must not precede start_byte")
        if self.old_name == self.new_name:
            raise ValueError(f"rename of {self.old_name!r} to itself")
        return self
