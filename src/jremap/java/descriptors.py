"""JVM descriptor helpers.

Type names used throughout jremap are erased source-level names:
primitives (`int`), arrays (`long[][]`) and binary class names
(`java.lang.String`, `com.example.Outer$Inner`). This module converts them
to JVM descriptors and answers slot-width questions.
"""

from __future__ import annotations

PRIMITIVE_DESCRIPTORS: dict[str, str] = {
    "boolean": "Z",
    "byte": "B",
    "char": "C",
    "short": "S",
    "int": "I",
    "long": "J",
    "float": "F",
    "double": "D",
    "void": "V",
}

# 64-bit primitives occupy two local variable slots
WIDE_TYPES = frozenset({"long", "double"})

OBJECT_TYPE = "java.lang.Object"


def is_primitive(type_name: str) -> bool:
    return type_name in PRIMITIVE_DESCRIPTORS


def is_wide(type_name: str) -> bool:
    """Return True if a value of this type takes two local variable slots.

    Arrays of wide types are references and take a single slot.
    """
    return type_name in WIDE_TYPES


def slot_width(type_name: str) -> int:
    return 2 if is_wide(type_name) else 1


def to_internal_name(binary_name: str) -> str:
    """Convert `com.example.Foo$Bar` to `com/example/Foo$Bar`."""
    return binary_name.replace(".", "/")


def to_binary_name(name: str) -> str:
    """Convert an internal (`a/b/C`) or binary (`a.b.C`) name to binary form."""
    return name.replace("/", ".")


def type_descriptor(type_name: str) -> str:
    """Build the field descriptor for an erased type name.

    Args:
        type_name: `int`, `java.lang.String`, `double[]`, ...

    Returns:
        Descriptor like `I`, `Ljava/lang/String;` or `[D`.
    """
    dimensions = 0
    while type_name.endswith("[]"):
        type_name = type_name[:-2]
        dimensions += 1

    if type_name in PRIMITIVE_DESCRIPTORS:
        element = PRIMITIVE_DESCRIPTORS[type_name]
    else:
        element = f"L{to_internal_name(type_name)};"
    return "[" * dimensions + element


def method_descriptor(parameter_types: tuple[str, ...] | list[str], return_type: str) -> str:
    """Build a method descriptor such as `(JLjava/lang/String;)V`."""
    params = "".join(type_descriptor(t) for t in parameter_types)
    return f"({params}){type_descriptor(return_type)}"


def parse_method_descriptor(descriptor: str) -> list[str]:
    """Split a method descriptor into its parameter descriptors.

    Args:
        descriptor: A method descriptor like `(I[JLjava/lang/String;)V`.

    Returns:
        Parameter descriptors in order, e.g. `["I", "[J", "Ljava/lang/String;"]`.

    Raises:
        ValueError: If the descriptor is malformed.
    """
    if not descriptor.startswith("(") or ")" not in descriptor:
        raise ValueError(f"Malformed method descriptor: {descriptor}")

    params: list[str] = []
    i = 1
    end = descriptor.index(")")
    while i < end:
        start = i
        while descriptor[i] == "[":
            i += 1
        if descriptor[i] == "L":
            semi = descriptor.find(";", i)
            if semi < 0 or semi > end:
                raise ValueError(f"Malformed method descriptor: {descriptor}")
            i = semi + 1
        elif descriptor[i] in "ZBCSIJFD":
            i += 1
        else:
            raise ValueError(f"Malformed method descriptor: {descriptor}")
        params.append(descriptor[start:i])
    return params


def descriptor_slot_count(descriptor: str) -> int:
    """Number of local variable slots taken by a method's declared parameters.

    The receiver slot of instance methods is not included.
    """
    return sum(2 if p in ("J", "D") else 1 for p in parse_method_descriptor(descriptor))
