"""In-memory mapping set.

A mapping set is a forest: class mappings keyed by binary name own method
mappings (keyed by name and erased descriptor) and field mappings (keyed by
name and optional type descriptor). Method mappings own parameter mappings
keyed by JVM local variable slot, not by declaration position.

Every mapping's deobfuscated name defaults to its obfuscated name, so an
unmapped member always maps to itself.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from jremap.java.descriptors import descriptor_slot_count, parse_method_descriptor

if TYPE_CHECKING:
    from jremap.mappings.inheritance import InheritanceProvider

logger = logging.getLogger(__name__)

NON_INHERITABLE_METHODS = frozenset({"<init>", "<clinit>"})


def normalize_binary_name(name: str) -> str:
    """Accept internal names (`a/b$c`) as well as binary names (`a.b$c`)."""
    return name.replace("/", ".")


def split_package(binary_name: str) -> tuple[str, str]:
    """Split `com.x.Outer$Inner` into (`com.x`, `Outer$Inner`)."""
    package, _, name = binary_name.rpartition(".")
    return package, name


@dataclass(frozen=True)
class MethodSignature:
    """Method key: name plus erased JVM descriptor, e.g. `run` + `(JI)V`."""

    name: str
    descriptor: str


@dataclass(frozen=True)
class FieldSignature:
    """Field key: name plus type descriptor, which may be unknown."""

    name: str
    descriptor: str | None = None


class MethodParameterMapping:
    """Target name of the parameter occupying one local variable slot."""

    def __init__(self, parent: MethodMapping, index: int, deobfuscated_name: str) -> None:
        self.parent = parent
        self.index = index
        self.deobfuscated_name = deobfuscated_name

    def __repr__(self) -> str:
        return f"MethodParameterMapping({self.index} -> {self.deobfuscated_name!r})"


class FieldMapping:
    def __init__(
        self, parent: ClassMapping, signature: FieldSignature, deobfuscated_name: str | None = None
    ) -> None:
        self.parent = parent
        self.signature = signature
        self.deobfuscated_name = deobfuscated_name or signature.name

    @property
    def obfuscated_name(self) -> str:
        return self.signature.name

    @property
    def descriptor(self) -> str | None:
        return self.signature.descriptor

    def __repr__(self) -> str:
        return f"FieldMapping({self.signature.name} -> {self.deobfuscated_name!r})"


class MethodMapping:
    """Target name of a method plus its parameter mappings by slot."""

    def __init__(
        self, parent: ClassMapping, signature: MethodSignature, deobfuscated_name: str | None = None
    ) -> None:
        self.parent = parent
        self.signature = signature
        self.deobfuscated_name = deobfuscated_name or signature.name
        self._parameters: dict[int, MethodParameterMapping] = {}

    @property
    def obfuscated_name(self) -> str:
        return self.signature.name

    @property
    def descriptor(self) -> str:
        return self.signature.descriptor

    @property
    def max_slot(self) -> int:
        """Highest slot a parameter of this method can occupy.

        Static-ness is not recorded in mappings, so the receiver slot is
        always allowed for.
        """
        return descriptor_slot_count(self.signature.descriptor)

    @property
    def parameter_mappings(self) -> list[MethodParameterMapping]:
        return [self._parameters[i] for i in sorted(self._parameters)]

    def create_parameter_mapping(self, index: int, deobfuscated_name: str) -> MethodParameterMapping:
        """Create or replace the mapping of the parameter at a slot."""
        if index < 0:
            raise ValueError(f"Parameter slot must be non-negative, got {index}")
        mapping = MethodParameterMapping(self, index, deobfuscated_name)
        self._parameters[index] = mapping
        return mapping

    def get_parameter_mapping(self, slot: int) -> MethodParameterMapping | None:
        """Look up a parameter by slot; slots outside the method's range yield None."""
        if slot < 0 or slot > self.max_slot:
            return None
        return self._parameters.get(slot)

    def __repr__(self) -> str:
        return (
            f"MethodMapping({self.signature.name}{self.signature.descriptor} -> "
            f"{self.deobfuscated_name!r})"
        )


class ClassMapping:
    """Mappings of one class and its members."""

    def __init__(
        self, mapping_set: MappingSet, obfuscated_name: str, deobfuscated_name: str | None = None
    ) -> None:
        self._mapping_set = mapping_set
        self.obfuscated_name = normalize_binary_name(obfuscated_name)
        self.deobfuscated_name = normalize_binary_name(deobfuscated_name or obfuscated_name)
        self._methods: dict[MethodSignature, MethodMapping] = {}
        self._fields: dict[FieldSignature, FieldMapping] = {}
        self._complete_lock = threading.RLock()
        self._completed = False
        self._completing = False

    # Names

    @property
    def full_obfuscated_name(self) -> str:
        return self.obfuscated_name

    @property
    def full_deobfuscated_name(self) -> str:
        return self.deobfuscated_name

    @property
    def simple_obfuscated_name(self) -> str:
        return _simple_name(self.obfuscated_name)

    @property
    def simple_deobfuscated_name(self) -> str:
        return _simple_name(self.deobfuscated_name)

    @property
    def package(self) -> str:
        return split_package(self.obfuscated_name)[0]

    @property
    def deobfuscated_package(self) -> str:
        return split_package(self.deobfuscated_name)[0]

    @property
    def method_mappings(self) -> list[MethodMapping]:
        return list(self._methods.values())

    @property
    def field_mappings(self) -> list[FieldMapping]:
        return list(self._fields.values())

    @property
    def is_completed(self) -> bool:
        return self._completed

    # Members

    def create_method_mapping(
        self, name: str, descriptor: str, deobfuscated_name: str | None = None
    ) -> MethodMapping:
        parse_method_descriptor(descriptor)
        signature = MethodSignature(name, descriptor)
        mapping = MethodMapping(self, signature, deobfuscated_name)
        self._methods[signature] = mapping
        return mapping

    def get_method_mapping(self, signature: MethodSignature) -> MethodMapping | None:
        return self._methods.get(signature)

    def create_field_mapping(
        self, name: str, descriptor: str | None = None, deobfuscated_name: str | None = None
    ) -> FieldMapping:
        signature = FieldSignature(name, descriptor)
        mapping = FieldMapping(self, signature, deobfuscated_name)
        self._fields[signature] = mapping
        return mapping

    def get_field_mapping(self, signature: FieldSignature) -> FieldMapping | None:
        return self._fields.get(signature)

    def compute_field_mapping(self, signature: FieldSignature) -> FieldMapping | None:
        """Find a field mapping by exact signature, falling back to the name alone.

        The fallback accepts a mapping recorded without a descriptor, or any
        mapping of that name when the lookup itself has no descriptor.
        """
        mapping = self._fields.get(signature)
        if mapping is not None:
            return mapping
        mapping = self._fields.get(FieldSignature(signature.name))
        if mapping is not None or signature.descriptor is not None:
            return mapping
        for candidate in self._fields.values():
            if candidate.signature.name == signature.name:
                return candidate
        return None

    # Completion

    def complete(self, provider: InheritanceProvider, binary_name: str | None = None) -> None:
        """Pull inheritable method mappings down from supertypes.

        Runs at most once per class. Concurrent callers block until the first
        one finishes; later calls return immediately.

        Args:
            provider: Source of supertypes and method modifiers.
            binary_name: Type to complete as; defaults to this mapping's name.
        """
        if self._completed:
            return
        with self._complete_lock:
            # Re-entry from a cyclic hierarchy on the same thread
            if self._completed or self._completing:
                return
            self._completing = True
            try:
                self._complete(provider, normalize_binary_name(binary_name or self.obfuscated_name))
                self._completed = True
            finally:
                self._completing = False

    def _complete(self, provider: InheritanceProvider, binary_name: str) -> None:
        seen: set[str] = set()
        for supertype in provider.get_supertypes(binary_name):
            self._inherit_from(provider, supertype, seen)
        logger.debug(f"Completed {binary_name}: {len(self._methods)} method mappings")

    def _inherit_from(self, provider: InheritanceProvider, supertype: str, seen: set[str]) -> None:
        if supertype in seen:
            return
        seen.add(supertype)

        parent = self._mapping_set.get_class_mapping(supertype)
        if parent is None:
            # Unmapped intermediate types still pass on their ancestors' mappings
            for ancestor in provider.get_supertypes(supertype):
                self._inherit_from(provider, ancestor, seen)
            return

        parent.complete(provider)
        for method in parent.method_mappings:
            if method.signature in self._methods:
                continue
            if not self._can_inherit(provider, parent, method):
                continue
            copy = MethodMapping(self, method.signature, method.deobfuscated_name)
            for parameter in method.parameter_mappings:
                copy.create_parameter_mapping(parameter.index, parameter.deobfuscated_name)
            self._methods[method.signature] = copy

    def _can_inherit(
        self, provider: InheritanceProvider, parent: ClassMapping, method: MethodMapping
    ) -> bool:
        if method.signature.name in NON_INHERITABLE_METHODS:
            return False
        info = provider.get_method(
            parent.obfuscated_name, method.signature.name, method.signature.descriptor
        )
        if info is None:
            return True
        if info.is_static or info.is_constructor or info.visibility == "private":
            return False
        if info.visibility == "package":
            return parent.package == self.package
        return True

    def __repr__(self) -> str:
        return f"ClassMapping({self.obfuscated_name} -> {self.deobfuscated_name!r})"


class MappingSet:
    """All class mappings of one remapping pass.

    Class lookup and creation are thread-safe; member mappings are only
    mutated by loading and by `ClassMapping.complete`.
    """

    def __init__(self) -> None:
        self._classes: dict[str, ClassMapping] = {}
        self._lock = threading.Lock()

    def create_class_mapping(
        self, obfuscated_name: str, deobfuscated_name: str | None = None
    ) -> ClassMapping:
        """Create or replace a class mapping."""
        mapping = ClassMapping(self, obfuscated_name, deobfuscated_name)
        with self._lock:
            self._classes[mapping.obfuscated_name] = mapping
        return mapping

    def get_or_create_class_mapping(self, binary_name: str) -> ClassMapping:
        """Get a class mapping, creating an identity mapping if absent."""
        name = normalize_binary_name(binary_name)
        with self._lock:
            mapping = self._classes.get(name)
            if mapping is None:
                mapping = ClassMapping(self, name)
                self._classes[name] = mapping
            return mapping

    def get_class_mapping(self, binary_name: str) -> ClassMapping | None:
        return self._classes.get(normalize_binary_name(binary_name))

    @property
    def class_count(self) -> int:
        return len(self._classes)

    def __len__(self) -> int:
        return len(self._classes)

    def __iter__(self) -> Iterator[ClassMapping]:
        with self._lock:
            mappings = list(self._classes.values())
        return iter(mappings)

    def __contains__(self, binary_name: object) -> bool:
        return isinstance(binary_name, str) and normalize_binary_name(binary_name) in self._classes


def _simple_name(binary_name: str) -> str:
    return split_package(binary_name)[1].rsplit("$", 1)[-1]
