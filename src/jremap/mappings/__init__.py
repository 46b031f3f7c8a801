"""Mapping model, inheritance completion and the JSON mapping format."""

from jremap.mappings.inheritance import (
    InheritanceProvider,
    StaticInheritanceProvider,
    SymbolTableInheritanceProvider,
)
from jremap.mappings.model import (
    ClassMapping,
    FieldMapping,
    FieldSignature,
    MappingSet,
    MethodMapping,
    MethodParameterMapping,
    MethodSignature,
)
from jremap.mappings.serializer import MappingFormatError, dump, dumps, load, loads

__all__ = [
    "ClassMapping",
    "FieldMapping",
    "FieldSignature",
    "InheritanceProvider",
    "MappingFormatError",
    "MappingSet",
    "MethodMapping",
    "MethodParameterMapping",
    "MethodSignature",
    "StaticInheritanceProvider",
    "SymbolTableInheritanceProvider",
    "dump",
    "dumps",
    "load",
    "loads",
]
