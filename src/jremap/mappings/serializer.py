"""Mapping file serialization and deserialization.

This module reads and writes the JSON mapping format:

    {"version": "1", "classes": [{"obfuscated": "a.b", "deobfuscated": "com.x.Foo",
      "fields": [{"obfuscated": "a", "deobfuscated": "count", "descriptor": "I"}],
      "methods": [{"obfuscated": "a", "descriptor": "(JI)V", "deobfuscated": "run",
                   "parameters": [{"index": 3, "deobfuscated": "times"}]}]}]}

Class names may be given in binary (`a.b$c`) or internal (`a/b$c`) form.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from jremap.java.descriptors import parse_method_descriptor
from jremap.mappings.model import MappingSet

FORMAT_VERSION = "1"


class MappingFormatError(Exception):
    """Error while reading or writing a mapping file."""

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ParameterEntry(BaseModel):
    index: int = Field(..., ge=0, description="Local variable slot of the parameter")
    deobfuscated: str


class FieldEntry(BaseModel):
    obfuscated: str
    deobfuscated: str
    descriptor: str | None = Field(default=None, description="Field type descriptor, e.g. I")


class MethodEntry(BaseModel):
    obfuscated: str
    descriptor: str = Field(..., description="Erased method descriptor, e.g. (JI)V")
    deobfuscated: str | None = None
    parameters: list[ParameterEntry] = Field(default_factory=list)

    @field_validator("descriptor")
    @classmethod
    def _check_descriptor(cls, value: str) -> str:
        parse_method_descriptor(value)
        return value


class ClassEntry(BaseModel):
    obfuscated: str
    deobfuscated: str | None = None
    fields: list[FieldEntry] = Field(default_factory=list)
    methods: list[MethodEntry] = Field(default_factory=list)


class MappingFile(BaseModel):
    """Top-level schema of a mapping file."""

    version: str = FORMAT_VERSION
    classes: list[ClassEntry] = Field(default_factory=list)

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        if value != FORMAT_VERSION:
            raise ValueError(f"unsupported mapping format version {value!r}")
        return value


def _format_validation_error(e: ValidationError) -> str:
    error_details = []
    for err in e.errors():
        loc = ".".join(str(x) for x in err["loc"])
        error_details.append(f"{loc}: {err['msg']}")
    return "; ".join(error_details)


def to_mapping_set(document: MappingFile) -> MappingSet:
    """Build a mapping set from a validated mapping document."""
    mappings = MappingSet()
    for class_entry in document.classes:
        class_mapping = mappings.create_class_mapping(
            class_entry.obfuscated, class_entry.deobfuscated
        )
        for field_entry in class_entry.fields:
            class_mapping.create_field_mapping(
                field_entry.obfuscated, field_entry.descriptor, field_entry.deobfuscated
            )
        for method_entry in class_entry.methods:
            method_mapping = class_mapping.create_method_mapping(
                method_entry.obfuscated, method_entry.descriptor, method_entry.deobfuscated
            )
            for parameter in method_entry.parameters:
                method_mapping.create_parameter_mapping(parameter.index, parameter.deobfuscated)
    return mappings


def from_mapping_set(mappings: MappingSet) -> MappingFile:
    """Convert a mapping set back to its document form, sorted by name."""
    classes = []
    for class_mapping in sorted(mappings, key=lambda m: m.obfuscated_name):
        classes.append(ClassEntry(
            obfuscated=class_mapping.obfuscated_name,
            deobfuscated=class_mapping.deobfuscated_name,
            fields=[
                FieldEntry(
                    obfuscated=f.obfuscated_name,
                    deobfuscated=f.deobfuscated_name,
                    descriptor=f.descriptor,
                )
                for f in sorted(
                    class_mapping.field_mappings,
                    key=lambda f: (f.obfuscated_name, f.descriptor or ""),
                )
            ],
            methods=[
                MethodEntry(
                    obfuscated=m.obfuscated_name,
                    descriptor=m.descriptor,
                    deobfuscated=m.deobfuscated_name,
                    parameters=[
                        ParameterEntry(index=p.index, deobfuscated=p.deobfuscated_name)
                        for p in m.parameter_mappings
                    ],
                )
                for m in sorted(
                    class_mapping.method_mappings, key=lambda m: (m.obfuscated_name, m.descriptor)
                )
            ],
        ))
    return MappingFile(classes=classes)


def loads(json_str: str) -> MappingSet:
    """Deserialize a JSON string to a mapping set.

    Args:
        json_str: JSON mapping document.

    Returns:
        The loaded mapping set.

    Raises:
        MappingFormatError: If the document is not valid JSON or fails validation.
    """
    try:
        data = json.loads(json_str)
        return to_mapping_set(MappingFile.model_validate(data))
    except json.JSONDecodeError as e:
        raise MappingFormatError(
            message="Invalid JSON format",
            details=f"Line {e.lineno}, column {e.colno}: {e.msg}",
        ) from e
    except ValidationError as e:
        raise MappingFormatError(
            message="Mapping validation failed",
            details=_format_validation_error(e),
        ) from e


def load(path: Path) -> MappingSet:
    """Load a mapping file from disk.

    Raises:
        MappingFormatError: If the file cannot be read or is malformed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise MappingFormatError(
            message=f"Cannot read mapping file {path}",
            details=str(e),
        ) from e
    return loads(text)


def dumps(mappings: MappingSet) -> str:
    """Serialize a mapping set to a JSON string.

    Raises:
        MappingFormatError: If serialization fails.
    """
    try:
        data = from_mapping_set(mappings).model_dump(mode="json")
        return json.dumps(data, indent=2, ensure_ascii=False)
    except Exception as e:
        raise MappingFormatError(
            message="Failed to serialize mappings",
            details=str(e),
        ) from e


def dump(mappings: MappingSet, path: Path) -> None:
    """Write a mapping set to disk as JSON."""
    path.write_text(dumps(mappings), encoding="utf-8")


def loads_dict(data: dict[str, Any]) -> MappingSet:
    """Build a mapping set from an already parsed JSON object.

    Raises:
        MappingFormatError: If the object fails validation.
    """
    try:
        return to_mapping_set(MappingFile.model_validate(data))
    except ValidationError as e:
        raise MappingFormatError(
            message="Mapping validation failed",
            details=_format_validation_error(e),
        ) from e
