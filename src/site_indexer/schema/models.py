"""
Collection Schema Models

This module defines the typed representation of a Typesense collection
schema. Engine type strings (e.g. "int32", "string[]") are resolved once, at
construction time, into an explicit (FieldKind, Cardinality) pair so that
value coercion never has to inspect type names again.

Design Goals
------------
- Validate type names once, at schema-load time
- Immutable models (a schema does not change during a run)
- Lossless rendering back to the engine's create-collection payload
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ---------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------

KNOWN_FIELD_TYPES = frozenset(
    {
        "string",
        "string[]",
        "string*",
        "int32",
        "int32[]",
        "int64",
        "int64[]",
        "float",
        "float[]",
        "bool",
        "bool[]",
        "geopoint",
        "geopoint[]",
        "object",
        "object[]",
        "auto",
        "image",
    }
)

ARRAY_SUFFIX = "[]"


# ---------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------

class FieldKind(str, Enum):
    """Scalar value kind a raw text value is coerced into."""

    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    STRING = "string"


class Cardinality(str, Enum):
    """Whether a field holds one value or an ordered list of values."""

    SCALAR = "scalar"
    ARRAY = "array"


_BASE_KINDS = {
    "int32": FieldKind.INTEGER,
    "int64": FieldKind.INTEGER,
    "float": FieldKind.FLOAT,
    "bool": FieldKind.BOOLEAN,
}


def resolve_field_type(type_name: str) -> tuple[FieldKind, Cardinality]:
    """
    Resolve an engine type name into its (kind, cardinality) pair.

    Anything that is not integer, float or boolean is carried as text
    (geopoint included, even though its name contains "int").
    """
    if type_name.endswith(ARRAY_SUFFIX):
        base = type_name[: -len(ARRAY_SUFFIX)]
        cardinality = Cardinality.ARRAY
    else:
        base = type_name
        cardinality = Cardinality.SCALAR

    return _BASE_KINDS.get(base, FieldKind.STRING), cardinality


# ---------------------------------------------------------------------
# Field Definition
# ---------------------------------------------------------------------

class FieldDefinition(BaseModel):
    """
    A single field declared in the collection schema.

    Only `name` and `type` drive indexing. The remaining engine attributes,
    including ones not modelled here (`stem`, `range_index`, `reference`,
    `num_dim`, ...), are passed through unchanged when the collection is
    created.
    """

    name: str = Field(..., min_length=1)
    type: str = Field(default="string")
    optional: Optional[bool] = None
    facet: Optional[bool] = None
    index: Optional[bool] = None
    sort: Optional[bool] = None
    infix: Optional[bool] = None
    locale: Optional[str] = None

    model_config = ConfigDict(
        extra="allow",
        frozen=True,
    )

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        v = v.strip()
        if v not in KNOWN_FIELD_TYPES:
            raise ValueError(
                f"Unknown field type '{v}'. Expected one of: "
                f"{', '.join(sorted(KNOWN_FIELD_TYPES))}"
            )
        return v

    @property
    def kind(self) -> FieldKind:
        return resolve_field_type(self.type)[0]

    @property
    def cardinality(self) -> Cardinality:
        return resolve_field_type(self.type)[1]

    @property
    def is_array(self) -> bool:
        return self.cardinality is Cardinality.ARRAY

    def to_engine_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


# ---------------------------------------------------------------------
# Collection Schema
# ---------------------------------------------------------------------

class CollectionSchema(BaseModel):
    """
    Base schema for a collection generation.

    The `name` of the base schema is also the name of the stable alias.
    Each generation is a copy of this schema under a new unique name.
    """

    name: str = Field(..., min_length=1)
    fields: List[FieldDefinition] = Field(..., min_length=1)
    default_sorting_field: Optional[str] = Field(
        default=None, alias="defaultSortingField"
    )
    token_separators: Optional[List[str]] = Field(
        default=None, alias="tokenSeparators"
    )
    symbols_to_index: Optional[List[str]] = Field(
        default=None, alias="symbolsToIndex"
    )
    enable_nested_fields: Optional[bool] = Field(
        default=None, alias="enableNestedFields"
    )

    model_config = ConfigDict(
        extra="allow",
        frozen=True,
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def validate_fields(self) -> "CollectionSchema":
        seen = set()
        for f in self.fields:
            if f.name in seen:
                raise ValueError(f"Duplicate field '{f.name}' in schema '{self.name}'")
            seen.add(f.name)

        if self.default_sorting_field and self.default_sorting_field not in seen:
            raise ValueError(
                f"default_sorting_field '{self.default_sorting_field}' "
                "is not a declared field"
            )
        return self

    def field(self, name: str) -> Optional[FieldDefinition]:
        """Return the field declared under `name`, or None."""
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def with_name(self, name: str) -> "CollectionSchema":
        """Return a copy of this schema under a new collection name."""
        return self.model_copy(update={"name": name})

    def to_engine_payload(self) -> Dict[str, Any]:
        """Render the body of a create-collection request."""
        payload: Dict[str, Any] = {
            "name": self.name,
            "fields": [f.to_engine_payload() for f in self.fields],
        }
        if self.default_sorting_field is not None:
            payload["default_sorting_field"] = self.default_sorting_field
        if self.token_separators is not None:
            payload["token_separators"] = list(self.token_separators)
        if self.symbols_to_index is not None:
            payload["symbols_to_index"] = list(self.symbols_to_index)
        if self.enable_nested_fields is not None:
            payload["enable_nested_fields"] = self.enable_nested_fields
        for key, value in (self.model_extra or {}).items():
            payload.setdefault(key, value)
        return payload
