"""
Collection Schema Package

Typed field definitions for the Typesense collection schema, validated once
when the schema is loaded.
"""

from .models import (
    Cardinality,
    CollectionSchema,
    FieldDefinition,
    FieldKind,
    KNOWN_FIELD_TYPES,
)
from .loader import load_schema, parse_schema

__all__ = [
    "Cardinality",
    "CollectionSchema",
    "FieldDefinition",
    "FieldKind",
    "KNOWN_FIELD_TYPES",
    "load_schema",
    "parse_schema",
]
