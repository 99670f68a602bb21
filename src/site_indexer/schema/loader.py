"""
Schema file loading.

Reads a collection schema from JSON and validates it into a
CollectionSchema, converting pydantic validation failures into SchemaError.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Union

from pydantic import ValidationError

from .models import CollectionSchema
from ..core.errors import SchemaError


def parse_schema(data: Dict[str, Any]) -> CollectionSchema:
    """
    Validate a raw schema mapping.

    Raises
    ------
    SchemaError
        If the mapping is not a valid collection schema.
    """
    if not isinstance(data, dict):
        raise SchemaError("Collection schema must be a JSON object.")

    try:
        return CollectionSchema.model_validate(data)
    except ValidationError as exc:
        raise SchemaError(f"Invalid collection schema: {exc}") from exc


def load_schema(path: Union[str, Path]) -> CollectionSchema:
    """
    Load and validate a collection schema from a JSON file.

    Raises
    ------
    SchemaError
        If the file is missing, is not valid JSON, or fails validation.
    """
    schema_path = Path(path)

    try:
        with schema_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as exc:
        raise SchemaError(f"Schema file not found: {schema_path}") from exc
    except json.JSONDecodeError as exc:
        raise SchemaError(f"Schema file is not valid JSON: {schema_path}") from exc

    return parse_schema(data)
