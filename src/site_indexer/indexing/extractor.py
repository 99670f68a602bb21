"""
HTML Document Extractor

Turns one rendered HTML page into an indexable Typesense document.

Templates mark indexable content with a reserved attribute:

    <h1 data-typesense-field="title">Getting started</h1>
    <span data-typesense-field="tags">python</span>

The attribute value names the target schema field and the element's text is
the raw value. Raw values are coerced according to the field's declared
kind, and array fields collect every occurrence in document order.

The extractor is pure: it performs no I/O and does no logging. Callers
decide what a skipped page or a typed failure means for the run.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from bs4 import BeautifulSoup

from ..config import NumericFallback
from ..core.errors import InvalidFieldValueError, UnknownFieldError
from ..schema import CollectionSchema, FieldDefinition, FieldKind


# ---------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------

MARKER_ATTRIBUTE = "data-typesense-field"

PAGE_PATH_FIELD = "page_path"
PAGE_PRIORITY_FIELD = "page_priority_score"
DEFAULT_PAGE_PRIORITY = 10

# Leading-prefix numeric grammars: "42px" -> 42, "3.5em" -> 3.5
_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(
    r"^\s*([+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?))"
)


# ---------------------------------------------------------------------
# Result Types
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ExtractedDocument:
    """A complete document ready to submit to a collection generation."""

    page_path: str
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SkippedPage:
    """A page that carried no marker attributes and is not indexed."""

    page_path: str
    reason: str


ExtractionResult = Union[ExtractedDocument, SkippedPage]


# ---------------------------------------------------------------------
# Value Coercion
# ---------------------------------------------------------------------

def _parse_int(raw: str) -> Optional[int]:
    match = _INT_PREFIX.match(raw)
    return int(match.group(1)) if match else None


def _parse_float(raw: str) -> Optional[float]:
    match = _FLOAT_PREFIX.match(raw)
    if not match:
        return None
    return float(match.group(1))


def _parse_bool(raw: str) -> bool:
    if raw.lower() == "false":
        return False
    if raw == "0":
        return False
    return raw.strip() != ""


def cast_value(
    definition: FieldDefinition,
    raw: str,
    numeric_fallback: NumericFallback = NumericFallback.FAIL,
) -> Any:
    """
    Coerce one raw text value according to a field's declared kind.

    Parameters
    ----------
    definition : FieldDefinition
        The schema field the value belongs to.

    raw : str
        Text content of the marked element.

    numeric_fallback : NumericFallback
        FAIL raises on non-numeric input for integer/float fields; NULL
        yields None instead.

    Raises
    ------
    InvalidFieldValueError
        If a numeric value cannot be parsed and the fallback is FAIL.
    """
    kind = definition.kind

    if kind is FieldKind.BOOLEAN:
        return _parse_bool(raw)

    if kind is FieldKind.STRING:
        return raw

    value = _parse_int(raw) if kind is FieldKind.INTEGER else _parse_float(raw)

    if value is None and numeric_fallback is NumericFallback.FAIL:
        raise InvalidFieldValueError(
            f"Value {raw!r} for field \"{definition.name}\" is not a valid "
            f"{kind.value}",
            field_name=definition.name,
            raw_value=raw,
        )

    return value


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

def extract_document(
    html: str,
    schema: CollectionSchema,
    page_path: str,
    numeric_fallback: NumericFallback = NumericFallback.FAIL,
) -> ExtractionResult:
    """
    Build the indexable document for one HTML page.

    Parameters
    ----------
    html : str
        Raw HTML of the page.

    schema : CollectionSchema
        Schema of the target generation; every marked field must be declared.

    page_path : str
        Site-relative URL path of the page, stored as `page_path`.

    numeric_fallback : NumericFallback
        Policy for non-numeric text in integer/float fields.

    Returns
    -------
    ExtractionResult
        ExtractedDocument, or SkippedPage when no element carries the marker.

    Raises
    ------
    UnknownFieldError
        If markup names a field the schema does not declare.

    InvalidFieldValueError
        If a numeric value cannot be coerced under the FAIL fallback.
    """
    soup = BeautifulSoup(html, "html.parser")

    document: Dict[str, Any] = {}

    for element in soup.find_all(attrs={MARKER_ATTRIBUTE: True}):
        field_name = element.get(MARKER_ATTRIBUTE)
        if isinstance(field_name, list):
            field_name = " ".join(field_name)

        definition = schema.field(field_name)
        if definition is None:
            raise UnknownFieldError(
                f"Field \"{field_name}\" is not defined in the collection schema",
                field_name=field_name,
            )

        value = cast_value(definition, element.get_text(), numeric_fallback)

        if definition.is_array:
            values: List[Any] = document.setdefault(field_name, [])
            values.append(value)
        else:
            document[field_name] = value

    if not document:
        return SkippedPage(
            page_path=page_path,
            reason=f"No HTML elements had the {MARKER_ATTRIBUTE} attribute",
        )

    document[PAGE_PATH_FIELD] = page_path
    if PAGE_PRIORITY_FIELD not in document:
        document[PAGE_PRIORITY_FIELD] = DEFAULT_PAGE_PRIORITY

    return ExtractedDocument(page_path=page_path, fields=document)
