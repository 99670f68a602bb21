"""
Indexing Package

Discovery, extraction, naming, synonym carryover and the reindex
orchestrator that ties them together.
"""

from .discovery import list_html_files, to_page_path
from .extractor import (
    MARKER_ATTRIBUTE,
    ExtractedDocument,
    SkippedPage,
    cast_value,
    extract_document,
)
from .naming import generate_new_collection_name, resolve_collection_name
from .orchestrator import ReindexResult, ReindexStage, Reindexer, reindex
from .synonyms import SynonymRule, apply_synonyms, fetch_synonyms

__all__ = [
    "MARKER_ATTRIBUTE",
    "ExtractedDocument",
    "ReindexResult",
    "ReindexStage",
    "Reindexer",
    "SkippedPage",
    "SynonymRule",
    "apply_synonyms",
    "cast_value",
    "extract_document",
    "fetch_synonyms",
    "generate_new_collection_name",
    "list_html_files",
    "reindex",
    "resolve_collection_name",
    "to_page_path",
]
