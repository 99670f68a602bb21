"""
Error Taxonomy and Global Error Handling

This module defines the exception hierarchy shared by every stage of a
reindex run, plus the FastAPI catch-all handler used by the webhook surface.

Error Classes
-------------
- Fatal (abort the run): SchemaError, DiscoveryError, CollectionNameError,
  UnknownFieldError, and document failures under the ABORT policy.
- Recoverable: everything the orchestrator logs and continues past
  (alias lookup, synonym fetch/apply, alias swap, old collection deletion).

Only fatal conditions ever surface to the host as ReindexAbortedError.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

if TYPE_CHECKING:
    from ..indexing.orchestrator import ReindexResult, ReindexStage

logger = logging.getLogger("indexer.errors")


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class SiteIndexerError(RuntimeError):
    """Base error for all indexer failures."""


class SchemaError(SiteIndexerError):
    """Raised when a collection schema is malformed or cannot be loaded."""


class DiscoveryError(SiteIndexerError):
    """Raised when the site root cannot be enumerated."""


class CollectionNameError(SiteIndexerError):
    """Raised when a generated collection name is unusable."""


class ExtractionError(SiteIndexerError):
    """
    Base error for failures while turning one HTML page into a document.

    Attributes
    ----------
    field_name : str
        The schema field the failure relates to.
    """

    def __init__(self, message: str, field_name: str) -> None:
        super().__init__(message)
        self.field_name = field_name


class UnknownFieldError(ExtractionError):
    """
    Raised when markup references a field the schema does not declare.

    This is a deployment bug (templates and schema out of sync), so it is
    fatal for the whole run regardless of the document error policy.
    """


class InvalidFieldValueError(ExtractionError):
    """Raised when a raw value cannot be coerced to its field's type."""

    def __init__(self, message: str, field_name: str, raw_value: str) -> None:
        super().__init__(message, field_name)
        self.raw_value = raw_value


class ReindexAbortedError(SiteIndexerError):
    """
    Raised when a reindex run hits a fatal condition.

    Attributes
    ----------
    stage : ReindexStage
        The last stage the run completed before aborting.

    result : Optional[ReindexResult]
        Partial result describing what happened before the abort.
    """

    def __init__(
        self,
        message: str,
        stage: "ReindexStage",
        result: Optional["ReindexResult"] = None,
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.result = result


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions on the webhook surface.

    Logs the full stack trace internally and returns a generic 500 with no
    internal details.
    """
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    payload: Dict[str, Any] = {
        "error": "internal_server_error",
        "detail": "Internal server error",
    }

    return JSONResponse(
        status_code=500,
        content=payload,
    )
