"""
API Models for the reindex webhook.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..config import DocumentErrorPolicy, NumericFallback
from ..indexing.orchestrator import ReindexResult


class ReindexRequest(BaseModel):
    """
    Optional per-run overrides. Anything left unset falls back to Settings.
    """

    dry_run: bool = False
    document_error_policy: Optional[DocumentErrorPolicy] = None
    numeric_fallback: Optional[NumericFallback] = None

    model_config = ConfigDict(extra="forbid")


class ReindexAbortedResponse(BaseModel):
    error: str = "reindex_aborted"
    detail: str
    stage: str
    result: Optional[ReindexResult] = None
