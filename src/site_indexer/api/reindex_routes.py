"""
Reindex Routes

Webhook surface for build pipelines that cannot embed the indexer directly:
a deploy step calls POST /reindex after the static build has been published
to the configured site root.

Security
--------
Both endpoints are protected by `verify_admin`, which requires:
- `x-admin-key` header OR
- `key` query parameter
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from fastapi.responses import JSONResponse

from ..config import Settings
from ..core.errors import ReindexAbortedError, SchemaError
from ..indexing.orchestrator import ReindexResult
from .dependencies import ReindexBusyError, ReindexRunner, get_reindex_runner, get_settings
from .models import ReindexAbortedResponse, ReindexRequest

router = APIRouter(prefix="/reindex", tags=["reindex"])


# ---------------------------------------------------------------------
# Security Dependency
# ---------------------------------------------------------------------

async def verify_admin(
    settings: Annotated[Settings, Depends(get_settings)],
    x_admin_key: Optional[str] = Header(None, alias="x-admin-key"),
    key: Optional[str] = Query(None),
) -> None:
    """
    Verify the request carries the configured admin key.
    Checks header first, then query param.
    """
    expected_key = settings.admin_api_key.get_secret_value() if settings.admin_api_key else None

    if not expected_key:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Reindex webhook is not configured (SITE_INDEXER_ADMIN_API_KEY missing)",
        )

    provided_key = x_admin_key or key

    if not provided_key or provided_key != expected_key:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing admin API key",
        )


# ---------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------

@router.post(
    "",
    response_model=ReindexResult,
    summary="Run one blue/green reindex of the built site",
    dependencies=[Depends(verify_admin)],
)
async def trigger_reindex(
    settings: Annotated[Settings, Depends(get_settings)],
    runner: Annotated[ReindexRunner, Depends(get_reindex_runner)],
    req: Optional[ReindexRequest] = None,
):
    """
    Run a reindex and return its result.

    Returns 409 while another run is in progress and 500 with the partial
    result when the run aborts.
    """
    req = req or ReindexRequest()

    overrides = {"dry_run": req.dry_run}
    if req.document_error_policy is not None:
        overrides["document_error_policy"] = req.document_error_policy
    if req.numeric_fallback is not None:
        overrides["numeric_fallback"] = req.numeric_fallback

    try:
        config = settings.to_reindex_config(**overrides)
    except SchemaError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Invalid collection schema configuration: {exc}",
        ) from exc

    try:
        return await runner.run(config)
    except ReindexBusyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ReindexAbortedError as exc:
        body = ReindexAbortedResponse(
            detail=str(exc),
            stage=exc.stage.value,
            result=exc.result,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=body.model_dump(mode="json"),
        )


@router.get(
    "/last",
    response_model=ReindexResult,
    summary="Result of the most recent run in this process",
    dependencies=[Depends(verify_admin)],
)
async def last_reindex(
    runner: Annotated[ReindexRunner, Depends(get_reindex_runner)],
):
    if runner.last_result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No reindex has run yet",
        )
    return runner.last_result
