"""
Webhook Application Entry Point

This module defines the FastAPI application that lets a deploy pipeline
trigger reindex runs over HTTP, registers its routers and the global
exception handler, and provides a test-friendly application factory.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI

from . import __version__
from .config import settings
from .core.errors import unhandled_exception_handler
from .api import health_routes, reindex_routes


logger = logging.getLogger("indexer.app")


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    app = FastAPI(
        title="typesense-site-indexer",
        version=__version__,
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
    )

    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health_routes.router)
    app.include_router(reindex_routes.router)

    # --------------------------------------------------------------
    # Startup Validation Hook
    # --------------------------------------------------------------

    @app.on_event("startup")
    async def _startup_validation() -> None:
        """
        Report configuration problems at startup instead of on the first
        webhook call.
        """
        logger.info("Starting typesense-site-indexer %s", __version__)

        if settings.admin_api_key is None:
            logger.warning("SITE_INDEXER_ADMIN_API_KEY is unset, /reindex will reject every request")

        if not settings.typesense_api_key.get_secret_value():
            logger.warning("SITE_INDEXER_TYPESENSE_API_KEY is empty")

        if not Path(settings.schema_path).is_file():
            logger.warning("Schema file %s does not exist yet", settings.schema_path)

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn)
# ---------------------------------------------------------------------

app = create_app()
