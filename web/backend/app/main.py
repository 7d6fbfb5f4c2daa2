"""FastAPI application for the design token governance service.

Provides REST API endpoints wrapping the ``dtm`` package for:
- Guarded token writes and tuning batches
- Global-tier backup history and restore
- Figma export and reference validation
- Client/project workspace provisioning
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dtm import __version__
from dtm.core import GovernanceCore
from dtm.errors import GovernanceError, RequestValidationFailed
from dtm.logging_setup import configure_logging
from web.backend.app.routers import global_guard, tokens, workspace

logger = logging.getLogger(__name__)


def _first_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    err = errors[0]
    loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
    return f"{loc}: {err.get('msg', 'invalid')}" if loc else str(err.get("msg", "invalid"))


def create_app(core: Optional[GovernanceCore] = None) -> FastAPI:
    """Build the API app.

    When *core* is omitted it is built lazily from ``GovernanceConfig.load()``
    on the first request.
    """
    app = FastAPI(
        title="Design Token Governance API",
        description=(
            "REST API for governed design token storage. "
            "Provides endpoints for token writes, global-tier backups and "
            "restore, Figma export validation, and workspace provisioning."
        ),
        version=__version__,
    )
    app.state.core = core
    configure_logging(core.config.log_level if core is not None else "INFO")

    # -----------------------------------------------------------------------
    # CORS middleware (allow all origins for development)
    # -----------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Error mapping
    # -----------------------------------------------------------------------

    @app.exception_handler(GovernanceError)
    async def governance_error_handler(request: Request, exc: GovernanceError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        err = RequestValidationFailed(_first_error(exc))
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("%s %s failed unexpectedly", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": str(exc), "code": "INTERNAL_ERROR"})

    # -----------------------------------------------------------------------
    # Include routers
    # -----------------------------------------------------------------------
    app.include_router(tokens.router)
    app.include_router(global_guard.router)
    app.include_router(workspace.router)

    # -----------------------------------------------------------------------
    # Root and health-check endpoints
    # -----------------------------------------------------------------------

    @app.get("/", tags=["meta"])
    async def root():
        """Return basic API information."""
        return {
            "name": "Design Token Governance API",
            "version": __version__,
            "docs": "/docs",
            "openapi": "/openapi.json",
        }

    @app.get("/health", tags=["meta"])
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
