"""
Sprint Export REST API

FastAPI application exposing the export pipeline via HTTP endpoints.
One pipeline (cache, error history, analytics) is shared by all requests
of a running application.

Usage:
    uvicorn api.app:app --reload --port 8000
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.config import APIConfig
from api.routers import export, health, stats
from sprint_export import __version__
from sprint_export.config import ConfigurationManager, build_orchestrator
from sprint_export.errors import ExportErrorCode, ExportFailedError
from sprint_export.orchestrator import ExportOrchestrator


logger = logging.getLogger(__name__)

PREFIX = "/api/v1"

CLIENT_ERROR_CODES = frozenset({
    ExportErrorCode.VALIDATION_ERROR,
    ExportErrorCode.FORMAT_ERROR,
})


async def export_failed_handler(request: Request, exc: ExportFailedError) -> JSONResponse:
    """Map a terminal export failure to a JSON error body."""
    status_code = 422 if exc.code in CLIENT_ERROR_CODES else 500
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def build_api_orchestrator(config: APIConfig) -> ExportOrchestrator:
    """Build the served pipeline from configuration.

    Slide images come from request bodies, so the served pipeline never
    reads local files and fetches remote images only from
    ``config.image_hosts``.
    """
    pipeline_config = ConfigurationManager().load_configuration(config_file=config.config_file)
    if pipeline_config.assets.local_root is not None:
        logger.warning(f"Ignoring assets.local_root={pipeline_config.assets.local_root!r}: the API does not read local images")
    pipeline_config.assets.local_root = None
    pipeline_config.assets.allowed_hosts = list(config.image_hosts)
    return build_orchestrator(pipeline_config)


def create_app(orchestrator: Optional[ExportOrchestrator] = None, config: Optional[APIConfig] = None) -> FastAPI:
    """Build the API application around one export pipeline.

    Args:
        orchestrator: Pipeline to serve; built from configuration when omitted
        config: API settings; loaded from the environment when omitted
    """
    config = config or APIConfig.load()
    if orchestrator is None:
        orchestrator = build_api_orchestrator(config)

    application = FastAPI(
        title="Sprint Export API",
        description="REST API for exporting sprint review presentations to PDF, HTML, Markdown and reports.",
        version=__version__,
        debug=config.debug,
    )
    application.state.orchestrator = orchestrator
    application.state.api_config = config

    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_exception_handler(ExportFailedError, export_failed_handler)

    # Register routers under /api/v1 prefix
    application.include_router(health.router, prefix=PREFIX, tags=["Health"])
    application.include_router(export.router, prefix=PREFIX, tags=["Export"])
    application.include_router(stats.router, prefix=PREFIX, tags=["Statistics"])

    @application.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Sprint Export API",
            "version": __version__,
            "docs": "/docs",
            "health": f"{PREFIX}/health",
        }

    logger.debug(f"API created with formats: {', '.join(orchestrator.registry.formats())}")
    return application


app = create_app()
