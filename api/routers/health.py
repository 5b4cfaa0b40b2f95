"""Health and info endpoints."""

from fastapi import APIRouter, Depends

from api.dependencies import get_orchestrator
from api.models import FormatInfo, FormatsResponse, HealthResponse
from sprint_export import __version__
from sprint_export.orchestrator import ExportOrchestrator

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(orchestrator: ExportOrchestrator = Depends(get_orchestrator)):
    """Health check endpoint."""
    return HealthResponse(status="ok", version=__version__, formats=orchestrator.registry.formats())


@router.get("/version")
async def version():
    """Return API version."""
    return {"version": __version__}


@router.get("/formats", response_model=FormatsResponse)
async def list_formats(orchestrator: ExportOrchestrator = Depends(get_orchestrator)):
    """List the registered export formats."""
    registry = orchestrator.registry
    formats = []
    for format_name in registry.formats():
        renderer = registry.get(format_name)
        formats.append(FormatInfo(format=format_name, extension=renderer.extension, mime_type=renderer.mime_type))
    return FormatsResponse(formats=formats)
