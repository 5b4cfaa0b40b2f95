"""Export endpoints.

Artifacts are returned as the raw response body; the quality summary
travels in ``X-Export-*`` headers.
"""

import re
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from api.auth import verify_api_key
from api.dependencies import get_orchestrator
from api.models import ErrorResponse, ExportRequest, ExportRequestOptions
from sprint_export.models import ExportFormat, ExportOptions, ExportResult, Issue, SprintMetrics
from sprint_export.orchestrator import ExportOrchestrator

router = APIRouter()

ERROR_RESPONSES = {
    422: {"model": ErrorResponse, "description": "Invalid input or unsupported format"},
    500: {"model": ErrorResponse, "description": "Export failed after retries"},
}


class ExecutiveMetricsRequest(BaseModel):
    metrics: SprintMetrics
    issues: List[Issue] = Field(default_factory=list)
    options: Optional[ExportRequestOptions] = None


def content_disposition(file_name: str) -> str:
    """Attachment header with an ASCII fallback and an RFC 5987 UTF-8 name."""
    fallback = re.sub(r'[^\x20-\x7e]|["\\]', "_", file_name)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name, safe='')}"


def artifact_response(result: ExportResult) -> Response:
    """Wrap an export result as a downloadable response."""
    headers = {
        "Content-Disposition": content_disposition(result.file_name),
        "X-Export-Processing-Time": f"{result.metadata.processing_time:.1f}",
    }
    if result.quality_report:
        headers["X-Export-Quality-Score"] = str(result.quality_report["score"])
        headers["X-Export-Quality-Status"] = result.quality_report["status"]
    return Response(content=result.content, media_type=result.mime_type, headers=headers)


@router.post("/export/executive-metrics", responses=ERROR_RESPONSES)
async def export_executive_metrics(
    request: ExecutiveMetricsRequest,
    orchestrator: ExportOrchestrator = Depends(get_orchestrator),
    _key=Depends(verify_api_key),
):
    """Render the executive dashboard straight from sprint metrics."""
    options = None
    if request.options is not None:
        options = ExportOptions(**request.options.with_format(ExportFormat.EXECUTIVE.value))
    result = await orchestrator.export_executive_metrics(request.metrics, request.issues, options)
    return artifact_response(result)


@router.post("/export/{format_name}", responses=ERROR_RESPONSES)
async def export(
    format_name: str,
    request: ExportRequest,
    orchestrator: ExportOrchestrator = Depends(get_orchestrator),
    _key=Depends(verify_api_key),
):
    """Export a presentation bundle to the given format."""
    options = ExportOptions(**request.options.with_format(format_name))
    bundle = request.bundle
    result = await orchestrator.export(
        bundle.presentation,
        bundle.issues,
        bundle.upcoming_issues,
        bundle.metrics,
        options,
    )
    return artifact_response(result)
