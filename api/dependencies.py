"""Request dependencies shared by the routers."""

from fastapi import Request

from sprint_export.orchestrator import ExportOrchestrator


def get_orchestrator(request: Request) -> ExportOrchestrator:
    """Return the pipeline attached to the running application."""
    return request.app.state.orchestrator
