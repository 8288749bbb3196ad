"""
Project API routes.

- Project listing with latest metrics and modality
- Project history
- Single-project and bulk refresh, refresh progress polling
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks
from fastapi.responses import JSONResponse

from annotrack.exceptions import AnnotrackError
from annotrack.services import Services

from ..dependencies import CsrfDep, ServicesDep
from ..models.requests import RefreshProjectRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/projects")
async def list_projects_api(services: ServicesDep) -> list[dict[str, Any]]:
    """List all projects with their latest metrics and modality attached.

    Projects seen for the first time get a modality detected from their title.
    """
    projects = await asyncio.to_thread(lambda: list(services.source.list_projects()))
    assignments = services.modalities.initialize(projects)
    history = services.project_history.read_all()

    result = []
    for project in projects:
        project_id = str(project["id"])
        entries = (history.get(project_id) or {}).get("history") or []
        result.append(
            {
                **project,
                "latest_metrics": entries[-1] if entries else None,
                "has_history": bool(entries),
                "modality": assignments.get(project_id),
            }
        )
    return result


@router.get("/api/projects/refresh-progress")
async def refresh_progress_api(services: ServicesDep) -> dict[str, Any]:
    """Get a snapshot of the bulk refresh progress."""
    return services.progress.snapshot()


async def _run_refresh_all(services: Services) -> None:
    try:
        await services.refresh.run_refresh_all()
    except AnnotrackError:
        # Already logged and recorded in the refresh progress
        pass


@router.post("/api/projects/refresh-all", status_code=202)
async def refresh_all_api(services: ServicesDep, background_tasks: BackgroundTasks, _csrf: CsrfDep) -> Any:
    """Start a bulk refresh of every project in the background.

    Returns:
        202 with the initial progress, or 409 if a bulk refresh is already running.
    """
    if not services.refresh.start_refresh_all():
        return JSONResponse(
            status_code=409,
            content={"error": "A bulk refresh is already running", "progress": services.progress.snapshot()},
        )

    background_tasks.add_task(_run_refresh_all, services)
    return {"success": True, "message": "Bulk refresh started", "progress": services.progress.snapshot()}


@router.get("/api/projects/{project_id}")
async def get_project_api(project_id: int, services: ServicesDep) -> dict[str, Any]:
    """Get a project's full metric history."""
    return {"project_id": project_id, "history": services.project_history.get(project_id)}


@router.post("/api/projects/{project_id}/refresh")
async def refresh_project_api(
    project_id: int,
    services: ServicesDep,
    _csrf: CsrfDep,
    body: RefreshProjectRequest | None = None,
) -> dict[str, Any]:
    """Fetch a project's tasks, record its metrics and check for notifications.

    Returns:
        {success, metrics, notifications_added}
    """
    title = body.project_title if body else None
    return await asyncio.to_thread(services.refresh.refresh_project, project_id, title)
