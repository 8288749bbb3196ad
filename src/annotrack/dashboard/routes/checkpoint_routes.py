"""
Checkpoint API routes.

Creating a project checkpoint clears that project's notifications, and
creating a category checkpoint clears the category's notifications, since
their growth was measured against the replaced baseline.
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, HTTPException

from annotrack.catalog.modality import validate_modality

from ..dependencies import CsrfDep, ServicesDep, ValidatedModality
from ..models.requests import CheckpointRequest, ClassCheckpointRequest, NoteUpdateRequest

router = APIRouter()


@router.get("/api/checkpoints")
async def get_checkpoints_api(services: ServicesDep) -> dict[str, Any]:
    """Get all checkpoints: {projects, categories, classes}."""
    return services.checkpoints.get_all()


@router.post("/api/checkpoints/project/{project_id}")
async def create_project_checkpoint_api(
    project_id: int,
    services: ServicesDep,
    _csrf: CsrfDep,
    body: CheckpointRequest | None = None,
) -> dict[str, Any]:
    """Checkpoint a project's latest metrics.

    Raises:
        HTTPException: 400 if the project has no history yet.
    """
    body = body or CheckpointRequest()
    if not services.checkpoints.create_project_checkpoint(project_id, body.project_title, body.note):
        raise HTTPException(status_code=400, detail="No history available for project")
    services.notifications.clear_project_notifications(project_id)
    return {"success": True}


@router.post("/api/checkpoints/category/{category}")
async def create_category_checkpoint_api(
    category: str,
    services: ServicesDep,
    _csrf: CsrfDep,
    body: CheckpointRequest | None = None,
) -> dict[str, Any]:
    """Checkpoint a category's latest metrics.

    Raises:
        HTTPException: 400 if the category has no history yet.
    """
    body = body or CheckpointRequest()
    if not services.checkpoints.create_category_checkpoint(category, body.note):
        raise HTTPException(status_code=400, detail="No history available for category")
    services.notifications.clear_category_notifications(category)
    return {"success": True}


@router.post("/api/checkpoints/class")
async def create_class_checkpoint_api(body: ClassCheckpointRequest, services: ServicesDep, _csrf: CsrfDep) -> dict[str, Any]:
    """Checkpoint one class summed over all projects of a modality.

    Raises:
        HTTPException: 400 if the modality is not supported.
    """
    modality = validate_modality(body.xray_type)
    success = await asyncio.to_thread(services.checkpoints.create_class_checkpoint, body.class_name, modality, body.note)
    return {"success": success}


@router.put("/api/checkpoints/project/{project_id}/note")
async def update_project_note_api(project_id: int, body: NoteUpdateRequest, services: ServicesDep, _csrf: CsrfDep) -> dict[str, Any]:
    """Update a project checkpoint's note.

    Raises:
        HTTPException: 404 if the project has no checkpoint.
    """
    if not services.checkpoints.update_project_note(project_id, body.note):
        raise HTTPException(status_code=404, detail="Checkpoint not found")
    return {"success": True}


@router.put("/api/checkpoints/category/{category}/note")
async def update_category_note_api(category: str, body: NoteUpdateRequest, services: ServicesDep, _csrf: CsrfDep) -> dict[str, Any]:
    """Update a category checkpoint's note.

    Raises:
        HTTPException: 404 if the category has no checkpoint.
    """
    if not services.checkpoints.update_category_note(category, body.note):
        raise HTTPException(status_code=404, detail="Checkpoint not found")
    return {"success": True}


@router.put("/api/checkpoints/class/{class_name}/{modality}/note")
async def update_class_note_api(
    class_name: str,
    modality: ValidatedModality,
    body: NoteUpdateRequest,
    services: ServicesDep,
    _csrf: CsrfDep,
) -> dict[str, Any]:
    """Update a class checkpoint's note.

    Raises:
        HTTPException: 400 if the modality is not supported, 404 if there is no checkpoint.
    """
    if not services.checkpoints.update_class_note(class_name, modality, body.note):
        raise HTTPException(status_code=404, detail="Checkpoint not found")
    return {"success": True}
