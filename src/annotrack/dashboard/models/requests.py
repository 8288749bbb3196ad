"""
Request models for the dashboard API.
"""

from typing import Any

from pydantic import BaseModel, Field

__all__ = [
    "CheckpointRequest",
    "ClassCheckpointRequest",
    "ClientLogEntry",
    "ModalityUpdateRequest",
    "NoteUpdateRequest",
    "RefreshProjectRequest",
    "SchedulerStartRequest",
]


class RefreshProjectRequest(BaseModel):
    """Request model for refreshing one project."""

    project_title: str | None = None


class CheckpointRequest(BaseModel):
    """Request model for project and category checkpoints."""

    project_title: str | None = None
    note: str = ""


class ClassCheckpointRequest(BaseModel):
    """Request model for class checkpoints."""

    class_name: str = Field(min_length=1)
    xray_type: str
    note: str = ""


class NoteUpdateRequest(BaseModel):
    """Request model for updating a checkpoint note."""

    note: str


class ModalityUpdateRequest(BaseModel):
    """Request model for assigning a project modality."""

    modality: str


class SchedulerStartRequest(BaseModel):
    """Request model for starting the daily refresh."""

    hour: int = Field(default=2, ge=0, le=23)
    minute: int = Field(default=8, ge=0, le=59)



class ClientLogEntry(BaseModel):
    """One log entry reported by a browser client."""

    level: str = "info"
    message: str = ""
    source: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)
    timestamp: str | None = None
