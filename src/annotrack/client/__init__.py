"""
annotrack client module

Access to the annotation tool that owns projects, tasks and annotations.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from .label_studio import LabelStudioClient, PagedSequence


class ProjectSource(Protocol):
    """Anything that can list projects and their tasks."""

    def list_projects(self) -> Iterable[Mapping[str, Any]]: ...

    def list_project_tasks(self, project_id: int | str) -> Iterable[Mapping[str, Any]]: ...


__all__ = ["LabelStudioClient", "PagedSequence", "ProjectSource"]
