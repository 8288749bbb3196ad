"""Per-project modality assignments."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from annotrack.catalog.modality import ModalityClassifier, validate_modality
from annotrack.storage.base import DocumentStore
from annotrack.storage.documents import MODALITIES

logger = logging.getLogger(__name__)


class ModalityService:
    """Stored modality tag per project, falling back to title detection."""

    def __init__(self, store: DocumentStore, classifier: ModalityClassifier | None = None) -> None:
        self.store = store
        self.classifier = classifier or ModalityClassifier()

    def get_all(self) -> dict[str, str]:
        return self.store.read(MODALITIES, {})

    def get(self, project_id: int | str) -> str | None:
        return self.get_all().get(str(project_id))

    def resolve(self, project_id: int | str, title: str | None) -> str:
        """Return the stored modality, or detect it from the title."""
        stored = self.get(project_id)
        if stored:
            return stored
        return self.classifier.classify(title)

    def initialize(self, projects: Iterable[Mapping[str, Any]]) -> dict[str, str]:
        """Assign detected modalities to projects that have none yet.

        Existing assignments are never changed.

        Returns:
            The full assignment map
        """

        def mutate(assignments: dict[str, str]) -> int:
            added = 0
            for project in projects:
                project_id = str(project["id"])
                if project_id not in assignments:
                    assignments[project_id] = self.classifier.classify(project.get("title"))
                    added += 1
            return added

        with self.store.lock_for(MODALITIES):
            assignments = self.get_all()
            added = mutate(assignments)
            if added:
                self.store.write(MODALITIES, assignments)
                logger.info(f"Initialized modality for {added} project(s)")
        return assignments

    def set(self, project_id: int | str, modality: str) -> dict[str, str]:
        """Assign a modality to a project.

        Raises:
            InvalidModalityError: If modality is not one of the supported tags
        """
        validate_modality(modality)

        def mutate(assignments: dict[str, str]) -> None:
            assignments[str(project_id)] = modality

        self.store.update(MODALITIES, {}, mutate)
        logger.info(f"Project {project_id} modality set to {modality}")
        return {"project_id": str(project_id), "modality": modality}
