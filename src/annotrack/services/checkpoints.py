"""
CheckpointStore - user-marked metric baselines.

Three kinds of checkpoints share one document:

    {"projects": {"<project id>": {...}},
     "categories": {"<category>": {...}},
     "classes": {"<class>_<modality>": {...}}}

Project and category checkpoints copy the latest history entry of their
entity; class checkpoints sum one class over every project of a modality.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from annotrack.catalog.modality import ModalityClassifier
from annotrack.catalog.normalizer import normalize_class_name
from annotrack.storage.base import DocumentStore
from annotrack.storage.documents import CHECKPOINTS, empty_checkpoints
from annotrack.storage.history import HistoryStore
from annotrack.utils import utc_now_iso

logger = logging.getLogger(__name__)

LOOKUP_EXACT = "exact"
LOOKUP_NORMALIZED = "normalized"


def class_checkpoint_key(class_name: str, modality: str) -> str:
    return f"{class_name}_{modality}"


class CheckpointStore:
    """Create, read and annotate checkpoints."""

    def __init__(
        self,
        store: DocumentStore,
        project_history: HistoryStore,
        category_history: HistoryStore,
        list_projects: Callable[[], Iterable[Mapping[str, Any]]],
        classifier: ModalityClassifier | None = None,
        class_lookup: str = LOOKUP_EXACT,
    ) -> None:
        """Initialize the checkpoint store.

        Args:
            store: Document store holding the checkpoints document
            project_history: Project history log
            category_history: Category history log
            list_projects: Lists every project as {id, title} records
            classifier: Detects a project's modality from its title
            class_lookup: How class checkpoints find the class in project metrics:
                "exact" uses the given name as-is, "normalized" normalizes it first
        """
        if class_lookup not in (LOOKUP_EXACT, LOOKUP_NORMALIZED):
            raise ValueError(f"Invalid class lookup mode: {class_lookup!r}")
        self.store = store
        self.project_history = project_history
        self.category_history = category_history
        self.list_projects = list_projects
        self.classifier = classifier or ModalityClassifier()
        self.class_lookup = class_lookup

    def get_all(self) -> dict[str, Any]:
        document = self.store.read(CHECKPOINTS, empty_checkpoints())
        for section in ("projects", "categories", "classes"):
            document.setdefault(section, {})
        return document

    def _set(self, section: str, key: str, checkpoint: dict[str, Any]) -> None:
        def mutate(document: dict[str, Any]) -> None:
            document.setdefault(section, {})[key] = checkpoint

        self.store.update(CHECKPOINTS, empty_checkpoints(), mutate)

    def _update_note(self, section: str, key: str, note: str) -> bool:
        def mutate(document: dict[str, Any]) -> bool:
            checkpoint = document.setdefault(section, {}).get(key)
            if checkpoint is None:
                return False
            checkpoint["note"] = note
            checkpoint["updated_at"] = utc_now_iso()
            return True

        return self.store.update(CHECKPOINTS, empty_checkpoints(), mutate)

    # --- projects ---

    def create_project_checkpoint(self, project_id: int | str, title: str | None, note: str = "") -> bool:
        """Checkpoint a project's latest history entry.

        Returns:
            False if the project has no history yet
        """
        latest = self.project_history.latest(project_id)
        if latest is None:
            logger.info(f"No history for project {project_id}, checkpoint not created")
            return False

        self._set(
            "projects",
            str(project_id),
            {
                "project_id": str(project_id),
                "project_title": title or f"Project {project_id}",
                "timestamp": latest["timestamp"],
                "metrics": latest["metrics"],
                "note": note,
                "marked_at": utc_now_iso(),
            },
        )
        logger.info(f"Checkpoint created for project {project_id}")
        return True

    def get_project_checkpoint(self, project_id: int | str) -> dict[str, Any] | None:
        return self.get_all()["projects"].get(str(project_id))

    def update_project_note(self, project_id: int | str, note: str) -> bool:
        return self._update_note("projects", str(project_id), note)

    # --- categories ---

    def create_category_checkpoint(self, category: str, note: str = "") -> bool:
        """Checkpoint a category's latest history entry.

        Returns:
            False if the category has no history yet
        """
        latest = self.category_history.latest(category)
        if latest is None:
            logger.info(f"No history for category {category}, checkpoint not created")
            return False

        self._set(
            "categories",
            category,
            {
                "category": category,
                "timestamp": latest["timestamp"],
                "metrics": latest["metrics"],
                "note": note,
                "marked_at": utc_now_iso(),
            },
        )
        logger.info(f"Checkpoint created for category {category}")
        return True

    def get_category_checkpoint(self, category: str) -> dict[str, Any] | None:
        return self.get_all()["categories"].get(category)

    def update_category_note(self, category: str, note: str) -> bool:
        return self._update_note("categories", category, note)

    # --- classes ---

    def _lookup_name(self, class_name: str) -> str:
        if self.class_lookup == LOOKUP_NORMALIZED:
            return normalize_class_name(class_name)
        return class_name

    def create_class_checkpoint(self, class_name: str, modality: str, note: str = "") -> bool:
        """Checkpoint one class summed over every project of a modality.

        The class is looked up verbatim (case-sensitive) in each project's
        latest metrics unless the store runs in normalized lookup mode. A
        zero sum is still recorded.

        Returns:
            Always True
        """
        lookup = self._lookup_name(class_name)
        images = 0
        annotations = 0
        contributing = 0

        for project in self.list_projects():
            if self.classifier.classify(project.get("title")) != modality:
                continue
            latest = self.project_history.latest(project["id"])
            if latest is None:
                continue
            class_metrics = latest["metrics"].get(lookup)
            if not class_metrics:
                continue
            images += class_metrics.get("image_count", 0)
            annotations += class_metrics.get("annotation_count", 0)
            contributing += 1

        if contributing == 0:
            logger.warning(f"Class checkpoint {class_name}/{modality}: no project metrics matched {lookup!r}")

        now = utc_now_iso()
        self._set(
            "classes",
            class_checkpoint_key(class_name, modality),
            {
                "class_name": class_name,
                "xray_type": modality,
                "timestamp": now,
                "metrics": {"images": images, "annotations": annotations},
                "note": note,
                "marked_at": now,
            },
        )
        logger.info(f"Checkpoint created for class {class_name} ({modality}): {images} images from {contributing} project(s)")
        return True

    def get_class_checkpoint(self, class_name: str, modality: str) -> dict[str, Any] | None:
        return self.get_all()["classes"].get(class_checkpoint_key(class_name, modality))

    def update_class_note(self, class_name: str, modality: str, note: str) -> bool:
        return self._update_note("classes", class_checkpoint_key(class_name, modality), note)
