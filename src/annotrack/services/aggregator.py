"""
CategoryAggregator - roll project history up into per-category metrics.

Category metrics have the shape {class: {modality: {images, annotations}}}
and are derived from the latest cached history entry of every project.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from annotrack.catalog.categories import CategoryCatalog, default_catalog
from annotrack.catalog.modality import ModalityClassifier
from annotrack.client import ProjectSource
from annotrack.metrics import iter_class_metrics
from annotrack.storage.history import HistoryStore

logger = logging.getLogger(__name__)

ClassModalityMetrics = dict[str, dict[str, dict[str, int]]]


class CategoryAggregator:
    """Aggregate class metrics by modality and bucket them into categories."""

    def __init__(
        self,
        source: ProjectSource,
        project_history: HistoryStore,
        category_history: HistoryStore,
        classifier: ModalityClassifier | None = None,
        catalog: CategoryCatalog | None = None,
    ) -> None:
        self.source = source
        self.project_history = project_history
        self.category_history = category_history
        self.classifier = classifier or ModalityClassifier()
        self.catalog = catalog or default_catalog

    def aggregate_by_xray(self, projects: Iterable[Mapping[str, Any]] | None = None) -> ClassModalityMetrics:
        """Sum every project's latest class metrics into {class: {modality: counts}}.

        Args:
            projects: Project records; listed live from the source when omitted

        Projects without history contribute nothing.
        """
        if projects is None:
            projects = self.source.list_projects()

        history = self.project_history.read_all()
        aggregated: ClassModalityMetrics = {}

        for project in projects:
            entries = (history.get(str(project["id"])) or {}).get("history") or []
            if not entries:
                continue

            modality = self.classifier.classify(project.get("title"))
            for class_name, class_metrics in iter_class_metrics(entries[-1]["metrics"]):
                slot = aggregated.setdefault(class_name, {}).setdefault(modality, {"images": 0, "annotations": 0})
                slot["images"] += class_metrics.get("image_count", 0)
                slot["annotations"] += class_metrics.get("annotation_count", 0)

        return aggregated

    def categorize(self, aggregated: ClassModalityMetrics) -> dict[str, ClassModalityMetrics]:
        """Bucket aggregated class metrics by category; empty categories are omitted."""
        categorized: dict[str, ClassModalityMetrics] = {}
        for class_name, by_modality in aggregated.items():
            categorized.setdefault(self.catalog.category_for(class_name), {})[class_name] = by_modality
        return categorized

    def refresh_all_categories(self, projects: Iterable[Mapping[str, Any]] | None = None) -> dict[str, ClassModalityMetrics]:
        """Append a history entry for every category with at least one class.

        Returns:
            The categorized metrics that were recorded
        """
        categorized = self.categorize(self.aggregate_by_xray(projects))
        if not categorized:
            logger.info("No class metrics to aggregate into categories")
            return {}

        self.category_history.append_bulk(categorized)
        for category, classes in categorized.items():
            logger.info(f"Category {category}: {len(classes)} class(es)")
        return categorized

    def get_all_categories(self) -> dict[str, dict[str, Any]]:
        """Return {category: {history_count, latest}} for every stored category."""
        categories = {}
        for category, slot in self.category_history.read_all().items():
            entries = (slot or {}).get("history") or []
            categories[category] = {
                "history_count": len(entries),
                "latest": entries[-1] if entries else None,
            }
        return categories

    def get_category_history(self, category: str) -> list[dict[str, Any]]:
        return self.category_history.get(category)

    def get_category_latest(self, category: str) -> dict[str, Any] | None:
        return self.category_history.latest(category)
