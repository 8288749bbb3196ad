"""Join the external ("Kaggle") dataset with aggregated annotation metrics."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from annotrack.catalog.categories import CategoryCatalog, default_catalog
from annotrack.catalog.modality import REPORTED_MODALITIES
from annotrack.storage.base import DocumentStore
from annotrack.storage.documents import EXTERNAL_DATASET, empty_external_dataset
from annotrack.storage.history import HistoryStore

logger = logging.getLogger(__name__)


class CombinedMetricsService:
    """Per class and modality: external images plus annotated images."""

    def __init__(self, store: DocumentStore, category_history: HistoryStore, catalog: CategoryCatalog | None = None) -> None:
        self.store = store
        self.category_history = category_history
        self.catalog = catalog or default_catalog

    def get_dataset(self) -> dict[str, Any]:
        """Return the external dataset {category: {class: {modality: {images}}}}."""
        return self.store.read(EXTERNAL_DATASET, empty_external_dataset())

    def update_dataset_category(self, category: str, data: Mapping[str, Any]) -> dict[str, Any]:
        """Replace the classes of one category in the external dataset."""

        def mutate(dataset: dict[str, Any]) -> dict[str, Any]:
            dataset[category] = dict(data)
            return dataset

        dataset = self.store.update(EXTERNAL_DATASET, empty_external_dataset(), mutate)
        logger.info(f"External dataset category {category} updated ({len(data)} classes)")
        return dataset

    def _latest_annotated(self) -> dict[str, dict[str, dict[str, int]]]:
        totals: dict[str, dict[str, dict[str, int]]] = {}
        for slot in self.category_history.read_all().values():
            entries = (slot or {}).get("history") or []
            if not entries:
                continue
            for class_name, by_modality in (entries[-1].get("metrics") or {}).items():
                for modality, values in by_modality.items():
                    target = totals.setdefault(class_name, {}).setdefault(modality, {"images": 0, "annotations": 0})
                    target["images"] += values.get("images", 0)
                    target["annotations"] += values.get("annotations", 0)
        return totals

    def get_combined_metrics(self) -> dict[str, dict[str, dict[str, int]]]:
        """Return {class: {modality: {kaggle_images, ls_images, ls_annotations, total_images}}}.

        Classes are the union of annotated classes and external dataset
        classes, in sorted order.
        """
        dataset = self.get_dataset()
        annotated = self._latest_annotated()

        classes = set(annotated)
        for category_classes in dataset.values():
            classes.update(category_classes or {})

        combined = {}
        for class_name in sorted(classes):
            category = self.catalog.category_for(class_name)
            external = (dataset.get(category) or {}).get(class_name) or {}
            per_modality = {}
            for modality in REPORTED_MODALITIES:
                external_images = (external.get(modality) or {}).get("images", 0)
                ls = (annotated.get(class_name) or {}).get(modality) or {"images": 0, "annotations": 0}
                per_modality[modality] = {
                    "kaggle_images": external_images,
                    "ls_images": ls["images"],
                    "ls_annotations": ls["annotations"],
                    "total_images": external_images + ls["images"],
                }
            combined[class_name] = per_modality
        return combined
