"""
GrowthCalculator - live growth per (class, modality) against checkpoints.

Every call fetches the tasks of every project from the annotation tool; no
cached history is used for the current counts.
"""

from __future__ import annotations

import logging
from typing import Any

from annotrack.catalog.categories import CategoryCatalog, default_catalog
from annotrack.client import ProjectSource
from annotrack.exceptions import UpstreamAPIError
from annotrack.metrics import extract_class_metrics, iter_class_metrics

from .checkpoints import CheckpointStore, class_checkpoint_key
from .modalities import ModalityService

logger = logging.getLogger(__name__)

DEFAULT_GROWTH_THRESHOLD = 20.0


def raw_growth_pct(current: int, checkpoint: int) -> float:
    """Unrounded percent change; exactly 100 for a first observation."""
    if checkpoint == 0:
        return 100.0 if current > 0 else 0.0
    return (current - checkpoint) / checkpoint * 100


def growth_pct(current: int, checkpoint: int) -> float:
    """Percent change rounded to 0.1 for display."""
    return round(raw_growth_pct(current, checkpoint), 1)


def series_key(class_name: str, modality: str) -> str:
    return f"{class_name}-{modality}"


class GrowthCalculator:
    """Compute growth of class image counts since the last checkpoint."""

    def __init__(
        self,
        source: ProjectSource,
        checkpoints: CheckpointStore,
        modalities: ModalityService,
        catalog: CategoryCatalog | None = None,
    ) -> None:
        self.source = source
        self.checkpoints = checkpoints
        self.modalities = modalities
        self.catalog = catalog or default_catalog

    def _collect(self) -> dict[str, dict[str, Any]]:
        checkpoints = self.checkpoints.get_all()
        project_checkpoints = checkpoints["projects"]
        class_checkpoints = checkpoints["classes"]
        collected: dict[str, dict[str, Any]] = {}

        for project in self.source.list_projects():
            project_id = str(project["id"])
            title = project.get("title") or f"Project {project_id}"
            try:
                metrics = extract_class_metrics(self.source.list_project_tasks(project["id"]))
            except UpstreamAPIError as e:
                logger.warning(f"Skipping project {project_id} in growth calculation: {e}")
                continue

            modality = self.modalities.resolve(project_id, title)
            project_checkpoint = project_checkpoints.get(project_id)
            baseline = (project_checkpoint or {}).get("metrics") or {}

            for class_name, class_metrics in iter_class_metrics(metrics):
                key = series_key(class_name, modality)
                entry = collected.get(key)
                if entry is None:
                    entry = {
                        "className": class_name,
                        "modality": modality,
                        "currentCount": 0,
                        "projectCheckpointCount": 0,
                        "checkpointType": "none",
                        "checkpointDate": None,
                        "checkpointSource": None,
                        "contributingProjects": [],
                    }
                    class_checkpoint = class_checkpoints.get(class_checkpoint_key(class_name, modality))
                    if class_checkpoint is not None:
                        entry["classCheckpointCount"] = (class_checkpoint.get("metrics") or {}).get("images", 0)
                        entry["checkpointType"] = "class"
                        entry["checkpointDate"] = class_checkpoint.get("marked_at")
                        entry["checkpointSource"] = key
                    collected[key] = entry

                current = class_metrics.get("image_count", 0)
                project_baseline = (baseline.get(class_name) or {}).get("image_count", 0)
                entry["currentCount"] += current
                entry["projectCheckpointCount"] += project_baseline

                if class_name in baseline and entry["checkpointType"] == "none":
                    entry["checkpointType"] = "project"
                    entry["checkpointDate"] = project_checkpoint.get("marked_at")
                    entry["checkpointSource"] = f"Project {project_id}"

                if current > 0 or project_baseline > 0:
                    entry["contributingProjects"].append(
                        {
                            "projectId": project_id,
                            "projectTitle": title,
                            "currentCount": current,
                            "checkpointCount": project_baseline,
                            "growthPct": growth_pct(current, project_baseline),
                            "growthCount": current - project_baseline,
                        }
                    )

        return collected

    def calculate(self, threshold: float = DEFAULT_GROWTH_THRESHOLD) -> list[dict[str, Any]]:
        """Return (class, modality) keys whose growth meets the threshold.

        A class checkpoint for the key, when present, is the baseline for the
        whole key; otherwise project checkpoint counts are summed.

        Returns:
            Growth records sorted by growthPct descending
        """
        results = []
        for key, entry in self._collect().items():
            current = entry["currentCount"]
            if current == 0:
                continue

            if "classCheckpointCount" in entry:
                checkpoint_count = entry["classCheckpointCount"]
            else:
                checkpoint_count = entry["projectCheckpointCount"]

            # Threshold applies to the unrounded value
            pct = raw_growth_pct(current, checkpoint_count)
            if pct < threshold:
                continue

            contributing = [p for p in entry["contributingProjects"] if p["growthCount"] > 0]
            contributing.sort(key=lambda p: p["growthCount"], reverse=True)

            results.append(
                {
                    "modalityClass": key,
                    "className": entry["className"],
                    "modality": entry["modality"],
                    "category": self.catalog.category_for(entry["className"]),
                    "currentCount": current,
                    "checkpointCount": checkpoint_count,
                    "growthPct": round(pct, 1),
                    "growthCount": current - checkpoint_count,
                    "isNew": checkpoint_count == 0,
                    "checkpointType": entry["checkpointType"],
                    "checkpointDate": entry["checkpointDate"],
                    "checkpointSource": entry["checkpointSource"],
                    "contributingProjects": contributing,
                }
            )

        results.sort(key=lambda r: r["growthPct"], reverse=True)
        logger.info(f"{len(results)} class/modality key(s) at or above {threshold}% growth")
        return results
