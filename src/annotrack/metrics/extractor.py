"""
Class metrics extraction from annotation-tool tasks.

A task is one image. Each task carries zero or more annotations, and each
annotation a list of labeled regions. The extractor counts, per normalized
class, how many distinct images contain it and how many label occurrences
there are in total, plus a `_summary` block for the whole task list.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from annotrack.catalog.normalizer import normalize_class_name

__all__ = ["LABEL_TYPES", "SUMMARY_KEY", "extract_class_metrics", "iter_class_metrics"]

SUMMARY_KEY = "_summary"

# Region types carrying class labels
LABEL_TYPES = frozenset({"rectanglelabels", "polygonlabels", "brushlabels", "labels"})

# Value keys tried in order; the first populated one is used
_LABEL_VALUE_KEYS = ("rectanglelabels", "polygonlabels", "brushlabels", "labels")


def _region_labels(region: Mapping[str, Any]) -> list[str]:
    """Return the label strings of one labeled region, or [] for other region types."""
    if region.get("type") not in LABEL_TYPES:
        return []

    value = region.get("value") or {}
    for key in _LABEL_VALUE_KEYS:
        labels = value.get(key)
        if labels:
            return list(labels)
    return []


def extract_class_metrics(tasks: Iterable[Mapping[str, Any]]) -> dict[str, dict[str, int]]:
    """Extract per-class image/annotation counts from a project's tasks.

    Args:
        tasks: Task payloads as returned by the annotation tool

    Returns:
        MetricsSnapshot: {class: {"image_count", "annotation_count"}, "_summary": {...}}

    Examples:
        >>> tasks = [
        ...     {"id": 1, "annotations": [{"result": [{"type": "labels", "value": {"labels": ["Cavity"]}}]}]},
        ...     {"id": 2, "annotations": []},
        ... ]
        >>> extract_class_metrics(tasks)["cavity"]
        {'image_count': 1, 'annotation_count': 1}
    """
    annotation_counts: dict[str, int] = {}
    class_images: dict[str, set[Any]] = {}

    total_images = 0
    annotated_images = 0

    for position, task in enumerate(tasks):
        total_images += 1
        annotations = task.get("annotations") or []
        if not annotations:
            continue

        annotated_images += 1
        # Tasks without an id still count as distinct images
        image_id = task.get("id", f"#{position}")

        for annotation in annotations:
            for region in annotation.get("result") or []:
                for label in _region_labels(region):
                    class_name = normalize_class_name(label)
                    annotation_counts[class_name] = annotation_counts.get(class_name, 0) + 1
                    class_images.setdefault(class_name, set()).add(image_id)

    metrics: dict[str, dict[str, int]] = {
        class_name: {
            "image_count": len(class_images[class_name]),
            "annotation_count": count,
        }
        for class_name, count in annotation_counts.items()
    }

    metrics[SUMMARY_KEY] = {
        "total_images": total_images,
        "annotated_images": annotated_images,
        "unannotated_images": total_images - annotated_images,
    }

    return metrics


def iter_class_metrics(snapshot: Mapping[str, Any]) -> Iterable[tuple[str, Mapping[str, Any]]]:
    """Iterate (class, metrics) pairs of a snapshot, skipping the summary block."""
    for class_name, class_metrics in snapshot.items():
        if class_name == SUMMARY_KEY:
            continue
        yield class_name, class_metrics
