"""Delta and percentage helpers for comparing metric snapshots."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .extractor import SUMMARY_KEY

__all__ = ["calculate_delta", "calculate_increase_pct"]


def calculate_delta(current: Mapping[str, Any], previous: Mapping[str, Any] | None) -> dict[str, dict[str, int]] | None:
    """Per-class count differences between two snapshots.

    Classes present in only one snapshot are compared against zero.

    Returns:
        {class: {"image_count_delta", "annotation_count_delta"},
         "_summary": {"total_images_delta", "annotated_images_delta"}},
        or None when there is no previous snapshot.
    """
    if not previous:
        return None

    class_names = (set(current) | set(previous)) - {SUMMARY_KEY}

    delta: dict[str, dict[str, int]] = {}
    for class_name in sorted(class_names):
        curr = current.get(class_name) or {}
        prev = previous.get(class_name) or {}
        delta[class_name] = {
            "image_count_delta": curr.get("image_count", 0) - prev.get("image_count", 0),
            "annotation_count_delta": curr.get("annotation_count", 0) - prev.get("annotation_count", 0),
        }

    curr_summary = current.get(SUMMARY_KEY) or {}
    prev_summary = previous.get(SUMMARY_KEY) or {}
    delta[SUMMARY_KEY] = {
        "total_images_delta": curr_summary.get("total_images", 0) - prev_summary.get("total_images", 0),
        "annotated_images_delta": curr_summary.get("annotated_images", 0) - prev_summary.get("annotated_images", 0),
    }

    return delta


def calculate_increase_pct(current: float, checkpoint: float) -> float:
    """Percent change from a checkpoint count; 0 when there is no baseline."""
    if not checkpoint:
        return 0.0
    return (current - checkpoint) / checkpoint * 100
