"""
annotrack metrics module

Turns raw annotation-tool task payloads into per-class metric snapshots.
"""

from .deltas import calculate_delta, calculate_increase_pct
from .extractor import LABEL_TYPES, SUMMARY_KEY, extract_class_metrics, iter_class_metrics

__all__ = [
    "LABEL_TYPES",
    "SUMMARY_KEY",
    "calculate_delta",
    "calculate_increase_pct",
    "extract_class_metrics",
    "iter_class_metrics",
]
