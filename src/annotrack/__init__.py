"""
annotrack - Annotation metrics aggregation and growth tracking.

Polls an annotation tool for projects and tasks, keeps a rolling history of
per-class image and annotation counts, and tracks growth against user-marked
checkpoints.

Examples:
    >>> from annotrack.metrics import extract_class_metrics
    >>> extract_class_metrics([])
    {'_summary': {'total_images': 0, 'annotated_images': 0, 'unannotated_images': 0}}
"""

from annotrack.logger import logger as _logger  # noqa: F401

__version__ = "0.1.0"
__all__ = ["__version__"]
