"""
annotrack Catalog module

Static classification tables: label normalization, modality detection
from project titles and class → category membership.
"""

from .categories import DEFAULT_CATEGORY, CategoryCatalog, category_for, default_catalog
from .modality import DEFAULT_MODALITY, MODALITIES, REPORTED_MODALITIES, ModalityClassifier, detect_xray_type, validate_modality
from .normalizer import normalize_class_name

__all__ = [
    "CategoryCatalog",
    "DEFAULT_CATEGORY",
    "DEFAULT_MODALITY",
    "MODALITIES",
    "REPORTED_MODALITIES",
    "ModalityClassifier",
    "category_for",
    "default_catalog",
    "detect_xray_type",
    "normalize_class_name",
    "validate_modality",
]
