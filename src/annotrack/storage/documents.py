"""Logical document keys and their empty defaults."""

from typing import Any

PROJECT_HISTORY = "project_history"
CATEGORY_HISTORY = "category_history"
CHECKPOINTS = "checkpoints"
NOTIFICATIONS = "notifications"
MODALITIES = "modalities"
TIME_SERIES = "time_series"
EXTERNAL_DATASET = "kaggle"
SCHEDULER_CONFIG = "scheduler_config"
SCHEDULER_LOG = "scheduler_log"


def empty_checkpoints() -> dict[str, Any]:
    return {"projects": {}, "categories": {}, "classes": {}}


def empty_external_dataset() -> dict[str, Any]:
    return {"Pathology": {}, "Non-Pathology": {}, "Tooth Parts": {}, "Others": {}}


def default_scheduler_config() -> dict[str, Any]:
    return {"enabled": False, "hour": 2, "minute": 8, "last_run": None, "next_run": None}
