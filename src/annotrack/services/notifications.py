"""
NotificationEngine - flags classes that grew enough since their checkpoint
to justify retraining.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from annotrack.metrics import iter_class_metrics
from annotrack.storage.base import DocumentStore
from annotrack.storage.documents import NOTIFICATIONS
from annotrack.storage.history import HistoryStore
from annotrack.utils import utc_now_iso

from .checkpoints import CheckpointStore

logger = logging.getLogger(__name__)

DEFAULT_RETRAIN_THRESHOLD = 20.0


def _entity_key(notification: Mapping[str, Any]) -> tuple[str, str, str]:
    if notification.get("type") == "category":
        return ("category", str(notification.get("category")), str(notification.get("class_name")))
    return ("project", str(notification.get("project_id")), str(notification.get("class_name")))


def _growth_pct(current: int, baseline: int) -> float:
    return (current - baseline) / baseline * 100


class NotificationEngine:
    """Build, store and dismiss training-readiness notifications."""

    def __init__(
        self,
        store: DocumentStore,
        checkpoints: CheckpointStore,
        project_history: HistoryStore,
        category_history: HistoryStore,
        threshold: float = DEFAULT_RETRAIN_THRESHOLD,
    ) -> None:
        self.store = store
        self.checkpoints = checkpoints
        self.project_history = project_history
        self.category_history = category_history
        self.threshold = threshold

    def check_project_training_readiness(self, project_id: int | str, title: str | None = None) -> list[dict[str, Any]]:
        """Compare a project's latest metrics with its checkpoint.

        Classes without a positive checkpoint count have no baseline and are skipped.

        Returns:
            One notification per class whose image count grew by at least the threshold
        """
        checkpoint = self.checkpoints.get_project_checkpoint(project_id)
        latest = self.project_history.latest(project_id)
        if checkpoint is None or latest is None:
            return []

        baseline = checkpoint.get("metrics") or {}
        triggered_at = latest.get("timestamp") or utc_now_iso()
        notifications = []

        for class_name, class_metrics in iter_class_metrics(latest["metrics"]):
            checkpoint_count = (baseline.get(class_name) or {}).get("image_count", 0)
            if checkpoint_count <= 0:
                continue

            current_count = class_metrics.get("image_count", 0)
            increase_pct = _growth_pct(current_count, checkpoint_count)
            if increase_pct >= self.threshold:
                notifications.append(
                    {
                        "type": "project",
                        "project_id": str(project_id),
                        "project_title": title or checkpoint.get("project_title") or f"Project {project_id}",
                        "class_name": class_name,
                        "increase_pct": round(increase_pct, 1),
                        "current_count": current_count,
                        "checkpoint_count": checkpoint_count,
                        "checkpoint_date": checkpoint.get("timestamp"),
                        "timestamp": triggered_at,
                    }
                )

        if notifications:
            logger.info(f"Project {project_id}: {len(notifications)} class(es) over {self.threshold}% growth")
        return notifications

    def check_category_training_readiness(self, category: str) -> list[dict[str, Any]]:
        """Same policy as for projects, on category metrics summed across modalities."""
        checkpoint = self.checkpoints.get_category_checkpoint(category)
        latest = self.category_history.latest(category)
        if checkpoint is None or latest is None:
            return []

        def images(by_modality: Mapping[str, Any] | None) -> int:
            return sum((values or {}).get("images", 0) for values in (by_modality or {}).values())

        baseline = checkpoint.get("metrics") or {}
        triggered_at = latest.get("timestamp") or utc_now_iso()
        notifications = []

        for class_name, by_modality in latest["metrics"].items():
            checkpoint_count = images(baseline.get(class_name))
            if checkpoint_count <= 0:
                continue

            current_count = images(by_modality)
            increase_pct = _growth_pct(current_count, checkpoint_count)
            if increase_pct >= self.threshold:
                notifications.append(
                    {
                        "type": "category",
                        "category": category,
                        "class_name": class_name,
                        "increase_pct": round(increase_pct, 1),
                        "current_count": current_count,
                        "checkpoint_count": checkpoint_count,
                        "checkpoint_date": checkpoint.get("timestamp"),
                        "timestamp": triggered_at,
                    }
                )

        return notifications

    def get_notifications(self) -> list[dict[str, Any]]:
        return self.store.read(NOTIFICATIONS, [])

    def add_notifications(self, notifications: Iterable[Mapping[str, Any]]) -> int:
        """Store notifications not already present for their (entity, class).

        Existing notifications are kept as they are, even when the new one
        carries fresher numbers.

        Returns:
            Number of notifications added
        """
        pending = list(notifications)
        if not pending:
            return 0

        def mutate(stored: list[dict[str, Any]]) -> int:
            seen = {_entity_key(n) for n in stored}
            added = 0
            for notification in pending:
                key = _entity_key(notification)
                if key in seen:
                    continue
                stored.append(dict(notification))
                seen.add(key)
                added += 1
            return added

        return self.store.update(NOTIFICATIONS, [], mutate)

    def add_notification(self, notification: Mapping[str, Any]) -> bool:
        """Store one notification; False if one exists for the same (entity, class)."""
        return self.add_notifications([notification]) == 1

    def dismiss_notification(self, index: int) -> bool:
        """Remove the notification at a list position.

        Returns:
            False if index is out of range
        """

        def mutate(stored: list[dict[str, Any]]) -> bool:
            if index < 0 or index >= len(stored):
                return False
            del stored[index]
            return True

        return self.store.update(NOTIFICATIONS, [], mutate)

    def _clear(self, entity_type: str, entity_id: str) -> int:
        def mutate(stored: list[dict[str, Any]]) -> int:
            kept = [n for n in stored if _entity_key(n)[:2] != (entity_type, entity_id)]
            removed = len(stored) - len(kept)
            stored[:] = kept
            return removed

        removed = self.store.update(NOTIFICATIONS, [], mutate)
        if removed:
            logger.info(f"Cleared {removed} notification(s) for {entity_type} {entity_id}")
        return removed

    def clear_project_notifications(self, project_id: int | str) -> int:
        return self._clear("project", str(project_id))

    def clear_category_notifications(self, category: str) -> int:
        return self._clear("category", category)
