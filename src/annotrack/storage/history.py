"""
HistoryStore - bounded, time-ordered snapshot log per entity.

One document holds the history of every entity of a kind (projects or
categories):

    {"<entity id>": {"history": [{"timestamp": "...", "metrics": {...}}, ...]}}

Entries are appended in ascending timestamp order and the oldest ones are
dropped once an entity holds more than `limit` entries.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from annotrack.utils import utc_now_iso

from .base import DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class HistoryStore:
    """Rolling history of metric snapshots keyed by entity id."""

    def __init__(self, store: DocumentStore, key: str, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        """Initialize the history store.

        Args:
            store: Document store holding the history document
            key: Document key (e.g. "project_history")
            limit: Maximum entries kept per entity
        """
        if limit < 1:
            raise ValueError(f"History limit must be positive, got {limit}")
        self.store = store
        self.key = key
        self.limit = limit

    def _append_entry(self, document: dict[str, Any], entity_id: str, entry: dict[str, Any]) -> None:
        slot = document.setdefault(entity_id, {"history": []})
        history = slot.setdefault("history", [])
        history.append(entry)
        if len(history) > self.limit:
            del history[: len(history) - self.limit]

    def read_all(self) -> dict[str, Any]:
        """Return the whole history document."""
        return self.store.read(self.key, {})

    def entity_ids(self) -> list[str]:
        """Return the ids of all entities with a history."""
        return list(self.read_all().keys())

    def append(self, entity_id: str | int, metrics: Mapping[str, Any], timestamp: str | None = None) -> dict[str, Any]:
        """Append one snapshot for an entity.

        Args:
            entity_id: Project id or category name
            metrics: Snapshot to record
            timestamp: ISO timestamp; defaults to now

        Returns:
            The stored entry
        """
        entry = {"timestamp": timestamp or utc_now_iso(), "metrics": dict(metrics)}
        entity = str(entity_id)

        self.store.update(self.key, {}, lambda document: self._append_entry(document, entity, entry))
        logger.debug(f"Appended {self.key} entry for {entity}")
        return entry

    def append_bulk(self, snapshots: Mapping[str | int, Mapping[str, Any]], timestamp: str | None = None) -> int:
        """Append one snapshot per entity as a single read-modify-write.

        All entries share one timestamp.

        Returns:
            Number of entries appended
        """
        if not snapshots:
            return 0

        ts = timestamp or utc_now_iso()

        def mutate(document: dict[str, Any]) -> int:
            for entity_id, metrics in snapshots.items():
                self._append_entry(document, str(entity_id), {"timestamp": ts, "metrics": dict(metrics)})
            return len(snapshots)

        count = self.store.update(self.key, {}, mutate)
        logger.info(f"Appended {count} {self.key} entries")
        return count

    def get(self, entity_id: str | int) -> list[dict[str, Any]]:
        """Return an entity's history in ascending timestamp order ([] when absent)."""
        slot = self.read_all().get(str(entity_id)) or {}
        return list(slot.get("history") or [])

    def latest(self, entity_id: str | int) -> dict[str, Any] | None:
        """Return the newest entry of an entity, or None without history."""
        history = self.get(entity_id)
        return history[-1] if history else None
