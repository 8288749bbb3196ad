"""
One-shot maintenance utilities for history documents.

- merge_history_documents: merge a historical export into the current history
- migrate_legacy_cache: import per-project cache files left by older releases
"""

from __future__ import annotations

import copy
import json
import logging
import re
from pathlib import Path
from typing import Any

from .base import DocumentStore
from .documents import CHECKPOINTS, PROJECT_HISTORY, empty_checkpoints

logger = logging.getLogger(__name__)

_LEGACY_CACHE_PATTERN = re.compile(r"^project_(.+)_metrics\.json$")


def _sort_history(slot: dict[str, Any]) -> None:
    slot["history"].sort(key=lambda entry: entry.get("timestamp", ""))


def merge_history_documents(current: dict[str, Any], historical: dict[str, Any]) -> dict[str, Any]:
    """Merge two history documents.

    For each entity the entries are united by exact timestamp (current wins on
    a tie) and sorted ascending. Neither input is modified.

    Args:
        current: History document in use
        historical: Older export to fold in

    Returns:
        The merged document
    """
    merged = copy.deepcopy(current)

    for entity_id, slot in historical.items():
        entries = (slot or {}).get("history") or []
        target = merged.setdefault(entity_id, {"history": []})
        target.setdefault("history", [])

        seen = {entry.get("timestamp") for entry in target["history"]}
        added = 0
        for entry in entries:
            if entry.get("timestamp") in seen:
                continue
            target["history"].append(copy.deepcopy(entry))
            seen.add(entry.get("timestamp"))
            added += 1

        _sort_history(target)
        if added:
            logger.info(f"Merged {added} historical entries for {entity_id}")

    return merged


def _read_legacy_file(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Skipping unreadable cache file {path.name}: {e}")
        return None


def migrate_legacy_cache(cache_dir: str | Path, store: DocumentStore) -> int:
    """Import legacy per-project cache files into the project history.

    Reads every `project_{id}_metrics.json` in cache_dir (each a history list
    or a {"history": [...]} object) plus the metrics of project checkpoints,
    and adds each entry whose timestamp is not yet in the project's history.

    Args:
        cache_dir: Directory with the legacy cache files
        store: Document store receiving the project history

    Returns:
        Number of entries imported
    """
    cache_path = Path(cache_dir)
    imports: dict[str, list[dict[str, Any]]] = {}

    if cache_path.is_dir():
        for path in sorted(cache_path.iterdir()):
            match = _LEGACY_CACHE_PATTERN.match(path.name)
            if not match:
                continue
            data = _read_legacy_file(path)
            if isinstance(data, dict):
                data = data.get("history")
            if not isinstance(data, list):
                continue
            entries = [entry for entry in data if isinstance(entry, dict) and "timestamp" in entry and "metrics" in entry]
            imports.setdefault(match.group(1), []).extend(entries)
    else:
        logger.warning(f"Cache directory not found: {cache_path}")

    checkpoints = store.read(CHECKPOINTS, empty_checkpoints())
    for project_id, checkpoint in (checkpoints.get("projects") or {}).items():
        if checkpoint.get("timestamp") and checkpoint.get("metrics"):
            imports.setdefault(str(project_id), []).append({"timestamp": checkpoint["timestamp"], "metrics": checkpoint["metrics"]})

    def mutate(document: dict[str, Any]) -> int:
        imported = 0
        for project_id, entries in imports.items():
            slot = document.setdefault(project_id, {"history": []})
            slot.setdefault("history", [])
            seen = {entry.get("timestamp") for entry in slot["history"]}
            for entry in entries:
                if entry["timestamp"] in seen:
                    continue
                slot["history"].append({"timestamp": entry["timestamp"], "metrics": entry["metrics"]})
                seen.add(entry["timestamp"])
                imported += 1
            _sort_history(slot)
        return imported

    imported = store.update(PROJECT_HISTORY, {}, mutate)
    logger.info(f"Imported {imported} legacy history entries from {cache_path}")
    return imported
