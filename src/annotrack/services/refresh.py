"""
Refresh pipeline: fetch tasks, extract metrics, record history, notify.

A bulk refresh fans out over projects in fixed-size batches. Projects within
a batch are fetched concurrently in worker threads; batches run one after
another. Progress is published through a RefreshProgress object that only
the running refresh mutates.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Mapping
from typing import Any

from annotrack.client import ProjectSource
from annotrack.exceptions import AnnotrackError, RefreshInProgressError
from annotrack.metrics import extract_class_metrics
from annotrack.storage.history import HistoryStore
from annotrack.utils import utc_now_iso

from .aggregator import CategoryAggregator
from .modalities import ModalityService
from .notifications import NotificationEngine
from .time_series import TimeSeriesEngine

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 4


class RefreshProgress:
    """Mutex-guarded progress of the bulk refresh.

    Pollers call snapshot() and get a copy; they never see the live state.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state: dict[str, Any] = self._initial_state()

    @staticmethod
    def _initial_state() -> dict[str, Any]:
        return {
            "is_running": False,
            "total": 0,
            "completed": 0,
            "successful": 0,
            "failed": 0,
            "current_batch": 0,
            "total_batches": 0,
            "started_at": None,
            "finished_at": None,
            "error": None,
        }

    def try_begin(self) -> bool:
        """Mark a refresh as running; False if one already is."""
        with self._lock:
            if self._state["is_running"]:
                return False
            self._state = self._initial_state()
            self._state["is_running"] = True
            self._state["started_at"] = utc_now_iso()
            return True

    def set_plan(self, total: int, total_batches: int) -> None:
        with self._lock:
            self._state["total"] = total
            self._state["total_batches"] = total_batches

    def set_batch(self, batch: int) -> None:
        with self._lock:
            self._state["current_batch"] = batch

    def record(self, success: bool) -> None:
        with self._lock:
            self._state["completed"] += 1
            self._state["successful" if success else "failed"] += 1

    def finish(self, error: str | None = None) -> None:
        with self._lock:
            self._state["is_running"] = False
            self._state["finished_at"] = utc_now_iso()
            self._state["error"] = error

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._state["is_running"]

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._state)


class RefreshService:
    """Single-project and bulk refresh of annotation metrics."""

    def __init__(
        self,
        source: ProjectSource,
        project_history: HistoryStore,
        aggregator: CategoryAggregator,
        notifications: NotificationEngine,
        time_series: TimeSeriesEngine,
        modalities: ModalityService,
        progress: RefreshProgress | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"Batch size must be positive, got {batch_size}")
        self.source = source
        self.project_history = project_history
        self.aggregator = aggregator
        self.notifications = notifications
        self.time_series = time_series
        self.modalities = modalities
        self.progress = progress or RefreshProgress()
        self.batch_size = batch_size

    def fetch_metrics(self, project_id: int | str) -> dict[str, dict[str, int]]:
        """Fetch a project's tasks and extract its class metrics."""
        return extract_class_metrics(self.source.list_project_tasks(project_id))

    def refresh_project(self, project_id: int | str, title: str | None = None) -> dict[str, Any]:
        """Refresh one project: record its metrics, re-derive categories and notify.

        Returns:
            {success, metrics, notifications_added}
        """
        if title:
            self.modalities.initialize([{"id": project_id, "title": title}])
        title = title or f"Project {project_id}"
        metrics = self.fetch_metrics(project_id)
        self.project_history.append(project_id, metrics)
        self.aggregator.refresh_all_categories()

        notifications = self.notifications.check_project_training_readiness(project_id, title)
        self.notifications.add_notifications(notifications)

        logger.info(f"Refreshed project {project_id}: {len(notifications)} notification(s)")
        return {"success": True, "metrics": metrics, "notifications_added": len(notifications)}

    async def _refresh_one(self, project: Mapping[str, Any], collected: dict[str, Any]) -> dict[str, Any]:
        project_id = project["id"]
        try:
            metrics = await asyncio.to_thread(self.fetch_metrics, project_id)
        except Exception as e:
            logger.error(f"Error refreshing project {project_id}: {e}")
            self.progress.record(success=False)
            return {"project_id": str(project_id), "success": False, "error": str(e)}

        collected[str(project_id)] = metrics
        self.progress.record(success=True)
        return {"project_id": str(project_id), "success": True}

    async def run_refresh_all(self) -> dict[str, Any]:
        """Run the bulk refresh. The caller must hold the progress via try_begin()."""
        error = None
        try:
            projects = list(await asyncio.to_thread(lambda: list(self.source.list_projects())))
            await asyncio.to_thread(self.modalities.initialize, projects)
            batches = [projects[i : i + self.batch_size] for i in range(0, len(projects), self.batch_size)]
            self.progress.set_plan(len(projects), len(batches))
            logger.info(f"Refreshing {len(projects)} project(s) in batches of {self.batch_size}")

            collected: dict[str, Any] = {}
            results: list[dict[str, Any]] = []
            for number, batch in enumerate(batches, start=1):
                self.progress.set_batch(number)
                logger.info(f"Processing batch {number}/{len(batches)} ({len(batch)} project(s))")
                results.extend(await asyncio.gather(*(self._refresh_one(project, collected) for project in batch)))

            await asyncio.to_thread(self._finalize, projects, collected)

            successful = sum(1 for r in results if r["success"])
            return {
                "success": True,
                "results": results,
                "total_projects": len(projects),
                "successful": successful,
                "failed": len(results) - successful,
            }
        except AnnotrackError as e:
            error = str(e)
            logger.error(f"Bulk refresh failed: {e}")
            raise
        finally:
            self.progress.finish(error)

    def _finalize(self, projects: list[Mapping[str, Any]], collected: dict[str, Any]) -> None:
        if collected:
            self.project_history.append_bulk(collected)

        titles = {str(p["id"]): p.get("title") for p in projects}
        pending = []
        for project_id in collected:
            pending.extend(self.notifications.check_project_training_readiness(project_id, titles.get(project_id)))
        added = self.notifications.add_notifications(pending)
        if added:
            logger.info(f"{added} new notification(s)")

        try:
            self.aggregator.refresh_all_categories(projects)
        except AnnotrackError as e:
            logger.error(f"Category aggregation failed: {e}")

        self.time_series.store_snapshot()

    def start_refresh_all(self) -> bool:
        """Claim the progress for a new bulk refresh; False if one is running."""
        return self.progress.try_begin()

    def refresh_all_blocking(self) -> dict[str, Any]:
        """Run a full bulk refresh on the calling thread.

        Raises:
            RefreshInProgressError: If a bulk refresh is already running
        """
        if not self.progress.try_begin():
            raise RefreshInProgressError("A bulk refresh is already running")
        return asyncio.run(self.run_refresh_all())
