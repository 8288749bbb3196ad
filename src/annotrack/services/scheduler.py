"""
Daily refresh scheduler.

Runs the bulk refresh once a day at a configured local time on a daemon
thread. The schedule and last/next run times persist in the scheduler config
document so the scheduler can resume after a restart; a human-readable run
log is appended to the scheduler log document.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Any

from annotrack.exceptions import AnnotrackError, RefreshInProgressError, SchedulerAlreadyRunningError
from annotrack.storage.base import DocumentStore
from annotrack.storage.documents import SCHEDULER_CONFIG, SCHEDULER_LOG, default_scheduler_config
from annotrack.utils import to_iso, utc_now_iso

from .refresh import RefreshService

logger = logging.getLogger(__name__)

DEFAULT_HOUR = 2
DEFAULT_MINUTE = 8


def calculate_next_run(hour: int, minute: int, now: datetime | None = None) -> datetime:
    """Return the next local occurrence of hour:minute strictly after now."""
    now = now or datetime.now().astimezone()
    next_run = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if next_run <= now:
        next_run += timedelta(days=1)
    return next_run


class RefreshScheduler:
    """Start, stop and observe the daily refresh."""

    def __init__(self, store: DocumentStore, refresh: RefreshService) -> None:
        self.store = store
        self.refresh = refresh

        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._hour = DEFAULT_HOUR
        self._minute = DEFAULT_MINUTE

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def log(self, message: str) -> None:
        """Append a timestamped line to the scheduler log."""
        self.store.append_line(SCHEDULER_LOG, f"{utc_now_iso()} - {message}")

    def get_logs(self, lines: int = 50) -> str:
        """Return the last non-blank log lines."""
        content = self.store.read_text(SCHEDULER_LOG, "")
        all_lines = [line for line in content.split("\n") if line.strip()]
        return "\n".join(all_lines[-lines:]) if lines > 0 else ""

    def get_config(self) -> dict[str, Any]:
        return self.store.read(SCHEDULER_CONFIG, default_scheduler_config())

    def _update_config(self, **changes: Any) -> dict[str, Any]:
        def mutate(config: dict[str, Any]) -> dict[str, Any]:
            config.update(changes)
            return dict(config)

        return self.store.update(SCHEDULER_CONFIG, default_scheduler_config(), mutate)

    def start(self, hour: int = DEFAULT_HOUR, minute: int = DEFAULT_MINUTE) -> bool:
        """Start the daily refresh at hour:minute local time.

        Raises:
            SchedulerAlreadyRunningError: If the scheduler is already running
            ValueError: If hour or minute is out of range
        """
        if not 0 <= hour <= 23 or not 0 <= minute <= 59:
            raise ValueError(f"Invalid schedule time: {hour}:{minute}")

        with self._lock:
            if self.is_running:
                raise SchedulerAlreadyRunningError("Scheduler already running")

            self._hour = hour
            self._minute = minute
            self._stop_event = threading.Event()
            self._thread = threading.Thread(target=self._run, args=(self._stop_event,), name="annotrack-scheduler", daemon=True)
            self._thread.start()

        self._update_config(enabled=True, hour=hour, minute=minute, next_run=to_iso(calculate_next_run(hour, minute)))
        self.log(f"Scheduler started: Daily refresh at {hour}:{minute:02d}")
        logger.info(f"Scheduler started: daily refresh at {hour:02d}:{minute:02d}")
        return True

    def stop(self, timeout: float = 5.0) -> bool:
        """Stop the scheduler.

        Returns:
            False if it was not running
        """
        with self._lock:
            if not self.is_running:
                return False
            self._stop_event.set()
            thread = self._thread
            self._thread = None

        if thread is not threading.current_thread():
            thread.join(timeout=timeout)

        self._update_config(enabled=False, next_run=None)
        self.log("Scheduler stopped")
        logger.info("Scheduler stopped")
        return True

    def shutdown(self, timeout: float = 5.0) -> None:
        """Stop the loop thread without changing the persisted config."""
        with self._lock:
            self._stop_event.set()
            thread = self._thread
            self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def auto_start(self) -> bool:
        """Resume the scheduler if its persisted config says it was enabled."""
        config = self.get_config()
        if not config.get("enabled"):
            return False
        try:
            return self.start(config.get("hour", DEFAULT_HOUR), config.get("minute", DEFAULT_MINUTE))
        except (SchedulerAlreadyRunningError, ValueError) as e:
            logger.warning(f"Could not auto-start scheduler: {e}")
            return False

    def get_status(self) -> dict[str, Any]:
        config = self.get_config()
        hour = config.get("hour", DEFAULT_HOUR)
        minute = config.get("minute", DEFAULT_MINUTE)
        return {
            "enabled": bool(config.get("enabled")),
            "is_running": self.is_running,
            "schedule": f"{hour:02d}:{minute:02d}",
            "hour": hour,
            "minute": minute,
            "last_run": config.get("last_run"),
            "next_run": config.get("next_run"),
        }

    def trigger_manual(self) -> bool:
        """Run a refresh now on a background thread."""
        self.log("Manual refresh triggered")
        threading.Thread(target=self.run_refresh, name="annotrack-manual-refresh", daemon=True).start()
        return True

    def run_refresh(self) -> None:
        """Run one full refresh and record its outcome in the scheduler log."""
        self.log("=== Starting scheduled refresh ===")
        try:
            summary = self.refresh.refresh_all_blocking()
        except RefreshInProgressError:
            self.log("Skipped: a bulk refresh is already running")
            return
        except AnnotrackError as e:
            logger.error(f"Scheduled refresh failed: {e}")
            self.log(f"Fatal error in scheduled refresh: {e}")
            return

        self.log(f"Found {summary['total_projects']} projects")
        for result in summary["results"]:
            if result["success"]:
                self.log(f"  Completed: project {result['project_id']}")
            else:
                self.log(f"  Error refreshing project {result['project_id']}: {result['error']}")
        self.log("  Time series snapshot created")

        config = self.get_config()
        self._update_config(
            last_run=utc_now_iso(),
            next_run=to_iso(calculate_next_run(config.get("hour", DEFAULT_HOUR), config.get("minute", DEFAULT_MINUTE))),
        )
        self.log("=== Scheduled refresh completed successfully ===")

    def _run(self, stop_event: threading.Event) -> None:
        """Main scheduler loop."""
        while not stop_event.is_set():
            next_run = calculate_next_run(self._hour, self._minute)
            delay = (next_run - datetime.now().astimezone()).total_seconds()
            if stop_event.wait(timeout=max(delay, 0)):
                break
            try:
                self.run_refresh()
            except Exception as e:
                logger.error(f"Error in scheduler loop: {e}")
