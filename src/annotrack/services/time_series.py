"""
TimeSeriesEngine - daily snapshots of (class, modality) totals.

Stored document:

    {"YYYY-MM-DD": {"<class>-<modality>": {"images": int, "annotations": int}}}

Totals come from cached project history, never from a live fetch.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date, timedelta
from typing import Any

from annotrack.catalog.categories import CategoryCatalog, default_catalog
from annotrack.catalog.modality import DEFAULT_MODALITY
from annotrack.metrics import iter_class_metrics
from annotrack.storage.base import DocumentStore
from annotrack.storage.documents import TIME_SERIES
from annotrack.storage.history import HistoryStore
from annotrack.utils import date_key, today_utc, utc_now_iso, validate_date_string

from .growth import series_key
from .modalities import ModalityService

logger = logging.getLogger(__name__)

PRESET_DAYS = {"24h": 1, "7d": 7, "30d": 30}
DEFAULT_PRESET = "7d"


def split_series_key(key: str) -> tuple[str, str]:
    """Split "<class>-<modality>" on the last hyphen so hyphenated classes survive."""
    class_name, sep, modality = key.rpartition("-")
    if not sep:
        return key, DEFAULT_MODALITY
    return class_name, modality


def _add_class_totals(totals: dict[str, dict[str, int]], metrics: Mapping[str, Any], modality: str) -> None:
    for class_name, class_metrics in iter_class_metrics(metrics):
        slot = totals.setdefault(series_key(class_name, modality), {"images": 0, "annotations": 0})
        slot["images"] += class_metrics.get("image_count", 0)
        slot["annotations"] += class_metrics.get("annotation_count", 0)


class TimeSeriesEngine:
    """Record, query and backfill daily (class, modality) totals."""

    def __init__(
        self,
        store: DocumentStore,
        project_history: HistoryStore,
        modalities: ModalityService,
        catalog: CategoryCatalog | None = None,
    ) -> None:
        self.store = store
        self.project_history = project_history
        self.modalities = modalities
        self.catalog = catalog or default_catalog

    def _modality_of(self, assignments: Mapping[str, str], project_id: str) -> str:
        return assignments.get(project_id) or DEFAULT_MODALITY

    def get_current_totals(self) -> dict[str, dict[str, int]]:
        """Sum the latest history entry of every project per (class, modality)."""
        assignments = self.modalities.get_all()
        totals: dict[str, dict[str, int]] = {}
        for project_id, slot in self.project_history.read_all().items():
            entries = (slot or {}).get("history") or []
            if not entries:
                continue
            _add_class_totals(totals, entries[-1]["metrics"], self._modality_of(assignments, project_id))
        return totals

    def store_snapshot(self, today: date | None = None) -> dict[str, Any]:
        """Record current totals under today's UTC date, replacing any entry for today."""
        day = (today or today_utc()).isoformat()
        totals = self.get_current_totals()

        def mutate(series: dict[str, Any]) -> None:
            series[day] = totals

        self.store.update(TIME_SERIES, {}, mutate)
        logger.info(f"Time-series snapshot stored for {day} ({len(totals)} series)")
        return {"date": day, "metrics": totals}

    def get_range(self, start: str, end: str) -> list[dict[str, Any]]:
        """Group stored days in [start, end] by series key.

        Returns:
            [{modalityClass, className, modality, dailyData}], dailyData newest first
        """
        series: dict[str, dict[str, Any]] = {}
        for day, metrics in self.store.read(TIME_SERIES, {}).items():
            if not start <= day <= end:
                continue
            for key, values in metrics.items():
                entry = series.get(key)
                if entry is None:
                    class_name, modality = split_series_key(key)
                    entry = {"modalityClass": key, "className": class_name, "modality": modality, "dailyData": []}
                    series[key] = entry
                entry["dailyData"].append(
                    {"date": day, "images": values.get("images", 0), "annotations": values.get("annotations", 0)}
                )

        for entry in series.values():
            entry["dailyData"].sort(key=lambda d: d["date"], reverse=True)
        return list(series.values())

    @staticmethod
    def calculate_daily_deltas(series: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Add day-over-day deltas to series whose dailyData is newest first.

        The oldest day has zero deltas. totalImages/totalAnnotations are the
        values of the most recent day.
        """
        result = []
        for entry in series:
            days = entry["dailyData"]
            with_deltas = []
            for index, day in enumerate(days):
                if index == len(days) - 1:
                    deltas = {"imagesDelta": 0, "annotationsDelta": 0}
                else:
                    prior = days[index + 1]
                    deltas = {
                        "imagesDelta": day["images"] - prior["images"],
                        "annotationsDelta": day["annotations"] - prior["annotations"],
                    }
                with_deltas.append({**day, **deltas})

            latest = with_deltas[0] if with_deltas else {}
            result.append(
                {
                    **entry,
                    "totalImages": latest.get("images", 0),
                    "totalAnnotations": latest.get("annotations", 0),
                    "dailyData": with_deltas,
                }
            )
        return result

    def backfill(self) -> dict[str, Any]:
        """Rebuild daily totals from project history, filling only missing days.

        Each history entry counts toward the day written in its own
        timestamp. Days already recorded are never overwritten.
        """
        assignments = self.modalities.get_all()
        computed: dict[str, dict[str, dict[str, int]]] = {}

        for project_id, slot in self.project_history.read_all().items():
            modality = self._modality_of(assignments, project_id)
            for entry in (slot or {}).get("history") or []:
                day_totals = computed.setdefault(date_key(entry["timestamp"]), {})
                _add_class_totals(day_totals, entry["metrics"], modality)

        def mutate(series: dict[str, Any]) -> int:
            added = 0
            for day, totals in computed.items():
                if day not in series:
                    series[day] = totals
                    added += 1
            return added

        added = self.store.update(TIME_SERIES, {}, mutate)
        dates = sorted(computed)
        total_dates = len(self.store.read(TIME_SERIES, {}))
        logger.info(f"Backfill complete: {added} new day(s) out of {len(dates)} in history")

        return {
            "success": True,
            "datesAdded": added,
            "dateRange": {"start": dates[0] if dates else None, "end": dates[-1] if dates else None},
            "totalDates": total_dates,
        }

    @staticmethod
    def get_preset_range(preset: str | None, today: date | None = None) -> tuple[str, str]:
        """Return (start, end) calendar days for '24h', '7d' or '30d'; anything else is 7d."""
        end = today or today_utc()
        days = PRESET_DAYS.get(preset or DEFAULT_PRESET, PRESET_DAYS[DEFAULT_PRESET])
        return (end - timedelta(days=days)).isoformat(), end.isoformat()

    def query(
        self,
        preset: str | None = None,
        start: str | None = None,
        end: str | None = None,
        today: date | None = None,
    ) -> dict[str, Any]:
        """Range query with deltas and categories, largest series first.

        An explicit start and end take priority over the preset.

        Raises:
            ValueError: If only one of start and end is given, either is not a
                YYYY-MM-DD day, or start is after end
        """
        if start or end:
            if not (start and end):
                raise ValueError("startDate and endDate must be given together")
            validate_date_string(start, "startDate")
            validate_date_string(end, "endDate")
            if start > end:
                raise ValueError(f"startDate {start} is after endDate {end}")
        else:
            start, end = self.get_preset_range(preset, today)

        metrics = self.calculate_daily_deltas(self.get_range(start, end))
        for entry in metrics:
            entry["category"] = self.catalog.category_for(entry["className"])
        metrics.sort(key=lambda e: e["totalImages"], reverse=True)

        return {
            "success": True,
            "serverTime": utc_now_iso(),
            "timeRange": {
                "from": start,
                "to": end,
                "days": (date.fromisoformat(end) - date.fromisoformat(start)).days,
            },
            "count": len(metrics),
            "metrics": metrics,
        }
