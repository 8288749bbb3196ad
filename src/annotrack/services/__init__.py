"""
annotrack services module

Components of the aggregation pipeline and the wiring that builds them
around one document store and one project source.
"""

from __future__ import annotations

from dataclasses import dataclass

from annotrack.catalog.modality import ModalityClassifier
from annotrack.client import ProjectSource
from annotrack.config import Settings, get_settings
from annotrack.storage.base import DocumentStore
from annotrack.storage.documents import CATEGORY_HISTORY, PROJECT_HISTORY
from annotrack.storage.history import HistoryStore

from .aggregator import CategoryAggregator
from .checkpoints import CheckpointStore
from .combined import CombinedMetricsService
from .growth import GrowthCalculator
from .modalities import ModalityService
from .notifications import NotificationEngine
from .refresh import RefreshProgress, RefreshService
from .scheduler import RefreshScheduler
from .time_series import TimeSeriesEngine


@dataclass
class Services:
    """All pipeline components sharing one store and one project source."""

    settings: Settings
    store: DocumentStore
    source: ProjectSource
    project_history: HistoryStore
    category_history: HistoryStore
    modalities: ModalityService
    checkpoints: CheckpointStore
    notifications: NotificationEngine
    aggregator: CategoryAggregator
    growth: GrowthCalculator
    time_series: TimeSeriesEngine
    combined: CombinedMetricsService
    refresh: RefreshService
    scheduler: RefreshScheduler

    @property
    def progress(self) -> RefreshProgress:
        return self.refresh.progress


def build_services(store: DocumentStore, source: ProjectSource, settings: Settings | None = None) -> Services:
    """Wire the pipeline components together."""
    settings = settings or get_settings()
    classifier = ModalityClassifier()

    project_history = HistoryStore(store, PROJECT_HISTORY, limit=settings.history_limit)
    category_history = HistoryStore(store, CATEGORY_HISTORY, limit=settings.history_limit)
    modalities = ModalityService(store, classifier)
    checkpoints = CheckpointStore(
        store,
        project_history,
        category_history,
        list_projects=source.list_projects,
        classifier=classifier,
        class_lookup=settings.class_checkpoint_lookup,
    )
    notifications = NotificationEngine(store, checkpoints, project_history, category_history, threshold=settings.retrain_threshold)
    aggregator = CategoryAggregator(source, project_history, category_history, classifier)
    time_series = TimeSeriesEngine(store, project_history, modalities)
    refresh = RefreshService(
        source,
        project_history,
        aggregator,
        notifications,
        time_series,
        modalities,
        progress=RefreshProgress(),
        batch_size=settings.refresh_batch_size,
    )

    return Services(
        settings=settings,
        store=store,
        source=source,
        project_history=project_history,
        category_history=category_history,
        modalities=modalities,
        checkpoints=checkpoints,
        notifications=notifications,
        aggregator=aggregator,
        growth=GrowthCalculator(source, checkpoints, modalities),
        time_series=time_series,
        combined=CombinedMetricsService(store, category_history),
        refresh=refresh,
        scheduler=RefreshScheduler(store, refresh),
    )


__all__ = [
    "CategoryAggregator",
    "CheckpointStore",
    "CombinedMetricsService",
    "GrowthCalculator",
    "ModalityService",
    "NotificationEngine",
    "RefreshProgress",
    "RefreshScheduler",
    "RefreshService",
    "Services",
    "TimeSeriesEngine",
    "build_services",
]
