"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from annotrack.config import Settings, reset_settings
from annotrack.dashboard.dependencies import configure_data_dir, configure_project_source, get_services
from annotrack.dashboard.main import app
from annotrack.exceptions import UpstreamAPIError
from annotrack.services import build_services
from annotrack.storage import MemoryDocumentStore

_ENV_VARS = (
    "ANNOTRACK_DATA_DIR",
    "XDG_DATA_HOME",
    "ANNOTRACK_STORAGE_BACKEND",
    "ANNOTRACK_LABEL_STUDIO_URL",
    "ANNOTRACK_LABEL_STUDIO_API_KEY",
    "LABEL_STUDIO_URL",
    "LABEL_STUDIO_API_KEY",
    "ANNOTRACK_RETRAIN_THRESHOLD",
    "RETRAIN_THRESHOLD",
    "ANNOTRACK_HISTORY_LIMIT",
    "ANNOTRACK_REFRESH_BATCH_SIZE",
    "ANNOTRACK_STORAGE_READ_RETRIES",
    "ANNOTRACK_CLASS_CHECKPOINT_LOOKUP",
    "ANNOTRACK_VERIFY_SSL",
    "ANNOTRACK_REQUEST_TIMEOUT",
)


@pytest.fixture(autouse=True)
def clean_env_for_tests(monkeypatch):
    """Clean environment variables for test isolation.

    Ensures tests don't accidentally write to the user's real data directory
    or talk to a real annotation tool. Applied automatically to all tests.
    """
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


def labeled_task(task_id, *labels, label_type="labels"):
    """Build a task whose single annotation carries the given labels."""
    return {
        "id": task_id,
        "annotations": [{"result": [{"type": label_type, "value": {label_type: [label]}} for label in labels]}],
    }


class FakeProjectSource:
    """In-memory stand-in for the annotation tool."""

    def __init__(self, projects=None, tasks=None):
        self.projects = list(projects or [])
        self.tasks = dict(tasks or {})
        self.failing: set = set()
        self.task_calls: list = []

    def add_project(self, project_id, title, tasks=()):
        self.projects.append({"id": project_id, "title": title})
        self.tasks[project_id] = list(tasks)

    def list_projects(self):
        return list(self.projects)

    def list_project_tasks(self, project_id):
        self.task_calls.append(project_id)
        if project_id in self.failing:
            raise UpstreamAPIError(f"Project {project_id} unavailable", status_code=500)
        return list(self.tasks.get(project_id, []))


@pytest.fixture
def task():
    """Factory for labeled tasks."""
    return labeled_task


@pytest.fixture
def source():
    """An empty fake project source."""
    return FakeProjectSource()


@pytest.fixture
def store():
    """An empty in-memory document store."""
    return MemoryDocumentStore()


@pytest.fixture
def settings():
    """Default settings, independent of the environment."""
    return Settings()


@pytest.fixture
def services(store, source, settings):
    """Pipeline components wired around the in-memory store and fake source."""
    return build_services(store, source, settings)


@pytest.fixture
def test_client(tmp_path, source):
    """Test client for the FastAPI app backed by a temporary data directory."""
    configure_data_dir(str(tmp_path))
    configure_project_source(source)
    client = TestClient(app, headers={"X-Requested-With": "XMLHttpRequest"})
    yield client
    get_services().scheduler.shutdown()
    configure_project_source(None)
    configure_data_dir(None)
