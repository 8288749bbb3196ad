"""
Tests for project listing, history and refresh endpoints.
"""

import pytest

from annotrack.dashboard.dependencies import get_services


@pytest.fixture
def seeded_source(source, task):
    source.add_project(1, "OPG batch", [task(1, "Cavity"), {"id": 2, "annotations": []}])
    source.add_project(2, "IOPA set", [task(1, "Pulp")])
    return source


class TestProjectsAPI:
    """Tests for project endpoints."""

    def test_list_projects_before_refresh(self, test_client, seeded_source):
        response = test_client.get("/api/projects")

        assert response.status_code == 200
        projects = response.json()
        assert [p["id"] for p in projects] == [1, 2]
        assert projects[0]["title"] == "OPG batch"
        assert projects[0]["modality"] == "OPG"
        assert projects[0]["has_history"] is False
        assert projects[0]["latest_metrics"] is None
        assert get_services().modalities.get_all() == {"1": "OPG", "2": "IOPA"}

    def test_refresh_project(self, test_client, seeded_source):
        response = test_client.post("/api/projects/1/refresh", json={"project_title": "OPG batch"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["metrics"]["cavity"] == {"image_count": 1, "annotation_count": 1}
        assert data["metrics"]["_summary"]["unannotated_images"] == 1

        history = test_client.get("/api/projects/1").json()
        assert history["project_id"] == 1
        assert len(history["history"]) == 1

        listed = test_client.get("/api/projects").json()
        assert listed[0]["has_history"] is True
        assert listed[0]["latest_metrics"]["metrics"]["cavity"]["image_count"] == 1

    def test_refresh_project_without_body(self, test_client, seeded_source):
        assert test_client.post("/api/projects/2/refresh").status_code == 200

    def test_unknown_project_history_is_empty(self, test_client):
        assert test_client.get("/api/projects/99").json() == {"project_id": 99, "history": []}

    def test_refresh_all(self, test_client, seeded_source):
        response = test_client.post("/api/projects/refresh-all")

        assert response.status_code == 202
        assert response.json()["success"] is True

        progress = test_client.get("/api/projects/refresh-progress").json()
        assert progress["is_running"] is False
        assert progress["total"] == 2
        assert progress["successful"] == 2
        assert test_client.get("/api/categories").json()["Pathology"]["history_count"] == 1

    def test_refresh_all_conflict(self, test_client, seeded_source):
        get_services().progress.try_begin()

        response = test_client.post("/api/projects/refresh-all")

        assert response.status_code == 409
        assert response.json()["progress"]["is_running"] is True

    def test_refresh_all_failures_only_in_progress(self, test_client, seeded_source):
        seeded_source.failing.add(2)

        response = test_client.post("/api/projects/refresh-all")

        assert response.status_code == 202
        progress = test_client.get("/api/projects/refresh-progress").json()
        assert progress["failed"] == 1
        assert progress["successful"] == 1

    def test_upstream_error_maps_to_502(self, test_client, seeded_source):
        seeded_source.failing.add(1)

        response = test_client.post("/api/projects/1/refresh")

        assert response.status_code == 502
        assert "unavailable" in response.json()["error"]

    def test_invalid_project_id(self, test_client):
        assert test_client.get("/api/projects/abc").status_code == 422
