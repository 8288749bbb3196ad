"""
Tests for modality, scheduler, application log, health and security endpoints.
"""

import json
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from annotrack import __version__
from annotrack.dashboard.dependencies import get_services
from annotrack.dashboard.main import app
from annotrack.logger import MAX_RECENT_LOGS, recent_logs


class TestModalityAPI:
    """Tests for modality assignment endpoints."""

    def test_set_and_get(self, test_client):
        response = test_client.put("/api/modalities/3", json={"modality": "Bitewing"})

        assert response.json() == {"success": True, "projectId": "3", "modality": "Bitewing"}
        assert test_client.get("/api/modalities").json() == {"3": "Bitewing"}

    def test_invalid_modality_rejected_without_write(self, test_client):
        response = test_client.put("/api/modalities/3", json={"modality": "CBCT"})

        assert response.status_code == 400
        assert "Must be one of" in response.json()["error"]
        assert test_client.get("/api/modalities").json() == {}


class TestSchedulerAPI:
    """Tests for scheduler endpoints."""

    def test_start_stop(self, test_client):
        assert test_client.post("/api/scheduler/start", json={"hour": 3, "minute": 0}).json() == {"success": True}

        status = test_client.get("/api/scheduler/status").json()
        assert status["enabled"] is True
        assert status["is_running"] is True
        assert status["schedule"] == "03:00"

        assert test_client.post("/api/scheduler/start").status_code == 409
        assert test_client.post("/api/scheduler/stop").json() == {"success": True}
        assert test_client.post("/api/scheduler/stop").json() == {"success": False}
        assert test_client.get("/api/scheduler/status").json()["enabled"] is False

    def test_start_invalid_time(self, test_client):
        assert test_client.post("/api/scheduler/start", json={"hour": 24, "minute": 0}).status_code == 422

    def test_logs(self, test_client):
        test_client.post("/api/scheduler/start")

        logs = test_client.get("/api/scheduler/logs", params={"lines": 10}).json()["logs"]

        assert "Scheduler started: Daily refresh at 2:08" in logs

    def test_trigger(self, test_client):
        scheduler = get_services().scheduler
        scheduler.run_refresh = MagicMock()

        response = test_client.post("/api/scheduler/trigger")

        assert response.json()["success"] is True
        assert "Manual refresh triggered" in test_client.get("/api/scheduler/logs").json()["logs"]

    def test_lifespan_resumes_enabled_scheduler(self, tmp_path, test_client):
        (tmp_path / "scheduler_config.json").write_text(
            json.dumps({"enabled": True, "hour": 6, "minute": 45, "last_run": None, "next_run": None})
        )

        with TestClient(app) as client:
            status = client.get("/api/scheduler/status").json()
            assert status["is_running"] is True
            assert status["schedule"] == "06:45"

        assert get_services().scheduler.is_running is False
        assert get_services().scheduler.get_config()["enabled"] is True


class TestHealthAndSecurity:
    """Tests for health check, CSRF header and security headers."""

    def test_health(self, test_client):
        data = test_client.get("/api/health").json()

        assert data["status"] == "ok"
        assert data["version"] == __version__

    def test_security_headers(self, test_client):
        response = test_client.get("/api/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"

    def test_mutation_requires_csrf_header(self, test_client):
        client = TestClient(app)

        response = client.post("/api/time-series/snapshot")

        assert response.status_code == 403
        assert client.get("/api/notifications").status_code == 200


class TestApplicationLogsAPI:
    """Tests for the application log endpoints."""

    @pytest.fixture(autouse=True)
    def empty_buffer(self):
        recent_logs.clear()
        yield
        recent_logs.clear()

    def test_frontend_logs_accepts_single_and_batch(self, test_client):
        single = test_client.post("/api/logs/frontend", json={"level": "error", "message": "Chart failed", "source": "growth"})
        batch = test_client.post(
            "/api/logs/frontend",
            json=[
                {"message": "Opened settings", "source": "settings", "context": {"tab": "logs"}},
                {"level": "warn", "message": "Slow response"},
            ],
        )

        assert single.json() == {"success": True, "received": 1}
        assert batch.json() == {"success": True, "received": 2}

        logs = test_client.get("/api/logs/recent", params={"source": "frontend"}).json()
        assert logs["total"] == 3
        assert logs["filtered"] is True
        assert [e["message"] for e in logs["logs"]] == ["Slow response", "Opened settings", "Chart failed"]
        assert logs["logs"][0]["source"] == "frontend:unknown"
        assert logs["logs"][1]["context"] == {"tab": "logs"}

    def test_recent_filters_by_level_and_limit(self, test_client):
        test_client.post(
            "/api/logs/frontend",
            json=[{"level": "error", "message": f"error {i}", "source": "app"} for i in range(3)]
            + [{"level": "info", "message": "fine", "source": "app"}],
        )

        errors = test_client.get("/api/logs/recent", params={"level": "error", "source": "frontend:app", "limit": 2}).json()

        assert [e["message"] for e in errors["logs"]] == ["error 2", "error 1"]
        assert test_client.get("/api/logs/recent", params={"limit": 0}).status_code == 422

    def test_backend_records_are_listed(self, test_client):
        test_client.post("/api/time-series/snapshot")

        logs = test_client.get("/api/logs/recent", params={"source": "backend:annotrack"}).json()

        assert logs["total"] >= 1
        assert all(e["source"].startswith("backend:annotrack") for e in logs["logs"])

    def test_frontend_logs_require_csrf_header(self, test_client):
        response = TestClient(app).post("/api/logs/frontend", json={"message": "x"})

        assert response.status_code == 403

    def test_buffer_is_bounded(self, test_client):
        test_client.post("/api/logs/frontend", json=[{"message": f"m{i}", "source": "flood"} for i in range(MAX_RECENT_LOGS + 20)])

        logs = test_client.get("/api/logs/recent", params={"source": "flood", "limit": MAX_RECENT_LOGS}).json()["logs"]

        assert len(recent_logs.entries()) == MAX_RECENT_LOGS
        assert logs[0]["message"] == f"m{MAX_RECENT_LOGS + 19}"

    def test_stats(self, test_client):
        test_client.post("/api/logs/frontend", json=[{"level": "error", "message": "a"}, {"level": "warn", "message": "b"}])

        stats = test_client.get("/api/logs/stats").json()

        assert stats["byLevel"]["error"] >= 1
        assert stats["byLevel"]["warn"] >= 1
        assert stats["lastHour"] == stats["total"]

    def test_download(self, test_client):
        test_client.post("/api/logs/frontend", json={"level": "error", "message": "Chart failed", "source": "growth"})

        as_json = test_client.get("/api/logs/download", params={"source": "frontend"})
        as_text = test_client.get("/api/logs/download", params={"format": "text", "source": "frontend"})

        assert as_json.json()[0]["message"] == "Chart failed"
        assert "attachment; filename=logs-" in as_json.headers["content-disposition"]
        assert "[ERROR] [frontend:growth] Chart failed {}" in as_text.text
        assert test_client.get("/api/logs/download", params={"format": "xml"}).status_code == 400
