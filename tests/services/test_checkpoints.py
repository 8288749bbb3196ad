"""Tests for checkpoint creation and notes."""

import pytest

from annotrack.services import CheckpointStore
from annotrack.storage import HistoryStore


@pytest.fixture
def histories(store):
    return HistoryStore(store, "project_history"), HistoryStore(store, "category_history")


def _checkpoints(store, histories, projects=(), **kwargs):
    project_history, category_history = histories
    return CheckpointStore(store, project_history, category_history, list_projects=lambda: list(projects), **kwargs)


class TestProjectCheckpoints:
    """Tests for project checkpoints."""

    def test_no_history_returns_false(self, store, histories):
        checkpoints = _checkpoints(store, histories)

        assert checkpoints.create_project_checkpoint(1, "OPG batch") is False
        assert checkpoints.get_project_checkpoint(1) is None

    def test_copies_latest_entry(self, store, histories):
        project_history, _ = histories
        project_history.append(1, {"cavity": {"image_count": 1}}, timestamp="2024-01-01T00:00:00Z")
        project_history.append(1, {"cavity": {"image_count": 3}}, timestamp="2024-01-02T00:00:00Z")
        checkpoints = _checkpoints(store, histories)

        assert checkpoints.create_project_checkpoint(1, "OPG batch", note="before training") is True

        checkpoint = checkpoints.get_project_checkpoint("1")
        assert checkpoint["project_id"] == "1"
        assert checkpoint["project_title"] == "OPG batch"
        assert checkpoint["timestamp"] == "2024-01-02T00:00:00Z"
        assert checkpoint["metrics"] == {"cavity": {"image_count": 3}}
        assert checkpoint["note"] == "before training"
        assert checkpoint["marked_at"].endswith("Z")

    def test_default_title(self, store, histories):
        histories[0].append(4, {})
        checkpoints = _checkpoints(store, histories)

        checkpoints.create_project_checkpoint(4, None)

        assert checkpoints.get_project_checkpoint(4)["project_title"] == "Project 4"

    def test_update_note(self, store, histories):
        histories[0].append(1, {})
        checkpoints = _checkpoints(store, histories)
        checkpoints.create_project_checkpoint(1, "t")

        assert checkpoints.update_project_note(1, "retrained") is True
        checkpoint = checkpoints.get_project_checkpoint(1)
        assert checkpoint["note"] == "retrained"
        assert "updated_at" in checkpoint

    def test_update_note_missing(self, store, histories):
        assert _checkpoints(store, histories).update_project_note(1, "x") is False

    def test_get_all_has_every_section(self, store, histories):
        assert _checkpoints(store, histories).get_all() == {"projects": {}, "categories": {}, "classes": {}}


class TestCategoryCheckpoints:
    """Tests for category checkpoints."""

    def test_create_and_note(self, store, histories):
        _, category_history = histories
        category_history.append("Pathology", {"cavity": {"OPG": {"images": 2, "annotations": 3}}})
        checkpoints = _checkpoints(store, histories)

        assert checkpoints.create_category_checkpoint("Pathology") is True
        assert checkpoints.get_category_checkpoint("Pathology")["metrics"] == {"cavity": {"OPG": {"images": 2, "annotations": 3}}}
        assert checkpoints.update_category_note("Pathology", "n") is True
        assert checkpoints.update_category_note("Others", "n") is False

    def test_no_history(self, store, histories):
        assert _checkpoints(store, histories).create_category_checkpoint("Pathology") is False


class TestClassCheckpoints:
    """Tests for class checkpoints summed over a modality."""

    @pytest.fixture
    def projects(self, histories):
        project_history, _ = histories
        project_history.append(1, {"cavity": {"image_count": 2, "annotation_count": 5}})
        project_history.append(2, {"cavity": {"image_count": 3, "annotation_count": 4}})
        project_history.append(3, {"cavity": {"image_count": 10, "annotation_count": 10}})
        return [
            {"id": 1, "title": "OPG batch 1"},
            {"id": 2, "title": "OPG batch 2"},
            {"id": 3, "title": "Bitewing batch"},
            {"id": 4, "title": "OPG without history"},
        ]

    def test_sums_projects_of_modality(self, store, histories, projects):
        checkpoints = _checkpoints(store, histories, projects)

        assert checkpoints.create_class_checkpoint("cavity", "OPG", note="n") is True

        checkpoint = checkpoints.get_class_checkpoint("cavity", "OPG")
        assert checkpoint["class_name"] == "cavity"
        assert checkpoint["xray_type"] == "OPG"
        assert checkpoint["metrics"] == {"images": 5, "annotations": 9}
        assert "cavity_OPG" in checkpoints.get_all()["classes"]

    def test_exact_lookup_undercounts_capitalized_name(self, store, histories, projects):
        """Test that the default lookup uses the given class name verbatim."""
        checkpoints = _checkpoints(store, histories, projects)

        assert checkpoints.create_class_checkpoint("Cavity", "OPG") is True
        assert checkpoints.get_class_checkpoint("Cavity", "OPG")["metrics"] == {"images": 0, "annotations": 0}

    def test_normalized_lookup(self, store, histories, projects):
        checkpoints = _checkpoints(store, histories, projects, class_lookup="normalized")

        checkpoints.create_class_checkpoint("Cavity 2", "OPG")

        assert checkpoints.get_class_checkpoint("Cavity 2", "OPG")["metrics"] == {"images": 5, "annotations": 9}

    def test_update_class_note(self, store, histories, projects):
        checkpoints = _checkpoints(store, histories, projects)
        checkpoints.create_class_checkpoint("cavity", "Bitewing")

        assert checkpoints.update_class_note("cavity", "Bitewing", "n") is True
        assert checkpoints.update_class_note("cavity", "IOPA", "n") is False

    def test_invalid_lookup_mode(self, store, histories):
        with pytest.raises(ValueError):
            _checkpoints(store, histories, class_lookup="fuzzy")
