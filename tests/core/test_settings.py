"""Tests for config module."""

from pathlib import Path

import pytest

from annotrack.config import Settings, get_data_dir, get_settings, reset_settings


class TestGetDataDir:
    """Tests for get_data_dir function."""

    def test_annotrack_data_dir_takes_priority(self, monkeypatch):
        """Test that ANNOTRACK_DATA_DIR has highest priority."""
        monkeypatch.setenv("ANNOTRACK_DATA_DIR", "/custom/annotrack/data")
        monkeypatch.setenv("XDG_DATA_HOME", "/should/not/be/used")

        assert get_data_dir() == Path("/custom/annotrack/data")

    def test_xdg_data_home(self, monkeypatch):
        monkeypatch.setenv("XDG_DATA_HOME", "/home/user/.local/share")

        assert get_data_dir() == Path("/home/user/.local/share/annotrack")

    def test_fallback_to_home_local_share(self):
        assert get_data_dir() == Path.home() / ".local" / "share" / "annotrack"

    @pytest.mark.parametrize("forbidden", ["/", "/etc", "/usr"])
    def test_system_directories_rejected(self, monkeypatch, forbidden):
        monkeypatch.setenv("ANNOTRACK_DATA_DIR", forbidden)

        with pytest.raises(ValueError, match="system directory"):
            get_data_dir()


class TestSettings:
    """Tests for Settings.from_env and the cached settings."""

    def test_defaults(self):
        settings = Settings.from_env()

        assert settings.retrain_threshold == 20.0
        assert settings.history_limit == 50
        assert settings.refresh_batch_size == 4
        assert settings.class_checkpoint_lookup == "exact"
        assert settings.verify_ssl is True
        assert settings.label_studio_url == ""

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("ANNOTRACK_LABEL_STUDIO_URL", "https://labels.example.com/")
        monkeypatch.setenv("ANNOTRACK_LABEL_STUDIO_API_KEY", "token")
        monkeypatch.setenv("ANNOTRACK_RETRAIN_THRESHOLD", "35")
        monkeypatch.setenv("ANNOTRACK_HISTORY_LIMIT", "10")
        monkeypatch.setenv("ANNOTRACK_VERIFY_SSL", "0")
        monkeypatch.setenv("ANNOTRACK_CLASS_CHECKPOINT_LOOKUP", "normalized")

        settings = Settings.from_env()

        assert settings.label_studio_url == "https://labels.example.com"
        assert settings.label_studio_api_key == "token"
        assert settings.retrain_threshold == 35.0
        assert settings.history_limit == 10
        assert settings.verify_ssl is False
        assert settings.class_checkpoint_lookup == "normalized"

    def test_legacy_variable_names(self, monkeypatch):
        monkeypatch.setenv("LABEL_STUDIO_URL", "https://legacy.example.com")
        monkeypatch.setenv("RETRAIN_THRESHOLD", "15")

        settings = Settings.from_env()

        assert settings.label_studio_url == "https://legacy.example.com"
        assert settings.retrain_threshold == 15.0

    def test_prefixed_variable_wins_over_legacy(self, monkeypatch):
        monkeypatch.setenv("ANNOTRACK_RETRAIN_THRESHOLD", "30")
        monkeypatch.setenv("RETRAIN_THRESHOLD", "15")

        assert Settings.from_env().retrain_threshold == 30.0

    def test_invalid_lookup_mode(self, monkeypatch):
        monkeypatch.setenv("ANNOTRACK_CLASS_CHECKPOINT_LOOKUP", "fuzzy")

        with pytest.raises(ValueError, match="ANNOTRACK_CLASS_CHECKPOINT_LOOKUP"):
            Settings.from_env()

    def test_get_settings_is_cached_until_reset(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("ANNOTRACK_HISTORY_LIMIT", "5")

        assert get_settings() is first

        reset_settings()
        assert get_settings().history_limit == 5
