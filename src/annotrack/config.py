"""Configuration and environment handling for annotrack."""

import os
from pathlib import Path

from pydantic import BaseModel, Field

__all__ = [
    "Settings",
    "get_data_dir",
    "get_settings",
    "get_storage_backend",
    "reset_settings",
]

_CLASS_CHECKPOINT_LOOKUP_MODES = ("exact", "normalized")


def _env(name: str, *fallbacks: str) -> str | None:
    """Return the first environment variable that is set among name and fallbacks."""
    for key in (name, *fallbacks):
        value = os.environ.get(key)
        if value is not None and value != "":
            return value
    return None


class Settings(BaseModel):
    """Runtime settings for the aggregation pipeline and its collaborators.

    All values can be overridden via environment variables, see from_env().
    """

    label_studio_url: str = Field(default="", description="Base URL of the annotation tool API")
    label_studio_api_key: str = Field(default="", description="API token sent as 'Authorization: Token <key>'")
    request_timeout: float = Field(default=30.0, description="HTTP timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates of the annotation tool")
    projects_page_size: int = Field(default=50, description="Page size for project listings")
    tasks_page_size: int = Field(default=100, description="Page size for task listings")

    retrain_threshold: float = Field(default=20.0, description="Growth percentage that triggers a notification")
    history_limit: int = Field(default=50, description="Maximum history entries kept per entity")
    refresh_batch_size: int = Field(default=4, description="Projects refreshed concurrently within one batch")

    storage_read_retries: int = Field(default=3, description="Attempts for reads failing with transient I/O errors")
    storage_retry_delay: float = Field(default=0.1, description="Delay between read attempts in seconds")

    class_checkpoint_lookup: str = Field(
        default="exact",
        description="Class checkpoint metric lookup: 'exact' (case-sensitive key) or 'normalized'",
    )

    @classmethod
    def from_env(cls) -> "Settings":
        """Create Settings from environment variables.

        Environment variables:
        - ANNOTRACK_LABEL_STUDIO_URL / LABEL_STUDIO_URL
        - ANNOTRACK_LABEL_STUDIO_API_KEY / LABEL_STUDIO_API_KEY
        - ANNOTRACK_REQUEST_TIMEOUT (default: 30)
        - ANNOTRACK_VERIFY_SSL (default: 1)
        - ANNOTRACK_PROJECTS_PAGE_SIZE (default: 50)
        - ANNOTRACK_TASKS_PAGE_SIZE (default: 100)
        - ANNOTRACK_RETRAIN_THRESHOLD / RETRAIN_THRESHOLD (default: 20)
        - ANNOTRACK_HISTORY_LIMIT (default: 50)
        - ANNOTRACK_REFRESH_BATCH_SIZE (default: 4)
        - ANNOTRACK_STORAGE_READ_RETRIES (default: 3)
        - ANNOTRACK_CLASS_CHECKPOINT_LOOKUP (default: exact)
        """
        defaults = cls.model_fields

        lookup = _env("ANNOTRACK_CLASS_CHECKPOINT_LOOKUP") or defaults["class_checkpoint_lookup"].default
        if lookup not in _CLASS_CHECKPOINT_LOOKUP_MODES:
            raise ValueError(f"Invalid ANNOTRACK_CLASS_CHECKPOINT_LOOKUP value: {lookup!r}. Valid values are: {list(_CLASS_CHECKPOINT_LOOKUP_MODES)}")

        verify_ssl = _env("ANNOTRACK_VERIFY_SSL")

        return cls(
            label_studio_url=(_env("ANNOTRACK_LABEL_STUDIO_URL", "LABEL_STUDIO_URL") or "").rstrip("/"),
            label_studio_api_key=_env("ANNOTRACK_LABEL_STUDIO_API_KEY", "LABEL_STUDIO_API_KEY") or "",
            request_timeout=float(_env("ANNOTRACK_REQUEST_TIMEOUT") or defaults["request_timeout"].default),
            verify_ssl=defaults["verify_ssl"].default if verify_ssl is None else verify_ssl == "1",
            projects_page_size=int(_env("ANNOTRACK_PROJECTS_PAGE_SIZE") or defaults["projects_page_size"].default),
            tasks_page_size=int(_env("ANNOTRACK_TASKS_PAGE_SIZE") or defaults["tasks_page_size"].default),
            retrain_threshold=float(_env("ANNOTRACK_RETRAIN_THRESHOLD", "RETRAIN_THRESHOLD") or defaults["retrain_threshold"].default),
            history_limit=int(_env("ANNOTRACK_HISTORY_LIMIT") or defaults["history_limit"].default),
            refresh_batch_size=int(_env("ANNOTRACK_REFRESH_BATCH_SIZE") or defaults["refresh_batch_size"].default),
            storage_read_retries=int(_env("ANNOTRACK_STORAGE_READ_RETRIES") or defaults["storage_read_retries"].default),
            class_checkpoint_lookup=lookup,
        )


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get settings.

    Returns cached instance if already initialized.
    """
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None


# Forbidden system directories that cannot be used as data directories
_FORBIDDEN_PATHS = frozenset(["/", "/etc", "/sys", "/dev", "/bin", "/sbin", "/usr", "/var", "/boot", "/proc"])


def _validate_data_dir(data_path: Path) -> None:
    """Validate that data directory is not a dangerous system path.

    Args:
        data_path: Path to validate

    Raises:
        ValueError: If path is a forbidden system directory
    """
    resolved_str = str(data_path.resolve())

    for forbidden in _FORBIDDEN_PATHS:
        if resolved_str == forbidden or resolved_str.rstrip("/") == forbidden:
            raise ValueError(f"ANNOTRACK_DATA_DIR cannot be set to system directory: {forbidden}")


def get_data_dir() -> Path:
    """Get the directory holding the JSON documents.

    Resolution priority:
    1. ANNOTRACK_DATA_DIR environment variable (if set)
    2. XDG_DATA_HOME/annotrack (if XDG_DATA_HOME is set)
    3. ~/.local/share/annotrack (fallback)

    Raises:
        ValueError: If ANNOTRACK_DATA_DIR points to a system directory
    """
    data_dir = os.environ.get("ANNOTRACK_DATA_DIR")
    if data_dir:
        data_path = Path(data_dir).expanduser().resolve()
        _validate_data_dir(data_path)
        return data_path

    xdg_data_home = os.environ.get("XDG_DATA_HOME")
    if xdg_data_home:
        return Path(xdg_data_home).expanduser() / "annotrack"

    return Path.home() / ".local" / "share" / "annotrack"


def get_storage_backend() -> str | None:
    """Get storage backend from environment variable.

    Returns:
        Storage backend name if ANNOTRACK_STORAGE_BACKEND is set, None otherwise.
    """
    return os.environ.get("ANNOTRACK_STORAGE_BACKEND")
