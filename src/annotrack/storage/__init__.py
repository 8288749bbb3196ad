"""
annotrack storage module

Keyed JSON document persistence and the history log built on top of it.
"""

from pathlib import Path

from annotrack.config import get_settings, get_storage_backend

from .base import DocumentStore
from .history import DEFAULT_HISTORY_LIMIT, HistoryStore
from .json_store import JsonDocumentStore
from .memory import MemoryDocumentStore
from .migrations import merge_history_documents, migrate_legacy_cache

DEFAULT_STORAGE_BACKEND = "json"
_VALID_STORAGE_BACKENDS = {"json", "memory"}


def resolve_storage_backend(storage_backend: str | None = None) -> str:
    """Resolve the document storage backend name.

    Resolution order:
    1. ANNOTRACK_STORAGE_BACKEND environment variable (if set and valid)
    2. storage_backend argument (if set and valid)
    3. DEFAULT_STORAGE_BACKEND ("json") when neither is set

    Raises:
        ValueError: If ANNOTRACK_STORAGE_BACKEND or storage_backend is set but invalid.
    """
    env_backend = get_storage_backend()

    if env_backend is not None:
        if env_backend in _VALID_STORAGE_BACKENDS:
            return env_backend
        msg = f"Invalid ANNOTRACK_STORAGE_BACKEND value: {env_backend!r}. Valid values are: {sorted(_VALID_STORAGE_BACKENDS)}"
        raise ValueError(msg)

    if storage_backend is not None:
        if storage_backend in _VALID_STORAGE_BACKENDS:
            return storage_backend
        msg = f"Invalid storage_backend value: {storage_backend!r}. Valid values are: {sorted(_VALID_STORAGE_BACKENDS)}"
        raise ValueError(msg)

    return DEFAULT_STORAGE_BACKEND


def create_document_store(backend: str | None = None, *, base_dir: str | Path) -> DocumentStore:
    """Create a document store instance.

    Args:
        backend: Storage backend type ('json' or 'memory').
                 If None, uses ANNOTRACK_STORAGE_BACKEND env var or defaults to 'json'.
        base_dir: Directory for the JSON documents (ignored by the memory backend).

    Returns:
        DocumentStore instance (JsonDocumentStore or MemoryDocumentStore).
    """
    resolved = resolve_storage_backend(backend)
    if resolved == "memory":
        return MemoryDocumentStore()

    settings = get_settings()
    return JsonDocumentStore(
        base_dir=base_dir,
        read_retries=settings.storage_read_retries,
        retry_delay=settings.storage_retry_delay,
    )


__all__ = [
    "DEFAULT_HISTORY_LIMIT",
    "DocumentStore",
    "HistoryStore",
    "JsonDocumentStore",
    "MemoryDocumentStore",
    "create_document_store",
    "merge_history_documents",
    "migrate_legacy_cache",
    "resolve_storage_backend",
]
