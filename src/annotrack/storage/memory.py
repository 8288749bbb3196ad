"""In-process DocumentStore keeping deep copies of every document."""

from __future__ import annotations

import copy
from typing import Any

from .base import DocumentStore


class MemoryDocumentStore(DocumentStore):
    """Document store that lives only as long as the process.

    Documents are copied on read and write so callers never share state
    with the store, matching the file-backed store's semantics.
    """

    def __init__(self, documents: dict[str, Any] | None = None) -> None:
        super().__init__()
        self._documents: dict[str, Any] = copy.deepcopy(documents) if documents else {}
        self._texts: dict[str, list[str]] = {}

    def read(self, key: str, default: Any) -> Any:
        if key not in self._documents:
            return copy.deepcopy(default)
        return copy.deepcopy(self._documents[key])

    def write(self, key: str, document: Any) -> None:
        self._documents[key] = copy.deepcopy(document)

    def append_line(self, key: str, text: str) -> None:
        with self.lock_for(key):
            self._texts.setdefault(key, []).append(text)

    def read_text(self, key: str, default: str = "") -> str:
        lines = self._texts.get(key)
        if lines is None:
            return default
        return "".join(line + "\n" for line in lines)

    def keys(self) -> list[str]:
        """Return the keys of all stored JSON documents."""
        return sorted(self._documents)
