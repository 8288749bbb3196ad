"""
DocumentStore - Abstract base class for keyed JSON document persistence.

Every persisted concern (project history, checkpoints, notifications, ...)
is one JSON document addressed by a logical key. Components only see this
interface, so swapping flat files for an embedded key-value store does not
change their code.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")


class DocumentStore(ABC):
    """Abstract key → JSON document store.

    Mutations follow a read-modify-write convention through update(), which
    serializes writers of the same key within this process. There is no
    locking across processes and no transaction spanning several documents.
    """

    def __init__(self) -> None:
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @abstractmethod
    def read(self, key: str, default: Any) -> Any:  # pragma: no cover - interface only
        """Read a document.

        Args:
            key: Document key
            default: Returned (as a copy) when the document does not exist

        Returns:
            The decoded document

        Raises:
            StorageReadError: If the document exists but cannot be read or decoded
        """
        raise NotImplementedError

    @abstractmethod
    def write(self, key: str, document: Any) -> None:  # pragma: no cover - interface only
        """Replace a document as a whole.

        Raises:
            StorageWriteError: If the document cannot be written
        """
        raise NotImplementedError

    @abstractmethod
    def append_line(self, key: str, text: str) -> None:  # pragma: no cover - interface only
        """Append one line to a plain-text document.

        Raises:
            StorageWriteError: If the line cannot be appended
        """
        raise NotImplementedError

    @abstractmethod
    def read_text(self, key: str, default: str = "") -> str:  # pragma: no cover - interface only
        """Read a plain-text document, or default when it does not exist."""
        raise NotImplementedError

    def lock_for(self, key: str) -> threading.RLock:
        """Return the in-process lock guarding a document key."""
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    def update(self, key: str, default: Any, mutator: Callable[[Any], T]) -> T:
        """Read a document, let mutator change it in place, and write it back.

        Args:
            key: Document key
            default: Document used when none exists yet
            mutator: Called with the loaded document; its return value is passed through

        Returns:
            Whatever mutator returned
        """
        with self.lock_for(key):
            document = self.read(key, default)
            result = mutator(document)
            self.write(key, document)
            return result

    def close(self) -> None:  # noqa: B027
        """Release any resources held by the store.

        Default implementation does nothing. Override if cleanup is needed.
        """
