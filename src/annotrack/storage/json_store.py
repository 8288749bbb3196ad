"""
JsonDocumentStore - flat-file implementation of DocumentStore.

Each document lives in {base_dir}/{key}.json; append-only text documents
live in {base_dir}/{key}.txt.
"""

from __future__ import annotations

import copy
import errno
import json
import logging
import time
from pathlib import Path
from typing import Any

from annotrack.exceptions import StorageReadError, StorageWriteError
from annotrack.utils import atomic_write_json, secure_open_append
from annotrack.utils.validators import validate_document_key, validate_safe_path

from .base import DocumentStore

logger = logging.getLogger(__name__)

# Errors worth retrying: the file is locked or busy for a short moment
_TRANSIENT_ERRNOS = frozenset({errno.EBUSY, errno.EAGAIN, errno.EPERM})


class JsonDocumentStore(DocumentStore):
    """Document store backed by one JSON file per key."""

    def __init__(self, base_dir: str | Path, read_retries: int = 3, retry_delay: float = 0.1) -> None:
        """Initialize the store.

        Args:
            base_dir: Directory holding the documents
            read_retries: Attempts for reads failing with transient errors
            retry_delay: Delay between attempts in seconds
        """
        super().__init__()
        self.base_dir = Path(base_dir)
        self.read_retries = max(1, read_retries)
        self.retry_delay = retry_delay

    def _path(self, key: str, suffix: str) -> Path:
        validate_document_key(key)
        path = self.base_dir / f"{key}{suffix}"
        validate_safe_path(path, self.base_dir)
        return path

    def path_for(self, key: str) -> Path:
        """Return the file backing a JSON document."""
        return self._path(key, ".json")

    def read(self, key: str, default: Any) -> Any:
        path = self._path(key, ".json")

        attempt = 0
        while True:
            attempt += 1
            try:
                with open(path, encoding="utf-8") as f:
                    return json.load(f)
            except FileNotFoundError:
                return copy.deepcopy(default)
            except json.JSONDecodeError as e:
                logger.error(f"Document {key} is not valid JSON: {e}")
                raise StorageReadError(f"Failed to decode {path.name}: {e}") from e
            except OSError as e:
                if e.errno in _TRANSIENT_ERRNOS and attempt < self.read_retries:
                    logger.debug(f"Transient error reading {key} (attempt {attempt}/{self.read_retries}): {e}")
                    time.sleep(self.retry_delay)
                    continue
                logger.error(f"Failed to read {key} after {attempt} attempt(s): {e}")
                raise StorageReadError(f"Failed to read {path.name}: {e}") from e

    def write(self, key: str, document: Any) -> None:
        path = self._path(key, ".json")
        try:
            atomic_write_json(path, document)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write {key}: {e}")
            raise StorageWriteError(f"Failed to write {path.name}: {e}") from e

    def append_line(self, key: str, text: str) -> None:
        path = self._path(key, ".txt")
        try:
            with self.lock_for(key), secure_open_append(path) as f:
                f.write(text + "\n")
        except OSError as e:
            logger.error(f"Failed to append to {key}: {e}")
            raise StorageWriteError(f"Failed to append to {path.name}: {e}") from e

    def read_text(self, key: str, default: str = "") -> str:
        path = self._path(key, ".txt")
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return default
        except OSError as e:
            logger.warning(f"Error reading {path.name}: {e}")
            return default
