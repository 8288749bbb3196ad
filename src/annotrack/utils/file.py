"""File helpers for the JSON document store."""

import contextlib
import json
import os
import sys
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import IO, Any

OWNER_ONLY = 0o600


def _sync(fd: int) -> None:
    # macOS exposes fdatasync but it does not flush the drive cache
    if sys.platform != "darwin" and hasattr(os, "fdatasync"):
        os.fdatasync(fd)
    else:
        os.fsync(fd)


@contextlib.contextmanager
def secure_open_append(path: str | Path) -> Iterator[IO[str]]:
    """Open a text log for appending; a new file is created owner-only.

    Examples:
        with secure_open_append(data_dir / "scheduler_log.txt") as log:
            log.write("2024-01-15T02:08:00Z - Scheduler started\\n")
    """
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    fd = os.open(log_path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, OWNER_ONLY)
    try:
        log = os.fdopen(fd, "a", encoding="utf-8")
    except Exception:
        os.close(fd)
        raise
    with log:
        yield log


def atomic_write_json(path: str | Path, document: Any) -> None:
    """Replace a JSON document in one rename.

    The document is serialized into a synced temp file beside the target,
    so a reader sees either the previous document or the new one. On any
    failure the target is left untouched and the temp file removed.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.stem}_", suffix=".tmp", dir=target.parent)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(document, f, ensure_ascii=False, indent=2)
            f.flush()
            _sync(f.fileno())
        tmp.chmod(OWNER_ONLY)
        os.replace(tmp, target)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise
