"""Input validators for annotrack.

Document keys become file names in the JSON store, so they are restricted to
a safe character set to prevent path traversal.
"""

import os
import re
from datetime import date
from pathlib import Path

__all__ = ["validate_safe_path", "validate_document_key", "validate_date_string"]

# Only allow alphanumeric characters, underscores, and hyphens
_SAFE_KEY_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


def validate_safe_path(path: Path, base_dir: Path) -> None:
    """Validate that the resolved path is within the base directory.

    Args:
        path: Path to validate
        base_dir: Base directory that should contain the path

    Raises:
        ValueError: If path is outside base_dir, contains symlinks, or path resolution fails

    Examples:
        >>> base = Path("/data")
        >>> validate_safe_path(Path("/data/checkpoints.json"), base)  # OK
        >>> validate_safe_path(Path("/data/../etc/passwd"), base)  # Raises ValueError
    """
    try:
        resolved_path = path.resolve()
        resolved_base = base_dir.resolve()

        # Walk from the path up to the base directory, checking each component
        current = path
        while current != current.parent:
            if current.exists() and current.is_symlink():
                raise ValueError(f"Path contains symlink: {current}")
            try:
                current.relative_to(resolved_base)
            except ValueError:
                break
            current = current.parent

        if not str(resolved_path).startswith(str(resolved_base) + os.sep) and resolved_path != resolved_base:
            raise ValueError(f"Path {path} is outside base directory {base_dir}")
    except (ValueError, OSError) as e:
        if isinstance(e, ValueError) and str(e).startswith("Path"):
            raise
        raise ValueError(f"Invalid path: {path}") from e


def validate_document_key(key: str) -> None:
    """Validate a document key before it is mapped to a file name.

    Args:
        key: Logical document key, e.g. "project_history"

    Raises:
        ValueError: If key is empty or contains invalid characters

    Examples:
        >>> validate_document_key("time_series")  # OK
        >>> validate_document_key("../etc/passwd")  # Raises ValueError
    """
    if not key or not _SAFE_KEY_PATTERN.match(key):
        raise ValueError("Invalid document key. Only alphanumeric characters, underscores, and hyphens are allowed.")


def validate_date_string(value: str, field_name: str = "date") -> str:
    """Validate a YYYY-MM-DD calendar day string.

    Args:
        value: Date string from user input
        field_name: Name used in the error message

    Returns:
        The validated string unchanged

    Raises:
        ValueError: If the value is not a valid calendar day
    """
    try:
        parsed = date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid {field_name}: {value!r}. Expected YYYY-MM-DD.") from None
    if parsed.isoformat() != value:
        raise ValueError(f"Invalid {field_name}: {value!r}. Expected YYYY-MM-DD.")
    return value
