"""Canonical class keys for raw annotation labels."""

import re

# Letters and spaces, optionally followed by whitespace and a numeric suffix
_LABEL_PATTERN = re.compile(r"^([a-zA-Z\s]+)(\s+\d+)?$")


def normalize_class_name(class_name: str | None) -> str:
    """Normalize a raw label into a class key.

    The label is trimmed and lowercased, and a trailing run of digits preceded
    by whitespace is stripped, so "Cavity 1" and "cavity 2" both become
    "cavity". Labels with other characters (punctuation, digits in the middle)
    are returned trimmed and lowercased without further changes.

    Args:
        class_name: Raw label string

    Returns:
        Normalized class key, or "" for an empty label

    Examples:
        >>> normalize_class_name("Cavity 2")
        'cavity'
        >>> normalize_class_name(" Root-Canal ")
        'root-canal'
    """
    if not class_name:
        return ""

    normalized = class_name.strip().lower()
    match = _LABEL_PATTERN.fullmatch(normalized)
    if match:
        return match.group(1).strip()

    return normalized
