"""Utility modules for annotrack."""

from annotrack.utils.file import atomic_write_json, secure_open_append
from annotrack.utils.timestamp import date_key, parse_to_datetime, to_iso, today_utc, utc_now_iso
from annotrack.utils.validators import validate_date_string, validate_document_key, validate_safe_path

__all__ = [
    "atomic_write_json",
    "date_key",
    "parse_to_datetime",
    "secure_open_append",
    "to_iso",
    "today_utc",
    "utc_now_iso",
    "validate_date_string",
    "validate_document_key",
    "validate_safe_path",
]
