"""Lightweight validation helpers for path and query parameters."""

import re
from typing import Any

from utils.error_handling import ValidationError

# Upper bound of a PostgreSQL INTEGER primary key.
MAX_INT_ID = 2_147_483_647

_ASCII_DIGITS_RE = re.compile(r"[0-9]+")


def ensure_present(value: Any, field: str) -> None:
    """Raise ValidationError if value is falsy."""
    if value in (None, "", []):
        raise ValidationError(f"{field} is required")


def parse_positive_int(value: Any, field: str) -> int:
    """Parse a path parameter into a positive integer id or raise ValidationError."""
    ensure_present(value, field)
    text = str(value).strip()
    if not _ASCII_DIGITS_RE.fullmatch(text):
        raise ValidationError(f"Invalid {field}", details={field: value})
    parsed = int(text)
    if not 0 < parsed <= MAX_INT_ID:
        raise ValidationError(f"Invalid {field}", details={field: value})
    return parsed
