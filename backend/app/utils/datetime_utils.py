"""DateTime utilities for timezone-aware timestamp handling.

Documents store timestamps as ISO-8601 strings; the helpers here convert
between those strings and the offset-naive UTC datetimes kept in SQL columns.
"""

from datetime import datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    """
    Get current UTC datetime without timezone info (offset-naive).

    Replaces deprecated datetime.utcnow() with datetime.now(timezone.utc).

    Returns:
        Current UTC datetime without timezone info

    Example:
        >>> now = utc_now()
        >>> print(now.tzinfo)
        None
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Lambda version for SQLAlchemy default/onupdate parameters
utc_now_lambda = lambda: datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to offset-naive UTC; naive values are assumed UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a document timestamp field.

    Accepts datetimes and ISO-8601 strings (a trailing ``Z`` is allowed).
    Returns None for anything else so callers can fall back to "now".
    """
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, str):
        try:
            return to_naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def isoformat(value: datetime) -> str:
    """Render a UTC datetime the way documents store it."""
    return to_naive_utc(value).isoformat() + "Z"
