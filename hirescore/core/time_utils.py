from __future__ import annotations

from datetime import datetime, timezone
from typing import Union


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware_utc(dt: datetime) -> datetime:
    """Return a timezone-aware UTC datetime.

    Naive values are interpreted as UTC, aware values are converted.
    SQLite hands timestamps back naive, so everything read from the store
    passes through here too.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_instant(value: Union[str, datetime]) -> datetime:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into an aware UTC datetime."""
    if isinstance(value, datetime):
        return ensure_aware_utc(value)
    if not isinstance(value, str):
        raise TypeError("value must be datetime or ISO string")
    text = value.strip()
    if not text:
        raise ValueError("datetime value is required")
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text.replace(" ", "T"))
    except ValueError as exc:
        raise ValueError("invalid datetime format") from exc
    return ensure_aware_utc(parsed)


__all__ = ["ensure_aware_utc", "parse_instant", "utcnow"]
