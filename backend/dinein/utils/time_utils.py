"""Time utilities. All persisted timestamps are naive UTC."""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def utc_now_naive() -> datetime:
    """Return naive datetime representing current UTC time (DB storage format)."""
    return utc_now().replace(tzinfo=None)


def to_utc_naive(dt: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to naive UTC (assumes UTC if naive)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def iso(dt: Optional[datetime]) -> Optional[str]:
    """ISO-8601 string for API output, None passes through."""
    return dt.isoformat() if dt else None
