"""
Timezone-aware datetime helpers.
- Store and compute in UTC in DB.
- API responses expose datetimes as ISO-8601 with an explicit offset.
"""
from datetime import date, datetime, timezone
from typing import Optional

UTC = timezone.utc


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware). Use for approved_at, allotted_at, created_at, etc."""
    return datetime.now(UTC)


def today_utc() -> date:
    """Current calendar date in UTC"""
    return now_utc().date()


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    else:
        dt = dt.astimezone(UTC)
    return dt


def iso_utc(dt: Optional[datetime]) -> Optional[str]:
    """Serialize as ISO-8601 in UTC (+00:00). SQLite returns naive datetimes, treated as UTC."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()
