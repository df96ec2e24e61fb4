from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def day_range(start: Optional[str], end: Optional[str]) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Turn "YYYY-MM-DD" bounds into a half-open [start, end) datetime window.

    The end day is inclusive: its whole 24 hours fall inside the window.
    """
    start_dt = None
    end_dt = None
    if start:
        start_dt = datetime.combine(date.fromisoformat(start.strip()), time.min)
    if end:
        end_dt = datetime.combine(date.fromisoformat(end.strip()), time.min) + timedelta(days=1)
    return start_dt, end_dt


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
