"""Timestamp formatting helpers."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from .models import DateRange


def format_datetime_for_api(dt: datetime) -> str:
    """
    Format a datetime the way the traffic API expects.

    Example:
        2024-12-06 10:30:00Z
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%SZ")


def utc_now_iso() -> str:
    """Current time as YYYY-MM-DDTHH:MM:SS.mmmZ."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def calculate_date_range(days_to_fetch: int, end: Optional[datetime] = None) -> DateRange:
    """Window covering the last ``days_to_fetch`` days up to ``end`` (default now)."""
    if end is None:
        end = datetime.now(timezone.utc)
    return DateRange(start=end - timedelta(days=days_to_fetch), end=end)


def format_duration(seconds: float) -> str:
    if seconds < 1:
        return f"{int(seconds * 1000)}ms"
    return f"{seconds:.2f}s"
