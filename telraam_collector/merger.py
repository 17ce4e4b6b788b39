"""Deduplication and merging of readings and daily aggregates."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .models import DailyEntry, Reading

TIMESTAMP_FIELD = "date"

# Month keys become file names.
MONTH_PATTERN = re.compile(r"^\d{4}-\d{2}$")


@dataclass
class MergeResult:
    """Merged readings plus the number dropped for lacking a timestamp."""

    readings: List[Reading] = field(default_factory=list)
    skipped: int = 0


def reading_timestamp(reading: Any) -> Optional[str]:
    """Return the reading's timestamp, or None if it has no usable one."""
    if not isinstance(reading, dict):
        return None
    value = reading.get(TIMESTAMP_FIELD)
    if isinstance(value, str) and value:
        return value
    return None


def merge_readings(
    existing: Iterable[Reading], incoming: Iterable[Reading]
) -> MergeResult:
    """
    Merge two batches of readings, last write wins per timestamp.

    Existing readings are folded in first, then incoming ones, so an incoming
    reading replaces an existing reading with the same timestamp string, and a
    later incoming reading replaces an earlier one. Readings are replaced
    whole, never merged field by field.

    Timestamps are compared as strings. Lexical order equals chronological
    order only for the fixed-width UTC form the traffic API emits.

    Args:
        existing: Previously stored readings
        incoming: Newly fetched readings

    Returns:
        MergeResult with readings sorted ascending by timestamp string
    """
    by_key: Dict[str, Reading] = {}
    skipped = 0

    for batch in (existing, incoming):
        for reading in batch:
            ts = reading_timestamp(reading)
            if ts is None:
                skipped += 1
                continue
            by_key[ts] = reading

    merged = [by_key[ts] for ts in sorted(by_key)]
    return MergeResult(readings=merged, skipped=skipped)


def _group_by_prefix(readings: Iterable[Reading], length: int) -> Dict[str, List[Reading]]:
    groups: Dict[str, List[Reading]] = {}
    for reading in readings:
        ts = reading_timestamp(reading)
        if ts is None:
            continue
        groups.setdefault(ts[:length], []).append(reading)
    return groups


def group_by_month(readings: Iterable[Reading]) -> Dict[str, List[Reading]]:
    """Group readings by the YYYY-MM prefix of their timestamp, dropping undated ones."""
    return _group_by_prefix(readings, 7)


def group_by_day(readings: Iterable[Reading]) -> Dict[str, List[Reading]]:
    """Group readings by the YYYY-MM-DD prefix of their timestamp, dropping undated ones."""
    return _group_by_prefix(readings, 10)


def is_valid_month(month: str) -> bool:
    return bool(MONTH_PATTERN.match(month))


def merge_daily_entries(
    existing: Iterable[DailyEntry], incoming: Iterable[DailyEntry]
) -> List[DailyEntry]:
    """
    Merge daily aggregates by date.

    An incoming entry replaces the existing entry for the same date entirely;
    totals are not summed.
    """
    by_date: Dict[str, DailyEntry] = {}
    for entry in existing:
        by_date[entry.date] = entry
    for entry in incoming:
        by_date[entry.date] = entry
    return sorted(by_date.values(), key=lambda e: e.date)
