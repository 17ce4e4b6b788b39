"""Fold hourly readings into per-day totals."""

from typing import Any, Iterable, List

from .merger import group_by_day
from .models import DailyEntry, DailyTotals, Reading

# Counters summed per day. Other numeric fields are stored with the readings
# but not aggregated.
NUMERIC_FIELDS = (
    "heavy",
    "car",
    "bike",
    "pedestrian",
    "night",
    "heavy_lft",
    "heavy_rgt",
    "car_lft",
    "car_rgt",
    "bike_lft",
    "bike_rgt",
    "pedestrian_lft",
    "pedestrian_rgt",
    "night_lft",
    "night_rgt",
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def aggregate_day(readings: List[Reading]) -> DailyTotals:
    """
    Aggregate one day's readings.

    Every reading counts toward ``hours``. A counter appears in the result only
    if at least one reading defines it; ``uptime_avg`` is the mean over the
    readings that report an uptime.

    Args:
        readings: Readings belonging to a single day

    Returns:
        DailyTotals for the day
    """
    sums: dict[str, Any] = {}
    for reading in readings:
        for name in NUMERIC_FIELDS:
            value = reading.get(name)
            if _is_number(value):
                sums[name] = sums.get(name, 0) + value

    uptimes = [r["uptime"] for r in readings if _is_number(r.get("uptime"))]
    if uptimes:
        sums["uptime_avg"] = sum(uptimes) / len(uptimes)

    return DailyTotals(hours=len(readings), **sums)


def build_daily_entries(readings: Iterable[Reading]) -> List[DailyEntry]:
    """
    Build one DailyEntry per date (timestamp prefix) present in ``readings``.

    Readings without a timestamp are ignored.

    Returns:
        Entries sorted ascending by date
    """
    grouped = group_by_day(readings)
    return [
        DailyEntry(date=day, totals=aggregate_day(grouped[day]))
        for day in sorted(grouped)
    ]
