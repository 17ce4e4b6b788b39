"""Pydantic models for stored records and collection results."""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# A single hourly observation as returned by the traffic API. The field set is
# open, so readings are kept as plain dicts and persisted verbatim.
Reading = Dict[str, Any]

Number = Union[int, float]


class DailyTotals(BaseModel):
    """Aggregated counters for one calendar day."""

    hours: int
    uptime_avg: Optional[float] = None
    heavy: Optional[Number] = None
    car: Optional[Number] = None
    bike: Optional[Number] = None
    pedestrian: Optional[Number] = None
    night: Optional[Number] = None
    heavy_lft: Optional[Number] = None
    heavy_rgt: Optional[Number] = None
    car_lft: Optional[Number] = None
    car_rgt: Optional[Number] = None
    bike_lft: Optional[Number] = None
    bike_rgt: Optional[Number] = None
    pedestrian_lft: Optional[Number] = None
    pedestrian_rgt: Optional[Number] = None
    night_lft: Optional[Number] = None
    night_rgt: Optional[Number] = None


class DailyEntry(BaseModel):
    """Aggregate for a single date (YYYY-MM-DD)."""

    date: str
    totals: DailyTotals


class MonthlyRecord(BaseModel):
    """All readings for one device in one calendar month."""

    model_config = ConfigDict(populate_by_name=True)

    device_id: str
    month: str  # YYYY-MM
    last_updated: str = Field(alias="lastUpdated")
    data: List[Reading] = Field(default_factory=list)


class DailyRecord(BaseModel):
    """All daily aggregates for one device in one calendar month."""

    model_config = ConfigDict(populate_by_name=True)

    device_id: str
    month: str  # YYYY-MM
    last_updated: str = Field(alias="lastUpdated")
    days: List[DailyEntry] = Field(default_factory=list)


class DeviceConfig(BaseModel):
    """Configured traffic counter."""

    id: str
    name: str
    location: str = ""


class DeviceMetadata(DeviceConfig):
    """Device entry written to devices.json."""

    model_config = ConfigDict(populate_by_name=True)

    last_updated: str = Field(alias="lastUpdated")
    total_data_points: int = Field(alias="totalDataPoints")


class DateRange(BaseModel):
    """Fetch window: start inclusive, end exclusive."""

    start: datetime
    end: datetime


class CollectionResult(BaseModel):
    """Outcome of collecting a single device."""

    device_id: str
    success: bool
    data_points_collected: int = 0
    last_updated: Optional[str] = None  # timestamp of the newest reading collected
    error: Optional[str] = None


class CollectionSummary(BaseModel):
    """Outcome of a whole collection run."""

    total_devices: int
    successful_devices: int
    failed_devices: int
    results: List[CollectionResult]
    start_time: str
    end_time: str

    @property
    def total_data_points(self) -> int:
        return sum(r.data_points_collected for r in self.results)
