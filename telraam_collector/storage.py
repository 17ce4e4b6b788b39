"""File-based storage for monthly readings, daily aggregates and device metadata."""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .file_store import CorruptFileError, JsonFileStore
from .merger import merge_daily_entries, merge_readings
from .models import (
    DailyEntry,
    DailyRecord,
    DeviceMetadata,
    MonthlyRecord,
    Reading,
)
from .timeutils import utc_now_iso

DEVICE_DIR_PREFIX = "device_"
DAILY_DIR = "daily"
DEVICES_FILE = "devices.json"

RecordT = TypeVar("RecordT", bound=BaseModel)


class PersistenceStore:
    """
    Load/merge/save transactions for one data directory.

    Layout:
        <data_dir>/devices.json
        <data_dir>/device_<id>/<YYYY-MM>.json
        <data_dir>/device_<id>/daily/<YYYY-MM>.json

    Each save replaces a single file atomically. Saves to the same file must
    not run concurrently.
    """

    def __init__(
        self,
        data_dir: str = "./docs/data",
        file_store: Optional[JsonFileStore] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize storage.

        Args:
            data_dir: Root directory for all JSON artifacts
            file_store: File I/O backend
            logger: Logger for this run (defaults to the module logger)
        """
        self.data_dir = Path(data_dir)
        self.files = file_store or JsonFileStore()
        self.logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------ #
    # Paths
    # ------------------------------------------------------------------ #

    def device_dir(self, device_id: str) -> Path:
        return self.data_dir / f"{DEVICE_DIR_PREFIX}{device_id}"

    def monthly_path(self, device_id: str, month: str) -> Path:
        return self.device_dir(device_id) / f"{month}.json"

    def daily_path(self, device_id: str, month: str) -> Path:
        return self.device_dir(device_id) / DAILY_DIR / f"{month}.json"

    def devices_path(self) -> Path:
        return self.data_dir / DEVICES_FILE

    # ------------------------------------------------------------------ #
    # Monthly readings
    # ------------------------------------------------------------------ #

    def load_monthly(self, device_id: str, month: str) -> Optional[MonthlyRecord]:
        """Return the stored monthly record, or None if there is none."""
        return self._load_record(
            self.monthly_path(device_id, month),
            MonthlyRecord,
            f"loading monthly data for device {device_id}, month {month}",
        )

    def save_monthly(
        self, device_id: str, month: str, readings: Iterable[Reading]
    ) -> int:
        """
        Merge ``readings`` into the device's monthly file.

        Args:
            device_id: Device identifier
            month: Month in YYYY-MM format
            readings: New readings for that month

        Returns:
            Number of readings in the merged file
        """
        incoming = list(readings)
        existing = self.load_monthly(device_id, month)
        existing_data = existing.data if existing is not None else []

        result = merge_readings(existing_data, incoming)
        if result.skipped > 0:
            self.logger.warning(
                "Skipped %d data point(s) for device %s because no date "
                "timestamp was present",
                result.skipped,
                device_id,
            )
        self.logger.debug(
            "Merged data: %d existing + %d new = %d total unique points",
            len(existing_data),
            len(incoming),
            len(result.readings),
        )

        record = MonthlyRecord(
            device_id=device_id,
            month=month,
            last_updated=utc_now_iso(),
            data=result.readings,
        )
        self.files.write_json(
            self.monthly_path(device_id, month),
            record.model_dump(mode="json", by_alias=True),
            f"saving monthly data for device {device_id}, month {month}",
        )

        self.logger.info(
            "Saved %d data points for device %s, month %s",
            len(result.readings),
            device_id,
            month,
        )
        return len(result.readings)

    # ------------------------------------------------------------------ #
    # Daily aggregates
    # ------------------------------------------------------------------ #

    def load_daily(self, device_id: str, month: str) -> Optional[DailyRecord]:
        """Return the stored daily record, or None if there is none."""
        return self._load_record(
            self.daily_path(device_id, month),
            DailyRecord,
            f"loading daily data for device {device_id}, month {month}",
        )

    def save_daily(
        self, device_id: str, month: str, entries: Iterable[DailyEntry]
    ) -> int:
        """
        Merge daily aggregates into the device's daily file for ``month``.

        Returns:
            Number of days in the merged file
        """
        existing = self.load_daily(device_id, month)
        merged = merge_daily_entries(
            existing.days if existing is not None else [], entries
        )

        record = DailyRecord(
            device_id=device_id,
            month=month,
            last_updated=utc_now_iso(),
            days=merged,
        )
        self.files.write_json(
            self.daily_path(device_id, month),
            record.model_dump(mode="json", by_alias=True, exclude_none=True),
            f"saving daily data for device {device_id}, month {month}",
        )

        self.logger.info(
            "Saved %d daily aggregates for device %s, month %s",
            len(merged),
            device_id,
            month,
        )
        return len(merged)

    # ------------------------------------------------------------------ #
    # Device metadata
    # ------------------------------------------------------------------ #

    def save_device_metadata(self, devices: List[DeviceMetadata]) -> None:
        """Replace devices.json with ``devices``."""
        path = self.devices_path()
        self.files.write_json(
            path,
            [d.model_dump(mode="json", by_alias=True) for d in devices],
            "saving device metadata",
        )
        self.logger.info("Saved metadata for %d devices to %s", len(devices), path)

    def load_device_metadata(self) -> List[DeviceMetadata]:
        """Load devices.json; an absent file yields an empty list."""
        path = self.devices_path()
        operation = "loading device metadata"
        raw = self.files.read_json(path, operation)
        if raw is None:
            self.logger.debug("No existing device metadata found")
            return []
        try:
            return [DeviceMetadata.model_validate(item) for item in raw]
        except (TypeError, ValidationError) as e:
            raise CorruptFileError(operation, path, e) from e

    def json_files(self) -> List[Path]:
        """All JSON artifacts under the data directory."""
        return self.files.collect_json_files(self.data_dir)

    def _load_record(
        self, path: Path, model: Type[RecordT], operation: str
    ) -> Optional[RecordT]:
        raw = self.files.read_json(path, operation)
        if raw is None:
            return None
        try:
            return model.model_validate(raw)
        except ValidationError as e:
            self.logger.error("Stored document has unexpected shape: %s", path)
            raise CorruptFileError(operation, path, e) from e
